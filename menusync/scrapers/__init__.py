import importlib

SCRAPERS = {
    "allears": "menusync.scrapers.allears",
    "universal": "menusync.scrapers.universal",
    "dfb": "menusync.scrapers.dfb",
}


def get_scraper(source: str):
    """Scrape function for a source; the browser stack is only imported for dfb."""
    if source not in SCRAPERS:
        raise KeyError(f"Unknown source: {source}")
    return importlib.import_module(SCRAPERS[source]).scrape
