import argparse
import logging
import sys

from .. import config
from . import SCRAPERS, get_scraper
from .common import save_scrape_result


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Scrape park dining menus into data/scraped/<source>-<date>.json")
    p.add_argument("--source", action="append", choices=sorted(SCRAPERS), help="Source to scrape (repeatable). Default: all")
    p.add_argument("--out-dir", default=config.SCRAPED_DIR)
    p.add_argument("--log", default=config.LOG_LEVEL)
    p.add_argument("--log-file", default="scraper.log")
    p.add_argument("--no-headless", action="store_true", help="Show the browser window for browser-rendered sources")
    return p.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    config.configure_logging(args.log, args.log_file)
    if args.no_headless:
        config.HEADLESS = False
    sources = args.source or sorted(SCRAPERS)
    failed = 0
    for source in sources:
        logging.info("=== Scraping %s ===", source)
        try:
            result = get_scraper(source)()
        except Exception as e:
            logging.error("Scraper %s failed: %s", source, e)
            failed += 1
            continue
        path = save_scrape_result(result, args.out_dir)
        logging.info("%s: %d restaurants, %d items, %d errors -> %s", source, len(result.restaurants), result.item_count, len(result.errors), path)
    if failed == len(sources):
        sys.exit(1)


if __name__ == "__main__":
    main()
