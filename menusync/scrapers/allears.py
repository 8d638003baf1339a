"""AllEars dining menus: static HTML index pages per park, one menu page per restaurant."""
import logging
import re
from dataclasses import dataclass
from typing import List, Optional

from bs4 import BeautifulSoup

from ..models import ScrapedItem, ScrapedRestaurant, ScrapeResult
from ..text import infer_category
from .common import clean_text, fetch_page, jitter, now_iso, parse_price

SOURCE = "allears"
PARK_URLS = {
    "Magic Kingdom": "https://allears.net/dining/magic-kingdom-restaurant-menus/",
    "EPCOT": "https://allears.net/dining/epcot-restaurant-menus/",
    "Hollywood Studios": "https://allears.net/dining/hollywood-studios-restaurant-menus/",
    "Animal Kingdom": "https://allears.net/dining/animal-kingdom-restaurant-menus/",
    "Disney Springs": "https://allears.net/dining/disney-springs-restaurant-menus/",
}
LIST_ITEM_RE = re.compile(r"^(.+?)(?:\s*[-–]\s*\$?(\d+(?:\.\d+)?))?$")


@dataclass
class RestaurantLink:
    name: str
    url: str
    land: str = ""


def parse_restaurant_index(html: str) -> List[RestaurantLink]:
    soup = BeautifulSoup(html, "html.parser")
    content = soup.select_one("article .entry-content") or soup
    links: List[RestaurantLink] = []
    seen = set()
    land = ""
    for el in content.find_all(["h2", "h3", "p", "ul"]):
        if el.name in ("h2", "h3"):
            text = clean_text(el.get_text())
            low = text.lower()
            if text and "menu" not in low and "restaurant" not in low:
                land = text
        for a in el.find_all("a"):
            href = a.get("href") or ""
            name = clean_text(a.get_text())
            if "allears.net" in href and "menu" in href and name and href not in seen:
                seen.add(href)
                links.append(RestaurantLink(name=name, url=href, land=land))
    return links


def parse_menu_page(html: str) -> List[ScrapedItem]:
    soup = BeautifulSoup(html, "html.parser")
    items: List[ScrapedItem] = []
    for row in soup.select("table tr"):
        cells = row.find_all("td")
        if not cells:
            continue
        name = clean_text(cells[0].get_text())
        if len(name) <= 2:
            continue
        description = clean_text(cells[1].get_text()) if len(cells) >= 2 else ""
        price = parse_price(cells[2].get_text()) if len(cells) >= 3 else None
        items.append(ScrapedItem(item_name=name, description=description, price=price, category=infer_category(name)))
    if items:
        return items
    for li in soup.select("article .entry-content ul li, article .entry-content ol li"):
        m = LIST_ITEM_RE.match(clean_text(li.get_text()))
        if not m:
            continue
        name = m.group(1).strip()
        if len(name) <= 2:
            continue
        price = float(m.group(2)) if m.group(2) else None
        items.append(ScrapedItem(item_name=name, price=price, category=infer_category(name)))
    return items


def scrape_park(park_name: str, index_url: str, fetch=fetch_page, errors: Optional[List[str]] = None) -> List[ScrapedRestaurant]:
    logging.info("Scraping %s...", park_name)
    links = parse_restaurant_index(fetch(index_url))
    logging.info("  Found %d restaurants", len(links))
    restaurants = []
    for link in links:
        try:
            jitter()
            items = parse_menu_page(fetch(link.url))
        except Exception as e:
            msg = f"Error scraping {link.name}: {e}"
            logging.warning("    %s", msg)
            if errors is not None:
                errors.append(msg)
            continue
        if not items:
            logging.info("    %s: no items found", link.name)
            continue
        restaurants.append(ScrapedRestaurant(source=SOURCE, park_name=park_name, restaurant_name=link.name, land_name=link.land, items=items, scraped_at=now_iso()))
        logging.info("    %s: %d items", link.name, len(items))
    return restaurants


def scrape(parks: Optional[dict] = None, fetch=fetch_page) -> ScrapeResult:
    result = ScrapeResult(source=SOURCE, scraped_at=now_iso())
    for park_name, url in (parks or PARK_URLS).items():
        try:
            result.restaurants.extend(scrape_park(park_name, url, fetch=fetch, errors=result.errors))
        except Exception as e:
            msg = f"Error scraping {park_name}: {e}"
            logging.error(msg)
            result.errors.append(msg)
    return result
