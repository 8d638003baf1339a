"""Disney Food Blog: food photos whose filenames describe the dish.

Review pages are JS-rendered and lazy-load images, so each page is loaded in
Chrome, scrolled, and the rendered source is parsed. A filename such as
``2024-WDW-Magic-Kingdom-Frontierland-Pecos-Bill-Tall-Tale-Inn-and-Cafe-new-menu-Barbecue-Cheddar-Seasoned-Fries-700x525.jpg``
yields the item "Barbecue Cheddar Seasoned Fries" at "Pecos Bill Tall Tale Inn & Cafe".
"""
import logging
import re
import time
from typing import Dict, List, Optional, Tuple

from bs4 import BeautifulSoup
from selenium.common.exceptions import TimeoutException, WebDriverException

from .. import config
from ..models import ScrapedItem, ScrapedRestaurant, ScrapeResult
from .browser import new_driver, quit_driver
from .common import clean_text, jitter, now_iso

SOURCE = "dfb"
VARIOUS = "Various"
SITE = "https://www.disneyfoodblog.com"
PARK_PAGES: Dict[str, List[str]] = {
    "Magic Kingdom": [
        f"{SITE}/magic-kingdom-restaurants/",
        f"{SITE}/2023/12/10/everything-you-need-to-eat-in-magic-kingdom-in-2024/",
        f"{SITE}/sleepy-hollow-refreshments/",
        f"{SITE}/caseys-corner/",
        f"{SITE}/pecos-bill-tall-tale-inn-and-cafe/",
        f"{SITE}/cosmic-rays-starlight-cafe/",
    ],
    "EPCOT": [
        f"{SITE}/epcot-restaurants/",
        f"{SITE}/2023/12/12/everything-you-need-to-eat-in-epcot-in-2024/",
        f"{SITE}/les-halles-boulangerie-patisserie/",
        f"{SITE}/la-cantina-de-san-angel/",
        f"{SITE}/sunshine-seasons/",
    ],
    "Hollywood Studios": [
        f"{SITE}/hollywood-studios-restaurants/",
        f"{SITE}/docking-bay-7-food-and-cargo/",
        f"{SITE}/woodys-lunch-box/",
        f"{SITE}/backlot-express/",
    ],
    "Animal Kingdom": [
        f"{SITE}/animal-kingdom-restaurants/",
        f"{SITE}/satuli-canteen/",
        f"{SITE}/flame-tree-barbecue/",
        f"{SITE}/harambe-market/",
    ],
    "Disney Springs": [
        f"{SITE}/disney-springs-restaurants/",
        f"{SITE}/chicken-guy/",
        f"{SITE}/d-luxe-burger/",
        f"{SITE}/earl-of-sandwich/",
    ],
}

NON_FOOD_RE = re.compile(r"\b(exterior|interior|entrance|sign|signage|atmosphere|atmo|decor|seating|logo|wait-time|queue|character|meeting)\b")
SIZE_SUFFIX_RE = re.compile(r"-\d+x\d+(?=\.(?:jpe?g|png|webp)$)", re.I)
EXT_RE = re.compile(r"\.(?:jpe?g|png|webp)$", re.I)
RESTAURANT_WORDS = {"cafe", "restaurant", "inn", "tavern", "bakery", "bar", "grill", "kitchen", "canteen", "cantina", "house", "table", "terrace", "lounge", "stand", "cart", "market", "refreshments", "eatery", "corner"}
LOCATION_WORDS = {"wdw", "dlr", "magic", "kingdom", "epcot", "hollywood", "studios", "animal", "disney", "springs", "frontierland", "adventureland", "tomorrowland", "fantasyland", "liberty", "main", "street", "square", "usa"}
FILLER_WORDS = LOCATION_WORDS | {"new", "menu", "review", "dfb", "and", "the", "with"}


def _title(parts: List[str]) -> str:
    return " ".join(p[:1].upper() + p[1:].lower() for p in parts)


def parse_item_from_filename(filename: str) -> Optional[Tuple[str, Optional[str]]]:
    """Return ``(item_name, restaurant_or_None)`` or None for non-food images."""
    name = EXT_RE.sub("", SIZE_SUFFIX_RE.sub("", filename))
    parts = [p for p in name.split("-") if p]
    if len(parts) < 5 or NON_FOOD_RE.search(name.lower()):
        return None
    lower = [p.lower() for p in parts]

    marker = next((i for i, p in enumerate(lower) if p in ("menu", "new")), -1)
    if marker > 0:
        start = marker + 2 if lower[marker] == "new" and marker + 1 < len(lower) and lower[marker + 1] == "menu" else marker + 1
        item_parts = parts[start:]
        while item_parts and item_parts[-1].isdigit():
            item_parts.pop()
        item = _title(item_parts)
        if len(item) > 3:
            restaurant = None
            end = max((i for i in range(marker) if lower[i] in RESTAURANT_WORDS), default=-1)
            if end > 0:
                begin = next((i for i in range(end + 1) if lower[i] not in LOCATION_WORDS and not lower[i].isdigit()), end)
                if begin < end:
                    restaurant = re.sub(r"\s+And\s+", " & ", _title(parts[begin:end + 1]))
            return item, restaurant

    meaningful = [p for p in parts if len(p) > 2 and p.lower() not in FILLER_WORDS and not p.isdigit()]
    if len(meaningful) >= 2:
        item = _title(meaningful[-5:])
        if len(item) > 5:
            return item, None
    return None


def extract_food_images(html: str) -> List[dict]:
    soup = BeautifulSoup(html, "html.parser")
    found = []
    seen = set()
    for img in soup.find_all("img"):
        src = img.get("src") or img.get("data-src") or img.get("data-lazy-src") or ""
        if "wp-content/uploads" not in src or "disneyfoodblog.com" not in src:
            continue
        parsed = parse_item_from_filename(src.rsplit("/", 1)[-1].split("?", 1)[0])
        if not parsed:
            continue
        item, restaurant = parsed
        if item.lower() in seen:
            continue
        seen.add(item.lower())
        found.append({"item_name": item, "restaurant": restaurant, "photo_url": src, "description": clean_text(img.get("alt"))})
    return found


def load_rendered(driver, url: str) -> str:
    driver.get(url)
    time.sleep(2)
    for _ in range(10):
        driver.execute_script("window.scrollBy(0, 500);")
        time.sleep(0.2)
    driver.execute_script("window.scrollTo(0, 0);")
    time.sleep(1)
    return driver.page_source


def scrape_park(driver, park_name: str, urls: List[str], render=load_rendered) -> List[dict]:
    logging.info("Scraping %s...", park_name)
    items = []
    seen = set()
    for url in urls:
        logging.info("  %s", url)
        try:
            found = extract_food_images(render(driver, url))
        except (WebDriverException, TimeoutException):
            raise
        except Exception as e:
            logging.warning("  Error scraping %s: %s", url, e)
            continue
        logging.info("    Found %d food images", len(found))
        for it in found:
            if it["item_name"].lower() not in seen:
                seen.add(it["item_name"].lower())
                items.append(it)
        jitter(1.5, 2.5)
    return items


def group_by_restaurant(park_name: str, items: List[dict]) -> List[ScrapedRestaurant]:
    grouped: Dict[str, List[ScrapedItem]] = {}
    for it in items:
        grouped.setdefault(it["restaurant"] or VARIOUS, []).append(
            ScrapedItem(item_name=it["item_name"], description=it["description"], photo_url=it["photo_url"])
        )
    return [ScrapedRestaurant(source=SOURCE, park_name=park_name, restaurant_name=name, items=rows, scraped_at=now_iso()) for name, rows in grouped.items()]


def scrape(parks: Optional[Dict[str, List[str]]] = None, driver_factory=None, render=load_rendered) -> ScrapeResult:
    parks = parks or PARK_PAGES
    driver_factory = driver_factory or (lambda: new_driver(headless=config.HEADLESS))
    result = ScrapeResult(source=SOURCE, scraped_at=now_iso())
    driver = driver_factory()
    try:
        for park_name, urls in parks.items():
            try:
                try:
                    items = scrape_park(driver, park_name, urls, render=render)
                except (WebDriverException, TimeoutException) as e:
                    logging.warning("Driver error while scraping %s: %s", park_name, e)
                    quit_driver(driver)
                    driver = driver_factory()
                    items = scrape_park(driver, park_name, urls, render=render)
            except Exception as e:
                msg = f"Error scraping {park_name}: {e}"
                logging.error(msg)
                result.errors.append(msg)
                continue
            result.restaurants.extend(group_by_restaurant(park_name, items))
            logging.info("  Total unique items for %s: %d", park_name, len(items))
    finally:
        quit_driver(driver)
    return result
