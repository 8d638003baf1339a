"""Universal Orlando official menus.

The dining CMS serves each menu URL as JSON in one of two layouts:

* Epic Universe pages: ``sections.EmbeddedValues[].items.EmbeddedValues[]``
  with ``heading``/``description`` fields, found anywhere in the document.
* Older parks: ``ComponentPresentations[]`` whose component schema is
  "K2 Restaurant Menu", walking ``MenuDetails`` -> ``DishDetails`` with
  ``Title``/``Description``/``Price`` fields.

Every CMS field wraps its value as ``{"Values": [...]}``. Anything that is not
JSON is parsed as an HTML menu page instead.
"""
import json
import logging
import re
from typing import Dict, List, Optional

from bs4 import BeautifulSoup

from ..models import ScrapedItem, ScrapedRestaurant, ScrapeResult
from ..text import infer_category
from .common import clean_text, dedupe_by_name, fetch_page, jitter, now_iso, parse_price

SOURCE = "universal"
BASE = "https://www.universalorlando.com/webdata/k2/en/us/things-to-do/dining"
HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Accept": "application/json, text/html, */*",
    "Accept-Language": "en-US,en;q=0.9",
    "Cache-Control": "no-cache",
}
K2_SCHEMA = "K2 Restaurant Menu"
TAG_RE = re.compile(r"<[^>]*>")

RESTAURANT_MENUS: Dict[str, dict] = {
    "Antojitos Authentic Mexican Food": {"park": "Universal CityWalk", "slugs": ["antojitos-authentic-mexican-food/menu", "antojitos-authentic-mexican-food/kids-menu", "antojitos-authentic-mexican-food/dessert-menu"]},
    "Bend the Bao": {"park": "Universal CityWalk", "slugs": ["bend-the-bao/all-day-menu"]},
    "Bigfire": {"park": "Universal CityWalk", "slugs": ["bigfire/menu", "bigfire/kids-menu", "bigfire/desserts-menu"]},
    "Blondie's": {"park": "Islands of Adventure", "slugs": ["blondies/menu"]},
    "Bumblebee Man's Taco Truck": {"park": "Universal Studios Florida", "slugs": ["bumblebee-mans-taco-truck/menu"]},
    "Cafe 4": {"park": "Islands of Adventure", "slugs": ["cafe-4/menu"]},
    "Captain America Diner": {"park": "Islands of Adventure", "slugs": ["captain-america-diner/menu"]},
    "Circus McGurkus Cafe Stoo-pendous": {"park": "Islands of Adventure", "slugs": ["circus-mcgurkus-cafe-stoo-pendous/menu"]},
    "Comic Strip Cafe": {"park": "Islands of Adventure", "slugs": ["comic-strip-cafe/menu"]},
    "Confisco Grille": {"park": "Islands of Adventure", "slugs": ["confisco-grille/menu", "confisco-grille/kids_menu", "confisco-grille/dessert_menu"]},
    "Finnegan's Bar & Grill": {"park": "Universal Studios Florida", "slugs": ["finnegans-bar-grill/menu", "finnegans-bar-grill/kids-menu", "finnegans-bar-grill/dessert-menu"]},
    "Florean Fortescue's Ice-Cream Parlour": {"park": "Universal Studios Florida", "slugs": ["florean-fortescues-ice-cream-parlour/menu"]},
    "Green Eggs and Ham Cafe": {"park": "Islands of Adventure", "slugs": ["green-eggs-and-ham-cafe/menu"]},
    "Krusty Burger": {"park": "Universal Studios Florida", "slugs": ["krusty-burger/menu"]},
    "Leaky Cauldron": {"park": "Universal Studios Florida", "slugs": ["leaky-cauldron/menu", "leaky-cauldron/breakfast-menu"]},
    "Lombard's Seafood Grille": {"park": "Universal Studios Florida", "slugs": ["lombards-seafood-grille/menu", "lombards-seafood-grille/kids-menu", "lombards-seafood-grille/dessert-menu"]},
    "Louie's Italian Restaurant": {"park": "Universal Studios Florida", "slugs": ["louies-italian-restaurant/menu"]},
    "Mel's Drive-In": {"park": "Universal Studios Florida", "slugs": ["mels-drive-in/menu"]},
    "Three Broomsticks": {"park": "Islands of Adventure", "slugs": ["three-broomsticks/menu", "three-broomsticks/breakfast-menu"]},
    "Thunder Falls Terrace": {"park": "Islands of Adventure", "slugs": ["thunder-falls-terrace/menu"]},
    "Pizza Moon": {"park": "Universal Epic Universe", "slugs": ["pizza-moon/menu"]},
    "Meteor Astropub": {"park": "Universal Epic Universe", "slugs": ["meteor-astropub/menu"]},
    "Frosty Moon": {"park": "Universal Epic Universe", "slugs": ["frosty-moon/menu"]},
}


def menu_urls(entry: dict) -> List[str]:
    return [f"{BASE}/{slug}.html" for slug in entry["slugs"]]


def _value(field) -> Optional[str]:
    if isinstance(field, dict):
        values = field.get("Values")
        if isinstance(values, list) and values:
            return values[0]
    return None


def _keep(name: Optional[str]) -> bool:
    return bool(name) and "allergen note" not in name.lower()


def _clean_description(desc: Optional[str]) -> str:
    if not desc:
        return ""
    return clean_text(TAG_RE.sub("", desc.replace("&amp;", "&")))


def _epic_items(obj, out: List[ScrapedItem]):
    if isinstance(obj, list):
        for v in obj:
            _epic_items(v, out)
        return
    if not isinstance(obj, dict):
        return
    sections = obj.get("sections")
    if isinstance(sections, dict) and isinstance(sections.get("EmbeddedValues"), list):
        for section in sections["EmbeddedValues"]:
            entries = (section.get("items") or {}).get("EmbeddedValues") if isinstance(section, dict) else None
            for entry in entries or []:
                name = _value(entry.get("heading"))
                if _keep(name):
                    out.append(ScrapedItem(item_name=name.strip(), description=_clean_description(_value(entry.get("description"))), category=infer_category(name)))
    for v in obj.values():
        _epic_items(v, out)


def _k2_items(presentations, out: List[ScrapedItem]):
    for pres in presentations or []:
        component = (pres or {}).get("Component") or {}
        if (component.get("Schema") or {}).get("Title") != K2_SCHEMA:
            continue
        menu_details = (component.get("Fields") or {}).get("MenuDetails") or {}
        for section in menu_details.get("EmbeddedValues") or []:
            dishes = (section.get("DishDetails") or {}).get("EmbeddedValues") or []
            for dish in dishes:
                name = _value(dish.get("Title"))
                if not _keep(name):
                    continue
                desc = _value(dish.get("Description")) or _value(dish.get("ShortDescription"))
                out.append(ScrapedItem(item_name=name.strip(), description=_clean_description(desc), price=parse_price(_value(dish.get("Price"))), category=infer_category(name)))


def parse_menu_html(html: str) -> List[ScrapedItem]:
    soup = BeautifulSoup(html, "html.parser")
    items: List[ScrapedItem] = []
    for card in soup.select(".menu-item, .menu-card, [class*='menu-item']"):
        name_el = card.select_one(".item-name, .menu-item-name, h3, h4, .title")
        name = clean_text(name_el.get_text()) if name_el else ""
        if len(name) <= 2:
            continue
        desc_el = card.select_one(".item-description, .menu-item-description, .description, p")
        price_el = card.select_one(".item-price, .menu-item-price, .price")
        items.append(ScrapedItem(
            item_name=name,
            description=clean_text(desc_el.get_text()) if desc_el else "",
            price=parse_price(price_el.get_text()) if price_el else None,
            category=infer_category(name),
        ))
    if not items:
        for row in soup.select("table tr, .menu-row"):
            cells = row.find_all("td")
            if not cells:
                continue
            name = clean_text(cells[0].get_text())
            if len(name) <= 2 or "price" in name.lower():
                continue
            items.append(ScrapedItem(
                item_name=name,
                description=clean_text(cells[1].get_text()) if len(cells) >= 2 else "",
                price=parse_price(cells[-1].get_text()) if len(cells) >= 2 else None,
                category=infer_category(name),
            ))
    return dedupe_by_name(items)


def parse_menu(content: str) -> List[ScrapedItem]:
    try:
        data = json.loads(content)
    except ValueError:
        return parse_menu_html(content)
    items: List[ScrapedItem] = []
    _epic_items(data, items)
    if not items and isinstance(data, dict):
        _k2_items(data.get("ComponentPresentations"), items)
    return dedupe_by_name(items)


def scrape_restaurant(name: str, park: str, urls: List[str], fetch=fetch_page, errors: Optional[List[str]] = None) -> Optional[ScrapedRestaurant]:
    items: List[ScrapedItem] = []
    for url in urls:
        try:
            jitter(0.3, 0.6)
            items.extend(parse_menu(fetch(url, headers=HEADERS)))
        except Exception as e:
            msg = f"Error scraping {name}: {url}: {e}"
            logging.warning("    %s", msg)
            if errors is not None:
                errors.append(msg)
    items = dedupe_by_name(items)
    if not items:
        return None
    return ScrapedRestaurant(source=SOURCE, park_name=park, restaurant_name=name, items=items, scraped_at=now_iso())


def scrape(menus: Optional[Dict[str, dict]] = None, fetch=fetch_page) -> ScrapeResult:
    menus = menus or RESTAURANT_MENUS
    result = ScrapeResult(source=SOURCE, scraped_at=now_iso())
    logging.info("Scraping %d Universal restaurants...", len(menus))
    for name, entry in menus.items():
        logging.info("  %s (%s)...", name, entry["park"])
        try:
            restaurant = scrape_restaurant(name, entry["park"], menu_urls(entry), fetch=fetch, errors=result.errors)
        except Exception as e:
            msg = f"Error scraping {name}: {e}"
            logging.error(msg)
            result.errors.append(msg)
            continue
        if restaurant:
            result.restaurants.append(restaurant)
            logging.info("    %d items", len(restaurant.items))
        else:
            logging.info("    No items found")
    return result
