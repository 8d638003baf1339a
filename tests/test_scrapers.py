import json
from types import SimpleNamespace

import pytest
from selenium.common.exceptions import WebDriverException

from menusync.models import ScrapeResult
from menusync.scrapers import allears, browser, dfb, get_scraper, universal
from menusync.scrapers.common import load_scrape_results, parse_price, save_scrape_result

ALLEARS_INDEX = """
<html><body><article><div class="entry-content">
  <h2>Magic Kingdom Restaurant Menus</h2>
  <h3>Frontierland</h3>
  <ul>
    <li><a href="https://allears.net/dining/menu/show/pecos-bill/">Pecos Bill Tall Tale Inn and Cafe</a></li>
    <li><a href="https://allears.net/dining/menu/show/pecos-bill/">Pecos Bill (again)</a></li>
  </ul>
  <h3>Tomorrowland</h3>
  <p><a href="https://allears.net/dining/menu/show/cosmic-rays/">Cosmic Ray's Starlight Cafe</a>
     <a href="https://example.com/other/">Elsewhere</a></p>
</div></article></body></html>
"""

ALLEARS_TABLE_MENU = """
<table>
  <tr><th>Item</th><th>Description</th><th>Price</th></tr>
  <tr><td>Fajita Platter</td><td>Seasoned beef with peppers</td><td>$15.49</td></tr>
  <tr><td>Churro Sundae</td><td></td><td>$7.99</td></tr>
  <tr><td>--</td><td></td><td></td></tr>
</table>
"""

ALLEARS_LIST_MENU = """
<article><div class="entry-content"><ul>
  <li>Cheeseburger - $12.49</li>
  <li>Lemonade</li>
</ul></div></article>
"""


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    monkeypatch.setattr(allears, "jitter", lambda *a, **k: None)
    monkeypatch.setattr(universal, "jitter", lambda *a, **k: None)
    monkeypatch.setattr(dfb, "jitter", lambda *a, **k: None)


def test_parse_price():
    assert parse_price("$12.99") == 12.99
    assert parse_price("Price: 1,299") == 1299.0
    assert parse_price("Market price") is None
    assert parse_price(None) is None


def test_allears_index_tracks_lands_and_dedupes_links():
    links = allears.parse_restaurant_index(ALLEARS_INDEX)
    assert [(l.name, l.land) for l in links] == [
        ("Pecos Bill Tall Tale Inn and Cafe", "Frontierland"),
        ("Cosmic Ray's Starlight Cafe", "Tomorrowland"),
    ]


def test_allears_menu_table_rows():
    items = allears.parse_menu_page(ALLEARS_TABLE_MENU)
    assert [(i.item_name, i.price) for i in items] == [("Fajita Platter", 15.49), ("Churro Sundae", 7.99)]
    assert items[0].description == "Seasoned beef with peppers"
    assert items[1].category == "dessert"


def test_allears_menu_list_fallback():
    items = allears.parse_menu_page(ALLEARS_LIST_MENU)
    assert [(i.item_name, i.price, i.category) for i in items] == [
        ("Cheeseburger", 12.49, None),
        ("Lemonade", None, "beverage"),
    ]


def test_allears_scrape_collects_park_errors():
    pages = {
        "https://index/mk": ALLEARS_INDEX,
        "https://allears.net/dining/menu/show/pecos-bill/": ALLEARS_TABLE_MENU,
        "https://allears.net/dining/menu/show/cosmic-rays/": ALLEARS_LIST_MENU,
    }

    def fetch(url, **kwargs):
        return pages[url]

    result = allears.scrape({"Magic Kingdom": "https://index/mk", "EPCOT": "https://index/missing"}, fetch=fetch)
    assert result.source == "allears"
    assert [r.restaurant_name for r in result.restaurants] == ["Pecos Bill Tall Tale Inn and Cafe", "Cosmic Ray's Starlight Cafe"]
    assert result.restaurants[0].land_name == "Frontierland"
    assert result.item_count == 4
    assert len(result.errors) == 1 and "EPCOT" in result.errors[0]


def test_allears_scrape_records_failed_menu_pages():
    def fetch(url, **kwargs):
        if url == "https://index/mk":
            return ALLEARS_INDEX
        if "cosmic-rays" in url:
            raise RuntimeError("HTTP 503")
        return ALLEARS_TABLE_MENU

    result = allears.scrape({"Magic Kingdom": "https://index/mk"}, fetch=fetch)
    assert [r.restaurant_name for r in result.restaurants] == ["Pecos Bill Tall Tale Inn and Cafe"]
    assert result.errors == ["Error scraping Cosmic Ray's Starlight Cafe: HTTP 503"]


def test_universal_scrape_records_failed_fetches():
    def fetch(url, headers=None):
        raise RuntimeError("HTTP 503")

    menus = {"Krusty Burger": {"park": "Universal Studios Florida", "slugs": ["krusty-burger/menu"]}}
    result = universal.scrape(menus, fetch=fetch)
    assert result.restaurants == []
    assert len(result.errors) == 1
    assert result.errors[0].startswith("Error scraping Krusty Burger: ")
    assert result.errors[0].endswith("HTTP 503")


def _v(value):
    return {"Values": [value]}


EPIC_JSON = {
    "page": {
        "sections": {"EmbeddedValues": [
            {"items": {"EmbeddedValues": [
                {"heading": _v("Moon Pie Pizza"), "description": _v("Pepperoni &amp; <b>mozzarella</b>")},
                {"heading": _v("Allergen Note"), "description": _v("Ask a team member")},
                {"heading": _v("moon pie pizza"), "description": _v("duplicate")},
            ]}},
        ]},
    },
}

K2_JSON = {
    "ComponentPresentations": [
        {"Component": {"Schema": {"Title": "Something Else"}}},
        {"Component": {
            "Schema": {"Title": "K2 Restaurant Menu"},
            "Fields": {"MenuDetails": {"EmbeddedValues": [
                {"DishDetails": {"EmbeddedValues": [
                    {"Title": _v("Krusty Burger"), "ShortDescription": _v("Quarter-pound burger"), "Price": _v("$14.99")},
                    {"Title": _v("Chocolate Shake"), "Description": _v("Hand-spun"), "Price": _v("$7.49")},
                ]}},
            ]}},
        }},
    ],
}

UNIVERSAL_HTML = """
<div class="menu-item"><h3>Fried Green Tomatoes</h3><p>With remoulade</p><span class="price">$9.00</span></div>
<div class="menu-item"><h3>OK</h3></div>
"""


def test_universal_epic_layout():
    items = universal.parse_menu(json.dumps(EPIC_JSON))
    assert len(items) == 1
    assert items[0].item_name == "Moon Pie Pizza"
    assert items[0].description == "Pepperoni & mozzarella"


def test_universal_k2_layout():
    items = universal.parse_menu(json.dumps(K2_JSON))
    assert [(i.item_name, i.price, i.description) for i in items] == [
        ("Krusty Burger", 14.99, "Quarter-pound burger"),
        ("Chocolate Shake", 7.49, "Hand-spun"),
    ]
    assert items[1].category == "beverage"


def test_universal_html_fallback():
    items = universal.parse_menu(UNIVERSAL_HTML)
    assert [(i.item_name, i.description, i.price) for i in items] == [("Fried Green Tomatoes", "With remoulade", 9.0)]


def test_universal_scrape_uses_browser_headers_and_skips_empty():
    seen = []

    def fetch(url, headers=None):
        seen.append(headers)
        if "krusty" in url:
            return json.dumps(K2_JSON)
        return "{}"

    menus = {
        "Krusty Burger": {"park": "Universal Studios Florida", "slugs": ["krusty-burger/menu"]},
        "Empty Place": {"park": "Universal CityWalk", "slugs": ["empty/menu"]},
    }
    result = universal.scrape(menus, fetch=fetch)
    assert [r.restaurant_name for r in result.restaurants] == ["Krusty Burger"]
    assert result.restaurants[0].park_name == "Universal Studios Florida"
    assert all(h is universal.HEADERS for h in seen)


def test_dfb_filename_with_menu_marker():
    name = "2024-WDW-Magic-Kingdom-Frontierland-Pecos-Bill-Tall-Tale-Inn-and-Cafe-new-menu-Barbecue-Cheddar-Seasoned-Fries-700x525.jpg"
    assert dfb.parse_item_from_filename(name) == ("Barbecue Cheddar Seasoned Fries", "Pecos Bill Tall Tale Inn & Cafe")


def test_dfb_filename_fallback_and_non_food():
    assert dfb.parse_item_from_filename("DFB-Magic-Kingdom-Dole-Whip-Float.jpg") == ("Dole Whip Float", None)
    assert dfb.parse_item_from_filename("2024-WDW-Magic-Kingdom-Casey-Corner-exterior.jpg") is None
    assert dfb.parse_item_from_filename("short-name.jpg") is None


def test_dfb_extract_food_images():
    html = """
    <img src="https://www.disneyfoodblog.com/wp-content/uploads/2024/01/DFB-Magic-Kingdom-Dole-Whip-Float-700x525.jpg" alt="Dole  Whip">
    <img data-src="https://www.disneyfoodblog.com/wp-content/uploads/2024/01/DFB-Magic-Kingdom-Dole-Whip-Float.jpg">
    <img src="https://cdn.example.com/wp-content/uploads/DFB-Magic-Kingdom-Corn-Dog-Nuggets.jpg">
    """
    found = dfb.extract_food_images(html)
    assert len(found) == 1
    assert found[0]["item_name"] == "Dole Whip Float"
    assert found[0]["restaurant"] is None
    assert found[0]["description"] == "Dole Whip"


class FakeDriver:
    def __init__(self):
        self.quit_called = False

    def quit(self):
        self.quit_called = True


def test_dfb_scrape_restarts_driver_once_per_park():
    drivers = []

    def factory():
        drivers.append(FakeDriver())
        return drivers[-1]

    html = '<img src="https://www.disneyfoodblog.com/wp-content/uploads/x/2024-WDW-Magic-Kingdom-Caseys-Corner-new-menu-Corn-Dog-Nuggets.jpg">'
    calls = {"n": 0}

    def render(driver, url):
        calls["n"] += 1
        if calls["n"] == 1:
            raise WebDriverException("tab crashed")
        return html

    result = dfb.scrape({"Magic Kingdom": ["https://dfb/page"]}, driver_factory=factory, render=render)
    assert len(drivers) == 2
    assert all(d.quit_called for d in drivers)
    assert result.errors == []
    [restaurant] = result.restaurants
    assert restaurant.restaurant_name == "Caseys Corner"
    assert restaurant.items[0].item_name == "Corn Dog Nuggets"


def test_dfb_group_by_restaurant_defaults_to_various():
    rows = dfb.group_by_restaurant("EPCOT", [{"item_name": "Croissant", "restaurant": None, "photo_url": "u", "description": ""}])
    assert rows[0].restaurant_name == "Various"


def test_get_scraper_unknown_source():
    with pytest.raises(KeyError):
        get_scraper("yelp")


def test_save_and_load_scrape_results(tmp_path):
    result = ScrapeResult(source="allears", scraped_at="2026-01-01T00:00:00+00:00")
    result.restaurants = universal.scrape(
        {"Krusty Burger": {"park": "Universal Studios Florida", "slugs": ["krusty-burger/menu"]}},
        fetch=lambda url, headers=None: json.dumps(K2_JSON),
    ).restaurants
    path = save_scrape_result(result, str(tmp_path))
    assert path.startswith(str(tmp_path)) and "allears-" in path
    [loaded] = load_scrape_results(str(tmp_path))
    assert isinstance(loaded, ScrapeResult)
    assert loaded.restaurants[0].items[0].item_name == "Krusty Burger"
    assert loaded.restaurants[0].items[0].price == 14.99


def test_chrome_major_reads_first_available_binary(monkeypatch):
    calls = []

    def fake_run(cmd, **kwargs):
        calls.append(cmd[0])
        if cmd[0] == "google-chrome":
            raise FileNotFoundError(cmd[0])
        return SimpleNamespace(stdout="Chromium 128.0.6613.119 built on Debian\n")

    monkeypatch.setattr(browser.subprocess, "run", fake_run)
    assert browser.chrome_major() == 128
    assert calls == ["google-chrome", "chromium"]


def test_chrome_major_none_without_chrome(monkeypatch):
    def fake_run(cmd, **kwargs):
        raise FileNotFoundError(cmd[0])

    monkeypatch.setattr(browser.subprocess, "run", fake_run)
    assert browser.chrome_major() is None
