from menusync import db
from menusync.merge import group_scraped, merge_group, merge_scraped_data
from menusync.models import MenuItem, Park, Restaurant, ScrapedItem, ScrapedRestaurant, ScrapeResult


def _result(source, park, restaurant, *items):
    return ScrapeResult(
        source=source,
        scraped_at="2026-01-01T00:00:00+00:00",
        restaurants=[ScrapedRestaurant(source=source, park_name=park, restaurant_name=restaurant, items=list(items))],
    )


def _entries(*pairs):
    return [
        {"source": source, "park_name": "Magic Kingdom", "restaurant_name": "Pecos Bill", "land_name": land, "item": item}
        for source, item, land in pairs
    ]


def test_group_scraped_normalizes_keys():
    results = [
        _result("allears", "Magic Kingdom", "Pecos Bill", ScrapedItem(item_name="Fajita Platter")),
        _result("dfb", "magic kingdom", "Pecos Bill!", ScrapedItem(item_name="fajita  platter")),
    ]
    groups = group_scraped(results)
    assert list(groups) == ["magic kingdom|pecos bill|fajita platter"]
    assert [e["source"] for e in groups["magic kingdom|pecos bill|fajita platter"]] == ["allears", "dfb"]


def test_merge_group_prefers_higher_priority_and_fills_gaps():
    conflicts = []
    merged = merge_group(_entries(
        ("dfb", ScrapedItem(item_name="fajita platter", description="Beef or chicken", photo_url="https://img/1.jpg"), "Frontierland"),
        ("allears", ScrapedItem(item_name="Fajita Platter", price=12.0, category="entree"), ""),
    ), conflicts)
    assert merged.item_name == "Fajita Platter"
    assert merged.sources == ["allears", "dfb"]
    assert merged.description == "Beef or chicken"
    assert merged.photo_url == "https://img/1.jpg"
    assert merged.land_name == "Frontierland"
    assert merged.price == 12.0
    assert merged.confidence == 80
    assert merged.price_conflict is None
    assert conflicts == []


def test_merge_group_flags_price_conflict():
    conflicts = []
    merged = merge_group(_entries(
        ("allears", ScrapedItem(item_name="Churro", price=10.0), ""),
        ("dfb", ScrapedItem(item_name="Churro", price=12.0), ""),
    ), conflicts)
    assert merged.price == 10.0
    assert [p["price"] for p in merged.price_conflict] == [10.0, 12.0]
    assert conflicts == [{"item": "Pecos Bill - Churro", "issue": "Price conflict: allears: $10 vs dfb: $12"}]


def test_merge_group_small_price_gap_is_not_a_conflict():
    conflicts = []
    merged = merge_group(_entries(
        ("allears", ScrapedItem(item_name="Churro", price=10.0), ""),
        ("dfb", ScrapedItem(item_name="Churro", price=11.0), ""),
    ), conflicts)
    assert merged.price_conflict is None and conflicts == []


def test_merge_group_unknown_source_confidence():
    merged = merge_group(_entries(("tiktok", ScrapedItem(item_name="Churro"), "")), [])
    assert merged.confidence == 50


def _catalog():
    parks = [Park(id="p1", name="Magic Kingdom Park"), Park(id="p2", name="EPCOT")]
    restaurants = [
        Restaurant(id="r1", park_id="p1", name="Pecos Bill Tall Tale Inn and Cafe"),
        Restaurant(id="r2", park_id="p2", name="Sunshine Seasons"),
    ]
    items = [
        MenuItem(id="m1", name="Cheeseburger", restaurant_id="r1"),
        MenuItem(id="m2", name="Taco Salad", restaurant_id="r1"),
        MenuItem(id="m3", name="Rotisserie Chicken", restaurant_id="r2"),
    ]
    return db.Catalog(parks, restaurants, items)


def test_merge_scraped_data_diffs_against_catalog():
    results = [
        _result(
            "allears", "Magic Kingdom", "Pecos Bill Tall Tale Inn & Cafe",
            ScrapedItem(item_name="Cheesburger", price=13.49),
            ScrapedItem(item_name="Fajita Platter", price=15.49),
        ),
        _result("universal", "Islands of Adventure", "Blondie's", ScrapedItem(item_name="Italian Sub")),
    ]
    result = merge_scraped_data(results, _catalog())

    [updated] = result.updated_items
    assert updated.item_name == "Cheesburger"
    assert updated.existing_id == "m1" and updated.is_new is False

    assert sorted(i.item_name for i in result.new_items) == ["Fajita Platter", "Italian Sub"]
    assert all(i.is_new for i in result.new_items)

    # only restaurants seen in this scrape can report missing items
    assert [(r["item_name"], r["menu_item_id"]) for r in result.potentially_removed] == [("Taco Salad", "m2")]
    assert result.potentially_removed[0]["restaurant_name"] == "Pecos Bill Tall Tale Inn and Cafe"
