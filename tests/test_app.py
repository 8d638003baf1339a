import pytest

from menusync import app as app_module


@pytest.fixture
def client(monkeypatch, fake_sb):
    fake_sb.tables.update({
        "parks": [{"id": "p2", "name": "EPCOT"}, {"id": "p1", "name": "Magic Kingdom"}, {"id": "p3", "name": "EPCOT"}],
        "menu_items": [
            {
                "id": "m1", "name": "Cheeseburger", "description": None, "price": 12.49, "category": "entree",
                "restaurant": {"name": "Cosmic Ray's", "land": "Tomorrowland", "park": {"name": "Magic Kingdom"}},
                "nutritional_data": [{"calories": 900, "carbs": 60, "fat": 45, "protein": 40, "sugar": None}],
            },
            {
                "id": "m2", "name": "Dole Whip", "description": "Pineapple soft serve", "price": 6.49, "category": "dessert",
                "restaurant": {"name": "Aloha Isle", "land": None, "park": {"name": "Magic Kingdom"}},
                "nutritional_data": [],
            },
        ],
    })
    monkeypatch.setattr(app_module, "_get_sb", lambda: fake_sb)
    monkeypatch.setitem(app_module._cache, "parks", {"ts": 0.0, "value": []})
    return app_module.app.test_client()


def test_health(client):
    res = client.get("/health")
    assert res.status_code == 200 and res.data == b"ok"


def test_meta_lists_unique_parks_and_categories(client, fake_sb):
    body = client.get("/meta").get_json()
    assert body["parks"] == ["EPCOT", "Magic Kingdom"]
    assert body["categories"] == ["entree", "dessert", "beverage", "side", "snack"]
    client.get("/meta")
    assert len([q for q in fake_sb.queries if q.table == "parks"]) == 1


def test_search_flattens_rows(client):
    body = client.get("/search").get_json()
    assert body["total"] == 2 and body["page"] == 1 and body["per_page"] == 100
    burger = next(i for i in body["items"] if i["id"] == "m1")
    assert burger["restaurant"] == "Cosmic Ray's"
    assert burger["park"] == "Magic Kingdom"
    assert burger["land"] == "Tomorrowland"
    assert burger["carbs"] == 60
    assert burger["description"] == ""
    assert burger["sugar"] == ""
    whip = next(i for i in body["items"] if i["id"] == "m2")
    assert whip["calories"] == "" and whip["land"] == ""


def test_search_builds_filters_and_paging(client, fake_sb):
    client.get("/search?park=magic&category=dessert&max_carbs=40&q=whip&sort=name_asc&page=2")
    q = fake_sb.queries[-1]
    assert ("ilike", "restaurant.park.name", "%magic%") in q.filters
    assert ("eq", "category", "dessert") in q.filters
    assert ("lte", "nutritional_data.carbs", 40.0) in q.filters
    assert ("ilike", "name", "%whip%") in q.filters
    assert q.orders == [("name", False), ("id", False)]
    assert q.bounds == (100, 199)
    assert "nutritional_data!inner(*)" in q.columns


def _add_fries(fake_sb):
    fake_sb.tables["menu_items"].append({
        "id": "m3", "name": "Zucchini Fries", "description": "", "price": 7.0, "category": "side",
        "restaurant": {"name": "Casey's Corner", "land": "Main Street", "park": {"name": "Magic Kingdom"}},
        "nutritional_data": [{"calories": 1100, "carbs": 15, "fat": 20, "protein": 4, "sugar": 2}],
    })


def test_search_default_sort_is_carbs_with_missing_nutrition_last(client, fake_sb):
    _add_fries(fake_sb)
    body = client.get("/search").get_json()
    assert [i["id"] for i in body["items"]] == ["m3", "m1", "m2"]
    assert body["total"] == 3
    q = fake_sb.queries[-1]
    assert q.orders == [("name", False), ("id", False)]
    assert all("nutritional_data" not in col for col, _ in q.orders)
    assert "nutritional_data(*)" in q.columns


def test_search_sorts_by_calories(client, fake_sb):
    _add_fries(fake_sb)
    body = client.get("/search?sort=calories_asc").get_json()
    assert [i["id"] for i in body["items"]] == ["m1", "m3", "m2"]


def test_search_nutrition_sort_pages_after_sorting(client, fake_sb, monkeypatch):
    _add_fries(fake_sb)
    monkeypatch.setattr(app_module.config, "SEARCH_PER_PAGE", 2)
    body = client.get("/search?page=2").get_json()
    assert [i["id"] for i in body["items"]] == ["m2"]
    assert body["total"] == 3 and body["per_page"] == 2


def test_search_name_sort(client, fake_sb):
    _add_fries(fake_sb)
    body = client.get("/search?sort=name_asc").get_json()
    assert [i["id"] for i in body["items"]] == ["m1", "m2", "m3"]
    assert body["total"] == 3


def test_search_backend_not_ready(monkeypatch):
    def broken():
        raise RuntimeError("Missing SUPABASE_URL or SUPABASE_ANON_KEY")

    monkeypatch.setattr(app_module, "_get_sb", broken)
    res = app_module.app.test_client().get("/search")
    assert res.status_code == 503
    assert res.get_json()["error"] == "backend_not_ready"


def test_search_query_failed(client, fake_sb, monkeypatch):
    monkeypatch.setattr(app_module.time, "sleep", lambda s: None)
    fake_sb.raise_on.add("menu_items")
    res = client.get("/search?page=3")
    assert res.status_code == 502
    assert res.get_json() == {"items": [], "page": 3, "per_page": 100, "total": 0, "error": "query_failed"}
