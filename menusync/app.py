import time

from flask import Flask, jsonify, request

from . import config, db
from .models import CATEGORIES

app = Flask(__name__)

SEARCH_SELECT = (
    "id, name, description, price, category, is_fried, is_vegetarian, photo_url, "
    "restaurant:restaurants!inner(name, land, park:parks!inner(name)), nutritional_data{join}(*)"
)
NUTRITION_FIELDS = ("calories", "carbs", "fat", "protein", "sugar", "fiber", "sodium", "alcohol_grams", "confidence_score")
# sort name -> nutrition field, None for name order
SORTS = {
    "carbs_asc": "carbs",
    "calories_asc": "calories",
    "name_asc": None,
}

_sb = None

_cache = {
    "parks": {"ts": 0.0, "value": []},
}


def _get_sb():
    global _sb
    if _sb is not None:
        return _sb
    _sb = db.get_client(read_only=True)
    return _sb


def _retry(fn, tries=2, base_sleep=0.25):
    last = None
    for i in range(max(1, tries)):
        try:
            return fn()
        except Exception as e:
            last = e
            if i < tries - 1:
                time.sleep(base_sleep * (2 ** i))
    raise last


def _fetch_parks():
    sb = _get_sb()
    res = sb.table("parks").select("name").order("name").execute()
    values = []
    for r in res.data or []:
        v = (r.get("name") or "").strip()
        if v and v not in values:
            values.append(v)
    return values


def unique_parks(ttl_seconds=config.META_CACHE_SECONDS):
    now = time.time()
    bucket = _cache["parks"]
    if bucket["value"] and (now - bucket["ts"]) < ttl_seconds:
        return bucket["value"]

    values = _retry(_fetch_parks, tries=2, base_sleep=0.3)
    bucket["value"] = values
    bucket["ts"] = now
    return values


def _first(value):
    if isinstance(value, list):
        return value[0] if value else {}
    return value or {}


def flatten_row(row):
    restaurant = _first(row.pop("restaurant", None))
    park = _first(restaurant.get("park"))
    nutrition = _first(row.pop("nutritional_data", None))
    row["restaurant"] = restaurant.get("name")
    row["land"] = restaurant.get("land")
    row["park"] = park.get("name")
    for key in NUTRITION_FIELDS:
        row[key] = nutrition.get(key)
    return {k: ("" if v is None else v) for k, v in row.items()}


@app.get("/health")
def health():
    return "ok", 200


@app.get("/meta")
def meta():
    try:
        parks = unique_parks()
    except Exception:
        parks = []
    return jsonify({"categories": list(CATEGORIES), "parks": parks})


def _nutrition_order(field):
    # rows without nutrition go last
    return lambda item: (item[field] == "", item[field] if item[field] != "" else 0)


@app.get("/search")
def search():
    per_page = config.SEARCH_PER_PAGE
    try:
        sb = _get_sb()
    except Exception:
        return jsonify({"items": [], "page": 1, "per_page": per_page, "total": 0, "error": "backend_not_ready"}), 503

    page = request.args.get("page", default=1, type=int)
    if page < 1:
        page = 1
    offset = (page - 1) * per_page

    park = (request.args.get("park", type=str) or "").strip()
    restaurant = (request.args.get("restaurant", type=str) or "").strip()
    category = (request.args.get("category", type=str) or "").strip()
    max_carbs = request.args.get("max_carbs", type=float)
    max_calories = request.args.get("max_calories", type=float)
    name_contains = (request.args.get("q", type=str) or "").strip()
    sort = (request.args.get("sort", type=str) or "").strip()
    if sort not in SORTS:
        sort = "carbs_asc"

    # nutrition filters must drop parent rows, not just the embedded ones
    join = "!inner" if max_carbs is not None or max_calories is not None else ""

    def build(count=None):
        q = sb.table("menu_items").select(SEARCH_SELECT.format(join=join), count=count)
        if park:
            q = q.ilike("restaurant.park.name", f"%{park}%")
        if restaurant:
            q = q.ilike("restaurant.name", f"%{restaurant}%")
        if category:
            q = q.eq("category", category)
        if max_carbs is not None:
            q = q.lte("nutritional_data.carbs", max_carbs)
        if max_calories is not None:
            q = q.lte("nutritional_data.calories", max_calories)
        if name_contains:
            q = q.ilike("name", f"%{name_contains}%")
        return q.order("name").order("id")

    field = SORTS[sort]
    try:
        if field is None:
            res = _retry(build(count="exact").range(offset, offset + per_page - 1).execute, tries=2, base_sleep=0.25)
            rows = res.data or []
            items = [flatten_row(dict(row)) for row in rows]
            total = res.count or len(rows)
        else:
            # nutritional_data is to-many, so PostgREST cannot order parents by it
            rows = []
            start = 0
            while True:
                res = _retry(build().range(start, start + config.PAGE_SIZE - 1).execute, tries=2, base_sleep=0.25)
                batch = res.data or []
                rows.extend(batch)
                if len(batch) < config.PAGE_SIZE:
                    break
                start += config.PAGE_SIZE
            items = sorted((flatten_row(dict(row)) for row in rows), key=_nutrition_order(field))
            total = len(items)
            items = items[offset:offset + per_page]
    except Exception:
        return jsonify({"items": [], "page": page, "per_page": per_page, "total": 0, "error": "query_failed"}), 502

    return jsonify({"items": items, "page": page, "per_page": per_page, "total": total})


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=5000, debug=False)
