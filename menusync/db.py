import logging
import time
from typing import Dict, List, Optional

from postgrest.exceptions import APIError
from supabase import Client, create_client

from . import config
from .models import MenuItem, Park, Restaurant

CATALOG_SELECT = (
    "id, name, restaurant_id, description, price, category, is_fried, is_vegetarian, photo_url, created_at, "
    "restaurant:restaurants(name, park:parks(name)), nutritional_data(*)"
)

_clients: Dict[str, Client] = {}


class CatalogWriteError(RuntimeError):
    """A PostgREST insert/update/delete was rejected."""


def get_client(read_only: bool = False) -> Client:
    key_name = "SUPABASE_ANON_KEY" if read_only else "SUPABASE_SERVICE_ROLE_KEY"
    key = config.SUPABASE_ANON_KEY if read_only else config.SUPABASE_SERVICE_ROLE_KEY
    if key_name in _clients:
        return _clients[key_name]
    if not config.SUPABASE_URL or not key:
        raise RuntimeError(f"Missing SUPABASE_URL or {key_name}")
    _clients[key_name] = create_client(config.SUPABASE_URL, key)
    return _clients[key_name]


def _retry(fn, tries=3, base_sleep=0.5):
    last = None
    for i in range(max(1, tries)):
        try:
            return fn()
        except Exception as e:
            last = e
            if i < tries - 1:
                logging.warning("Supabase call failed (attempt %d/%d): %s", i + 1, tries, e)
                time.sleep(base_sleep * (2 ** i))
    raise last


def fetch_all(sb: Client, table: str, select: str = "*", page_size: int = None, **filters) -> List[dict]:
    page_size = page_size or config.PAGE_SIZE
    rows: List[dict] = []
    offset = 0
    while True:
        q = sb.table(table).select(select)
        for col, value in filters.items():
            q = q.eq(col, value)
        # offset paging needs a stable order
        q = q.order("id").range(offset, offset + page_size - 1)
        res = _retry(q.execute)
        batch = res.data or []
        rows.extend(batch)
        if len(batch) < page_size:
            break
        offset += page_size
    return rows


def _write(query, what: str):
    try:
        return query.execute()
    except APIError as e:
        raise CatalogWriteError(f"{what}: {e.message or e}") from e


class Catalog:
    """Snapshot of parks, restaurants and menu items loaded once per job."""

    def __init__(self, parks: List[Park], restaurants: List[Restaurant], items: List[MenuItem]):
        self.parks = parks
        self.restaurants = restaurants
        self.items = items
        self._by_restaurant: Dict[str, List[MenuItem]] = {}
        for it in items:
            self._by_restaurant.setdefault(it.restaurant_id, []).append(it)

    def parks_like(self, park_name: str) -> List[Park]:
        needle = (park_name or "").strip().lower()
        if not needle:
            return []
        return [p for p in self.parks if needle in p.name.lower()]

    def restaurants_in(self, park_ids) -> List[Restaurant]:
        wanted = set(park_ids)
        return [r for r in self.restaurants if r.park_id in wanted]

    def items_in(self, restaurant_id: str) -> List[MenuItem]:
        return self._by_restaurant.get(restaurant_id, [])

    def with_nutrition(self) -> List[MenuItem]:
        return [it for it in self.items if it.nutrition and it.nutrition.calories]


def load_catalog(sb: Client) -> Catalog:
    parks = [Park.from_row(r) for r in fetch_all(sb, "parks", "id, name, location, timezone, created_at")]
    restaurants = [Restaurant.from_row(r) for r in fetch_all(sb, "restaurants", "id, park_id, name, land")]
    items = [MenuItem.from_row(r) for r in fetch_all(sb, "menu_items", CATALOG_SELECT, page_size=500)]
    logging.info("Loaded catalog: %d parks, %d restaurants, %d menu items", len(parks), len(restaurants), len(items))
    return Catalog(parks, restaurants, items)


def insert_row(sb: Client, table: str, row: dict) -> dict:
    res = _write(sb.table(table).insert(row), f"insert into {table}")
    data = res.data or []
    if not data:
        raise CatalogWriteError(f"insert into {table} returned no row")
    return data[0]


def insert_many(sb: Client, table: str, rows: List[dict], batch: int = None) -> int:
    batch = batch or config.INSERT_BATCH
    inserted = 0
    for i in range(0, len(rows), batch):
        chunk = rows[i:i + batch]
        try:
            _write(sb.table(table).insert(chunk), f"insert into {table}")
            inserted += len(chunk)
        except CatalogWriteError as e:
            logging.error("Insert error at batch %d of %s: %s", i // batch, table, e)
    return inserted


def update_row(sb: Client, table: str, row_id: str, updates: dict) -> None:
    _write(sb.table(table).update(updates).eq("id", row_id), f"update {table} {row_id}")


def update_in(sb: Client, table: str, column: str, values: List[str], updates: dict) -> None:
    if not values:
        return
    _write(sb.table(table).update(updates).in_(column, values), f"update {table}")


def delete_in(sb: Client, table: str, column: str, values: List[str]) -> None:
    if not values:
        return
    _write(sb.table(table).delete().in_(column, values), f"delete from {table}")


def find_one(sb: Client, table: str, select: str = "id", **filters) -> Optional[dict]:
    q = sb.table(table).select(select)
    for col, value in filters.items():
        if col.endswith("__ilike"):
            q = q.ilike(col[: -len("__ilike")], value)
        else:
            q = q.eq(col, value)
    res = _retry(q.limit(1).execute)
    rows = res.data or []
    return rows[0] if rows else None
