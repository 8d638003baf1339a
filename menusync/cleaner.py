"""Remove duplicate menu items, non-food rows and duplicate park rows."""
import argparse
import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from . import config, db

ITEM_SELECT = "id, name, restaurant_id, created_at, restaurant:restaurants(name, park:parks(name))"

# Known name variants mapped to the canonical name they merge into
NAME_ALIASES = {
    "hollywood studios": "disney's hollywood studios",
    "magic kingdom": "magic kingdom park",
    "universal volcano bay": "universal's volcano bay",
}

# Bottled water and merchandise that show up on menus
REMOVAL_PATTERNS = [re.compile(p, re.I) for p in (
    r"^water$",
    r"^ice water$",
    r"bottled water",
    r"sparkling water",
    r"mineral water",
    r"spring water",
    r"cup of water",
    r"small water",
    r"^h2o",
    r"^evian",
    r"^perrier",
    r"^dasani",
    r"^aquafina",
    r"^smart ?water",
    r"^fiji water",
    r"^gillywater",
    r"san benedetto.*water",
    r"topo chico",
    r"\bponcho\b",
    r"novelty straw",
    r"souvenir.*straw",
    r"^glow cube$",
)]
EXACT_REMOVALS = {
    "poncho adult",
    "poncho child",
    "small water",
    "gillywater",
    "h2o+ premium water",
    "san benedetto water",
    "italian mineral water",
    "evian natural spring water",
    "perrier sparkling mineral water",
    "perrier water",
    "topo chico",
    "courtesy cup of water",
}


@dataclass
class ItemDuplicates:
    keep: dict
    remove: List[dict] = field(default_factory=list)


@dataclass
class ParkDuplicates:
    name: str
    canonical: dict
    remove: List[dict] = field(default_factory=list)
    restaurant_ids: Dict[str, List[str]] = field(default_factory=dict)


def find_duplicate_items(items: List[dict]) -> List[ItemDuplicates]:
    groups: Dict[tuple, List[dict]] = {}
    seen = set()
    for it in items:
        if it["id"] in seen:
            continue
        seen.add(it["id"])
        key = (it.get("restaurant_id"), (it.get("name") or "").lower().strip())
        groups.setdefault(key, []).append(it)
    out = []
    for rows in groups.values():
        if len(rows) < 2:
            continue
        rows = sorted(rows, key=lambda r: r.get("created_at") or "")
        out.append(ItemDuplicates(keep=rows[0], remove=rows[1:]))
    return out


def is_non_food(name: str) -> bool:
    name = (name or "").strip()
    if name.lower() in EXACT_REMOVALS:
        return True
    return any(rx.search(name) for rx in REMOVAL_PATTERNS)


def find_non_food(items: List[dict], skip_ids=()) -> List[dict]:
    skip = set(skip_ids)
    seen = set()
    out = []
    for it in items:
        if it["id"] in skip or it["id"] in seen:
            continue
        seen.add(it["id"])
        if is_non_food(it.get("name")):
            out.append(it)
    return out


def _park_of(row: dict) -> Tuple[str, str]:
    restaurant = row.get("restaurant") or {}
    if isinstance(restaurant, list):
        restaurant = restaurant[0] if restaurant else {}
    park = restaurant.get("park") or {}
    if isinstance(park, list):
        park = park[0] if park else {}
    return park.get("name") or "Unknown", restaurant.get("name") or "?"


def remove_non_food(sb, rows: List[dict]) -> Tuple[int, int]:
    deleted = failed = 0
    for row in rows:
        try:
            db.delete_in(sb, "nutritional_data", "menu_item_id", [row["id"]])
            db.delete_in(sb, "allergens", "menu_item_id", [row["id"]])
            db.delete_in(sb, "menu_items", "id", [row["id"]])
            deleted += 1
        except db.CatalogWriteError as e:
            logging.error("  Error deleting %s: %s", row.get("name"), e)
            failed += 1
    return deleted, failed


def park_key(name: str) -> str:
    lower = (name or "").lower().strip()
    return NAME_ALIASES.get(lower, lower)


def find_duplicate_parks(parks: List[dict], restaurants: List[dict]) -> List[ParkDuplicates]:
    by_park: Dict[str, List[str]] = {}
    for r in restaurants:
        by_park.setdefault(r["park_id"], []).append(r["id"])
    groups: Dict[str, List[dict]] = {}
    for p in parks:
        groups.setdefault(park_key(p["name"]), []).append(p)
    out = []
    for name, rows in groups.items():
        if len(rows) < 2:
            continue
        rows = sorted(rows, key=lambda p: (-len(by_park.get(p["id"], [])), p.get("created_at") or ""))
        out.append(ParkDuplicates(
            name=name,
            canonical=rows[0],
            remove=rows[1:],
            restaurant_ids={p["id"]: by_park.get(p["id"], []) for p in rows[1:]},
        ))
    return out


def remove_items(sb, groups: List[ItemDuplicates]) -> int:
    ids = [r["id"] for g in groups for r in g.remove]
    for start in range(0, len(ids), config.INSERT_BATCH):
        chunk = ids[start:start + config.INSERT_BATCH]
        db.delete_in(sb, "nutritional_data", "menu_item_id", chunk)
        db.delete_in(sb, "allergens", "menu_item_id", chunk)
        db.delete_in(sb, "menu_items", "id", chunk)
    return len(ids)


def collapse_parks(sb, groups: List[ParkDuplicates]) -> Counter:
    stats = Counter()
    for g in groups:
        for dup in g.remove:
            moved = g.restaurant_ids.get(dup["id"], [])
            try:
                db.update_in(sb, "restaurants", "id", moved, {"park_id": g.canonical["id"]})
                stats["reassigned"] += len(moved)
                db.delete_in(sb, "parks", "id", [dup["id"]])
                stats["deleted"] += 1
            except db.CatalogWriteError as e:
                logging.error("  Error collapsing %s into %s: %s", dup["id"], g.canonical["id"], e)
                stats["failed"] += 1
    return stats


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Clean up duplicate menu items, non-food items and duplicate parks")
    p.add_argument("--apply", action="store_true", help="Delete rows (default is a dry run)")
    p.add_argument("--log", default=config.LOG_LEVEL)
    return p.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    config.configure_logging(args.log)
    sb = db.get_client()

    items = db.fetch_all(sb, "menu_items", ITEM_SELECT)
    item_groups = find_duplicate_items(items)
    logging.info("Found %d duplicate item groups (%d rows to remove)", len(item_groups), sum(len(g.remove) for g in item_groups))
    for g in item_groups[:20]:
        logging.info('  "%s" keep %s, remove %s', g.keep["name"], g.keep["id"], ", ".join(r["id"] for r in g.remove))

    non_food = find_non_food(items, skip_ids=[r["id"] for g in item_groups for r in g.remove])
    logging.info("Found %d non-food items", len(non_food))
    by_park: Dict[str, List[str]] = {}
    for row in non_food:
        park, restaurant = _park_of(row)
        by_park.setdefault(park, []).append(f"{row['name']} @ {restaurant}")
    for park in sorted(by_park):
        logging.info("  %s:", park)
        for line in by_park[park]:
            logging.info("    - %s", line)

    parks = db.fetch_all(sb, "parks", "id, name, created_at")
    restaurants = db.fetch_all(sb, "restaurants", "id, park_id")
    park_groups = find_duplicate_parks(parks, restaurants)
    logging.info("Found %d duplicate park groups", len(park_groups))
    for g in park_groups:
        logging.info('  "%s" keeping "%s" %s, removing %d', g.name, g.canonical["name"], g.canonical["id"], len(g.remove))

    if not args.apply:
        logging.info("Dry run. Re-run with --apply to delete.")
        return
    removed = remove_items(sb, item_groups)
    deleted, failed = remove_non_food(sb, non_food)
    stats = collapse_parks(sb, park_groups)
    logging.info("Deleted %d duplicate items", removed)
    logging.info("Deleted %d non-food items, %d errors", deleted, failed)
    logging.info("Restaurants reassigned: %d, parks deleted: %d, failed: %d", stats["reassigned"], stats["deleted"], stats["failed"])


if __name__ == "__main__":
    main()
