"""Merge every scrape result into one de-duplicated list and diff it against the catalog."""
import argparse
import logging
import sys
from typing import Dict, List, Optional

from . import config, db
from .models import MergedItem, MergeResult, ScrapeResult
from .scrapers.common import load_scrape_results
from .store import dated_path, now_iso, write_json
from .text import best_match, normalize_name

SOURCE_PRIORITY = {
    "official": 100,
    "universal": 100,
    "allears": 80,
    "touringplans": 70,
    "dfb": 60,
    "yelp": 40,
}
UNKNOWN_SOURCE_CONFIDENCE = 50


def priority(source: str) -> int:
    return SOURCE_PRIORITY.get(source, 0)


def group_key(park: str, restaurant: str, item: str) -> str:
    return f"{normalize_name(park)}|{normalize_name(restaurant)}|{normalize_name(item)}"


def _fmt_price(p: float) -> str:
    return f"{p:g}"


def group_scraped(results: List[ScrapeResult]) -> Dict[str, List[dict]]:
    groups: Dict[str, List[dict]] = {}
    for result in results:
        for r in result.restaurants:
            source = r.source or result.source
            for it in r.items:
                groups.setdefault(group_key(r.park_name, r.restaurant_name, it.item_name), []).append({
                    "source": source,
                    "park_name": r.park_name,
                    "restaurant_name": r.restaurant_name,
                    "land_name": r.land_name,
                    "item": it,
                })
    return groups


def _fallback(entries: List[dict], attr: str):
    for e in entries:
        value = getattr(e["item"], attr)
        if value:
            return value
    return None


def merge_group(entries: List[dict], conflicts: List[dict]) -> MergedItem:
    entries = sorted(entries, key=lambda e: priority(e["source"]), reverse=True)
    primary = entries[0]
    item = primary["item"]
    sources = list(dict.fromkeys(e["source"] for e in entries))
    merged = MergedItem(
        restaurant_name=primary["restaurant_name"],
        park_name=primary["park_name"],
        item_name=item.item_name,
        category=item.category or "entree",
        land_name=next((e["land_name"] for e in entries if e["land_name"]), ""),
        description=_fallback(entries, "description") or "",
        price=_fallback(entries, "price"),
        photo_url=_fallback(entries, "photo_url") or "",
        sources=sources,
        confidence=SOURCE_PRIORITY.get(primary["source"], UNKNOWN_SOURCE_CONFIDENCE),
    )
    prices = [{"source": e["source"], "price": e["item"].price} for e in entries if e["item"].price]
    if len(prices) >= 2:
        hi = max(p["price"] for p in prices)
        lo = min(p["price"] for p in prices)
        if (hi - lo) / lo > config.PRICE_CONFLICT_RATIO:
            merged.price_conflict = prices
            conflicts.append({
                "item": merged.label,
                "issue": "Price conflict: " + " vs ".join(f"{p['source']}: ${_fmt_price(p['price'])}" for p in prices),
            })
    return merged


class CatalogMatcher:
    """Resolves scraped names to catalog restaurants and menu items."""

    def __init__(self, catalog: db.Catalog):
        self.catalog = catalog
        self._restaurant_cache: Dict[str, Optional[object]] = {}
        self.matched: Dict[str, set] = {}

    def restaurant(self, restaurant_name: str, park_name: str):
        key = f"{normalize_name(park_name)}|{normalize_name(restaurant_name)}"
        if key not in self._restaurant_cache:
            parks = self.catalog.parks_like(park_name)
            found = None
            if parks:
                candidates = self.catalog.restaurants_in(p.id for p in parks)
                found, _ = best_match(restaurant_name, candidates, config.RESTAURANT_MATCH_THRESHOLD, key=lambda r: r.name)
            self._restaurant_cache[key] = found
        return self._restaurant_cache[key]

    def menu_item(self, item_name: str, restaurant_id: str):
        found, _ = best_match(item_name, self.catalog.items_in(restaurant_id), config.ITEM_MATCH_THRESHOLD, key=lambda i: i.name)
        if found:
            self.matched.setdefault(restaurant_id, set()).add(found.id)
        return found


def merge_scraped_data(results: List[ScrapeResult], catalog: db.Catalog) -> MergeResult:
    result = MergeResult(merged_at=now_iso())
    matcher = CatalogMatcher(catalog)
    touched = {}
    for entries in group_scraped(results).values():
        merged = merge_group(entries, result.conflicts)
        restaurant = matcher.restaurant(merged.restaurant_name, merged.park_name)
        existing = None
        if restaurant:
            touched[restaurant.id] = restaurant
            existing = matcher.menu_item(merged.item_name, restaurant.id)
        if existing:
            merged.is_new = False
            merged.existing_id = existing.id
            result.updated_items.append(merged)
        else:
            result.new_items.append(merged)
    for restaurant_id, restaurant in touched.items():
        seen = matcher.matched.get(restaurant_id, set())
        for it in catalog.items_in(restaurant_id):
            if it.id not in seen:
                result.potentially_removed.append({
                    "restaurant_name": restaurant.name,
                    "item_name": it.name,
                    "menu_item_id": it.id,
                    "last_seen": result.merged_at,
                })
    return result


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Merge scraped menus and diff them against the catalog")
    p.add_argument("--in-dir", default=config.SCRAPED_DIR)
    p.add_argument("--out-dir", default=config.PENDING_DIR)
    p.add_argument("--log", default=config.LOG_LEVEL)
    return p.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    config.configure_logging(args.log)
    results = load_scrape_results(args.in_dir)
    if not results:
        logging.error("No scraped data found in %s. Run the scrapers first.", args.in_dir)
        sys.exit(1)
    logging.info("Merging %d scrape results...", len(results))
    catalog = db.load_catalog(db.get_client())
    result = merge_scraped_data(results, catalog)
    path = write_json(dated_path(args.out_dir, "merged"), result.to_dict())
    logging.info("=== Merge Complete ===")
    logging.info("New items: %d", len(result.new_items))
    logging.info("Updated items: %d", len(result.updated_items))
    logging.info("Potentially removed: %d", len(result.potentially_removed))
    logging.info("Conflicts: %d", len(result.conflicts))
    logging.info("Output: %s", path)


if __name__ == "__main__":
    main()
