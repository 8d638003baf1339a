import argparse
import logging
import os
import re
import shutil
import sys
from dataclasses import dataclass, field
from typing import List, Optional, Set, Tuple

from . import config, db
from .allergens import detect_allergens
from .models import MergedItem, MergeResult
from .store import latest, load_json, write_json

LOCATION_RULES = [
    (re.compile(r"aulani"), "Aulani Resort"),
    (re.compile(r"disney (magic|wonder|dream|fantasy|wish|treasure)"), "Disney Cruise Line"),
    (re.compile(r"downtown disney|disneyland"), "Disneyland Resort"),
    (re.compile(r"disney|magic kingdom|epcot|hollywood studios|animal kingdom"), "Walt Disney World"),
    (re.compile(r"epic universe"), "Universal Orlando Resort"),
    (re.compile(r"universal.*(hollywood|studios hollywood)"), "Universal Hollywood"),
    (re.compile(r"universal|islands of adventure|volcano bay"), "Universal Orlando Resort"),
    (re.compile(r"seaworld|busch gardens"), "SeaWorld Parks"),
]
TIMEZONE_RULES = [
    (re.compile(r"aulani"), "Pacific/Honolulu"),
    (re.compile(r"disneyland|downtown disney|hollywood"), "America/Los_Angeles"),
]
DEFAULT_LOCATION = "Other"
DEFAULT_TIMEZONE = "America/New_York"


def infer_location(park_name: str) -> str:
    n = (park_name or "").lower()
    return next((loc for rx, loc in LOCATION_RULES if rx.search(n)), DEFAULT_LOCATION)


def infer_timezone(park_name: str) -> str:
    n = (park_name or "").lower()
    # Hollywood Studios is in Florida
    if "hollywood studios" in n:
        return DEFAULT_TIMEZONE
    return next((tz for rx, tz in TIMEZONE_RULES if rx.search(n)), DEFAULT_TIMEZONE)


@dataclass
class ApprovalResult:
    imported: int = 0
    skipped: int = 0
    errors: List[str] = field(default_factory=list)
    imported_keys: Set[Tuple[str, str, str]] = field(default_factory=set)


class Importer:
    """Writes approved items into the catalog, reusing parks/restaurants already created this run."""

    def __init__(self, sb):
        self.sb = sb
        self._parks = {}
        self._restaurants = {}

    def park_id(self, park_name: str) -> str:
        key = park_name.lower()
        if key not in self._parks:
            row = db.find_one(self.sb, "parks", "id", name__ilike=f"%{park_name}%")
            if not row:
                row = db.insert_row(self.sb, "parks", {"name": park_name, "location": infer_location(park_name), "timezone": infer_timezone(park_name)})
                logging.info("  Created park %s", park_name)
            self._parks[key] = row["id"]
        return self._parks[key]

    def restaurant_id(self, park_id: str, name: str, land: str = "") -> str:
        key = (park_id, name.lower())
        if key not in self._restaurants:
            row = db.find_one(self.sb, "restaurants", "id", park_id=park_id, name__ilike=name)
            if not row:
                row = db.insert_row(self.sb, "restaurants", {"park_id": park_id, "name": name, "land": land or None})
                logging.info("  Created restaurant %s", name)
            self._restaurants[key] = row["id"]
        return self._restaurants[key]

    def import_item(self, item: MergedItem) -> str:
        restaurant_id = self.restaurant_id(self.park_id(item.park_name), item.restaurant_name, item.land_name)
        menu_item = db.insert_row(self.sb, "menu_items", {
            "restaurant_id": restaurant_id,
            "name": item.item_name,
            "description": item.description or None,
            "price": item.price,
            "category": item.category,
            "photo_url": item.photo_url or None,
        })
        item_id = menu_item["id"]
        n = item.nutrition
        if n:
            try:
                db.insert_row(self.sb, "nutritional_data", {
                    "menu_item_id": item_id,
                    "calories": n.calories,
                    "carbs": n.carbs,
                    "fat": n.fat,
                    "protein": n.protein,
                    "sugar": n.sugar,
                    "fiber": n.fiber,
                    "sodium": n.sodium,
                    "source": "crowdsourced",
                    "confidence_score": n.confidence,
                })
            except db.CatalogWriteError as e:
                logging.error("  Nutrition insert error for %s: %s", item.item_name, e)
        found = detect_allergens(item.item_name, item.description, item.category)
        if found:
            rows = [{"menu_item_id": item_id, "allergen_type": a, "severity": s} for a, s in found.items()]
            db.insert_many(self.sb, "allergens", rows)
        return item_id


def item_key(item: MergedItem) -> Tuple[str, str, str]:
    return (item.park_name.lower(), item.restaurant_name.lower(), item.item_name.lower())


def select_items(items: List[MergedItem], min_confidence: Optional[int]) -> List[MergedItem]:
    if min_confidence is None:
        return list(items)
    return [i for i in items if i.nutrition and i.nutrition.confidence >= min_confidence]


def import_approved(sb, items: List[MergedItem]) -> ApprovalResult:
    result = ApprovalResult()
    importer = Importer(sb)
    for item in items:
        logging.info("  %s...", item.label)
        try:
            importer.import_item(item)
        except Exception as e:
            msg = f"Error importing {item.item_name}: {e}"
            logging.error("  %s", msg)
            result.errors.append(msg)
            continue
        result.imported += 1
        result.imported_keys.add(item_key(item))
    return result


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Import approved new items from the latest estimated-*.json")
    p.add_argument("--all", action="store_true", help="Approve every new item and archive the pending file")
    p.add_argument("--min-confidence", type=int, default=None, help="Approve only items estimated at or above this confidence")
    p.add_argument("--pending-dir", default=config.PENDING_DIR)
    p.add_argument("--approved-dir", default=config.APPROVED_DIR)
    p.add_argument("--log", default=config.LOG_LEVEL)
    return p.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    config.configure_logging(args.log)
    if not args.all and args.min_confidence is None:
        logging.info("Nothing approved. Use --all to approve every item or --min-confidence N to approve confident estimates.")
        return
    path = latest(args.pending_dir, "estimated")
    if not path:
        logging.error("No estimated data found in %s.", args.pending_dir)
        sys.exit(1)
    data = MergeResult.from_dict(load_json(path))
    chosen = data.new_items if args.all else select_items(data.new_items, args.min_confidence)
    logging.info("Approving %d of %d new items...", len(chosen), len(data.new_items))
    result = import_approved(db.get_client(), chosen)
    result.skipped = len(data.new_items) - len(chosen)
    if args.all:
        os.makedirs(args.approved_dir, exist_ok=True)
        shutil.move(path, os.path.join(args.approved_dir, os.path.basename(path)))
    else:
        done = result.imported_keys
        data.new_items = [i for i in data.new_items if item_key(i) not in done]
        write_json(path, data.to_dict())
    logging.info("=== Import Complete ===")
    logging.info("Imported: %d", result.imported)
    logging.info("Skipped: %d", result.skipped)
    logging.info("Errors: %d", len(result.errors))


if __name__ == "__main__":
    main()
