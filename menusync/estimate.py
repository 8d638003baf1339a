"""Estimate nutrition for new menu items from keyword-similar catalog items.

Each name is reduced to a keyword set: a food-family tag for every family
with a term in the name, plus each significant word. Similarity is the
Jaccard index of two keyword sets on a 0-100 scale. The estimate is the
similarity-weighted average of the top three matches (similarity >= 50),
drawn from the same category when the catalog has enough of them.
"""
import argparse
import logging
import math
import os
import sys
from dataclasses import dataclass
from typing import Dict, List, Optional, Set

from . import config, db
from .models import MergedItem, MergeResult, MenuItem, NutritionEstimate
from .store import latest, load_json, write_json
from .text import normalize_name

FOOD_KEYWORDS: Dict[str, List[str]] = {
    "burger": ["burger", "hamburger", "cheeseburger", "patty"],
    "sandwich": ["sandwich", "sub", "hoagie", "wrap", "panini"],
    "pizza": ["pizza", "flatbread"],
    "chicken": ["chicken", "wing", "tender", "nugget", "fried chicken"],
    "beef": ["beef", "steak", "ribeye", "sirloin", "brisket"],
    "pork": ["pork", "bacon", "ham", "ribs", "pulled pork"],
    "seafood": ["fish", "shrimp", "lobster", "salmon", "tuna", "crab"],
    "salad": ["salad", "greens", "caesar"],
    "soup": ["soup", "chili", "stew", "chowder"],
    "pasta": ["pasta", "spaghetti", "fettuccine", "mac and cheese", "macaroni"],
    "taco": ["taco", "burrito", "quesadilla", "nachos", "enchilada"],
    "dessert": ["cake", "cookie", "brownie", "ice cream", "sundae", "pie", "churro"],
    "beverage": ["soda", "lemonade", "tea", "coffee", "smoothie", "shake", "juice"],
    "fries": ["fries", "tots", "potato", "chips"],
    "pretzel": ["pretzel"],
}
STOP_WORDS = {"with", "and", "the"}
OPTIONAL_MACROS = ("sugar", "fiber", "sodium")


def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def extract_keywords(name: str) -> Set[str]:
    normalized = normalize_name(name)
    keywords = {family for family, terms in FOOD_KEYWORDS.items() if any(t in normalized for t in terms)}
    keywords.update(w for w in normalized.split(" ") if len(w) > 3 and w not in STOP_WORDS)
    return keywords


def similarity(a: Set[str], b: Set[str]) -> int:
    if not a or not b:
        return 0
    return int(len(a & b) / len(a | b) * 100)


@dataclass
class Reference:
    name: str
    category: str
    keywords: Set[str]
    calories: float
    carbs: float
    fat: float
    protein: float
    sugar: Optional[float] = None
    fiber: Optional[float] = None
    sodium: Optional[float] = None


def build_references(items: List[MenuItem]) -> List[Reference]:
    refs = []
    for it in items:
        nd = it.nutrition
        if not nd or not nd.calories:
            continue
        refs.append(Reference(
            name=it.name,
            category=it.category,
            keywords=extract_keywords(it.name),
            calories=nd.calories,
            carbs=nd.carbs or 0,
            fat=nd.fat or 0,
            protein=nd.protein or 0,
            sugar=nd.sugar,
            fiber=nd.fiber,
            sodium=nd.sodium,
        ))
    return refs


def estimate_nutrition(item: MergedItem, refs: List[Reference]) -> Optional[NutritionEstimate]:
    keywords = extract_keywords(item.item_name)
    if not keywords:
        return None
    same_category = [r for r in refs if r.category == item.category]
    pool = same_category if len(same_category) >= config.ESTIMATE_MIN_CATEGORY_POOL else refs
    scored = sorted(((similarity(keywords, r.keywords), r) for r in pool), key=lambda s: s[0], reverse=True)
    top = [(s, r) for s, r in scored if s >= config.ESTIMATE_MIN_SIMILARITY][: config.ESTIMATE_TOP_K]
    if not top:
        return None
    total = sum(s for s, _ in top)

    def weighted(attr):
        return round_half_up(sum((getattr(r, attr) or 0) * s for s, r in top) / total)

    est = NutritionEstimate(
        calories=weighted("calories"),
        carbs=weighted("carbs"),
        fat=weighted("fat"),
        protein=weighted("protein"),
        confidence=round_half_up(top[0][0] * 0.8),
        matched_items=[{"name": r.name, "similarity": s} for s, r in top],
    )
    for attr in OPTIONAL_MACROS:
        if all(getattr(r, attr) is not None for _, r in top):
            setattr(est, attr, weighted(attr))
    return est


def add_nutrition_estimates(merge_result: MergeResult, refs: List[Reference]) -> List[MergedItem]:
    for item in merge_result.new_items:
        item.nutrition = estimate_nutrition(item, refs)
        item.needs_manual_nutrition = item.nutrition is None or item.nutrition.confidence < config.MANUAL_REVIEW_CONFIDENCE
    return merge_result.new_items


def summarize(items: List[MergedItem]) -> Dict[str, int]:
    with_nutrition = [i for i in items if i.nutrition]
    return {
        "with_nutrition": len(with_nutrition),
        "high": sum(1 for i in with_nutrition if i.nutrition.confidence >= 80),
        "medium": sum(1 for i in with_nutrition if 50 <= i.nutrition.confidence < 80),
        "low": sum(1 for i in with_nutrition if i.nutrition.confidence < 50),
        "needs_manual": sum(1 for i in items if i.needs_manual_nutrition),
    }


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Estimate nutrition for new items in the latest merged-*.json")
    p.add_argument("--pending-dir", default=config.PENDING_DIR)
    p.add_argument("--log", default=config.LOG_LEVEL)
    return p.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    config.configure_logging(args.log)
    path = latest(args.pending_dir, "merged")
    if not path:
        logging.error("No merged data found in %s. Run merge first.", args.pending_dir)
        sys.exit(1)
    merge_result = MergeResult.from_dict(load_json(path))
    logging.info("Estimating nutrition for %d new items...", len(merge_result.new_items))
    catalog = db.load_catalog(db.get_client())
    refs = build_references(catalog.with_nutrition())
    logging.info("Loaded %d existing items with nutrition for matching", len(refs))
    items = add_nutrition_estimates(merge_result, refs)
    out = os.path.join(os.path.dirname(path), os.path.basename(path).replace("merged-", "estimated-", 1))
    write_json(out, merge_result.to_dict())
    s = summarize(items)
    logging.info("=== Nutrition Estimation Complete ===")
    logging.info("With nutrition: %d", s["with_nutrition"])
    logging.info("  High confidence (80%%+): %d", s["high"])
    logging.info("  Medium confidence (50-79%%): %d", s["medium"])
    logging.info("  Low confidence (<50%%): %d", s["low"])
    logging.info("Needs manual entry: %d", s["needs_manual"])
    logging.info("Output: %s", out)


if __name__ == "__main__":
    main()
