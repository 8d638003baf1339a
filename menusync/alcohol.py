"""Estimate grams of ethanol for alcoholic beverages.

Drinks are classified by type and given the standard ethanol content of a
theme-park pour (1 US standard drink = 14 g). When the stated calories leave a
gap over the macro calories, ``gap / 7`` replaces the standard as long as it
falls within 60-150% of it.
"""
import argparse
import logging
import re
from collections import Counter
from dataclasses import dataclass
from typing import List, Optional

from . import config, db
from .estimate import round_half_up
from .models import MenuItem

ALCOHOL_GRAMS = {
    "light_beer": 11,
    "beer": 14,
    "craft_beer": 18,
    "strong_beer": 24,
    "beer_flight": 14,
    "wine": 14,
    "champagne": 14,
    "sangria": 13,
    "mimosa": 8,
    "cocktail": 14,
    "strong_cocktail": 28,
    "frozen_cocktail": 18,
    "margarita": 16,
    "frozen_margarita": 20,
    "spritz": 11,
    "spirit_neat": 14,
    "liqueur_coffee": 8,
    "sake": 18,
    "mead": 15,
    "hard_cider": 14,
    "hard_seltzer": 12,
    "non_alcoholic": 0,
}
GAP_LOW = 0.6
GAP_HIGH = 1.5


def _rx(p):
    return re.compile(p, re.I)


NON_ALCOHOLIC_RE = _rx(r"non[- ]?alcoholic|zero alcohol|alcohol[- ]?free|virgin |mocktail|n/a beer")
SOFT_BEER_RE = _rx(r"root beer|ginger beer|birch beer|butterbeer")
MIXED_RE = _rx(r"mule|cocktail|punch|vodka|rum|gin |whiskey|bourbon|tequila")
SOFT_TERMS_RE = _rx(r"ginger ale|root beer|birch beer|cream ale")
SPIRIT_RE = _rx(r"vodka|tequila|\brum\b|\bgin\b|bourbon|whiskey|brandy|mezcal|scotch|cognac")
NEAT_RE = _rx(r"neat|on the rocks|straight|shot|tasting")

# (type, pattern, field) checked in order; field is "name", "both" or "beer" (both minus soft-drink terms)
RULES = [
    ("beer_flight", _rx(r"beer flight"), "name"),
    ("craft_beer", _rx(r"\bipa\b|india pale ale|double ipa|hazy ipa|pale ale|craft beer"), "beer"),
    ("strong_beer", _rx(r"\bstout\b|porter|imperial|belgian|tripel|dubbel|barleywine|quad"), "beer"),
    ("light_beer", _rx(r"\blight\b.*\bbeer\b|\bbeer\b.*\blight\b|lite beer|ultra|skinny brew|michelob|bud light|coors light|miller lite"), "beer"),
    ("beer", _rx(r"\blager\b|\bbeer\b|\bale\b|\bpilsner\b|\bhefeweizen\b|\bamber\b.*\bale\b|\bwheat\b.*\bbeer\b"), "beer"),
    ("mimosa", _rx(r"mimosa"), "name"),
    ("sangria", _rx(r"sangria"), "name"),
    ("champagne", _rx(r"champagne|prosecco|sparkling wine|cava|bellini"), "both"),
    ("wine", _rx(r"\bwine\b|cabernet|merlot|chardonnay|pinot|riesling|sauvignon|moscato|rosé|zinfandel|shiraz|malbec"), "both"),
    ("frozen_margarita", _rx(r"frozen.*margarita"), "name"),
]
FROZEN_RE = _rx(r"frozen|blended|slushy|slushie|icee.*rum|icee.*vodka")
FROZEN_SPIRIT_RE = _rx(r"vodka|rum|tequila|gin |whiskey|bourbon|liqueur|cocktail")
LATE_RULES = [
    ("margarita", _rx(r"margarita"), "name"),
    ("strong_cocktail", _rx(r"long island|zombie|jungle juice|fish bowl|scorpion bowl|hurricane|mai tai|painkiller"), "both"),
    ("spritz", _rx(r"spritz|aperol"), "both"),
    ("liqueur_coffee", _rx(r"irish coffee|coffee.*liqueur|liqueur.*coffee|bailey.*coffee|kahlua.*coffee|amarula.*coffee|african coffee"), "both"),
    ("cocktail", _rx(r"cocktail|mojito|daiquiri|mule|cosmopolitan|old fashioned|manhattan|negroni|paloma|sour\b|martini|colada|punch.*rum|punch.*vodka|smash|fizz\b|highball|julep|caipirinha|tiki"), "both"),
]
TAIL_RULES = [
    ("sake", _rx(r"\bsake\b|nigori|junmai|daiginjo")),
    ("mead", _rx(r"\bmead\b")),
    ("hard_cider", _rx(r"hard cider|\bcider\b.*\balcohol")),
    ("hard_seltzer", _rx(r"hard seltzer|white claw|truly|high noon")),
    ("cocktail", _rx(r"liqueur|abv|proof|alcohol")),
]


def classify_drink(name: str, description: Optional[str] = None) -> Optional[str]:
    """Drink type for a beverage, "non_alcoholic", or None when nothing suggests alcohol."""
    n = (name or "").lower()
    d = (description or "").lower()
    both = f"{n} | {d}"
    if NON_ALCOHOLIC_RE.search(both):
        return "non_alcoholic"
    if SOFT_BEER_RE.search(n) and not MIXED_RE.search(both):
        return "non_alcoholic"
    fields = {"name": n, "both": both, "beer": SOFT_TERMS_RE.sub("", both)}
    for kind, rx, where in RULES:
        if rx.search(fields[where]):
            return kind
    if FROZEN_RE.search(both) and FROZEN_SPIRIT_RE.search(both):
        return "frozen_cocktail"
    for kind, rx, where in LATE_RULES:
        if rx.search(fields[where]):
            return kind
    if SPIRIT_RE.search(both):
        return "spirit_neat" if NEAT_RE.search(both) else "cocktail"
    for kind, rx in TAIL_RULES:
        if rx.search(both):
            return kind
    return None


def estimate_alcohol_grams(drink_type: str, calories=None, carbs=None, fat=None, protein=None) -> int:
    standard = ALCOHOL_GRAMS[drink_type]
    if standard == 0:
        return 0
    if calories:
        gap = calories - ((carbs or 0) * 4 + (fat or 0) * 9 + (protein or 0) * 4)
        if gap > 0:
            grams = round_half_up(gap / 7)
            if standard * GAP_LOW <= grams <= standard * GAP_HIGH:
                return grams
    return standard


@dataclass
class AlcoholUpdate:
    nutrition_id: str
    name: str
    drink_type: str
    grams: int


def plan_alcohol(items: List[MenuItem]):
    updates: List[AlcoholUpdate] = []
    skipped = Counter()
    for it in items:
        nd = it.nutrition
        if it.category != "beverage" or not nd or not nd.id:
            continue
        if nd.alcohol_grams and nd.alcohol_grams > 0:
            skipped["already has alcohol_grams"] += 1
            continue
        kind = classify_drink(it.name, it.description)
        if kind is None:
            skipped["not identified as alcoholic"] += 1
            continue
        grams = estimate_alcohol_grams(kind, nd.calories, nd.carbs, nd.fat, nd.protein)
        updates.append(AlcoholUpdate(nutrition_id=nd.id, name=it.name, drink_type=kind, grams=grams))
    return updates, skipped


def apply_alcohol(sb, updates: List[AlcoholUpdate]):
    ok = failed = 0
    for u in updates:
        try:
            db.update_row(sb, "nutritional_data", u.nutrition_id, {"alcohol_grams": u.grams})
            ok += 1
        except Exception as e:
            logging.error("  Failed: %s: %s", u.name, e)
            failed += 1
    return ok, failed


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Estimate alcohol grams for beverages")
    p.add_argument("--apply", action="store_true", help="Write alcohol_grams (default is a dry run)")
    p.add_argument("--log", default=config.LOG_LEVEL)
    return p.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    config.configure_logging(args.log)
    sb = db.get_client()
    catalog = db.load_catalog(sb)
    updates, skipped = plan_alcohol(catalog.items)
    for kind, count in Counter(u.drink_type for u in updates).most_common():
        logging.info("  %-20s %4d items (std: %dg)", kind, count, ALCOHOL_GRAMS[kind])
    for reason, count in skipped.items():
        logging.info("  skipped (%s): %d", reason, count)
    for u in updates[:30]:
        logging.debug("  %3dg [%-18s] %s", u.grams, u.drink_type, u.name)
    if not args.apply:
        logging.info("Dry run: %d updates planned. Re-run with --apply to write.", len(updates))
        return
    ok, failed = apply_alcohol(sb, updates)
    logging.info("Done: %d updated, %d failed", ok, failed)


if __name__ == "__main__":
    main()
