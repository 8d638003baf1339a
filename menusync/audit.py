"""Catalog nutrition audit and batch corrections.

Pass 1 checks each row against itself (caloric math, macro ratios, sodium,
sugar/fiber vs carbs, negatives). Pass 2 checks calories against plausible
ranges for the detected food type. Pass 3 looks across rows for patterns
(round numbers, shared profiles, outliers, missing data by park).

Corrections are planned from the same snapshot and only written with
``--apply``. Every corrected row has its confidence capped.
"""
import argparse
import logging
import math
import re
import sys
from collections import Counter, defaultdict
from dataclasses import asdict, dataclass, field
from typing import Dict, List, Optional

from . import config, db
from .estimate import round_half_up
from .models import AuditFlag, MenuItem
from .store import dated_path, write_json

HIGH, MEDIUM, LOW = "HIGH", "MEDIUM", "LOW"
SEVERITY_ORDER = {HIGH: 0, MEDIUM: 1, LOW: 2}
ALCOHOL_TYPES = ("beer", "wine", "cocktail")
MEAT_TYPES = ("steak", "turkey_leg", "chicken", "ribs", "seafood", "pork")


def _rx(p):
    return re.compile(p)


# (type, pattern, exclude, only_if_nothing_yet)
FOOD_TYPE_RULES = [
    ("burger", _rx(r"burger|cheeseburger"), None, False),
    ("pizza", _rx(r"pizza"), None, False),
    ("salad", _rx(r"salad"), _rx(r"chicken salad sandwich"), False),
    ("taco", _rx(r"taco"), None, False),
    ("wrap", _rx(r"wrap|burrito"), None, False),
    ("sandwich", _rx(r"sandwich|sub |hoagie|panini"), None, False),
    ("hotdog", _rx(r"hot dog|corn dog"), None, False),
    ("chicken_tenders", _rx(r"chicken tender|chicken strip|chicken nugget|chicken finger"), None, False),
    ("wings", _rx(r"wing"), _rx(r"buffalo wing sauce"), False),
    ("nachos", _rx(r"nachos"), None, False),
    ("fries", _rx(r"fries|french fries|tots|totchos"), None, False),
    ("steak", _rx(r"steak|filet|ribeye|sirloin|new york strip|porterhouse"), None, False),
    ("seafood", _rx(r"salmon|fish|mahi|sea bass|cod|tuna|shrimp|lobster|crab"), _rx(r"fish.*chips"), False),
    ("fish_and_chips", _rx(r"fish.*chips|fish.*fries|fish n chips"), None, False),
    ("pasta", _rx(r"pasta|spaghetti|fettuccine|penne|linguine|mac.*cheese"), None, False),
    ("soup", _rx(r"soup|chowder|bisque|gumbo"), None, False),
    ("bowl", _rx(r"rice bowl|poke bowl|grain bowl"), None, False),
    ("turkey_leg", _rx(r"turkey leg"), None, False),
    ("pretzel", _rx(r"pretzel(?!.*dog)"), None, False),
    ("churro", _rx(r"churro"), None, False),
    ("cupcake", _rx(r"cupcake"), None, False),
    ("cake", _rx(r"cake|cheesecake"), _rx(r"cake pop|pancake|funnel cake"), False),
    ("cookie", _rx(r"cookie"), None, False),
    ("brownie", _rx(r"brownie"), None, False),
    ("ice_cream", _rx(r"ice cream|sundae|gelato"), None, False),
    ("frozen_treat", _rx(r"dole whip|soft serve"), None, False),
    ("funnel_cake", _rx(r"funnel cake"), None, False),
    ("donut", _rx(r"donut|doughnut"), None, False),
    ("shake", _rx(r"smoothie|shake|milkshake|frappuccino"), None, False),
    ("beer", _rx(r"\b(beer|ale|lager|ipa|stout|pilsner|draft|draught)\b"), _rx(r"butterbeer|ginger beer|root beer|beer.?batter|beer cheese"), False),
    ("wine", _rx(r"\b(wine|sangria|champagne|prosecco|mimosa)\b"), _rx(r"wine sauce|wine reduction|wine.?brais|wine glaze|red wine-"), False),
    ("cocktail", _rx(r"\b(cocktail|margarita|daiquiri|martini|mojito|mai tai|pina colada|hurricane)\b"), _rx(r"sauce|glaze"), False),
    ("butterbeer", _rx(r"butterbeer"), None, False),
    ("coffee", _rx(r"\b(coffee|latte|espresso|cappuccino|americano|cold brew)\b"), _rx(r"coffee.?cake|coffee.?rub|toffee"), False),
    ("tea", _rx(r"\b(tea|chai)\b"), _rx(r"steak|tender|team|teal"), False),
    ("soft_drink", _rx(r"\b(soda|coca.cola|sprite|fanta|lemonade|agua fresca)\b"), _rx(r"cocktail"), False),
    ("soft_drink", _rx(r"\bjuice\b"), _rx(r"sauce|jus\b"), False),
    ("water", _rx(r"\bwater\b"), _rx(r"watermelon|water chestnut|cold water"), True),
    ("quesadilla", _rx(r"quesadilla"), None, False),
    ("ribs", _rx(r"ribs"), None, False),
    ("pork", _rx(r"pork|pulled pork|kalua"), None, True),
    ("chicken", _rx(r"chicken(?!.*tender|.*strip|.*nugget|.*finger|.*wing)"), None, True),
    ("egg_roll", _rx(r"egg roll|spring roll"), None, False),
    ("popcorn", _rx(r"popcorn(?!.*chicken)"), None, False),
    ("bread", _rx(r"bread|roll|biscuit|croissant|muffin|scone"), None, True),
    ("shave_ice", _rx(r"shave ice|shaved ice|snow cone"), None, False),
]

# Plausible calories per serving at a theme park
CALORIE_RANGES = {
    "burger": (450, 1400), "pizza": (250, 900), "salad": (100, 700), "taco": (150, 500), "wrap": (400, 900),
    "sandwich": (350, 1000), "hotdog": (300, 800), "chicken_tenders": (400, 1000), "wings": (400, 1200),
    "nachos": (500, 1400), "fries": (200, 700), "steak": (400, 1200), "seafood": (200, 800),
    "fish_and_chips": (600, 1200), "pasta": (400, 1200), "soup": (150, 500), "bowl": (350, 800),
    "turkey_leg": (800, 1300), "pretzel": (300, 700), "churro": (200, 500), "cupcake": (350, 800),
    "cake": (300, 800), "cookie": (200, 600), "brownie": (300, 700), "ice_cream": (200, 700),
    "frozen_treat": (150, 450), "funnel_cake": (600, 1200), "donut": (250, 600), "shake": (300, 900),
    "beer": (100, 300), "wine": (100, 200), "cocktail": (150, 500), "butterbeer": (200, 500), "coffee": (5, 500),
    "tea": (0, 200), "soft_drink": (0, 400), "water": (0, 10), "quesadilla": (350, 800), "ribs": (600, 1400),
    "pork": (300, 900), "chicken": (300, 900), "egg_roll": (150, 400), "popcorn": (300, 700), "bread": (150, 500),
    "shave_ice": (100, 350),
}

# Name patterns whose calories were inflated by a blanket portion multiplier
OVER_MULTIPLIED = [
    (re.compile(p, re.I), max_cal, label) for p, max_cal, label in (
        (r"^(?!.*platter)(?!.*combo).*burger", 1200, "burger"),
        (r"sandwich|panini|sub(?!way)", 1000, "sandwich"),
        (r"wrap(?!.*sampler)", 850, "wrap"),
        (r"pizza.*individual|pizza.*personal|cheese pizza|pepperoni pizza", 1000, "personal pizza"),
        (r"hot dog(?!.*platter)", 800, "hot dog"),
        (r"corn dog", 700, "corn dog"),
        (r"chicken strip|chicken tender|chicken finger|chicken nugget", 900, "chicken tenders"),
        (r"^churro", 450, "churro"),
        (r"mini churro", 500, "mini churros"),
        (r"cupcake", 700, "cupcake"),
        (r"brownie(?!.*sundae)", 600, "brownie"),
        (r"brownie sundae", 900, "brownie sundae"),
        (r"^cookie(?!.*sandwich)|cookie$", 800, "cookie"),
        (r"ice cream cookie sandwich", 700, "ice cream sandwich"),
        (r"funnel cake", 1000, "funnel cake"),
        (r"pretzel(?!.*dog)(?!.*kitchen)", 600, "pretzel"),
        (r"mac.*cheese|mac n cheese", 800, "mac & cheese"),
        (r"nachos|totchos", 1100, "nachos"),
        (r"ribs(?!.*eye)", 1200, "ribs"),
        (r"filet mignon|ribeye|rib.eye|prime rib|sirloin", 1100, "steak"),
        (r"salmon|sea bass|fish(?!.*chip)(?!.*finger)", 800, "fish entree"),
        (r"fish.*chip", 1100, "fish & chips"),
        (r"milkshake|shake", 1000, "milkshake"),
        (r"sundae(?!.*brownie)", 1000, "sundae"),
        (r"dole whip|soft.serve", 400, "frozen treat"),
        (r"doughnut|donut", 550, "doughnut"),
    )
]
OVER_TOLERANCE = 1.15
OVER_TARGET = 0.85
OVER_MIN_DIVISOR = 1.4
SCALED_FIELDS = ("carbs", "fat", "protein", "sugar", "fiber", "sodium", "cholesterol")


def detect_food_types(name: str, description: str = "", category: str = "") -> List[str]:
    text = f"{name} {description or ''}".lower()
    types: List[str] = []
    for kind, rx, exclude, only_first in FOOD_TYPE_RULES:
        if only_first and types:
            continue
        if rx.search(text) and not (exclude and exclude.search(text)):
            types.append(kind)
    if not types and category:
        types.append(f"{category}_generic")
    return types


def macro_calories(nd) -> float:
    return (nd.protein or 0) * 4 + (nd.carbs or 0) * 4 + (nd.fat or 0) * 9 + (nd.alcohol_grams or 0) * 7


def _flag(item: MenuItem, pass_no, severity, category, issue, current="", suggested=""):
    return AuditFlag(item=item.name, location=item.location, pass_no=pass_no, severity=severity, category=category, issue=issue, current=current, suggested=suggested, menu_item_id=item.id)


def pass_internal(item: MenuItem) -> List[AuditFlag]:
    nd = item.nutrition
    if not nd or nd.calories is None:
        return []
    out = []
    cal = nd.calories
    have_macros = nd.protein is not None and nd.carbs is not None and nd.fat is not None
    if have_macros:
        calc = macro_calories(nd)
        diff = abs(calc - cal)
        pct = diff / cal if cal > 0 else 0
        if pct > 0.25 and diff > 50:
            direction = "calculated > stated" if calc > cal else "calculated < stated"
            out.append(_flag(item, 1, HIGH if diff > 200 else MEDIUM, "caloric-math",
                             f"Calculated={calc:g} vs stated={cal:g} ({pct * 100:.0f}% diff, {direction})",
                             f"{cal:g} cal", f"~{calc:g} cal from macros"))
    if cal > 0 and have_macros:
        fat_pct = nd.fat * 9 / cal * 100
        carb_pct = nd.carbs * 4 / cal * 100
        prot_pct = nd.protein * 4 / cal * 100
        if item.is_fried and fat_pct < 20 and cal > 100:
            out.append(_flag(item, 1, MEDIUM, "macro-ratio-fried", f"Fried item but only {fat_pct:.0f}% fat calories", f"{nd.fat:g}g fat"))
        if item.category == "dessert" and carb_pct < 30 and cal > 100:
            out.append(_flag(item, 1, LOW, "macro-ratio-dessert", f"Dessert but only {carb_pct:.0f}% carb calories", f"{nd.carbs:g}g carbs"))
        types = detect_food_types(item.name, item.description, item.category)
        if any(t in types for t in MEAT_TYPES) and prot_pct < 15 and cal > 200:
            out.append(_flag(item, 1, MEDIUM, "macro-ratio-protein", f"Meat item but only {prot_pct:.0f}% protein calories", f"{nd.protein:g}g protein"))
    if nd.sodium is not None and cal > 0:
        if item.category in ("entree", "snack") and nd.sodium < 150 and cal > 300 and "sweet" not in item.description.lower():
            out.append(_flag(item, 1, MEDIUM, "low-sodium-savory", f"Savory item with only {nd.sodium:g}mg sodium at {cal:g} cal", f"{nd.sodium:g}mg sodium"))
        if item.category == "dessert" and nd.sodium > 1000 and not re.search(r"pretzel|salted caramel|sea salt|bacon", item.name.lower()):
            out.append(_flag(item, 1, HIGH, "high-sodium-dessert", f"Dessert with {nd.sodium:g}mg sodium", f"{nd.sodium:g}mg sodium"))
        if nd.sodium > 3000:
            out.append(_flag(item, 1, HIGH, "extreme-sodium", f"{nd.sodium:g}mg sodium is extremely high", f"{nd.sodium:g}mg sodium"))
    if nd.sugar is not None and nd.carbs is not None and nd.sugar > nd.carbs:
        out.append(_flag(item, 1, HIGH, "sugar-exceeds-carbs", f"Sugar ({nd.sugar:g}g) > total carbs ({nd.carbs:g}g)", f"sugar={nd.sugar:g}g", f"sugar <= {nd.carbs:g}g"))
    if nd.fiber is not None and nd.carbs is not None and nd.fiber > nd.carbs:
        out.append(_flag(item, 1, HIGH, "fiber-exceeds-carbs", f"Fiber ({nd.fiber:g}g) > total carbs ({nd.carbs:g}g)", f"fiber={nd.fiber:g}g", f"fiber <= {nd.carbs:g}g"))
    if cal < 0 or any(v is not None and v < 0 for v in (nd.fat, nd.carbs, nd.protein)):
        out.append(_flag(item, 1, HIGH, "negative-values", "Negative nutritional value", f"cal={cal}, fat={nd.fat}, carbs={nd.carbs}, protein={nd.protein}"))
    if 0 < cal < 20 and item.category == "entree":
        out.append(_flag(item, 1, HIGH, "implausibly-low-cal", f"Entree with only {cal:g} calories", f"{cal:g} cal"))
    return out


def pass_plausibility(item: MenuItem) -> List[AuditFlag]:
    nd = item.nutrition
    if not nd or not nd.calories:
        return []
    cal = nd.calories
    out = []
    for kind in detect_food_types(item.name, item.description, item.category):
        rng = CALORIE_RANGES.get(kind)
        if not rng:
            continue
        lo, hi = rng
        if cal < lo * 0.7:
            out.append(_flag(item, 2, HIGH if cal < lo * 0.5 else MEDIUM, "below-range", f"{kind}: {cal:g} cal is below plausible range [{lo}-{hi}]", f"{cal:g} cal", f"Expected >= {lo} cal"))
            break
        if cal > hi * 1.3:
            out.append(_flag(item, 2, HIGH if cal > hi * 1.5 else MEDIUM, "above-range", f"{kind}: {cal:g} cal exceeds plausible range [{lo}-{hi}]", f"{cal:g} cal", f"Expected <= {hi} cal"))
            break
    n = item.name.lower()
    if re.match(r"^(brewed |hot )?coffee$", n) and cal > 80:
        out.append(_flag(item, 2, HIGH, "benchmark-coffee", f"Plain coffee at {cal:g} cal", f"{cal:g} cal", "5-50 cal"))
    if re.match(r"^(bottled |spring |sparkling )?water$", n) and cal > 5:
        out.append(_flag(item, 2, HIGH, "benchmark-water", f"Water at {cal:g} cal", f"{cal:g} cal", "0 cal"))
    return out


def pass_patterns(items: List[MenuItem]) -> List[AuditFlag]:
    out = []
    profiles: Dict[str, List[MenuItem]] = defaultdict(list)
    by_category: Dict[str, List[MenuItem]] = defaultdict(list)
    for it in items:
        nd = it.nutrition
        if not nd or not nd.calories:
            continue
        vals = [v for v in (nd.calories, nd.carbs, nd.fat, nd.protein) if v]
        if len(vals) >= 3 and nd.calories > 50 and all(v % 10 == 0 for v in vals):
            out.append(_flag(it, 3, LOW, "round-numbers", f"Suspiciously round values: cal={nd.calories:g}, carbs={nd.carbs}, fat={nd.fat}, protein={nd.protein}"))
        profiles[f"{nd.profile_key()}|{nd.sugar}|{nd.sodium}"].append(it)
        by_category[it.category].append(it)
    for group in profiles.values():
        names = [g.name for g in group]
        if len(group) >= 2 and len({re.sub(r"[^a-z]", "", n.lower()) for n in names}) > 1:
            nd = group[0].nutrition
            listed = ", ".join(names[:5]) + ("..." if len(names) > 5 else "")
            out.append(_flag(group[0], 3, HIGH if len(group) > 3 else MEDIUM, "duplicate-profile",
                             f"{len(group)} different items share cal={nd.calories:g}, carbs={nd.carbs}, fat={nd.fat}, protein={nd.protein}: {listed}"))
    for cat, members in by_category.items():
        if len(members) < 10:
            continue
        cals = [m.nutrition.calories for m in members]
        mean = sum(cals) / len(cals)
        std = math.sqrt(sum((c - mean) ** 2 for c in cals) / len(cals))
        if not std:
            continue
        for m in members:
            z = (m.nutrition.calories - mean) / std
            if abs(z) > 3:
                out.append(_flag(m, 3, MEDIUM, "statistical-outlier", f"{cat}: {m.nutrition.calories:g} cal is {z:.1f} std devs from mean ({mean:.0f} +/- {std:.0f})"))
    return out


@dataclass
class ParkQuality:
    park: str
    total: int = 0
    missing_nutrition: int = 0
    missing_sodium: int = 0
    missing_sugar: int = 0
    zero_protein: int = 0
    missing_by_category: Dict[str, int] = field(default_factory=dict)

    def issues(self) -> List[str]:
        out = []
        if self.missing_nutrition:
            out.append(f"{self.missing_nutrition} missing nutrition")
        if self.missing_sodium > self.total * 0.3:
            out.append(f"{self.missing_sodium}/{self.total} missing sodium")
        if self.missing_sugar > self.total * 0.3:
            out.append(f"{self.missing_sugar}/{self.total} missing sugar")
        if self.zero_protein > 3:
            out.append(f"{self.zero_protein} savory items with 0g protein")
        return out


def park_quality(items: List[MenuItem]) -> List[ParkQuality]:
    stats: Dict[str, ParkQuality] = {}
    for it in items:
        park = it.park_name or "Unknown"
        s = stats.setdefault(park, ParkQuality(park=park))
        s.total += 1
        nd = it.nutrition
        if not nd or nd.calories is None:
            s.missing_nutrition += 1
            s.missing_by_category[it.category] = s.missing_by_category.get(it.category, 0) + 1
        if not nd or nd.sodium is None:
            s.missing_sodium += 1
        if not nd or nd.sugar is None:
            s.missing_sugar += 1
        if nd and nd.protein == 0 and (nd.calories or 0) > 200 and it.category not in ("dessert", "beverage"):
            s.zero_protein += 1
    return list(stats.values())


def dedupe_and_sort(flags: List[AuditFlag]) -> List[AuditFlag]:
    seen = set()
    out = []
    for f in flags:
        key = (f.menu_item_id or f.item, f.category)
        if key in seen:
            continue
        seen.add(key)
        out.append(f)
    return sorted(out, key=lambda f: SEVERITY_ORDER[f.severity])


def run_audit(items: List[MenuItem]) -> List[AuditFlag]:
    flags = []
    for it in items:
        flags.extend(pass_internal(it))
    for it in items:
        flags.extend(pass_plausibility(it))
    flags.extend(pass_patterns(items))
    return dedupe_and_sort(flags)


@dataclass
class Fix:
    nutrition_id: str
    item: str
    location: str
    reasons: List[str] = field(default_factory=list)
    updates: Dict[str, Optional[float]] = field(default_factory=dict)


def plan_item_fix(item: MenuItem) -> Optional[Fix]:
    nd = item.nutrition
    if not nd or not nd.id:
        return None
    v = {k: getattr(nd, k) for k in ("calories", "carbs", "fat", "protein", "sugar", "fiber", "sodium", "cholesterol", "alcohol_grams")}
    fix = Fix(nutrition_id=nd.id, item=item.name, location=item.location)

    def set_(k, value, reason):
        v[k] = value
        fix.updates[k] = value
        if reason not in fix.reasons:
            fix.reasons.append(reason)

    for k in ("calories", "carbs", "fat", "protein", "sugar", "fiber", "sodium", "cholesterol"):
        if v[k] is not None and v[k] < 0:
            set_(k, None, "negative-values")

    cal = v["calories"]
    if cal:
        for rx, max_cal, label in OVER_MULTIPLIED:
            if not rx.search(item.name):
                continue
            if cal <= max_cal * OVER_TOLERANCE:
                break
            target = round_half_up(max_cal * OVER_TARGET)
            divisor = cal / target
            if divisor < OVER_MIN_DIVISOR:
                break
            set_("calories", target, f"over-multiplied {label} (/{divisor:.1f})")
            for k in SCALED_FIELDS:
                if v[k]:
                    set_(k, round_half_up(v[k] / divisor), f"over-multiplied {label} (/{divisor:.1f})")
            break

    if v["sugar"] is not None and v["carbs"] is not None and v["sugar"] > v["carbs"]:
        set_("sugar", v["carbs"], "sugar-exceeds-carbs")
    if v["fiber"] is not None and v["carbs"] is not None and v["fiber"] > v["carbs"]:
        set_("fiber", round_half_up(v["carbs"] * 0.1), "fiber-exceeds-carbs")

    cal = v["calories"]
    if cal and all(v[k] is not None for k in ("protein", "carbs", "fat")):
        calc = v["protein"] * 4 + v["carbs"] * 4 + v["fat"] * 9 + (v["alcohol_grams"] or 0) * 7
        diff = abs(calc - cal)
        types = detect_food_types(item.name, item.description, item.category)
        unaccounted_alcohol = not v["alcohol_grams"] and any(t in ALCOHOL_TYPES for t in types)
        if diff > 200 and diff / cal > 0.25 and calc > 0 and not unaccounted_alcohol:
            set_("calories", round_half_up(calc), "caloric-math")

    if not fix.updates:
        return None
    fix.updates["confidence_score"] = min(nd.confidence_score if nd.confidence_score is not None else config.CORRECTED_CONFIDENCE_CAP, config.CORRECTED_CONFIDENCE_CAP)
    return fix


def plan_fixes(items: List[MenuItem]) -> List[Fix]:
    return [f for f in (plan_item_fix(it) for it in items) if f]


def apply_fixes(sb, fixes: List[Fix]):
    ok = failed = 0
    for f in fixes:
        try:
            db.update_row(sb, "nutritional_data", f.nutrition_id, f.updates)
            ok += 1
        except Exception as e:
            logging.error("  Update error for %s: %s", f.item, e)
            failed += 1
    return ok, failed


def log_summary(items: List[MenuItem], flags: List[AuditFlag], quality: List[ParkQuality]):
    sev = Counter(f.severity for f in flags)
    passes = Counter(f.pass_no for f in flags)
    logging.info("Total items audited: %d", len(items))
    logging.info("Total flags: %d (HIGH %d, MEDIUM %d, LOW %d)", len(flags), sev[HIGH], sev[MEDIUM], sev[LOW])
    logging.info("  Pass 1 (internal): %d | Pass 2 (plausibility): %d | Pass 3 (patterns): %d", passes[1], passes[2], passes[3])
    for q in quality:
        issues = q.issues()
        if issues:
            logging.info("  %s (%d items): %s", q.park, q.total, ", ".join(issues))
    for f in flags:
        logging.debug("[%s] %s @ %s | pass %d %s | %s", f.severity, f.item, f.location, f.pass_no, f.category, f.issue)


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Audit catalog nutrition and plan batch corrections")
    p.add_argument("--apply", action="store_true", help="Write planned corrections (default is a dry run)")
    p.add_argument("--out", default=None, help="Audit report path (default data/audit-<date>.json)")
    p.add_argument("--log", default=config.LOG_LEVEL)
    return p.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    config.configure_logging(args.log)
    sb = db.get_client()
    items = db.load_catalog(sb).items
    if not items:
        logging.error("Catalog is empty.")
        sys.exit(1)
    flags = run_audit(items)
    quality = park_quality(items)
    log_summary(items, flags, quality)
    fixes = plan_fixes(items)
    for f in fixes[:20]:
        logging.info("  fix %s @ %s: %s -> %s", f.item, f.location, "; ".join(f.reasons), f.updates)
    if len(fixes) > 20:
        logging.info("  ... and %d more", len(fixes) - 20)
    out = args.out or dated_path(config.DATA_DIR, "audit")
    write_json(out, {
        "summary": {"total_items": len(items), "total_flags": len(flags), **{k.lower(): n for k, n in Counter(f.severity for f in flags).items()}},
        "flags": [asdict(f) for f in flags],
        "parks": [asdict(q) for q in quality],
        "fixes": [asdict(f) for f in fixes],
    })
    logging.info("Audit report written to %s", out)
    if not args.apply:
        logging.info("Dry run: %d corrections planned. Re-run with --apply to write.", len(fixes))
        return
    ok, failed = apply_fixes(sb, fixes)
    logging.info("Total fixes applied: %d (%d failed)", ok, failed)


if __name__ == "__main__":
    main()
