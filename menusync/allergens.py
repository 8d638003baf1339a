"""Allergen detection from menu text and the batch enrichment job.

Each allergen has ordered keyword rules; the first rule with a hit decides
the severity. Exclusion patterns ("dairy-free", "vegan", ...) suppress an
allergen entirely. Keywords of three letters or fewer only match whole words.
"""
import argparse
import logging
import re
from collections import Counter
from typing import Dict, Iterable, List, Tuple

from . import config, db
from .models import Allergen

ALLERGEN_RULES: Dict[str, List[Tuple[str, List[str]]]] = {
    "milk": [
        ("contains", [
            "milk", "cream", "cheese", "butter", "yogurt", "gelato", "ice cream", "whipped", "custard", "pudding",
            "fudge", "caramel", "mozzarella", "cheddar", "parmesan", "provolone", "swiss", "gouda", "brie", "feta",
            "ricotta", "mascarpone", "gorgonzola", "blue cheese", "pepper jack", "american cheese", "monterey",
            "cotija", "queso", "fontina", "gruyere", "asiago", "romano", "burrata", "havarti", "alfredo", "béchamel",
            "bechamel", "carbonara", "hollandaise", "ranch", "caesar", "creamy", "au gratin", "scalloped",
            "sour cream", "crème", "creme", "fraiche", "latte", "cappuccino", "mocha", "macchiato", "dulce de leche",
            "tres leches", "cheesecake", "tiramisu", "panna cotta", "mousse", "buttermilk", "half and half",
            "evaporated milk", "condensed milk", "milkshake", "shake", "smoothie", "float", "sundae", "frosting",
            "icing", "glaze",
        ]),
        ("may_contain", ["chocolate", "brownie", "cookie", "cake", "pastry", "croissant", "muffin", "scone"]),
    ],
    "wheat": [
        ("contains", [
            "bread", "bun", "roll", "bagel", "baguette", "ciabatta", "focaccia", "sourdough", "brioche", "croissant",
            "english muffin", "pita", "naan", "flatbread", "toast", "crouton", "breadstick", "crostini", "pasta",
            "noodle", "spaghetti", "fettuccine", "penne", "linguine", "macaroni", "lasagna", "ravioli", "gnocchi",
            "udon", "ramen", "lo mein", "chow mein", "spätzle", "orzo", "wrap", "tortilla", "burrito", "quesadilla",
            "taco", "enchilada", "breaded", "battered", "fried", "crispy", "crusted", "tempura", "panko", "schnitzel",
            "katsu", "cake", "cookie", "brownie", "muffin", "scone", "biscuit", "pastry", "pie", "tart", "danish",
            "strudel", "turnover", "donut", "doughnut", "churro", "funnel cake", "crepe", "waffle", "pancake",
            "french toast", "pretzel", "cracker", "graham", "pizza", "calzone", "stromboli", "sandwich", "sub",
            "hoagie", "panini", "slider", "po boy", "dumpling", "wonton", "egg roll", "spring roll", "pot sticker",
            "gyoza", "pierogi", "empanada", "samosa", "flour", "wheat", "seitan", "gravy", "roux",
        ]),
    ],
    "eggs": [
        ("contains", [
            "egg", "eggs", "omelette", "omelet", "frittata", "quiche", "scrambled", "poached", "fried egg",
            "sunny side", "over easy", "hard boiled", "soft boiled", "deviled", "mayo", "mayonnaise", "aioli",
            "hollandaise", "bearnaise", "caesar", "tartar sauce", "custard", "creme brulee", "flan", "meringue",
            "souffle", "zabaglione", "sabayon", "french toast", "benedict", "carbonara", "brioche", "challah",
        ]),
        ("may_contain", ["cake", "cookie", "brownie", "muffin", "pastry", "waffle", "pancake", "breaded", "battered"]),
    ],
    "soy": [
        ("contains", ["soy", "tofu", "tempeh", "edamame", "miso", "natto", "soy sauce", "shoyu", "tamari", "teriyaki", "soy milk", "soya"]),
        ("may_contain", ["asian", "chinese", "japanese", "korean", "thai", "vietnamese", "stir fry", "wok"]),
    ],
    "peanuts": [
        ("contains", ["peanut", "peanuts", "peanut butter", "groundnut", "goober", "arachis", "pad thai", "satay", "kung pao"]),
        ("may_contain", ["thai", "asian", "trail mix"]),
    ],
    "tree_nuts": [
        ("contains", [
            "almond", "cashew", "walnut", "pecan", "pistachio", "hazelnut", "filbert", "macadamia", "brazil nut",
            "chestnut", "pine nut", "pignoli", "praline", "marzipan", "frangipane", "gianduja", "nutella",
            "nut butter", "almond butter", "cashew butter", "almond milk", "cashew milk", "hazelnut spread",
            "baklava", "biscotti",
        ]),
        ("may_contain", ["pesto", "trail mix", "granola"]),
    ],
    "fish": [
        ("contains", [
            "fish", "salmon", "tuna", "cod", "tilapia", "halibut", "mahi", "grouper", "snapper", "bass", "trout",
            "catfish", "swordfish", "flounder", "sole", "perch", "walleye", "sardine", "anchovy", "herring",
            "mackerel", "eel", "sashimi", "sushi", "ceviche", "poke", "lox", "gravlax", "fish and chips",
            "fish taco", "fish fry", "smoked fish", "gefilte", "worcestershire", "fish sauce", "nuoc mam", "caesar",
        ]),
    ],
    "shellfish": [
        ("contains", [
            "shrimp", "prawn", "crab", "lobster", "crawfish", "crayfish", "langostino", "langoustine", "scampi",
            "clam", "mussel", "oyster", "scallop", "abalone", "snail", "escargot", "conch", "whelk", "periwinkle",
            "squid", "calamari", "octopus", "cuttlefish", "seafood", "surf and turf", "cioppino", "bouillabaisse",
            "paella", "gumbo", "jambalaya", "etouffee", "crab cake", "lobster roll", "shrimp cocktail",
            "clam chowder", "oyster rockefeller",
        ]),
    ],
    "sesame": [
        ("contains", ["sesame", "tahini", "hummus", "halvah", "halva", "sesame oil", "sesame seed", "goma", "falafel", "baba ghanoush", "baba ganoush"]),
        ("may_contain", ["mediterranean", "middle eastern", "lebanese", "israeli", "greek", "turkish", "asian", "sushi"]),
    ],
    "gluten": [
        ("contains", [
            "wheat", "barley", "rye", "malt", "triticale", "beer", "ale", "lager", "stout", "porter", "pilsner",
            "bread", "pasta", "noodle", "flour", "breaded", "battered", "cake", "cookie", "brownie", "pastry", "pie",
            "muffin", "pretzel", "cracker", "croissant", "bagel", "pizza", "wrap", "tortilla", "pita", "soy sauce",
            "teriyaki", "gravy",
        ]),
    ],
}

EXCLUDE_PATTERNS = {
    "milk": [re.compile(p, re.I) for p in (r"dairy[- ]?free", r"vegan", r"non[- ]?dairy", r"lactose[- ]?free", r"oat\s*milk", r"almond\s*milk", r"soy\s*milk", r"coconut\s*milk")],
    "eggs": [re.compile(p, re.I) for p in (r"egg[- ]?free", r"vegan")],
    "gluten": [re.compile(p, re.I) for p in (r"gluten[- ]?free", r"gf\b", r"celiac")],
}

_word_res: Dict[str, re.Pattern] = {}


def keyword_hit(keyword: str, text: str) -> bool:
    if len(keyword) <= 3:
        pat = _word_res.get(keyword)
        if pat is None:
            pat = _word_res[keyword] = re.compile(rf"\b{re.escape(keyword)}\b", re.I)
        return bool(pat.search(text))
    return keyword in text


def detect_allergens(name: str, description: str = "", category: str = "") -> Dict[str, str]:
    """Map allergen_type -> severity for one menu item's text."""
    text = f"{name or ''} {description or ''} {category or ''}".lower()
    found = {}
    for allergen, rules in ALLERGEN_RULES.items():
        if any(p.search(text) for p in EXCLUDE_PATTERNS.get(allergen, ())):
            continue
        for severity, keywords in rules:
            if any(keyword_hit(kw, text) for kw in keywords):
                found[allergen] = severity
                break
    return found


def plan_allergens(items: Iterable[dict], existing: Iterable[dict]) -> List[Allergen]:
    have = {(r["menu_item_id"], r["allergen_type"]) for r in existing}
    out = []
    for item in items:
        for allergen, severity in detect_allergens(item.get("name"), item.get("description"), item.get("category")).items():
            if (item["id"], allergen) not in have:
                out.append(Allergen(menu_item_id=item["id"], allergen_type=allergen, severity=severity))
    return out


def enrich_allergens(sb, apply: bool = False) -> Dict[str, int]:
    items = db.fetch_all(sb, "menu_items", "id, name, description, category")
    existing = db.fetch_all(sb, "allergens", "menu_item_id, allergen_type")
    logging.info("Total menu items: %d", len(items))
    logging.info("Existing allergen records: %d", len(existing))
    planned = plan_allergens(items, existing)
    counts = Counter(a.allergen_type for a in planned)
    logging.info("New allergens to add: %d across %d items", len(planned), len({a.menu_item_id for a in planned}))
    for allergen, n in counts.most_common():
        logging.info("  %s: %d", allergen, n)
    inserted = 0
    if apply and planned:
        rows = [{"menu_item_id": a.menu_item_id, "allergen_type": a.allergen_type, "severity": a.severity} for a in planned]
        inserted = db.insert_many(sb, "allergens", rows, batch=config.INSERT_BATCH)
        logging.info("Inserted %d allergen records", inserted)
    elif planned:
        logging.info("Dry run. Re-run with --apply to insert.")
    return {"planned": len(planned), "inserted": inserted}


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Detect allergens from menu item text")
    p.add_argument("--apply", action="store_true", help="Insert detected allergen rows")
    p.add_argument("--log", default=config.LOG_LEVEL)
    return p.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    config.configure_logging(args.log)
    enrich_allergens(db.get_client(), apply=args.apply)


if __name__ == "__main__":
    main()
