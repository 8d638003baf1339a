import re
import unicodedata
from typing import Optional

from rapidfuzz.distance import Indel

BEVERAGE_RE = re.compile(r"\b(drink|soda|lemonade|tea|coffee|smoothie|shake|beer|wine|cocktail|margarita|juice|water|milk)\b")
DESSERT_RE = re.compile(r"\b(cookie|cake|brownie|sundae|ice cream|gelato|mousse|pudding|churro|funnel|waffle|donut|cupcake|pie|tart|cobbler|crisp)\b")
SIDE_RE = re.compile(r"\b(fries|coleslaw|corn|rice|beans|side salad|fruit cup|tots|onion rings)\b")
SNACK_RE = re.compile(r"\b(snack|popcorn|churro|pretzel|corn dog|turkey leg|wings|nachos|dip)\b")


def _strip_diacritics(s: str) -> str:
    return "".join(ch for ch in unicodedata.normalize("NFKD", s) if not unicodedata.combining(ch))


def normalize_name(s) -> str:
    if not s:
        return ""
    s = _strip_diacritics(unicodedata.normalize("NFKC", str(s))).lower()
    s = re.sub(r"[^a-z0-9\s]", "", s)
    return re.sub(r"\s+", " ", s).strip()


def infer_category(name: str) -> Optional[str]:
    n = (name or "").lower()
    if BEVERAGE_RE.search(n):
        return "beverage"
    # "crispy" dishes are savory even when a dessert word shows up
    if DESSERT_RE.search(n) and "crispy" not in n:
        return "dessert"
    if SIDE_RE.search(n):
        return "side"
    if SNACK_RE.search(n):
        return "snack"
    return None


def fuzzy_match(a: str, b: str) -> int:
    """Similarity between two names on a 0-100 scale.

    Exact normalized match scores 100 and containment scores up to 90.
    Anything else takes the better of word overlap (capped at 80) and edit
    distance (capped at 90), so typos still land above the match thresholds.
    """
    na = normalize_name(a)
    nb = normalize_name(b)
    if not na or not nb:
        return 0
    if na == nb:
        return 100
    if na in nb or nb in na:
        shorter, longer = sorted((na, nb), key=len)
        return int(len(shorter) / len(longer) * 90)
    words_a = set(na.split(" "))
    words_b = set(nb.split(" "))
    overlap = int(len(words_a & words_b) / len(words_a | words_b) * 80)
    edit = int(Indel.normalized_similarity(na, nb) * 90)
    return max(overlap, edit)


def best_match(name: str, candidates, threshold: int, key=lambda c: c):
    best = None
    best_score = 0
    for c in candidates:
        score = fuzzy_match(name, key(c))
        if score > best_score and score >= threshold:
            best, best_score = c, score
    return best, best_score
