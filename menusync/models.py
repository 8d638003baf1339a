from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, List, Optional

CATEGORIES = ("entree", "dessert", "beverage", "side", "snack")
NUTRITION_SOURCES = ("official", "api_lookup", "crowdsourced")
ALLERGEN_SEVERITIES = ("contains", "may_contain")
MACROS = ("calories", "carbs", "fat", "protein", "sugar", "fiber", "sodium", "cholesterol", "alcohol_grams")


def _known(cls, d: Dict[str, Any]) -> Dict[str, Any]:
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in (d or {}).items() if k in names}


def _first(value):
    if isinstance(value, list):
        return value[0] if value else None
    return value


@dataclass
class ScrapedItem:
    item_name: str
    description: str = ""
    price: Optional[float] = None
    category: Optional[str] = None
    photo_url: str = ""

    @classmethod
    def from_dict(cls, d):
        return cls(**_known(cls, d))


@dataclass
class ScrapedRestaurant:
    source: str
    park_name: str
    restaurant_name: str
    land_name: str = ""
    cuisine_type: str = ""
    items: List[ScrapedItem] = field(default_factory=list)
    restaurant_photo_url: str = ""
    scraped_at: str = ""

    @classmethod
    def from_dict(cls, d):
        kw = _known(cls, d)
        kw["items"] = [ScrapedItem.from_dict(i) for i in d.get("items", [])]
        return cls(**kw)


@dataclass
class ScrapeResult:
    source: str
    scraped_at: str
    restaurants: List[ScrapedRestaurant] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def item_count(self) -> int:
        return sum(len(r.items) for r in self.restaurants)

    def to_dict(self):
        return asdict(self)

    @classmethod
    def from_dict(cls, d):
        return cls(
            source=d["source"],
            scraped_at=d.get("scraped_at", ""),
            restaurants=[ScrapedRestaurant.from_dict(r) for r in d.get("restaurants", [])],
            errors=list(d.get("errors", [])),
        )


@dataclass
class NutritionEstimate:
    calories: int
    carbs: int
    fat: int
    protein: int
    confidence: int
    sugar: Optional[int] = None
    fiber: Optional[int] = None
    sodium: Optional[int] = None
    matched_items: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_dict(cls, d):
        return cls(**_known(cls, d))


@dataclass
class MergedItem:
    restaurant_name: str
    park_name: str
    item_name: str
    category: str = "entree"
    land_name: str = ""
    description: str = ""
    price: Optional[float] = None
    photo_url: str = ""
    sources: List[str] = field(default_factory=list)
    confidence: int = 50
    is_new: bool = True
    existing_id: Optional[str] = None
    price_conflict: Optional[List[Dict[str, Any]]] = None
    nutrition: Optional[NutritionEstimate] = None
    needs_manual_nutrition: bool = False

    @property
    def label(self) -> str:
        return f"{self.restaurant_name} - {self.item_name}"

    @classmethod
    def from_dict(cls, d):
        kw = _known(cls, d)
        if kw.get("nutrition"):
            kw["nutrition"] = NutritionEstimate.from_dict(kw["nutrition"])
        return cls(**kw)


@dataclass
class MergeResult:
    merged_at: str
    new_items: List[MergedItem] = field(default_factory=list)
    updated_items: List[MergedItem] = field(default_factory=list)
    potentially_removed: List[Dict[str, Any]] = field(default_factory=list)
    conflicts: List[Dict[str, str]] = field(default_factory=list)

    def to_dict(self):
        return asdict(self)

    @classmethod
    def from_dict(cls, d):
        return cls(
            merged_at=d.get("merged_at", ""),
            new_items=[MergedItem.from_dict(i) for i in d.get("new_items", [])],
            updated_items=[MergedItem.from_dict(i) for i in d.get("updated_items", [])],
            potentially_removed=list(d.get("potentially_removed", [])),
            conflicts=list(d.get("conflicts", [])),
        )


@dataclass
class Park:
    id: str
    name: str
    location: str = ""
    timezone: str = ""
    created_at: str = ""

    @classmethod
    def from_row(cls, row):
        return cls(**_known(cls, row))


@dataclass
class Restaurant:
    id: str
    park_id: str
    name: str
    land: str = ""

    @classmethod
    def from_row(cls, row):
        kw = _known(cls, row)
        kw["land"] = kw.get("land") or ""
        return cls(**kw)


@dataclass
class NutritionalData:
    id: Optional[str] = None
    menu_item_id: Optional[str] = None
    calories: Optional[float] = None
    carbs: Optional[float] = None
    fat: Optional[float] = None
    protein: Optional[float] = None
    sugar: Optional[float] = None
    fiber: Optional[float] = None
    sodium: Optional[float] = None
    cholesterol: Optional[float] = None
    alcohol_grams: Optional[float] = None
    source: str = "crowdsourced"
    confidence_score: Optional[int] = None

    @classmethod
    def from_row(cls, row):
        return cls(**_known(cls, row))

    def profile_key(self) -> str:
        return f"{self.calories}|{self.carbs}|{self.fat}|{self.protein}"


@dataclass
class MenuItem:
    """A catalog row flattened from the nested PostgREST select."""
    id: str
    name: str
    restaurant_id: Optional[str] = None
    description: str = ""
    price: Optional[float] = None
    category: str = "entree"
    is_fried: bool = False
    is_vegetarian: bool = False
    photo_url: str = ""
    created_at: str = ""
    restaurant_name: str = ""
    park_name: str = ""
    nutrition: Optional[NutritionalData] = None

    @property
    def location(self) -> str:
        return f"{self.restaurant_name or '?'} ({self.park_name or '?'})"

    @classmethod
    def from_row(cls, row):
        kw = _known(cls, row)
        for key in ("description", "photo_url", "created_at"):
            kw[key] = kw.get(key) or ""
        kw["category"] = kw.get("category") or "entree"
        kw["is_fried"] = bool(kw.get("is_fried"))
        kw["is_vegetarian"] = bool(kw.get("is_vegetarian"))
        restaurant = _first(row.get("restaurant")) or {}
        park = _first(restaurant.get("park")) or {}
        kw["restaurant_name"] = restaurant.get("name") or ""
        kw["park_name"] = park.get("name") or ""
        nd = _first(row.get("nutritional_data"))
        kw["nutrition"] = NutritionalData.from_row(nd) if nd else None
        return cls(**kw)


@dataclass
class Allergen:
    menu_item_id: str
    allergen_type: str
    severity: str = "contains"


@dataclass
class AuditFlag:
    item: str
    location: str
    pass_no: int
    severity: str
    category: str
    issue: str
    current: str = ""
    suggested: str = ""
    menu_item_id: Optional[str] = None
