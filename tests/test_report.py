from menusync.models import MergedItem, MergeResult, NutritionEstimate
from menusync.report import format_markdown, generate_diff_report


def _item(name, park="Magic Kingdom", confidence=80, **kw):
    nutrition = NutritionEstimate(calories=500, carbs=40, fat=20, protein=25, confidence=confidence) if confidence else None
    return MergedItem(restaurant_name="Cosmic Ray's", park_name=park, item_name=name, nutrition=nutrition, needs_manual_nutrition=not confidence or confidence < 50, **kw)


def _result():
    items = [_item(f"Item {n}", price=10.0 + n) for n in range(12)]
    items.append(_item("Churro", park="EPCOT", confidence=40, price_conflict=[{"source": "allears", "price": 6.0}, {"source": "dfb", "price": 7.5}]))
    items.append(_item("Mystery Plate", park="EPCOT", confidence=None))
    return MergeResult(
        merged_at="2026-01-01T00:00:00+00:00",
        new_items=items,
        updated_items=[_item("Cheeseburger")],
        potentially_removed=[{"restaurant_name": "Cosmic Ray's", "item_name": "Taco Salad", "menu_item_id": "m2", "last_seen": "x"}],
        conflicts=[{"item": "Cosmic Ray's - Churro", "issue": "Price conflict"}],
    )


def test_generate_diff_report_summary_and_groups():
    report = generate_diff_report(_result())
    assert report.summary == {
        "new_items": 14,
        "updated_items": 1,
        "flagged_removals": 1,
        "conflicts": 1,
        "coverage_change": "+14 items",
    }
    assert {park: len(items) for park, items in report.new_items_by_park.items()} == {"Magic Kingdom": 12, "EPCOT": 2}
    assert [i.item_name for i in report.price_conflicts] == ["Churro"]
    assert [i.item_name for i in report.low_confidence] == ["Churro", "Mystery Plate"]
    assert report.potentially_discontinued[0]["item_name"] == "Taco Salad"


def test_format_markdown_sections():
    md = format_markdown(generate_diff_report(_result()))
    assert "- **New items:** 14" in md
    assert "### Magic Kingdom (12 items)" in md
    assert "- ... and 2 more" in md
    assert "- **Cosmic Ray's:** Item 0 ($10)" in md
    assert "  - Est. 500 cal, 40g carbs (80% confidence)" in md
    assert "- **Churro** (Cosmic Ray's): allears: $6 vs dfb: $7.5" in md
    assert "- **Mystery Plate** (Cosmic Ray's): No matches found" in md
    assert "- **Taco Salad** (Cosmic Ray's)" in md
    assert "menusync-approve --all" in md
    assert "menusync-approve --min-confidence 50" in md


def test_format_markdown_omits_empty_review_sections():
    md = format_markdown(generate_diff_report(MergeResult(merged_at="x", new_items=[_item("Dole Whip")])))
    assert "Price Conflicts" not in md
    assert "Low Confidence" not in md
    assert "Potentially Discontinued" not in md
