import argparse
import logging
import os
import sys
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List

from . import config
from .models import MergedItem, MergeResult
from .store import latest, load_json, now_iso, write_json, write_text

TOP_N = 10
APPROVE_ALL_CMD = "menusync-approve --all"
APPROVE_CONFIDENT_CMD = f"menusync-approve --min-confidence {config.MANUAL_REVIEW_CONFIDENCE}"


@dataclass
class DiffReport:
    generated_at: str
    summary: Dict[str, Any]
    new_items_by_park: Dict[str, List[MergedItem]] = field(default_factory=dict)
    price_conflicts: List[MergedItem] = field(default_factory=list)
    low_confidence: List[MergedItem] = field(default_factory=list)
    potentially_discontinued: List[Dict[str, Any]] = field(default_factory=list)
    approve_all_cmd: str = APPROVE_ALL_CMD
    approve_confident_cmd: str = APPROVE_CONFIDENT_CMD

    def to_dict(self):
        return asdict(self)


def _price(p) -> str:
    return f"{p:g}"


def generate_diff_report(merge_result: MergeResult) -> DiffReport:
    by_park: Dict[str, List[MergedItem]] = {}
    for item in merge_result.new_items:
        by_park.setdefault(item.park_name, []).append(item)
    low = [
        i for i in merge_result.new_items
        if i.needs_manual_nutrition or (i.nutrition and i.nutrition.confidence < config.MANUAL_REVIEW_CONFIDENCE)
    ]
    return DiffReport(
        generated_at=now_iso(),
        summary={
            "new_items": len(merge_result.new_items),
            "updated_items": len(merge_result.updated_items),
            "flagged_removals": len(merge_result.potentially_removed),
            "conflicts": len(merge_result.conflicts),
            "coverage_change": f"+{len(merge_result.new_items)} items",
        },
        new_items_by_park=by_park,
        price_conflicts=[i for i in merge_result.new_items if i.price_conflict],
        low_confidence=low,
        potentially_discontinued=list(merge_result.potentially_removed),
    )


def _more(lines: List[str], total: int):
    if total > TOP_N:
        lines.append(f"- ... and {total - TOP_N} more")


def format_markdown(report: DiffReport) -> str:
    s = report.summary
    lines = [
        f"# Menu Sync Report ({report.generated_at[:10]})",
        "",
        "## Summary",
        "",
        f"- **New items:** {s['new_items']}",
        f"- **Updated items:** {s['updated_items']}",
        f"- **Flagged removals:** {s['flagged_removals']}",
        f"- **Conflicts:** {s['conflicts']}",
        f"- **Coverage change:** {s['coverage_change']}",
        "",
        "## New Items by Park",
        "",
    ]
    for park, items in report.new_items_by_park.items():
        lines.append(f"### {park} ({len(items)} items)")
        lines.append("")
        for item in items[:TOP_N]:
            price = f" (${_price(item.price)})" if item.price else ""
            lines.append(f"- **{item.restaurant_name}:** {item.item_name}{price}")
            n = item.nutrition
            lines.append(f"  - Est. {n.calories} cal, {n.carbs}g carbs ({n.confidence}% confidence)" if n else "  - Needs manual nutrition")
        _more(lines, len(items))
        lines.append("")

    if report.price_conflicts:
        lines += ["## Needs Review: Price Conflicts", ""]
        for item in report.price_conflicts:
            prices = " vs ".join(f"{p['source']}: ${_price(p['price'])}" for p in item.price_conflict)
            lines.append(f"- **{item.item_name}** ({item.restaurant_name}): {prices}")
        lines.append("")

    if report.low_confidence:
        lines += ["## Needs Review: Low Confidence Nutrition", ""]
        for item in report.low_confidence[:TOP_N]:
            detail = f"{item.nutrition.confidence}% confidence" if item.nutrition else "No matches found"
            lines.append(f"- **{item.item_name}** ({item.restaurant_name}): {detail}")
        _more(lines, len(report.low_confidence))
        lines.append("")

    if report.potentially_discontinued:
        lines += ["## Needs Review: Potentially Discontinued", ""]
        for gone in report.potentially_discontinued[:TOP_N]:
            lines.append(f"- **{gone['item_name']}** ({gone['restaurant_name']})")
        _more(lines, len(report.potentially_discontinued))
        lines.append("")

    lines += [
        "## Actions",
        "",
        "```bash",
        "# Approve all new items",
        report.approve_all_cmd,
        "",
        "# Approve only confidently estimated items",
        report.approve_confident_cmd,
        "```",
    ]
    return "\n".join(lines)


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Write the diff report for the latest estimated-*.json")
    p.add_argument("--pending-dir", default=config.PENDING_DIR)
    p.add_argument("--log", default=config.LOG_LEVEL)
    return p.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    config.configure_logging(args.log)
    path = latest(args.pending_dir, "estimated")
    if not path:
        logging.error("No estimated data found in %s. Run estimate first.", args.pending_dir)
        sys.exit(1)
    report = generate_diff_report(MergeResult.from_dict(load_json(path)))
    markdown = format_markdown(report)
    base = os.path.join(os.path.dirname(path), os.path.basename(path).replace("estimated-", "report-", 1))
    md_path = write_text(base[: -len(".json")] + ".md", markdown)
    write_json(base, report.to_dict())
    print(markdown)
    logging.info("Report saved to: %s", md_path)


if __name__ == "__main__":
    main()
