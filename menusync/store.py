import glob
import json
import os
from datetime import datetime, timezone
from typing import Optional


def today() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d")


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def dated_path(directory: str, prefix: str, ext: str = "json") -> str:
    return os.path.join(directory, f"{prefix}-{today()}.{ext}")


def latest(directory: str, prefix: str) -> Optional[str]:
    """Newest ``<prefix>-*.json`` in directory by name (dates sort lexically)."""
    files = sorted(glob.glob(os.path.join(directory, f"{prefix}-*.json")))
    return files[-1] if files else None


def load_json(path: str):
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def write_json(path: str, data) -> str:
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, indent=2)
    return path


def write_text(path: str, text: str) -> str:
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(text)
    return path
