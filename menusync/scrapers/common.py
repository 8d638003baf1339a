import logging
import os
import random
import re
import time
from typing import List, Optional

import requests

from .. import config
from ..models import ScrapeResult
from ..store import dated_path, load_json, now_iso, write_json

PRICE_RE = re.compile(r"\$?\s*(\d+(?:\.\d{1,2})?)")

_session = None


def jitter(a=None, b=None):
    a = config.REQUEST_DELAY if a is None else a
    b = a * 2 if b is None else b
    time.sleep(random.uniform(a, b))


def get_session() -> requests.Session:
    global _session
    if _session is None:
        _session = requests.Session()
        _session.headers.update({"User-Agent": config.USER_AGENT})
    return _session


def fetch_page(url: str, tries=3, cool=1.5, headers=None) -> str:
    last = None
    for i in range(tries):
        try:
            resp = get_session().get(url, headers=headers, timeout=config.REQUEST_TIMEOUT)
            if resp.status_code == 429 or resp.status_code >= 500:
                raise requests.HTTPError(f"HTTP {resp.status_code}: {url}", response=resp)
            resp.raise_for_status()
            return resp.text
        except requests.RequestException as e:
            last = e
            status = getattr(getattr(e, "response", None), "status_code", None)
            if status is not None and 400 <= status < 500 and status != 429:
                break
            logging.warning("Fetch attempt %d/%d failed: %s", i + 1, tries, e)
            time.sleep(cool * (2 ** i))
    raise last


def parse_price(text: Optional[str]) -> Optional[float]:
    if not text:
        return None
    m = PRICE_RE.search(text.replace(",", ""))
    if not m:
        return None
    try:
        return float(m.group(1))
    except ValueError:
        return None


def clean_text(s: Optional[str]) -> str:
    if not s:
        return ""
    s = s.replace("\xa0", " ")
    return re.sub(r"\s+", " ", s).strip()


def dedupe_by_name(items):
    seen = set()
    out = []
    for it in items:
        key = it.item_name.lower()
        if key in seen:
            continue
        seen.add(key)
        out.append(it)
    return out


def save_scrape_result(result: ScrapeResult, output_dir: str = None) -> str:
    output_dir = output_dir or config.SCRAPED_DIR
    path = write_json(dated_path(output_dir, result.source), result.to_dict())
    logging.info("Saved %d restaurants (%d items) to %s", len(result.restaurants), result.item_count, path)
    return path


def load_scrape_results(input_dir: str = None) -> List[ScrapeResult]:
    input_dir = input_dir or config.SCRAPED_DIR
    results = []
    if not os.path.isdir(input_dir):
        return results
    for name in sorted(os.listdir(input_dir)):
        if not name.endswith(".json"):
            continue
        results.append(ScrapeResult.from_dict(load_json(os.path.join(input_dir, name))))
    return results
