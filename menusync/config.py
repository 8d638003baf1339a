import logging
import os
import sys

from dotenv import load_dotenv

load_dotenv(".env.local")
load_dotenv()

SUPABASE_URL = os.getenv("SUPABASE_URL", "").strip()
SUPABASE_SERVICE_ROLE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY", "").strip()
SUPABASE_ANON_KEY = os.getenv("SUPABASE_ANON_KEY", "").strip()

DATA_DIR = os.getenv("DATA_DIR", "data")
SCRAPED_DIR = os.getenv("SCRAPED_DIR", os.path.join(DATA_DIR, "scraped"))
PENDING_DIR = os.getenv("PENDING_DIR", os.path.join(DATA_DIR, "pending"))
APPROVED_DIR = os.getenv("APPROVED_DIR", os.path.join(DATA_DIR, "approved"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"

USER_AGENT = os.getenv("SCRAPER_USER_AGENT", "DiabetesGuide/1.0 (menu data for diabetes meal planning)")
REQUEST_TIMEOUT = int(os.getenv("REQUEST_TIMEOUT", "30"))
REQUEST_DELAY = float(os.getenv("REQUEST_DELAY", "0.5"))
HEADLESS = os.getenv("HEADLESS", "1") not in ("0", "false", "False")

PAGE_SIZE = int(os.getenv("PAGE_SIZE", "1000"))
INSERT_BATCH = 500

RESTAURANT_MATCH_THRESHOLD = 70
ITEM_MATCH_THRESHOLD = 75
PRICE_CONFLICT_RATIO = 0.15

ESTIMATE_TOP_K = 3
ESTIMATE_MIN_SIMILARITY = 50
ESTIMATE_MIN_CATEGORY_POOL = 5
MANUAL_REVIEW_CONFIDENCE = 50
CORRECTED_CONFIDENCE_CAP = 45

META_CACHE_SECONDS = 900
SEARCH_PER_PAGE = 100


def configure_logging(level_name=None, log_file=None):
    level = getattr(logging, (level_name or LOG_LEVEL).upper(), logging.INFO)
    handlers = [logging.StreamHandler(stream=sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers)
