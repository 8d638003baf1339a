import logging
import random
import re
import subprocess
from typing import Optional

import undetected_chromedriver as uc

USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
]
PAGELOAD_TIMEOUT = 30
SCRIPT_TIMEOUT = 20
CHROME_BINARIES = ("google-chrome", "chromium")


def chrome_major(binaries=CHROME_BINARIES) -> Optional[int]:
    """Major version of the first Chrome on PATH, or None to let uc detect it."""
    for cmd in binaries:
        try:
            out = subprocess.run([cmd, "--version"], capture_output=True, text=True, check=True).stdout
        except (OSError, subprocess.CalledProcessError):
            continue
        match = re.search(r"(\d+)\.", out)
        if match:
            return int(match.group(1))
    return None


def new_driver(headless: bool = True):
    ua = random.choice(USER_AGENTS)
    logging.info("Launching browser: UA=%s | Headless=%s", ua, headless)
    opts = uc.ChromeOptions()
    if headless:
        opts.add_argument("--headless=new")
    opts.add_argument("--disable-blink-features=AutomationControlled")
    opts.add_argument("--no-sandbox")
    opts.add_argument("--disable-dev-shm-usage")
    opts.add_argument("--disable-gpu")
    opts.add_argument("--user-agent=" + ua)
    opts.add_argument("--window-size=1280,800")
    driver = uc.Chrome(options=opts, version_main=chrome_major())
    driver.set_page_load_timeout(PAGELOAD_TIMEOUT)
    driver.set_script_timeout(SCRIPT_TIMEOUT)
    return driver


def quit_driver(driver):
    if driver is None:
        return
    try:
        driver.quit()
    except Exception as e:
        logging.debug("driver.quit failed: %s", e)
