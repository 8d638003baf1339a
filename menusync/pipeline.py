#!/usr/bin/env python3
import argparse
import logging
import subprocess
import sys

from . import config


def run(cmd, allow_fail=False):
    logging.info("Running: %s", " ".join(cmd))
    result = subprocess.run(cmd)
    if result.returncode != 0:
        logging.error("Command failed with code %d", result.returncode)
        if not allow_fail:
            sys.exit(result.returncode)
    return result.returncode


def module_cmd(module, *extra):
    return [sys.executable, "-m", f"menusync.{module}", *extra]


def build_steps(args):
    """Ordered (name, cmd) pairs for the steps this run will execute."""
    log = ["--log", args.log]
    steps = []
    if not args.skip_scrape:
        cmd = module_cmd("scrapers", *log, "--log-file", args.scrape_log)
        for source in args.source or []:
            cmd += ["--source", source]
        if args.no_headless:
            cmd.append("--no-headless")
        steps.append(("scrape", cmd))
    if not args.skip_merge:
        steps.append(("merge", module_cmd("merge", *log)))
    if not args.skip_estimate:
        steps.append(("estimate", module_cmd("estimate", *log)))
    if not args.skip_report:
        steps.append(("report", module_cmd("report", *log)))
    if args.approve:
        cmd = module_cmd("approve", *log)
        cmd += ["--min-confidence", str(args.min_confidence)] if args.min_confidence is not None else ["--all"]
        steps.append(("approve", cmd))
    return steps


def parse_args(argv=None):
    ap = argparse.ArgumentParser(description="Scrape, merge, estimate and report park menus")
    ap.add_argument("--source", action="append", help="Scraper source (repeatable). Default: all")
    ap.add_argument("--no-headless", action="store_true")
    ap.add_argument("--scrape-log", default="scraper.log")
    ap.add_argument("--skip-scrape", action="store_true")
    ap.add_argument("--skip-merge", action="store_true")
    ap.add_argument("--skip-estimate", action="store_true")
    ap.add_argument("--skip-report", action="store_true")
    ap.add_argument("--approve", action="store_true", help="Import new items after the report")
    ap.add_argument("--min-confidence", type=int, default=None, help="With --approve, only import estimates at or above this confidence")
    ap.add_argument("--log", default=config.LOG_LEVEL)
    return ap.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    config.configure_logging(args.log)
    for name, cmd in build_steps(args):
        logging.info("=== %s ===", name)
        run(cmd, allow_fail=False)
    logging.info("Pipeline complete")


if __name__ == "__main__":
    main()
