#!/usr/bin/env python
"""Entry point for scraping olympiad contest threads from the AoPS forum.

Usage:
    python scripts/scrape_forum/run.py

Configuration is auto-loaded from config.yaml in the same directory.
"""

import asyncio
import logging
from pathlib import Path
import sys

# Add project root to path for imports
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.config import load_config, validate_forum_config
from src.forum import FETCH_ERRORS, problem_to_dict, scrape_contest_index, scrape_contest_threads
from src.harvest import save_to_jsonl

LOGGER = logging.getLogger("scrape_forum")

# Script directory for auto-loading config
SCRIPT_DIR = Path(__file__).resolve().parent


def get_config_path() -> Path:
    """Get path to config.yaml in the script directory."""
    return SCRIPT_DIR / "config.yaml"


async def run(config: dict) -> tuple[list, dict[str, int]]:
    """Scrape every configured thread and contest index in turn."""
    wait_for_selector = config.get("wait_for_selector")
    problems = []
    stats = {"threads": 0, "problems": 0, "errors": 0}

    thread_urls = config.get("thread_urls") or []
    if thread_urls:
        thread_problems, thread_stats = await scrape_contest_threads(
            thread_urls, wait_for_selector=wait_for_selector
        )
        problems.extend(thread_problems)
        for key in stats:
            stats[key] += thread_stats[key]

    for index_url in config.get("index_urls") or []:
        try:
            index_problems, index_stats = await scrape_contest_index(
                index_url, wait_for_selector=wait_for_selector
            )
        except FETCH_ERRORS as e:
            LOGGER.error("Failed to load contest index %s: %s", index_url, e)
            stats["errors"] += 1
            continue
        problems.extend(index_problems)
        for key in stats:
            stats[key] += index_stats[key]

    return problems, stats


def main() -> None:
    """Main entry point for the forum scraper script."""
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")

    config_path = get_config_path()
    config = load_config(config_path, validator=validate_forum_config)

    print("Starting forum scraper...", flush=True)
    problems, stats = asyncio.run(run(config))

    output_dir = Path(config["output_dir"])
    if not output_dir.is_absolute():
        output_dir = SCRIPT_DIR / output_dir

    output_path = output_dir / config["output_filename"]
    save_to_jsonl([problem_to_dict(p) for p in problems], output_path)

    print(f"\nDone! Saved {len(problems)} problems to {output_path}", flush=True)
    print(
        f"Session: {stats['threads']} threads, {stats['problems']} problems, "
        f"{stats['errors']} errors",
        flush=True,
    )


if __name__ == "__main__":
    main()
