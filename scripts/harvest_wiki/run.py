#!/usr/bin/env python
"""Entry point for harvesting AMC/AIME problems from the AoPS wiki.

Usage:
    python scripts/harvest_wiki/run.py

Configuration is auto-loaded from config.yaml in the same directory.
"""

import logging
from pathlib import Path
import sys

# Add project root to path for imports
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.config import load_config, validate_harvest_config
from src.harvest import harvest_wiki_problems, save_to_jsonl

# Script directory for auto-loading config
SCRIPT_DIR = Path(__file__).resolve().parent


def get_config_path() -> Path:
    """Get path to config.yaml in the script directory."""
    return SCRIPT_DIR / "config.yaml"


def main() -> None:
    """Main entry point for the wiki harvest script."""
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")

    config_path = get_config_path()
    config = load_config(config_path, validator=validate_harvest_config)

    output_dir = Path(config["output_dir"])
    if not output_dir.is_absolute():
        output_dir = SCRIPT_DIR / output_dir
    output_path = output_dir / config["output_filename"]

    print("Starting wiki harvest...", flush=True)
    print(f"Output: {output_path}", flush=True)

    problems, stats = harvest_wiki_problems(config, output_file=output_path)
    save_to_jsonl(problems, output_path)

    print(f"\nDone! Saved {len(problems)} problems to {output_path}", flush=True)
    print(
        f"Session: {stats['found']} new, {stats['skipped']} resumed, "
        f"{stats['not_found']} not found, {stats['errors']} errors",
        flush=True,
    )


if __name__ == "__main__":
    main()
