#!/usr/bin/env python
"""Entry point for sweeping the AoPS wiki index into a problem catalog.

Usage:
    python scripts/build_catalog/run.py

Configuration is auto-loaded from config.yaml in the same directory.
"""

from pathlib import Path
import sys

# Add project root to path for imports
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.catalog import list_all_problems, save_catalog
from src.config import load_config, validate_catalog_config

# Script directory for auto-loading config
SCRIPT_DIR = Path(__file__).resolve().parent


def get_config_path() -> Path:
    """Get path to config.yaml in the script directory."""
    return SCRIPT_DIR / "config.yaml"


def main() -> None:
    """Main entry point for the catalog sweep script."""
    config_path = get_config_path()
    config = load_config(config_path, validator=validate_catalog_config)

    print("Starting wiki index sweep...", flush=True)
    catalog = list_all_problems()

    output_dir = Path(config["output_dir"])
    if not output_dir.is_absolute():
        output_dir = SCRIPT_DIR / output_dir

    output_path = output_dir / config["output_filename"]
    save_catalog(catalog, output_path)

    print(
        f"\nDone! Saved {catalog.total()} problems to {output_path} "
        f"(AMC 8: {len(catalog.amc8)}, AMC 10: {len(catalog.amc10)}, "
        f"AMC 12: {len(catalog.amc12)}, AIME: {len(catalog.aime)})",
        flush=True,
    )


if __name__ == "__main__":
    main()
