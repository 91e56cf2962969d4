"""Full sweep of the wiki page index, bucketed by contest family."""

import json
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Callable

from src.titles import ContestFamily, classify_title
from src.wiki_client import fetch_allpages_batch

FetchBatch = Callable[[str | None], tuple[list[str], str | None]]


@dataclass
class Catalog:
    """Problem page titles per contest family, in index order."""

    amc8: list[str] = field(default_factory=list)
    amc10: list[str] = field(default_factory=list)
    amc12: list[str] = field(default_factory=list)
    aime: list[str] = field(default_factory=list)

    def bucket(self, family: ContestFamily | str) -> list[str]:
        return getattr(self, ContestFamily(family).value)

    def add_titles(self, titles: list[str]) -> int:
        """Classify titles into their buckets.

        Args:
            titles: Wiki page titles.

        Returns:
            Number of titles that matched a contest family.
        """
        added = 0
        for title in titles:
            family = classify_title(title)
            if family is None:
                continue
            self.bucket(family).append(title)
            added += 1
        return added

    def total(self) -> int:
        return len(self.amc8) + len(self.amc10) + len(self.amc12) + len(self.aime)


def list_all_problems(fetch_batch: FetchBatch = fetch_allpages_batch) -> Catalog:
    """Sweep the whole wiki page index and bucket the problem pages.

    Requests are issued one at a time, each carrying the continuation token
    of the previous response, until a response has no token.

    Args:
        fetch_batch: Callable taking a continuation token and returning
            (titles, next token).

    Returns:
        Catalog of problem page titles.
    """
    catalog = Catalog()
    token = None
    batch_count = 0

    while True:
        titles, token = fetch_batch(token)
        batch_count += 1
        added = catalog.add_titles(titles)
        print(f"  [index] Batch {batch_count}: {len(titles)} pages, {added} problems", flush=True)
        if not token:
            break

    print(f"  [index] Done: {catalog.total()} problems in {batch_count} batches", flush=True)
    return catalog


def save_catalog(catalog: Catalog, output_path: Path) -> None:
    """Save a catalog as a single JSON object.

    Args:
        catalog: Catalog to save.
        output_path: Path to output file.
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, "w") as f:
        json.dump(asdict(catalog), f, indent=2)
