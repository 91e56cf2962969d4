"""Wiki problem harvest: index sweep, statement extraction and metadata."""

import json
import time
from pathlib import Path
from typing import Any

from src.catalog import list_all_problems
from src.latex import render_math
from src.titles import ContestFamily, estimate_difficulty, parse_title
from src.wiki_client import WikiApiError, fetch_allpages_batch
from src.wiki_problems import DEFAULT_MAX_REDIRECTS, fetch_problem_answer, resolve_problem


def build_record(
    family: ContestFamily,
    page: str,
    max_redirects: int = DEFAULT_MAX_REDIRECTS,
    fetch_answers: bool = False,
    render: bool = False,
    retry_count: int = 3,
    retry_backoff: float = 5,
) -> dict[str, Any] | None:
    """Harvest a single problem page into an output record.

    Args:
        family: Contest family the page was catalogued under.
        page: Wiki page title.
        max_redirects: Maximum redirect hops to follow.
        fetch_answers: Also look the answer up on the answer key page.
        render: Also store the statement with its math typeset.
        retry_count: Attempts per page fetch.
        retry_backoff: Seconds to wait between attempts.

    Returns:
        Problem record, or None if the page has no problem statement.

    Raises:
        WikiApiError: If a page cannot be fetched.
    """
    problem = resolve_problem(
        page,
        max_redirects=max_redirects,
        retry_count=retry_count,
        retry_backoff=retry_backoff,
    )
    if problem is None:
        return None

    title = parse_title(family, problem.page_title) or parse_title(family, page)

    record: dict[str, Any] = {
        "source_page": page,
        "page_title": problem.page_title,
        "link": problem.link,
        "category": problem.category,
        "family": family.value,
        "year": title.year if title else None,
        "contest": title.contest_name if title else None,
        "number": title.index if title else None,
        "difficulty": estimate_difficulty(family, title.year, title.index) if title else None,
        "problem": problem.problem,
        "answer": None,
    }

    if fetch_answers and title:
        record["answer"] = fetch_problem_answer(
            title.year,
            title.contest_name,
            title.index,
            retry_count=retry_count,
            retry_backoff=retry_backoff,
        )

    if render:
        record["problem_html"] = render_math(problem.problem)

    return record


def load_existing(output_file: Path) -> list[dict[str, Any]]:
    """Load records from a previous run's output, if any."""
    output_file = Path(output_file)
    if not output_file.exists():
        return []

    records = []
    with open(output_file) as f:
        for line in f:
            if line.strip():
                records.append(json.loads(line))
    return records


def harvest_wiki_problems(
    config: dict[str, Any],
    output_file: Path | None = None,
) -> tuple[list[dict[str, Any]], dict[str, int]]:
    """Sweep the wiki index and harvest every problem of the configured families.

    Records already present in output_file are kept and not fetched again.

    Args:
        config: Configuration dictionary with families and options.
        output_file: Output of a previous run to resume from.

    Returns:
        Tuple of (list of problem records, statistics dict).
    """
    families = [ContestFamily(f) for f in config["families"]]
    request_delay = config.get("request_delay_seconds", 1)
    retry_count = config.get("retry_count", 3)
    retry_backoff = config.get("retry_backoff_seconds", 5)
    max_redirects = config.get("max_redirects", DEFAULT_MAX_REDIRECTS)
    fetch_answers = config.get("fetch_answers", False)
    render = config.get("render", False)
    limit = config.get("limit")

    stats = {"found": 0, "skipped": 0, "not_found": 0, "errors": 0}

    results = load_existing(output_file) if output_file is not None else []
    existing_pages = {record.get("source_page", record["page_title"]) for record in results}
    if results:
        print(f"Resuming: found {len(results)} existing problems", flush=True)

    print("Sweeping wiki page index...", flush=True)
    catalog = list_all_problems(
        lambda token: fetch_allpages_batch(token, retry_count=retry_count, retry_backoff=retry_backoff)
    )

    for family in families:
        pages = catalog.bucket(family)
        if limit is not None:
            pages = pages[:limit]

        print(f"\n=== {family.value} ({len(pages)} problems) ===", flush=True)

        for i, page in enumerate(pages):
            if page in existing_pages:
                print(f"[{i + 1}/{len(pages)}] Skipping {page} (already harvested)", flush=True)
                stats["skipped"] += 1
                continue

            print(f"[{i + 1}/{len(pages)}] Harvesting {page}...", flush=True)
            time.sleep(request_delay)
            try:
                record = build_record(
                    family,
                    page,
                    max_redirects=max_redirects,
                    fetch_answers=fetch_answers,
                    render=render,
                    retry_count=retry_count,
                    retry_backoff=retry_backoff,
                )
            except WikiApiError as e:
                stats["errors"] += 1
                print(f"  Error: {e}", flush=True)
                continue

            if record is None:
                stats["not_found"] += 1
                print("  No problem statement found", flush=True)
                continue

            results.append(record)
            existing_pages.add(page)
            stats["found"] += 1
            print(f"  Found: difficulty {record['difficulty']}", flush=True)

    print("\n=== Harvest Summary ===", flush=True)
    print(f"  Found:     {stats['found']}", flush=True)
    print(f"  Skipped:   {stats['skipped']}", flush=True)
    print(f"  Not found: {stats['not_found']}", flush=True)
    print(f"  Errors:    {stats['errors']}", flush=True)

    return results, stats


def save_to_jsonl(records: list[dict[str, Any]], output_path: Path) -> None:
    """Save records to JSONL file.

    Args:
        records: List of JSON-serializable dictionaries.
        output_path: Path to output file.
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, "w") as f:
        for record in records:
            f.write(json.dumps(record) + "\n")
