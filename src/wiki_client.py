"""Thin client for the AoPS wiki MediaWiki API."""

import time
from typing import Any

import requests


class WikiApiError(Exception):
    """Raised when the wiki API cannot be reached or returns an error."""

    pass


API_URL = "https://artofproblemsolving.com/wiki/api.php"
WIKI_BASE_URL = "https://artofproblemsolving.com/wiki/index.php/"

REQUEST_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Macintosh; Intel Mac OS X 10.15; rv:109.0) Gecko/20100101 Firefox/119.0",
    "Accept": "application/json",
    "Accept-Language": "en-US,en;q=0.5",
}


def build_page_link(page: str) -> str:
    """Build the canonical wiki URL for a page title.

    Args:
        page: Wiki page title, with spaces or underscores.

    Returns:
        Full URL to the wiki page.
    """
    return WIKI_BASE_URL + page.replace(" ", "_")


def query_api(
    params: dict[str, Any],
    retry_count: int = 3,
    retry_backoff: float = 5,
) -> dict[str, Any]:
    """Issue a GET against the wiki API and decode the JSON body.

    Args:
        params: Query parameters; format=json is added.
        retry_count: Number of attempts before giving up.
        retry_backoff: Seconds to wait between attempts.

    Returns:
        Decoded JSON response.

    Raises:
        WikiApiError: If every attempt fails or the API reports an error.
    """
    params = {**params, "format": "json"}

    for attempt in range(retry_count):
        try:
            print(f"    [fetch] Attempt {attempt + 1}/{retry_count}: {params.get('action')} {params.get('page', '')}", flush=True)
            response = requests.get(API_URL, params=params, headers=REQUEST_HEADERS, timeout=30)
            response.raise_for_status()
            body = response.json()
        except (requests.RequestException, ValueError) as e:
            print(f"    [fetch] Request failed: {e}", flush=True)
            if attempt < retry_count - 1:
                print(f"    [fetch] Waiting {retry_backoff}s before retry...", flush=True)
                time.sleep(retry_backoff)
                continue
            raise WikiApiError(f"Failed to query {API_URL} after {retry_count} attempts: {e}")

        if "error" in body:
            error = body["error"]
            raise WikiApiError(f"Wiki API error {error.get('code')}: {error.get('info')}")
        return body

    raise WikiApiError(f"Failed to query {API_URL}: retry_count must be positive")


def fetch_wiki_page(page: str, retry_count: int = 3, retry_backoff: float = 5) -> dict[str, Any]:
    """Fetch the parsed form of a wiki page.

    Args:
        page: Wiki page title.
        retry_count: Number of attempts before giving up.
        retry_backoff: Seconds to wait between attempts.

    Returns:
        The "parse" object: title, text {"*": html}, categories, links.

    Raises:
        WikiApiError: If the page cannot be fetched.
    """
    body = query_api(
        {"action": "parse", "page": page},
        retry_count=retry_count,
        retry_backoff=retry_backoff,
    )
    if "parse" not in body:
        raise WikiApiError(f"No parse result for page '{page}'")
    return body["parse"]


def fetch_allpages_batch(
    apcontinue: str | None = None,
    retry_count: int = 3,
    retry_backoff: float = 5,
) -> tuple[list[str], str | None]:
    """Fetch one batch of the wiki page index.

    Args:
        apcontinue: Continuation token from the previous batch, None for the first.
        retry_count: Number of attempts before giving up.
        retry_backoff: Seconds to wait between attempts.

    Returns:
        Tuple of (page titles in this batch, next continuation token or None).
    """
    body = query_api(
        {
            "action": "query",
            "list": "allpages",
            "aplimit": "max",
            "apcontinue": apcontinue or "",
        },
        retry_count=retry_count,
        retry_backoff=retry_backoff,
    )
    pages = body.get("query", {}).get("allpages", [])
    titles = [page["title"] for page in pages]
    next_token = body.get("continue", {}).get("apcontinue")
    return titles, next_token
