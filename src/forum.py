"""AoPS community forum scraping for olympiad contest threads.

Forum pages are rendered client side, so they are loaded in a headless
browser before parsing.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from bs4 import BeautifulSoup, Tag
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from src.latex import serialize_math

LOGGER = logging.getLogger(__name__)

AOPS_ORIGIN = "https://artofproblemsolving.com"

POST_TEXT_SELECTOR = ".cmty-view-post-item-text"
POST_ITEM_CLASS = "cmty-view-post-item"
AUTHOR_SELECTOR = ".username, .author, .poster, .message-user a, .user-name"
THREAD_TITLE_SELECTOR = "h1:not(.katex), .thread-title, .topic-title, #content h1"
THREAD_LINK_SELECTOR = ".cmty-full-cell-link"

# Shorter posts are replies like "bump", not problems
MIN_POST_LENGTH = 20

VERSION_PATTERNS = (
    re.compile(r"\bProblem\s*#?\s*(\d{1,2})\b", re.IGNORECASE),
    re.compile(r"\bP(?:roblem)?\s*(\d{1,2})\b", re.IGNORECASE),
    re.compile(r"\bDay\s*(\d)\s*Problem\s*(\d{1,2})\b", re.IGNORECASE),
)


class ForumScraperError(Exception):
    """Raised when a forum page cannot be loaded."""

    pass


FETCH_ERRORS = (ForumScraperError, PlaywrightError)


@dataclass
class ForumProblem:
    """A problem posted in a forum contest thread."""

    html: str
    text: str
    link: str
    exam: str | None = None
    version: str | None = None
    author: str | None = None
    post_id: str | None = None
    images: list[str] = field(default_factory=list)
    extracted_at: str = ""


async def fetch_page(url: str, wait_for_selector: str | None = None) -> str:
    """Load a page in headless Firefox and return the rendered HTML.

    Args:
        url: Page URL.
        wait_for_selector: Optional CSS selector to wait for after the
            network goes idle.

    Returns:
        The rendered document HTML.

    Raises:
        ForumScraperError: If navigation returns no response.
        playwright.async_api.Error: On navigation failure or timeout.
    """
    async with async_playwright() as playwright:
        browser = await playwright.firefox.launch(headless=True)
        try:
            page = await browser.new_page()
            response = await page.goto(url, wait_until="networkidle")
            if response is None:
                raise ForumScraperError(f"Failed to navigate to {url}")

            if wait_for_selector:
                await page.wait_for_selector(wait_for_selector)

            return await page.content()
        finally:
            await browser.close()


def build_post_permalink(base_url: str, post_id: str | None) -> str:
    """Build a link to a single post within a thread.

    Args:
        base_url: Thread URL.
        post_id: Post identifier, possibly already a fragment or path.

    Returns:
        Permalink to the post, or the thread URL if there is no id.
    """
    if not post_id:
        return base_url
    if post_id.startswith("#") or post_id.startswith("/"):
        return f"{base_url}{post_id}"
    return f"{base_url}#{post_id}"


def find_version_label(text: str) -> str | None:
    """Find a problem label like "Problem 3" or "P3" in post text."""
    for pattern in VERSION_PATTERNS:
        match = pattern.search(text)
        if match:
            return match.group(0)
    return None


def _find_post_item(post: Tag) -> Tag | None:
    if POST_ITEM_CLASS in post.get("class", []):
        return post
    return post.find_parent(class_=POST_ITEM_CLASS)


def _find_author(item: Tag | None) -> str | None:
    if item is None:
        return None
    author_el = item.select_one(AUTHOR_SELECTOR)
    if author_el is None:
        return None
    return author_el.get_text().strip() or None


def _find_post_id(item: Tag | None) -> str | None:
    if item is None:
        return None
    # An empty data-post-id is still the post's id; only a missing one falls back
    post_id = item.get("data-post-id")
    if post_id is None:
        post_id = item.get("id")
    return post_id


def find_thread_title(soup: BeautifulSoup) -> str | None:
    """Read the thread title from the first heading-like element."""
    for el in soup.select(THREAD_TITLE_SELECTOR):
        title = el.get_text().strip()
        if title:
            return title
    return None


def parse_contest_thread(page_html: str, base_url: str) -> list[ForumProblem]:
    """Extract every substantive post of a contest thread as a problem.

    Posts are extracted first, then every problem is stamped with the
    thread title.

    Args:
        page_html: Fully rendered thread HTML.
        base_url: Thread URL, used to build post permalinks.

    Returns:
        Problems in post order.
    """
    soup = BeautifulSoup(page_html, "html.parser")
    extracted_at = datetime.now(timezone.utc).isoformat()

    problems = []
    for post in soup.select(POST_TEXT_SELECTOR):
        text = post.get_text().strip()
        if len(text) < MIN_POST_LENGTH:
            continue

        item = _find_post_item(post)
        post_id = _find_post_id(item)
        images = [img.get("src") for img in post.find_all("img") if img.get("src")]

        problems.append(
            ForumProblem(
                html=serialize_math(post.decode_contents()),
                text=text,
                link=build_post_permalink(base_url, post_id),
                version=find_version_label(text),
                author=_find_author(item),
                post_id=post_id,
                images=images,
                extracted_at=extracted_at,
            )
        )

    exam = find_thread_title(soup)
    if exam:
        for problem in problems:
            problem.exam = exam

    return problems


def collect_thread_links(index_html: str) -> list[str]:
    """List the contest thread URLs on a forum contest index page.

    The first link is the index's own header cell and is skipped. URLs are
    de-duplicated by exact string.

    Args:
        index_html: Fully rendered index page HTML.

    Returns:
        Absolute thread URLs in page order.
    """
    soup = BeautifulSoup(index_html, "html.parser")
    urls: list[str] = []
    for link in soup.select(THREAD_LINK_SELECTOR)[1:]:
        href = link.get("href")
        if not href:
            continue
        url = AOPS_ORIGIN + href
        if url in urls:
            continue
        urls.append(url)
    return urls


async def scrape_contest_thread(url: str, wait_for_selector: str | None = None) -> list[ForumProblem]:
    """Load one contest thread and parse its problems."""
    page_html = await fetch_page(url, wait_for_selector=wait_for_selector)
    return parse_contest_thread(page_html, url)


async def scrape_contest_threads(
    urls: list[str],
    wait_for_selector: str | None = None,
) -> tuple[list[ForumProblem], dict[str, int]]:
    """Scrape several contest threads one after another.

    Threads that fail to load are counted and skipped.

    Args:
        urls: Thread URLs.
        wait_for_selector: Optional CSS selector to wait for on each page.

    Returns:
        Tuple of (problems from every thread, statistics dict).
    """
    problems: list[ForumProblem] = []
    stats = {"threads": 0, "problems": 0, "errors": 0}

    for i, url in enumerate(urls):
        LOGGER.info("[%d/%d] Scraping %s", i + 1, len(urls), url)
        try:
            thread_problems = await scrape_contest_thread(url, wait_for_selector=wait_for_selector)
        except FETCH_ERRORS as e:
            LOGGER.error("Failed to scrape %s: %s", url, e)
            stats["errors"] += 1
            continue

        stats["threads"] += 1
        stats["problems"] += len(thread_problems)
        problems.extend(thread_problems)

    return problems, stats


async def scrape_contest_index(
    url: str,
    wait_for_selector: str | None = None,
) -> tuple[list[ForumProblem], dict[str, int]]:
    """Scrape every contest thread listed on a forum contest index page.

    Raises:
        ForumScraperError: If the index page itself cannot be loaded.
        playwright.async_api.Error: On navigation failure or timeout.
    """
    index_html = await fetch_page(url)
    urls = collect_thread_links(index_html)
    LOGGER.info("Found %d threads on %s", len(urls), url)
    return await scrape_contest_threads(urls, wait_for_selector=wait_for_selector)


def problem_to_dict(problem: ForumProblem) -> dict[str, Any]:
    """Convert a ForumProblem to a JSON-serializable dictionary."""
    return {
        "exam": problem.exam,
        "version": problem.version,
        "author": problem.author,
        "post_id": problem.post_id,
        "html": problem.html,
        "text": problem.text,
        "link": problem.link,
        "images": list(problem.images),
        "extracted_at": problem.extracted_at,
    }
