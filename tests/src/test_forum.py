"""Tests for src/forum.py - AoPS forum contest thread scraping."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from bs4 import BeautifulSoup

from src.forum import (
    ForumProblem,
    ForumScraperError,
    build_post_permalink,
    collect_thread_links,
    fetch_page,
    find_thread_title,
    find_version_label,
    parse_contest_thread,
    problem_to_dict,
    scrape_contest_index,
    scrape_contest_threads,
)

THREAD_URL = "https://artofproblemsolving.com/community/c3249207_2023_imo"

THREAD_HTML = """<html><body>
<h1 class="katex">x</h1>
<h1>2023 IMO</h1>
<div class="cmty-view-post-item" data-post-id="111">
  <span class="username">alice</span>
  <div class="cmty-view-post-item-text">Problem 1. Determine all composite integers n&gt;1 such that
  <img class="latex" alt="$d_1 \\mid d_2 + d_3$" src="//latex.artofproblemsolving.com/a.png" /> holds.</div>
</div>
<div class="cmty-view-post-item" data-post-id="222">
  <span class="username">bob</span>
  <div class="cmty-view-post-item-text">bump</div>
</div>
<div class="cmty-view-post-item" id="#p333">
  <div class="cmty-view-post-item-text">Day 2 Problem 4. Let x_1, x_2, ..., x_2023 be distinct reals.</div>
</div>
<div class="cmty-view-post-item" data-post-id="444">
  <span class="username">carol</span>
  <div class="cmty-view-post-item-text">P2 Let ABC be an acute-angled triangle with AB &lt; AC.</div>
</div>
</body></html>"""

INDEX_HTML = """<html><body>
<a class="cmty-full-cell-link" href="/community/c13_contests">Contests</a>
<a class="cmty-full-cell-link" href="/community/c3249207_2023_imo">2023 IMO</a>
<a class="cmty-full-cell-link" href="/community/c3249207_2023_imo">2023 IMO</a>
<a class="cmty-full-cell-link" href="/community/c3249207_2023_imo/">2023 IMO</a>
<a class="cmty-full-cell-link">no link</a>
<a class="cmty-full-cell-link" href="/community/c3223786_2023_usamo">2023 USAMO</a>
</body></html>"""


def _mock_playwright(goto_response=MagicMock(), content="<html>rendered</html>"):
    """Build an async_playwright() replacement and return (context manager, page, browser)."""
    page = MagicMock()
    page.goto = AsyncMock(return_value=goto_response)
    page.wait_for_selector = AsyncMock()
    page.content = AsyncMock(return_value=content)

    browser = MagicMock()
    browser.new_page = AsyncMock(return_value=page)
    browser.close = AsyncMock()

    playwright = MagicMock()
    playwright.firefox.launch = AsyncMock(return_value=browser)

    context = MagicMock()
    context.__aenter__ = AsyncMock(return_value=playwright)
    context.__aexit__ = AsyncMock(return_value=False)
    return context, page, browser


class TestFetchPage:
    """Tests for fetch_page function."""

    def test_returns_rendered_content(self):
        """Navigate, wait for the network to settle, and return the DOM."""
        context, page, browser = _mock_playwright()

        with patch("src.forum.async_playwright", return_value=context):
            result = asyncio.run(fetch_page(THREAD_URL))

        assert result == "<html>rendered</html>"
        page.goto.assert_awaited_once_with(THREAD_URL, wait_until="networkidle")
        page.wait_for_selector.assert_not_awaited()
        browser.close.assert_awaited_once()

    def test_waits_for_selector(self):
        """An optional selector is awaited before reading the DOM."""
        context, page, _ = _mock_playwright()

        with patch("src.forum.async_playwright", return_value=context):
            asyncio.run(fetch_page(THREAD_URL, wait_for_selector=".cmty-view-post-item-text"))

        page.wait_for_selector.assert_awaited_once_with(".cmty-view-post-item-text")

    def test_no_response_raises_and_closes(self):
        """Failed navigation raises and still closes the browser."""
        context, page, browser = _mock_playwright(goto_response=None)

        with patch("src.forum.async_playwright", return_value=context):
            with pytest.raises(ForumScraperError):
                asyncio.run(fetch_page(THREAD_URL))

        page.content.assert_not_awaited()
        browser.close.assert_awaited_once()


class TestBuildPostPermalink:
    """Tests for build_post_permalink function."""

    def test_plain_id_becomes_fragment(self):
        """A bare id is appended as a fragment."""
        assert build_post_permalink(THREAD_URL, "111") == f"{THREAD_URL}#111"

    def test_fragment_appended_as_is(self):
        """Ids that already start with # or / are appended directly."""
        assert build_post_permalink(THREAD_URL, "#p333") == f"{THREAD_URL}#p333"
        assert build_post_permalink(THREAD_URL, "/p333") == f"{THREAD_URL}/p333"

    def test_no_id_is_thread_url(self):
        """Without an id the link is the thread itself."""
        assert build_post_permalink(THREAD_URL, None) == THREAD_URL


class TestFindVersionLabel:
    """Tests for find_version_label function."""

    def test_problem_number(self):
        """Find "Problem N" labels."""
        assert find_version_label("Problem 3. Prove that") == "Problem 3"

    def test_short_label(self):
        """Find "PN" labels."""
        assert find_version_label("P2 Let ABC be a triangle") == "P2"

    def test_no_label(self):
        """Words starting with P are not labels."""
        assert find_version_label("Prove that every integer works.") is None


class TestFindThreadTitle:
    """Tests for find_thread_title function."""

    def test_skips_math_headings(self):
        """Typeset math headings are not thread titles."""
        soup = BeautifulSoup(THREAD_HTML, "html.parser")
        assert find_thread_title(soup) == "2023 IMO"

    def test_no_title(self):
        """Pages without a heading have no title."""
        assert find_thread_title(BeautifulSoup("<div></div>", "html.parser")) is None


class TestParseContestThread:
    """Tests for parse_contest_thread function."""

    def test_extracts_substantive_posts(self):
        """Short replies are skipped, problems kept in post order."""
        problems = parse_contest_thread(THREAD_HTML, THREAD_URL)

        assert len(problems) == 3
        assert all(isinstance(p, ForumProblem) for p in problems)
        assert [p.post_id for p in problems] == ["111", "#p333", "444"]

    def test_post_metadata(self):
        """Author, permalink and label come from the post."""
        first = parse_contest_thread(THREAD_HTML, THREAD_URL)[0]

        assert first.author == "alice"
        assert first.link == f"{THREAD_URL}#111"
        assert first.version == "Problem 1"
        assert first.images == ["//latex.artofproblemsolving.com/a.png"]
        assert first.text.startswith("Problem 1. Determine")

    def test_post_math_serialized(self):
        """Math images in the post become math tags."""
        first = parse_contest_thread(THREAD_HTML, THREAD_URL)[0]

        tag = BeautifulSoup(first.html, "html.parser").find("latex")
        assert tag is not None
        assert tag.get_text() == r"d_1 \mid d_2 + d_3"

    def test_post_without_author(self):
        """Posts without an author element have no author."""
        third = parse_contest_thread(THREAD_HTML, THREAD_URL)[1]

        assert third.author is None
        assert third.link == f"{THREAD_URL}#p333"
        assert third.version == "Problem 4"

    def test_every_problem_stamped_with_exam(self):
        """The thread title is stamped on every problem."""
        problems = parse_contest_thread(THREAD_HTML, THREAD_URL)

        assert {p.exam for p in problems} == {"2023 IMO"}
        assert len({p.extracted_at for p in problems}) == 1

    def test_no_posts(self):
        """A page without posts has no problems."""
        assert parse_contest_thread("<html><h1>Empty</h1></html>", THREAD_URL) == []

    def test_empty_post_id_kept(self):
        """An empty data-post-id is used as is instead of falling back to id."""
        html = """<div class="cmty-view-post-item" data-post-id="" id="p999">
  <div class="cmty-view-post-item-text">Problem 5. Find all functions f from reals to reals.</div>
</div>"""
        problem = parse_contest_thread(html, THREAD_URL)[0]

        assert problem.post_id == ""
        assert problem.link == THREAD_URL


class TestCollectThreadLinks:
    """Tests for collect_thread_links function."""

    def test_skips_first_and_dedupes(self):
        """The header link is skipped and exact duplicates dropped."""
        urls = collect_thread_links(INDEX_HTML)

        assert urls == [
            "https://artofproblemsolving.com/community/c3249207_2023_imo",
            "https://artofproblemsolving.com/community/c3249207_2023_imo/",
            "https://artofproblemsolving.com/community/c3223786_2023_usamo",
        ]

    def test_empty_index(self):
        """An index without links has no threads."""
        assert collect_thread_links("<html></html>") == []


class TestScrapeContestThreads:
    """Tests for scrape_contest_threads function."""

    def test_failed_thread_counted_and_skipped(self):
        """A thread that fails to load does not stop the others."""
        mock_fetch = AsyncMock(side_effect=[ForumScraperError("timeout"), THREAD_HTML])

        with patch("src.forum.fetch_page", mock_fetch):
            problems, stats = asyncio.run(
                scrape_contest_threads(["https://example.com/bad", THREAD_URL])
            )

        assert stats == {"threads": 1, "problems": 3, "errors": 1}
        assert len(problems) == 3
        assert problems[0].link == f"{THREAD_URL}#111"

    def test_wait_selector_passed_through(self):
        """The configured selector is used for every thread."""
        mock_fetch = AsyncMock(return_value=THREAD_HTML)

        with patch("src.forum.fetch_page", mock_fetch):
            asyncio.run(scrape_contest_threads([THREAD_URL], wait_for_selector=".post"))

        mock_fetch.assert_awaited_once_with(THREAD_URL, wait_for_selector=".post")


class TestScrapeContestIndex:
    """Tests for scrape_contest_index function."""

    def test_scrapes_every_listed_thread(self):
        """Every thread on the index is loaded and parsed."""
        mock_fetch = AsyncMock(side_effect=[INDEX_HTML, THREAD_HTML, THREAD_HTML, THREAD_HTML])

        with patch("src.forum.fetch_page", mock_fetch):
            problems, stats = asyncio.run(
                scrape_contest_index("https://artofproblemsolving.com/community/c13_contests")
            )

        assert mock_fetch.await_count == 4
        assert stats == {"threads": 3, "problems": 9, "errors": 0}
        assert len(problems) == 9


class TestProblemToDict:
    """Tests for problem_to_dict function."""

    def test_all_fields_present(self):
        """Every field is serialized."""
        problem = ForumProblem(
            html="<p>x</p>",
            text="x",
            link=THREAD_URL,
            exam="2023 IMO",
            images=["a.png"],
            extracted_at="2023-07-10T00:00:00+00:00",
        )

        assert problem_to_dict(problem) == {
            "exam": "2023 IMO",
            "version": None,
            "author": None,
            "post_id": None,
            "html": "<p>x</p>",
            "text": "x",
            "link": THREAD_URL,
            "images": ["a.png"],
            "extracted_at": "2023-07-10T00:00:00+00:00",
        }
