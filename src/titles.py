"""Contest title parsing and difficulty estimation for AMC/AIME wiki pages."""

import re
from dataclasses import dataclass
from enum import Enum
from typing import NamedTuple


class ContestFamily(str, Enum):
    """Contest families that share a title pattern and difficulty table."""

    AMC8 = "amc8"
    AMC10 = "amc10"
    AMC12 = "amc12"
    AIME = "aime"


# Groups: year, contest name, variant, problem index.
# The optional leading word covers titles like "2021 Fall AMC 10A".
TITLE_PATTERNS = {
    ContestFamily.AIME: re.compile(r"^(2\d{3}) ((?:\w* |)AIME (I{1,2})) Problems/Problem (\d+)"),
    ContestFamily.AMC8: re.compile(r"^(2\d{3}) ((?:\w* |)AMC 8()) Problems/Problem (\d+)"),
    ContestFamily.AMC10: re.compile(r"^(2\d{3}) ((?:\w* |)AMC 10([AB])) Problems/Problem (\d+)"),
    ContestFamily.AMC12: re.compile(r"^(2\d{3}) ((?:\w* |)AMC 12([AB])) Problems/Problem (\d+)"),
}

# First match wins
CLASSIFY_ORDER = (
    ContestFamily.AIME,
    ContestFamily.AMC8,
    ContestFamily.AMC10,
    ContestFamily.AMC12,
)


@dataclass(frozen=True)
class ProblemTitle:
    """A wiki problem title split into its parts."""

    year: int
    family: ContestFamily
    contest_name: str
    variant: str | None
    index: int


class DifficultyBand(NamedTuple):
    index_low: int
    index_high: int
    difficulty_low: float
    difficulty_high: float


# https://artofproblemsolving.com/wiki/index.php/AoPS_Wiki:Competition_ratings
DIFFICULTY_TABLE = {
    ContestFamily.AMC8: (
        DifficultyBand(1, 12, 1, 1.25),
        DifficultyBand(13, 25, 1.5, 2),
    ),
    ContestFamily.AMC10: (
        DifficultyBand(1, 10, 1, 2),
        DifficultyBand(11, 20, 2, 3),
        DifficultyBand(21, 25, 3.5, 4.5),
    ),
    ContestFamily.AMC12: (
        DifficultyBand(1, 10, 1.5, 2),
        DifficultyBand(11, 20, 2.5, 3.5),
        DifficultyBand(21, 25, 4.5, 6),
    ),
    ContestFamily.AIME: (
        DifficultyBand(1, 5, 3, 3.5),
        DifficultyBand(6, 9, 4, 4.5),
        DifficultyBand(10, 12, 5, 5.5),
        DifficultyBand(13, 15, 6, 7),
    ),
}


def classify_title(title: str) -> ContestFamily | None:
    """Find the contest family a wiki page title belongs to.

    Args:
        title: Wiki page title, e.g. "2019 AMC 10A Problems/Problem 7".

    Returns:
        The first family whose pattern matches, or None.
    """
    for family in CLASSIFY_ORDER:
        if TITLE_PATTERNS[family].match(title):
            return family
    return None


def parse_title(family: ContestFamily | str, title: str) -> ProblemTitle | None:
    """Parse a problem page title using the pattern of one contest family.

    Args:
        family: Contest family whose pattern to apply.
        title: Wiki page title. Underscores are read as spaces.

    Returns:
        ProblemTitle, or None if the title does not match.
    """
    family = ContestFamily(family)
    match = TITLE_PATTERNS[family].match(title.replace("_", " "))
    if match is None:
        return None

    year, contest_name, variant, index = match.groups()
    return ProblemTitle(
        year=int(year),
        family=family,
        contest_name=contest_name,
        variant=variant or None,
        index=int(index),
    )


def lerp(p: float, a1: float, a2: float, b1: float, b2: float) -> float:
    """Map p from the range [a1, a2] onto [b1, b2]."""
    if a1 == a2:
        return b1
    return b1 + (p - a1) * (b2 - b1) / (a2 - a1)


def estimate_difficulty(family: ContestFamily | str, year: int | None, index: int) -> float | None:
    """Estimate the AoPS difficulty rating of a problem.

    Interpolates linearly inside the band of DIFFICULTY_TABLE that holds the
    problem index. The year is accepted so callers can pass full problem
    identities, but ratings do not depend on it.

    Args:
        family: Contest family.
        year: Contest year (unused).
        index: 1-based problem number.

    Returns:
        Difficulty rating, or None if no band covers the index.
    """
    bands = DIFFICULTY_TABLE[ContestFamily(family)]
    if index < bands[0].index_low:
        return None

    for band in bands:
        if index <= band.index_high:
            return lerp(index, band.index_low, band.index_high, band.difficulty_low, band.difficulty_high)

    return None
