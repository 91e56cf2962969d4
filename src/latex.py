"""Image-encoded LaTeX extraction and MathML rendering.

The AoPS wiki and forum render math as images whose alt text carries the
LaTeX source. ``serialize_math`` turns those images into a neutral
``<latex display="0|1">`` tag holding the source, and ``render_math`` turns
the tags back into typeset MathML. Images that are diagrams, or whose source
does not parse, stay images.
"""

import logging
import re
from dataclasses import dataclass
from typing import Union

from bs4 import BeautifulSoup, Tag
from latex2mathml import exceptions as latex_exceptions
from latex2mathml.converter import convert as latex2mathml_convert

from src.latex_syntax import LatexSyntaxError, check_syntax

LOGGER = logging.getLogger(__name__)

MATH_IMAGE_SELECTOR = "img.latex, img.latexcenter"
DISPLAY_IMAGE_CLASS = "latexcenter"

MATH_TAG = "latex"
DISPLAY_ATTR = "display"

# Asymptote source is rendered to a raster diagram, not a formula
DIAGRAM_MARKER = "[asy]"
DIAGRAM_CLASS = "math-diagram"
FALLBACK_CLASS = "math-fallback"

LATEX_PARSE_ERRORS = (
    latex_exceptions.NumeratorNotFoundError,
    latex_exceptions.DenominatorNotFoundError,
    latex_exceptions.ExtraLeftOrMissingRightError,
    latex_exceptions.MissingSuperScriptOrSubscriptError,
    latex_exceptions.DoubleSubscriptsError,
    latex_exceptions.DoubleSuperscriptsError,
    latex_exceptions.NoAvailableTokensError,
    latex_exceptions.InvalidStyleForGenfracError,
    latex_exceptions.MissingEndError,
    latex_exceptions.InvalidAlignmentError,
    latex_exceptions.InvalidWidthError,
    latex_exceptions.LimitsMustFollowMathOperatorError,
    # The converter runs off the end of its token stream on truncated source
    StopIteration,
)


@dataclass(frozen=True)
class Typeset:
    """Successfully typeset math."""

    markup: str


@dataclass(frozen=True)
class ParseFailure:
    """LaTeX source the rendering engine could not parse."""

    latex: str
    reason: str


RenderResult = Union[Typeset, ParseFailure]


def typeset(latex: str, display_mode: bool = False) -> RenderResult:
    """Typeset LaTeX source to MathML.

    Args:
        latex: LaTeX source without math delimiters.
        display_mode: Render as a block equation instead of inline.

    Returns:
        Typeset on success, ParseFailure if the source is malformed or the
        engine cannot parse it. Any other error raised by the engine
        propagates.
    """
    try:
        check_syntax(latex)
    except LatexSyntaxError as e:
        return ParseFailure(latex=latex, reason=str(e))

    display = "block" if display_mode else "inline"
    try:
        markup = latex2mathml_convert(latex, display=display)
    except LATEX_PARSE_ERRORS as e:
        return ParseFailure(latex=latex, reason=type(e).__name__)
    return Typeset(markup=markup)


def clean_alt_text(alt_text: str) -> str:
    """Turn an image alt text into bare LaTeX source.

    Args:
        alt_text: Alt text of a math image, e.g. "$x^2$" or "\\[x^2\\]".

    Returns:
        Source with delimiters stripped and tabular rewritten to array.
    """
    latex = re.sub(r"^\$|\$$", "", alt_text)
    latex = latex.replace("\\[", "").replace("\\]", "")
    latex = re.sub(r"\{tabular\}(\[\w\])*", "{array}", latex)
    return latex


def _normalize_spaces(text: str) -> str:
    return text.replace("&nbsp;", " ").replace("\u00a0", " ")


def _add_class(el: Tag, class_name: str) -> None:
    classes = list(el.get("class", []))
    if class_name not in classes:
        classes.append(class_name)
    el["class"] = classes


def is_display_image(el: Tag) -> bool:
    """Check whether a math image is a centered (display mode) equation."""
    return DISPLAY_IMAGE_CLASS in el.get("class", [])


def _serialize_image(soup: BeautifulSoup, el: Tag) -> None:
    alt_text = _normalize_spaces(el.get("alt") or "")

    if DIAGRAM_MARKER in alt_text:
        _add_class(el, DIAGRAM_CLASS)
        return

    latex = clean_alt_text(alt_text)
    display_mode = is_display_image(el)

    try:
        result = typeset(latex, display_mode)
    except Exception:
        LOGGER.exception("Unexpected error validating LaTeX %r", latex)
        return

    if isinstance(result, ParseFailure):
        LOGGER.debug("Keeping image for unparsable LaTeX %r (%s)", latex, result.reason)
        _add_class(el, FALLBACK_CLASS)
        return

    math_tag = soup.new_tag(MATH_TAG)
    math_tag[DISPLAY_ATTR] = "1" if display_mode else "0"
    math_tag.string = latex
    el.replace_with(math_tag)


def serialize_math(html: str) -> str:
    """Replace LaTeX images in an HTML fragment with intermediate math tags.

    Diagram images get the DIAGRAM_CLASS and images whose LaTeX fails to
    parse get the FALLBACK_CLASS; both stay images. Never raises on
    malformed LaTeX.

    Args:
        html: HTML fragment from the wiki or forum.

    Returns:
        The fragment with every parsable math image replaced.
    """
    soup = BeautifulSoup(html, "html.parser")
    for el in soup.select(MATH_IMAGE_SELECTOR):
        _serialize_image(soup, el)
    return str(soup)


def render_math(html: str) -> str:
    """Render every intermediate math tag in an HTML fragment to MathML.

    Tags whose source fails to parse are left as they are.

    Args:
        html: HTML fragment produced by serialize_math.

    Returns:
        The fragment with typeset math spliced in.
    """
    soup = BeautifulSoup(html, "html.parser")
    for el in soup.find_all(MATH_TAG):
        latex = el.get_text()
        display_mode = el.get(DISPLAY_ATTR) == "1"

        try:
            result = typeset(latex, display_mode)
        except Exception:
            LOGGER.exception("Unexpected error rendering LaTeX %r", latex)
            continue

        if isinstance(result, ParseFailure):
            continue

        typeset_el = BeautifulSoup(result.markup, "html.parser").find("math")
        el.replace_with(typeset_el)
    return str(soup)
