"""
Segmentation of mixed text into prose and math tokens.

Two passes are applied. The first splits on explicit delimiters
(``$$...$$``, ``\\[...\\]``, ``\\(...\\)``, ``$...$``). The second looks
for un-delimited math inside the remaining prose with a heuristic pattern;
its matches are marked ``implicit`` so the renderer can fall back to plain
text when they do not typeset.
"""

import re
from dataclasses import dataclass
from enum import Enum

DELIMITER_PATTERN = re.compile(
    r"(\$\$[\s\S]*?\$\$|\\\[[\s\S]*?\\\]|\\\([\s\S]*?\\\)|\$[^$]+\$)"
)

_DISPLAY_ENVIRONMENTS = r"(?:equation|align|gather|alignat|flalign|multline)\*?"

DOCUMENT_PATTERN = re.compile(
    r"(\$\$[\s\S]*?\$\$"
    r"|\\\[[\s\S]*?\\\]"
    r"|\\begin\s*\{" + _DISPLAY_ENVIRONMENTS + r"\}[\s\S]*?\\end\s*\{" + _DISPLAY_ENVIRONMENTS + r"\}"
    r"|\\\([\s\S]*?\\\)"
    r"|\$[^$\n]+\$)",
    re.IGNORECASE,
)

# Un-delimited math, in order of preference:
# LaTeX commands with brace groups and optional assignment (\frac{1}{2} = 0.5),
# identifiers with a superscript or subscript (x_1, y^{2}),
# single-letter assignments (a = 2, b=-4),
# quadratic-looking polynomials (2x^2 - 4x - 6 = 0),
# arithmetic equalities (3 + 4 = 7).
IMPLICIT_MATH_PATTERN = re.compile(
    r"("
    r"(?:\\[a-zA-Z]+(?:\{.*?\})*(?:\s*=\s*[\d\w.\-]+)?)"
    r"|(?:[a-zA-Z]\w*(?:\^[\w{}\-]+|_[\w{}\-]+)(?:\s*=\s*[\d\w.\-]+)?)"
    r"|(?:\b[a-z]\s*=\s*[\d.\-]+)"
    r"|(?:\d*[a-z]\^2[\s+\-\d]*[a-z][\s+\-\d]*(?:\s*=\s*0)?)"
    r"|(?:\b[\d.]+\s*[+\-*/]\s*[\d.]+\s*=\s*[\d.]+)"
    r")",
    re.IGNORECASE,
)

_MATH_CHARS = re.compile(r"[=^_\\]")
_PROSE_ONLY = re.compile(r"^[a-zA-Z\s.,]+$")
_TRAILING_PUNCTUATION = re.compile(r"[.,:;]+$")


class SegmentKind(str, Enum):
    """Kind of a segmented token."""

    TEXT = "text"
    INLINE_MATH = "inline_math"
    DISPLAY_MATH = "display_math"


@dataclass(frozen=True)
class Segment:
    """
    One token of segmented text.

    ``source`` is the token as written; ``content`` is what the typesetting
    engine receives (delimiters stripped, environments kept).
    """

    kind: SegmentKind
    content: str
    source: str
    implicit: bool = False

    @property
    def is_math(self) -> bool:
        return self.kind != SegmentKind.TEXT

    @property
    def display(self) -> bool:
        return self.kind == SegmentKind.DISPLAY_MATH


def _text(value: str) -> Segment:
    return Segment(SegmentKind.TEXT, value, value)


def strip_delimiters(token: str) -> tuple[str, bool]:
    """
    Strip the outer delimiter pair of an explicit math token.

    Args:
        token: A token matched by one of the delimiter patterns.

    Returns:
        Tuple of (content for the engine, display mode). Environment tokens
        are returned whole since the engine needs ``\\begin``/``\\end``.
    """
    if token.startswith("$$") and token.endswith("$$") and len(token) >= 4:
        return token[2:-2], True
    if token.startswith("\\[") and token.endswith("\\]"):
        return token[2:-2], True
    if token.startswith("\\("):
        return token[2:-2], False
    if token.startswith("\\begin"):
        return token, True
    if token.startswith("$") and token.endswith("$"):
        return token[1:-1], False
    return token, False


def _split(text: str, pattern: re.Pattern[str]) -> list[Segment]:
    segments: list[Segment] = []
    for index, part in enumerate(pattern.split(text)):
        if not part:
            continue
        # re.split puts captured delimiters at odd indexes
        if index % 2 == 1:
            content, display = strip_delimiters(part)
            kind = SegmentKind.DISPLAY_MATH if display else SegmentKind.INLINE_MATH
            segments.append(Segment(kind, content, part))
        else:
            segments.append(_text(part))
    return segments


def split_explicit(text: str) -> list[Segment]:
    """Split text on explicit math delimiters only."""
    return _split(text, DELIMITER_PATTERN)


def _looks_like_math(candidate: str) -> bool:
    trimmed = candidate.strip()
    return (
        len(trimmed) > 1
        and _MATH_CHARS.search(trimmed) is not None
        and _PROSE_ONLY.match(trimmed) is None
    )


def detect_implicit(text: str) -> list[Segment]:
    """
    Find un-delimited math inside a prose segment.

    Matches that look like math become implicit INLINE_MATH segments;
    trailing punctuation is split off and kept as text.
    """
    segments: list[Segment] = []
    for index, part in enumerate(IMPLICIT_MATH_PATTERN.split(text)):
        if not part:
            continue
        if index % 2 == 0 or not _looks_like_math(part):
            segments.append(_text(part))
            continue

        punctuation = _TRAILING_PUNCTUATION.search(part)
        body = part[: punctuation.start()] if punctuation else part
        segments.append(Segment(SegmentKind.INLINE_MATH, body, body, implicit=True))
        if punctuation:
            segments.append(_text(punctuation.group(0)))
    return segments


def segment(text: str, detect_implicit_math: bool = True) -> list[Segment]:
    """
    Segment mixed text into prose and math.

    Args:
        text: Text such as grading feedback or a question description.
        detect_implicit_math: Whether to scan prose for un-delimited math.

    Returns:
        Ordered segments covering the whole input.
    """
    if not text:
        return []

    segments: list[Segment] = []
    for item in split_explicit(text):
        if item.is_math or not detect_implicit_math:
            segments.append(item)
        else:
            segments.extend(detect_implicit(item.content))
    return segments


def segment_document(body: str) -> list[Segment]:
    """
    Segment a document body for preview.

    Recognises display environments (equation, align, ...) in addition to
    the explicit delimiters; inline ``$...$`` may not span lines. Prose is
    not scanned for implicit math.
    """
    if not body:
        return []
    return _split(body, DOCUMENT_PATTERN)
