"""
Math renderer.

Typesetting is delegated to a MathEngine (latex2mathml by default). This
module owns only the fallback policy:

- implicit (heuristic) math that fails to typeset is shown as plain text,
- explicit math that fails is shown as an error with source and reason,
- without an engine, math is shown as literal code.

Failures never abort the surrounding render.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from latex2mathml.converter import convert

from autograde.rendering.document import extract_document_body
from autograde.rendering.segmenter import Segment, segment, segment_document

logger = logging.getLogger(__name__)

COMPATIBILITY_HINT = (
    'The hosting page is in "Quirks Mode". Please ensure the <!DOCTYPE html> '
    "declaration is at the very top of the HTML file."
)


class RenderError(Exception):
    """Raised by a math engine when a token cannot be typeset."""


class MathEngine(Protocol):
    """Anything that can typeset a LaTeX math fragment."""

    def render(self, source: str, display: bool) -> str:
        """Return markup for the fragment or raise RenderError."""
        ...


class MathMLEngine:
    """Typesets LaTeX math to MathML with latex2mathml."""

    def render(self, source: str, display: bool) -> str:
        try:
            return convert(source, display="block" if display else "inline")
        except Exception as e:
            raise RenderError(str(e) or e.__class__.__name__) from e


class FragmentKind(str, Enum):
    """Kind of a rendered fragment."""

    TEXT = "text"
    MATH = "math"
    CODE = "code"
    ERROR = "error"


@dataclass(frozen=True)
class Fragment:
    """
    One rendered piece of output.

    TEXT and CODE carry literal text in ``source``; MATH carries engine
    markup in ``markup``; ERROR carries the offending source and ``error``.
    """

    kind: FragmentKind
    source: str
    markup: str = ""
    display: bool = False
    error: str | None = None
    compatibility: bool = False

    @property
    def title(self) -> str:
        """Heading shown above an error fragment."""
        return "Compatibility Error" if self.compatibility else "Rendering Error"


class MathRenderer:
    """
    Renders mixed text and LaTeX documents into fragments.

    Pass ``engine=None`` to model a missing typesetting capability.
    """

    def __init__(self, engine: MathEngine | None = None, *, use_default_engine: bool = True):
        """
        Initialize the renderer.

        Args:
            engine: Typesetting engine. Defaults to MathMLEngine.
            use_default_engine: When False and no engine is given, math
                degrades to literal code.
        """
        if engine is None and use_default_engine:
            engine = MathMLEngine()
        self._engine = engine

    @property
    def has_engine(self) -> bool:
        return self._engine is not None

    def render_segment(self, item: Segment) -> Fragment:
        """Render a single segment, applying the fallback policy."""
        if not item.is_math:
            return Fragment(FragmentKind.TEXT, item.source)

        if self._engine is None:
            return Fragment(FragmentKind.CODE, item.content, display=item.display)

        try:
            markup = self._engine.render(item.content, item.display)
        except RenderError as e:
            if item.implicit:
                return Fragment(FragmentKind.TEXT, item.source)
            message = str(e)
            logger.warning("Math render failed for %r: %s", item.content, message)
            return Fragment(
                FragmentKind.ERROR,
                item.content,
                display=item.display,
                error=message,
                compatibility="quirks mode" in message.lower(),
            )

        return Fragment(FragmentKind.MATH, item.source, markup=markup, display=item.display)

    def render_text(self, text: str) -> list[Fragment]:
        """
        Render mixed prose and math, detecting un-delimited math.

        Args:
            text: Text such as feedback, a mistake or a question description.

        Returns:
            Fragments in input order; empty for empty input.
        """
        return [self.render_segment(item) for item in segment(text)]

    def render_document(self, latex: str) -> list[Fragment]:
        """
        Render a LaTeX document preview.

        The body between ``\\begin{document}`` and ``\\end{document}`` is
        extracted first; a body that is only whitespace yields no fragments.
        """
        body = extract_document_body(latex)
        if not body.strip():
            return []
        return [self.render_segment(item) for item in segment_document(body)]
