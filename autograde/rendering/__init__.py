"""
Math Rendering Module.

Segments mixed prose and LaTeX, typesets math through a pluggable engine
and formats the result as HTML or Rich text.
"""

from autograde.rendering.document import extract_document_body
from autograde.rendering.output import render_page, to_html, to_rich_text
from autograde.rendering.renderer import (
    Fragment,
    FragmentKind,
    MathEngine,
    MathMLEngine,
    MathRenderer,
    RenderError,
)
from autograde.rendering.segmenter import Segment, SegmentKind, segment, segment_document

__all__ = [
    "Fragment",
    "FragmentKind",
    "MathEngine",
    "MathMLEngine",
    "MathRenderer",
    "RenderError",
    "Segment",
    "SegmentKind",
    "extract_document_body",
    "render_page",
    "segment",
    "segment_document",
    "to_html",
    "to_rich_text",
]
