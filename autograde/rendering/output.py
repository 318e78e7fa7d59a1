"""
Output formats for rendered fragments.

HTML pages embed the MathML produced by the engine; the terminal form uses
Rich styles so math stands out from prose in feedback panels.
"""

from html import escape
from typing import Sequence

from rich.text import Text

from autograde.rendering.renderer import COMPATIBILITY_HINT, Fragment, FragmentKind

PAGE_STYLE = """
body { font-family: Georgia, serif; font-size: 1.1rem; line-height: 1.6; max-width: 48rem; margin: 2rem auto; }
.prose { white-space: pre-wrap; overflow-wrap: break-word; }
.math-display { margin: 1rem 0; text-align: center; overflow-x: auto; }
.math-code { font-size: 0.8rem; background: #f1f5f9; padding: 0.1rem 0.25rem; border-radius: 0.25rem; }
.math-error { margin: 0.5rem 0; padding: 0.5rem; border: 1px solid #fecaca; background: #fef2f2; border-radius: 0.25rem; }
.math-error-title { font-size: 0.7rem; font-weight: bold; color: #dc2626; margin: 0 0 0.25rem; }
.math-error-reason { font-size: 0.7rem; font-family: monospace; color: #ef4444; margin: 0.25rem 0 0; }
.math-error code { display: block; white-space: pre-wrap; word-break: break-all; }
"""


def _fragment_html(fragment: Fragment) -> str:
    if fragment.kind == FragmentKind.TEXT:
        return f'<span class="prose">{escape(fragment.source)}</span>'

    if fragment.kind == FragmentKind.CODE:
        return f'<code class="math-code">{escape(fragment.source)}</code>'

    if fragment.kind == FragmentKind.ERROR:
        parts = [
            '<div class="math-error">',
            f'<p class="math-error-title">{escape(fragment.title)}</p>',
        ]
        if fragment.compatibility:
            parts.append(f'<p class="math-error-reason">{escape(COMPATIBILITY_HINT)}</p>')
        parts.append(f"<code>{escape(fragment.source)}</code>")
        if not fragment.compatibility and fragment.error:
            parts.append(f'<p class="math-error-reason">{escape(fragment.error)}</p>')
        parts.append("</div>")
        return "".join(parts)

    if fragment.display:
        return f'<div class="math-display">{fragment.markup}</div>'
    return fragment.markup


def to_html(fragments: Sequence[Fragment]) -> str:
    """Join fragments into an HTML snippet."""
    return "".join(_fragment_html(fragment) for fragment in fragments)


def render_page(fragments: Sequence[Fragment], title: str = "Preview") -> str:
    """
    Build a standalone HTML page for a preview.

    An empty fragment list renders the "No content to preview" placeholder.
    """
    body = to_html(fragments) if fragments else (
        '<p class="prose"><em>No content to preview.</em> '
        "Type in the source or upload a file.</p>"
    )
    return (
        "<!DOCTYPE html>\n"
        '<html lang="en">\n<head>\n<meta charset="utf-8">\n'
        f"<title>{escape(title)}</title>\n<style>{PAGE_STYLE}</style>\n"
        f"</head>\n<body>\n{body}\n</body>\n</html>\n"
    )


def to_rich_text(fragments: Sequence[Fragment]) -> Text:
    """Build a Rich Text with math highlighted and errors in red."""
    text = Text()
    for fragment in fragments:
        if fragment.kind == FragmentKind.TEXT:
            text.append(fragment.source)
        elif fragment.kind == FragmentKind.MATH:
            text.append(fragment.source, style="bold cyan")
        elif fragment.kind == FragmentKind.CODE:
            text.append(fragment.source, style="dim")
        else:
            text.append(fragment.source, style="red")
    return text
