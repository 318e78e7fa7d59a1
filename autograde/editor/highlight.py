"""
Syntax highlighting for LaTeX sources.

Uses Rich's Syntax with the Pygments LaTeX grammar, falling back to plain
text when the grammar cannot be loaded.
"""

from functools import lru_cache

from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound
from rich.syntax import Syntax

LATEX_LEXER = "latex"
PLAIN_LEXER = "text"


@lru_cache()
def lexer_available(name: str = LATEX_LEXER) -> bool:
    """Check whether a Pygments grammar can be loaded."""
    try:
        get_lexer_by_name(name)
    except ClassNotFound:
        return False
    return True


def highlight_source(source: str, theme: str = "monokai", lexer: str = LATEX_LEXER) -> Syntax:
    """
    Build a highlighted, line-numbered view of a LaTeX source.

    Args:
        source: LaTeX source text.
        theme: Pygments style name.
        lexer: Grammar to use; unavailable grammars fall back to plain text.

    Returns:
        A Rich Syntax renderable.
    """
    return Syntax(
        source,
        lexer if lexer_available(lexer) else PLAIN_LEXER,
        theme=theme,
        line_numbers=True,
        word_wrap=True,
    )
