"""
LaTeX document helpers for previews.
"""

import re

_DOCUMENT_BODY = re.compile(r"\\begin\s*\{document\}([\s\S]*?)\\end\s*\{document\}", re.IGNORECASE)
_BEGIN_DOCUMENT = re.compile(r"\\begin\s*\{document\}", re.IGNORECASE)
_END_DOCUMENT = re.compile(r"\\end\s*\{document\}", re.IGNORECASE)


def extract_document_body(latex: str) -> str:
    """
    Return the renderable part of a LaTeX source.

    Args:
        latex: A complete document or a bare fragment.

    Returns:
        The trimmed text between ``\\begin{document}`` and ``\\end{document}``;
        the trimmed text after ``\\begin{document}`` when a ``\\documentclass``
        source is missing its end marker; otherwise the whole input.
    """
    if not latex:
        return ""

    match = _DOCUMENT_BODY.search(latex)
    if match is not None:
        return match.group(1).strip()

    if "\\documentclass" in latex:
        parts = _BEGIN_DOCUMENT.split(latex, maxsplit=1)
        if len(parts) == 2 and parts[1]:
            return _END_DOCUMENT.split(parts[1], maxsplit=1)[0].strip()

    return latex
