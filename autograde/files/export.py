"""
Export of the current LaTeX source as a ``.tex`` file.
"""

import re
from pathlib import Path

DEFAULT_STEM = "submission"


class ExportError(Exception):
    """Raised when there is nothing to export or the file cannot be written."""


def export_filename(title: str) -> str:
    """
    File name for an exported source, derived from the question title.

    Whitespace runs become underscores, the name is lower-cased and
    characters unsafe in file names are dropped.
    """
    stem = re.sub(r"\s+", "_", title.strip()).lower()
    stem = re.sub(r"[^\w\-.]", "", stem).strip("._")
    return f"{stem or DEFAULT_STEM}.tex"


def export_source(source: str, title: str, directory: Path | str) -> Path:
    """
    Write the source to ``directory`` under a name derived from ``title``.

    Returns:
        Path of the written file.

    Raises:
        ExportError: If the source is empty or the file cannot be written.
    """
    if not source:
        raise ExportError("Nothing to export: the source is empty")

    target_dir = Path(directory)
    try:
        target_dir.mkdir(parents=True, exist_ok=True)
        path = target_dir / export_filename(title)
        path.write_text(source, encoding="utf-8")
    except OSError as e:
        raise ExportError(f"Could not write export: {e}") from e
    return path
