"""
Temporary preview files for uploaded answers.

An image upload is written as-is; for a PDF the first page is rendered to a
PNG with PyMuPDF. The file lives until ``release()`` is called (or the
context manager exits), which the owning session does whenever the upload is
replaced or cleared.
"""

import logging
import mimetypes
import tempfile
from pathlib import Path
from types import TracebackType

import fitz  # PyMuPDF

from autograde.models import Attachment

logger = logging.getLogger(__name__)

PREVIEW_DPI = 110


class PreviewFile:
    """A temporary on-disk rendering of an attachment."""

    def __init__(self, path: Path, page_count: int = 1):
        self._path: Path | None = path
        self.page_count = page_count

    @classmethod
    def create(cls, attachment: Attachment, directory: Path | None = None) -> "PreviewFile":
        """
        Write a preview for an attachment.

        Args:
            attachment: Uploaded image or PDF.
            directory: Where to create the file; the system temp dir by default.

        Returns:
            PreviewFile owning the written file.
        """
        content = attachment.raw_bytes()

        if attachment.is_pdf:
            with fitz.open(stream=content, filetype="pdf") as doc:
                page_count = doc.page_count
                pixmap = doc[0].get_pixmap(dpi=PREVIEW_DPI)
                path = cls._reserve(".png", directory)
                pixmap.save(str(path))
            return cls(path, page_count)

        suffix = mimetypes.guess_extension(attachment.mime_type) or ".img"
        path = cls._reserve(suffix, directory)
        path.write_bytes(content)
        return cls(path)

    @staticmethod
    def _reserve(suffix: str, directory: Path | None) -> Path:
        with tempfile.NamedTemporaryFile(
            prefix="autograde-preview-", suffix=suffix, dir=directory, delete=False
        ) as handle:
            return Path(handle.name)

    @property
    def path(self) -> Path | None:
        """Location of the preview, or None once released."""
        return self._path

    @property
    def released(self) -> bool:
        return self._path is None

    def release(self) -> None:
        """Delete the preview file. Safe to call more than once."""
        if self._path is None:
            return
        self._path.unlink(missing_ok=True)
        logger.debug("Released preview %s", self._path)
        self._path = None

    def __enter__(self) -> "PreviewFile":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()
