"""
Loading of uploads and pasted sources.

Uploads must be images or PDFs; they are validated and converted to base64
attachments. Pasted submissions are plain text files read with encoding
fallback.
"""

import base64
import mimetypes
from pathlib import Path
from typing import ClassVar

import fitz  # PyMuPDF

from autograde.models import Attachment

PDF_MIME_TYPE = "application/pdf"


class UploadError(Exception):
    """
    Raised when a file cannot be used as an upload or source.

    Contains the path and the underlying cause, if any.
    """

    def __init__(self, message: str, file_path: str | Path, cause: Exception | None = None):
        self.file_path = str(file_path)
        self.cause = cause
        super().__init__(f"Cannot use '{file_path}': {message}")


def guess_mime_type(file_path: Path) -> str | None:
    """Guess the media type of a file from its name."""
    mime_type, _ = mimetypes.guess_type(file_path.name)
    return mime_type


def is_supported_upload(mime_type: str | None) -> bool:
    """Whether a media type is accepted as an upload (images and PDFs)."""
    return mime_type is not None and (
        mime_type.startswith("image/") or mime_type == PDF_MIME_TYPE
    )


def _validate_file(file_path: Path) -> None:
    if not file_path.exists():
        raise UploadError("File does not exist", file_path)
    if not file_path.is_file():
        raise UploadError("Path is not a file", file_path)


def _check_pdf(content: bytes, file_path: Path) -> int:
    try:
        with fitz.open(stream=content, filetype="pdf") as doc:
            if doc.page_count == 0:
                raise UploadError("PDF has no pages", file_path)
            return doc.page_count
    except UploadError:
        raise
    except (fitz.FileDataError, fitz.EmptyFileError) as e:
        raise UploadError("PDF file is corrupted or empty", file_path, cause=e) from e


def load_upload(file_path: Path | str, max_size_mb: float = 20.0) -> Attachment:
    """
    Load an image or PDF as a base64 attachment.

    Args:
        file_path: Path to the uploaded file.
        max_size_mb: Maximum accepted size in megabytes.

    Returns:
        Attachment with the encoded payload, media type and file name.

    Raises:
        UploadError: If the file is missing, not an image or PDF, too large,
            empty, or an unreadable PDF.
    """
    path = Path(file_path)
    _validate_file(path)

    mime_type = guess_mime_type(path)
    if mime_type is None or not is_supported_upload(mime_type):
        raise UploadError("Please upload an image or PDF file.", path)

    size = path.stat().st_size
    if size == 0:
        raise UploadError("File is empty", path)
    if size > max_size_mb * 1024 * 1024:
        raise UploadError(f"File exceeds the {max_size_mb:g} MB limit", path)

    content = path.read_bytes()
    if mime_type == PDF_MIME_TYPE:
        _check_pdf(content, path)

    return Attachment(
        data=base64.b64encode(content).decode("ascii"),
        mime_type=mime_type,
        file_name=path.name,
    )


class SourceReader:
    """
    Reads pasted LaTeX or text submissions.

    Handles .tex, .txt and .md files with UTF-8 encoding (with fallback options).
    """

    SUPPORTED_EXTENSIONS: ClassVar[tuple[str, ...]] = (".tex", ".txt", ".md")

    # Encodings to try in order of preference
    ENCODINGS: ClassVar[tuple[str, ...]] = ("utf-8-sig", "utf-8", "latin-1", "cp1252")

    @classmethod
    def supports(cls, file_path: Path) -> bool:
        return file_path.suffix.lower() in cls.SUPPORTED_EXTENSIONS

    def read(self, file_path: Path | str) -> str:
        """
        Read a text source.

        Raises:
            UploadError: If the file is missing, unsupported, or undecodable.
        """
        path = Path(file_path)
        _validate_file(path)
        if not self.supports(path):
            raise UploadError(
                f"Unsupported source format. Expected one of: {self.SUPPORTED_EXTENSIONS}",
                path,
            )

        raw = path.read_bytes()
        for encoding in self.ENCODINGS:
            try:
                return raw.decode(encoding)
            except UnicodeDecodeError:
                continue
        raise UploadError("Could not decode file with any supported encoding", path)


def read_source(file_path: Path | str) -> str:
    """Read a pasted submission from a text file."""
    return SourceReader().read(file_path)
