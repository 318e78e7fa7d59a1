"""
File Module.

Upload loading and validation, preview-file lifecycle and source export:
- Images (image/*) and PDFs as uploads
- LaTeX, text and markdown files as pasted sources
"""

from autograde.files.export import ExportError, export_filename, export_source
from autograde.files.loader import (
    SourceReader,
    UploadError,
    is_supported_upload,
    load_upload,
    read_source,
)
from autograde.files.preview import PreviewFile

__all__ = [
    "ExportError",
    "PreviewFile",
    "SourceReader",
    "UploadError",
    "export_filename",
    "export_source",
    "is_supported_upload",
    "load_upload",
    "read_source",
]
