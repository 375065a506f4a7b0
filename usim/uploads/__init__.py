"""Temporary uploads: staging, serving, promotion and expiry."""

from usim.uploads.files import (
    detect_file_type,
    extract_metadata,
    file_url,
    format_file_size,
    guess_mime_type,
    is_inline_type,
    matches_mime_pattern,
    sniff_mime_type,
    validate_file,
)
from usim.uploads.manager import TemporaryUploadManager
from usim.uploads.repository import TemporaryUpload, TemporaryUploadRepo

__all__ = [
    "TemporaryUpload",
    "TemporaryUploadManager",
    "TemporaryUploadRepo",
    "detect_file_type",
    "extract_metadata",
    "file_url",
    "format_file_size",
    "guess_mime_type",
    "is_inline_type",
    "matches_mime_pattern",
    "sniff_mime_type",
    "validate_file",
]
