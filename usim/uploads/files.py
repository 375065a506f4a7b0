"""
Stateless helpers for uploaded files: content sniffing, validation,
image metadata, size formatting and public URLs.
"""

from __future__ import annotations

import codecs
from pathlib import Path
from typing import Any, Iterable

import filetype
from PIL import Image

from usim.logging_config import get_logger

logger = get_logger(__name__)

# Bytes read from the start of a file to identify it.
SNIFF_BYTES = 8192

DOCUMENT_MIME_TYPES = frozenset({
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.ms-powerpoint",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "text/plain",
})

# Served content types by extension; anything else is served as a download.
EXTENSION_MIME_TYPES = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
    "pdf": "application/pdf",
    "mp3": "audio/mpeg",
    "mp4": "video/mp4",
    "webm": "video/webm",
}

DEFAULT_MIME_TYPE = "application/octet-stream"

_SIZE_UNITS = ("B", "KB", "MB", "GB")


def detect_file_type(mime_type: str) -> str:
    """Coarse category of a MIME type: image, audio, video, document or other."""
    for prefix in ("image", "audio", "video"):
        if mime_type.startswith(prefix + "/"):
            return prefix
    if mime_type in DOCUMENT_MIME_TYPES:
        return "document"
    return "other"


def matches_mime_pattern(mime_type: str, patterns: Iterable[str]) -> bool:
    """Exact match or ``type/*`` wildcard match against any pattern."""
    for pattern in patterns:
        if pattern == mime_type:
            return True
        if pattern.endswith("/*") and mime_type.startswith(pattern[:-1]):
            return True
    return False


def validate_file(size: int, mime_type: str, allowed_types: Iterable[str], max_size_mb: float) -> str | None:
    """Return an error message, or None when the file is acceptable."""
    allowed = list(allowed_types) or ["*"]
    if "*" not in allowed and not matches_mime_pattern(mime_type, allowed):
        return "File type not allowed"
    if size / 1024 / 1024 > max_size_mb:
        return f"File too large (max {max_size_mb:g}MB)"
    return None


def format_file_size(size: int) -> str:
    """
    Human-readable size with up to two decimals.

    >>> format_file_size(1536)
    '1.5 KB'
    """
    value = float(max(size, 0))
    power = 0
    while value >= 1024 and power < len(_SIZE_UNITS) - 1:
        value /= 1024
        power += 1
    return f"{round(value, 2):g} {_SIZE_UNITS[power]}"


def guess_mime_type(filename: str) -> str:
    """Content type a stored file is served with, decided by extension only."""
    extension = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    return EXTENSION_MIME_TYPES.get(extension, DEFAULT_MIME_TYPE)


def is_inline_type(mime_type: str) -> bool:
    """Whether a browser may display the file instead of downloading it."""
    return detect_file_type(mime_type) in ("image", "audio", "video") or mime_type == "application/pdf"


def sniff_mime_type(header: bytes) -> str:
    """
    Identify a file from its first bytes.

    Binary formats are recognised by signature; anything else that decodes
    as UTF-8 is ``text/plain``, the rest ``application/octet-stream``.
    """
    if not header:
        return DEFAULT_MIME_TYPE
    detected = filetype.guess_mime(bytes(header))
    if detected:
        return detected
    if b"\x00" not in header:
        try:
            codecs.getincrementaldecoder("utf-8")().decode(bytes(header), final=False)
        except UnicodeDecodeError:
            return DEFAULT_MIME_TYPE
        return "text/plain"
    return DEFAULT_MIME_TYPE


def extract_metadata(path: Path, file_type: str) -> dict[str, Any]:
    """Width and height for images; other types carry no metadata."""
    if file_type != "image":
        return {}
    try:
        with Image.open(path) as image:
            width, height = image.size
    except (OSError, Image.DecompressionBombError):
        logger.warning("Could not read image dimensions", extra={"stored_filename": path.name})
        return {}
    return {"width": width, "height": height}


def file_url(path: str, base_url: str = "") -> str:
    """Public URL of a stored file, e.g. ``/files/uploads/images/abc.png``."""
    return f"{base_url.rstrip('/')}/files/{path.lstrip('/')}"
