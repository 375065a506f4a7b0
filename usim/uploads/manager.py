"""
Temporary upload manager.

Files are staged under ``<upload_root>/temp/<uuid>.<ext>`` with a record in
``temporary_uploads`` that ties them to the uploading session. A screen
handler later persists them to ``<upload_root>/uploads/<category>/``;
anything left behind past ``expires_at`` is removed by ``cleanup_expired``.

Usage:
    manager = TemporaryUploadManager(Path("storage"), TemporaryUploadRepo("storage/uploads.db"))
    upload = manager.create(fileobj, filename="cv.pdf", content_type="application/pdf",
                            component_id="5012345", context=context)
    manager.persist(upload.id, "documents")
"""

from __future__ import annotations

import re
import shutil
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path, PurePosixPath
from typing import BinaryIO, Callable, Iterable

from usim.context import RequestContext
from usim.exceptions import PayloadTooLargeError, UploadNotFoundError, UploadStorageError, ValidationError
from usim.logging_config import get_logger, log_event
from usim.uploads.files import (
    SNIFF_BYTES,
    detect_file_type,
    extract_metadata,
    guess_mime_type,
    sniff_mime_type,
    validate_file,
)
from usim.uploads.repository import TemporaryUpload, TemporaryUploadRepo

logger = get_logger(__name__)

TEMP_DIR = "temp"
UPLOADS_DIR = "uploads"
SERVED_DIRS = (TEMP_DIR, UPLOADS_DIR)
CHUNK_SIZE = 64 * 1024

_EXTENSION_RE = re.compile(r"^[a-z0-9]{1,10}$")
_CATEGORY_RE = re.compile(r"^[a-z0-9][a-z0-9_-]{0,63}$")
_STORED_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]{0,254}$")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _safe_extension(filename: str) -> str:
    suffix = PurePosixPath(filename.replace("\\", "/")).suffix.lstrip(".").lower()
    return suffix if _EXTENSION_RE.match(suffix) else ""


class TemporaryUploadManager:
    """Session-scoped staging, serving and promotion of uploaded files."""

    def __init__(
        self,
        root: Path | str,
        repo: TemporaryUploadRepo,
        *,
        ttl_hours: int = 24,
        max_size_mb: float = 10.0,
        allowed_types: Iterable[str] = ("*",),
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.root = Path(root)
        self.repo = repo
        self.ttl = timedelta(hours=ttl_hours)
        self.max_size_mb = max_size_mb
        self.allowed_types = list(allowed_types)
        self._clock = clock
        (self.root / TEMP_DIR).mkdir(parents=True, exist_ok=True)

    @property
    def max_bytes(self) -> int:
        return int(self.max_size_mb * 1024 * 1024)

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def _resolve(self, relative: str) -> Path:
        """
        Map a client-supplied relative path to a file inside a served directory.

        Raises:
            UploadNotFoundError: if the path is malformed, escapes the upload
                root, points outside ``temp/`` or ``uploads/``, or is missing.
        """
        if not relative or "\x00" in relative or "\\" in relative:
            raise UploadNotFoundError(relative)

        parts = PurePosixPath(relative.lstrip("/")).parts
        if not parts or parts[0] not in SERVED_DIRS or any(p in ("..", ".") for p in parts):
            raise UploadNotFoundError(relative)

        root = self.root.resolve()
        candidate = (root / PurePosixPath(*parts)).resolve()
        if not candidate.is_relative_to(root / parts[0]) or not candidate.is_file():
            raise UploadNotFoundError(relative)
        return candidate

    # ------------------------------------------------------------------
    # Temporary uploads
    # ------------------------------------------------------------------

    def create(
        self,
        stream: BinaryIO,
        *,
        filename: str,
        content_type: str | None,
        component_id: str,
        context: RequestContext,
    ) -> TemporaryUpload:
        """
        Stage an uploaded stream for the requesting session.

        The type is detected from the file content; ``content_type`` as
        declared by the client is only logged when it disagrees.

        Raises:
            ValidationError: the detected file type is not allowed.
            PayloadTooLargeError: the stream exceeds ``max_size_mb``.
        """
        if not component_id:
            raise ValidationError("is required", field="component_id")

        original = PurePosixPath((filename or "upload").replace("\\", "/")).name or "upload"

        upload_id = uuid.uuid4().hex
        extension = _safe_extension(original)
        stored_filename = f"{upload_id}.{extension}" if extension else upload_id
        relative = f"{TEMP_DIR}/{stored_filename}"
        target = self.root / TEMP_DIR / stored_filename

        size = 0
        header = bytearray()
        try:
            with open(target, "wb") as fh:
                while chunk := stream.read(CHUNK_SIZE):
                    size += len(chunk)
                    if size > self.max_bytes:
                        raise PayloadTooLargeError(max_size_mb=self.max_size_mb)
                    if len(header) < SNIFF_BYTES:
                        header += chunk[: SNIFF_BYTES - len(header)]
                    fh.write(chunk)
        except PayloadTooLargeError:
            target.unlink(missing_ok=True)
            raise
        except OSError as exc:
            target.unlink(missing_ok=True)
            raise UploadStorageError(operation="write", path=relative) from exc

        mime_type = sniff_mime_type(header)
        if content_type and content_type.split(";")[0].strip().lower() != mime_type:
            logger.warning(
                "Declared content type does not match file content",
                extra={"declared": content_type, "detected": mime_type},
            )
        error = validate_file(size, mime_type, self.allowed_types, self.max_size_mb)
        if error:
            target.unlink(missing_ok=True)
            raise ValidationError(error, field="file")

        file_type = detect_file_type(mime_type)
        now = self._clock()
        upload = TemporaryUpload(
            id=upload_id,
            session_id=context.session_id,
            component_id=str(component_id),
            original_filename=original,
            stored_filename=stored_filename,
            path=relative,
            mime_type=mime_type,
            size=size,
            type=file_type,
            metadata=extract_metadata(target, file_type),
            expires_at=now + self.ttl,
            created_at=now,
        )
        self.repo.insert(upload)
        log_event("upload_created", upload_id=upload_id, size=size, mime_type=mime_type)
        return upload

    def get_owned(self, upload_id: str, context: RequestContext) -> TemporaryUpload:
        upload = self.repo.get(upload_id)
        if upload is None or upload.session_id != context.session_id:
            raise UploadNotFoundError(upload_id)
        return upload

    def delete(self, upload_id: str, context: RequestContext) -> None:
        """Remove a staged file; only the owning session may delete it."""
        upload = self.get_owned(upload_id, context)
        (self.root / upload.path).unlink(missing_ok=True)
        self.repo.delete(upload.id)
        log_event("upload_deleted", upload_id=upload_id)

    def serve(self, path: str, context: RequestContext) -> tuple[Path, str]:
        """
        Locate a stored file for download.

        Temporary files are only served to the session that uploaded them.
        The content type comes from a fixed extension map; unknown
        extensions are ``application/octet-stream``.

        Returns:
            The absolute file path and its content type.
        """
        file_path = self._resolve(path)
        relative = file_path.relative_to(self.root.resolve()).as_posix()

        if relative.startswith(TEMP_DIR + "/"):
            upload = self.repo.get_by_path(relative)
            if upload is None or upload.session_id != context.session_id:
                raise UploadNotFoundError(path)

        return file_path, guess_mime_type(file_path.name)

    # ------------------------------------------------------------------
    # Promotion
    # ------------------------------------------------------------------

    def persist(self, temp_id: str, category: str, old_filename: str | None = None) -> str | None:
        """
        Move a staged file to ``uploads/<category>/`` and drop its record.

        ``old_filename`` (a bare file name in the same category) is deleted
        first, which is how a profile picture gets replaced.

        Returns:
            The stored file name, or None if the upload does not exist or
            could not be moved.
        """
        if not _CATEGORY_RE.match(category):
            raise ValidationError("invalid upload category", field="category")

        upload = self.repo.get(temp_id)
        if upload is None:
            return None

        try:
            if old_filename:
                self.delete_file(category, old_filename)

            destination = self.root / UPLOADS_DIR / category / upload.stored_filename
            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.move(str(self.root / upload.path), str(destination))
        except OSError:
            logger.error(
                "Failed to persist temporary upload",
                extra={"upload_id": temp_id, "category": category},
                exc_info=True,
            )
            return None

        self.repo.delete(upload.id)
        log_event("upload_persisted", upload_id=temp_id, category=category)
        return upload.stored_filename

    def persist_many(self, temp_ids: Iterable[str], category: str) -> list[str]:
        stored = []
        for temp_id in temp_ids:
            name = self.persist(temp_id, category)
            if name:
                stored.append(name)
        return stored

    def delete_file(self, category: str, filename: str) -> bool:
        """Delete a persisted file; a missing file counts as deleted."""
        if not _CATEGORY_RE.match(category) or not _STORED_NAME_RE.match(filename) or ".." in filename:
            raise ValidationError("invalid stored file reference", field="filename")
        path = self.root / UPLOADS_DIR / category / filename
        try:
            path.unlink(missing_ok=True)
        except OSError:
            logger.error("Failed to delete stored file", extra={"category": category, "stored_filename": filename}, exc_info=True)
            return False
        return True

    # ------------------------------------------------------------------
    # Expiry
    # ------------------------------------------------------------------

    def cleanup_expired(self) -> tuple[int, int]:
        """
        Remove expired temporary uploads.

        Returns:
            ``(deleted, failed)`` counts.
        """
        deleted = failed = 0
        for upload in self.repo.expired(self._clock()):
            try:
                (self.root / upload.path).unlink(missing_ok=True)
            except OSError:
                failed += 1
                logger.error("Failed to delete expired upload", extra={"upload_id": upload.id}, exc_info=True)
                continue
            self.repo.delete(upload.id)
            deleted += 1

        if deleted or failed:
            log_event("temporary_uploads_cleaned", deleted=deleted, failed=failed)
        return deleted, failed
