"""
Tests for usim.uploads.

Covers:
- File helpers (type detection, MIME patterns, validation, sizes, URLs)
- TemporaryUploadRepo persistence
- TemporaryUploadManager create/delete/serve/persist/cleanup
"""

import io
from datetime import datetime, timedelta, timezone

import pytest

from usim.context import RequestContext
from usim.exceptions import PayloadTooLargeError, UploadNotFoundError, ValidationError
from usim.uploads import (
    TemporaryUploadManager,
    TemporaryUploadRepo,
    detect_file_type,
    file_url,
    format_file_size,
    guess_mime_type,
    is_inline_type,
    matches_mime_pattern,
    sniff_mime_type,
    validate_file,
)


class TestFileHelpers:
    @pytest.mark.parametrize(
        "mime, expected",
        [
            ("image/png", "image"),
            ("audio/mpeg", "audio"),
            ("video/mp4", "video"),
            ("application/pdf", "document"),
            ("text/plain", "document"),
            ("application/zip", "other"),
        ],
    )
    def test_detect_file_type(self, mime, expected):
        assert detect_file_type(mime) == expected

    def test_matches_mime_pattern(self):
        assert matches_mime_pattern("image/png", ["image/*"])
        assert matches_mime_pattern("application/pdf", ["image/*", "application/pdf"])
        assert not matches_mime_pattern("imagex/png", ["image/*"])
        assert not matches_mime_pattern("video/mp4", ["image/*"])

    def test_validate_file(self):
        assert validate_file(100, "image/png", ["*"], 1) is None
        assert validate_file(100, "video/mp4", ["image/*"], 1) == "File type not allowed"
        assert validate_file(3 * 1024 * 1024, "image/png", ["image/*"], 2) == "File too large (max 2MB)"

    @pytest.mark.parametrize(
        "size, expected",
        [(0, "0 B"), (512, "512 B"), (1024, "1 KB"), (1536, "1.5 KB"), (5 * 1024 * 1024, "5 MB")],
    )
    def test_format_file_size(self, size, expected):
        assert format_file_size(size) == expected

    def test_file_url(self):
        assert file_url("uploads/images/a.png") == "/files/uploads/images/a.png"
        assert file_url("/temp/a.png", "https://cdn.example/") == "https://cdn.example/files/temp/a.png"

    @pytest.mark.parametrize(
        "filename, expected",
        [
            ("a.png", "image/png"),
            ("A.JPG", "image/jpeg"),
            ("clip.webm", "video/webm"),
            ("cv.pdf", "application/pdf"),
            ("page.html", "application/octet-stream"),
            ("logo.svg", "application/octet-stream"),
            ("noext", "application/octet-stream"),
        ],
    )
    def test_guess_mime_type_uses_fixed_map(self, filename, expected):
        assert guess_mime_type(filename) == expected

    def test_is_inline_type(self):
        assert is_inline_type("image/png")
        assert is_inline_type("video/mp4")
        assert is_inline_type("application/pdf")
        assert not is_inline_type("text/plain")
        assert not is_inline_type("application/octet-stream")

    def test_sniff_mime_type(self, png_bytes):
        assert sniff_mime_type(png_bytes) == "image/png"
        assert sniff_mime_type(b"%PDF-1.4\n") == "application/pdf"
        assert sniff_mime_type("h\u00e9llo".encode()) == "text/plain"
        assert sniff_mime_type(b"\x00\x01\x02\xff") == "application/octet-stream"
        assert sniff_mime_type(b"") == "application/octet-stream"


class TestTemporaryUploadRepo:
    def test_insert_get_delete(self, uploads, context):
        upload = uploads.create(io.BytesIO(b"hello"), filename="a.txt", content_type="text/plain",
                                component_id="c1", context=context)
        repo = TemporaryUploadRepo(uploads.repo.db_path)

        loaded = repo.get(upload.id)
        assert loaded == upload
        assert repo.get_by_path(upload.path) == upload
        assert [u.id for u in repo.list_for_session(context.session_id)] == [upload.id]
        assert repo.count() == 1
        assert repo.delete(upload.id) is True
        assert repo.delete(upload.id) is False


class TestCreate:
    def test_create_stores_file_and_record(self, uploads, context, png_bytes):
        upload = uploads.create(
            io.BytesIO(png_bytes),
            filename="avatar.PNG",
            content_type="image/png",
            component_id="12345",
            context=context,
        )

        assert upload.path == f"temp/{upload.id}.png"
        assert upload.stored_filename == f"{upload.id}.png"
        assert upload.original_filename == "avatar.PNG"
        assert upload.type == "image"
        assert upload.size == len(png_bytes)
        assert upload.session_id == context.session_id
        assert (uploads.root / upload.path).read_bytes() == png_bytes
        assert upload.expires_at - upload.created_at == timedelta(hours=24)

        data = upload.to_dict()
        assert data["id"] == upload.id
        assert data["path"] == upload.path
        assert data["size_formatted"] == format_file_size(len(png_bytes))

    def test_filename_cannot_escape_temp_dir(self, uploads, context):
        upload = uploads.create(io.BytesIO(b"x"), filename="../../evil.sh", content_type="text/x-sh",
                                component_id="c", context=context)
        assert upload.original_filename == "evil.sh"
        assert upload.path.startswith("temp/")
        assert (uploads.root / upload.path).exists()

    def test_odd_extension_dropped(self, uploads, context):
        upload = uploads.create(io.BytesIO(b"x"), filename="file.t?x", content_type="text/plain",
                                component_id="c", context=context)
        assert upload.stored_filename == upload.id

    def test_type_detected_from_content_when_undeclared(self, uploads, context):
        upload = uploads.create(io.BytesIO(b"%PDF-1.7\n"), filename="cv.bin", content_type=None,
                                component_id="c", context=context)
        assert upload.mime_type == "application/pdf"
        assert upload.type == "document"

    def test_declared_type_is_not_trusted(self, tmp_path, context):
        manager = TemporaryUploadManager(tmp_path, TemporaryUploadRepo(tmp_path / "u.db"), allowed_types=["image/*"])
        with pytest.raises(ValidationError):
            manager.create(io.BytesIO(b"#!/bin/sh\necho hi\n"), filename="x.sh", content_type="image/png",
                           component_id="c", context=context)
        assert list((tmp_path / "temp").iterdir()) == []
        assert manager.repo.count() == 0

    def test_real_image_declared_as_text(self, uploads, context, png_bytes):
        upload = uploads.create(io.BytesIO(png_bytes), filename="photo.png", content_type="text/plain",
                                component_id="c", context=context)
        assert upload.mime_type == "image/png"
        assert upload.type == "image"

    def test_image_dimensions_recorded(self, uploads, context, png_bytes):
        upload = uploads.create(io.BytesIO(png_bytes), filename="photo.png", content_type="image/png",
                                component_id="c", context=context)
        assert upload.metadata == {"width": 3, "height": 2}
        assert uploads.repo.get(upload.id).metadata == {"width": 3, "height": 2}

    def test_non_image_has_no_dimensions(self, uploads, context):
        upload = uploads.create(io.BytesIO(b"notes"), filename="notes.txt", content_type="text/plain",
                                component_id="c", context=context)
        assert upload.metadata == {}

    def test_truncated_image_has_no_dimensions(self, uploads, context, png_bytes):
        upload = uploads.create(io.BytesIO(png_bytes[:12]), filename="broken.png", content_type="image/png",
                                component_id="c", context=context)
        assert upload.type == "image"
        assert upload.metadata == {}

    def test_too_large(self, uploads, context):
        with pytest.raises(PayloadTooLargeError):
            uploads.create(io.BytesIO(b"x" * (1024 * 1024 + 1)), filename="big.bin",
                           content_type="application/octet-stream", component_id="c", context=context)
        assert list((uploads.root / "temp").iterdir()) == []
        assert uploads.repo.count() == 0

    def test_type_not_allowed(self, tmp_path, context):
        manager = TemporaryUploadManager(tmp_path, TemporaryUploadRepo(tmp_path / "u.db"), allowed_types=["image/*"])
        with pytest.raises(ValidationError):
            manager.create(io.BytesIO(b"x"), filename="a.txt", content_type="text/plain",
                           component_id="c", context=context)

    def test_component_id_required(self, uploads, context):
        with pytest.raises(ValidationError):
            uploads.create(io.BytesIO(b"x"), filename="a.txt", content_type="text/plain",
                           component_id="", context=context)


class TestDeleteAndServe:
    @pytest.fixture
    def upload(self, uploads, context, png_bytes):
        return uploads.create(io.BytesIO(png_bytes), filename="a.png", content_type="image/png",
                              component_id="c", context=context)

    def test_delete_then_delete_again(self, uploads, upload, context):
        uploads.delete(upload.id, context)
        assert not (uploads.root / upload.path).exists()
        with pytest.raises(UploadNotFoundError):
            uploads.delete(upload.id, context)

    def test_other_session_cannot_delete(self, uploads, upload):
        with pytest.raises(UploadNotFoundError):
            uploads.delete(upload.id, RequestContext(session_id="intruder-session"))
        assert (uploads.root / upload.path).exists()

    def test_serve_temp_to_owner(self, uploads, upload, context, png_bytes):
        path, mime = uploads.serve(upload.path, context)
        assert path.read_bytes() == png_bytes
        assert mime == "image/png"

    def test_serve_temp_hidden_from_other_sessions(self, uploads, upload):
        with pytest.raises(UploadNotFoundError):
            uploads.serve(upload.path, RequestContext(session_id="intruder-session"))

    def test_serve_persisted_file(self, uploads, upload, context, png_bytes):
        name = uploads.persist(upload.id, "avatars")
        path, mime = uploads.serve(f"uploads/avatars/{name}", RequestContext(session_id="anyone-at-all"))
        assert path.read_bytes() == png_bytes
        assert mime == "image/png"

    def test_serve_persisted_html_as_download_type(self, uploads, context):
        upload = uploads.create(io.BytesIO(b"<script>alert(1)</script>"), filename="page.html",
                                content_type="image/png", component_id="c", context=context)
        name = uploads.persist(upload.id, "avatars")
        path, mime = uploads.serve(f"uploads/avatars/{name}", RequestContext(session_id="anyone-at-all"))
        assert path.suffix == ".html"
        assert mime == "application/octet-stream"

    @pytest.mark.parametrize(
        "path",
        [
            "../uploads.db",
            "uploads.db",
            "uploads/../uploads.db",
            "temp/../../etc/passwd",
            "/etc/passwd",
            "temp\\x.png",
            "uploads",
            "",
            "uploads/missing.png",
        ],
    )
    def test_serve_rejects_bad_paths(self, uploads, upload, context, path):
        with pytest.raises(UploadNotFoundError):
            uploads.serve(path, context)


class TestPersist:
    def test_persist_moves_file_and_drops_record(self, uploads, context):
        upload = uploads.create(io.BytesIO(b"data"), filename="doc.pdf", content_type="application/pdf",
                                component_id="c", context=context)

        name = uploads.persist(upload.id, "documents")

        assert name == upload.stored_filename
        assert (uploads.root / "uploads" / "documents" / name).read_bytes() == b"data"
        assert not (uploads.root / upload.path).exists()
        assert uploads.repo.get(upload.id) is None

    def test_persist_replaces_old_file(self, uploads, context):
        old = uploads.create(io.BytesIO(b"old"), filename="a.png", content_type="image/png",
                             component_id="c", context=context)
        old_name = uploads.persist(old.id, "avatars")
        new = uploads.create(io.BytesIO(b"new"), filename="b.png", content_type="image/png",
                             component_id="c", context=context)

        new_name = uploads.persist(new.id, "avatars", old_filename=old_name)

        assert not (uploads.root / "uploads" / "avatars" / old_name).exists()
        assert (uploads.root / "uploads" / "avatars" / new_name).read_bytes() == b"new"

    def test_persist_unknown_id(self, uploads):
        assert uploads.persist("missing", "avatars") is None

    def test_persist_rejects_bad_category(self, uploads):
        with pytest.raises(ValidationError):
            uploads.persist("whatever", "../etc")

    def test_persist_many(self, uploads, context):
        ids = [
            uploads.create(io.BytesIO(b"x"), filename=f"{i}.txt", content_type="text/plain",
                           component_id="c", context=context).id
            for i in range(3)
        ]
        names = uploads.persist_many(ids + ["missing"], "documents")
        assert len(names) == 3

    def test_delete_file_missing_is_ok(self, uploads):
        assert uploads.delete_file("avatars", "nothing.png") is True
        with pytest.raises(ValidationError):
            uploads.delete_file("avatars", "../uploads.db")


class TestCleanup:
    def test_cleanup_expired(self, tmp_path, context):
        now = datetime(2026, 1, 1, tzinfo=timezone.utc)
        clock = lambda: now  # noqa: E731
        repo = TemporaryUploadRepo(tmp_path / "u.db")
        old = TemporaryUploadManager(tmp_path, repo, ttl_hours=1, clock=clock).create(
            io.BytesIO(b"old"), filename="old.txt", content_type="text/plain", component_id="c", context=context
        )
        later = now + timedelta(hours=2)
        manager = TemporaryUploadManager(tmp_path, repo, ttl_hours=1, clock=lambda: later)
        fresh = manager.create(
            io.BytesIO(b"new"), filename="new.txt", content_type="text/plain", component_id="c", context=context
        )

        assert manager.cleanup_expired() == (1, 0)
        assert repo.get(old.id) is None
        assert not (tmp_path / old.path).exists()
        assert repo.get(fresh.id) is not None
        assert manager.cleanup_expired() == (0, 0)

    def test_cleanup_tolerates_missing_files(self, tmp_path, context):
        now = datetime(2026, 1, 1, tzinfo=timezone.utc)
        repo = TemporaryUploadRepo(tmp_path / "u.db")
        upload = TemporaryUploadManager(tmp_path, repo, clock=lambda: now).create(
            io.BytesIO(b"x"), filename="x.txt", content_type="text/plain", component_id="c", context=context
        )
        (tmp_path / upload.path).unlink()

        manager = TemporaryUploadManager(tmp_path, repo, clock=lambda: now + timedelta(days=2))
        assert manager.cleanup_expired() == (1, 0)
