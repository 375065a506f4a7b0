"""
Tests for the usim command line.
"""

import io
import json
from datetime import datetime, timedelta, timezone

from usim.cli import build_parser, main
from usim.context import RequestContext
from usim.uploads import TemporaryUploadManager, TemporaryUploadRepo


def test_parser_requires_command():
    parser = build_parser()
    args = parser.parse_args(["serve", "--port", "9000", "--demo"])
    assert args.command == "serve"
    assert args.port == 9000
    assert args.demo is True


def test_discover_screens_prints_manifest(capsys):
    assert main(["discover-screens", "--demo"]) == 0

    manifest = json.loads(capsys.readouterr().out)
    assert [s["name"] for s in manifest["screens"]] == [
        "admin/reports",
        "dashboard",
        "demo/button-demo",
        "demo/table-demo",
        "demo/uploader-demo",
    ]


def test_discover_screens_writes_file(tmp_path, capsys):
    output = tmp_path / "screens.json"

    assert main(["discover-screens", "--demo", "-o", str(output)]) == 0

    data = json.loads(output.read_text(encoding="utf-8"))
    assert len(data["screens"]) == 5
    assert "Wrote 5 screens" in capsys.readouterr().out


def test_clean_uploads(tmp_path, monkeypatch, capsys):
    root = tmp_path / "storage"
    db_path = root / "uploads.db"
    monkeypatch.setenv("USIM_UPLOAD_ROOT", str(root))
    monkeypatch.setenv("USIM_UPLOAD_DB_PATH", str(db_path))

    long_ago = datetime.now(timezone.utc) - timedelta(days=3)
    stale = TemporaryUploadManager(root, TemporaryUploadRepo(db_path), clock=lambda: long_ago).create(
        io.BytesIO(b"old"),
        filename="old.txt",
        content_type="text/plain",
        component_id="c",
        context=RequestContext(session_id="session-cccc3333"),
    )

    assert main(["clean-uploads"]) == 0

    assert not (root / stale.path).exists()
    assert TemporaryUploadRepo(db_path).count() == 0
    assert "Deleted 1 expired uploads (0 failed)" in capsys.readouterr().out
