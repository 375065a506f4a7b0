"""
Pytest configuration and shared fixtures for usim tests.
"""

from __future__ import annotations

import struct
import textwrap
import uuid
import zlib
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from usim import config as usim_config
from usim.api import create_app
from usim.cli import DEMO_NAMESPACE, demo_screens_path
from usim.config import Settings
from usim.context import RequestContext
from usim.events import EventDispatcher
from usim.screens import ScreenResolver
from usim.state import UIStateStore
from usim.storage import StorageSigner
from usim.uploads import TemporaryUploadManager, TemporaryUploadRepo

_ENV_VARS = (
    "USIM_SCREENS_NAMESPACE",
    "USIM_SCREENS_PATH",
    "USIM_UPLOAD_ROOT",
    "USIM_UPLOAD_DB_PATH",
    "USIM_TEMP_UPLOAD_TTL_HOURS",
    "USIM_UPLOAD_MAX_SIZE_MB",
    "USIM_UPLOAD_ALLOWED_TYPES",
    "UI_CACHE_TTL",
    "USIM_APP_KEY",
    "USIM_LOGIN_URL",
    "USIM_TRUST_USER_HEADER",
    "USIM_MAX_REQUEST_BYTES",
    "CORS_ALLOW_ORIGINS",
    "CORS_MAX_AGE",
    "DEBUG",
)


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    """Keep the developer's environment and cached settings out of Settings()."""
    for var in _ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setattr(usim_config, "_settings", None)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings pointing at the demo screens and a throwaway upload root."""
    return Settings(
        screens_namespace=DEMO_NAMESPACE,
        screens_path=demo_screens_path(),
        upload_root=tmp_path / "storage",
        upload_db_path=tmp_path / "storage" / "uploads.db",
        app_key="test-signing-key",
        upload_max_size_mb=1,
        debug_mode=True,
    )


@pytest.fixture
def app(settings: Settings):
    return create_app(settings)


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def signer() -> StorageSigner:
    return StorageSigner("test-signing-key")


@pytest.fixture
def ui_state() -> UIStateStore:
    return UIStateStore(ttl_seconds=60)


@pytest.fixture
def resolver(ui_state: UIStateStore, signer: StorageSigner) -> ScreenResolver:
    """Resolver with the demo screens discovered."""
    resolver = ScreenResolver(DEMO_NAMESPACE, demo_screens_path(), state=ui_state, signer=signer)
    resolver.discover()
    return resolver


@pytest.fixture
def dispatcher(resolver: ScreenResolver, signer: StorageSigner) -> EventDispatcher:
    return EventDispatcher(resolver, signer)


@pytest.fixture
def context() -> RequestContext:
    return RequestContext(session_id="session-aaaa1111")


@pytest.fixture
def uploads(tmp_path: Path) -> TemporaryUploadManager:
    root = tmp_path / "storage"
    return TemporaryUploadManager(root, TemporaryUploadRepo(root / "uploads.db"), max_size_mb=1)


@pytest.fixture
def screens_package(tmp_path: Path, monkeypatch):
    """
    Create an importable screens package on the fly.

    Returns a function ``make(files) -> (namespace, path)`` where ``files``
    maps relative module paths to source code.
    """

    def make(files: dict[str, str]) -> tuple[str, Path]:
        package = f"screens_{uuid.uuid4().hex[:8]}"
        base = tmp_path / "pkgs"
        root = base / package
        root.mkdir(parents=True)
        (root / "__init__.py").write_text("", encoding="utf-8")
        for relative, source in files.items():
            target = root / relative
            target.parent.mkdir(parents=True, exist_ok=True)
            for parent in target.relative_to(root).parents:
                init = root / parent / "__init__.py"
                if not init.exists():
                    init.write_text("", encoding="utf-8")
            target.write_text(textwrap.dedent(source), encoding="utf-8")
        monkeypatch.syspath_prepend(str(base))
        return package, root

    return make


def make_png(width: int, height: int) -> bytes:
    """A valid RGB PNG of the given size."""

    def chunk(tag: bytes, data: bytes) -> bytes:
        return struct.pack(">I", len(data)) + tag + data + struct.pack(">I", zlib.crc32(tag + data) & 0xFFFFFFFF)

    rows = b"".join(b"\x00" + b"\xff\x00\x00" * width for _ in range(height))
    return (
        b"\x89PNG\r\n\x1a\n"
        + chunk(b"IHDR", struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0))
        + chunk(b"IDAT", zlib.compress(rows))
        + chunk(b"IEND", b"")
    )


@pytest.fixture
def png_bytes() -> bytes:
    """A 3x2 PNG image."""
    return make_png(3, 2)
