"""
Command line entrypoint.

Usage:
  usim serve --host 0.0.0.0 --port 8000
  usim serve --demo
  usim discover-screens --output screens.json
  usim clean-uploads
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path

from usim.config import Settings, get_settings

DEMO_NAMESPACE = "usim.demo.screens"


def demo_screens_path() -> Path:
    return Path(__file__).resolve().parent / "demo" / "screens"


def _cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    if args.demo:
        # The factory reads settings from the environment in the server process.
        os.environ["USIM_SCREENS_NAMESPACE"] = DEMO_NAMESPACE
        os.environ["USIM_SCREENS_PATH"] = str(demo_screens_path())

    uvicorn.run("usim.api:create_app", factory=True, host=args.host, port=args.port, reload=args.reload)
    return 0


def _cmd_discover(args: argparse.Namespace, settings: Settings) -> int:
    from usim.screens.registry import ScreenResolver
    from usim.state import UIStateStore
    from usim.storage import StorageSigner

    resolver = ScreenResolver(
        settings.screens_namespace,
        settings.screens_path,
        state=UIStateStore(settings.ui_state_ttl_seconds),
        signer=StorageSigner(settings.app_key),
        login_url=settings.login_url,
    )
    if str(Path.cwd()) not in sys.path:
        sys.path.insert(0, str(Path.cwd()))
    resolver.discover()

    manifest = json.dumps({"screens": resolver.manifest()}, indent=2, ensure_ascii=False)
    if args.output:
        Path(args.output).write_text(manifest + "\n", encoding="utf-8")
        print(f"Wrote {len(resolver)} screens to {args.output}")
    else:
        print(manifest)
    return 0


def _cmd_clean_uploads(args: argparse.Namespace, settings: Settings) -> int:
    from usim.uploads import TemporaryUploadManager, TemporaryUploadRepo

    manager = TemporaryUploadManager(
        settings.upload_root,
        TemporaryUploadRepo(settings.upload_db_path),
        ttl_hours=settings.temporary_upload_ttl_hours,
    )
    deleted, failed = manager.cleanup_expired()
    print(f"Deleted {deleted} expired uploads ({failed} failed)")
    return 1 if failed else 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="usim", description="USIM server-driven UI toolkit")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the API server")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.add_argument("--reload", action="store_true")
    serve.add_argument("--demo", action="store_true", help="Serve the bundled demo screens")

    discover = sub.add_parser("discover-screens", help="Print or write the screen manifest")
    discover.add_argument("--output", "-o", help="Write the manifest JSON to this file")
    discover.add_argument("--demo", action="store_true", help="Use the bundled demo screens")

    sub.add_parser("clean-uploads", help="Delete expired temporary uploads")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    if args.command == "serve":
        return _cmd_serve(args)

    settings = get_settings()
    if args.command == "discover-screens":
        if args.demo:
            settings = Settings(screens_namespace=DEMO_NAMESPACE, screens_path=demo_screens_path())
        return _cmd_discover(args, settings)
    return _cmd_clean_uploads(args, settings)


if __name__ == "__main__":
    sys.exit(main())
