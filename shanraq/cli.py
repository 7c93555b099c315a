"""Command-line interface for running and inspecting the Shanraq auth service."""

from __future__ import annotations

import argparse
import sys

from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from .config import ShanraqSettings


def main(argv: list[str] | None = None) -> int:
    """Run the main CLI entry point.

    Returns
    -------
    int
        Exit code.
    """
    parser = argparse.ArgumentParser(
        prog="shanraq",
        description="Shanraq identity and session service",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP server")
    serve_parser.add_argument("--host", type=str, help="Bind address (default from settings)")
    serve_parser.add_argument("--port", type=int, help="Bind port (default from settings)")

    config_parser = subparsers.add_parser("config", help="Show configuration")
    config_parser.add_argument(
        "--show",
        action="store_true",
        help="Show current configuration with secrets redacted",
    )

    subparsers.add_parser("providers", help="List the provider names the app would register")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    from .config import get_settings

    settings = get_settings()

    if args.command == "serve":
        return _serve(settings, host=args.host, port=args.port)
    if args.command == "config":
        print(settings.show())
        return 0
    if args.command == "providers":
        from .app import build_registry

        for name in build_registry(settings.auth).names():
            print(name)
        return 0

    parser.print_help()
    return 1


def _serve(settings: ShanraqSettings, host: str | None = None, port: int | None = None) -> int:
    """Run uvicorn with the application built from ``settings``."""
    import uvicorn

    from .app import create_app

    host = host or settings.server.host
    port = port or settings.server.port

    if settings.server.reload:
        # Reload needs an import string; the factory re-reads settings in the worker
        uvicorn.run(
            "shanraq.app:create_app",
            factory=True,
            reload=True,
            host=host,
            port=port,
            log_level=settings.server.log_level,
        )
        return 0

    uvicorn.run(
        create_app(settings),
        host=host,
        port=port,
        log_level=settings.server.log_level,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
