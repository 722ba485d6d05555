"""Command line helper for checking and inspecting the SheetDesk backend."""

from __future__ import annotations

import argparse
import asyncio
import json
import mimetypes
import sys
from pathlib import Path

from sheetdesk.factory import Backend, build_backend
from sheetdesk.logging_config import configure_logging
from sheetdesk.settings import load_store_settings
from sheetdesk.tables import LAYOUTS


def _print_result(payload: dict) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


async def _command_config(backend: Backend, args: argparse.Namespace) -> int:
    _print_result(backend.settings.to_json())
    return 0


async def _command_init(backend: Backend, args: argparse.Namespace) -> int:
    ready = await backend.initialize()
    for name, client in (("sheets", backend.sheets), ("drive", backend.drive)):
        if client.is_ready:
            print(f"{name:<7}: ready")
        else:
            print(f"{name:<7}: unavailable ({client.initialization_error})")
    return 0 if ready else 1


async def _command_health(backend: Backend, args: argparse.Namespace) -> int:
    result = await backend.handlers.check_connection()
    _print_result(result.to_dict())
    return 0 if result.success else 1


async def _command_list(backend: Backend, args: argparse.Namespace) -> int:
    result = await backend.handlers.entity(args.table).list()
    _print_result(result.to_dict())
    return 0 if result.success else 1


async def _command_upload(backend: Backend, args: argparse.Namespace) -> int:
    path = Path(args.path)
    try:
        content = path.read_bytes()
    except OSError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    mime_type = args.mime_type or mimetypes.guess_type(path.name)[0] or "application/octet-stream"
    result = await backend.handlers.upload_file(content, path.name, mime_type, args.folder)
    _print_result(result.to_dict())
    return 0 if result.success else 1


async def _command_delete_file(backend: Backend, args: argparse.Namespace) -> int:
    result = await backend.handlers.delete_file(args.file)
    _print_result(result.to_dict())
    return 0 if result.success else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="SheetDesk backend tool")
    parser.add_argument("--settings", help="Path to a JSON settings file")
    parser.add_argument("--verbose", action="store_true", help="Mirror log output to stderr")
    subparsers = parser.add_subparsers(dest="command", required=True)

    config_parser = subparsers.add_parser("config", help="Print the effective settings")
    config_parser.set_defaults(func=_command_config)

    init_parser = subparsers.add_parser("init", help="Initialise the Sheets and Drive clients")
    init_parser.set_defaults(func=_command_init)

    health_parser = subparsers.add_parser("health", help="Probe the configured spreadsheet")
    health_parser.set_defaults(func=_command_health)

    list_parser = subparsers.add_parser("list", help="Print every record of a table")
    list_parser.add_argument("table", choices=sorted(LAYOUTS))
    list_parser.set_defaults(func=_command_list)

    upload_parser = subparsers.add_parser("upload", help="Upload a file to Google Drive")
    upload_parser.add_argument("path")
    upload_parser.add_argument("--folder", help="Drive folder name, created when missing")
    upload_parser.add_argument("--mime-type", help="Override the guessed MIME type")
    upload_parser.set_defaults(func=_command_upload)

    delete_parser = subparsers.add_parser("delete-file", help="Delete a Drive file by id or URL")
    delete_parser.add_argument("file")
    delete_parser.set_defaults(func=_command_delete_file)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = load_store_settings(args.settings)
    configure_logging(settings.log_dir, console=args.verbose)
    backend = build_backend(settings)
    return asyncio.run(args.func(backend, args))


if __name__ == "__main__":
    sys.exit(main())
