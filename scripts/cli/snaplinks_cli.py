#!/usr/bin/env python3
"""
Command-line interface for the snaplinks service.

Runs against the configured backends directly (same environment variables as
app.py), acting as the user given with --user-id.

Usage:
    python snaplinks_cli.py --user-id U upload <file> [<file> ...] [--private]
    python snaplinks_cli.py resolve <short_code>
    python snaplinks_cli.py info <short_code>
    python snaplinks_cli.py --user-id U list [--month YYYY-MM] [--search TEXT]
    python snaplinks_cli.py --user-id U visibility <asset_id> public|private
    python snaplinks_cli.py --user-id U delete <asset_id>
    python snaplinks_cli.py health
"""

import argparse
import asyncio
import json
import mimetypes
import os
import sys
from typing import List, Optional

# Add parent directories to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../..')))

from config import load_config
from snaplinks.common.logging_config import setup_logging
from snaplinks.errors import SnaplinksError
from snaplinks.identity import ANONYMOUS, Requester, Role
from snaplinks.library import format_file_size
from snaplinks.wiring import build_service


def _print_json(payload: dict, stream=None) -> None:
    print(json.dumps(payload, indent=2, default=str), file=stream or sys.stdout)


def _fail(message: str, details: Optional[dict] = None) -> int:
    payload = {"success": False, "error": message}
    if details:
        payload["detail"] = details
    _print_json(payload, sys.stderr)
    return 1


class SnaplinksCLI:
    """Command-line interface for snaplinks."""

    def __init__(self, config, requester: Requester, verbose: bool = False):
        self.config = config
        self.requester = requester
        self.logger = setup_logging(level="DEBUG" if verbose else "WARNING")
        self.service = None

    async def initialize(self):
        self.service = await build_service(self.config, self.logger)

    async def cleanup(self):
        if self.service:
            await self.service.close()

    def _asset(self, record) -> dict:
        data = record.to_dict()
        data["public_url"] = self.service.public_url(record)
        data["size_display"] = format_file_size(record.byte_size)
        return data

    async def upload(self, paths: List[str], is_public: bool) -> int:
        files = []
        for path in paths:
            try:
                with open(path, "rb") as f:
                    data = f.read()
            except OSError as e:
                return _fail(f"Cannot read {path}: {e}")
            content_type, _ = mimetypes.guess_type(path)
            files.append((data, os.path.basename(path), content_type))

        outcomes = await self.service.upload_batch(self.requester, files, is_public=is_public)
        results = [
            {"filename": o.filename, "success": True, "asset": self._asset(o.record)}
            if o.ok
            else {"filename": o.filename, "success": False, "error": o.error.message}
            for o in outcomes
        ]
        failed = sum(1 for o in outcomes if not o.ok)
        _print_json({"success": failed == 0, "uploaded": len(outcomes) - failed, "failed": failed, "results": results})
        return 1 if failed else 0

    async def resolve(self, short_code: str) -> int:
        resolution = await self.service.resolve(short_code, self.requester)
        _print_json({
            "success": True,
            "short_code": short_code,
            "location": resolution.location,
            "view_count": resolution.record.view_count,
        })
        return 0

    async def info(self, short_code: str) -> int:
        resolution = await self.service.link_info(short_code, self.requester)
        record = resolution.record
        _print_json({
            "success": True,
            "short_code": record.short_code,
            "location": resolution.location,
            "original_name": record.original_name,
            "mime_type": record.mime_type,
            "size_display": format_file_size(record.byte_size),
            "view_count": record.view_count,
            "created_at": record.created_at.isoformat(),
        })
        return 0

    async def list_assets(self, month: Optional[str], search: Optional[str]) -> int:
        records = await self.service.list_assets(self.requester, month=month, search=search)
        _print_json({
            "success": True,
            "count": len(records),
            "assets": [self._asset(r) for r in records],
        })
        return 0

    async def visibility(self, asset_id: str, value: str) -> int:
        record = await self.service.set_visibility(asset_id, value == "public", self.requester)
        _print_json({"success": True, "asset": self._asset(record)})
        return 0

    async def delete(self, asset_id: str) -> int:
        deleted = await self.service.delete_asset(asset_id, self.requester)
        _print_json({"success": True, "deleted": deleted})
        return 0

    async def health(self) -> int:
        health_status = await self.service.health_check()
        stats = await self.service.get_statistics()
        _print_json({"success": True, "health": health_status, "statistics": stats})
        return 0 if health_status["overall"] else 1


async def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Snaplinks CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Upload screenshots as user u1
  %(prog)s --user-id u1 upload ~/Desktop/shot.png ~/Desktop/shot2.png

  # Follow a short link as an anonymous visitor (counts a view)
  %(prog)s resolve aB3dE9xZ

  # Make an asset private
  %(prog)s --user-id u1 visibility 5b0f8a8e-0a43-4f55-9b59-2f4f0e3c1d7a private

  # List this month's uploads matching "invoice"
  %(prog)s --user-id u1 list --search invoice
        """
    )

    parser.add_argument("--db-url", help="Asset store URL (default: DATABASE_URL)")
    parser.add_argument("--user-id", help="Act as this user (default: anonymous)")
    parser.add_argument(
        "--role",
        choices=[Role.USER.value, Role.ADMIN.value],
        default=Role.USER.value,
        help="Role of --user-id",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    upload_parser = subparsers.add_parser("upload", help="Upload one or more images")
    upload_parser.add_argument("paths", nargs="+", help="Image files")
    upload_parser.add_argument("--private", action="store_true", help="Only the owner can open the link")

    resolve_parser = subparsers.add_parser("resolve", help="Resolve a short code (counts a view)")
    resolve_parser.add_argument("short_code")

    info_parser = subparsers.add_parser("info", help="Show link information")
    info_parser.add_argument("short_code")

    list_parser = subparsers.add_parser("list", help="List uploads for a month")
    list_parser.add_argument("--month", help="YYYY-MM (default: current month)")
    list_parser.add_argument("--search", help="Filter by file name")

    visibility_parser = subparsers.add_parser("visibility", help="Change visibility")
    visibility_parser.add_argument("asset_id")
    visibility_parser.add_argument("value", choices=["public", "private"])

    delete_parser = subparsers.add_parser("delete", help="Delete an asset")
    delete_parser.add_argument("asset_id")

    subparsers.add_parser("health", help="Check service health")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 1

    overrides = {"database_url": args.db_url} if args.db_url else {}
    config = load_config(**overrides)
    requester = Requester(user_id=args.user_id, role=Role(args.role)) if args.user_id else ANONYMOUS

    cli = SnaplinksCLI(config, requester, verbose=args.verbose)

    try:
        await cli.initialize()

        if args.command == "upload":
            return await cli.upload(args.paths, is_public=not args.private)
        elif args.command == "resolve":
            return await cli.resolve(args.short_code)
        elif args.command == "info":
            return await cli.info(args.short_code)
        elif args.command == "list":
            return await cli.list_assets(args.month, args.search)
        elif args.command == "visibility":
            return await cli.visibility(args.asset_id, args.value)
        elif args.command == "delete":
            return await cli.delete(args.asset_id)
        elif args.command == "health":
            return await cli.health()
        else:
            parser.print_help()
            return 1

    except SnaplinksError as e:
        return _fail(e.message, e.details)
    finally:
        await cli.cleanup()


if __name__ == "__main__":
    exit_code = asyncio.run(main())
    sys.exit(exit_code)
