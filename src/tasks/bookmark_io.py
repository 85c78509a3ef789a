"""
Import and export bookmarks from the command line.

Usage:
    PYTHONPATH=src python -m tasks.bookmark_io import linkding_export.json
    PYTHONPATH=src python -m tasks.bookmark_io export-html -o bookmarks.html
"""
import argparse
import asyncio
import logging
import sys
from pathlib import Path

from sqlalchemy.ext.asyncio import AsyncSession

from core.config import get_settings
from core.log_config import configure_logging
from db.session import engine, session_scope
from services.export_service import export_bookmarks
from services.import_service import ImportResult, import_bookmarks, load_linkding_export

logger = logging.getLogger(__name__)


async def run_import(path: Path, db: AsyncSession | None = None) -> ImportResult:
    """Import a linkding JSON export and commit everything that succeeded."""
    records = load_linkding_export(path)

    if db is not None:
        return await import_bookmarks(db, records)

    try:
        async with session_scope() as session:
            return await import_bookmarks(session, records)
    finally:
        await engine.dispose()


async def run_export(db: AsyncSession | None = None) -> str:
    """Render every bookmark as a Netscape bookmark file."""
    if db is not None:
        return await export_bookmarks(db)

    try:
        async with session_scope() as session:
            return await export_bookmarks(session)
    finally:
        await engine.dispose()


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    configure_logging(get_settings().log_level)

    parser = argparse.ArgumentParser(description="Import or export bookmarks.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    import_parser = subparsers.add_parser("import", help="Import a linkding JSON export")
    import_parser.add_argument("path", type=Path, help="JSON file to import")

    export_parser = subparsers.add_parser(
        "export-html", help="Export all bookmarks as a Netscape bookmark file",
    )
    export_parser.add_argument(
        "-o", "--output", type=Path, default=None, help="Output file (default: stdout)",
    )

    args = parser.parse_args(argv)

    if args.command == "import":
        report = asyncio.run(run_import(args.path))
        print(f"Imported {report.imported} entries")
        if report.failed_urls:
            print("Failed to import:", file=sys.stderr)
            for url in report.failed_urls:
                print(f"  {url}", file=sys.stderr)
            return 1
        return 0

    html = asyncio.run(run_export())
    if args.output is None:
        sys.stdout.write(html)
    else:
        args.output.write_text(html, encoding="utf-8")
        logger.info("Wrote bookmarks to %s", args.output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
