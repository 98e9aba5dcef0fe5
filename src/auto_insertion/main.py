"""CLI entry point for the CTA auto-insertion engine.

Usage:
    python -m src.auto_insertion.main init-db
    python -m src.auto_insertion.main import --records config/ctas.yaml
    python -m src.auto_insertion.main render --document doc.yaml --page page.html \\
        --output data/rendered.html
    python -m src.auto_insertion.main view --page data/rendered.html \\
        --storage storage.json --output data/viewed.html
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

import yaml

from src.common.config import settings
from src.common.database import init_db
from src.common.errors import AutoInsertError
from src.common.models import DocumentContext

from .conditions import StorageReader
from .manager import AutoInsertManager, CTARepository
from .orchestrator import EventDispatcher, logging_listener, run_auto_insert

logging.basicConfig(
    level=logging.DEBUG if settings.auto_insert.debug else logging.INFO,
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
)
logger = logging.getLogger(__name__)


def _read_text(path: Path) -> str:
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def _write_or_print(text: str, output: Path | None) -> None:
    if output is None:
        sys.stdout.write(text)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    with open(output, "w", encoding="utf-8") as f:
        f.write(text)
    logger.info("Output written to %s", output)


def load_document_context(path: Path) -> DocumentContext:
    """Read a DocumentContext from a YAML or JSON file."""
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    return DocumentContext(**data)


def load_storage_snapshot(path: Path | None) -> StorageReader:
    """Build a StorageReader from ``{"local_storage": {...}, "cookies": ...}``."""
    if path is None:
        return StorageReader()
    with open(path, "r", encoding="utf-8") as f:
        return StorageReader.from_snapshot(json.load(f))


def cmd_init_db(args: argparse.Namespace) -> None:
    init_db(args.db)
    logger.info("Database initialized: %s", args.db or settings.database.db_path)


def cmd_import(args: argparse.Namespace) -> None:
    repository = CTARepository(args.db)
    ids = repository.load_records(args.records)
    for ref, cta_id in ids.items():
        logger.info("  %s → CTA #%d", ref, cta_id)


def cmd_render(args: argparse.Namespace) -> None:
    document = load_document_context(args.document)
    manager = AutoInsertManager(CTARepository(args.db))
    page_html = _read_text(args.page)

    rendered = manager.embed_payload(page_html, document, content_selector=args.selector)
    if manager.requires_highlight_assets(document):
        logger.info("Highlight assets required for document %s", document.document_id)
    _write_or_print(rendered, args.output)


def cmd_view(args: argparse.Namespace) -> None:
    reader = load_storage_snapshot(args.storage)
    events = EventDispatcher([logging_listener])
    html, result = run_auto_insert(_read_text(args.page), reader, events=events)

    if result.inserted:
        logger.info(
            "Inserted CTA #%d at element %d of %d (chain position %d of %d)",
            result.cta_id,
            result.insertion_index,
            result.element_count,
            result.chain_index + 1,
            result.chain_length,
        )
    else:
        logger.info("Nothing inserted: %s", result.reason)
    _write_or_print(html, args.output)


def main() -> None:
    parser = argparse.ArgumentParser(description="CTA Auto-Insertion Engine")
    parser.add_argument(
        "--db",
        type=str,
        default=None,
        help="SQLite database path (default: database.db_path setting)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    init_parser = subparsers.add_parser("init-db", help="Create the CTA table")
    init_parser.set_defaults(func=cmd_init_db)

    import_parser = subparsers.add_parser("import", help="Load CTA records from YAML/JSON")
    import_parser.add_argument("--records", type=Path, required=True, help="Records file")
    import_parser.set_defaults(func=cmd_import)

    render_parser = subparsers.add_parser(
        "render", help="Embed the fallback chain payload into a page"
    )
    render_parser.add_argument(
        "--document", type=Path, required=True, help="Document context YAML/JSON"
    )
    render_parser.add_argument("--page", type=Path, required=True, help="Page HTML")
    render_parser.add_argument("--output", type=Path, help="Output HTML path")
    render_parser.add_argument(
        "--selector",
        type=str,
        help="Content container selector (default: auto_insert.content_selector)",
    )
    render_parser.set_defaults(func=cmd_render)

    view_parser = subparsers.add_parser(
        "view", help="Run view-time insertion over a rendered page"
    )
    view_parser.add_argument("--page", type=Path, required=True, help="Rendered page HTML")
    view_parser.add_argument(
        "--storage", type=Path, help="Client storage snapshot JSON"
    )
    view_parser.add_argument("--output", type=Path, help="Output HTML path")
    view_parser.set_defaults(func=cmd_view)

    args = parser.parse_args()

    try:
        args.func(args)
    except AutoInsertError as e:
        logger.error("%s", e)
        sys.exit(1)


if __name__ == "__main__":
    main()
