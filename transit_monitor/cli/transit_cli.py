"""
Command-line interface for the transit record store.

Usage:
    python -m transit_monitor.cli.transit_cli import --input <file_path> [--mode append|replace]
    python -m transit_monitor.cli.transit_cli preview --input <file_path> [--rows N]
    python -m transit_monitor.cli.transit_cli stats
    python -m transit_monitor.cli.transit_cli query [filters] [--search TEXT] [--sort COL] [--desc]
    python -m transit_monitor.cli.transit_cli export --output <file_path>
    python -m transit_monitor.cli.transit_cli clear --yes
    python -m transit_monitor.cli.transit_cli storage-info
    python -m transit_monitor.cli.transit_cli api-status
    python -m transit_monitor.cli.transit_cli metrics
"""

import argparse
import asyncio
import sys
from pathlib import Path

from transit_monitor.config import ConfigError, load_settings
from transit_monitor.context import AppContext, build_context
from transit_monitor.core.models import (
    ANOMALY_PROBABILITIES,
    ANOMALY_TYPES,
    PROBABILITY_LABELS,
    RISK_LEVELS,
    FilterState,
    SortState,
)
from transit_monitor.ingest import ImportAbortedError, create_preview, validate_csv_file
from transit_monitor.ingest.importer import decode_text
from transit_monitor.observability.logger import get_logger, setup_logger
from transit_monitor.observability.metrics import generate_metrics
from transit_monitor.query import query_records
from transit_monitor.storage import StorageEvent

logger = get_logger(__name__)

MAX_ERRORS_SHOWN = 10


def print_storage_event(event: StorageEvent) -> None:
    details = ", ".join(f"{key}={value}" for key, value in event.detail.items())
    print(f"Warning: {event.name}" + (f" ({details})" if details else ""))


def open_context(args) -> AppContext:
    """Load settings (with command-line overrides) and build the context."""
    settings = load_settings(args.config, storage_dir=args.storage_dir)
    setup_logger(level=args.log_level or settings.log_level, format_type=settings.log_format)
    context = build_context(settings)
    context.store.on_event(print_storage_event)
    return context


def import_command(args):
    """
    Import a CSV file into the record store.

    Args:
        args: Command line arguments
    """
    context = open_context(args)
    logger.info(f"Importing {args.input} ({args.mode})")

    try:
        report = asyncio.run(context.importer.import_file(args.input, mode=args.mode))
    except ImportAbortedError as e:
        logger.error(f"Import aborted: {e}")
        print(f"\nImport aborted: {e}")
        for message in e.errors[:MAX_ERRORS_SHOWN]:
            print(f"  - {message}")
        sys.exit(1)

    print(f"\n{'=' * 60}")
    print("IMPORT COMPLETE")
    print(f"{'=' * 60}")
    print(f"Mode:               {report.mode}")
    print(f"Rows read:          {report.total_rows}")
    print(f"Valid rows:         {report.valid_rows}")
    print(f"Imported:           {report.imported}")
    print(f"Duplicates:         {report.duplicates}")
    print(f"Errors:             {report.error_count}")
    print(f"Records in store:   {report.store_count}")
    print(f"{'=' * 60}")

    for warning in report.warnings:
        print(f"Warning: {warning}")
    if report.errors:
        print("\nErrors:")
        for message in report.errors[:MAX_ERRORS_SHOWN]:
            print(f"  - {message}")
        if len(report.errors) > MAX_ERRORS_SHOWN:
            print(f"  и еще {len(report.errors) - MAX_ERRORS_SHOWN} ошибок...")
    print()


def preview_command(args):
    """
    Show the header and first rows of a CSV file without importing it.

    Args:
        args: Command line arguments
    """
    path = Path(args.input)
    try:
        errors = validate_csv_file(path)
        text = decode_text(path.read_bytes())
    except OSError as e:
        logger.error(f"Cannot read {path}: {e}")
        sys.exit(1)

    for message in errors:
        print(f"Warning: {message}")

    rows = create_preview(text, max_rows=args.rows)
    if not rows:
        print("\nNothing to preview.")
        return

    print(f"\n{'=' * 80}")
    print(f"PREVIEW: {path.name}")
    print(f"{'=' * 80}")
    for index, row in enumerate(rows):
        print(" | ".join(row))
        if index == 0:
            print(f"{'-' * 80}")
    print()


def stats_command(args):
    """
    Show anomaly probability counts for the stored records.

    Args:
        args: Command line arguments
    """
    context = open_context(args)
    stats = context.store.get_anomaly_stats()
    last_import = context.store.get_last_import_info()

    print(f"\n{'=' * 60}")
    print("ANOMALY STATISTICS")
    print(f"{'=' * 60}")
    print(f"Total records: {stats.total}")
    for probability in ANOMALY_PROBABILITIES:
        count = getattr(stats, probability)
        share = count / stats.total * 100 if stats.total else 0.0
        print(f"  {PROBABILITY_LABELS[probability]:<25} {count:>8} ({share:5.1f}%)")
    if last_import:
        print(f"\nLast snapshot: {last_import['type']}, {last_import['count']} records at {last_import['timestamp']}")
    print(f"{'=' * 60}\n")


def build_filters(args) -> FilterState:
    """Translate query options into a FilterState."""
    return FilterState(
        probability_filter={name: True for name in args.probability or []},
        risk_filter={name: True for name in args.risk or []},
        anomaly_filter={name: True for name in args.anomaly or []},
        quick_filters={
            "only_anomalies": args.only_anomalies,
            "high_probability_only": args.high_only,
            "recent_only": args.recent,
        },
    )


def query_command(args):
    """
    Filter, sort and page the stored records.

    Args:
        args: Command line arguments
    """
    context = open_context(args)

    sort = SortState()
    if args.sort:
        sort = sort.handle_sort(args.sort)
        if args.desc:
            sort = sort.handle_sort(args.sort)

    try:
        result = query_records(
            context.store.get_all(),
            filters=build_filters(args),
            sort=sort,
            search=args.search or "",
            page=args.page,
            page_size=args.page_size,
        )
    except ValueError as e:
        logger.error(f"Invalid query: {e}")
        sys.exit(1)

    print(f"\n{'ID':<36} {'Order':<12} {'Wagon':<12} {'Cargo':<24} {'Probability':<10} {'Anomalies'}")
    print(f"{'-' * 110}")
    for record in result.items:
        print(
            f"{record.id[:36]:<36} {(record.order_number or '-')[:12]:<12} "
            f"{(record.wagon_container_number or '-')[:12]:<12} {(record.cargo_name or '-')[:24]:<24} "
            f"{record.anomaly_probability:<10} {','.join(record.anomaly_types) or '-'}"
        )
    print(f"\nPage {result.page}/{result.total_pages}, {result.total_count} matching records\n")


def export_command(args):
    """
    Write the stored records to a CSV file.

    Args:
        args: Command line arguments
    """
    context = open_context(args)
    csv_text = context.store.export_to_csv()
    if not csv_text:
        print("\nNo records to export.\n")
        return

    try:
        Path(args.output).write_text(csv_text, encoding="utf-8")
    except OSError as e:
        logger.error(f"Cannot write {args.output}: {e}", exc_info=True)
        sys.exit(1)
    print(f"\nExported {context.store.get_count()} records to {args.output}\n")


def clear_command(args):
    """
    Remove every stored record.

    Args:
        args: Command line arguments
    """
    if not args.yes:
        print("Refusing to clear without --yes")
        sys.exit(1)
    context = open_context(args)
    count = context.store.get_count()
    context.store.clear()
    print(f"\nCleared {count} records.\n")


def storage_info_command(args):
    """
    Show persisted snapshot size against the storage budget.

    Args:
        args: Command line arguments
    """
    context = open_context(args)
    info = context.store.get_storage_info()

    print(f"\n{'=' * 60}")
    print("STORAGE")
    print(f"{'=' * 60}")
    print(f"Snapshot kind:   {info['data_type']}")
    print(f"Size:            {info['size']} bytes")
    print(f"Budget:          {info['max_size']} bytes")
    print(f"Usage:           {info['usage']}%")
    print(f"Fits in full:    {'yes' if info['can_store_full'] else 'no'}")
    print(f"{'=' * 60}\n")


def api_status_command(args):
    """
    Check whether the analytics backend answers.

    Args:
        args: Command line arguments
    """
    context = open_context(args)
    status = asyncio.run(context.backend.get_api_status())
    state = "available" if status["is_available"] else "unavailable, static data in use"
    print(f"\nBackend {status['base_url']}: {state}\n")


def metrics_command(args):
    """Print the metrics registry in Prometheus text format."""
    print(generate_metrics().decode("utf-8"))


COMMANDS = {
    "import": import_command,
    "preview": preview_command,
    "stats": stats_command,
    "query": query_command,
    "export": export_command,
    "clear": clear_command,
    "storage-info": storage_info_command,
    "api-status": api_status_command,
    "metrics": metrics_command,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Transit anomaly record store",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Append a railway operations export to the store
  python -m transit_monitor.cli.transit_cli import --input data/operations.csv

  # Replace the stored records
  python -m transit_monitor.cli.transit_cli import --input data/operations.csv --mode replace

  # High-probability weight anomalies, heaviest first
  python -m transit_monitor.cli.transit_cli query --probability high --anomaly weight \\
      --sort total_weight --desc
        """,
    )
    parser.add_argument("--config", default=None, help="Settings YAML file (default: config/settings.yaml)")
    parser.add_argument("--storage-dir", default=None, help="Directory holding the persisted snapshot")
    parser.add_argument("--log-level", default=None, help="Log level (default: from settings)")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    import_parser = subparsers.add_parser("import", help="Import a CSV file")
    import_parser.add_argument("--input", required=True, help="Path to CSV file")
    import_parser.add_argument(
        "--mode",
        default="append",
        choices=["append", "replace"],
        help="Append to or replace the stored records (default: append)",
    )

    preview_parser = subparsers.add_parser("preview", help="Preview a CSV file")
    preview_parser.add_argument("--input", required=True, help="Path to CSV file")
    preview_parser.add_argument("--rows", type=int, default=5, help="Data rows to show (default: 5)")

    subparsers.add_parser("stats", help="Show anomaly statistics")

    query_parser = subparsers.add_parser("query", help="Filter, sort and page records")
    query_parser.add_argument("--probability", nargs="+", choices=ANOMALY_PROBABILITIES, help="Probability categories")
    query_parser.add_argument("--risk", nargs="+", choices=RISK_LEVELS, help="Risk levels")
    query_parser.add_argument(
        "--anomaly", nargs="+", choices=ANOMALY_TYPES + ("no_anomalies",), help="Anomaly types"
    )
    query_parser.add_argument("--only-anomalies", action="store_true", help="Only records with anomalies")
    query_parser.add_argument("--high-only", action="store_true", help="Only high probability records")
    query_parser.add_argument("--recent", action="store_true", help="Only records from the last 7 days")
    query_parser.add_argument("--search", help="Search text")
    query_parser.add_argument("--sort", help="Column to sort by")
    query_parser.add_argument("--desc", action="store_true", help="Sort descending")
    query_parser.add_argument("--page", type=int, default=1, help="Page number (default: 1)")
    query_parser.add_argument("--page-size", type=int, default=20, help="Records per page (default: 20)")

    export_parser = subparsers.add_parser("export", help="Export records to CSV")
    export_parser.add_argument("--output", required=True, help="Destination CSV file")

    clear_parser = subparsers.add_parser("clear", help="Remove all stored records")
    clear_parser.add_argument("--yes", action="store_true", help="Confirm removal")

    subparsers.add_parser("storage-info", help="Show storage usage")
    subparsers.add_parser("api-status", help="Check the analytics backend")
    subparsers.add_parser("metrics", help="Print Prometheus metrics")

    return parser


def main(argv=None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        COMMANDS[args.command](args)
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        print(f"\nConfiguration error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
