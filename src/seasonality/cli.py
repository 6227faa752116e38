#!/usr/bin/env python3
"""Command-line interface for seasonality annotation and filtering."""

from __future__ import annotations

import argparse
import logging
import sys

from seasonality.commands.config import VALID_LOG_LEVELS


def configure_logging(level: str) -> None:
    """Configure root logging for a command run."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        force=True,
    )


def cmd_annotate(args: argparse.Namespace) -> int:
    """Derive and write annotated series from configuration."""
    from seasonality.commands.annotate import load_annotate_config, run_annotate
    from seasonality.exceptions import (ConfigError, DataSourceError,
                                        DataValidationError)

    try:
        config = load_annotate_config(args.config)
    except ConfigError as e:
        print(f"Configuration error: {e}")
        return 1

    configure_logging(args.log_level or config.log_level)

    print("=" * 60)
    print("ANNOTATE")
    print("=" * 60)
    print(f"Source:      {config.data_source}")
    if config.symbols:
        print(f"Symbols:     {', '.join(config.symbols)}")
    if config.date_range:
        print(f"Date Range:  {config.date_range.start} to {config.date_range.end}")
    print(f"Output:      {config.output_dir}")

    try:
        result = run_annotate(config, write=not args.dry_run)
    except DataSourceError as e:
        print(f"Data source error: {e}")
        return 1
    except DataValidationError as e:
        print(f"Data validation error: {e}")
        return 1

    if result.quality:
        print(f"\n{'Quality':<15} {'Rows':>8} {'Invalid':>8} {'Dupes':>8} {'Gaps':>8} {'Outliers':>8}")
        print("-" * 60)
        for symbol, report in result.quality.items():
            print(
                f"{symbol:<15} {report.total_rows:>8} {report.validation.invalid_rows:>8} "
                f"{report.duplicates.duplicate_count:>8} {report.gaps.gap_count:>8} "
                f"{report.outliers.outlier_count:>8}"
            )

    if not result.series:
        print("\nNo data loaded. Check the source and date range.")
        return 1

    print(f"\n{'Symbol':<15} {'Daily':>8} {'Mon-wk':>8} {'Exp-wk':>8} {'Months':>8} {'Years':>6}")
    print("-" * 60)
    for symbol, series in result.series.items():
        print(
            f"{symbol:<15} {len(series.daily):>8} {len(series.monday_weekly):>8} "
            f"{len(series.expiry_weekly):>8} {len(series.monthly):>8} {len(series.yearly):>6}"
        )

    if result.written:
        print(f"\nWrote {len(result.written)} files to {config.output_dir}")

    return 0


def cmd_filter(args: argparse.Namespace) -> int:
    """Filter an annotated series from configuration and print statistics."""
    from seasonality.commands.filter_data import load_filter_config, run_filter
    from seasonality.exceptions import (ConfigError, DataSourceError,
                                        DataValidationError)

    try:
        config = load_filter_config(args.config)
    except ConfigError as e:
        print(f"Configuration error: {e}")
        return 1

    configure_logging(args.log_level or config.log_level)

    try:
        result = run_filter(config)
    except (DataSourceError, DataValidationError) as e:
        print(f"Error: {e}")
        return 1

    stats = result.statistics

    print("=" * 60)
    print(f"FILTER: {result.symbol} ({result.granularity.value})")
    print("=" * 60)
    print(f"Rows kept:       {len(result.rows)} of {result.total_rows}")
    if result.date_range:
        print(f"Date Range:      {result.date_range.start} to {result.date_range.end}")
    if result.years:
        print(f"Years:           {len(result.years)} ({result.years[0]}-{result.years[-1]})")
    print(f"Avg Return:      {stats.avg_return_all:+.4f}%")
    print(f"Sum Return:      {stats.sum_return_all:+.4f}%")
    print(f"Positive:        {stats.pos_count} ({stats.pos_accuracy:.2f}%)")
    print(f"Negative:        {stats.neg_count} ({stats.neg_accuracy:.2f}%)")

    if result.grouped:
        print(f"\n{'Group':<15} {'Count':>7} {'Avg':>10} {'Sum':>10} {'Pos%':>8}")
        print("-" * 60)
        for key, group in result.grouped.items():
            print(
                f"{key:<15} {group.all_count:>7} {group.avg_return_all:>+10.4f} "
                f"{group.sum_return_all:>+10.4f} {group.pos_accuracy:>7.2f}%"
            )

    if config.output_path is not None:
        print(f"\nWrote filtered rows to {config.output_path}")

    return 0


def cmd_quality(args: argparse.Namespace) -> int:
    """Run the data quality checks on a CSV file."""
    from seasonality.data.quality import (run_quality_check,
                                          validate_required_columns)
    from seasonality.data.sources import CSVDataSource
    from seasonality.exceptions import DataSourceError

    configure_logging(args.log_level or "WARNING")

    try:
        source = CSVDataSource({"file_path": args.csv, "delimiter": args.delimiter})
        headers = source.read_headers()
        rows = source.read_rows()
    except DataSourceError as e:
        print(f"Data source error: {e}")
        return 1

    columns = validate_required_columns(headers)
    print("=" * 60)
    print(f"QUALITY: {args.csv}")
    print("=" * 60)
    if not columns.valid:
        print(f"Missing columns: {', '.join(columns.missing_columns)}")
        return 1

    report = run_quality_check(
        rows,
        symbol_field="symbol" if "symbol" in columns.normalized_headers else None,
        max_gap_days=args.max_gap_days,
        outlier_threshold=args.outlier_threshold,
    )

    print(f"Rows:         {report.total_rows}")
    if report.date_range:
        print(f"Date Range:   {report.date_range.start} to {report.date_range.end}")
    print(f"Valid rows:   {report.validation.valid_rows}")
    print(f"Errors:       {report.validation.total_errors}")
    print(f"Warnings:     {report.validation.total_warnings}")
    print(f"Duplicates:   {report.duplicates.duplicate_count}")
    print(f"Gaps:         {report.gaps.gap_count} (> {report.gaps.max_gap_days} days)")
    print(f"Outliers:     {report.outliers.outlier_count} (|z| > {report.outliers.threshold})")

    if args.verbose:
        for issue in report.validation.errors[:20]:
            print(f"   ERROR   {issue.message}")
        for issue in report.validation.warnings[:20]:
            print(f"   WARNING {issue.message}")
        for gap in report.gaps.gaps[:20]:
            print(f"   GAP     {gap.from_date} -> {gap.to_date} ({gap.gap_days} days)")
        for point in report.outliers.outliers[:20]:
            print(f"   OUTLIER {point.date} {point.return_percentage:+.2f}% (z={point.z_score})")

    print("\nOverall:      " + ("valid" if report.overall_valid else "invalid"))
    return 0 if report.overall_valid else 1


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Seasonality annotation and filtering CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=sorted(VALID_LOG_LEVELS),
        default=None,
        help="Override the logging level",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Annotate command
    annotate_parser = subparsers.add_parser(
        "annotate", help="Derive annotated series and write them as CSV"
    )
    annotate_parser.add_argument("config", help="Path to YAML configuration file")
    annotate_parser.add_argument(
        "--dry-run", action="store_true", help="Derive without writing files"
    )

    # Filter command
    filter_parser = subparsers.add_parser(
        "filter", help="Filter an annotated series and print statistics"
    )
    filter_parser.add_argument("config", help="Path to YAML configuration file")

    # Quality command
    quality_parser = subparsers.add_parser(
        "quality", help="Run data quality checks on a CSV file"
    )
    quality_parser.add_argument("csv", help="Path to the CSV file")
    quality_parser.add_argument(
        "--max-gap-days", type=int, default=5, help="Largest tolerated gap (default: 5)"
    )
    quality_parser.add_argument(
        "--outlier-threshold", type=float, default=3.0, help="Z-score threshold (default: 3)"
    )
    quality_parser.add_argument("--delimiter", default=",", help="CSV delimiter")
    quality_parser.add_argument(
        "-v", "--verbose", action="store_true", help="List individual findings"
    )

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    if args.command == "annotate":
        return cmd_annotate(args)
    elif args.command == "filter":
        return cmd_filter(args)
    elif args.command == "quality":
        return cmd_quality(args)

    return 0


if __name__ == "__main__":
    sys.exit(main())
