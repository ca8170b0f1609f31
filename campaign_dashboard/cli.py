"""CLI entry point for the campaign dashboard.

Orchestrates the pipeline: config loading, table ingestion, normalization,
reconciliation, filtering and aggregation, writing the views as JSON.

Usage::

    # Compute all views for March, São Paulo only
    python -m campaign_dashboard.cli report \\
        --delivery data/consolidado.csv \\
        --reach TikTok=data/tiktok_alcance.csv \\
        --reach Meta=data/planilha.xlsx#Meta_alcance \\
        --plan data/planilha.xlsx#Estratégia\\ Online \\
        --start 01/03/2025 --end 31/03/2025 --region "São Paulo" \\
        --output output/march.json

    # Show how a table's headers resolve against a source schema
    python -m campaign_dashboard.cli inspect --source delivery --table data/consolidado.csv

    # Write the default configuration for editing
    python -m campaign_dashboard.cli init-config --output config/dashboard.yaml
"""

import argparse
import json
import sys
from pathlib import Path

import yaml

from campaign_dashboard.processor.columns import resolve_columns
from campaign_dashboard.processor.filters import FilterState
from campaign_dashboard.processor.ingestion import read_table
from campaign_dashboard.processor.views import VIEW_NAMES, DashboardBuilder
from campaign_dashboard.schema.loader import load_config, save_config
from campaign_dashboard.schema.models import SourceType
from campaign_dashboard.schema.sources import build_default_config


# ---------------------------------------------------------------------------
# Config loading
# ---------------------------------------------------------------------------

def _load_config(args):
    """Load a DashboardConfig from --config, or the built-in default."""
    if getattr(args, "config", None):
        path = Path(args.config)
        if not path.exists():
            _error(f"Config file not found: {path}")
        try:
            return load_config(path)
        except (ValueError, KeyError, yaml.YAMLError) as e:
            _error(f"Invalid config file {path}: {e}")
    return build_default_config()


# ---------------------------------------------------------------------------
# Table ingestion
# ---------------------------------------------------------------------------

_SOURCE_FLAGS = ("delivery", "benchmark", "events", "sessions", "plan")


def _split_sheet(spec):
    """Split ``path#sheet`` into (path, sheet); sheet is None when absent."""
    path, sep, sheet = str(spec).partition("#")
    return Path(path), (sheet if sep and sheet else None)


def _read(spec):
    path, sheet = _split_sheet(spec)
    if not path.exists():
        _error(f"Data file not found: {path}")
    try:
        return read_table(path, sheet)
    except ValueError as e:
        _error(str(e))


def _ingest_sources(args):
    """Read all tables specified via CLI flags.

    Returns a dict mapping source name to RawTable ('reach' maps tab
    label to RawTable).
    """
    sources = {}
    for source in _SOURCE_FLAGS:
        spec = getattr(args, source, None)
        if spec is None:
            continue
        _info(f"Reading {source} from {spec}")
        sources[source] = _read(spec)

    reach = {}
    for item in args.reach or []:
        label, sep, spec = item.partition("=")
        if not sep or not label or not spec:
            _error(f"Invalid --reach value {item!r}. Use LABEL=PATH.")
        _info(f"Reading {label} reach from {spec}")
        reach[label] = _read(spec)
    if reach:
        sources["reach"] = reach

    if not sources:
        _warn("No data sources specified; every view will be empty")

    return sources


def _filter_state(args):
    return FilterState.create(
        start=args.start,
        end=args.end,
        platforms=args.platform or (),
        regions=args.region or (),
        categories=args.category or (),
        origins=args.origin or (),
        months=args.month or (),
    )


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def cmd_report(args):
    """Compute the dashboard views and write them as JSON."""
    config = _load_config(args)
    sources = _ingest_sources(args)

    state = _filter_state(args)
    if args.start and state.start is None:
        _warn(f"Could not parse --start {args.start!r}; range left open")
    if args.end and state.end is None:
        _warn(f"Could not parse --end {args.end!r}; range left open")

    builder = DashboardBuilder(config)
    result = builder.build(sources, state)

    for w in result.warnings:
        _warn(w)

    data = result.to_dict()
    if args.view:
        data["views"] = {name: data["views"][name] for name in args.view}

    text = json.dumps(data, indent=2, ensure_ascii=False)
    if args.output:
        output = Path(args.output)
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(text + "\n", encoding="utf-8")
        _info(f"Written: {output}")
    else:
        print(text)


def cmd_inspect(args):
    """Show how a table's headers resolve against a source schema."""
    config = _load_config(args)
    try:
        schema = config.schema(args.source)
    except ValueError as e:
        _error(str(e))
    table = _read(args.table)
    resolution = resolve_columns(table.header, schema)

    print(f"Table:   {table.name}")
    print(f"Schema:  {schema.name} ({schema.source_type.value})")
    print(f"Rows:    {len(table)}")
    print(f"Columns: {len(schema.columns) - len(resolution.missing)}"
          f"/{len(schema.columns)} resolved")
    print()
    for spec in schema.columns:
        index = resolution.index(spec.name)
        if index is None:
            print(f"  {spec.name:<24}  -   not found")
            continue
        print(f"  {spec.name:<24} [{index:2d}] {resolution.header_for(spec.name)!r}"
              f" ({resolution.strategies[spec.name]})")

    if args.verbose:
        print()
        print("Header row:")
        for i, h in enumerate(table.header):
            print(f"  [{i:2d}] {h!r}")


def cmd_init_config(args):
    """Write the built-in configuration as YAML."""
    output = Path(args.output)
    if output.exists() and not args.force:
        _error(f"{output} already exists. Use --force to overwrite.")
    save_config(build_default_config(), output)
    _info(f"Written: {output}")


# ---------------------------------------------------------------------------
# Output helpers
# ---------------------------------------------------------------------------

def _info(msg):
    print(f"  {msg}", file=sys.stderr)


def _warn(msg):
    print(f"  WARNING: {msg}", file=sys.stderr)


def _error(msg):
    print(f"  ERROR: {msg}", file=sys.stderr)
    sys.exit(1)


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------

def build_parser():
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="campaign-dashboard",
        description="Compute campaign dashboard metrics from spreadsheet exports.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # ---- report ----
    rep = subparsers.add_parser(
        "report",
        help="Compute the dashboard views as JSON.",
    )
    _add_config_args(rep)
    _add_data_args(rep)
    _add_filter_args(rep)
    rep.add_argument(
        "-o", "--output",
        help="Output JSON file path (default: stdout).",
    )
    rep.add_argument(
        "--view",
        action="append",
        choices=VIEW_NAMES,
        help="Only include this view (repeatable; default: all).",
    )
    rep.set_defaults(func=cmd_report)

    # ---- inspect ----
    insp = subparsers.add_parser(
        "inspect",
        help="Show how a table's headers resolve against a source schema.",
    )
    _add_config_args(insp)
    insp.add_argument(
        "--source",
        required=True,
        choices=[s.value for s in SourceType],
        help="Source schema to resolve against.",
    )
    insp.add_argument(
        "--table",
        required=True,
        help="Table file (.csv, .xlsx[#sheet], .json).",
    )
    insp.add_argument(
        "-v", "--verbose",
        action="store_true",
        default=False,
        help="Also list the raw header row.",
    )
    insp.set_defaults(func=cmd_inspect)

    # ---- init-config ----
    init = subparsers.add_parser(
        "init-config",
        help="Write the default configuration as YAML.",
    )
    init.add_argument(
        "-o", "--output",
        required=True,
        help="Output YAML file path.",
    )
    init.add_argument(
        "--force",
        action="store_true",
        default=False,
        help="Overwrite an existing file.",
    )
    init.set_defaults(func=cmd_init_config)

    return parser


def _add_config_args(parser):
    """Add --config arg to a subparser."""
    parser.add_argument(
        "--config",
        help="Path to a YAML dashboard config (default: built-in).",
    )


def _add_data_args(parser):
    """Add data source file path arguments."""
    data = parser.add_argument_group("data sources (PATH or PATH#SHEET)")
    data.add_argument(
        "--delivery",
        help="Consolidated delivery export.",
    )
    data.add_argument(
        "--reach",
        action="append",
        metavar="LABEL=PATH",
        help="Dedicated reach tab for a platform (repeatable).",
    )
    data.add_argument(
        "--benchmark",
        help="Benchmark table.",
    )
    data.add_argument(
        "--events",
        help="GA4 custom events export.",
    )
    data.add_argument(
        "--sessions",
        help="GA4 traffic export.",
    )
    data.add_argument(
        "--plan",
        help="Strategy sheet (planned vs invested).",
    )


def _add_filter_args(parser):
    """Add filter state arguments."""
    filters = parser.add_argument_group("filters")
    filters.add_argument("--start", help="First day, inclusive (DD/MM/YYYY or YYYY-MM-DD).")
    filters.add_argument("--end", help="Last day, inclusive (DD/MM/YYYY or YYYY-MM-DD).")
    filters.add_argument("--platform", action="append", help="Platform to include (repeatable).")
    filters.add_argument("--region", action="append", help="Region to include (repeatable).")
    filters.add_argument("--category", action="append", help="Purchase type to include (repeatable).")
    filters.add_argument("--origin", action="append", help="Traffic origin to include (repeatable).")
    filters.add_argument("--month", action="append", help="Strategy month to include (repeatable).")


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main(argv=None):
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    args.func(args)


if __name__ == "__main__":
    main()
