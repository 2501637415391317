"""Command-line interface for orchestrating the pipeline.

Provides subcommands: `update`, `fetch` and `columns`. Each command is
implemented as a `cmd_*` function that accepts an argparse namespace.
"""
from __future__ import annotations

import argparse
import logging
import shutil
import tempfile
from pathlib import Path
from typing import Sequence

from dotenv import load_dotenv

from fii_fundamentals.config import Settings, get_settings
from fii_fundamentals.errors import PipelineError, SchemaDetectionFailure
from fii_fundamentals.logging_config import configure_logging

# INGEST
from fii_fundamentals.ingest.ticker_map import load_ticker_map
from fii_fundamentals.ingest.fetch_archive import (
    LAYOUT_SINGLE,
    LAYOUT_SPLIT,
    LAYOUTS,
    FetchedArchive,
    candidate_years,
    fetch_latest_archive,
)
from fii_fundamentals.ingest.parse_table import read_table

# CLEAN
from fii_fundamentals.clean.columns import COLUMN_CANDIDATES, detect_columns

# AGGREGATE
from fii_fundamentals.aggregate.build_fundamentals import (
    FundamentalsResult,
    build_single_file,
    build_split_files,
)
from fii_fundamentals.aggregate.snapshot import (
    DATE_FIELD_SINGLE,
    DATE_FIELD_SPLIT,
    build_snapshot,
    write_snapshot,
)

log = logging.getLogger(__name__)

DATE_FIELDS = {LAYOUT_SINGLE: DATE_FIELD_SINGLE, LAYOUT_SPLIT: DATE_FIELD_SPLIT}


# --------------------------------------------------
# Helpers
# --------------------------------------------------
def _years(args: argparse.Namespace) -> list[int]:
    """Return the explicit `--year` or the current/previous year fallback."""
    if getattr(args, "year", None) is not None:
        return [args.year]
    return candidate_years()


def _fetch(args: argparse.Namespace, s: Settings, scratch: Path) -> FetchedArchive:
    return fetch_latest_archive(
        _years(args),
        scratch,
        url_template=s.zip_url_template,
        user_agent=s.user_agent,
        layout=args.layout,
        timeout=s.http_timeout,
    )


def _build(fetched: FetchedArchive, layout: str, wanted: set[str]) -> FundamentalsResult:
    if layout == LAYOUT_SINGLE:
        return build_single_file(fetched.files.general, wanted)
    return build_split_files(fetched.files, wanted)


def _make_scratch(s: Settings) -> Path:
    if s.scratch_dir is not None:
        s.scratch_dir.mkdir(parents=True, exist_ok=True)
    return Path(tempfile.mkdtemp(prefix="cvm-inf-mensal-", dir=s.scratch_dir))


# --------------------------------------------------
# UPDATE
# --------------------------------------------------
def cmd_update(args: argparse.Namespace) -> Path:
    """Run the full pipeline and write the snapshot.

    Args:
        args: argparse namespace with `layout`, `year`, `map`, `out`,
            `keep_scratch`.

    Returns:
        Path of the written snapshot.
    """
    s = get_settings().with_paths(map_path=args.map, output_path=args.out)

    # fail on a bad map before touching the network
    ticker_map = load_ticker_map(s.map_path)
    wanted = set(ticker_map.values())

    scratch = _make_scratch(s)
    try:
        fetched = _fetch(args, s, scratch)
        result = _build(fetched, args.layout, wanted)
    finally:
        if args.keep_scratch:
            log.info("Scratch directory kept: %s", scratch)
        else:
            shutil.rmtree(scratch, ignore_errors=True)

    log.info("Reference date: %s (%d archive)", result.reference_date, fetched.year)
    snapshot = build_snapshot(ticker_map, result)
    return write_snapshot(snapshot, s.output_path, DATE_FIELDS[args.layout])


# --------------------------------------------------
# FETCH
# --------------------------------------------------
def cmd_fetch(args: argparse.Namespace) -> FetchedArchive:
    """Download and extract the archive, then log the selected tables.

    The extracted files stay in `--dest` (or a fresh temp directory) for
    inspection.
    """
    s = get_settings()
    dest = args.dest if args.dest is not None else _make_scratch(s)

    fetched = _fetch(args, s, dest)
    log.info("Archive year: %d (%s)", fetched.year, fetched.url)
    log.info("General table: %s", fetched.files.general)
    for label, path in fetched.files.supplementary():
        log.info("Supplementary table (%s): %s", label, path)
    return fetched


# --------------------------------------------------
# COLUMNS
# --------------------------------------------------
def cmd_columns(args: argparse.Namespace) -> dict[str, int]:
    """Report which columns of a local table match each logical role."""
    table = read_table(args.file)
    roles = args.roles or list(COLUMN_CANDIDATES)
    try:
        found = detect_columns(table.header, roles)
    except SchemaDetectionFailure as e:
        log.error("Missing roles %s", e.missing)
        raise

    for role, idx in found.items():
        log.info("%s -> [%d] %s", role, idx, table.header[idx])
    return found


# --------------------------------------------------
# CLI
# --------------------------------------------------
def build_parser() -> argparse.ArgumentParser:
    """Build and return the top-level argument parser for the CLI.

    Returns:
        Configured argparse.ArgumentParser instance.
    """
    p = argparse.ArgumentParser(prog="fii-fundamentals")
    p.add_argument("--log-file", type=Path, default=None)
    p.add_argument("-v", "--verbose", action="store_true")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_update = sub.add_parser("update", help="download the CVM archive and write the snapshot")
    p_update.add_argument("--layout", choices=LAYOUTS, default=LAYOUT_SPLIT)
    p_update.add_argument("--year", type=int, default=None)
    p_update.add_argument("--map", type=Path, default=None)
    p_update.add_argument("--out", type=Path, default=None)
    p_update.add_argument("--keep-scratch", action="store_true")

    p_fetch = sub.add_parser("fetch", help="download and extract the archive only")
    p_fetch.add_argument("--layout", choices=LAYOUTS, default=LAYOUT_SPLIT)
    p_fetch.add_argument("--year", type=int, default=None)
    p_fetch.add_argument("--dest", type=Path, default=None)

    p_columns = sub.add_parser("columns", help="show detected columns of a local table")
    p_columns.add_argument("file", type=Path)
    p_columns.add_argument("--roles", nargs="+", choices=list(COLUMN_CANDIDATES), default=None)

    return p


def main(argv: Sequence[str] | None = None) -> None:
    """CLI entry point: parse args, configure logging and dispatch commands."""
    load_dotenv()
    args = build_parser().parse_args(argv)
    configure_logging(args.log_file, logging.DEBUG if args.verbose else logging.INFO)

    try:
        if args.cmd == "update":
            cmd_update(args)
        elif args.cmd == "fetch":
            cmd_fetch(args)
        elif args.cmd == "columns":
            cmd_columns(args)
        else:
            raise SystemExit(2)
    except PipelineError as e:
        log.error("%s: %s", type(e).__name__, e)
        raise SystemExit(1)


if __name__ == "__main__":
    main()
