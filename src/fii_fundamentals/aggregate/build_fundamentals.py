"""Value-per-share builders for the two CVM archive layouts.

- Single-file layout: CNPJ, reference date, net assets and share count all
  live in one table.
- Split layout: share count comes from the "geral" table and net assets from
  "complemento" (preferred) or "ativo_passivo".

Both return a `FundamentalsResult` whose `values` holds one entry per fund
with usable data; missing funds surface later as `vp: null`.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import AbstractSet

from fii_fundamentals.aggregate.reference_values import (
    ValueKey,
    compute_value_per_share,
    count_reference_rows,
    extract_reference_values,
    extract_row_value_per_share,
    find_latest_reference_date,
)
from fii_fundamentals.clean.columns import CNPJ, NET_ASSETS, REFERENCE_DATE, SHARES, detect_columns
from fii_fundamentals.errors import NoMatchingRows, SchemaDetectionFailure
from fii_fundamentals.ingest.fetch_archive import ArchiveFiles
from fii_fundamentals.ingest.parse_table import read_table

log = logging.getLogger(__name__)

SOURCE_SINGLE = "CVM - Informe Mensal Estruturado"
SOURCE_SPLIT = "CVM - Informe Mensal Estruturado (geral + {table})"


@dataclass(frozen=True)
class FundamentalsResult:
    """Outcome of a layout builder.

    Attributes:
        reference_date: Latest reference date among the wanted funds.
        values: CNPJ → value per share.
        source: Human-readable source label for the snapshot.
    """
    reference_date: str
    values: dict[str, float]
    source: str


def build_single_file(path: Path, wanted: AbstractSet[str]) -> FundamentalsResult:
    """Compute value per share from one table holding every field.

    Raises:
        SchemaDetectionFailure: if any of the four columns is missing.
        NoMatchingRows: if no row belongs to a wanted fund.
    """
    table = read_table(path)
    columns = detect_columns(table.header, (CNPJ, REFERENCE_DATE, NET_ASSETS, SHARES))

    reference_date = find_latest_reference_date(table, columns, wanted)
    values = extract_row_value_per_share(table, columns, wanted, reference_date)
    return FundamentalsResult(reference_date=reference_date, values=values, source=SOURCE_SINGLE)


def resolve_net_assets(
    files: ArchiveFiles,
    wanted: AbstractSet[str],
    reference_date: str,
) -> tuple[str, dict[ValueKey, float]]:
    """Return net assets from the first supplementary table that yields any.

    Candidates are tried in preference order (complement, then
    assets/liabilities). A candidate whose columns cannot be detected is
    skipped while another one remains. When candidates have rows for the
    wanted funds at `reference_date` but none of them holds a usable number,
    the first such candidate is returned with an empty mapping, so the
    affected tickers end up with a null value per share.

    Returns:
        `(table label, (cnpj, date) -> net assets)`.

    Raises:
        SchemaDetectionFailure: if no candidate table has the needed columns.
        NoMatchingRows: if no readable candidate has a row for a wanted fund
            at `reference_date`.
    """
    last_schema_err: SchemaDetectionFailure | None = None
    readable = 0
    matched_label: str | None = None

    for label, path in files.supplementary():
        try:
            table = read_table(path)
            columns = detect_columns(table.header, (CNPJ, REFERENCE_DATE, NET_ASSETS))
        except SchemaDetectionFailure as e:
            log.warning("Skipping %s table %s: %s", label, path.name, e)
            last_schema_err = e
            continue

        readable += 1
        values = extract_reference_values(table, columns, NET_ASSETS, wanted, reference_date)
        if values:
            log.info("Net assets from %s: %d funds", label, len(values))
            return label, values

        matched = count_reference_rows(table, columns, wanted, reference_date)
        if matched and matched_label is None:
            matched_label = label
        log.warning(
            "No usable net assets for %s in %s table %s (%d matching rows)",
            reference_date, label, path.name, matched,
        )

    if matched_label is not None:
        return matched_label, {}
    if readable == 0 and last_schema_err is not None:
        raise last_schema_err
    raise NoMatchingRows(
        f"No row for the mapped CNPJs at {reference_date} in any supplementary table"
    )


def build_split_files(files: ArchiveFiles, wanted: AbstractSet[str]) -> FundamentalsResult:
    """Compute value per share from the general + supplementary tables.

    The reference date is discovered on the general table only and then used
    as the join date for the supplementary table.
    """
    general = read_table(files.general)
    columns = detect_columns(general.header, (CNPJ, REFERENCE_DATE, SHARES))

    reference_date = find_latest_reference_date(general, columns, wanted)
    shares = extract_reference_values(general, columns, SHARES, wanted, reference_date)
    label, net_assets = resolve_net_assets(files, wanted, reference_date)

    values = compute_value_per_share(shares, net_assets, reference_date)
    return FundamentalsResult(
        reference_date=reference_date,
        values=values,
        source=SOURCE_SPLIT.format(table=label),
    )
