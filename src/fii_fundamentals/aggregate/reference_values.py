"""Two-pass extraction over CVM tables.

Pass 1 (`find_latest_reference_date`) finds the most recent reference date
among rows of the wanted funds. Pass 2 (`extract_reference_values`) takes that
date as input and returns a fresh `(cnpj, date) -> value` dict. Neither pass
mutates shared state, so values coming from different tables are joined
afterwards by `compute_value_per_share`.

Expectations:
- Input: a `Table` plus a role → column index mapping from `detect_columns`.
- Reference dates are compared as strings (ISO `YYYY-MM-DD` or `YYYYMM`).
"""
from __future__ import annotations

import logging
from typing import AbstractSet, Mapping

import numpy as np
import pandas as pd

from fii_fundamentals.clean.columns import CNPJ, NET_ASSETS, REFERENCE_DATE, SHARES
from fii_fundamentals.clean.normalize import normalize_cnpj, to_number_br
from fii_fundamentals.errors import NoMatchingRows
from fii_fundamentals.ingest.parse_table import Table

log = logging.getLogger(__name__)

ValueKey = tuple[str, str]


def _keyed_frame(table: Table, columns: Mapping[str, int]) -> pd.DataFrame:
    """Return a frame with normalized `cnpj` and stripped `date` columns."""
    return pd.DataFrame(
        {
            "cnpj": table.column(columns[CNPJ]).map(normalize_cnpj),
            "date": table.column(columns[REFERENCE_DATE]).fillna("").astype(str).str.strip(),
        },
        index=table.frame.index,
    )


def find_latest_reference_date(
    table: Table,
    columns: Mapping[str, int],
    wanted: AbstractSet[str],
) -> str:
    """Return the greatest reference date among rows of wanted funds.

    Args:
        table: Parsed table.
        columns: Must contain the `cnpj` and `reference_date` roles.
        wanted: Normalized CNPJs to consider.

    Returns:
        The maximum date string (lexicographic).

    Raises:
        NoMatchingRows: if no wanted fund has a row with a non-empty date.
    """
    keyed = _keyed_frame(table, columns)
    dates = keyed.loc[keyed["cnpj"].isin(wanted), "date"]
    dates = dates[dates != ""]

    if dates.empty:
        raise NoMatchingRows(
            f"No reference date found for the mapped CNPJs in {table.path.name}"
        )

    latest = str(dates.max())
    log.info("Latest reference date in %s: %s", table.path.name, latest)
    return latest


def extract_reference_values(
    table: Table,
    columns: Mapping[str, int],
    value_role: str,
    wanted: AbstractSet[str],
    reference_date: str,
) -> dict[ValueKey, float]:
    """Collect one numeric column for wanted funds at `reference_date`.

    Rows whose value is unparseable or not strictly positive are dropped.
    When a fund has several usable rows for the date the last one wins.

    Args:
        table: Parsed table.
        columns: Must contain `cnpj`, `reference_date` and `value_role`.
        value_role: Logical column holding the number (e.g. `shares`).
        wanted: Normalized CNPJs to keep.
        reference_date: Exact date string to keep.

    Returns:
        New dict `(cnpj, reference_date) -> value`.
    """
    keyed = _keyed_frame(table, columns)
    keyed["value"] = table.column(columns[value_role]).map(to_number_br).astype(float)

    rows = keyed[keyed["cnpj"].isin(wanted) & (keyed["date"] == reference_date)]
    usable = rows[np.isfinite(rows["value"]) & (rows["value"] > 0)]

    dropped = len(rows) - len(usable)
    if dropped:
        log.debug("%s: dropped %d %s rows without a positive value", table.path.name, dropped, value_role)

    return {(r.cnpj, r.date): float(r.value) for r in usable.itertuples(index=False)}


def compute_value_per_share(
    shares: Mapping[ValueKey, float],
    net_assets: Mapping[ValueKey, float],
    reference_date: str,
) -> dict[str, float]:
    """Join share counts and net assets on `(cnpj, reference_date)`.

    Args:
        shares: Output of pass 2 for the share-count column.
        net_assets: Output of pass 2 for the net-asset-value column.
        reference_date: Date the two mappings were extracted for.

    Returns:
        `cnpj -> net_assets / shares` for funds present in both mappings.
    """
    out: dict[str, float] = {}
    for (cnpj, dt), qty in shares.items():
        if dt != reference_date or qty <= 0:
            continue
        pl = net_assets.get((cnpj, dt))
        if pl is None:
            continue
        vp = pl / qty
        if np.isfinite(vp) and vp > 0:
            out[cnpj] = vp
    return out


def count_reference_rows(
    table: Table,
    columns: Mapping[str, int],
    wanted: AbstractSet[str],
    reference_date: str,
) -> int:
    """Return how many rows belong to wanted funds at `reference_date`."""
    keyed = _keyed_frame(table, columns)
    return int((keyed["cnpj"].isin(wanted) & (keyed["date"] == reference_date)).sum())


def extract_row_value_per_share(
    table: Table,
    columns: Mapping[str, int],
    wanted: AbstractSet[str],
    reference_date: str,
) -> dict[str, float]:
    """Compute value per share row by row from a table holding both fields.

    Net assets and share count always come from the same row. A row counts
    only when net assets are finite, shares are strictly positive and the
    quotient is positive; the last such row of a fund wins.

    Args:
        table: Parsed table.
        columns: Must contain `cnpj`, `reference_date`, `net_assets` and
            `shares`.
        wanted: Normalized CNPJs to keep.
        reference_date: Exact date string to keep.

    Returns:
        New dict `cnpj -> net_assets / shares`.
    """
    keyed = _keyed_frame(table, columns)
    keyed["pl"] = table.column(columns[NET_ASSETS]).map(to_number_br).astype(float)
    keyed["qty"] = table.column(columns[SHARES]).map(to_number_br).astype(float)

    rows = keyed[keyed["cnpj"].isin(wanted) & (keyed["date"] == reference_date)]
    rows = rows[np.isfinite(rows["pl"]) & np.isfinite(rows["qty"]) & (rows["qty"] > 0)]
    vp = rows["pl"] / rows["qty"]
    rows = rows.assign(vp=vp)[np.isfinite(vp) & (vp > 0)]

    return {r.cnpj: float(r.vp) for r in rows.itertuples(index=False)}
