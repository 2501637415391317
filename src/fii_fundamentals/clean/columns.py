"""Header column detection for CVM tables.

The CVM layout has changed over the years (`CNPJ_Fundo` became
`CNPJ_Fundo_Classe`, `DT_COMPTC` became `Data_Referencia`, ...), so each
logical column is resolved against a priority-ordered list of candidate
names. Adapting to a new layout means editing `COLUMN_CANDIDATES`, not the
lookup code.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Sequence

from fii_fundamentals.errors import SchemaDetectionFailure

log = logging.getLogger(__name__)

NOT_FOUND = -1


@dataclass(frozen=True)
class ColumnCandidates:
    """Candidate header names for one logical column.

    Attributes:
        exact: Names compared for equality, in priority order.
        contains: Substrings tried only when no exact name matches.
    """
    exact: tuple[str, ...]
    contains: tuple[str, ...] = ()


CNPJ = "cnpj"
REFERENCE_DATE = "reference_date"
SHARES = "shares"
NET_ASSETS = "net_assets"

COLUMN_CANDIDATES: dict[str, ColumnCandidates] = {
    CNPJ: ColumnCandidates(
        exact=("CNPJ_FUNDO_CLASSE", "CNPJ_FUNDO", "CNPJ", "CNPJ_CLASSE", "CNPJ_DO_FUNDO"),
        contains=("CNPJ_FUNDO", "CNPJ_CLASSE", "CNPJ"),
    ),
    REFERENCE_DATE: ColumnCandidates(
        exact=("DATA_REFERENCIA", "DT_COMPTC", "DT_COMPETENCIA", "DATA_COMPETENCIA", "DT_REF"),
        contains=("DATA_REFERENCIA", "DT_COMPTC", "COMPETENCIA", "DT_REF"),
    ),
    SHARES: ColumnCandidates(
        exact=(
            "COTAS_EMITIDAS",
            "QT_COTA",
            "QT_COTAS",
            "QTD_COTAS",
            "NR_COTAS",
            "QT_COTAS_EMITIDAS",
            "QTD_COTAS_EMITIDAS",
        ),
        contains=("COTAS_EMITIDAS", "QT_COTA", "QTD_COTA", "NR_COTAS"),
    ),
    NET_ASSETS: ColumnCandidates(
        exact=(
            "PATRIMONIO_LIQUIDO",
            "VL_PATRIM_LIQ",
            "VL_PATRIMONIO_LIQUIDO",
            "PATRIM_LIQ",
            "VL_PL",
        ),
        contains=("PATRIMONIO_LIQUIDO", "PATRIM_LIQ", "VL_PL"),
    ),
}


def pick_column_index(
    headers: Sequence[str],
    exact: Iterable[str],
    contains: Iterable[str] = (),
) -> int:
    """Return the index of the best-matching header, or -1.

    Headers are upper-cased before comparison. Every exact candidate is tried
    (in order) before any substring candidate, and the first candidate with a
    hit wins even when a later one would also match.

    Args:
        headers: Header row fields.
        exact: Candidate names compared for equality.
        contains: Candidate substrings, tried after all exact names.

    Returns:
        Zero-based column index, or `NOT_FOUND` (-1).
    """
    upper = [h.upper() for h in headers]
    for cand in exact:
        for i, h in enumerate(upper):
            if h == cand:
                return i
    for cand in contains:
        for i, h in enumerate(upper):
            if cand in h:
                return i
    return NOT_FOUND


def detect_columns(
    headers: Sequence[str],
    roles: Iterable[str],
    candidates: dict[str, ColumnCandidates] | None = None,
) -> dict[str, int]:
    """Resolve several logical columns against one header row.

    Args:
        headers: Header row fields.
        roles: Logical column names (keys of `COLUMN_CANDIDATES`).
        candidates: Optional override of the candidate table.

    Returns:
        Mapping role → column index for every requested role.

    Raises:
        SchemaDetectionFailure: if any role cannot be resolved; the error
            carries the raw header row.
    """
    table = COLUMN_CANDIDATES if candidates is None else candidates
    found: dict[str, int] = {}
    for role in roles:
        c = table[role]
        found[role] = pick_column_index(headers, c.exact, c.contains)

    missing = [role for role, idx in found.items() if idx == NOT_FOUND]
    if missing:
        detail = ", ".join(f"{role}={idx}" for role, idx in found.items())
        raise SchemaDetectionFailure(
            f"Could not detect columns ({detail})",
            headers=headers,
            missing=missing,
        )

    log.debug("Detected columns: %s", found)
    return found
