"""Build and write the `fiis_fundamentals.json` snapshot."""

from __future__ import annotations

import json
import logging
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Mapping

from fii_fundamentals.aggregate.build_fundamentals import FundamentalsResult
from fii_fundamentals.models import Snapshot, ValuationRecord

log = logging.getLogger(__name__)

# the reference date key differs between the two archive layouts
DATE_FIELD_SINGLE = "competence"
DATE_FIELD_SPLIT = "referenceDate"


def build_snapshot(
    ticker_map: Mapping[str, str],
    result: FundamentalsResult,
    updated_at: date | None = None,
) -> Snapshot:
    """Return one record per mapped ticker, in map order.

    Tickers whose CNPJ has no value get `vp=None` rather than being omitted.
    """
    items = [
        ValuationRecord(ticker=ticker, vp=result.values.get(cnpj))
        for ticker, cnpj in ticker_map.items()
    ]
    return Snapshot(
        updated_at=updated_at or datetime.now(timezone.utc).date(),
        source=result.source,
        reference_date=result.reference_date,
        items=items,
    )


def snapshot_payload(snapshot: Snapshot, date_field: str = DATE_FIELD_SPLIT) -> dict[str, Any]:
    """Return the JSON document for a snapshot with its public key names."""
    return {
        "updatedAt": snapshot.updated_at.isoformat(),
        "source": snapshot.source,
        date_field: snapshot.reference_date,
        "items": [r.model_dump() for r in snapshot.items],
    }


def write_snapshot(snapshot: Snapshot, path: Path, date_field: str = DATE_FIELD_SPLIT) -> Path:
    """Overwrite `path` with the snapshot as indented JSON."""
    path.parent.mkdir(parents=True, exist_ok=True)
    text = json.dumps(snapshot_payload(snapshot, date_field), indent=2, ensure_ascii=False)
    path.write_text(text + "\n", encoding="utf-8")

    log.info("VP filled for %d/%d tickers (the rest are null)", snapshot.filled, len(snapshot.items))
    log.info("Wrote %s", path)
    return path
