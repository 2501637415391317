"""Load the ticker → CNPJ map (`fii_cnpj_map.json`).

Expected shape: `{"items": [{"ticker": "ABCD11", "cnpj": "11.111.111/0001-11"}, ...]}`.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from fii_fundamentals.clean.normalize import normalize_cnpj
from fii_fundamentals.errors import ConfigurationError
from fii_fundamentals.models import TickerMapEntry

log = logging.getLogger(__name__)


def parse_ticker_map(payload: Any) -> dict[str, str]:
    """Build an ordered ticker → CNPJ dict from a decoded map file.

    Tickers are trimmed and upper-cased, CNPJs reduced to digits. Entries
    missing either part are dropped. A repeated ticker keeps its first
    position but takes the last CNPJ.

    Args:
        payload: Decoded JSON document.

    Returns:
        Dict in file order; may be empty.
    """
    items = payload.get("items") if isinstance(payload, dict) else None
    if not isinstance(items, list):
        items = []

    mapping: dict[str, str] = {}
    for raw in items:
        try:
            entry = TickerMapEntry.model_validate(raw)
        except ValidationError as e:
            log.warning("Skipping invalid map entry %r: %s", raw, e)
            continue

        ticker = (entry.ticker or "").strip().upper()
        cnpj = normalize_cnpj(entry.cnpj)
        if ticker and cnpj:
            mapping[ticker] = cnpj

    return mapping


def load_ticker_map(path: Path) -> dict[str, str]:
    """Read and validate the ticker map file.

    Raises:
        ConfigurationError: if the file is missing, is not valid JSON, or
            holds no usable (ticker, CNPJ) pair.
    """
    if not path.exists():
        raise ConfigurationError(f"Ticker map not found: {path} (create {path.name} with an 'items' list)")

    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Ticker map is not valid JSON: {path}: {e}") from e

    mapping = parse_ticker_map(payload)
    if not mapping:
        raise ConfigurationError(f"Ticker map has no entry with both ticker and CNPJ: {path}")

    log.info("Loaded %d tickers from %s", len(mapping), path)
    return mapping
