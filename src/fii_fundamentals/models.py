"""Pydantic models for the ticker map input and the snapshot output.

Map entries are parsed leniently (unknown keys ignored, numeric CNPJs
accepted) because the file is hand-maintained. Snapshot records forbid extra
fields so the output shape stays fixed.
"""

from __future__ import annotations

from datetime import date
from pydantic import BaseModel, ConfigDict, Field, field_validator

class TickerMapEntry(BaseModel):
    """One `{ticker, cnpj}` pair from `fii_cnpj_map.json`."""
    model_config = ConfigDict(extra="ignore")
    ticker: str | None = None
    cnpj: str | None = None

    @field_validator("ticker", "cnpj", mode="before")
    @classmethod
    def _stringify(cls, v: object) -> str | None:
        if v is None:
            return None
        return str(v)


class ValuationRecord(BaseModel):
    """Per-ticker output row.

    Attributes:
        ticker: Upper-cased ticker symbol.
        vp: Value per share (net assets / share count) or None when the
            fund had no usable data for the reference date.
        dy12m: Trailing twelve-month yield; never filled by this pipeline.
        pl: Price-to-book; never filled by this pipeline.
    """
    model_config = ConfigDict(extra="forbid")
    ticker: str = Field(..., min_length=1)
    vp: float | None = None
    dy12m: None = None
    pl: None = None


class Snapshot(BaseModel):
    """The persisted snapshot: metadata plus one record per mapped ticker."""
    model_config = ConfigDict(extra="forbid")
    updated_at: date
    source: str
    reference_date: str
    items: list[ValuationRecord]

    @property
    def filled(self) -> int:
        """Number of records with a value per share."""
        return sum(1 for r in self.items if r.vp is not None)
