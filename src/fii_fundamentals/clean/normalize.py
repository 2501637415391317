"""Identifier and number normalization for CVM cells."""

from __future__ import annotations

import math
import re
from typing import Any

import numpy as np

_NON_DIGIT = re.compile(r"\D")


def normalize_cnpj(value: Any) -> str:
    """Return only the decimal digits of a CNPJ, or "" when there are none.

    `"11.111.111/0001-11"` and `"11111111000111"` both become
    `"11111111000111"`, so identifiers from the map and from the tables
    compare equal. An empty result means "no identifier" and callers skip it.
    """
    if value is None:
        return ""
    return _NON_DIGIT.sub("", str(value))


def to_number_br(value: Any) -> float:
    """Parse a Brazilian-formatted number ("1.234.567,89") into a float.

    Every "." is dropped as a thousands separator and the first "," becomes
    the decimal point. Plain dot-decimal input is therefore read with the dot
    removed: "1234567.89" parses as 123456789.0.

    Returns:
        The parsed value, or NaN for empty, unparseable or non-finite input.
    """
    if value is None:
        return np.nan
    s = str(value).strip()
    if not s:
        return np.nan

    norm = s.replace(".", "").replace(",", ".", 1)
    # float() accepts "1_000", "inf" and "nan"; none of those are CVM numbers
    if "_" in norm:
        return np.nan
    try:
        n = float(norm)
    except ValueError:
        return np.nan
    return n if math.isfinite(n) else np.nan
