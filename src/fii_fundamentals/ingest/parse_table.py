"""Parsing helpers for CVM semicolon-delimited tables.

`split_line` is a minimal quote-aware splitter (not a CSV grammar: doubled
quotes and multi-line fields are not supported). `read_table` applies it to a
whole Latin-1 file and returns a `Table` whose DataFrame is addressed by
column position, since header names are resolved separately.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path

import pandas as pd

from fii_fundamentals.errors import SchemaDetectionFailure

log = logging.getLogger(__name__)

LINE_BREAK_RE = re.compile(r"\r?\n")


@dataclass(frozen=True)
class Table:
    """A parsed delimited file.

    Attributes:
        path: Source file.
        header: Trimmed header fields.
        frame: DataFrame of string cells with integer columns
            `0..len(header)-1`; short rows are padded with "".
    """
    path: Path
    header: list[str]
    frame: pd.DataFrame

    def column(self, idx: int) -> pd.Series:
        """Return the cells of column `idx` as strings."""
        return self.frame[idx]


def split_line(line: str, delim: str = ";") -> list[str]:
    """Split one delimited line into trimmed fields.

    A `"` toggles a quoted span and is dropped; the delimiter only separates
    fields outside a quoted span. The last field is always emitted, so an
    empty line yields `[""]`.

    Args:
        line: Raw text line without its line terminator.
        delim: Single-character delimiter.

    Returns:
        List of fields with surrounding whitespace stripped.
    """
    out: list[str] = []
    cur: list[str] = []
    in_quotes = False

    for ch in line:
        if ch == '"':
            in_quotes = not in_quotes
            continue
        if ch == delim and not in_quotes:
            out.append("".join(cur))
            cur = []
            continue
        cur.append(ch)
    out.append("".join(cur))

    return [s.strip() for s in out]


def read_table(path: Path, delim: str = ";", encoding: str = "latin-1") -> Table:
    """Read a CVM delimited file into a `Table`.

    Args:
        path: File to read.
        delim: Field delimiter (CVM uses ";").
        encoding: Text encoding (CVM publishes Latin-1).

    Returns:
        `Table` with the header row and one DataFrame row per non-empty line.

    Raises:
        SchemaDetectionFailure: if the file has no header line.
    """
    content = path.read_text(encoding=encoding)
    lines = [ln for ln in LINE_BREAK_RE.split(content) if ln]
    if not lines:
        raise SchemaDetectionFailure(f"Table has no header row: {path}")

    header = split_line(lines[0], delim)
    width = len(header)

    rows: list[list[str]] = []
    for ln in lines[1:]:
        fields = split_line(ln, delim)
        if len(fields) < width:
            fields.extend([""] * (width - len(fields)))
        rows.append(fields[:width])

    frame = pd.DataFrame(rows, columns=range(width), dtype=object)
    log.info("Read %s: %d columns, %d rows", path.name, width, len(frame))
    return Table(path=path, header=header, frame=frame)
