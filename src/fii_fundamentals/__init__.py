"""fii_fundamentals package.

Contains modules for downloading the CVM monthly FII disclosure archive
("Informe Mensal Estruturado"), parsing its semicolon-delimited tables,
deriving value-per-share figures for a mapped set of tickers, and writing a
small JSON snapshot.

Architecture:
- ingest: ticker map, archive download/extraction, table parsing
- clean: identifier/number normalization and header column detection
- aggregate: reference-date discovery, value extraction, snapshot output
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
