"""Aggregation helpers.

This package turns parsed CVM tables into per-fund value-per-share figures
(reference-date discovery, per-date value extraction, cross-table join) and
renders the per-ticker snapshot.
"""
