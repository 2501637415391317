"""Normalization helpers and header column detection.

Functions here turn raw CVM cell strings into comparable identifiers and
floats, and map logical columns onto positions in a table header.
"""
