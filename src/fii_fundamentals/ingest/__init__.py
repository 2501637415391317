"""Input side of the pipeline.

Loads the ticker → CNPJ map, downloads and unpacks the yearly CVM archive and
parses its semicolon-delimited tables into pandas DataFrames.
"""
