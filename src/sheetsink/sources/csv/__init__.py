"""Delimited-text source reader."""

from sheetsink.sources.csv.reader import CSVRowStream, open_csv

__all__ = ["CSVRowStream", "open_csv"]
