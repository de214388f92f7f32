"""Data layer: reading model, source contract and CSV ingestion."""

from .ingestion import load_readings_csv, read_readings_csv
from .schemas import SIGNAL_FIELDS, Reading
from .source import InMemoryReadingSource, RawReading, ReadingSource

__all__ = [
    "InMemoryReadingSource",
    "RawReading",
    "Reading",
    "ReadingSource",
    "SIGNAL_FIELDS",
    "load_readings_csv",
    "read_readings_csv",
]
