"""LRU frame replacer, slot bitmaps, in-memory record files, log records and a SQL syntax tree."""

__version__ = "0.1.0"