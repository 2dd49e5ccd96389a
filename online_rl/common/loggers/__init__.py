"""
Loggers
=======

- :class:`Logger`      : run directory, key prefixes, aggregation, console output
- :class:`Writer`      : backend interface
- :class:`CSVWriter`   : wide CSV with a frozen schema
- :class:`JSONLWriter` : one JSON object per row
- :func:`build_logger` : Logger + selected backends
"""

from __future__ import annotations

from .base_writer import Writer
from .csv_writer import CSVWriter
from .jsonl_writer import JSONLWriter
from .logger import Logger
from .logger_builder import build_logger

__all__ = [
    "Writer",
    "CSVWriter",
    "JSONLWriter",
    "Logger",
    "build_logger",
]
