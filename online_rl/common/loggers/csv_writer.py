from __future__ import annotations

import csv
import os
from typing import List, Mapping, Optional, TextIO

from .base_writer import Writer
from ..utils.logger_utils import _open_append, _read_csv_header, _safe_call


class CSVWriter(Writer):
    """
    Wide CSV writer: one row per ``log()`` call, frozen column schema.

    The schema is fixed by the first row written to an empty file, or by the
    header of an existing file. Keys outside the schema are dropped and
    missing keys are written as empty cells, so the file never drifts.

    Parameters
    ----------
    run_dir : str
        Directory of the run.
    filename : str, default="metrics.csv"
    encoding : str, default="utf-8"

    Notes
    -----
    Log the full set of keys in the first row (e.g. episode metrics together
    with the agent's ``metrics()``) so that later rows fit the schema.
    """

    def __init__(self, run_dir: str, *, filename: str = "metrics.csv", encoding: str = "utf-8") -> None:
        self._path = os.path.join(run_dir, filename)
        self._encoding = encoding
        self._f: Optional[TextIO] = _open_append(self._path, newline="", encoding=encoding)
        self._writer: Optional[csv.DictWriter] = None
        self._fieldnames: List[str] = []

    @property
    def path(self) -> str:
        return self._path

    @property
    def fieldnames(self) -> List[str]:
        return list(self._fieldnames)

    def write(self, row: Mapping[str, float]) -> None:
        if self._f is None:
            raise ValueError(f"write() on a closed CSVWriter ({self._path})")
        if self._writer is None:
            self._prepare_schema(row)

        out = {k: row.get(k, "") for k in self._fieldnames}
        self._writer.writerow(out)

    def _prepare_schema(self, first_row: Mapping[str, float]) -> None:
        assert self._f is not None
        self._f.flush()

        header = _read_csv_header(self._path, encoding=self._encoding)
        if header:
            self._fieldnames = [h for h in header if h]
            self._writer = csv.DictWriter(self._f, fieldnames=self._fieldnames)
            return

        self._fieldnames = list(first_row.keys())
        self._writer = csv.DictWriter(self._f, fieldnames=self._fieldnames)
        self._writer.writeheader()

    def flush(self) -> None:
        _safe_call(self._f, "flush")

    def close(self) -> None:
        try:
            self.flush()
        finally:
            _safe_call(self._f, "close")
            self._f = None
            self._writer = None
