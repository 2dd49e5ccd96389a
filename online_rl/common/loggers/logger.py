from __future__ import annotations

import json
import os
import time
from collections import defaultdict
from typing import Any, Dict, Iterable, List, Mapping, Optional

import numpy as np
from tqdm import tqdm

from ..utils.common_utils import _to_scalar
from ..utils.logger_utils import META_KEYS, _make_run_dir


class Logger:
    """
    Scalar metric logger (frontend).

    The `Logger` owns the run directory, normalizes metric keys, aggregates
    buffered values and dispatches rows to :class:`Writer` backends. Backends
    own the file formats.

    Parameters
    ----------
    log_dir : str, default="./runs"
        Root directory for runs.
    exp_name : str, default="exp"
        Experiment name (subdirectory of `log_dir`).
    run_id : str, optional
        Run directory name; generated from the time and a random suffix when
        omitted.
    overwrite : bool, default=False
        Reuse ``{log_dir}/{exp_name}/{run_id}`` even if it exists.
    writers : Iterable[Writer], optional
        Backends attached at construction.
    console_every : int, default=1
        Print a summary line every N ``log()`` calls; <= 0 disables it.
        Lines go through ``tqdm.write`` so they do not break progress bars.
    flush_every : int, default=50
        Flush writers every N ``log()`` calls; <= 0 disables periodic flushes.
    drop_non_finite : bool, default=False
        Drop NaN/Inf values instead of writing them.
    strict : bool, default=False
        Re-raise writer failures. Otherwise they are collected in
        :attr:`errors` and logging continues.

    Notes
    -----
    Every emitted row carries ``step``, ``wall_time`` (seconds since the
    logger was created) and ``timestamp`` (unix time).

    Examples
    --------
    >>> with build_logger(log_dir="./runs", exp_name="pendulum") as logger:
    ...     logger.log({"return": -1200.0}, step=0, prefix="train")
    """

    def __init__(
        self,
        *,
        log_dir: str = "./runs",
        exp_name: str = "exp",
        run_id: Optional[str] = None,
        overwrite: bool = False,
        writers: Optional[Iterable[Any]] = None,
        console_every: int = 1,
        flush_every: int = 50,
        drop_non_finite: bool = False,
        strict: bool = False,
    ) -> None:
        self.strict = bool(strict)
        self.errors: List[str] = []

        self.run_dir = _make_run_dir(log_dir, exp_name, run_id=run_id, overwrite=bool(overwrite))
        os.makedirs(self.run_dir, exist_ok=True)

        self.console_every = int(console_every)
        self.flush_every = int(flush_every)
        self.drop_non_finite = bool(drop_non_finite)

        self._start_time = time.time()
        self._log_calls = 0
        self._buffer: Dict[str, List[float]] = defaultdict(list)
        self._writers: List[Any] = list(writers) if writers is not None else []

    # ---------------------------------------------------------------------
    # Context manager
    # ---------------------------------------------------------------------
    def __enter__(self) -> "Logger":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ---------------------------------------------------------------------
    # Error policy
    # ---------------------------------------------------------------------
    def _handle_exception(self, err: Exception, context: str) -> None:
        self.errors.append(f"[{self.__class__.__name__}] {context}: {type(err).__name__}: {err}")
        if self.strict:
            raise err

    # ---------------------------------------------------------------------
    # Keys
    # ---------------------------------------------------------------------
    @staticmethod
    def _join_name(prefix: str, key: Any) -> str:
        p = str(prefix).strip().replace("\\", "/").strip("/")
        k = str(key).strip().replace("\\", "/").lstrip("/")
        return f"{p}/{k}" if p else k

    def _to_float(self, v: Any) -> Optional[float]:
        val = _to_scalar(v)
        if val is None:
            return None
        if self.drop_non_finite and not np.isfinite(val):
            return None
        return float(val)

    # ---------------------------------------------------------------------
    # Logging
    # ---------------------------------------------------------------------
    def log(self, metrics: Mapping[str, Any], step: int = 0, *, prefix: str = "") -> Dict[str, float]:
        """
        Write one row immediately.

        Parameters
        ----------
        metrics : Mapping[str, Any]
            Values convertible to a scalar; others are skipped.
        step : int, default=0
            Step index stored in the row (episodes, for the experiment driver).
        prefix : str, default=""
            Prepended to every key as ``"{prefix}/{key}"``.

        Returns
        -------
        row : Dict[str, float]
            The row dispatched to the writers.
        """
        self._log_calls += 1

        row: Dict[str, float] = {}
        for k, v in metrics.items():
            fv = self._to_float(v)
            if fv is not None:
                row[self._join_name(prefix, k)] = fv

        now = time.time()
        row["step"] = float(int(step))
        row["wall_time"] = float(now - self._start_time)
        row["timestamp"] = float(now)

        for w in self._writers:
            try:
                w.write(row)
            except Exception as e:
                self._handle_exception(e, f"writer.write({w.__class__.__name__})")

        if self.console_every > 0 and (self._log_calls % self.console_every == 0):
            tqdm.write(self._format_console(row))

        if self.flush_every > 0 and (self._log_calls % self.flush_every == 0):
            self.flush()

        return row

    def record(self, metrics: Mapping[str, Any], *, prefix: str = "") -> None:
        """Buffer values for a later :meth:`dump`; writers are not called."""
        for k, v in metrics.items():
            fv = self._to_float(v)
            if fv is not None:
                self._buffer[self._join_name(prefix, k)].append(fv)

    def dump(self, step: int = 0, *, agg: str = "mean", clear: bool = True) -> Optional[Dict[str, float]]:
        """
        Aggregate buffered values and emit them through :meth:`log`.

        Parameters
        ----------
        step : int, default=0
        agg : {"mean", "min", "max", "std", "sum"}, default="mean"
        clear : bool, default=True
            Clear the buffer afterwards.

        Returns
        -------
        row : Dict[str, float] or None
            None when the buffer was empty.

        Raises
        ------
        ValueError
            On an unknown `agg`.
        """
        ops = {"mean": np.mean, "min": np.min, "max": np.max, "std": np.std, "sum": np.sum}
        op = str(agg).lower().strip()
        if op not in ops:
            raise ValueError(f"Unknown agg={agg!r}. Use one of {sorted(ops)}.")

        out = {k: float(ops[op](np.asarray(vals, dtype=np.float64))) for k, vals in self._buffer.items() if vals}
        if clear:
            self._buffer.clear()
        if not out:
            return None
        return self.log(out, step=step)

    # ---------------------------------------------------------------------
    # Config
    # ---------------------------------------------------------------------
    def dump_config(self, config: Mapping[str, Any], filename: str = "config.json") -> str:
        """Write `config` as JSON into the run directory and return the path."""
        path = os.path.join(self.run_dir, filename)
        with open(path, "w", encoding="utf-8") as f:
            json.dump({str(k): v for k, v in config.items()}, f, indent=2, ensure_ascii=False, default=str)
        return path

    # ---------------------------------------------------------------------
    # Writers
    # ---------------------------------------------------------------------
    @property
    def writers(self) -> List[Any]:
        return list(self._writers)

    def add_writer(self, writer: Any) -> None:
        self._writers.append(writer)

    def add_writers(self, writers: Iterable[Any]) -> None:
        for w in writers:
            self.add_writer(w)

    def flush(self) -> None:
        for w in self._writers:
            try:
                w.flush()
            except Exception as e:
                self._handle_exception(e, f"writer.flush({w.__class__.__name__})")

    def close(self) -> None:
        try:
            self.flush()
        finally:
            for w in self._writers:
                try:
                    w.close()
                except Exception as e:
                    self._handle_exception(e, f"writer.close({w.__class__.__name__})")

    # ---------------------------------------------------------------------
    # Console
    # ---------------------------------------------------------------------
    @staticmethod
    def _format_console(row: Mapping[str, float], max_items: int = 6) -> str:
        step = int(row.get("step", 0.0))
        wall = float(row.get("wall_time", 0.0))

        shown: List[str] = []
        for k, v in row.items():
            if k in META_KEYS:
                continue
            shown.append(f"{k}={float(v):.4g}")
            if len(shown) >= max_items:
                break

        return f"[step={step} | t={wall:.1f}s] " + " ".join(shown)
