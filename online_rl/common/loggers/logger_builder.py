from __future__ import annotations

from typing import Any, Dict, List, Optional

from .logger import Logger
from .csv_writer import CSVWriter
from .jsonl_writer import JSONLWriter


def build_logger(
    *,
    log_dir: str = "./runs",
    exp_name: str = "exp",
    run_id: Optional[str] = None,
    overwrite: bool = False,
    # backend enable flags
    use_csv: bool = True,
    use_jsonl: bool = True,
    # backend kwargs
    csv_kwargs: Optional[Dict[str, Any]] = None,
    jsonl_kwargs: Optional[Dict[str, Any]] = None,
    # logger behavior
    console_every: int = 1,
    flush_every: int = 50,
    drop_non_finite: bool = False,
    strict: bool = False,
) -> Logger:
    """
    Construct a :class:`Logger` and attach the selected writer backends.

    The Logger is created first because it resolves ``run_dir``; writers are
    then opened inside that directory.

    Parameters
    ----------
    log_dir, exp_name, run_id, overwrite
        Run directory resolution (see :class:`Logger`).
    use_csv : bool, default=True
        Attach a :class:`CSVWriter` (``metrics.csv``).
    use_jsonl : bool, default=True
        Attach a :class:`JSONLWriter` (``metrics.jsonl``).
    csv_kwargs, jsonl_kwargs : dict, optional
        Forwarded to the writer constructors.
    console_every, flush_every, drop_non_finite, strict
        Logger behavior (see :class:`Logger`).

    Returns
    -------
    logger : Logger
    """
    logger = Logger(
        log_dir=str(log_dir),
        exp_name=str(exp_name),
        run_id=run_id,
        overwrite=bool(overwrite),
        writers=None,
        console_every=int(console_every),
        flush_every=int(flush_every),
        drop_non_finite=bool(drop_non_finite),
        strict=bool(strict),
    )

    writers: List[Any] = []
    if use_csv:
        writers.append(CSVWriter(logger.run_dir, **dict(csv_kwargs or {})))
    if use_jsonl:
        writers.append(JSONLWriter(logger.run_dir, **dict(jsonl_kwargs or {})))

    logger.add_writers(writers)
    return logger
