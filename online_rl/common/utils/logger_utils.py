from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional, TextIO, Tuple
import csv
import json
import os
import uuid


# =============================================================================
# Metadata convention
# =============================================================================
# Keys injected by the Logger into every row. Writers treat them as indices.
META_KEYS: Tuple[str, str, str] = ("step", "wall_time", "timestamp")


# =============================================================================
# Run directory utilities
# =============================================================================
def _generate_run_id() -> str:
    """
    Generate a run identifier of the form ``"{YYYY-mm-dd_HH-MM-SS}_{8-hex}"``.
    """
    ts = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
    return f"{ts}_{uuid.uuid4().hex[:8]}"


def _make_run_dir(
    log_dir: str,
    exp_name: str,
    *,
    run_id: Optional[str] = None,
    overwrite: bool = False,
) -> str:
    """
    Resolve ``{log_dir}/{exp_name}/{run_id}`` for a fresh run.

    Parameters
    ----------
    log_dir : str
        Root logging directory.
    exp_name : str
        Experiment name (subdirectory under `log_dir`).
    run_id : str, optional
        Explicit run identifier; auto-generated when None.
    overwrite : bool, default=False
        Reuse the path even if it exists. Otherwise the first free
        ``{path}_{k}`` is returned.

    Returns
    -------
    run_dir : str
        Path (not created here).
    """
    base = os.path.join(str(log_dir), str(exp_name))
    path = os.path.join(base, str(run_id or _generate_run_id()))

    if overwrite or (not os.path.exists(path)):
        return path

    i = 1
    while True:
        cand = f"{path}_{i}"
        if not os.path.exists(cand):
            return cand
        i += 1


# =============================================================================
# Serialization / filesystem helpers for writers
# =============================================================================
def _json_dumps(obj: Any) -> str:
    """JSON with ``ensure_ascii=False`` and ``default=str``."""
    return json.dumps(obj, ensure_ascii=False, default=str)


def _open_append(path: str, *, newline: Optional[str] = None, encoding: str = "utf-8") -> TextIO:
    """
    Open `path` in append mode, creating the parent directory if needed.

    The caller owns the returned handle.
    """
    dirpath = os.path.dirname(path)
    if dirpath:
        os.makedirs(dirpath, exist_ok=True)
    return open(path, "a", newline=newline, encoding=encoding)


def _safe_call(obj: Optional[Any], method: str) -> None:
    """
    Call ``obj.method()`` if present, ignoring OSError/ValueError.

    Used for ``flush``/``close`` on file handles that may already be closed.
    """
    if obj is None:
        return
    fn = getattr(obj, method, None)
    if not callable(fn):
        return
    try:
        fn()
    except (OSError, ValueError):
        pass


def _read_csv_header(path: str, *, encoding: str = "utf-8") -> Optional[List[str]]:
    """Return the first CSV row of `path`, or None when missing/empty."""
    if not os.path.exists(path) or os.path.getsize(path) == 0:
        return None
    with open(path, "r", newline="", encoding=encoding) as rf:
        header = next(csv.reader(rf), None)
    if not header:
        return None
    return [str(h) for h in header]
