from __future__ import annotations

from typing import Any, Dict, Mapping, Tuple

import numpy as np
from tqdm import tqdm

from .common_utils import _to_scalar


# =============================================================================
# Progress bar
# =============================================================================
def _make_pbar(*, enable: bool = True, **kwargs: Any) -> tqdm:
    """
    Create a tqdm progress bar.

    Parameters
    ----------
    enable : bool, default=True
        If False, the bar is created with ``disable=True`` (no rendering, same API).
    **kwargs : Any
        Forwarded to ``tqdm(...)``.
    """
    kwargs.setdefault("dynamic_ncols", True)
    kwargs.setdefault("leave", False)
    return tqdm(disable=not bool(enable), **kwargs)


# =============================================================================
# Small utilities
# =============================================================================
def _maybe_call(obj: Any, method: str, *args: Any, **kwargs: Any) -> Any:
    """
    Call ``obj.method(*args, **kwargs)`` if it exists and is callable.

    Returns None when the attribute is missing. Exceptions raised by the
    method itself are NOT caught.
    """
    fn = getattr(obj, method, None)
    if callable(fn):
        return fn(*args, **kwargs)
    return None


def _to_info_dict(info: Any) -> Dict[str, Any]:
    """Coerce an env `info` object to a plain dict."""
    if info is None:
        return {}
    if isinstance(info, Mapping):
        return dict(info)
    return {"_info": info}


# =============================================================================
# Gym / Gymnasium compatibility
# =============================================================================
def _env_reset(env: Any, **kwargs: Any) -> Any:
    """
    Reset an environment and return only the observation.

    - Gymnasium: ``env.reset(...) -> (obs, info)``
    - Gym:       ``env.reset(...) -> obs``
    """
    out = env.reset(**kwargs)
    if isinstance(out, tuple) and len(out) == 2:
        obs, _ = out
        return obs
    return out


def _process_obs(obs: Any, *, obs_dtype: Any = np.float64) -> Any:
    """
    Cast array-like observations to a NumPy array.

    dict/tuple/list observations are returned unchanged.
    """
    if isinstance(obs, (dict, tuple, list)):
        return obs
    return np.asarray(obs, dtype=obs_dtype)


def _unpack_step(
    step_out: Any,
    *,
    obs_dtype: Any = np.float64,
) -> Tuple[Any, float, bool, Dict[str, Any]]:
    """
    Normalize ``env.step(...)`` outputs into ``(next_obs, reward, done, info)``.

    Supported signatures
    --------------------
    - Gym:       (obs, reward, done, info)
    - Gymnasium: (obs, reward, terminated, truncated, info)

    Raises
    ------
    ValueError
        If the output is not a 4/5-tuple or the flags/reward are not scalar-like.

    Notes
    -----
    Termination and truncation are collapsed into `done`; truncation is recorded
    as ``info["TimeLimit.truncated"] = True``.
    """
    if not isinstance(step_out, tuple):
        raise ValueError(f"env.step(...) must return tuple, got: {type(step_out)}")

    n = len(step_out)
    if n == 4:
        next_obs, reward, terminated, info = step_out
        truncated = False
    elif n == 5:
        next_obs, reward, terminated, truncated, info = step_out
    else:
        raise ValueError(f"Unsupported step() return signature (len={n}).")

    info_d = _to_info_dict(info)

    r = _to_scalar(reward)
    t = _to_scalar(terminated)
    tr = _to_scalar(truncated)
    if r is None or t is None or tr is None:
        raise ValueError("reward/terminated/truncated must be scalar-like for _unpack_step().")

    if bool(tr) and "TimeLimit.truncated" not in info_d:
        info_d["TimeLimit.truncated"] = True

    return _process_obs(next_obs, obs_dtype=obs_dtype), float(r), bool(t) or bool(tr), info_d
