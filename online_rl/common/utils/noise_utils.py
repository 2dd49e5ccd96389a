from __future__ import annotations

from typing import Optional, Sequence, Tuple, Union

import torch as th


# =============================================================================
# Normalization helpers
# =============================================================================
def _normalize_size(size: Union[int, Tuple[int, ...]]) -> Tuple[int, ...]:
    """
    Normalize a size specification into a tuple of positive integers.

    Parameters
    ----------
    size : int or Tuple[int, ...]
        ``int`` is read as a 1D shape ``(size,)``; tuples are validated as-is.

    Returns
    -------
    shape : Tuple[int, ...]

    Raises
    ------
    ValueError
        If the shape is empty or has a non-positive dimension.

    Examples
    --------
    >>> _normalize_size(1)
    (1,)
    """
    if isinstance(size, int):
        if size <= 0:
            raise ValueError(f"size must be > 0, got {size}")
        return (size,)

    shape = tuple(size)
    if len(shape) == 0:
        raise ValueError("size must be non-empty")
    if any((not isinstance(s, int)) or (s <= 0) for s in shape):
        raise ValueError(f"all size dims must be positive ints, got {shape}")
    return shape


def _normalize_kind(kind: Optional[str]) -> Optional[str]:
    """
    Normalize a "kind"/"name" string into a canonical snake_case identifier.

    Shared by the noise factory and the parameter factory.

    Returns
    -------
    norm : str or None
        None for None/""/"none"/"null", otherwise lowercased with "-" and
        whitespace mapped to "_" and repeated underscores collapsed.

    Examples
    --------
    >>> _normalize_kind(" Ornstein-Uhlenbeck ")
    'ornstein_uhlenbeck'
    >>> _normalize_kind("none") is None
    True
    """
    if kind is None:
        return None

    s = str(kind).strip().lower()
    if s in ("", "none", "null"):
        return None

    s = s.replace("-", "_").replace(" ", "_")
    while "__" in s:
        s = s.replace("__", "_")
    return s


def _as_flat_bounds(
    x: Union[float, Sequence[float]],
    *,
    action_dim: int,
    dtype: th.dtype,
    name: str,
) -> th.Tensor:
    """
    Convert scalar or per-dimension bounds to a tensor compatible with `action_dim`.

    Returns
    -------
    t : torch.Tensor
        Shape ``()`` for a scalar bound, ``(action_dim,)`` for per-dimension bounds.

    Raises
    ------
    ValueError
        If `x` is neither a scalar nor a 1D sequence of length `action_dim`.
    """
    if int(action_dim) <= 0:
        raise ValueError(f"action_dim must be > 0, got {action_dim}")

    t = th.as_tensor(x, dtype=dtype)
    if t.ndim == 0:
        return t
    if t.ndim == 1 and t.shape[0] == int(action_dim):
        return t

    raise ValueError(
        f"{name} must be a scalar or a 1D sequence of length action_dim={action_dim}. "
        f"Got shape={tuple(t.shape)}."
    )
