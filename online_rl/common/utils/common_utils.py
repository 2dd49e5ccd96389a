from __future__ import annotations

from typing import Any, Callable, Optional, Union

import numpy as np
import torch as th


#: Default dtype for weight vectors, features and densities.
DEFAULT_DTYPE: th.dtype = th.float64

FeatureFn = Callable[[Any], Any]


# =============================================================================
# NumPy / Torch conversion utilities
# =============================================================================
def _to_tensor(x: Any, dtype: th.dtype = DEFAULT_DTYPE) -> th.Tensor:
    """
    Convert an input to a CPU torch.Tensor with the requested dtype.

    Parameters
    ----------
    x : Any
        Tensor, ndarray, Python scalar or (nested) sequence.
    dtype : torch.dtype, default=torch.float64
        Target dtype. Applied even if ``x`` is already a tensor.

    Returns
    -------
    t : torch.Tensor
        Detached CPU tensor.

    Notes
    -----
    Tensors are detached so that values flowing through critics and policies
    never carry autograd history.
    """
    if th.is_tensor(x):
        return x.detach().to(device="cpu", dtype=dtype)
    if isinstance(x, np.ndarray):
        return th.as_tensor(x, dtype=dtype)
    return th.as_tensor(np.asarray(x), dtype=dtype)


def _to_numpy(x: Any) -> np.ndarray:
    """Convert tensors / array-likes to a NumPy array on CPU (dtype not forced)."""
    if isinstance(x, np.ndarray):
        return x
    if th.is_tensor(x):
        return x.detach().cpu().numpy()
    return np.asarray(x)


def _to_scalar(x: Any) -> Optional[float]:
    """
    Convert a scalar-like input to a Python float.

    Parameters
    ----------
    x : Any
        Python number, NumPy scalar, or a 1-element array/tensor.

    Returns
    -------
    s : float or None
        Python float if convertible, else None.

    Notes
    -----
    Arrays/tensors with more than one element return None.
    """
    if th.is_tensor(x):
        if x.numel() == 1:
            return float(x.detach().cpu().item())
        return None

    if isinstance(x, (bool, int, float, np.number)):
        return float(x)

    try:
        arr = np.asarray(x)
    except (TypeError, ValueError):
        return None
    if arr.dtype.kind not in "biuf":
        return None
    if arr.size == 1:
        return float(arr.reshape(-1)[0])
    return None


def _is_scalar_like(x: Any) -> bool:
    """Return True if `x` converts cleanly through :func:`_to_scalar`."""
    return _to_scalar(x) is not None


# =============================================================================
# Features
# =============================================================================
def _identity_features(state: Any) -> th.Tensor:
    """Default feature map: the flattened state itself."""
    return _to_tensor(state).reshape(-1)


def _features(
    state: Any,
    *,
    n_features: int,
    feature_fn: Optional[FeatureFn] = None,
) -> th.Tensor:
    """
    Evaluate a feature map and validate its length.

    Parameters
    ----------
    state : Any
        Raw state.
    n_features : int
        Expected length of the feature vector.
    feature_fn : callable, optional
        Maps a state to an array-like of length `n_features`.
        Defaults to flattening the state.

    Returns
    -------
    phi : torch.Tensor
        Feature vector, shape (n_features,), dtype float64.

    Raises
    ------
    ValueError
        If the feature vector does not have exactly `n_features` entries.
    """
    fn = _identity_features if feature_fn is None else feature_fn
    phi = _to_tensor(fn(state)).reshape(-1)
    if phi.numel() != int(n_features):
        raise ValueError(
            f"feature vector has {phi.numel()} entries, expected n_features={n_features}"
        )
    return phi


def _require_positive_int(x: Any, *, name: str) -> int:
    """Cast to int and require x > 0."""
    v = int(x)
    if v <= 0:
        raise ValueError(f"{name} must be > 0, got {x}")
    return v


def _action_to_float(action: Union[float, int, th.Tensor, np.ndarray]) -> float:
    """
    Convert a scalar continuous action to a Python float.

    Raises
    ------
    ValueError
        If the action holds more than one element.
    """
    v = _to_scalar(action)
    if v is None:
        raise ValueError(f"expected a scalar action, got {action!r}")
    return v
