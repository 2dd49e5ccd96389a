from __future__ import annotations

from typing import Optional, Sequence, Union

import torch as th

from .action_noises import (
    ClippedGaussianActionNoise,
    GaussianActionNoise,
    MultiplicativeActionNoise,
)
from .noises import GaussianNoise, OrnsteinUhlenbeckNoise, UniformNoise
from ..utils.common_utils import DEFAULT_DTYPE
from ..utils.noise_utils import _as_flat_bounds, _normalize_kind


# =============================================================================
# Types
# =============================================================================

NoiseObj = Union[
    GaussianNoise,
    OrnsteinUhlenbeckNoise,
    UniformNoise,
    GaussianActionNoise,
    MultiplicativeActionNoise,
    ClippedGaussianActionNoise,
]


# =============================================================================
# Factory
# =============================================================================

_SUPPORTED_KINDS = (
    "gaussian",
    "ou",
    "ornstein_uhlenbeck",
    "uniform",
    "gaussian_action",
    "multiplicative",
    "multiplicative_action",
    "clipped_gaussian",
    "clipped_gaussian_action",
)


def build_noise(
    *,
    kind: Optional[str],
    action_dim: int = 1,
    noise_mu: float = 0.0,
    noise_sigma: float = 0.2,
    ou_theta: float = 0.15,
    ou_dt: float = 1e-2,
    uniform_low: float = -1.0,
    uniform_high: float = 1.0,
    action_noise_eps: float = 1e-6,
    action_noise_low: Optional[Union[float, Sequence[float]]] = None,
    action_noise_high: Optional[Union[float, Sequence[float]]] = None,
    dtype: th.dtype = DEFAULT_DTYPE,
) -> Optional[NoiseObj]:
    """
    Construct an exploration-noise object from a string identifier.

    Parameters
    ----------
    kind : str or None
        ``None`` / ``"none"`` / ``""`` returns None. Otherwise one of

        - action-independent: ``"gaussian"``, ``"ou"`` (``"ornstein_uhlenbeck"``),
          ``"uniform"``
        - action-dependent: ``"gaussian_action"``, ``"multiplicative"``
          (``"multiplicative_action"``), ``"clipped_gaussian"``
          (``"clipped_gaussian_action"``)
    action_dim : int, default=1
        Action dimension (> 0). Scalar continuous actions use 1.
    noise_mu, noise_sigma : float
        Mean and scale shared by the Gaussian-family noises
        (``noise_sigma >= 0``).
    ou_theta, ou_dt : float
        Ornstein-Uhlenbeck parameters.
    uniform_low, uniform_high : float
        Uniform bounds.
    action_noise_eps : float
        Minimum scale for ``"gaussian_action"``.
    action_noise_low, action_noise_high : float or sequence of float
        Required for the clipped kind; scalar or length `action_dim`.
    dtype : torch.dtype, default=torch.float64

    Returns
    -------
    noise : NoiseObj or None

    Raises
    ------
    ValueError
        On unknown kinds and invalid hyperparameters.
    """
    nt = _normalize_kind(kind)
    if nt is None:
        return None

    if action_dim <= 0:
        raise ValueError(f"action_dim must be > 0, got {action_dim}")
    if noise_sigma < 0.0:
        raise ValueError(f"noise_sigma must be >= 0, got {noise_sigma}")

    size = (int(action_dim),)

    # -------------------------------------------------------------------------
    # Action-independent noises
    # -------------------------------------------------------------------------
    if nt == "gaussian":
        return GaussianNoise(size=size, mu=float(noise_mu), sigma=float(noise_sigma), dtype=dtype)

    if nt in ("ou", "ornstein_uhlenbeck"):
        return OrnsteinUhlenbeckNoise(
            size=size,
            mu=float(noise_mu),
            theta=float(ou_theta),
            sigma=float(noise_sigma),
            dt=float(ou_dt),
            dtype=dtype,
        )

    if nt == "uniform":
        return UniformNoise(size=size, low=float(uniform_low), high=float(uniform_high), dtype=dtype)

    # -------------------------------------------------------------------------
    # Action-dependent noises
    # -------------------------------------------------------------------------
    if nt == "gaussian_action":
        return GaussianActionNoise(sigma=float(noise_sigma), eps=float(action_noise_eps))

    if nt in ("multiplicative", "multiplicative_action"):
        return MultiplicativeActionNoise(sigma=float(noise_sigma))

    if nt in ("clipped_gaussian", "clipped_gaussian_action"):
        if action_noise_low is None or action_noise_high is None:
            raise ValueError(
                "clipped_gaussian requires action_noise_low and action_noise_high "
                "(scalar or sequence of length action_dim)."
            )

        low_t = _as_flat_bounds(action_noise_low, action_dim=action_dim, dtype=dtype, name="action_noise_low")
        high_t = _as_flat_bounds(action_noise_high, action_dim=action_dim, dtype=dtype, name="action_noise_high")
        if bool((high_t <= low_t).any()):
            raise ValueError("action_noise_high must be > action_noise_low in every dimension")

        return ClippedGaussianActionNoise(sigma=float(noise_sigma), low=low_t, high=high_t)

    raise ValueError(
        f"Unknown exploration noise kind={kind!r} (normalized={nt!r}). "
        f"Supported kinds include: {', '.join(_SUPPORTED_KINDS)}."
    )
