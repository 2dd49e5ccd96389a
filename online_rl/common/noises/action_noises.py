from __future__ import annotations

from typing import Union

import torch as th

from .base_noise import BaseActionNoise
from ..utils.common_utils import _to_tensor


# =============================================================================
# Gaussian noise variants conditioned on the unperturbed action
# =============================================================================

class GaussianActionNoise(BaseActionNoise):
    """
    Gaussian noise scaled by action magnitude.

        noise = sigma * max(|action|, eps) * N(0, 1)

    Parameters
    ----------
    sigma : float, default=0.1
        Global scale (>= 0). ``sigma == 0`` yields zeros.
    eps : float, default=1e-6
        Minimum scale so that exploration does not vanish at ``action == 0``.
    """

    def __init__(self, sigma: float = 0.1, eps: float = 1e-6) -> None:
        if sigma < 0.0:
            raise ValueError(f"sigma must be >= 0, got {sigma}")
        if eps <= 0.0:
            raise ValueError(f"eps must be > 0, got {eps}")
        self.sigma = float(sigma)
        self.eps = float(eps)

    def sample(self, action: th.Tensor) -> th.Tensor:
        if self.sigma == 0.0:
            return th.zeros_like(action)

        scale = action.abs().clamp_min(self.eps)
        return self.sigma * scale * th.randn_like(action)


class MultiplicativeActionNoise(BaseActionNoise):
    """
    Purely multiplicative noise: ``noise = sigma * action * N(0, 1)``.

    Noise vanishes with the action itself.
    """

    def __init__(self, sigma: float = 0.1) -> None:
        if sigma < 0.0:
            raise ValueError(f"sigma must be >= 0, got {sigma}")
        self.sigma = float(sigma)

    def sample(self, action: th.Tensor) -> th.Tensor:
        if self.sigma == 0.0:
            return th.zeros_like(action)
        return self.sigma * action * th.randn_like(action)


class ClippedGaussianActionNoise(BaseActionNoise):
    """
    Additive Gaussian noise, clipped so the perturbed action stays in bounds.

        a_noisy = clip(action + sigma * N(0, 1), low, high)
        noise   = a_noisy - action

    Parameters
    ----------
    sigma : float, default=0.1
    low, high : float or torch.Tensor
        Bounds, broadcastable to the action. Scalar bounds require
        ``high > low``.

    Notes
    -----
    The returned value is the *effective* noise after clipping, so
    ``action + noise`` always lies in ``[low, high]`` when `action` does.
    """

    def __init__(
        self,
        sigma: float = 0.1,
        low: Union[float, th.Tensor] = -1.0,
        high: Union[float, th.Tensor] = 1.0,
    ) -> None:
        if sigma < 0.0:
            raise ValueError(f"sigma must be >= 0, got {sigma}")

        self.sigma = float(sigma)
        self.low = low
        self.high = high

        if isinstance(low, (float, int)) and isinstance(high, (float, int)) and float(high) <= float(low):
            raise ValueError(f"high must be > low, got low={low}, high={high}")

    def sample(self, action: th.Tensor) -> th.Tensor:
        if self.sigma == 0.0:
            return th.zeros_like(action)

        low = _to_tensor(self.low, dtype=action.dtype)
        high = _to_tensor(self.high, dtype=action.dtype)

        raw = self.sigma * th.randn_like(action)
        a_noisy = th.maximum(th.minimum(action + raw, high), low)
        return a_noisy - action
