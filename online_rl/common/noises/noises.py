from __future__ import annotations

from typing import Optional, Tuple, Union

import math
import torch as th

from .base_noise import BaseNoise
from ..utils.common_utils import DEFAULT_DTYPE
from ..utils.noise_utils import _normalize_size


# =============================================================================
# Action-independent noise processes
# =============================================================================

class GaussianNoise(BaseNoise):
    """
    Stateless i.i.d. Gaussian noise: ``noise ~ Normal(mu, sigma^2)``.

    Parameters
    ----------
    size : int or tuple[int, ...], default=1
        Output shape. Scalar-action policies use ``1``.
    mu : float, default=0.0
        Mean.
    sigma : float, default=0.2
        Standard deviation (must be >= 0). ``sigma == 0`` yields a constant
        tensor filled with `mu`, which keeps tests deterministic.
    dtype : torch.dtype, default=torch.float64

    Examples
    --------
    >>> n = GaussianNoise(sigma=0.1)
    >>> n.sample().shape
    torch.Size([1])
    """

    def __init__(
        self,
        size: Union[int, Tuple[int, ...]] = 1,
        mu: float = 0.0,
        sigma: float = 0.2,
        dtype: th.dtype = DEFAULT_DTYPE,
    ) -> None:
        if sigma < 0.0:
            raise ValueError(f"sigma must be >= 0, got {sigma}")

        self.size = _normalize_size(size)
        self.mu = float(mu)
        self.sigma = float(sigma)
        self.dtype = dtype

    def sample(self) -> th.Tensor:
        if self.sigma == 0.0:
            return th.full(self.size, self.mu, dtype=self.dtype)
        return self.mu + self.sigma * th.randn(self.size, dtype=self.dtype)


class OrnsteinUhlenbeckNoise(BaseNoise):
    """
    Ornstein-Uhlenbeck temporally correlated noise (stateful).

    Euler-Maruyama discretization:

        x_{t+1} = x_t + theta * (mu - x_t) * dt + sigma * sqrt(dt) * N(0, 1)

    Parameters
    ----------
    size : int or tuple[int, ...], default=1
    mu : float, default=0.0
        Long-run mean.
    theta : float, default=0.15
        Mean-reversion speed (>= 0).
    sigma : float, default=0.2
        Diffusion scale (>= 0).
    dt : float, default=1e-2
        Time step (> 0).
    x0 : float, optional
        Initial state; defaults to `mu`.
    dtype : torch.dtype, default=torch.float64

    Notes
    -----
    - `reset()` restores ``x0``; :class:`PerturbedPolicy` calls it at every
      episode boundary so that correlation never leaks across episodes.
    - `sample()` returns a copy of the internal state.
    """

    def __init__(
        self,
        size: Union[int, Tuple[int, ...]] = 1,
        mu: float = 0.0,
        theta: float = 0.15,
        sigma: float = 0.2,
        dt: float = 1e-2,
        x0: Optional[float] = None,
        *,
        dtype: th.dtype = DEFAULT_DTYPE,
    ) -> None:
        if theta < 0.0:
            raise ValueError(f"theta must be >= 0, got {theta}")
        if sigma < 0.0:
            raise ValueError(f"sigma must be >= 0, got {sigma}")
        if dt <= 0.0:
            raise ValueError(f"dt must be > 0, got {dt}")

        self.size = _normalize_size(size)
        self.mu = float(mu)
        self.theta = float(theta)
        self.sigma = float(sigma)
        self.dt = float(dt)
        self.dtype = dtype

        self._x0 = self.mu if x0 is None else float(x0)

        self.state: th.Tensor
        self.reset()

    def sample(self) -> th.Tensor:
        if self.sigma == 0.0 and self.theta == 0.0:
            return self.state.clone()

        eps = th.randn(self.size, dtype=self.dtype)
        dx = (self.theta * (self.mu - self.state) * self.dt) + (self.sigma * math.sqrt(self.dt) * eps)
        self.state.add_(dx)
        return self.state.clone()

    def reset(self) -> None:
        self.state = th.full(self.size, self._x0, dtype=self.dtype)


class UniformNoise(BaseNoise):
    """
    Stateless i.i.d. uniform noise: ``noise ~ Uniform(low, high)``.

    Parameters
    ----------
    size : int or tuple[int, ...], default=1
    low, high : float
        Bounds; requires ``high > low``.
    dtype : torch.dtype, default=torch.float64
    """

    def __init__(
        self,
        size: Union[int, Tuple[int, ...]] = 1,
        low: float = -1.0,
        high: float = 1.0,
        dtype: th.dtype = DEFAULT_DTYPE,
    ) -> None:
        if high <= low:
            raise ValueError(f"high must be > low, got low={low}, high={high}")

        self.size = _normalize_size(size)
        self.low = float(low)
        self.high = float(high)
        self.dtype = dtype

    def sample(self) -> th.Tensor:
        u = th.rand(self.size, dtype=self.dtype)
        return (self.high - self.low) * u + self.low
