from __future__ import annotations

import math
from typing import Any, Optional

import torch as th
from torch.distributions import Normal

from .base_policy import ContinuousPolicy
from ..utils.common_utils import (
    DEFAULT_DTYPE,
    FeatureFn,
    _action_to_float,
    _features,
    _require_positive_int,
    _to_tensor,
)


class GaussianPolicy(ContinuousPolicy):
    """
    Linear-Gaussian policy over a scalar continuous action.

        a ~ Normal(mean(s), std^2),   mean(s) = w . phi(s)

    Parameters
    ----------
    n_features : int
        Length of the feature vector ``phi(s)``.
    std : float, default=1.0
        Fixed standard deviation (> 0).
    feature_fn : callable, optional
        State -> features. Defaults to flattening the state.
    weights : array-like, optional
        Initial weights of shape ``(n_features,)``; zeros by default.

    Notes
    -----
    - ``mpa(s)`` is the mean.
    - ``grad_log(s, a) = (a - mean(s)) / std^2 * phi(s)``.
    - ``update(s, a, d)`` applies ``w += d * phi(s)``, so a direction of
      ``alpha * (a - mpa(s))`` moves the mean toward `a`.
    """

    def __init__(
        self,
        n_features: int,
        std: float = 1.0,
        *,
        feature_fn: Optional[FeatureFn] = None,
        weights: Optional[Any] = None,
    ) -> None:
        self.n_features = _require_positive_int(n_features, name="n_features")
        if not (float(std) > 0.0 and math.isfinite(float(std))):
            raise ValueError(f"std must be finite and > 0, got {std}")
        self.std = float(std)
        self.feature_fn = feature_fn

        if weights is None:
            self._w = th.zeros(self.n_features, dtype=DEFAULT_DTYPE)
        else:
            self._w = _to_tensor(weights).reshape(-1).clone()
            if self._w.numel() != self.n_features:
                raise ValueError(f"weights must have {self.n_features} entries, got {self._w.numel()}")

    def _phi(self, state: Any) -> th.Tensor:
        return _features(state, n_features=self.n_features, feature_fn=self.feature_fn)

    def _dist(self, state: Any) -> Normal:
        mean = th.dot(self._w, self._phi(state))
        return Normal(mean, th.tensor(self.std, dtype=DEFAULT_DTYPE))

    # ------------------------------------------------------------------
    # Policy
    # ------------------------------------------------------------------
    def mpa(self, state: Any) -> float:
        return float(th.dot(self._w, self._phi(state)))

    def sample(self, state: Any) -> float:
        return float(self._dist(state).sample())

    def probability(self, state: Any, action: Any) -> float:
        a = th.tensor(_action_to_float(action), dtype=DEFAULT_DTYPE)
        return float(self._dist(state).log_prob(a).exp())

    def grad_log(self, state: Any, action: Any) -> th.Tensor:
        phi = self._phi(state)
        mean = th.dot(self._w, phi)
        return (_action_to_float(action) - mean) / (self.std ** 2) * phi

    # ------------------------------------------------------------------
    # Parameterised
    # ------------------------------------------------------------------
    def weights_mut(self) -> th.Tensor:
        return self._w

    def update(self, state: Any, action: Any, direction: Any) -> None:
        self._w.add_(self._phi(state), alpha=_action_to_float(direction))

    def __repr__(self) -> str:
        return f"GaussianPolicy(n_features={self.n_features}, std={self.std})"
