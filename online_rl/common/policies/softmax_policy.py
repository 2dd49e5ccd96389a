from __future__ import annotations

from typing import Any, Optional

import torch as th

from .base_policy import FinitePolicy, ParameterisedPolicy
from ..utils.common_utils import (
    DEFAULT_DTYPE,
    FeatureFn,
    _features,
    _require_positive_int,
    _to_scalar,
    _to_tensor,
)


class SoftmaxPolicy(FinitePolicy, ParameterisedPolicy):
    """
    Gibbs (softmax) policy with linear action preferences.

        pi(. | s) = softmax(phi(s) W / tau)

    Parameters
    ----------
    n_features : int
        Length of ``phi(s)``.
    n_actions : int
        Number of discrete actions.
    tau : float, default=1.0
        Temperature (> 0).
    feature_fn : callable, optional
        State -> features. Defaults to flattening the state.
    weights : array-like, optional
        Initial ``(n_features, n_actions)`` weights; zeros (uniform policy) by
        default.

    Notes
    -----
    ``grad_log(s, a) = outer(phi(s), onehot(a) - pi(s)) / tau`` has the shape
    of the weights, which is what a compatible critic needs.
    """

    def __init__(
        self,
        n_features: int,
        n_actions: int,
        tau: float = 1.0,
        *,
        feature_fn: Optional[FeatureFn] = None,
        weights: Optional[Any] = None,
    ) -> None:
        self.n_features = _require_positive_int(n_features, name="n_features")
        self._n_actions = _require_positive_int(n_actions, name="n_actions")
        if float(tau) <= 0.0:
            raise ValueError(f"tau must be > 0, got {tau}")
        self.tau = float(tau)
        self.feature_fn = feature_fn

        shape = (self.n_features, self._n_actions)
        if weights is None:
            self._w = th.zeros(shape, dtype=DEFAULT_DTYPE)
        else:
            self._w = _to_tensor(weights).clone()
            if tuple(self._w.shape) != shape:
                raise ValueError(f"weights must have shape {shape}, got {tuple(self._w.shape)}")

    @property
    def n_actions(self) -> int:
        return self._n_actions

    def _phi(self, state: Any) -> th.Tensor:
        return _features(state, n_features=self.n_features, feature_fn=self.feature_fn)

    # ------------------------------------------------------------------
    # Policy
    # ------------------------------------------------------------------
    def probabilities(self, state: Any) -> th.Tensor:
        prefs = (self._phi(state) @ self._w) / self.tau
        return th.softmax(prefs, dim=-1)

    def probability(self, state: Any, action: Any) -> float:
        return float(self.probabilities(state)[self._check_action(action)])

    def sample(self, state: Any) -> int:
        return int(th.multinomial(self.probabilities(state), 1).item())

    def grad_log(self, state: Any, action: Any) -> th.Tensor:
        a = self._check_action(action)
        phi = self._phi(state)
        probs = th.softmax((phi @ self._w) / self.tau, dim=-1)

        onehot = th.zeros(self._n_actions, dtype=DEFAULT_DTYPE)
        onehot[a] = 1.0
        return th.outer(phi, onehot - probs) / self.tau

    # ------------------------------------------------------------------
    # Parameterised
    # ------------------------------------------------------------------
    def weights_mut(self) -> th.Tensor:
        return self._w

    def update(self, state: Any, action: Any, direction: Any) -> None:
        d = _to_scalar(direction)
        if d is None:
            raise ValueError(f"direction must be a scalar, got {direction!r}")
        self._w.add_(self.grad_log(state, action), alpha=d)

    def __repr__(self) -> str:
        return f"SoftmaxPolicy(n_features={self.n_features}, n_actions={self._n_actions}, tau={self.tau})"
