from __future__ import annotations

from typing import Any, Dict, Optional

import torch as th

from ..algorithms.base_algorithm import (
    ActionValuePredictor,
    OnlineLearner,
    Parameterised,
    UnsupportedOperationError,
    ValuePredictor,
)
from ..domains.transition import Transition
from ..parameters.parameter import ParameterLike, as_parameter
from ..utils.common_utils import DEFAULT_DTYPE, FeatureFn, _features, _require_positive_int, _to_tensor


class TD(OnlineLearner, ValuePredictor, ActionValuePredictor, Parameterised):
    """
    Linear TD(0) state-value critic.

        V(s)  = w . phi(s)
        delta = r + gamma * V(s') - V(s)     (no bootstrap when s' is terminal)
        w    += alpha * delta * phi(s)

    Parameters
    ----------
    n_features : int
        Length of ``phi(s)``.
    alpha : ParameterLike
        Step size; stepped at episode boundaries.
    gamma : ParameterLike
        Discount factor; stepped at episode boundaries.
    feature_fn : callable, optional
        State -> features. Defaults to flattening the state.
    weights : array-like, optional
        Initial weights; zeros by default.

    Notes
    -----
    State values only: :meth:`predict_qs` and :meth:`predict_qsa` raise
    :class:`UnsupportedOperationError`.
    """

    def __init__(
        self,
        n_features: int,
        alpha: ParameterLike,
        gamma: ParameterLike,
        *,
        feature_fn: Optional[FeatureFn] = None,
        weights: Optional[Any] = None,
    ) -> None:
        self.n_features = _require_positive_int(n_features, name="n_features")
        self.alpha = as_parameter(alpha)
        self.gamma = as_parameter(gamma)
        self.feature_fn = feature_fn

        if weights is None:
            self._w = th.zeros(self.n_features, dtype=DEFAULT_DTYPE)
        else:
            self._w = _to_tensor(weights).reshape(-1).clone()
            if self._w.numel() != self.n_features:
                raise ValueError(f"weights must have {self.n_features} entries, got {self._w.numel()}")

        self.last_td_error = 0.0

    def _phi(self, state: Any) -> th.Tensor:
        return _features(state, n_features=self.n_features, feature_fn=self.feature_fn)

    def td_error(self, t: Transition) -> float:
        """``r + gamma * V(s') - V(s)`` without touching the weights."""
        v = self.predict_v(t.from_state)
        if t.terminated():
            return float(t.reward) - v
        return float(t.reward) + self.gamma.value() * self.predict_v(t.to_state) - v

    # ------------------------------------------------------------------
    # Predictions
    # ------------------------------------------------------------------
    def predict_v(self, state: Any) -> float:
        return float(th.dot(self._w, self._phi(state)))

    def predict_qs(self, state: Any) -> th.Tensor:
        raise UnsupportedOperationError("TD estimates state values only")

    def predict_qsa(self, state: Any, action: Any) -> float:
        raise UnsupportedOperationError("TD estimates state values only")

    # ------------------------------------------------------------------
    # Learning
    # ------------------------------------------------------------------
    def handle_transition(self, t: Transition) -> None:
        delta = self.td_error(t)
        self._w.add_(self._phi(t.from_state), alpha=self.alpha.value() * delta)
        self.last_td_error = delta

    def handle_terminal(self) -> None:
        self.alpha = self.alpha.step()
        self.gamma = self.gamma.step()

    def weights_mut(self) -> th.Tensor:
        return self._w

    def metrics(self) -> Dict[str, float]:
        return {"critic/alpha": self.alpha.value(), "critic/td_error": self.last_td_error}

    def __repr__(self) -> str:
        return f"TD(n_features={self.n_features}, alpha={self.alpha.value():g}, gamma={self.gamma.value():g})"
