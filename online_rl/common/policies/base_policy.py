from __future__ import annotations

import math
from abc import abstractmethod
from typing import Any

import torch as th

from ..algorithms.base_algorithm import Algorithm, Parameterised, UnsupportedOperationError
from ..utils.common_utils import _to_scalar


class Policy(Algorithm):
    """
    Maps a state to an action.

    Contract
    --------
    - ``sample(state)`` draws from a proper distribution over the action
      domain (mass summing to 1, or a well-defined density).
    - ``probability(state, action)`` returns the mass (finite actions) or the
      density (continuous actions) of `action` at `state`.

    Policies receive :meth:`handle_terminal` at every episode boundary through
    the algorithm that owns them.
    """

    @abstractmethod
    def sample(self, state: Any) -> Any:
        raise NotImplementedError

    @abstractmethod
    def probability(self, state: Any, action: Any) -> float:
        raise NotImplementedError


class FinitePolicy(Policy):
    """
    Policy over the action set ``{0, ..., n_actions - 1}``.

    ``probabilities(state)`` has length `n_actions`, non-negative entries and
    sums to 1.
    ``probability(state, action)`` raises ``ValueError`` unless `action` is an
    integer in ``[0, n_actions)``.
    """

    @property
    @abstractmethod
    def n_actions(self) -> int:
        raise NotImplementedError

    @abstractmethod
    def probabilities(self, state: Any) -> th.Tensor:
        raise NotImplementedError

    def _check_action(self, action: Any) -> int:
        a = _to_scalar(action)
        if a is None or not math.isfinite(a) or a != int(a) or not (0 <= int(a) < self.n_actions):
            raise ValueError(f"action must be an int in [0, {self.n_actions}), got {action!r}")
        return int(a)

    def probability(self, state: Any, action: Any) -> float:
        return float(self.probabilities(state)[self._check_action(action)])


class DifferentiablePolicy(Policy):
    @abstractmethod
    def grad_log(self, state: Any, action: Any) -> th.Tensor:
        """Gradient of ``log pi(action | state)`` w.r.t. the weights (weights' shape)."""
        raise NotImplementedError


class ParameterisedPolicy(DifferentiablePolicy, Parameterised):
    """
    Differentiable policy with a tunable weight tensor.

    ``update(state, action, direction)`` nudges the weights by `direction`
    passed through the policy's own link (e.g. ``w += direction * phi(s)``
    for a linear-Gaussian mean). This is the only mutation path used by the
    actor-critic learners besides :meth:`weights_mut`.
    """

    @abstractmethod
    def update(self, state: Any, action: Any, direction: Any) -> None:
        raise NotImplementedError


class ContinuousPolicy(ParameterisedPolicy):
    """Parameterised policy over a continuous scalar action with a mode query."""

    @abstractmethod
    def mpa(self, state: Any) -> float:
        """Most probable action (mode / mean) at `state`."""
        raise NotImplementedError
