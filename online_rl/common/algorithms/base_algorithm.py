from __future__ import annotations

import math
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, Mapping

import torch as th

from ..domains.transition import Transition
from ..utils.common_utils import _is_scalar_like, _to_scalar


class UnsupportedOperationError(NotImplementedError):
    """
    Raised for operations a component cannot honor (e.g. the probability of a
    perturbed policy, or action values from a state-value critic).

    Subclasses ``NotImplementedError`` so that callers can catch either kind.
    """


class Algorithm(ABC):
    """
    Root of the capability hierarchy.

    Every learner, critic and policy is an `Algorithm`: it can be told that an
    episode ended. Further capabilities are mixed in through the interfaces
    below; concrete classes combine whichever they support.

    Notes
    -----
    - `handle_terminal` is the only place where per-episode schedules
      (:class:`~online_rl.common.parameters.Parameter`) are advanced.
    - `metrics` returns scalar diagnostics for logging. It must be free of side
      effects.
    """

    def handle_terminal(self) -> None:
        """Episode-boundary hook. No-op by default."""
        return None

    def metrics(self) -> Dict[str, float]:
        return {}

    # ------------------------------------------------------------------
    # Metrics helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _filter_scalar_metrics(metrics_any: Any, *, drop_non_finite: bool = True) -> Dict[str, float]:
        """
        Filter a metrics mapping to a float-only dict (for logging).

        Parameters
        ----------
        metrics_any : Any
            Typically the output of :meth:`metrics`. Non-mappings yield ``{}``.
        drop_non_finite : bool, default=True
            If True, drops NaN/Inf values.

        Returns
        -------
        metrics : Dict[str, float]
        """
        metrics: Dict[str, Any] = dict(metrics_any) if isinstance(metrics_any, Mapping) else {}
        out: Dict[str, float] = {}

        for k, v in metrics.items():
            if not _is_scalar_like(v):
                continue
            fv = float(_to_scalar(v))
            if drop_non_finite and not math.isfinite(fv):
                continue
            out[str(k)] = fv

        return out


class OnlineLearner(Algorithm):
    """Learns from transitions as they are streamed."""

    @abstractmethod
    def handle_transition(self, t: Transition) -> None:
        raise NotImplementedError

    def handle_sequence(self, seq: Iterable[Transition]) -> None:
        """Process a batch of transitions. Default: one at a time, in order."""
        for t in seq:
            self.handle_transition(t)


class ValuePredictor(Algorithm):
    @abstractmethod
    def predict_v(self, state: Any) -> float:
        raise NotImplementedError


class ActionValuePredictor(Algorithm):
    @abstractmethod
    def predict_qs(self, state: Any) -> th.Tensor:
        """Action values for every action of a finite action set."""
        raise NotImplementedError

    @abstractmethod
    def predict_qsa(self, state: Any, action: Any) -> float:
        raise NotImplementedError


class Controller(Algorithm):
    """
    Chooses actions.

    - ``sample_target(state)``    : action of the policy being learned
    - ``sample_behaviour(state)`` : action actually executed while learning
    """

    @abstractmethod
    def sample_target(self, state: Any) -> Any:
        raise NotImplementedError

    @abstractmethod
    def sample_behaviour(self, state: Any) -> Any:
        raise NotImplementedError


class Parameterised(ABC):
    """
    Owner of a flat-or-matrix weight tensor.

    - ``weights()``     : detached copy (safe to keep)
    - ``weights_mut()`` : the live tensor; in-place edits change the owner
    """

    @abstractmethod
    def weights_mut(self) -> th.Tensor:
        raise NotImplementedError

    def weights(self) -> th.Tensor:
        return self.weights_mut().clone()

    @property
    def weights_dim(self) -> th.Size:
        return self.weights_mut().shape
