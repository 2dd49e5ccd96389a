from __future__ import annotations

from typing import Any, Dict, Iterable

import torch as th

from online_rl.common.algorithms.base_algorithm import (
    ActionValuePredictor,
    Controller,
    OnlineLearner,
    ValuePredictor,
)
from online_rl.common.domains.transition import Transition
from online_rl.common.parameters.parameter import ParameterLike, as_parameter
from online_rl.common.utils.common_utils import _to_tensor


class NAC(OnlineLearner, ValuePredictor, ActionValuePredictor, Controller):
    """
    Natural actor-critic with a compatible critic.

    Summary
    -------
    No Fisher matrix is formed. With compatible features the critic's weight
    vector is proportional to the natural policy gradient, so the actor step is
    simply

        policy.weights += alpha * critic.weights

    after the critic has consumed the transition (or a whole batch).

    Parameters
    ----------
    critic : OnlineLearner & ValuePredictor & Parameterised
        Critic whose weights live in policy-parameter space (e.g.
        :class:`~online_rl.common.critics.CompatibleTD`). Owned exclusively.
    policy : ParameterisedPolicy
        The single policy used both as target and behaviour. Owned exclusively.
    alpha : ParameterLike
        Actor step size. Stepped at episode boundaries.

    Raises
    ------
    ValueError
        If critic and policy weights differ in shape, at construction or at
        any later blend.
    """

    def __init__(self, critic: Any, policy: Any, alpha: ParameterLike) -> None:
        critic_shape = tuple(_to_tensor(critic.weights()).shape)
        policy_shape = tuple(policy.weights_mut().shape)
        if critic_shape != policy_shape:
            raise ValueError(
                f"critic weights {critic_shape} and policy weights {policy_shape} must have the same shape"
            )

        self.critic = critic
        self.policy = policy
        self.alpha = as_parameter(alpha)
        self._n_blends = 0

    def _blend(self) -> None:
        cw = _to_tensor(self.critic.weights())
        pw = self.policy.weights_mut()
        if cw.shape != pw.shape:
            raise ValueError(
                f"critic weights {tuple(cw.shape)} and policy weights {tuple(pw.shape)} must have the same shape"
            )
        pw.add_(cw.to(dtype=pw.dtype), alpha=self.alpha.value())
        self._n_blends += 1

    # ------------------------------------------------------------------
    # Learning
    # ------------------------------------------------------------------
    def handle_transition(self, t: Transition) -> None:
        self.critic.handle_transition(t)
        self._blend()

    def handle_sequence(self, seq: Iterable[Transition]) -> None:
        """Critic learns from the whole batch, then a single blend is applied."""
        self.critic.handle_sequence(list(seq))
        self._blend()

    def handle_terminal(self) -> None:
        self.alpha = self.alpha.step()
        self.critic.handle_terminal()
        self.policy.handle_terminal()

    # ------------------------------------------------------------------
    # Predictions / control
    # ------------------------------------------------------------------
    def predict_v(self, state: Any) -> float:
        return self.critic.predict_v(state)

    def predict_qs(self, state: Any) -> th.Tensor:
        return self.critic.predict_qs(state)

    def predict_qsa(self, state: Any, action: Any) -> float:
        return self.critic.predict_qsa(state, action)

    def sample_target(self, state: Any) -> Any:
        return self.policy.sample(state)

    def sample_behaviour(self, state: Any) -> Any:
        return self.policy.sample(state)

    def metrics(self) -> Dict[str, float]:
        return {
            "alpha": self.alpha.value(),
            "policy_weight_norm": float(self.policy.weights_mut().norm()),
            "blends": float(self._n_blends),
        }
