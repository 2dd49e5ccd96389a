from __future__ import annotations

from typing import Any, Dict

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
from ..policies.base_policy import FinitePolicy, ParameterisedPolicy
from ..utils.common_utils import DEFAULT_DTYPE


class CompatibleTD(OnlineLearner, ValuePredictor, ActionValuePredictor, Parameterised):
    """
    Advantage critic with compatible features.

    The advantage is linear in the policy's score function:

        A(s, a) = < w, grad_log pi(a | s) >

    so `w` has exactly the shape of the policy weights. With compatible
    features, `w` is (proportional to) the natural policy gradient, which is
    what :class:`~online_rl.baselines.actor_critic.NAC` adds into the policy.

    Parameters
    ----------
    policy : ParameterisedPolicy
        Policy whose score function defines the features. Read only.
    value_critic : OnlineLearner & ValuePredictor
        State-value baseline (e.g. :class:`TD`). Receives every transition.
    alpha : ParameterLike
        Advantage step size.
    gamma : ParameterLike
        Discount factor for the TD error.

    Notes
    -----
    ``handle_transition`` computes

        delta = r + gamma * V(s') - V(s)   (V(s') omitted when terminal)
        w    += alpha * (delta - A(s, a)) * grad_log pi(a | s)

    with `V` evaluated *before* the value critic sees the transition.
    """

    def __init__(
        self,
        policy: ParameterisedPolicy,
        value_critic: Any,
        alpha: ParameterLike,
        gamma: ParameterLike,
    ) -> None:
        self.policy = policy
        self.value_critic = value_critic
        self.alpha = as_parameter(alpha)
        self.gamma = as_parameter(gamma)
        self._w = th.zeros(policy.weights_dim, dtype=DEFAULT_DTYPE)

    # ------------------------------------------------------------------
    # Predictions
    # ------------------------------------------------------------------
    def predict_v(self, state: Any) -> float:
        return self.value_critic.predict_v(state)

    def advantage(self, state: Any, action: Any) -> float:
        return float((self._w * self.policy.grad_log(state, action)).sum())

    def predict_qsa(self, state: Any, action: Any) -> float:
        return self.predict_v(state) + self.advantage(state, action)

    def predict_qs(self, state: Any) -> th.Tensor:
        if not isinstance(self.policy, FinitePolicy):
            raise UnsupportedOperationError("predict_qs requires a finite-action policy")
        v = self.predict_v(state)
        return th.tensor(
            [v + self.advantage(state, a) for a in range(self.policy.n_actions)],
            dtype=DEFAULT_DTYPE,
        )

    # ------------------------------------------------------------------
    # Learning
    # ------------------------------------------------------------------
    def handle_transition(self, t: Transition) -> None:
        s, a = t.from_state, t.action

        v = self.value_critic.predict_v(s)
        target = float(t.reward)
        if not t.terminated():
            target += self.gamma.value() * self.value_critic.predict_v(t.to_state)
        delta = target - v

        psi = self.policy.grad_log(s, a)
        adv = float((self._w * psi).sum())
        self._w.add_(psi, alpha=self.alpha.value() * (delta - adv))

        self.value_critic.handle_transition(t)

    def handle_terminal(self) -> None:
        self.alpha = self.alpha.step()
        self.gamma = self.gamma.step()
        self.value_critic.handle_terminal()

    def weights_mut(self) -> th.Tensor:
        return self._w

    def metrics(self) -> Dict[str, float]:
        return {"critic/alpha": self.alpha.value(), "critic/advantage_norm": float(self._w.norm())}
