from __future__ import annotations

import math
from contextlib import ExitStack
from typing import Any, Dict

import torch as th

from online_rl.common.algorithms.base_algorithm import (
    ActionValuePredictor,
    Controller,
    OnlineLearner,
    ValuePredictor,
)
from online_rl.common.domains.transition import Transition
from online_rl.common.parameters.parameter import ParameterLike, as_parameter
from online_rl.common.utils.common_utils import _action_to_float
from online_rl.common.utils.shared import Shared


class CACLAVar(OnlineLearner, ValuePredictor, ActionValuePredictor, Controller):
    """
    Variance-adaptive continuous actor-critic learning automaton (CACLA+Var).

    Summary
    -------
    A one-sided actor update: the target policy's mean is pulled toward the
    action actually taken only when the bootstrapped return of that step beats
    the critic's prior estimate. The size of the pull is a whole number of
    step multiples given by how many running standard deviations the return
    spans.

    Per transition ``t = (s, a, r, s')``:

    1. ``v = critic.predict_v(s)`` (before the critic learns from `t`)
    2. ``td_error = r`` if `s'` is terminal, else ``r + gamma * critic.predict_v(s')``
    3. ``critic.handle_transition(t)``
    4. ``variance += beta * (td_error**2 - variance)``
    5. if ``td_error > v``:

           scaler    = ceil(td_error / sqrt(max(variance, variance_eps)))
           direction = alpha * scaler * (a - target_policy.mpa(s))
           target_policy.update(s, a, direction)

    `td_error` is the bootstrapped return, not ``return - v``; the gate in
    step 5 compares it against `v` directly.

    Parameters
    ----------
    critic : ValuePredictor & OnlineLearner, or Shared thereof
        State-value critic.
    target_policy : ContinuousPolicy, or Shared thereof
        Policy being learned. Must expose ``mpa`` and ``update``.
    behaviour_policy : Policy, or Shared thereof
        Policy used to act while learning (typically a perturbed view of the
        target policy).
    alpha : ParameterLike
        Actor step size. Stepped at episode boundaries.
    beta : ParameterLike
        Variance EMA rate. Not stepped.
    gamma : ParameterLike
        Discount factor. Stepped at episode boundaries.
    variance_eps : float, default=1e-8
        Lower bound on the variance inside the scaler.

    Notes
    -----
    - Collaborators are held as :class:`Shared` handles and accessed through
      ``borrow`` / ``borrow_mut`` for the duration of each call. An external
      holder keeping a borrow open across a call raises ``BorrowError``.
    - ``handle_transition`` and ``handle_terminal`` acquire every borrow they
      need before touching any state, so a ``BorrowError`` leaves the critic,
      the policies, ``variance`` and the schedules unchanged.
    - A behaviour policy passed as the *same* handle as the target policy is
      notified once per episode, not twice.
    - Failures raised by the critic or the policies propagate unchanged.
    - ``variance`` is 1.0 at construction and after every ``handle_terminal``.
    """

    def __init__(
        self,
        critic: Any,
        target_policy: Any,
        behaviour_policy: Any,
        alpha: ParameterLike,
        beta: ParameterLike,
        gamma: ParameterLike,
        *,
        variance_eps: float = 1e-8,
    ) -> None:
        if not (float(variance_eps) > 0.0):
            raise ValueError(f"variance_eps must be > 0, got {variance_eps}")

        self.critic: Shared[Any] = Shared.of(critic)
        self.target_policy: Shared[Any] = Shared.of(target_policy)
        self.behaviour_policy: Shared[Any] = Shared.of(behaviour_policy)

        self.alpha = as_parameter(alpha)
        self.beta = as_parameter(beta)
        self.gamma = as_parameter(gamma)
        self.variance_eps = float(variance_eps)

        self.variance = 1.0
        self._n_updates = 0
        self._last_episode_updates = 0

    # ------------------------------------------------------------------
    # Learning
    # ------------------------------------------------------------------
    def handle_transition(self, t: Transition) -> None:
        s = t.from_state

        with self.critic.borrow_mut() as critic, self.target_policy.borrow_mut() as policy:
            v = float(critic.predict_v(s))
            if t.terminated():
                td_error = float(t.reward)
            else:
                td_error = float(t.reward) + self.gamma.value() * float(critic.predict_v(t.to_state))
            critic.handle_transition(t)

            self.variance += self.beta.value() * (td_error * td_error - self.variance)

            if td_error > v:
                mpa = _action_to_float(policy.mpa(s))
                scaler = self.scaler(td_error)
                direction = self.alpha.value() * scaler * (_action_to_float(t.action) - mpa)
                policy.update(s, t.action, direction)
                self._n_updates += 1

    def scaler(self, td_error: float) -> int:
        """Whole-step confidence multiplier ``ceil(td_error / sqrt(variance))``."""
        return math.ceil(td_error / math.sqrt(max(self.variance, self.variance_eps)))

    def handle_terminal(self) -> None:
        with ExitStack() as stack:
            critic = stack.enter_context(self.critic.borrow_mut())
            policies = [stack.enter_context(self.target_policy.borrow_mut())]
            if self.behaviour_policy is not self.target_policy:
                policies.append(stack.enter_context(self.behaviour_policy.borrow_mut()))

            critic.handle_terminal()
            for policy in policies:
                policy.handle_terminal()

        self.alpha = self.alpha.step()
        self.gamma = self.gamma.step()
        self.variance = 1.0
        self._last_episode_updates = self._n_updates
        self._n_updates = 0

    # ------------------------------------------------------------------
    # Predictions
    # ------------------------------------------------------------------
    def predict_v(self, state: Any) -> float:
        with self.critic.borrow() as critic:
            return critic.predict_v(state)

    def predict_qs(self, state: Any) -> th.Tensor:
        with self.critic.borrow() as critic:
            return critic.predict_qs(state)

    def predict_qsa(self, state: Any, action: Any) -> float:
        with self.critic.borrow() as critic:
            return critic.predict_qsa(state, action)

    # ------------------------------------------------------------------
    # Control
    # ------------------------------------------------------------------
    def sample_target(self, state: Any) -> Any:
        with self.target_policy.borrow_mut() as policy:
            return policy.sample(state)

    def sample_behaviour(self, state: Any) -> Any:
        with self.behaviour_policy.borrow_mut() as policy:
            return policy.sample(state)

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------
    def metrics(self) -> Dict[str, float]:
        return {
            "variance": float(self.variance),
            "alpha": self.alpha.value(),
            "beta": self.beta.value(),
            "gamma": self.gamma.value(),
            "policy_updates": float(self._last_episode_updates),
        }

    def __repr__(self) -> str:
        return (
            f"CACLAVar(alpha={self.alpha.value():g}, beta={self.beta.value():g}, "
            f"gamma={self.gamma.value():g}, variance={self.variance:g})"
        )
