from __future__ import annotations

from typing import Optional

from .core import NAC
from online_rl.common.critics.compatible_td import CompatibleTD
from online_rl.common.critics.td import TD
from online_rl.common.parameters.parameter import ParameterLike
from online_rl.common.policies.softmax_policy import SoftmaxPolicy
from online_rl.common.utils.common_utils import FeatureFn


def nac(
    *,
    n_features: int,
    n_actions: int,
    feature_fn: Optional[FeatureFn] = None,
    alpha: ParameterLike = 0.01,
    critic_alpha: ParameterLike = 0.05,
    value_alpha: ParameterLike = 0.1,
    gamma: ParameterLike = 0.99,
    tau: float = 1.0,
) -> NAC:
    """
    Build a natural actor-critic agent over a finite action set.

    Wires together:

    1) :class:`SoftmaxPolicy` : Gibbs policy, weights ``(n_features, n_actions)``
    2) :class:`TD`            : state-value baseline (`value_alpha`, `gamma`)
    3) :class:`CompatibleTD`  : advantage critic over the policy's score
       function (`critic_alpha`, `gamma`); weights match the policy's shape
    4) :class:`NAC`           : the learner (`alpha`)

    Parameters
    ----------
    n_features : int
        Length of the feature vector.
    n_actions : int
        Number of discrete actions.
    feature_fn : callable, optional
        State -> features, shared by policy and value baseline.
    alpha, critic_alpha, value_alpha, gamma : ParameterLike
        Schedules (numbers are fixed).
    tau : float
        Softmax temperature.

    Returns
    -------
    algo : NAC
    """
    policy = SoftmaxPolicy(n_features, n_actions, tau=float(tau), feature_fn=feature_fn)
    baseline = TD(n_features, alpha=value_alpha, gamma=gamma, feature_fn=feature_fn)
    critic = CompatibleTD(policy, baseline, alpha=critic_alpha, gamma=gamma)
    return NAC(critic, policy, alpha=alpha)
