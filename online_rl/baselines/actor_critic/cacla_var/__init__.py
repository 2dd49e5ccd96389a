"""
CACLA+Var
=========

- :func:`cacla_var`
    Builder wiring a :class:`~online_rl.common.critics.TD` critic, a
    :class:`~online_rl.common.policies.GaussianPolicy` target policy and a
    :class:`~online_rl.common.policies.PerturbedPolicy` behaviour policy.

- :class:`CACLAVar`
    The variance-adaptive continuous actor-critic learner.

Examples
--------
>>> from online_rl.baselines.actor_critic.cacla_var import cacla_var
>>> agent = cacla_var(n_features=4, alpha=0.01, beta=0.001, gamma=0.99)
"""

from __future__ import annotations

from .core import CACLAVar
from .cacla_var import cacla_var

__all__ = [
    "cacla_var",
    "CACLAVar",
]
