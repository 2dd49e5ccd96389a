"""
NAC
===

- :func:`nac` : builder wiring a softmax policy and a compatible critic
- :class:`NAC` : natural actor-critic learner

Examples
--------
>>> from online_rl.baselines.actor_critic.nac import nac
>>> agent = nac(n_features=4, n_actions=2)
"""

from __future__ import annotations

from .core import NAC
from .nac import nac

__all__ = [
    "nac",
    "NAC",
]
