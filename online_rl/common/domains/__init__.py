"""
Domains
=======

Transition records and a domain adapter.

- :class:`Observation` : state tagged full/terminal
- :class:`Transition`  : ``(from_, action, reward, to)`` record
- :class:`GymDomain`   : adapts a Gym/Gymnasium env to ``emit()`` / ``step(action)``
"""

from __future__ import annotations

from .transition import Observation, Transition
from .gym_domain import GymDomain

__all__ = [
    "Observation",
    "Transition",
    "GymDomain",
]
