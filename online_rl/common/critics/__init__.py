"""
Critics
=======

Reference critics consumed by the actor-critic learners.

- :class:`TD`           : linear TD(0) state-value critic
- :class:`CompatibleTD` : advantage critic over the policy's score function
"""

from __future__ import annotations

from .td import TD
from .compatible_td import CompatibleTD

__all__ = ["TD", "CompatibleTD"]
