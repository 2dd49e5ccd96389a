from __future__ import annotations

from .actor_critic import CACLAVar, NAC, cacla_var, nac

__all__ = [
    "CACLAVar",
    "cacla_var",
    "NAC",
    "nac",
]
