from __future__ import annotations

from .cacla_var import CACLAVar, cacla_var
from .nac import NAC, nac

__all__ = [
    "CACLAVar",
    "cacla_var",
    "NAC",
    "nac",
]
