"""
Utils
=====

Small helpers shared across the package:

- ``common_utils``  : tensor conversion, feature evaluation, scalar coercion
- ``noise_utils``   : size/kind normalization used by factories
- ``logger_utils``  : run directories and file helpers for metric writers
- ``train_utils``   : progress bars and Gym/Gymnasium step normalization
- ``shared``        : :class:`Shared` ownership handle with runtime borrow checks
"""

from __future__ import annotations

from .shared import BorrowError, Shared

__all__ = [
    "BorrowError",
    "Shared",
]
