"""
Parameters
==========

Episode-indexed hyperparameter schedules.

- :class:`Parameter`       : immutable scalar schedule (``step()`` returns a new value)
- :func:`as_parameter`     : coerce numbers / mappings into a Parameter
- :func:`build_parameter`  : name-based factory
"""

from __future__ import annotations

from .parameter import Parameter, ParameterLike, as_parameter
from .parameter_builder import build_parameter

__all__ = [
    "Parameter",
    "ParameterLike",
    "as_parameter",
    "build_parameter",
]
