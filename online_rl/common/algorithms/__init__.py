from __future__ import annotations

from .base_algorithm import (
    ActionValuePredictor,
    Algorithm,
    Controller,
    OnlineLearner,
    Parameterised,
    UnsupportedOperationError,
    ValuePredictor,
)

__all__ = [
    "Algorithm",
    "OnlineLearner",
    "ValuePredictor",
    "ActionValuePredictor",
    "Controller",
    "Parameterised",
    "UnsupportedOperationError",
]
