"""
Policies
========

Action selection with probabilities and, for parameterised variants,
gradients and in-place updates.

Interfaces
    - :class:`Policy`, :class:`FinitePolicy`, :class:`DifferentiablePolicy`
    - :class:`ParameterisedPolicy`, :class:`ContinuousPolicy`

Concrete policies
    - :class:`RandomPolicy`    : uniform over a finite action set
    - :class:`PerturbedPolicy` : base policy + exploration noise
    - :class:`GaussianPolicy`  : linear-Gaussian, scalar continuous action
    - :class:`SoftmaxPolicy`   : Gibbs policy over a finite action set
"""

from __future__ import annotations

from .base_policy import (
    ContinuousPolicy,
    DifferentiablePolicy,
    FinitePolicy,
    ParameterisedPolicy,
    Policy,
    UnsupportedOperationError,
)
from .random_policy import RandomPolicy
from .perturbed_policy import PerturbedPolicy
from .gaussian_policy import GaussianPolicy
from .softmax_policy import SoftmaxPolicy

__all__ = [
    "UnsupportedOperationError",
    "Policy",
    "FinitePolicy",
    "DifferentiablePolicy",
    "ParameterisedPolicy",
    "ContinuousPolicy",
    "RandomPolicy",
    "PerturbedPolicy",
    "GaussianPolicy",
    "SoftmaxPolicy",
]
