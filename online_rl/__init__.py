"""
online_rl

Online actor-critic learning from streamed transitions.

Usage
-----
from online_rl import cacla_var, nac, SerialExperiment, run_experiment
"""

from __future__ import annotations

from .baselines.actor_critic import CACLAVar, NAC, cacla_var, nac
from .common.domains import GymDomain, Observation, Transition
from .common.parameters import Parameter, as_parameter, build_parameter
from .common.trainers import Episode, Evaluation, SerialExperiment, run_experiment
from .common.utils import BorrowError, Shared

__version__ = "0.1.0"

__all__ = [
    "CACLAVar",
    "cacla_var",
    "NAC",
    "nac",
    "Observation",
    "Transition",
    "GymDomain",
    "Parameter",
    "as_parameter",
    "build_parameter",
    "Episode",
    "SerialExperiment",
    "Evaluation",
    "run_experiment",
    "BorrowError",
    "Shared",
]
