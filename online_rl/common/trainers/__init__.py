"""
Trainers
========

Serial episode drivers.

- :class:`Episode`          : ``{n_steps, total_reward}``
- :class:`SerialExperiment` : training episodes (learning hooks called)
- :class:`Evaluation`       : evaluation episodes (no learning)
- :func:`run_experiment`    : drain N episodes with optional progress bar and logging
"""

from __future__ import annotations

from .experiment import Episode, Evaluation, SerialExperiment, run_experiment

__all__ = [
    "Episode",
    "SerialExperiment",
    "Evaluation",
    "run_experiment",
]
