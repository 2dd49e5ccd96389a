"""
Noises
======

Exploration-noise processes used to perturb a policy's actions.

- **Action-independent** (``a + noise.sample()``): :class:`GaussianNoise`,
  :class:`OrnsteinUhlenbeckNoise`, :class:`UniformNoise`
- **Action-dependent** (``a + noise.sample(a)``): :class:`GaussianActionNoise`,
  :class:`MultiplicativeActionNoise`, :class:`ClippedGaussianActionNoise`

:func:`build_noise` constructs either kind from a string identifier.

Examples
--------
>>> from online_rl.common.noises import build_noise
>>> ou = build_noise(kind="ou", noise_sigma=0.3)
>>> ou.reset()
>>> n = ou.sample()
"""

from __future__ import annotations

from .base_noise import BaseActionNoise, BaseNoise, NoiseProcess
from .noises import GaussianNoise, OrnsteinUhlenbeckNoise, UniformNoise
from .action_noises import (
    ClippedGaussianActionNoise,
    GaussianActionNoise,
    MultiplicativeActionNoise,
)
from .noise_builder import build_noise


__all__ = [
    "NoiseProcess",
    "BaseNoise",
    "BaseActionNoise",
    "GaussianNoise",
    "OrnsteinUhlenbeckNoise",
    "UniformNoise",
    "GaussianActionNoise",
    "MultiplicativeActionNoise",
    "ClippedGaussianActionNoise",
    "build_noise",
]
