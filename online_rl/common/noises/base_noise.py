from __future__ import annotations

from abc import ABC, abstractmethod

import torch as th


class NoiseProcess(ABC):
    """
    Base interface for exploration-noise processes.

    Noise processes perturb the actions of a deterministic or mean policy (see
    :class:`~online_rl.common.policies.PerturbedPolicy`). The shared lifecycle
    hook is :meth:`reset`, called at episode boundaries.

    Notes
    -----
    - Stateless noise (i.i.d. draws) keeps `reset()` as a no-op.
    - Stateful noise (Ornstein-Uhlenbeck) overrides `reset()` to reinitialize
      its internal state.
    """

    def reset(self) -> None:
        return None


class BaseNoise(NoiseProcess):
    """
    Action-independent noise process.

    ``a_noisy = a + noise.sample()``

    Implementations return a CPU tensor of a fixed shape (``(1,)`` for scalar
    actions).
    """

    @abstractmethod
    def sample(self) -> th.Tensor:
        raise NotImplementedError


class BaseActionNoise(NoiseProcess):
    """
    Action-dependent noise process.

    ``a_noisy = a + noise.sample(a)``

    Implementations return a tensor with the shape and dtype of `action`.
    """

    @abstractmethod
    def sample(self, action: th.Tensor) -> th.Tensor:
        raise NotImplementedError
