from __future__ import annotations

from typing import Any, Union

import torch as th

from .base_policy import Policy, UnsupportedOperationError
from ..noises.base_noise import BaseActionNoise, BaseNoise
from ..utils.common_utils import DEFAULT_DTYPE, _to_tensor


class PerturbedPolicy(Policy):
    """
    Decorator adding exploration noise to a base policy's samples.

        a = base_policy.sample(s) + noise

    where the noise is ``noise.sample()`` for action-independent processes and
    ``noise.sample(a_base)`` for action-dependent ones.

    Parameters
    ----------
    base_policy : Policy
        Policy whose samples are perturbed. Not copied: updates to it are
        visible through the wrapper.
    noise : BaseNoise or BaseActionNoise
        Noise process. Reset at every episode boundary.

    Notes
    -----
    - The composed density has no closed form in general, so
      :meth:`probability` and :meth:`probabilities` raise
      :class:`UnsupportedOperationError`.
    - Scalar base actions (Python numbers) come back as Python floats;
      tensor base actions come back as tensors of the same shape.
    - :meth:`handle_terminal` resets the noise only. The base policy is
      notified by whoever owns it, so it sees one notification per episode.
    """

    def __init__(self, base_policy: Policy, noise: Union[BaseNoise, BaseActionNoise]) -> None:
        if not isinstance(noise, (BaseNoise, BaseActionNoise)):
            raise TypeError(f"noise must be a BaseNoise or BaseActionNoise, got {type(noise).__name__}")
        self.base_policy = base_policy
        self.noise = noise

    @property
    def n_actions(self) -> int:
        return self.base_policy.n_actions

    def sample(self, state: Any) -> Any:
        base = self.base_policy.sample(state)
        base_t = _to_tensor(base, dtype=DEFAULT_DTYPE)

        if isinstance(self.noise, BaseActionNoise):
            eps = self.noise.sample(base_t)
        else:
            eps = self.noise.sample()

        if th.is_tensor(base):
            return base_t + eps.reshape(base_t.shape)
        return float(base_t.reshape(-1)[0] + eps.reshape(-1)[0])

    def probability(self, state: Any, action: Any) -> float:
        raise UnsupportedOperationError("PerturbedPolicy has no closed-form probability")

    def probabilities(self, state: Any) -> th.Tensor:
        raise UnsupportedOperationError("PerturbedPolicy has no closed-form probabilities")

    def handle_terminal(self) -> None:
        self.noise.reset()

    def __repr__(self) -> str:
        return f"PerturbedPolicy({self.base_policy!r}, noise={type(self.noise).__name__})"
