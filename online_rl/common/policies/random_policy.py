from __future__ import annotations

from typing import Any

import torch as th

from .base_policy import FinitePolicy
from ..utils.common_utils import DEFAULT_DTYPE, _require_positive_int


class RandomPolicy(FinitePolicy):
    """
    Uniform policy over `n_actions` discrete actions; ignores the state.

    Examples
    --------
    >>> p = RandomPolicy(4)
    >>> p.probabilities(None)
    tensor([0.2500, 0.2500, 0.2500, 0.2500], dtype=torch.float64)
    """

    def __init__(self, n_actions: int) -> None:
        self._n_actions = _require_positive_int(n_actions, name="n_actions")

    @property
    def n_actions(self) -> int:
        return self._n_actions

    def sample(self, state: Any) -> int:
        return int(th.randint(self._n_actions, (1,)).item())

    def probability(self, state: Any, action: Any) -> float:
        self._check_action(action)
        return 1.0 / self._n_actions

    def probabilities(self, state: Any) -> th.Tensor:
        return th.full((self._n_actions,), 1.0 / self._n_actions, dtype=DEFAULT_DTYPE)

    def __repr__(self) -> str:
        return f"RandomPolicy(n_actions={self._n_actions})"
