from __future__ import annotations

from typing import Any, Callable, Dict, Optional

import numpy as np

from .transition import Observation, Transition
from ..utils.train_utils import _env_reset, _process_obs, _unpack_step


class GymDomain:
    """
    Domain adapter over a Gym/Gymnasium-style environment.

    Exposes the two calls the episode driver relies on:

    - ``emit() -> Observation``        : the current observation
    - ``step(action) -> Transition``   : advance one step

    Parameters
    ----------
    env : Any
        Environment exposing ``reset(**kwargs)`` and ``step(action)``.
    reset_kwargs : dict, optional
        Forwarded to ``env.reset`` (e.g. ``{"seed": 0}``).
    action_fn : callable, optional
        Maps an agent action to the env's action format (e.g. a float to a
        ``(1,)`` array for Box spaces). Identity by default.
    obs_dtype : Any, default=np.float64
        Dtype used when converting array-like observations.

    Notes
    -----
    - The env is reset on construction; one `GymDomain` covers one episode,
      matching the ``domain_factory`` contract of the experiment driver.
    - Truncation is treated as an episode boundary: the resulting observation
      is terminal.
    - Stepping after a terminal observation raises RuntimeError.
    """

    def __init__(
        self,
        env: Any,
        *,
        reset_kwargs: Optional[Dict[str, Any]] = None,
        action_fn: Optional[Callable[[Any], Any]] = None,
        obs_dtype: Any = np.float64,
    ) -> None:
        self.env = env
        self.action_fn = action_fn
        self.obs_dtype = obs_dtype

        obs = _env_reset(env, **dict(reset_kwargs or {}))
        self._obs = Observation.full(_process_obs(obs, obs_dtype=obs_dtype))
        self.last_info: Dict[str, Any] = {}

    def emit(self) -> Observation:
        return self._obs

    def step(self, action: Any) -> Transition:
        if self._obs.is_terminal:
            raise RuntimeError("step() called on a terminated episode; build a new domain.")

        env_action = action if self.action_fn is None else self.action_fn(action)
        next_obs, reward, done, info = _unpack_step(self.env.step(env_action), obs_dtype=self.obs_dtype)
        self.last_info = info

        to = Observation.terminal_(next_obs) if done else Observation.full(next_obs)
        t = Transition(from_=self._obs, action=action, reward=float(reward), to=to)
        self._obs = to
        return t
