from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional

from ..algorithms.base_algorithm import Algorithm
from ..utils.common_utils import _require_positive_int
from ..utils.train_utils import _make_pbar, _maybe_call


@dataclass
class Episode:
    """Summary of one episode: number of steps taken and undiscounted return."""

    n_steps: int = 0
    total_reward: float = 0.0

    def as_dict(self) -> Dict[str, float]:
        return {"return": float(self.total_reward), "steps": float(self.n_steps)}


DomainFactory = Callable[[], Any]


class SerialExperiment:
    """
    Training episodes, one per ``next()``.

    Each episode:

    1. builds a fresh domain with ``domain_factory()``
    2. repeats up to `step_limit` times: act with
       ``agent.sample_behaviour(state)``, step the domain, feed the transition
       to ``agent.handle_transition``; stop on a terminal observation
    3. calls ``agent.handle_terminal()`` exactly once

    Parameters
    ----------
    agent : Controller & OnlineLearner
        Learner to train.
    domain_factory : callable
        Returns a new domain exposing ``emit() -> Observation`` and
        ``step(action) -> Transition``.
    step_limit : int
        Maximum number of steps per episode (> 0).

    Notes
    -----
    The iterator never raises ``StopIteration``; bound it with
    ``itertools.islice`` or :func:`run_experiment`.
    """

    def __init__(self, agent: Any, domain_factory: DomainFactory, step_limit: int) -> None:
        self.agent = agent
        self.domain_factory = domain_factory
        self.step_limit = _require_positive_int(step_limit, name="step_limit")
        self.n_episodes = 0

    def __iter__(self) -> Iterator[Episode]:
        return self

    def __next__(self) -> Episode:
        domain = self.domain_factory()
        obs = domain.emit()
        ep = Episode()

        for _ in range(self.step_limit):
            if obs.is_terminal:
                break
            t = domain.step(self.agent.sample_behaviour(obs.state))

            ep.n_steps += 1
            ep.total_reward += float(t.reward)

            self.agent.handle_transition(t)
            obs = t.to

        self.agent.handle_terminal()
        self.n_episodes += 1
        return ep


class Evaluation:
    """
    Evaluation episodes, one per ``next()``.

    Acts with ``agent.sample_target`` until the domain reports a terminal
    observation. No learning hook (``handle_transition`` / ``handle_terminal``)
    is ever called.

    Parameters
    ----------
    agent : Controller
    domain_factory : callable
    step_limit : int, optional
        Safety bound for domains without guaranteed termination. Unbounded by
        default.
    """

    def __init__(self, agent: Any, domain_factory: DomainFactory, step_limit: Optional[int] = None) -> None:
        self.agent = agent
        self.domain_factory = domain_factory
        self.step_limit = None if step_limit is None else _require_positive_int(step_limit, name="step_limit")
        self.n_episodes = 0

    def __iter__(self) -> Iterator[Episode]:
        return self

    def __next__(self) -> Episode:
        domain = self.domain_factory()
        obs = domain.emit()
        ep = Episode()

        while not obs.is_terminal:
            if self.step_limit is not None and ep.n_steps >= self.step_limit:
                break
            t = domain.step(self.agent.sample_target(obs.state))

            ep.n_steps += 1
            ep.total_reward += float(t.reward)
            obs = t.to

        self.n_episodes += 1
        return ep


def run_experiment(
    experiment: Iterator[Episode],
    n_episodes: int,
    *,
    logger: Optional[Any] = None,
    prefix: str = "train",
    show_progress: bool = False,
) -> List[Episode]:
    """
    Drain `n_episodes` episodes from an experiment iterator.

    Parameters
    ----------
    experiment : Iterator[Episode]
        :class:`SerialExperiment` or :class:`Evaluation` (or any episode
        iterator).
    n_episodes : int
        Number of episodes to run (> 0).
    logger : Logger, optional
        When given, one row per episode is logged under `prefix`: ``return``,
        ``steps`` and the agent's scalar ``metrics()``.
    prefix : str, default="train"
        Key prefix for logged rows.
    show_progress : bool, default=False
        Display a tqdm progress bar with the last return.

    Returns
    -------
    episodes : List[Episode]
    """
    n = _require_positive_int(n_episodes, name="n_episodes")
    agent = getattr(experiment, "agent", None)

    episodes: List[Episode] = []
    pbar = _make_pbar(enable=show_progress, total=n, desc=prefix, unit="ep")
    try:
        for i in range(n):
            ep = next(experiment)
            episodes.append(ep)

            if logger is not None:
                row: Dict[str, float] = ep.as_dict()
                row.update(Algorithm._filter_scalar_metrics(_maybe_call(agent, "metrics")))
                logger.log(row, step=i, prefix=prefix)

            pbar.set_postfix(ret=f"{ep.total_reward:.3g}", steps=ep.n_steps)
            pbar.update(1)
    finally:
        pbar.close()

    return episodes
