from __future__ import annotations

import itertools
import json
import os
import shutil
from typing import Any, Callable, List, Tuple

from online_rl.common.testers.test_utils import (
    assert_close,
    assert_eq,
    assert_raises,
    assert_true,
    mk_tmp_dir,
    run_tests,
    seed_all,
)
from online_rl.baselines import cacla_var
from online_rl.common.domains import GymDomain, Observation, Transition
from online_rl.common.loggers import build_logger
from online_rl.common.trainers import Episode, Evaluation, SerialExperiment, run_experiment


# =============================================================================
# Helpers
# =============================================================================
class ChainDomain:
    """Deterministic chain: state k -> k + 1, reward 1, terminal at `length`."""

    def __init__(self, length: int) -> None:
        self.length = length
        self._obs = Observation.terminal_(0) if length == 0 else Observation.full(0)

    def emit(self) -> Observation:
        return self._obs

    def step(self, action: Any) -> Transition:
        k = self._obs.state + 1
        to = Observation.terminal_(k) if k >= self.length else Observation.full(k)
        t = Transition(self._obs, action, 1.0, to)
        self._obs = to
        return t


class RecordingAgent:
    def __init__(self) -> None:
        self.transitions: List[Transition] = []
        self.terminals = 0
        self.behaviour_calls = 0
        self.target_calls = 0

    def sample_behaviour(self, state: Any) -> float:
        self.behaviour_calls += 1
        return 0.5

    def sample_target(self, state: Any) -> float:
        self.target_calls += 1
        return -0.5

    def handle_transition(self, t: Transition) -> None:
        self.transitions.append(t)

    def handle_terminal(self) -> None:
        self.terminals += 1

    def metrics(self):
        return {"transitions": len(self.transitions), "label": "not a number"}


class CountdownEnv:
    """Gymnasium-style env: terminates after `n` steps, truncates never."""

    def __init__(self, n: int) -> None:
        self.n = n
        self.k = 0
        self.actions: List[Any] = []

    def reset(self, **kwargs: Any):
        self.k = 0
        return [0.0, 1.0], {}

    def step(self, action: Any):
        self.actions.append(action)
        self.k += 1
        return [float(self.k), 1.0], -1.0, self.k >= self.n, False, {"k": self.k}


# =============================================================================
# Tests: SerialExperiment
# =============================================================================
def test_serial_experiment_runs_until_terminal():
    agent = RecordingAgent()
    exp = SerialExperiment(agent, lambda: ChainDomain(3), step_limit=10)
    ep = next(exp)

    assert_eq((ep.n_steps, ep.total_reward), (3, 3.0))
    assert_eq(len(agent.transitions), 3)
    assert_true(agent.transitions[-1].terminated())
    assert_eq(agent.terminals, 1)
    assert_eq(exp.n_episodes, 1)


def test_serial_experiment_respects_step_limit():
    agent = RecordingAgent()
    exp = SerialExperiment(agent, lambda: ChainDomain(100), step_limit=4)
    episodes = list(itertools.islice(exp, 2))

    assert_eq([e.n_steps for e in episodes], [4, 4])
    assert_eq(agent.terminals, 2, "handle_terminal once per episode, also at the step limit")
    assert_true(not agent.transitions[-1].terminated())


def test_serial_experiment_terminal_start_is_vacuous():
    agent = RecordingAgent()
    ep = next(SerialExperiment(agent, lambda: ChainDomain(0), step_limit=5))
    assert_eq(ep.n_steps, 0)
    assert_eq(agent.behaviour_calls, 0)
    assert_eq(agent.terminals, 1)


def test_serial_experiment_validation():
    assert_raises(ValueError, lambda: SerialExperiment(RecordingAgent(), lambda: ChainDomain(1), step_limit=0))


# =============================================================================
# Tests: Evaluation
# =============================================================================
def test_evaluation_never_learns():
    agent = RecordingAgent()
    ev = Evaluation(agent, lambda: ChainDomain(5))
    ep = next(ev)

    assert_eq(ep.n_steps, 5)
    assert_eq(agent.target_calls, 5)
    assert_eq(agent.behaviour_calls, 0)
    assert_eq(agent.transitions, [])
    assert_eq(agent.terminals, 0)


def test_evaluation_step_limit():
    ep = next(Evaluation(RecordingAgent(), lambda: ChainDomain(50), step_limit=7))
    assert_eq(ep.n_steps, 7)


# =============================================================================
# Tests: run_experiment
# =============================================================================
def test_run_experiment_logs_one_row_per_episode():
    d = mk_tmp_dir()
    try:
        agent = RecordingAgent()
        with build_logger(log_dir=d, exp_name="chain", run_id="r", console_every=0) as logger:
            episodes = run_experiment(
                SerialExperiment(agent, lambda: ChainDomain(2), step_limit=10),
                3,
                logger=logger,
                prefix="train",
            )

        assert_eq(len(episodes), 3)
        assert_true(all(isinstance(e, Episode) for e in episodes))

        with open(os.path.join(d, "chain", "r", "metrics.jsonl"), "r", encoding="utf-8") as f:
            rows = [json.loads(ln) for ln in f if ln.strip()]
        assert_eq([r["step"] for r in rows], [0.0, 1.0, 2.0])
        assert_eq(rows[0]["train/return"], 2.0)
        assert_eq(rows[0]["train/steps"], 2.0)
        assert_eq(rows[2]["train/transitions"], 6.0)
        assert_true("train/label" not in rows[0], "non-scalar metrics must be filtered")
    finally:
        shutil.rmtree(d, ignore_errors=True)


def test_run_experiment_without_logger():
    episodes = run_experiment(Evaluation(RecordingAgent(), lambda: ChainDomain(1)), 2, show_progress=False)
    assert_eq([e.as_dict() for e in episodes], [{"return": 1.0, "steps": 1.0}] * 2)
    assert_raises(ValueError, lambda: run_experiment(Evaluation(RecordingAgent(), lambda: ChainDomain(1)), 0))


# =============================================================================
# Tests: GymDomain + a real agent
# =============================================================================
def test_gym_domain_adapts_gymnasium_api():
    env = CountdownEnv(2)
    dom = GymDomain(env, action_fn=lambda a: [a])
    assert_true(dom.emit().is_full)

    t1 = dom.step(0.25)
    assert_eq(env.actions, [[0.25]])
    assert_eq(t1.action, 0.25)
    assert_close(t1.reward, -1.0)
    assert_true(not t1.terminated())

    t2 = dom.step(0.5)
    assert_true(t2.terminated())
    assert_eq(dom.last_info["k"], 2)
    assert_raises(RuntimeError, lambda: dom.step(0.0))


def test_cacla_var_trains_on_gym_domain():
    seed_all(0)
    agent = cacla_var(n_features=2, alpha=0.01, gamma=0.9, noise_sigma=0.2)
    env = CountdownEnv(5)
    exp = SerialExperiment(agent, lambda: GymDomain(env), step_limit=20)

    episodes = run_experiment(exp, 3)
    assert_eq([e.n_steps for e in episodes], [5, 5, 5])
    assert_eq(agent.variance, 1.0)
    assert_true(all(isinstance(a, float) for a in env.actions))


# =============================================================================
# Runner
# =============================================================================
TESTS: List[Tuple[str, Callable[[], Any]]] = [
    ("serial_experiment_runs_until_terminal", test_serial_experiment_runs_until_terminal),
    ("serial_experiment_respects_step_limit", test_serial_experiment_respects_step_limit),
    ("serial_experiment_terminal_start_is_vacuous", test_serial_experiment_terminal_start_is_vacuous),
    ("serial_experiment_validation", test_serial_experiment_validation),
    ("evaluation_never_learns", test_evaluation_never_learns),
    ("evaluation_step_limit", test_evaluation_step_limit),
    ("run_experiment_logs_one_row_per_episode", test_run_experiment_logs_one_row_per_episode),
    ("run_experiment_without_logger", test_run_experiment_without_logger),
    ("gym_domain_adapts_gymnasium_api", test_gym_domain_adapts_gymnasium_api),
    ("cacla_var_trains_on_gym_domain", test_cacla_var_trains_on_gym_domain),
]


def main(argv=None) -> int:
    return run_tests(TESTS, argv=argv, suite_name="experiment")


if __name__ == "__main__":
    raise SystemExit(main())
