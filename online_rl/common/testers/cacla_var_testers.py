from __future__ import annotations

import math
from typing import Any, Callable, Dict, List, Tuple

from online_rl.common.testers.test_utils import (
    assert_allclose,
    assert_close,
    assert_eq,
    assert_raises,
    assert_true,
    run_tests,
    seed_all,
)
from online_rl.baselines import CACLAVar, cacla_var
from online_rl.common.critics import TD
from online_rl.common.domains import Observation, Transition
from online_rl.common.parameters import Parameter
from online_rl.common.policies import GaussianPolicy, PerturbedPolicy
from online_rl.common.utils.shared import BorrowError, Shared


# =============================================================================
# Stubs
# =============================================================================
class StubCritic:
    """Fixed state values keyed by state; records what it is told."""

    def __init__(self, values: Dict[Any, float]) -> None:
        self.values = dict(values)
        self.transitions: List[Transition] = []
        self.terminals = 0

    def predict_v(self, state: Any) -> float:
        return self.values.get(state, 0.0)

    def predict_qs(self, state: Any) -> Any:
        return [self.predict_v(state)]

    def predict_qsa(self, state: Any, action: Any) -> float:
        return self.predict_v(state)

    def handle_transition(self, t: Transition) -> None:
        self.transitions.append(t)

    def handle_terminal(self) -> None:
        self.terminals += 1


class StubPolicy:
    """Constant mean action; records every update direction."""

    def __init__(self, mean: float = 0.0, action: float = 0.0) -> None:
        self.mean = float(mean)
        self.action = float(action)
        self.updates: List[Tuple[Any, Any, float]] = []
        self.terminals = 0

    def mpa(self, state: Any) -> float:
        return self.mean

    def sample(self, state: Any) -> float:
        return self.action

    def update(self, state: Any, action: Any, direction: float) -> None:
        self.updates.append((state, action, float(direction)))

    def handle_terminal(self) -> None:
        self.terminals += 1


def _t(s: Any, a: Any, r: float, s2: Any, *, terminal: bool = False) -> Transition:
    to = Observation.terminal_(s2) if terminal else Observation.full(s2)
    return Transition(Observation.full(s), a, r, to)


def _agent(values: Dict[Any, float], *, alpha=0.1, beta=0.0, gamma=1.0, mean=0.5):
    critic, target, behaviour = StubCritic(values), StubPolicy(mean=mean), StubPolicy(action=7.0)
    agent = CACLAVar(critic, target, behaviour, alpha=alpha, beta=beta, gamma=gamma)
    return agent, critic, target, behaviour


# =============================================================================
# Tests: per-transition update
# =============================================================================
def test_update_direction_is_exact():
    agent, critic, target, _ = _agent({"s": 0.0, "s2": 1.0}, alpha=0.1, beta=0.0)
    agent.handle_transition(_t("s", 1.5, 1.0, "s2"))

    assert_eq(len(critic.transitions), 1)
    assert_eq(len(target.updates), 1)
    # td_error = 1 + 1 * V(s2) = 2, variance = 1 -> scaler = 2
    state, action, direction = target.updates[0]
    assert_eq((state, action), ("s", 1.5))
    assert_close(direction, 0.1 * 2 * (1.5 - 0.5))


def test_scaler_uses_updated_variance():
    agent, _, target, _ = _agent({"s": 0.0, "s2": 1.0}, alpha=0.2, beta=0.5, gamma=0.5)
    agent.handle_transition(_t("s", -1.0, 1.5, "s2"))

    td_error = 1.5 + 0.5 * 1.0
    variance = 1.0 + 0.5 * (td_error ** 2 - 1.0)
    assert_close(agent.variance, variance)

    scaler = math.ceil(td_error / math.sqrt(variance))
    assert_eq(agent.scaler(td_error), scaler)
    assert_close(target.updates[0][2], 0.2 * scaler * (-1.0 - 0.5))


def test_gate_is_strict():
    agent, critic, target, _ = _agent({"s": 1.0})
    agent.handle_transition(_t("s", 1.0, 1.0, "end", terminal=True))
    assert_eq(len(target.updates), 0, "td_error == v must not update the policy")
    assert_eq(len(critic.transitions), 1, "the critic learns regardless of the gate")

    agent.handle_transition(_t("s", 1.0, 0.5, "end", terminal=True))
    assert_eq(len(target.updates), 0)

    agent.handle_transition(_t("s", 1.0, 1.0 + 1e-9, "end", terminal=True))
    assert_eq(len(target.updates), 1)


def test_terminal_transition_uses_reward_alone():
    agent, critic, target, _ = _agent({"s": 0.0, "end": 100.0}, alpha=1.0)
    agent.handle_transition(_t("s", 1.5, 0.5, "end", terminal=True))

    assert_close(agent.variance, 1.0)
    # td_error = 0.5 -> scaler = ceil(0.5) = 1
    assert_close(target.updates[0][2], 1.0 * 1 * (1.5 - 0.5))
    assert_eq(len(critic.transitions), 1)


def test_variance_tracks_squared_td_error():
    agent, _, _, _ = _agent({}, beta=0.25)
    for r in (2.0, 2.0):
        agent.handle_transition(_t("s", 0.0, r, "end", terminal=True))
    # 1 -> 1 + 0.25 * 3 = 1.75 -> 1.75 + 0.25 * (4 - 1.75) = 2.3125
    assert_close(agent.variance, 2.3125)


def test_scaler_floors_variance():
    agent, _, _, _ = _agent({})
    agent.variance = 0.0
    assert_eq(agent.scaler(1e-4), math.ceil(1e-4 / math.sqrt(1e-8)))


# =============================================================================
# Tests: episode boundary
# =============================================================================
def test_terminal_resets_variance_and_steps_schedules():
    critic, target, behaviour = StubCritic({}), StubPolicy(), StubPolicy()
    agent = CACLAVar(
        critic,
        target,
        behaviour,
        alpha=Parameter.exponential(0.1, decay=0.5),
        beta=Parameter.exponential(0.2, decay=0.5),
        gamma=Parameter.linear(0.99, rate=0.01),
    )
    agent.handle_transition(_t("s", 0.0, 5.0, "end", terminal=True))
    assert_true(agent.variance != 1.0)

    agent.handle_terminal()
    assert_eq(agent.variance, 1.0)
    assert_close(agent.alpha.value(), 0.05)
    assert_close(agent.gamma.value(), 0.98)
    assert_close(agent.beta.value(), 0.2)
    assert_eq((critic.terminals, target.terminals, behaviour.terminals), (1, 1, 1))


def test_vacuous_episode():
    agent, critic, _, _ = _agent({})
    agent.handle_terminal()
    assert_eq(agent.variance, 1.0)
    assert_eq(critic.terminals, 1)
    assert_eq(agent.metrics()["policy_updates"], 0.0)


def test_shared_behaviour_handle_is_notified_once():
    critic, policy = StubCritic({}), Shared(StubPolicy())
    agent = CACLAVar(critic, policy, policy, alpha=0.1, beta=0.0, gamma=1.0)
    agent.handle_terminal()
    with policy.borrow() as p:
        assert_eq(p.terminals, 1)


def test_metrics_report_last_episode_updates():
    agent, _, _, _ = _agent({"s": 0.0})
    agent.handle_transition(_t("s", 1.0, 1.0, "end", terminal=True))
    agent.handle_transition(_t("s", 1.0, 1.0, "end", terminal=True))
    agent.handle_terminal()
    m = agent.metrics()
    assert_eq(m["policy_updates"], 2.0)
    for k in ("variance", "alpha", "beta", "gamma"):
        assert_true(k in m, k)


# =============================================================================
# Tests: delegation and sharing
# =============================================================================
def test_delegates_predictions_and_sampling():
    agent, _, _, _ = _agent({"s": 3.0})
    assert_eq(agent.predict_v("s"), 3.0)
    assert_eq(agent.predict_qsa("s", 0.0), 3.0)
    assert_eq(agent.sample_target("s"), 0.0)
    assert_eq(agent.sample_behaviour("s"), 7.0)


def test_shared_critic_is_visible_and_guarded():
    critic = Shared(StubCritic({"s": 0.0}))
    agent = CACLAVar(critic, StubPolicy(), StubPolicy(), alpha=0.1, beta=0.0, gamma=1.0)

    agent.handle_transition(_t("s", 0.0, 1.0, "end", terminal=True))
    with critic.borrow() as c:
        assert_eq(len(c.transitions), 1)
        assert_raises(BorrowError, lambda: agent.handle_transition(_t("s", 0.0, 1.0, "end", terminal=True)))
        assert_eq(agent.predict_v("s"), 0.0)


def test_borrowed_target_leaves_state_untouched():
    critic, target = StubCritic({"s": 0.0}), Shared(StubPolicy(mean=0.5))
    agent = CACLAVar(critic, target, StubPolicy(), alpha=0.1, beta=0.5, gamma=1.0)

    with target.borrow() as p:
        assert_raises(BorrowError, lambda: agent.handle_transition(_t("s", 1.5, 3.0, "end", terminal=True)))
        assert_raises(BorrowError, lambda: agent.handle_terminal())
        assert_eq(len(p.updates), 0)
        assert_eq(p.terminals, 0)

    assert_eq(len(critic.transitions), 0, "the critic must not learn from a rejected transition")
    assert_eq(critic.terminals, 0)
    assert_eq(agent.variance, 1.0)
    assert_close(agent.alpha.value(), 0.1)

    # released: the same transition now applies in full
    agent.handle_transition(_t("s", 1.5, 3.0, "end", terminal=True))
    assert_eq(len(critic.transitions), 1)
    assert_close(agent.variance, 1.0 + 0.5 * (9.0 - 1.0))
    with target.borrow() as p:
        assert_eq(len(p.updates), 1)


def test_critic_failure_propagates():
    class FailingCritic(StubCritic):
        def handle_transition(self, t: Transition) -> None:
            raise RuntimeError("critic exploded")

    agent = CACLAVar(FailingCritic({}), StubPolicy(), StubPolicy(), alpha=0.1, beta=0.0, gamma=1.0)
    assert_raises(RuntimeError, lambda: agent.handle_transition(_t("s", 0.0, 1.0, "s2")))
    assert_raises(ValueError, lambda: CACLAVar(StubCritic({}), StubPolicy(), StubPolicy(), 0.1, 0.0, 1.0, variance_eps=0.0))


# =============================================================================
# Tests: builder
# =============================================================================
def test_builder_wiring():
    agent = cacla_var(n_features=3, alpha={"name": "exp", "value": 0.05, "rate": 0.9}, noise_sigma=0.3)
    assert_true(isinstance(agent, CACLAVar))

    with agent.critic.borrow() as critic:
        assert_true(isinstance(critic, TD))
    with agent.target_policy.borrow() as target:
        assert_true(isinstance(target, GaussianPolicy))
    with agent.behaviour_policy.borrow() as behaviour:
        assert_true(isinstance(behaviour, PerturbedPolicy))
        with agent.target_policy.borrow() as target:
            assert_true(behaviour.base_policy is target)

    assert_close(agent.alpha.value(), 0.05)
    agent.handle_terminal()
    assert_close(agent.alpha.value(), 0.045)


def test_builder_without_noise_explores_with_target():
    agent = cacla_var(n_features=2, noise_kind=None)
    with agent.behaviour_policy.borrow() as behaviour:
        assert_true(isinstance(behaviour, GaussianPolicy))


def _count_target_terminals(agent: CACLAVar) -> List[int]:
    calls: List[int] = []
    with agent.target_policy.borrow() as target:
        target.handle_terminal = lambda: calls.append(1)
    return calls


def test_builder_notifies_target_once_per_episode():
    for noise_kind in ("gaussian", "ou", None):
        agent = cacla_var(n_features=2, noise_kind=noise_kind)
        calls = _count_target_terminals(agent)
        agent.handle_terminal()
        agent.handle_terminal()
        assert_eq(len(calls), 2, f"noise_kind={noise_kind!r}")


def test_builder_behaviour_only_reads_target():
    seed_all(0)
    agent = cacla_var(n_features=2, noise_sigma=0.1)
    with agent.target_policy.borrow() as target:
        before = target.weights()
        a = agent.sample_behaviour([1.0, 0.0])
        assert_true(isinstance(a, float))
        assert_allclose(target.weights(), before)
        assert_raises(BorrowError, lambda: agent.handle_transition(_t([1.0, 0.0], a, 5.0, [0.0, 1.0], terminal=True)))


def test_builder_learns_toward_good_actions():
    seed_all(0)
    agent = cacla_var(n_features=1, feature_fn=lambda s: [1.0], alpha=0.05, beta=0.01, gamma=0.0, critic_alpha=0.1)
    for _ in range(300):
        s = 0.0
        a = agent.sample_behaviour(s)
        agent.handle_transition(_t(s, a, 3.0 - abs(a - 2.0), s, terminal=True))
    with agent.target_policy.borrow() as target:
        assert_true(target.mpa(0.0) > 1.0, f"mean action {target.mpa(0.0)} did not move toward 2.0")


# =============================================================================
# Runner
# =============================================================================
TESTS: List[Tuple[str, Callable[[], Any]]] = [
    ("update_direction_is_exact", test_update_direction_is_exact),
    ("scaler_uses_updated_variance", test_scaler_uses_updated_variance),
    ("gate_is_strict", test_gate_is_strict),
    ("terminal_transition_uses_reward_alone", test_terminal_transition_uses_reward_alone),
    ("variance_tracks_squared_td_error", test_variance_tracks_squared_td_error),
    ("scaler_floors_variance", test_scaler_floors_variance),
    ("terminal_resets_variance_and_steps_schedules", test_terminal_resets_variance_and_steps_schedules),
    ("vacuous_episode", test_vacuous_episode),
    ("shared_behaviour_handle_is_notified_once", test_shared_behaviour_handle_is_notified_once),
    ("metrics_report_last_episode_updates", test_metrics_report_last_episode_updates),
    ("delegates_predictions_and_sampling", test_delegates_predictions_and_sampling),
    ("shared_critic_is_visible_and_guarded", test_shared_critic_is_visible_and_guarded),
    ("borrowed_target_leaves_state_untouched", test_borrowed_target_leaves_state_untouched),
    ("critic_failure_propagates", test_critic_failure_propagates),
    ("builder_wiring", test_builder_wiring),
    ("builder_without_noise_explores_with_target", test_builder_without_noise_explores_with_target),
    ("builder_notifies_target_once_per_episode", test_builder_notifies_target_once_per_episode),
    ("builder_behaviour_only_reads_target", test_builder_behaviour_only_reads_target),
    ("builder_learns_toward_good_actions", test_builder_learns_toward_good_actions),
]


def main(argv=None) -> int:
    return run_tests(TESTS, argv=argv, suite_name="cacla_var")


if __name__ == "__main__":
    raise SystemExit(main())
