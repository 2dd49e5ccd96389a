from __future__ import annotations

from typing import Any, Callable, List, Tuple

import torch as th

from online_rl.common.testers.test_utils import (
    assert_allclose,
    assert_close,
    assert_eq,
    assert_raises,
    assert_true,
    run_tests,
    seed_all,
)
from online_rl.baselines import NAC, nac
from online_rl.common.critics import CompatibleTD
from online_rl.common.domains import Observation, Transition
from online_rl.common.parameters import Parameter
from online_rl.common.policies import GaussianPolicy, SoftmaxPolicy


# =============================================================================
# Stubs
# =============================================================================
class StubCritic:
    """Critic with externally set weights; counts how it is driven."""

    def __init__(self, weights: Any) -> None:
        self.w = th.as_tensor(weights, dtype=th.float64)
        self.transitions = 0
        self.sequences: List[int] = []
        self.terminals = 0

    def weights(self) -> th.Tensor:
        return self.w.clone()

    def handle_transition(self, t: Transition) -> None:
        self.transitions += 1

    def handle_sequence(self, seq: List[Transition]) -> None:
        self.sequences.append(len(seq))

    def handle_terminal(self) -> None:
        self.terminals += 1

    def predict_v(self, state: Any) -> float:
        return 4.0

    def predict_qs(self, state: Any) -> th.Tensor:
        return th.tensor([1.0, 2.0], dtype=th.float64)

    def predict_qsa(self, state: Any, action: Any) -> float:
        return 2.5


def _t(s: Any, a: Any, r: float, s2: Any, *, terminal: bool = False) -> Transition:
    to = Observation.terminal_(s2) if terminal else Observation.full(s2)
    return Transition(Observation.full(s), a, r, to)


# =============================================================================
# Tests: blend
# =============================================================================
def test_blend_is_elementwise():
    policy = GaussianPolicy(2, weights=[1.0, 2.0])
    critic = StubCritic([0.5, -1.0])
    agent = NAC(critic, policy, alpha=0.1)

    agent.handle_transition(_t([1.0, 0.0], 0.0, 1.0, [0.0, 1.0]))
    assert_eq(critic.transitions, 1)
    assert_allclose(policy.weights(), [1.05, 1.9])

    agent.handle_transition(_t([1.0, 0.0], 0.0, 1.0, [0.0, 1.0]))
    assert_allclose(policy.weights(), [1.1, 1.8])
    assert_eq(agent.metrics()["blends"], 2.0)


def test_blend_matrix_weights():
    policy = SoftmaxPolicy(2, 3)
    critic = StubCritic([[1.0, 0.0, -1.0], [2.0, 0.5, 0.0]])
    agent = NAC(critic, policy, alpha=0.5)
    agent.handle_transition(_t([1.0, 1.0], 0, 0.0, [1.0, 1.0]))
    assert_allclose(policy.weights(), [[0.5, 0.0, -0.5], [1.0, 0.25, 0.0]])


def test_shape_mismatch_fails_fast():
    assert_raises(ValueError, lambda: NAC(StubCritic([1.0, 2.0, 3.0]), GaussianPolicy(2), alpha=0.1))
    assert_raises(ValueError, lambda: NAC(StubCritic([[1.0, 2.0]]), GaussianPolicy(2), alpha=0.1))

    critic = StubCritic([0.0, 0.0])
    agent = NAC(critic, GaussianPolicy(2), alpha=0.1)
    critic.w = th.zeros(3, dtype=th.float64)
    assert_raises(ValueError, lambda: agent.handle_transition(_t([1.0, 0.0], 0.0, 0.0, [1.0, 0.0])))


def test_handle_sequence_blends_once():
    policy = GaussianPolicy(1, weights=[0.0])
    critic = StubCritic([1.0])
    agent = NAC(critic, policy, alpha=0.25)

    seq = [_t([1.0], 0.0, 1.0, [1.0]) for _ in range(4)]
    agent.handle_sequence(iter(seq))

    assert_eq(critic.sequences, [4])
    assert_eq(critic.transitions, 0)
    assert_allclose(policy.weights(), [0.25])


def test_terminal_steps_alpha_and_delegates():
    class CountingPolicy(GaussianPolicy):
        terminals = 0

        def handle_terminal(self) -> None:
            self.terminals += 1

    policy = CountingPolicy(1)
    critic = StubCritic([1.0])
    agent = NAC(critic, policy, alpha=Parameter.exponential(0.2, decay=0.5))

    agent.handle_terminal()
    assert_close(agent.alpha.value(), 0.1)
    assert_eq((critic.terminals, policy.terminals), (1, 1))

    agent.handle_transition(_t([1.0], 0.0, 0.0, [1.0]))
    assert_allclose(policy.weights(), [0.1])


def test_vacuous_episode():
    agent = NAC(StubCritic([0.0]), GaussianPolicy(1), alpha=0.1)
    agent.handle_terminal()
    assert_eq(agent.metrics()["blends"], 0.0)


def test_delegates_predictions_and_sampling():
    seed_all(0)
    policy = SoftmaxPolicy(1, 2, weights=[[0.0, 50.0]])
    agent = NAC(StubCritic([[0.0, 0.0]]), policy, alpha=0.1)
    assert_eq(agent.predict_v([1.0]), 4.0)
    assert_allclose(agent.predict_qs([1.0]), [1.0, 2.0])
    assert_eq(agent.predict_qsa([1.0], 1), 2.5)
    assert_eq(agent.sample_target([1.0]), 1)
    assert_eq(agent.sample_behaviour([1.0]), 1)


# =============================================================================
# Tests: builder
# =============================================================================
def test_builder_wiring():
    agent = nac(n_features=3, n_actions=2, alpha=0.05, tau=0.5)
    assert_true(isinstance(agent, NAC))
    assert_true(isinstance(agent.critic, CompatibleTD))
    assert_true(isinstance(agent.policy, SoftmaxPolicy))
    assert_true(agent.critic.policy is agent.policy)
    assert_eq(tuple(agent.critic.weights().shape), (3, 2))
    assert_close(agent.policy.tau, 0.5)


def test_builder_prefers_rewarded_action():
    seed_all(0)
    agent = nac(n_features=1, n_actions=2, feature_fn=lambda s: [1.0], alpha=0.1, critic_alpha=0.1, gamma=0.0)
    for _ in range(300):
        a = agent.sample_behaviour(0.0)
        agent.handle_transition(_t(0.0, a, 1.0 if a == 1 else 0.0, 0.0, terminal=True))
        agent.handle_terminal()
    p1 = agent.policy.probability(0.0, 1)
    assert_true(p1 > 0.8, f"rewarded action probability {p1}")


# =============================================================================
# Runner
# =============================================================================
TESTS: List[Tuple[str, Callable[[], Any]]] = [
    ("blend_is_elementwise", test_blend_is_elementwise),
    ("blend_matrix_weights", test_blend_matrix_weights),
    ("shape_mismatch_fails_fast", test_shape_mismatch_fails_fast),
    ("handle_sequence_blends_once", test_handle_sequence_blends_once),
    ("terminal_steps_alpha_and_delegates", test_terminal_steps_alpha_and_delegates),
    ("vacuous_episode", test_vacuous_episode),
    ("delegates_predictions_and_sampling", test_delegates_predictions_and_sampling),
    ("builder_wiring", test_builder_wiring),
    ("builder_prefers_rewarded_action", test_builder_prefers_rewarded_action),
]


def main(argv=None) -> int:
    return run_tests(TESTS, argv=argv, suite_name="nac")


if __name__ == "__main__":
    raise SystemExit(main())
