from __future__ import annotations

from typing import Any, Callable, List, Tuple

import torch as th

from online_rl.common.testers.test_utils import (
    assert_allclose,
    assert_close,
    assert_eq,
    assert_raises,
    assert_shape,
    assert_true,
    run_tests,
)
from online_rl.common.critics import TD, CompatibleTD
from online_rl.common.domains import Observation, Transition
from online_rl.common.parameters import Parameter
from online_rl.common.policies import GaussianPolicy, SoftmaxPolicy, UnsupportedOperationError


def _t(s: Any, a: Any, r: float, s2: Any, *, terminal: bool = False) -> Transition:
    to = Observation.terminal_(s2) if terminal else Observation.full(s2)
    return Transition(Observation.full(s), a, r, to)


# =============================================================================
# Tests: TD
# =============================================================================
def test_td_update_bootstraps_from_next_state():
    critic = TD(2, alpha=0.5, gamma=0.9, weights=[1.0, 0.0])
    t = _t([1.0, 0.0], 0.0, 1.0, [1.0, 1.0])

    assert_close(critic.td_error(t), 0.9)
    assert_allclose(critic.weights(), [1.0, 0.0], "td_error() must not update")

    critic.handle_transition(t)
    assert_allclose(critic.weights(), [1.45, 0.0])
    assert_close(critic.last_td_error, 0.9)
    assert_close(critic.predict_v([1.0, 0.0]), 1.45)


def test_td_terminal_transition_does_not_bootstrap():
    critic = TD(2, alpha=0.5, gamma=0.9, weights=[1.0, 5.0])
    t = _t([1.0, 0.0], 0.0, 1.0, [0.0, 1.0], terminal=True)
    assert_close(critic.td_error(t), 0.0)

    critic.handle_transition(t)
    assert_allclose(critic.weights(), [1.0, 5.0])


def test_td_handle_sequence_processes_in_order():
    a = TD(1, alpha=0.5, gamma=1.0)
    b = TD(1, alpha=0.5, gamma=1.0)
    seq = [_t([1.0], 0, 1.0, [1.0]), _t([1.0], 0, 1.0, [1.0], terminal=True)]

    a.handle_sequence(seq)
    for t in seq:
        b.handle_transition(t)
    assert_allclose(a.weights(), b.weights())
    assert_allclose(a.weights(), [0.75])


def test_td_terminal_steps_schedules():
    critic = TD(1, alpha=Parameter.exponential(0.4, decay=0.5), gamma=Parameter.linear(0.9, rate=0.1))
    critic.handle_terminal()
    assert_close(critic.alpha.value(), 0.2)
    assert_close(critic.gamma.value(), 0.8)
    assert_close(critic.metrics()["critic/alpha"], 0.2)


def test_td_has_no_action_values():
    critic = TD(1, alpha=0.1, gamma=0.9)
    assert_raises(UnsupportedOperationError, lambda: critic.predict_qs([0.0]))
    assert_raises(UnsupportedOperationError, lambda: critic.predict_qsa([0.0], 0))


def test_td_feature_fn_and_validation():
    critic = TD(3, alpha=0.1, gamma=0.9, feature_fn=lambda s: [1.0, s, s * s], weights=[1.0, 1.0, 1.0])
    assert_close(critic.predict_v(2.0), 7.0)
    assert_raises(ValueError, lambda: TD(2, alpha=0.1, gamma=0.9, weights=[0.0]))
    assert_raises(ValueError, lambda: TD(0, alpha=0.1, gamma=0.9))


# =============================================================================
# Tests: CompatibleTD
# =============================================================================
def test_compatible_td_weights_match_policy_shape():
    policy = SoftmaxPolicy(3, 4)
    critic = CompatibleTD(policy, TD(3, alpha=0.1, gamma=0.9), alpha=0.1, gamma=0.9)
    assert_shape(critic.weights(), (3, 4))
    assert_eq(critic.weights_dim, policy.weights_dim)
    assert_allclose(critic.weights(), th.zeros(3, 4))


def test_compatible_td_update_and_action_values():
    policy = SoftmaxPolicy(2, 2)
    value = TD(2, alpha=0.1, gamma=0.9)
    critic = CompatibleTD(policy, value, alpha=0.5, gamma=0.9)

    critic.handle_transition(_t([1.0, 0.0], 0, 1.0, [0.0, 1.0], terminal=True))

    assert_allclose(critic.weights(), [[0.25, -0.25], [0.0, 0.0]])
    assert_allclose(value.weights(), [0.1, 0.0], "value critic must receive the transition")

    assert_close(critic.predict_v([1.0, 0.0]), 0.1)
    assert_close(critic.advantage([1.0, 0.0], 0), 0.25)
    assert_close(critic.predict_qsa([1.0, 0.0], 1), -0.15)
    assert_allclose(critic.predict_qs([1.0, 0.0]), [0.35, -0.15])


def test_compatible_td_uses_value_before_update():
    policy = SoftmaxPolicy(1, 2)
    value = TD(1, alpha=1.0, gamma=1.0, weights=[2.0])
    critic = CompatibleTD(policy, value, alpha=1.0, gamma=1.0)

    # delta = 1 + V(s') - V(s) = 1 with V from the unchanged value critic
    critic.handle_transition(_t([1.0], 1, 1.0, [1.0]))
    assert_allclose(critic.weights(), [[-0.5, 0.5]])
    assert_allclose(value.weights(), [3.0])


def test_compatible_td_continuous_policy_has_no_qs():
    policy = GaussianPolicy(2)
    critic = CompatibleTD(policy, TD(2, alpha=0.1, gamma=0.9), alpha=0.1, gamma=0.9)
    assert_raises(UnsupportedOperationError, lambda: critic.predict_qs([1.0, 0.0]))
    assert_close(critic.predict_qsa([1.0, 0.0], 0.3), 0.0)


def test_compatible_td_terminal_steps_value_critic():
    value = TD(1, alpha=Parameter.exponential(1.0, decay=0.5), gamma=0.9)
    critic = CompatibleTD(SoftmaxPolicy(1, 2), value, alpha=Parameter.linear(0.5, rate=0.1), gamma=0.9)
    critic.handle_terminal()
    assert_close(critic.alpha.value(), 0.4)
    assert_close(value.alpha.value(), 0.5)
    assert_true("critic/advantage_norm" in critic.metrics())


# =============================================================================
# Runner
# =============================================================================
TESTS: List[Tuple[str, Callable[[], Any]]] = [
    ("td_update_bootstraps_from_next_state", test_td_update_bootstraps_from_next_state),
    ("td_terminal_transition_does_not_bootstrap", test_td_terminal_transition_does_not_bootstrap),
    ("td_handle_sequence_processes_in_order", test_td_handle_sequence_processes_in_order),
    ("td_terminal_steps_schedules", test_td_terminal_steps_schedules),
    ("td_has_no_action_values", test_td_has_no_action_values),
    ("td_feature_fn_and_validation", test_td_feature_fn_and_validation),
    ("compatible_td_weights_match_policy_shape", test_compatible_td_weights_match_policy_shape),
    ("compatible_td_update_and_action_values", test_compatible_td_update_and_action_values),
    ("compatible_td_uses_value_before_update", test_compatible_td_uses_value_before_update),
    ("compatible_td_continuous_policy_has_no_qs", test_compatible_td_continuous_policy_has_no_qs),
    ("compatible_td_terminal_steps_value_critic", test_compatible_td_terminal_steps_value_critic),
]


def main(argv=None) -> int:
    return run_tests(TESTS, argv=argv, suite_name="critics")


if __name__ == "__main__":
    raise SystemExit(main())
