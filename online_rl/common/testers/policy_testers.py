from __future__ import annotations

import math
from typing import Any, Callable, List, Tuple

import torch as th
from torch.distributions import Normal

from online_rl.common.testers.test_utils import (
    assert_allclose,
    assert_close,
    assert_eq,
    assert_raises,
    assert_shape,
    assert_true,
    run_tests,
    seed_all,
)
from online_rl.common.noises import GaussianActionNoise, GaussianNoise, OrnsteinUhlenbeckNoise
from online_rl.common.policies import (
    GaussianPolicy,
    PerturbedPolicy,
    Policy,
    RandomPolicy,
    SoftmaxPolicy,
    UnsupportedOperationError,
)


# =============================================================================
# Helpers
# =============================================================================
class ConstantPolicy(Policy):
    """Always returns the same action; counts episode boundaries."""

    def __init__(self, action: Any) -> None:
        self.action = action
        self.terminals = 0

    def sample(self, state: Any) -> Any:
        return self.action

    def probability(self, state: Any, action: Any) -> float:
        return 1.0

    def handle_terminal(self) -> None:
        self.terminals += 1


# =============================================================================
# Tests: RandomPolicy
# =============================================================================
def test_random_policy_probabilities_are_uniform():
    p = RandomPolicy(4)
    assert_eq(p.n_actions, 4)
    assert_allclose(p.probabilities("any state"), [0.25] * 4)
    assert_close(p.probability(None, 3), 0.25)
    assert_raises(ValueError, lambda: RandomPolicy(0))


def test_random_policy_rejects_out_of_range_actions():
    p = RandomPolicy(4)
    for bad in (99, 4, -1, 0.5, float("nan"), [0, 1]):
        assert_raises(ValueError, lambda bad=bad: p.probability(None, bad))
    assert_close(p.probability(None, th.tensor(2)), 0.25)
    assert_close(p.probability(None, 1.0), 0.25)


def test_random_policy_sampling_is_balanced():
    seed_all(0)
    p = RandomPolicy(2)
    draws = [p.sample(None) for _ in range(10_000)]
    assert_true(set(draws) <= {0, 1})
    frac = sum(draws) / len(draws)
    assert_true(abs(frac - 0.5) < 0.05, f"action 1 drawn with frequency {frac}")


# =============================================================================
# Tests: PerturbedPolicy
# =============================================================================
def test_perturbed_policy_adds_noise_to_scalar_action():
    p = PerturbedPolicy(ConstantPolicy(1.0), GaussianNoise(mu=0.5, sigma=0.0))
    a = p.sample(None)
    assert_true(isinstance(a, float))
    assert_close(a, 1.5)


def test_perturbed_policy_keeps_tensor_actions():
    base = ConstantPolicy(th.tensor([1.0, 2.0], dtype=th.float64))
    p = PerturbedPolicy(base, GaussianNoise(size=2, mu=-1.0, sigma=0.0))
    assert_allclose(p.sample(None), [0.0, 1.0])


def test_perturbed_policy_with_action_noise():
    seed_all(0)
    p = PerturbedPolicy(ConstantPolicy(2.0), GaussianActionNoise(sigma=0.0))
    assert_close(p.sample(None), 2.0)


def test_perturbed_policy_has_no_probability():
    p = PerturbedPolicy(RandomPolicy(3), GaussianNoise(sigma=0.1))
    assert_raises(UnsupportedOperationError, lambda: p.probability(None, 0))
    assert_raises(UnsupportedOperationError, lambda: p.probabilities(None))
    assert_raises(NotImplementedError, lambda: p.probability(None, 0))
    assert_eq(p.n_actions, 3)


def test_perturbed_policy_rejects_non_noise():
    assert_raises(TypeError, lambda: PerturbedPolicy(ConstantPolicy(0.0), 0.1))


def test_perturbed_policy_terminal_resets_noise_only():
    seed_all(0)
    base = ConstantPolicy(0.0)
    ou = OrnsteinUhlenbeckNoise(sigma=1.0, dt=1.0)
    p = PerturbedPolicy(base, ou)
    for _ in range(5):
        p.sample(None)
    assert_true(float(ou.state.abs().sum()) > 0.0)

    p.handle_terminal()
    assert_allclose(ou.state, [0.0])
    assert_eq(base.terminals, 0, "the base policy is notified by its owner, not the wrapper")


# =============================================================================
# Tests: GaussianPolicy
# =============================================================================
def test_gaussian_policy_density_and_mode():
    p = GaussianPolicy(2, std=1.0, weights=[0.5, -1.0])
    s = [2.0, 1.0]
    assert_close(p.mpa(s), 0.0)
    assert_close(p.probability(s, 0.0), 1.0 / math.sqrt(2.0 * math.pi))
    assert_close(p.probability(s, 1.0), math.exp(-0.5) / math.sqrt(2.0 * math.pi))


def test_gaussian_policy_grad_log_matches_autograd():
    p = GaussianPolicy(3, std=0.7, weights=[0.1, -0.2, 0.3])
    s = [1.0, 2.0, -1.0]
    a = 0.4

    w = th.tensor([0.1, -0.2, 0.3], dtype=th.float64, requires_grad=True)
    phi = th.tensor(s, dtype=th.float64)
    Normal(th.dot(w, phi), th.tensor(0.7, dtype=th.float64)).log_prob(th.tensor(a, dtype=th.float64)).backward()

    assert_allclose(p.grad_log(s, a), w.grad)


def test_gaussian_policy_update_moves_mean_toward_action():
    p = GaussianPolicy(2, feature_fn=lambda s: [1.0, s])
    s = 2.0
    before = p.mpa(s)
    p.update(s, 1.0, 0.1 * (1.0 - before))
    assert_allclose(p.weights(), [0.1, 0.2])
    assert_true(p.mpa(s) > before)


def test_gaussian_policy_weights_copy_vs_live():
    p = GaussianPolicy(2)
    p.weights().add_(5.0)
    assert_allclose(p.weights(), [0.0, 0.0])
    p.weights_mut().add_(5.0)
    assert_allclose(p.weights(), [5.0, 5.0])
    assert_eq(tuple(p.weights_dim), (2,))


def test_gaussian_policy_validation():
    assert_raises(ValueError, lambda: GaussianPolicy(2, std=0.0))
    assert_raises(ValueError, lambda: GaussianPolicy(2, weights=[1.0, 2.0, 3.0]))
    assert_raises(ValueError, lambda: GaussianPolicy(2).mpa([1.0, 2.0, 3.0]))


# =============================================================================
# Tests: SoftmaxPolicy
# =============================================================================
def test_softmax_probabilities_sum_to_one():
    seed_all(0)
    p = SoftmaxPolicy(3, 4, tau=0.5, weights=th.randn(3, 4, dtype=th.float64))
    probs = p.probabilities([0.3, -1.0, 2.0])
    assert_shape(probs, (4,))
    assert_true(bool((probs >= 0).all()))
    assert_close(float(probs.sum()), 1.0)
    assert_close(p.probability([0.3, -1.0, 2.0], 2), float(probs[2]))


def test_softmax_grad_log_matches_autograd():
    seed_all(1)
    w0 = th.randn(2, 3, dtype=th.float64)
    p = SoftmaxPolicy(2, 3, tau=2.0, weights=w0)
    s = [1.0, -0.5]

    w = w0.clone().requires_grad_(True)
    phi = th.tensor(s, dtype=th.float64)
    th.log_softmax((phi @ w) / 2.0, dim=-1)[1].backward()

    g = p.grad_log(s, 1)
    assert_shape(g, (2, 3))
    assert_allclose(g, w.grad)


def test_softmax_update_and_action_checks():
    p = SoftmaxPolicy(2, 2)
    s = [1.0, 2.0]
    p.update(s, 0, 2.0)
    assert_allclose(p.weights(), [[1.0, -1.0], [2.0, -2.0]])
    assert_true(p.probability(s, 0) > 0.5)

    assert_raises(ValueError, lambda: p.grad_log(s, 2))
    assert_raises(ValueError, lambda: p.probability(s, 0.5))
    assert_raises(ValueError, lambda: SoftmaxPolicy(2, 2, weights=th.zeros(2, 3)))


def test_softmax_sample_in_range():
    seed_all(0)
    p = SoftmaxPolicy(1, 3, weights=[[0.0, 5.0, 0.0]])
    draws = [p.sample([1.0]) for _ in range(200)]
    assert_true(all(0 <= a < 3 for a in draws))
    assert_true(draws.count(1) > 150)


# =============================================================================
# Runner
# =============================================================================
TESTS: List[Tuple[str, Callable[[], Any]]] = [
    ("random_policy_probabilities_are_uniform", test_random_policy_probabilities_are_uniform),
    ("random_policy_rejects_out_of_range_actions", test_random_policy_rejects_out_of_range_actions),
    ("random_policy_sampling_is_balanced", test_random_policy_sampling_is_balanced),
    ("perturbed_policy_adds_noise_to_scalar_action", test_perturbed_policy_adds_noise_to_scalar_action),
    ("perturbed_policy_keeps_tensor_actions", test_perturbed_policy_keeps_tensor_actions),
    ("perturbed_policy_with_action_noise", test_perturbed_policy_with_action_noise),
    ("perturbed_policy_has_no_probability", test_perturbed_policy_has_no_probability),
    ("perturbed_policy_rejects_non_noise", test_perturbed_policy_rejects_non_noise),
    ("perturbed_policy_terminal_resets_noise_only", test_perturbed_policy_terminal_resets_noise_only),
    ("gaussian_policy_density_and_mode", test_gaussian_policy_density_and_mode),
    ("gaussian_policy_grad_log_matches_autograd", test_gaussian_policy_grad_log_matches_autograd),
    ("gaussian_policy_update_moves_mean_toward_action", test_gaussian_policy_update_moves_mean_toward_action),
    ("gaussian_policy_weights_copy_vs_live", test_gaussian_policy_weights_copy_vs_live),
    ("gaussian_policy_validation", test_gaussian_policy_validation),
    ("softmax_probabilities_sum_to_one", test_softmax_probabilities_sum_to_one),
    ("softmax_grad_log_matches_autograd", test_softmax_grad_log_matches_autograd),
    ("softmax_update_and_action_checks", test_softmax_update_and_action_checks),
    ("softmax_sample_in_range", test_softmax_sample_in_range),
]


def main(argv=None) -> int:
    return run_tests(TESTS, argv=argv, suite_name="policies")


if __name__ == "__main__":
    raise SystemExit(main())
