from __future__ import annotations

from typing import Any, Callable, List, Tuple

import torch as th

from online_rl.common.testers.test_utils import (
    assert_eq,
    assert_raises,
    assert_true,
    run_tests,
    seed_all,
)
from online_rl.common.noises.noises import GaussianNoise, OrnsteinUhlenbeckNoise, UniformNoise
from online_rl.common.noises.action_noises import (
    ClippedGaussianActionNoise,
    GaussianActionNoise,
    MultiplicativeActionNoise,
)
from online_rl.common.noises.noise_builder import build_noise


# =============================================================================
# Tests: action-independent noises
# =============================================================================
def test_gaussian_noise_defaults_to_scalar_float64():
    seed_all(0)
    x = GaussianNoise(sigma=0.3).sample()
    assert_eq(tuple(x.shape), (1,))
    assert_eq(x.dtype, th.float64)


def test_gaussian_noise_sigma0_is_constant_mu():
    x = GaussianNoise(size=(3, 2), mu=0.5, sigma=0.0).sample()
    assert_true(th.allclose(x, th.full((3, 2), 0.5, dtype=th.float64)))


def test_gaussian_noise_validation():
    assert_raises(ValueError, lambda: GaussianNoise(sigma=-1.0))
    assert_raises(ValueError, lambda: GaussianNoise(size=0))
    assert_raises(ValueError, lambda: GaussianNoise(size=()))
    assert_raises(ValueError, lambda: GaussianNoise(size=(3, -1)))


def test_uniform_noise_bounds():
    seed_all(0)
    x = UniformNoise(size=1000, low=-2.0, high=3.0).sample()
    assert_true(float(x.min()) >= -2.0 and float(x.max()) <= 3.0, "UniformNoise out of bounds")
    assert_raises(ValueError, lambda: UniformNoise(low=1.0, high=1.0))


def test_ou_noise_reset_restores_initial_state():
    seed_all(0)
    ou = OrnsteinUhlenbeckNoise(size=4, x0=0.25, sigma=0.5)
    for _ in range(10):
        ou.sample()
    assert_true(not th.allclose(ou.state, th.full((4,), 0.25, dtype=th.float64)))

    ou.reset()
    assert_true(th.allclose(ou.state, th.full((4,), 0.25, dtype=th.float64)))


def test_ou_sample_returns_copy():
    seed_all(0)
    ou = OrnsteinUhlenbeckNoise(sigma=0.2)
    y = ou.sample()
    y.add_(1000.0)
    assert_true(float(ou.state.abs().max()) < 100.0, "mutating a sample must not touch the OU state")


def test_ou_invalid_params():
    assert_raises(ValueError, lambda: OrnsteinUhlenbeckNoise(theta=-0.1))
    assert_raises(ValueError, lambda: OrnsteinUhlenbeckNoise(sigma=-0.1))
    assert_raises(ValueError, lambda: OrnsteinUhlenbeckNoise(dt=0.0))


# =============================================================================
# Tests: action-dependent noises
# =============================================================================
def test_gaussian_action_noise_eps_floor_at_zero_action():
    seed_all(0)
    noise = GaussianActionNoise(sigma=0.2, eps=1e-3)
    action = th.zeros(50, dtype=th.float64)
    n = noise.sample(action)
    assert_eq(n.shape, action.shape)
    assert_eq(n.dtype, action.dtype)
    assert_true(bool((n != 0).any()), "eps floor should keep noise alive at action=0")


def test_action_noises_sigma0_return_zero():
    action = th.randn(2, 3, dtype=th.float64)
    for noise in (
        GaussianActionNoise(sigma=0.0),
        MultiplicativeActionNoise(sigma=0.0),
        ClippedGaussianActionNoise(sigma=0.0),
    ):
        assert_true(th.equal(noise.sample(action), th.zeros_like(action)), type(noise).__name__)


def test_action_noise_invalid_params():
    assert_raises(ValueError, lambda: GaussianActionNoise(sigma=-0.1))
    assert_raises(ValueError, lambda: GaussianActionNoise(eps=0.0))
    assert_raises(ValueError, lambda: MultiplicativeActionNoise(sigma=-0.1))
    assert_raises(ValueError, lambda: ClippedGaussianActionNoise(low=1.0, high=0.0))


def test_clipped_gaussian_action_noise_keeps_action_in_bounds():
    seed_all(0)
    noise = ClippedGaussianActionNoise(sigma=2.0, low=-1.0, high=1.0)
    action = th.tensor([0.9, -0.9, 0.0], dtype=th.float64)
    for _ in range(20):
        a_noisy = action + noise.sample(action)
        assert_true(float(a_noisy.max()) <= 1.0 + 1e-12 and float(a_noisy.min()) >= -1.0 - 1e-12)


def test_clipped_gaussian_action_noise_tensor_bounds():
    seed_all(0)
    low = th.tensor([-1.0, -0.5, -2.0], dtype=th.float64)
    high = th.tensor([1.0, 0.5, 2.0], dtype=th.float64)
    noise = ClippedGaussianActionNoise(sigma=1.0, low=low, high=high)

    action = th.tensor([[0.9, -0.4, 1.5]], dtype=th.float64)
    a_noisy = action + noise.sample(action)
    assert_true(bool(th.all(a_noisy <= high + 1e-12)), "tensor high bound violated")
    assert_true(bool(th.all(a_noisy >= low - 1e-12)), "tensor low bound violated")


# =============================================================================
# Tests: build_noise
# =============================================================================
def test_build_noise_none_and_kind_normalization():
    assert_true(build_noise(kind=None) is None)
    assert_true(build_noise(kind=" none ") is None)
    assert_true(build_noise(kind="") is None)

    assert_eq(type(build_noise(kind=" Ornstein-Uhlenbeck ")).__name__, "OrnsteinUhlenbeckNoise")
    assert_eq(type(build_noise(kind="gaussian-action")).__name__, "GaussianActionNoise")
    assert_eq(type(build_noise(kind="multiplicative")).__name__, "MultiplicativeActionNoise")


def test_build_noise_shapes_follow_action_dim():
    g = build_noise(kind="gaussian", noise_sigma=0.1)
    assert_eq(tuple(g.sample().shape), (1,))

    u = build_noise(kind="uniform", action_dim=4, uniform_low=-3.0, uniform_high=-1.0)
    x = u.sample()
    assert_eq(tuple(x.shape), (4,))
    assert_true(float(x.min()) >= -3.0 and float(x.max()) <= -1.0)


def test_build_noise_validation():
    assert_raises(ValueError, lambda: build_noise(kind="gaussian", action_dim=0))
    assert_raises(ValueError, lambda: build_noise(kind="gaussian", noise_sigma=-1.0))
    assert_raises(ValueError, lambda: build_noise(kind="weird_kind"))
    assert_raises(ValueError, lambda: build_noise(kind="ou", ou_dt=0.0))


def test_build_noise_clipped_gaussian_bounds():
    assert_raises(ValueError, lambda: build_noise(kind="clipped_gaussian", action_dim=3))

    n = build_noise(kind="clipped_gaussian", action_dim=3, action_noise_low=-1.0, action_noise_high=1.0)
    assert_eq(type(n).__name__, "ClippedGaussianActionNoise")

    assert_raises(
        ValueError,
        lambda: build_noise(kind="clipped_gaussian", action_dim=3, action_noise_low=[-1, -1], action_noise_high=[1, 1]),
    )
    assert_raises(
        ValueError,
        lambda: build_noise(kind="clipped_gaussian", action_dim=1, action_noise_low=1.0, action_noise_high=0.0),
    )


# =============================================================================
# Runner
# =============================================================================
TESTS: List[Tuple[str, Callable[[], Any]]] = [
    ("gaussian_noise_defaults_to_scalar_float64", test_gaussian_noise_defaults_to_scalar_float64),
    ("gaussian_noise_sigma0_is_constant_mu", test_gaussian_noise_sigma0_is_constant_mu),
    ("gaussian_noise_validation", test_gaussian_noise_validation),
    ("uniform_noise_bounds", test_uniform_noise_bounds),
    ("ou_noise_reset_restores_initial_state", test_ou_noise_reset_restores_initial_state),
    ("ou_sample_returns_copy", test_ou_sample_returns_copy),
    ("ou_invalid_params", test_ou_invalid_params),
    ("gaussian_action_noise_eps_floor_at_zero_action", test_gaussian_action_noise_eps_floor_at_zero_action),
    ("action_noises_sigma0_return_zero", test_action_noises_sigma0_return_zero),
    ("action_noise_invalid_params", test_action_noise_invalid_params),
    ("clipped_gaussian_action_noise_keeps_action_in_bounds", test_clipped_gaussian_action_noise_keeps_action_in_bounds),
    ("clipped_gaussian_action_noise_tensor_bounds", test_clipped_gaussian_action_noise_tensor_bounds),
    ("build_noise_none_and_kind_normalization", test_build_noise_none_and_kind_normalization),
    ("build_noise_shapes_follow_action_dim", test_build_noise_shapes_follow_action_dim),
    ("build_noise_validation", test_build_noise_validation),
    ("build_noise_clipped_gaussian_bounds", test_build_noise_clipped_gaussian_bounds),
]


def main(argv=None) -> int:
    return run_tests(TESTS, argv=argv, suite_name="noises")


if __name__ == "__main__":
    raise SystemExit(main())
