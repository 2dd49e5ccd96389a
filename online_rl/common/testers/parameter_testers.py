from __future__ import annotations

from typing import Any, Callable, List, Tuple

from online_rl.common.testers.test_utils import (
    assert_close,
    assert_eq,
    assert_raises,
    assert_true,
    run_tests,
)
from online_rl.common.parameters import Parameter, as_parameter, build_parameter


def _values(p: Parameter, n: int) -> List[float]:
    out = []
    for _ in range(n):
        out.append(p.value())
        p = p.step()
    return out


# =============================================================================
# Tests: Parameter
# =============================================================================
def test_fixed_parameter_is_constant():
    assert_eq(_values(Parameter.fixed(0.3), 5), [0.3] * 5)


def test_linear_decay_hits_floor():
    vals = _values(Parameter.linear(1.0, rate=0.25, floor=0.4), 5)
    for got, exp in zip(vals, [1.0, 0.75, 0.5, 0.4, 0.4]):
        assert_close(got, exp)


def test_exponential_decay_closed_form():
    p = Parameter.exponential(0.1, decay=0.5)
    for _ in range(3):
        p = p.step()
    assert_eq(p.count, 3)
    assert_close(float(p), 0.0125)


def test_polynomial_decay_closed_form():
    vals = _values(Parameter.polynomial(1.0, power=1.0), 4)
    for got, exp in zip(vals, [1.0, 0.5, 1.0 / 3.0, 0.25]):
        assert_close(got, exp)


def test_decaying_rules_are_non_increasing():
    for p in (
        Parameter.linear(0.5, rate=0.01, floor=0.1),
        Parameter.exponential(0.5, decay=0.9, floor=0.05),
        Parameter.polynomial(0.5, power=0.6),
    ):
        vals = _values(p, 50)
        assert_true(all(b <= a for a, b in zip(vals, vals[1:])), f"{p.rule} must not increase")
        assert_true(min(vals) >= p.floor, f"{p.rule} dropped below its floor")


def test_step_returns_new_parameter():
    p = Parameter.exponential(1.0, decay=0.5)
    q = p.step()
    assert_true(q is not p)
    assert_eq(p.count, 0)
    assert_eq(float(p), 1.0)
    assert_eq(float(q), 0.5)
    assert_raises(AttributeError, lambda: setattr(p, "count", 5))


def test_parameter_numeric_protocol():
    p = Parameter.fixed(0.5)
    assert_eq(p * 4.0, 2.0)
    assert_eq(4.0 * p, 2.0)
    assert_eq(float(p), 0.5)


def test_parameter_validation():
    assert_raises(ValueError, lambda: Parameter(initial=1.0, rule="cosine"))
    assert_raises(ValueError, lambda: Parameter.linear(1.0, rate=-0.1))
    assert_raises(ValueError, lambda: Parameter.exponential(1.0, decay=1.5))
    assert_raises(ValueError, lambda: Parameter.exponential(1.0, decay=0.0))
    assert_raises(ValueError, lambda: Parameter.polynomial(1.0, power=-1.0))
    assert_raises(ValueError, lambda: Parameter.linear(0.1, rate=0.01, floor=0.5))
    assert_raises(ValueError, lambda: Parameter.fixed(float("nan")))


def test_decaying_rules_reject_negative_initial():
    # multiplicative rules would move a negative value up toward 0
    assert_raises(ValueError, lambda: Parameter.exponential(-1.0, decay=0.5, floor=-2.0))
    assert_raises(ValueError, lambda: Parameter.polynomial(-1.0, power=1.0, floor=-2.0))
    assert_raises(ValueError, lambda: build_parameter(name="exp", value=-1.0, rate=0.5, floor=-2.0))
    assert_raises(ValueError, lambda: as_parameter({"name": "poly", "value": -0.5, "rate": 1.0, "floor": -1.0}))

    # subtraction keeps linear monotone for any sign; fixed is always allowed
    lin = Parameter.linear(-1.0, rate=0.5, floor=-2.0)
    assert_eq([lin.value(), lin.step().value(), lin.step().step().step().value()], [-1.0, -1.5, -2.0])
    assert_eq(Parameter.fixed(-1.0).step().value(), -1.0)


# =============================================================================
# Tests: build_parameter / as_parameter
# =============================================================================
def test_build_parameter_aliases():
    assert_eq(build_parameter(name="Constant", value=0.2), Parameter.fixed(0.2))
    assert_eq(build_parameter(name="exp", value=0.2, rate=0.9).rule, "exponential")
    assert_eq(build_parameter(name=" poly ", value=0.2, rate=0.5).rule, "polynomial")
    assert_eq(build_parameter(name="linear", value=0.2, rate=0.01, floor=0.1).floor, 0.1)


def test_build_parameter_validation():
    assert_raises(ValueError, lambda: build_parameter(name="linear", value=0.2))
    assert_raises(ValueError, lambda: build_parameter(name="none", value=0.2))
    assert_raises(ValueError, lambda: build_parameter(name="warmup", value=0.2, rate=0.1))


def test_as_parameter_coercion():
    p = Parameter.linear(1.0, rate=0.1)
    assert_true(as_parameter(p) is p)
    assert_eq(as_parameter(3), Parameter.fixed(3.0))
    assert_eq(as_parameter({"name": "exponential", "value": 0.1, "rate": 0.99}).rate, 0.99)

    assert_raises(TypeError, lambda: as_parameter(True))
    assert_raises(TypeError, lambda: as_parameter("0.1"))
    assert_raises(TypeError, lambda: as_parameter(None))


# =============================================================================
# Runner
# =============================================================================
TESTS: List[Tuple[str, Callable[[], Any]]] = [
    ("fixed_parameter_is_constant", test_fixed_parameter_is_constant),
    ("linear_decay_hits_floor", test_linear_decay_hits_floor),
    ("exponential_decay_closed_form", test_exponential_decay_closed_form),
    ("polynomial_decay_closed_form", test_polynomial_decay_closed_form),
    ("decaying_rules_are_non_increasing", test_decaying_rules_are_non_increasing),
    ("step_returns_new_parameter", test_step_returns_new_parameter),
    ("parameter_numeric_protocol", test_parameter_numeric_protocol),
    ("parameter_validation", test_parameter_validation),
    ("decaying_rules_reject_negative_initial", test_decaying_rules_reject_negative_initial),
    ("build_parameter_aliases", test_build_parameter_aliases),
    ("build_parameter_validation", test_build_parameter_validation),
    ("as_parameter_coercion", test_as_parameter_coercion),
]


def main(argv=None) -> int:
    return run_tests(TESTS, argv=argv, suite_name="parameters")


if __name__ == "__main__":
    raise SystemExit(main())
