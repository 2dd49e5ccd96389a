from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, Mapping, Union


# =============================================================================
# Decay rules
# =============================================================================
# Each rule maps (initial, count, rate, floor) -> value. `count` is the number
# of completed episodes, so values are closed-form in the episode index.
def _decay_fixed(initial: float, count: int, rate: float, floor: float) -> float:
    return initial


def _decay_linear(initial: float, count: int, rate: float, floor: float) -> float:
    return max(floor, initial - rate * count)


def _decay_exponential(initial: float, count: int, rate: float, floor: float) -> float:
    return max(floor, initial * (rate ** count))


def _decay_polynomial(initial: float, count: int, rate: float, floor: float) -> float:
    return max(floor, initial / ((count + 1) ** rate))


_RULES: Dict[str, Callable[[float, int, float, float], float]] = {
    "fixed": _decay_fixed,
    "linear": _decay_linear,
    "exponential": _decay_exponential,
    "polynomial": _decay_polynomial,
}


# =============================================================================
# Parameter
# =============================================================================
@dataclass(frozen=True)
class Parameter:
    """
    Scalar hyperparameter with an episode-indexed decay rule.

    A `Parameter` is immutable: :meth:`step` returns a *new* Parameter one
    episode further along the schedule. Algorithms replace their attribute at
    each episode boundary (``self.alpha = self.alpha.step()``) and never mutate
    it mid-episode.

    Parameters
    ----------
    initial : float
        Value at episode 0.
    rule : {"fixed", "linear", "exponential", "polynomial"}, default="fixed"
        Decay rule:

        - fixed       : ``initial``
        - linear      : ``max(floor, initial - rate * count)``
        - exponential : ``max(floor, initial * rate ** count)``
        - polynomial  : ``max(floor, initial / (count + 1) ** rate)``
    rate : float, default=0.0
        Rule parameter (decrement / decay factor / power).
    floor : float, default=0.0
        Lower bound for decaying rules.
    count : int, default=0
        Number of completed episodes.

    Raises
    ------
    ValueError
        If the rule is unknown or `rate`/`floor` would make the schedule
        increase: linear requires ``rate >= 0``, exponential requires
        ``0 < rate <= 1``, polynomial requires ``rate >= 0``, decaying
        rules require ``floor <= initial``, and exponential and polynomial
        require ``initial >= 0``.

    Notes
    -----
    Under these constraints every decaying rule is non-increasing along
    `step()`, and `fixed` is constant.

    Examples
    --------
    >>> alpha = Parameter.exponential(0.1, decay=0.99, floor=1e-3)
    >>> alpha = alpha.step()
    >>> float(alpha)
    0.099
    """

    initial: float
    rule: str = "fixed"
    rate: float = 0.0
    floor: float = 0.0
    count: int = 0

    def __post_init__(self) -> None:
        if self.rule not in _RULES:
            raise ValueError(f"Unknown parameter rule: {self.rule!r}. Use one of {sorted(_RULES)}.")
        if not math.isfinite(float(self.initial)):
            raise ValueError(f"initial must be finite, got {self.initial}")
        if int(self.count) < 0:
            raise ValueError(f"count must be >= 0, got {self.count}")

        if self.rule == "fixed":
            return
        if float(self.floor) > float(self.initial):
            raise ValueError(f"floor must be <= initial, got floor={self.floor}, initial={self.initial}")
        if self.rule in ("linear", "polynomial") and float(self.rate) < 0.0:
            raise ValueError(f"{self.rule} rate must be >= 0, got {self.rate}")
        if self.rule == "exponential" and not (0.0 < float(self.rate) <= 1.0):
            raise ValueError(f"exponential rate must be in (0, 1], got {self.rate}")
        # multiplicative decay of a negative value moves it up toward 0
        if self.rule in ("exponential", "polynomial") and float(self.initial) < 0.0:
            raise ValueError(f"{self.rule} initial must be >= 0, got {self.initial}")

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------
    @classmethod
    def fixed(cls, value: float) -> "Parameter":
        return cls(initial=float(value))

    @classmethod
    def linear(cls, initial: float, rate: float, floor: float = 0.0) -> "Parameter":
        return cls(initial=float(initial), rule="linear", rate=float(rate), floor=float(floor))

    @classmethod
    def exponential(cls, initial: float, decay: float, floor: float = 0.0) -> "Parameter":
        return cls(initial=float(initial), rule="exponential", rate=float(decay), floor=float(floor))

    @classmethod
    def polynomial(cls, initial: float, power: float, floor: float = 0.0) -> "Parameter":
        return cls(initial=float(initial), rule="polynomial", rate=float(power), floor=float(floor))

    # ------------------------------------------------------------------
    # Schedule
    # ------------------------------------------------------------------
    def value(self) -> float:
        return float(_RULES[self.rule](float(self.initial), int(self.count), float(self.rate), float(self.floor)))

    def step(self) -> "Parameter":
        """Return the parameter one episode later. `self` is unchanged."""
        return replace(self, count=int(self.count) + 1)

    # ------------------------------------------------------------------
    # Numeric protocol
    # ------------------------------------------------------------------
    def __float__(self) -> float:
        return self.value()

    def __mul__(self, other: Any) -> Any:
        return self.value() * other

    def __rmul__(self, other: Any) -> Any:
        return other * self.value()


# =============================================================================
# Coercion
# =============================================================================
ParameterLike = Union[Parameter, float, int, Mapping[str, Any]]


def as_parameter(x: ParameterLike) -> Parameter:
    """
    Coerce a number, mapping or Parameter into a :class:`Parameter`.

    - Parameter : returned unchanged
    - number    : ``Parameter.fixed(x)``
    - mapping   : forwarded to :func:`build_parameter` as keyword arguments,
      e.g. ``{"name": "exponential", "value": 0.1, "rate": 0.99}``

    Raises
    ------
    TypeError
        For any other input type (including bool).
    """
    if isinstance(x, Parameter):
        return x
    if isinstance(x, bool):
        raise TypeError("bool is not a valid parameter value")
    if isinstance(x, (int, float)):
        return Parameter.fixed(float(x))
    if isinstance(x, Mapping):
        from .parameter_builder import build_parameter

        return build_parameter(**dict(x))
    raise TypeError(f"cannot convert {type(x).__name__} to Parameter")
