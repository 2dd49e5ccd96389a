from __future__ import annotations

from typing import Optional

from .parameter import Parameter
from ..utils.noise_utils import _normalize_kind


# =============================================================================
# Public API
# =============================================================================
def build_parameter(
    *,
    name: str = "fixed",
    value: float,
    rate: Optional[float] = None,
    floor: float = 0.0,
) -> Parameter:
    """
    Construct a :class:`Parameter` from a string identifier.

    Parameters
    ----------
    name : str, default="fixed"
        Schedule identifier (case-insensitive; hyphens/spaces normalized).
        Supported values:

        - "fixed" / "constant"
            Constant value.
        - "linear"
            Subtract `rate` per episode, floored at `floor`.
        - "exponential" / "exp"
            Multiply by `rate` per episode, floored at `floor`.
        - "polynomial" / "poly"
            ``value / (count + 1) ** rate``, floored at `floor`.

    value : float
        Initial value.
    rate : float, optional
        Rule parameter. Required for every rule except "fixed".
    floor : float, default=0.0
        Lower bound for decaying rules.

    Returns
    -------
    param : Parameter

    Raises
    ------
    ValueError
        If the name is unknown, `rate` is missing for a decaying rule, or the
        resulting schedule is invalid.
    """
    kind = _normalize_kind(name)
    if kind is None:
        raise ValueError(f"parameter name must not be empty, got {name!r}")

    if kind in ("fixed", "constant"):
        return Parameter.fixed(float(value))

    if rate is None:
        raise ValueError(f"{kind} parameter requires rate")
    rate_f = float(rate)

    if kind == "linear":
        return Parameter.linear(float(value), rate=rate_f, floor=float(floor))
    if kind in ("exponential", "exp"):
        return Parameter.exponential(float(value), decay=rate_f, floor=float(floor))
    if kind in ("polynomial", "poly"):
        return Parameter.polynomial(float(value), power=rate_f, floor=float(floor))

    raise ValueError(f"Unknown parameter name: {name!r}")
