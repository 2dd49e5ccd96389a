from __future__ import annotations

from dataclasses import dataclass
from typing import Any


# =============================================================================
# Observation
# =============================================================================
@dataclass(frozen=True)
class Observation:
    """
    A state emitted by a domain, tagged as either full or terminal.

    Parameters
    ----------
    state : Any
        Raw domain state (vector, tensor, tuple, ...). Never copied.
    terminal : bool, default=False
        True iff the episode ended on this observation.

    Notes
    -----
    Use :meth:`full` / :meth:`terminal_` rather than the raw constructor for
    readability at call sites.
    """

    state: Any
    terminal: bool = False

    @classmethod
    def full(cls, state: Any) -> "Observation":
        return cls(state=state, terminal=False)

    @classmethod
    def terminal_(cls, state: Any) -> "Observation":
        return cls(state=state, terminal=True)

    @property
    def is_terminal(self) -> bool:
        return bool(self.terminal)

    @property
    def is_full(self) -> bool:
        return not self.terminal


# =============================================================================
# Transition
# =============================================================================
@dataclass(frozen=True)
class Transition:
    """
    One step of interaction: ``(from, action, reward, to)``.

    Parameters
    ----------
    from_ : Observation
        Observation the action was taken in.
    action : Any
        Action taken (int for finite action sets, float for scalar continuous
        actions).
    reward : float
        Reward received.
    to : Observation
        Resulting observation; terminal iff the transition ends the episode.

    Notes
    -----
    Transitions are produced by the episode driver and consumed read-only by
    algorithms, critics and policies.
    """

    from_: Observation
    action: Any
    reward: float
    to: Observation

    def terminated(self) -> bool:
        """True iff `to` is a terminal observation."""
        return self.to.is_terminal

    @property
    def from_state(self) -> Any:
        return self.from_.state

    @property
    def to_state(self) -> Any:
        return self.to.state
