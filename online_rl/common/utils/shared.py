from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Generic, Iterator, TypeVar

T = TypeVar("T")


class BorrowError(RuntimeError):
    """Raised when a :class:`Shared` borrow would alias a live exclusive borrow."""


class Shared(Generic[T]):
    """
    Shared-ownership handle with runtime-checked borrowing.

    A critic or policy that is referenced by more than one holder (e.g. an
    algorithm and an external diagnostic consumer) is wrapped in a `Shared`.
    Access goes through one of two context managers:

    - ``borrow()``     : shared (read) access; any number may be live at once.
    - ``borrow_mut()`` : exclusive access; fails if any other borrow is live.

    Parameters
    ----------
    value : T
        The wrapped object. The handle never copies it.

    Raises
    ------
    BorrowError
        On ``borrow_mut()`` while any borrow is live, or on ``borrow()`` while an
        exclusive borrow is live.

    Notes
    -----
    - Execution is single-threaded; the counters are not a lock and must not be
      used to serialize concurrent writers.
    - Borrows are released when the ``with`` block exits, including on error.

    Examples
    --------
    >>> critic = Shared(TD(n_features=4, alpha=0.1, gamma=0.99))
    >>> with critic.borrow_mut() as c:
    ...     c.handle_transition(t)
    """

    __slots__ = ("_value", "_readers", "_writer")

    def __init__(self, value: T) -> None:
        self._value = value
        self._readers = 0
        self._writer = False

    @classmethod
    def of(cls, value: Any) -> "Shared[Any]":
        """Return `value` if it already is a `Shared`, otherwise wrap it."""
        if isinstance(value, Shared):
            return value
        return cls(value)

    @property
    def is_borrowed(self) -> bool:
        return self._writer or self._readers > 0

    @property
    def is_borrowed_mut(self) -> bool:
        return self._writer

    @contextmanager
    def borrow(self) -> Iterator[T]:
        if self._writer:
            raise BorrowError(
                f"cannot borrow {type(self._value).__name__}: already mutably borrowed"
            )
        self._readers += 1
        try:
            yield self._value
        finally:
            self._readers -= 1

    @contextmanager
    def borrow_mut(self) -> Iterator[T]:
        if self._writer or self._readers > 0:
            raise BorrowError(
                f"cannot mutably borrow {type(self._value).__name__}: already borrowed"
            )
        self._writer = True
        try:
            yield self._value
        finally:
            self._writer = False

    def __repr__(self) -> str:
        state = "mut" if self._writer else (f"shared x{self._readers}" if self._readers else "free")
        return f"Shared({self._value!r}, {state})"
