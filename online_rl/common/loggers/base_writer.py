from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Mapping


class Writer(ABC):
    """
    Metric sink behind a :class:`~online_rl.common.loggers.Logger`.

    Contract
    --------
    - ``write(row)`` consumes one mapping of metric name to float. Rows always
      carry the meta keys ``step``, ``wall_time`` and ``timestamp``.
    - ``flush()`` and ``close()`` are idempotent.

    Writers raise on failure; the Logger decides whether to propagate (its
    `strict` flag).
    """

    @abstractmethod
    def write(self, row: Mapping[str, float]) -> None:
        raise NotImplementedError

    @abstractmethod
    def flush(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def close(self) -> None:
        raise NotImplementedError
