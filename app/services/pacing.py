from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Iterable, TypeVar

T = TypeVar("T")
R = TypeVar("R")


@dataclass(frozen=True)
class PacingPolicy:
    interval_seconds: float = 0.3

    @classmethod
    def from_milliseconds(cls, interval_ms: int) -> "PacingPolicy":
        return cls(interval_seconds=max(interval_ms, 0) / 1000)


def process_paced(
    items: Iterable[T],
    handler: Callable[[T], R],
    policy: PacingPolicy,
    sleep: Callable[[float], None] = time.sleep,
) -> list[R]:
    """Run handler over items one at a time, sleeping between items but not after the last."""
    pending = list(items)
    results: list[R] = []
    for idx, item in enumerate(pending):
        results.append(handler(item))
        if idx < len(pending) - 1 and policy.interval_seconds > 0:
            sleep(policy.interval_seconds)
    return results
