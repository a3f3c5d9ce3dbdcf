# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/certcsi/utils/retry.py
from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Generic, Optional, TypeVar

T = TypeVar("T")


class PollOutcome(str, Enum):
    READY = "ready"
    FAILED = "failed"
    TIMED_OUT = "timed-out"


@dataclass
class PollResult(Generic[T]):
    outcome: PollOutcome
    value: Optional[T] = None
    reason: str = ""
    attempts: int = 0


def poll(
    check: Callable[[], PollResult[T]],
    *,
    interval: float,
    timeout: float,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> PollResult[T]:
    """
    Call *check* immediately and then every *interval* seconds until it
    reports READY or FAILED, or *timeout* seconds have passed.

    check: returns a PollResult; outcome TIMED_OUT means "not yet"
    Exceptions raised by *check* propagate to the caller.
    """
    deadline = clock() + timeout
    attempt = 0
    last: Optional[PollResult[T]] = None

    while True:
        attempt += 1
        last = check()
        last.attempts = attempt
        if last.outcome is not PollOutcome.TIMED_OUT:
            return last

        if clock() + interval > deadline:
            break
        sleep(interval)

    return PollResult(PollOutcome.TIMED_OUT, value=last.value, attempts=attempt)
