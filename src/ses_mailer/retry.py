# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Retry policy for SES send attempts.

Attempts are numbered from 1. The wait after a failed attempt grows
linearly with the attempt number (``attempt * base_delay``), so with the
defaults a send makes at most three attempts separated by 1s and 2s.
"""

from __future__ import annotations

from collections.abc import Iterator

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BASE_DELAY = 1.0


class RetryStrategy:
    """Bounded linear-backoff retry policy.

    Attributes:
        max_attempts: Total number of attempts, including the first one.
        base_delay: Delay unit in seconds.
    """

    def __init__(self, max_attempts: int = DEFAULT_MAX_ATTEMPTS, base_delay: float = DEFAULT_BASE_DELAY):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if base_delay < 0:
            raise ValueError("base_delay must not be negative")
        self.max_attempts = max_attempts
        self.base_delay = base_delay

    def attempts(self) -> Iterator[int]:
        """Yield attempt numbers 1..max_attempts."""
        return iter(range(1, self.max_attempts + 1))

    def calculate_delay(self, attempt: int) -> float:
        """Seconds to wait after failed ``attempt`` before the next one."""
        return attempt * self.base_delay

    def should_retry(self, attempt: int) -> bool:
        """Whether another attempt follows a failure of ``attempt``."""
        return attempt < self.max_attempts

    def __repr__(self) -> str:
        return f"RetryStrategy(max_attempts={self.max_attempts}, base_delay={self.base_delay})"
