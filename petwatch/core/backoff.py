"""Reconnect backoff - Pure functions.

Bounded exponential backoff for re-establishing the sighting feed.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class BackoffPolicy:
    """Backoff settings.

    Attributes:
        initial_seconds: Delay before the first reconnect attempt
        max_seconds: Upper bound for any single delay
        multiplier: Growth factor between attempts
        max_attempts: Give up after this many consecutive attempts (0 = never)
    """
    initial_seconds: float = 1.0
    max_seconds: float = 60.0
    multiplier: float = 2.0
    max_attempts: int = 0


def compute_backoff_delay(attempt: int, policy: BackoffPolicy) -> float:
    """Delay before reconnect attempt number `attempt` (1-based).

    Pure function.
    """
    if attempt <= 1:
        return min(policy.initial_seconds, policy.max_seconds)
    # multiplier ** n overflows for large n
    exponent = min(attempt - 1, 64)
    delay = policy.initial_seconds * (policy.multiplier ** exponent)
    return min(delay, policy.max_seconds)


def should_retry(attempt: int, policy: BackoffPolicy) -> bool:
    """Whether reconnect attempt number `attempt` (1-based) may run.

    Pure function.
    """
    if policy.max_attempts <= 0:
        return True
    return attempt <= policy.max_attempts
