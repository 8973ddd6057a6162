"""
Lockout Policy

Turns a consecutive failed-login count into a lock duration.
"""

from datetime import timedelta

LOCKOUT_THRESHOLD = 5
MAX_EXPONENTIAL_ATTEMPTS = 10
MAX_LOCK_DURATION = timedelta(hours=24)


def lock_duration(failed_attempts: int) -> timedelta:
    """
    Lock duration for the given number of consecutive failures.

    - fewer than 5: no lock
    - 5 to 9: 2^(n-5) minutes (1, 2, 4, 8, 16)
    - 10 or more: 24 hours
    """
    if failed_attempts < LOCKOUT_THRESHOLD:
        return timedelta(0)
    if failed_attempts >= MAX_EXPONENTIAL_ATTEMPTS:
        return MAX_LOCK_DURATION
    return timedelta(minutes=2 ** (failed_attempts - LOCKOUT_THRESHOLD))


def is_locked(locked_until, now) -> bool:
    return locked_until is not None and now < locked_until
