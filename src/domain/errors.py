"""
Infrastructure exceptions raised by the adapter layer.

These are the only exceptions allowed to cross repository boundaries; use
cases turn them into Result errors.
"""


class StoreUnavailableError(Exception):
    """The backing store failed or timed out; the request must fail closed."""


class DuplicateKeyError(Exception):
    """A unique constraint rejected the write."""
