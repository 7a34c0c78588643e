"""Errors raised by repository implementations."""


class StoreError(Exception):
    """A read or write against an external store failed.

    Repositories wrap transport and decoding failures in this type so callers
    can treat every store failure the same way.
    """


class StoreUnconfiguredError(StoreError):
    """The store has no credentials; dependent features are disabled."""
