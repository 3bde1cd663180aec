"""
errors.py — Builder Error Categories
======================================
"""


class InvalidArgument(ValueError):
    """A builder operation was called with a value it cannot handle."""


class InvalidConfiguration(ValueError):
    """The accumulated options do not form a usable node configuration."""


class IllegalState(RuntimeError):
    """Finalization or the node lifecycle reached a state it cannot recover from."""
