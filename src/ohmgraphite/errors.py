"""Exceptions raised by the Graphite writer.

Transport failures are not wrapped: connect/write/flush errors surface as the
builtin OSError family (ConnectionRefusedError, BrokenPipeError, TimeoutError).
"""


class OhmGraphiteError(Exception):
    """Base exception for ohmgraphite errors."""

    pass


class LockUnavailableError(OhmGraphiteError):
    """Raised when the connection is still busy with a previous report after the wait bound."""

    pass
