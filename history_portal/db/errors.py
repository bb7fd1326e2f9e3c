"""Exception types raised by the RLS-scoped executor."""


class RLSError(Exception):
    """Base class for executor errors."""

    pass


class InvalidIdentity(RLSError):
    """Acting identity is not a canonical UUID.

    Raised before any session or connection is acquired.
    """

    pass


class TransactionAcquisitionFailed(RLSError):
    """A transaction could not be opened or its session context set.

    No caller code ran. Callers may retry with backoff.
    """

    pass


class OperationFailed(RLSError):
    """The unit of work finished but its transaction could not be committed.

    The transaction has been rolled back. Exceptions raised by the caller's
    own operation are never wrapped in this type.
    """

    pass
