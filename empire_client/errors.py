"""Error taxonomy for the Empire client.

Local order validation is not an exception: the ledger answers with a
LedgerResult carrying a RejectReason. The classes here cover failures that
cross a boundary (storage, network, server rejection).
"""

from enum import Enum


class RejectReason(Enum):
    """Why an order was refused locally. Never reaches the server."""

    INSUFFICIENT_CREDITS = "insufficient_credits"
    ALREADY_QUEUED = "already_queued"
    ALREADY_BUILT = "already_built"
    MISSING_FACTORY = "missing_factory"
    UNKNOWN_SUBTYPE = "unknown_subtype"
    NOT_ADJACENT = "not_adjacent"
    OUT_OF_BOUNDS = "out_of_bounds"
    NOT_OWNED = "not_owned"
    NOT_ACCEPTING_ORDERS = "not_accepting_orders"


class ClientError(Exception):
    """Base class for client failures that callers may report."""


class PersistenceError(ClientError):
    """Raised when a staging record cannot be read or decoded.

    The Staging Store catches this itself and treats the record as absent.
    """


class ApiError(ClientError):
    """Raised by GameApi implementations when a request fails.

    Attributes:
        status: HTTP-like status code if the server answered, None otherwise
    """

    def __init__(self, message: str, status: int | None = None):
        """Initialize API error.

        Args:
            message: Server or transport error message
            status: Response status code, if any
        """
        self.status = status
        super().__init__(message)


class ReconciliationError(ClientError):
    """Raised when a fresh snapshot could not be fetched or validated.

    The previous snapshot and lifecycle state are kept; the next push
    notification retries.
    """


class SubmissionError(ClientError):
    """Raised when the server rejects a turn submission.

    The order ledger and its staging record are left untouched so the
    player can retry.
    """
