"""
Error taxonomy shared by the Order Store, its REST surface and the staff clients.

Losing a race is a normal outcome here: ``AlreadyClaimed`` and ``SyncFailure``
are recoverable (show a notice, re-sync), the rest block the acting user until
their view has been refreshed.
"""


class CafeOpsError(Exception):
    code = "CAFE_OPS_ERROR"
    recoverable = False

    def __init__(self, message: str = "", order_id: int | None = None):
        super().__init__(message or self.code)
        self.message = message or self.code
        self.order_id = order_id


class InvalidTransition(CafeOpsError):
    """The requested status edge is not legal from the order's current status."""
    code = "INVALID_TRANSITION"


class NotOwner(CafeOpsError):
    """The acting staff member does not hold the slot (or role) the edge requires."""
    code = "NOT_OWNER"


class AlreadyClaimed(CafeOpsError):
    """Another staff member filled the slot first."""
    code = "ALREADY_CLAIMED"
    recoverable = True


class InvalidState(CafeOpsError):
    """The order is not in the status a claim requires."""
    code = "INVALID_STATE"


class NotFound(CafeOpsError):
    code = "NOT_FOUND"


class SyncFailure(CafeOpsError):
    """The store could not be reached or answered with a server error."""
    code = "SYNC_FAILURE"
    recoverable = True


ERRORS_BY_CODE = {
    cls.code: cls
    for cls in (InvalidTransition, NotOwner, AlreadyClaimed, InvalidState, NotFound, SyncFailure)
}
