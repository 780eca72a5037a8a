# taskboard/errors.py
"""Error types shared by the store, the reorder engine and the HTTP layer."""


class TaskboardError(Exception):
    """Base class for taskboard errors that map onto an HTTP status."""

    status_code = 500

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class NotFound(TaskboardError):
    """The task does not exist or belongs to another owner."""

    status_code = 404


class InvalidArgument(TaskboardError):
    """Malformed position, missing required field or invalid date."""

    status_code = 400


class PersistenceFailure(TaskboardError):
    """The database backend failed; the transaction was rolled back."""

    status_code = 500


class TransientDeliveryFailure(TaskboardError):
    """The mail transport could not deliver a reminder. Retried by the scheduler."""
