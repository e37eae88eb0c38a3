"""
Accounting workflow errors.

Each carries the HTTP status the API layer answers with.
"""

class WorkflowError(Exception):
    """Base exception for refused accounting operations."""
    status_code = 400

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

class NotFoundError(WorkflowError):
    """Raised when an entry, account or fiscal year does not exist."""
    status_code = 404

class InvalidTransitionError(WorkflowError):
    """Raised when an entry's status forbids the requested operation."""

class PeriodClosedError(WorkflowError):
    """Raised when writing into, or re-closing, a closed period."""
    status_code = 409

class ConflictError(WorkflowError):
    """Raised when a concurrent write took the number or slot this one needed."""
    status_code = 409
