"""Exception hierarchy for Daybook."""

from typing import Any


class DaybookError(Exception):
    """Base exception for Daybook errors."""


class ValidationError(DaybookError):
    """User input was rejected before any mutation was attempted."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class AuthenticationError(DaybookError):
    """Login failed (wrong PIN or unknown employee)."""


class PermissionDeniedError(DaybookError):
    """The current session role may not perform the operation."""


class NotFoundError(DaybookError):
    """A referenced document does not exist."""


class EmployeeNotFoundError(NotFoundError):
    """The employee document is missing at transaction time."""

    def __init__(self, employee_id: str):
        super().__init__(f"Employee not found: {employee_id}")
        self.employee_id = employee_id


class ClosingAlreadyFinalizedError(DaybookError):
    """The closing for the date was already finalized."""

    def __init__(self, closing_date: str, closed_at: str | None = None):
        super().__init__(f"Closing for {closing_date} was already finalized")
        self.closing_date = closing_date
        self.closed_at = closed_at


class PersistenceError(DaybookError):
    """Transport or permission error reported by the document store."""

    def __init__(self, message: str, status_code: int | None = None, details: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.details = details


class DocumentNotFoundError(PersistenceError, NotFoundError):
    """An update targeted a document that does not exist."""

    def __init__(self, path: str):
        super().__init__(f"Document not found: {path}", status_code=404)
        self.path = path


class TransactionConflictError(PersistenceError):
    """A transaction kept conflicting with concurrent writers and gave up."""

    pass


class TransactionError(PersistenceError):
    """A transaction was used incorrectly (e.g. a read after a write)."""

    pass
