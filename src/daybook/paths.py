"""Where Daybook documents live in the store."""

from datetime import date

from daybook.config import get_settings
from daybook.errors import ValidationError
from daybook.store.base import CollectionRef, DocumentRef, DocumentStore

EMPLOYEES = "employees"
DAILY_CLOSINGS = "daily_closings"
WORK_LOG = "work_log"


def date_key(value: date | str) -> str:
    """Normalize a calendar date to its ``YYYY-MM-DD`` document key."""
    if isinstance(value, date):
        return value.isoformat()
    try:
        return date.fromisoformat(value.strip()).isoformat()
    except ValueError as e:
        raise ValidationError(f"Invalid date: {value!r}", field="date") from e


def _data_path(name: str, app_id: str | None) -> str:
    return f"artifacts/{app_id or get_settings().app_id}/public/data/{name}"


def employees_collection(store: DocumentStore, app_id: str | None = None) -> CollectionRef:
    return store.collection(_data_path(EMPLOYEES, app_id))


def employee_document(
    store: DocumentStore, employee_id: str, app_id: str | None = None
) -> DocumentRef:
    return store.document(employees_collection(store, app_id), employee_id)


def closing_document(
    store: DocumentStore, closing_date: date | str, app_id: str | None = None
) -> DocumentRef:
    return store.document(_data_path(DAILY_CLOSINGS, app_id), date_key(closing_date))


def work_log_document(
    store: DocumentStore, closing_date: date | str, app_id: str | None = None
) -> DocumentRef:
    return store.document(_data_path(WORK_LOG, app_id), date_key(closing_date))
