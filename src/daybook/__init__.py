"""Daybook - daily cash closing and employee consumption credit."""

__version__ = "0.1.0"

from daybook.closing import (
    ClosingDraft,
    ClosingEngine,
    FinalizeResult,
    compute_delivery_commissions,
    compute_totals,
)
from daybook.config import configure_logging, get_settings
from daybook.desk import ClosingDesk, StatusMessage
from daybook.ledger import CreditLedger, accrue_daily_credit
from daybook.models import (
    ClosingInputs,
    ClosingTotals,
    DailyClosing,
    DeliveryCommission,
    Employee,
    Receipt,
    WorkLogEntry,
)
from daybook.roster import Roster
from daybook.session import Role, Session
from daybook.store import (
    DocumentStore,
    FirestoreDocumentStore,
    InMemoryDocumentStore,
    create_store,
)
from daybook.worklog import WorkLog

__all__ = [
    # Version
    "__version__",
    # Closing
    "ClosingDraft",
    "ClosingEngine",
    "FinalizeResult",
    "compute_delivery_commissions",
    "compute_totals",
    # Work log, roster and credit
    "WorkLog",
    "Roster",
    "CreditLedger",
    "accrue_daily_credit",
    # Records
    "ClosingInputs",
    "ClosingTotals",
    "DailyClosing",
    "DeliveryCommission",
    "Employee",
    "Receipt",
    "WorkLogEntry",
    # Desk & session
    "ClosingDesk",
    "StatusMessage",
    "Role",
    "Session",
    # Stores
    "DocumentStore",
    "InMemoryDocumentStore",
    "FirestoreDocumentStore",
    "create_store",
    # Config
    "get_settings",
    "configure_logging",
]
