"""
Data Models Package

This package contains all Pydantic models used in Smart Ledger.
All data flowing through the system must conform to these schemas.
"""

from smart_ledger.models.ledger import (
    DEFAULT_BUDGETS,
    TOTAL_BUDGET_CATEGORY,
    Budget,
    DailySummary,
    InlineData,
    MultimodalPart,
    ParsedTransaction,
    Transaction,
    TransactionDraft,
    TransactionType,
)
from smart_ledger.models.categories import (
    CATEGORIES,
    OTHER_EXPENSE_ID,
    OTHER_INCOME_ID,
    Category,
    CategoryRegistry,
    get_registry,
)
from smart_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "DEFAULT_BUDGETS",
    "TOTAL_BUDGET_CATEGORY",
    "Budget",
    "DailySummary",
    "InlineData",
    "MultimodalPart",
    "ParsedTransaction",
    "Transaction",
    "TransactionDraft",
    "TransactionType",
    # Categories
    "CATEGORIES",
    "OTHER_EXPENSE_ID",
    "OTHER_INCOME_ID",
    "Category",
    "CategoryRegistry",
    "get_registry",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
