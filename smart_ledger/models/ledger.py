"""
Core Data Models for Smart Ledger

These models define the schemas for everything the ledger stores or
sends to the model:
1. Transactions and budgets (persisted as JSON collections)
2. Multimodal parts (transient, one AI request only)
3. Parsed transactions (raw AI output before repair)

DESIGN DECISION: Attribute names are snake_case in Python, but the
persisted and wire representations use camelCase (categoryId, createdAt,
inlineData, mimeType). Every model accepts both spellings on input and
dumps camelCase with ``by_alias=True``.
"""

from datetime import date as date_type
from datetime import datetime, timezone
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class TransactionType(str, Enum):
    """Direction of money flow."""
    EXPENSE = "expense"
    INCOME = "income"


class CamelModel(BaseModel):
    """Base model that speaks camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_json_dict(self) -> dict:
        """Dump to the persisted/wire representation."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# LEDGER RECORDS
# =============================================================================

class TransactionDraft(CamelModel):
    """
    A transaction before the store has given it an identity.

    Produced by the manual entry form and by the AI flow. ``date`` may be
    left empty, in which case the store stamps the current instant.
    """

    amount: float
    category_id: str
    type: TransactionType
    note: str = ""
    date: Optional[datetime] = None


class Transaction(CamelModel):
    """
    A single recorded income or expense event.

    NOTE: amount sign and type/category agreement are not enforced.
    Records from the model pass through as the model returned them.
    """

    id: str
    amount: float
    category_id: str
    type: TransactionType
    note: str = ""
    date: datetime = Field(
        ...,
        description="Business date the transaction is attributed to"
    )
    created_at: datetime = Field(
        ...,
        description="When the record was created"
    )

    @property
    def is_income(self) -> bool:
        return self.type == TransactionType.INCOME


class Budget(CamelModel):
    """A spending ceiling; category_id 'all' is the total budget."""

    id: str
    category_id: str
    amount: float
    period: Literal["monthly"] = "monthly"


TOTAL_BUDGET_CATEGORY = "all"

DEFAULT_BUDGETS: tuple[Budget, ...] = (
    Budget(
        id="total-budget",
        category_id=TOTAL_BUDGET_CATEGORY,
        amount=3000,
        period="monthly",
    ),
)


# =============================================================================
# AI REQUEST / RESPONSE SHAPES
# =============================================================================

class InlineData(CamelModel):
    """Base64 payload with its MIME type."""

    mime_type: str = Field(..., min_length=1)
    data: str = Field(..., min_length=1, description="Base64-encoded content")


class MultimodalPart(CamelModel):
    """
    One unit of input content for the model.

    Exactly one of ``text`` or ``inline_data`` is set.
    """

    text: Optional[str] = None
    inline_data: Optional[InlineData] = None

    @model_validator(mode='after')
    def validate_single_payload(self) -> 'MultimodalPart':
        if (self.text is None) == (self.inline_data is None):
            raise ValueError("A part carries either text or inline data")
        return self

    @classmethod
    def from_text(cls, text: str) -> 'MultimodalPart':
        return cls(text=text)

    @classmethod
    def from_base64(cls, mime_type: str, data: str) -> 'MultimodalPart':
        return cls(inline_data=InlineData(mime_type=mime_type, data=data))

    @property
    def is_text(self) -> bool:
        return self.text is not None


class ParsedTransaction(CamelModel):
    """
    Raw model output for one line item.

    All four fields are required by the response schema. No id, date or
    creation time: those are stamped when the record enters the ledger.
    """

    amount: float
    category_id: str
    type: TransactionType
    note: str

    def to_draft(self, when: Optional[datetime] = None) -> TransactionDraft:
        return TransactionDraft(
            amount=self.amount,
            category_id=self.category_id,
            type=self.type,
            note=self.note,
            date=when,
        )


# =============================================================================
# REPORT SHAPES
# =============================================================================

class DailySummary(BaseModel):
    """Transactions of one calendar day with their totals."""

    date: date_type
    income: float = 0.0
    expense: float = 0.0
    transactions: list[Transaction] = Field(default_factory=list)
