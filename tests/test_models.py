"""
Tests for Smart Ledger

Test strategy:
1. Unit tests for individual components (models, registry, storage, capture)
2. Integration tests for flows (with a fake model)
3. No real API calls in tests
"""

import pytest
from datetime import datetime, timezone
from uuid import uuid4

from smart_ledger.models.ledger import (
    DEFAULT_BUDGETS,
    TOTAL_BUDGET_CATEGORY,
    Budget,
    MultimodalPart,
    ParsedTransaction,
    Transaction,
    TransactionType,
)
from smart_ledger.models.categories import (
    CATEGORIES,
    OTHER_EXPENSE_ID,
    OTHER_INCOME_ID,
    Category,
    CategoryRegistry,
)
from smart_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


class TestLedgerModels:
    """Tests for transaction and budget models."""

    def test_transaction_dumps_camel_case(self):
        """Persisted form uses categoryId and createdAt."""
        when = datetime(2024, 3, 5, 12, 0, tzinfo=timezone.utc)
        txn = Transaction(
            id="t1",
            amount=15,
            category_id="food",
            type=TransactionType.EXPENSE,
            note="奶茶",
            date=when,
            created_at=when,
        )
        data = txn.to_json_dict()
        assert data["categoryId"] == "food"
        assert data["type"] == "expense"
        assert "createdAt" in data
        assert "category_id" not in data

    def test_transaction_accepts_camel_case_input(self):
        """Stored records load back by alias."""
        txn = Transaction.model_validate({
            "id": "t1",
            "amount": 8.5,
            "categoryId": "transport",
            "type": "expense",
            "note": "地铁",
            "date": "2024-03-05T01:00:00Z",
            "createdAt": "2024-03-05T01:00:00Z",
        })
        assert txn.category_id == "transport"
        assert txn.date.tzinfo is not None

    def test_transaction_rejects_unknown_type(self):
        with pytest.raises(ValueError):
            Transaction(
                id="t1",
                amount=1,
                category_id="food",
                type="refund",
                date=datetime.now(timezone.utc),
                created_at=datetime.now(timezone.utc),
            )

    def test_negative_amount_is_not_rejected(self):
        """Amount sign is not part of the model's contract."""
        record = ParsedTransaction(amount=-3, category_id="food", type="expense", note="x")
        assert record.amount == -3

    def test_is_income_follows_type(self):
        when = datetime(2024, 3, 5, tzinfo=timezone.utc)
        kwargs = dict(id="t1", amount=5, category_id="food", note="x", date=when, created_at=when)
        assert Transaction(type=TransactionType.INCOME, **kwargs).is_income
        assert not Transaction(type=TransactionType.EXPENSE, **kwargs).is_income

    def test_default_budget_is_total_3000(self):
        assert len(DEFAULT_BUDGETS) == 1
        budget = DEFAULT_BUDGETS[0]
        assert budget.category_id == TOTAL_BUDGET_CATEGORY
        assert budget.amount == 3000
        assert budget.period == "monthly"

    def test_budget_period_is_monthly_only(self):
        with pytest.raises(ValueError):
            Budget(id="b", category_id="all", amount=100, period="weekly")

    def test_parsed_transaction_to_draft_stamps_date(self):
        when = datetime(2024, 3, 5, tzinfo=timezone.utc)
        record = ParsedTransaction(amount=10, category_id="food", type="expense", note="盒马-啤酒")
        draft = record.to_draft(when)
        assert draft.date == when
        assert draft.note == "盒马-啤酒"


class TestMultimodalPart:
    """Tests for the model input part."""

    def test_text_part(self):
        part = MultimodalPart.from_text("午饭 30")
        assert part.is_text
        assert part.to_json_dict() == {"text": "午饭 30"}

    def test_inline_part_dumps_camel_case(self):
        part = MultimodalPart.from_base64("image/jpeg", "AAAA")
        assert not part.is_text
        assert part.to_json_dict() == {"inlineData": {"mimeType": "image/jpeg", "data": "AAAA"}}

    def test_part_needs_exactly_one_payload(self):
        with pytest.raises(ValueError):
            MultimodalPart()
        with pytest.raises(ValueError):
            MultimodalPart(text="x", inline_data={"mime_type": "image/png", "data": "AA"})


class TestCategoryRegistry:
    """Tests for the category catalog."""

    def test_catalog_has_twelve_categories_in_order(self, registry):
        ids = [c.id for c in registry.list_all()]
        assert len(registry) == 12
        assert ids[0] == "food"
        assert ids[-1] == OTHER_INCOME_ID

    def test_ids_are_unique(self, registry):
        ids = [c.id for c in registry]
        assert len(ids) == len(set(ids))

    def test_find_by_id(self, registry):
        assert registry.find_by_id("food").name == "餐饮"
        assert registry.find_by_id("nope") is None

    def test_for_type_filters(self, registry):
        income = registry.for_type(TransactionType.INCOME)
        assert [c.id for c in income] == ["salary", "bonus", "investment", OTHER_INCOME_ID]

    def test_fallback_for_type(self, registry):
        assert registry.fallback_for(TransactionType.EXPENSE).id == OTHER_EXPENSE_ID
        assert registry.fallback_for(TransactionType.INCOME).id == OTHER_INCOME_ID

    def test_name_of_with_default(self, registry):
        assert registry.name_of("salary") == "工资"
        assert registry.name_of("missing", default="?") == "?"

    def test_duplicate_ids_rejected(self):
        with pytest.raises(ValueError):
            CategoryRegistry(list(CATEGORIES) + [CATEGORIES[0]])

    def test_missing_fallback_rejected(self):
        categories = [c for c in CATEGORIES if c.id != OTHER_INCOME_ID]
        with pytest.raises(ValueError):
            CategoryRegistry(categories)

    def test_categories_are_frozen(self):
        with pytest.raises(ValueError):
            CATEGORIES[0].name = "changed"

    def test_custom_category(self):
        extra = Category(id="pets", name="宠物", icon="🐶", color="bg-amber-400", type="expense")
        registry = CategoryRegistry(list(CATEGORIES) + [extra])
        assert registry.is_known("pets")


class TestAuditModels:
    """Tests for audit event models."""

    def test_audit_event_creation(self):
        """Test AuditEvent creation with defaults."""
        event = AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            description="Test event",
        )
        assert event.event_id is not None
        assert event.timestamp is not None
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        correlation_id = uuid4()
        event = AuditEventBuilder.transactions_added(["a", "b"], "ai", correlation_id)
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "transactions_added"
        assert log_dict["correlation_id"] == str(correlation_id)
        assert log_dict["details"]["transaction_ids"] == ["a", "b"]

    def test_categories_repaired_is_warning(self):
        event = AuditEventBuilder.categories_repaired(
            [{"index": 0, "original": "unknown_cat", "replacement": "other_inc"}],
            uuid4(),
        )
        assert event.event_type == AuditEventType.CATEGORIES_REPAIRED
        assert event.severity == AuditSeverity.WARNING

    def test_ai_request_failed_is_error(self):
        event = AuditEventBuilder.ai_request_failed("ConnectionError", "offline", uuid4())
        assert event.severity == AuditSeverity.ERROR
        assert event.error_message == "offline"
