"""Tests for the transaction parsing agent (fake model, no network)."""

import asyncio
import base64
from datetime import date

import pytest

from smart_ledger.agents import (
    RESPONSE_SCHEMA,
    AIResponseError,
    AIServiceError,
    TransactionParsingAgent,
    build_instruction,
    parse_response_text,
    repair_categories,
)
from smart_ledger.models.ledger import MultimodalPart, ParsedTransaction

from conftest import FakeModel


TODAY = date(2024, 3, 5)


class TestInstruction:
    """Tests for the prompt text."""

    def test_lists_every_category_id(self, registry):
        instruction = build_instruction(registry, TODAY)
        for category in registry:
            assert f"ID: {category.id}" in instruction

    def test_contains_date(self, registry):
        assert "2024/3/5" in build_instruction(registry, TODAY)

    def test_demands_item_level_split(self, registry):
        instruction = build_instruction(registry, TODAY)
        assert "牛奶" in instruction
        assert "啤酒" in instruction
        assert "商户-商品名" in instruction

    def test_schema_requires_all_fields(self):
        item = RESPONSE_SCHEMA["items"]
        assert RESPONSE_SCHEMA["type"] == "array"
        assert set(item["required"]) == {"amount", "categoryId", "type", "note"}
        assert item["properties"]["type"]["enum"] == ["expense", "income"]


class TestParseResponse:
    """Tests for turning model text into records."""

    def test_valid_array(self):
        records = parse_response_text(
            '[{"amount": 15, "categoryId": "food", "type": "expense", "note": "奶茶"}]'
        )
        assert records[0].category_id == "food"
        assert records[0].amount == 15

    def test_array_inside_code_fence(self):
        text = '```json\n[{"amount": 1, "categoryId": "food", "type": "expense", "note": "x"}]\n```'
        assert len(parse_response_text(text)) == 1

    @pytest.mark.parametrize("text", [
        None,
        "",
        "sorry, I can't help",
        '{"amount": 1}',
        "[]",
        '[{"amount": 1, "categoryId": "food", "type": "expense"}]',
        '[{"amount": "lots", "categoryId": "food", "type": "expense", "note": "x"}]',
    ])
    def test_unusable_output_raises(self, text):
        with pytest.raises(AIResponseError):
            parse_response_text(text)

    @pytest.mark.parametrize("amount", ['"15"', "true"])
    def test_amount_must_be_a_json_number(self, amount):
        text = f'[{{"amount": {amount}, "categoryId": "food", "type": "expense", "note": "奶茶"}}]'
        with pytest.raises(AIResponseError):
            parse_response_text(text)

    def test_integer_amount_is_accepted_as_float(self):
        records = parse_response_text('[{"amount": 15, "categoryId": "food", "type": "income", "note": "x"}]')
        assert isinstance(records[0].amount, float)
        assert records[0].type.value == "income"


class TestRepairCategories:
    """Tests for replacing unknown category ids."""

    def test_unknown_income_becomes_other_inc(self, registry):
        records = [ParsedTransaction(amount=50, category_id="unknown_cat", type="income", note="红包")]
        repaired, repairs = repair_categories(records, registry)
        assert repaired[0].category_id == "other_inc"
        assert repaired[0].amount == 50
        assert repaired[0].note == "红包"
        assert repairs == [{"index": 0, "original": "unknown_cat", "replacement": "other_inc"}]

    def test_unknown_expense_becomes_other_exp(self, registry):
        records = [ParsedTransaction(amount=5, category_id="snacks", type="expense", note="薯片")]
        repaired, _ = repair_categories(records, registry)
        assert repaired[0].category_id == "other_exp"

    def test_known_ids_untouched_and_input_not_mutated(self, registry):
        records = [
            ParsedTransaction(amount=15, category_id="food", type="expense", note="牛奶"),
            ParsedTransaction(amount=9, category_id="bogus", type="expense", note="?"),
        ]
        repaired, repairs = repair_categories(records, registry)
        assert repaired[0].category_id == "food"
        assert records[1].category_id == "bogus"
        assert [r["index"] for r in repairs] == [1]


class TestTransactionParsingAgent:
    """Tests for the request/response round trip."""

    def test_request_is_instruction_then_parts(self, registry):
        agent = TransactionParsingAgent(registry=registry, model=FakeModel())
        parts = [
            MultimodalPart.from_text("收据"),
            MultimodalPart.from_base64("image/png", base64.b64encode(b"png").decode()),
        ]
        request = agent.build_request(parts, TODAY)

        assert len(request) == 3
        assert "2024/3/5" in request[0]
        assert request[1] == "收据"
        assert request[2] == {"mime_type": "image/png", "data": b"png"}

    def test_build_request_needs_parts(self, registry):
        agent = TransactionParsingAgent(registry=registry, model=FakeModel())
        with pytest.raises(ValueError):
            agent.build_request([], TODAY)

    def test_extract_repairs_categories(self, registry):
        model = FakeModel(reply=[
            {"amount": 15, "categoryId": "food", "type": "expense", "note": "盒马-牛奶"},
            {"amount": 50, "categoryId": "unknown_cat", "type": "income", "note": "红包"},
        ])
        agent = TransactionParsingAgent(registry=registry, model=model)

        result = asyncio.run(agent.extract_transactions([MultimodalPart.from_text("x")], TODAY))

        assert [r.category_id for r in result.records] == ["food", "other_inc"]
        assert len(result.repairs) == 1
        assert result.total_amount == 65
        assert len(model.requests) == 1

    def test_service_failure(self, registry):
        agent = TransactionParsingAgent(registry=registry, model=FakeModel(error=ConnectionError("offline")))
        with pytest.raises(AIServiceError):
            asyncio.run(agent.parse_parts([MultimodalPart.from_text("x")], TODAY))

    def test_empty_array_is_response_error(self, registry):
        agent = TransactionParsingAgent(registry=registry, model=FakeModel(reply=[]))
        with pytest.raises(AIResponseError):
            asyncio.run(agent.parse_parts([MultimodalPart.from_text("x")], TODAY))

    def test_model_name_from_injected_model(self, registry):
        agent = TransactionParsingAgent(registry=registry, model=FakeModel())
        assert agent.model_name == "fake-model"
