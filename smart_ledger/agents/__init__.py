"""AI Agents package."""

from smart_ledger.agents.ai_agents import (
    RESPONSE_SCHEMA,
    AIError,
    AIResponseError,
    AIServiceError,
    ExtractionResult,
    TransactionParsingAgent,
    build_instruction,
    parse_response_text,
    repair_categories,
)

__all__ = [
    "RESPONSE_SCHEMA",
    "AIError",
    "AIResponseError",
    "AIServiceError",
    "ExtractionResult",
    "TransactionParsingAgent",
    "build_instruction",
    "parse_response_text",
    "repair_categories",
]
