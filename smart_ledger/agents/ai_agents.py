"""
AI Agents for Smart Ledger

DESIGN DECISION: The model is used for exactly one job: turning
whatever the user staged (text, a receipt photo, a voice memo) into
item-level transaction records. Correctness rests on three things:
1. The instruction forces one record per purchased item, never per category
2. The category vocabulary is spelled out, so ids come from a known set
3. A strict response schema makes the output parseable JSON

CRITICAL BOUNDARIES:
- CAN: Propose amount, category, type and note for each line item
- CANNOT: Persist anything (the orchestrator does that)
- CANNOT: Introduce categories. Unknown ids are replaced with the
  type-appropriate "other" category before anything leaves this module

Nothing else the model returns is clamped or corrected. A negative or
absurd amount passes through as-is.
"""

import base64
import json
from datetime import date
from typing import Any, Optional

import google.generativeai as genai
import structlog
from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from smart_ledger.config import GeminiSettings, get_settings
from smart_ledger.models.categories import CategoryRegistry, get_registry
from smart_ledger.models.ledger import MultimodalPart, ParsedTransaction, TransactionType


logger = structlog.get_logger(__name__)


class AIError(Exception):
    """Base exception for the AI pipeline."""
    pass


class AIServiceError(AIError):
    """The model could not be reached or the call raised."""
    pass


class AIResponseError(AIError):
    """The model answered, but not with a usable non-empty JSON array."""
    pass


RESPONSE_SCHEMA: dict[str, Any] = {
    "type": "array",
    "items": {
        "type": "object",
        "properties": {
            "amount": {
                "type": "number",
                "description": "该单项商品的金额",
            },
            "categoryId": {
                "type": "string",
                "description": "对应的分类ID",
            },
            "type": {
                "type": "string",
                "format": "enum",
                "enum": [t.value for t in TransactionType],
            },
            "note": {
                "type": "string",
                "description": "备注，格式：商户-商品名，如：盒马-牛奶",
            },
        },
        "required": ["amount", "categoryId", "type", "note"],
    },
}

_PARSED_LIST = TypeAdapter(list[ParsedTransaction])


class ExtractionResult(BaseModel):
    """Repaired records from one model call."""

    records: list[ParsedTransaction]
    repairs: list[dict] = Field(
        default_factory=list,
        description="Category ids that were replaced: index, original, replacement"
    )

    @property
    def total_amount(self) -> float:
        return sum(r.amount for r in self.records)


def format_vocabulary(registry: CategoryRegistry) -> str:
    """Render every category as '名称 (ID: id, 类型: 支出|收入)'."""
    return ", ".join(
        f"{c.name} (ID: {c.id}, 类型: {'支出' if c.type == TransactionType.EXPENSE else '收入'})"
        for c in registry.list_all()
    )


def build_instruction(registry: CategoryRegistry, today: date) -> str:
    """The task description sent ahead of the user's parts."""
    return f"""你是一名极其严谨的财务会计，负责把账单拆解到商品级别。

【核心任务】
从图片、语音或文字中提取【具体商品条目】。不要按分类合并，每件商品都要保留为独立的一条记录。

【处理原则】
1. 条目化拆分：用户买了多样物品时，即使它们属于同一个分类，也必须拆成独立的记录。
   - 示例：图片中有“牛奶 15元”和“啤酒 10元”，两者都属于餐饮 (food)，你应该生成两条记录，而不是一条合并的记录。
2. 分类匹配：根据商品属性，从下方的可选分类中选择最准确的一个，categoryId 只能使用列表中的 ID。
   - 牛奶、啤酒、蔬菜 -> 餐饮 (food)
   - 洗发水、纸巾、毛巾 -> 购物 (shopping)
   - 药品、口罩 -> 医疗 (health)
3. 备注：直接写商品名称；如果能看出商户，写成“商户-商品名”的格式。
4. 金额：填写该单项商品的实际成交价。
5. 总额校验：如果能看出实付总额，拆分后的单项金额之和必须等于该总额。
6. 收支类型：收入记为 income，支出记为 expense。

可选分类 ID 列表: {format_vocabulary(registry)}。
今天日期是 {today.year}/{today.month}/{today.day}。

请只返回一个 JSON 数组，每个元素包含 amount、categoryId、type、note 四个字段。"""


def to_sdk_part(part: MultimodalPart) -> Any:
    """Convert a part into what the Gemini SDK accepts (str or blob dict)."""
    if part.is_text:
        return part.text
    return {
        "mime_type": part.inline_data.mime_type,
        "data": base64.b64decode(part.inline_data.data),
    }


def parse_response_text(text: Optional[str]) -> list[ParsedTransaction]:
    """
    Parse model output into records.

    Raises:
        AIResponseError: Empty text, not JSON, not an array, an empty
            array, or an element missing a field / with a wrong type.
    """
    if not text or not text.strip():
        raise AIResponseError("Model returned no text")

    text = text.strip()
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        # Tolerate prose or code fences around the array
        start = text.find("[")
        end = text.rfind("]") + 1
        if start < 0 or end <= start:
            raise AIResponseError("Model output is not JSON")
        try:
            data = json.loads(text[start:end])
        except json.JSONDecodeError as e:
            raise AIResponseError(f"Model output is not JSON: {e}")

    if not isinstance(data, list):
        raise AIResponseError(f"Expected a JSON array, got {type(data).__name__}")
    if not data:
        raise AIResponseError("Model returned an empty array")

    try:
        # Strict JSON mode: "15" or true is not an amount
        return _PARSED_LIST.validate_json(json.dumps(data), strict=True)
    except ValidationError as e:
        raise AIResponseError(f"Model output has the wrong shape: {e.error_count()} errors")


def repair_categories(
    records: list[ParsedTransaction],
    registry: CategoryRegistry,
) -> tuple[list[ParsedTransaction], list[dict]]:
    """
    Replace unknown category ids with the fallback for the record's type.

    Returns repaired copies (input untouched) and a description of each
    replacement. Amount, type and note are never changed.
    """
    repaired = []
    repairs = []
    for index, record in enumerate(records):
        if registry.is_known(record.category_id):
            repaired.append(record.model_copy())
            continue

        fallback = registry.fallback_for(record.type)
        repairs.append({
            "index": index,
            "original": record.category_id,
            "replacement": fallback.id,
        })
        repaired.append(record.model_copy(update={"category_id": fallback.id}))
    return repaired, repairs


class TransactionParsingAgent:
    """
    AI agent for the multimodal entry flow.

    RESPONSIBILITIES:
    - Build the request (instruction + staged parts)
    - Call the model once, with a JSON response schema
    - Parse and repair the result

    BOUNDARIES:
    - NEVER persists data
    - NEVER retries; one submission is one request
    """

    def __init__(
        self,
        registry: Optional[CategoryRegistry] = None,
        model: Optional[Any] = None,
        settings: Optional[GeminiSettings] = None,
    ):
        """
        Args:
            registry: Category vocabulary; defaults to the built-in catalog.
            model: Object with ``generate_content_async``. If None, a Gemini
                model is configured from settings.
            settings: Gemini settings; loaded from the environment if None.
        """
        self._registry = registry or get_registry()
        if model is not None:
            self._settings = settings
            self._model = model
        else:
            self._settings = settings or get_settings().gemini
            self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        self._model = genai.GenerativeModel(
            model_name=self._settings.model_name,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
                "response_mime_type": "application/json",
                "response_schema": RESPONSE_SCHEMA,
            },
        )

    @property
    def model_name(self) -> str:
        if self._settings is not None:
            return self._settings.model_name
        return getattr(self._model, "model_name", type(self._model).__name__)

    @property
    def registry(self) -> CategoryRegistry:
        return self._registry

    def build_request(
        self,
        parts: list[MultimodalPart],
        today: Optional[date] = None,
    ) -> list[Any]:
        """Instruction first, then every staged part in order."""
        if not parts:
            raise ValueError("At least one part is required")
        instruction = build_instruction(self._registry, today or date.today())
        return [instruction, *(to_sdk_part(p) for p in parts)]

    async def parse_parts(
        self,
        parts: list[MultimodalPart],
        today: Optional[date] = None,
    ) -> list[ParsedTransaction]:
        """
        Send one request and parse the response (no repair).

        Raises:
            AIServiceError: The call itself failed.
            AIResponseError: The answer is not a usable non-empty array.
        """
        request = self.build_request(parts, today)

        try:
            response = await self._model.generate_content_async(request)
        except Exception as e:
            logger.error("ai_request_failed", model=self.model_name, error=str(e))
            raise AIServiceError(str(e)) from e

        try:
            text = response.text
        except ValueError as e:
            # Blocked or candidate-less responses have no text
            raise AIResponseError(f"Model returned no usable candidate: {e}") from e

        return parse_response_text(text)

    async def extract_transactions(
        self,
        parts: list[MultimodalPart],
        today: Optional[date] = None,
    ) -> ExtractionResult:
        """Parse the staged parts and repair category references."""
        records = await self.parse_parts(parts, today)
        repaired, repairs = repair_categories(records, self._registry)
        if repairs:
            logger.warning("ai_categories_repaired", repairs=repairs)
        return ExtractionResult(records=repaired, repairs=repairs)
