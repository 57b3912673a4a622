"""
Main Orchestrator for Smart Ledger

This module ties together all the components and defines the
end-to-end flows for:
1. AI entry (staged parts -> model -> repair -> ledger)
2. Manual entry (form values -> ledger)

DESIGN DECISION: The orchestrator is the error boundary. Every failure
below it is turned into one of a few fixed user-facing messages, and
control always returns to the UI in a ready-to-retry state. No
structured error codes leak to the pages.
"""

import math
from datetime import date, datetime, time, timezone, tzinfo
from typing import Optional, Union

import structlog

from smart_ledger.agents import AIResponseError, TransactionParsingAgent
from smart_ledger.audit import AuditLogger, create_correlation_id
from smart_ledger.capture import CaptureSession, NothingStagedError
from smart_ledger.config import Settings, get_settings
from smart_ledger.models.categories import CategoryRegistry, get_registry
from smart_ledger.models.ledger import Transaction, TransactionDraft, TransactionType
from smart_ledger.queries.reports import local_date, local_timezone
from smart_ledger.services.storage import KeyValueBackend, PersistenceGateway, detect_backend
from smart_ledger.store import LedgerStore


logger = structlog.get_logger(__name__)

MSG_NOTHING_STAGED = NothingStagedError.user_message
MSG_BUSY = "正在提取商品明细，请稍候。"
MSG_NOTHING_RECOGNIZED = "未能识别清晰的商品明细。请尝试更清晰的照片或描述。"
MSG_AI_FAILED = "AI 智能分析失败，请检查网络或重试。"
MSG_INVALID_AMOUNT = "请输入有效金额。"
MSG_UNKNOWN_CATEGORY = "请选择分类。"


class AIEntryFlow:
    """
    Orchestrates the AI entry flow.

    Flow:
    1. Check something is staged (else reject locally, no request)
    2. Build parts from the capture session
    3. One model call (the only suspension point)
    4. Repair unknown categories
    5. Stamp today's date and add everything in one add_many call

    One request at a time: while a call is pending, ``busy`` is True and
    further submissions are rejected. The flag belongs to this flow object;
    give each user session its own flow (see ``for_session``).

    "Today" in the instruction is the calendar date in the local timezone.
    """

    def __init__(
        self,
        agent: TransactionParsingAgent,
        store: LedgerStore,
        audit_logger: Optional[AuditLogger] = None,
        tz: Optional[tzinfo] = None,
    ):
        self._agent = agent
        self._store = store
        self._audit_logger = audit_logger
        self._tz = tz
        self._busy = False

    @property
    def busy(self) -> bool:
        return self._busy

    @property
    def agent(self) -> TransactionParsingAgent:
        return self._agent

    def for_session(self) -> "AIEntryFlow":
        """A flow sharing this agent, store and audit log, with its own busy flag."""
        return AIEntryFlow(self._agent, self._store, self._audit_logger, tz=self._tz)

    async def submit(
        self,
        capture: CaptureSession,
        now: Optional[datetime] = None,
    ) -> tuple[list[Transaction], Optional[str]]:
        """
        Turn the staged input into ledger entries.

        Returns:
            (added_transactions, error_message)

        On success the error message is None and the capture session is
        reset. On failure nothing is added and the session keeps its
        content so the user can retry.
        """
        if self._busy:
            return [], MSG_BUSY

        correlation_id = create_correlation_id()

        try:
            parts = capture.build_parts()
        except NothingStagedError:
            if self._audit_logger:
                self._audit_logger.log_submission_rejected("nothing staged", correlation_id)
            return [], MSG_NOTHING_STAGED

        self._busy = True
        try:
            if self._audit_logger:
                self._audit_logger.log_ai_request_sent(
                    capture.part_kinds(),
                    self._agent.model_name,
                    correlation_id,
                )

            now = now or datetime.now(timezone.utc)
            try:
                result = await self._agent.extract_transactions(
                    parts,
                    today=local_date(now, self._tz),
                )
            except AIResponseError as e:
                if self._audit_logger:
                    self._audit_logger.log_ai_request_failed("response", str(e), correlation_id)
                return [], MSG_NOTHING_RECOGNIZED
            except Exception as e:
                logger.error("ai_entry_failed", error=str(e), correlation_id=str(correlation_id))
                if self._audit_logger:
                    self._audit_logger.log_ai_request_failed(type(e).__name__, str(e), correlation_id)
                return [], MSG_AI_FAILED

            if self._audit_logger:
                self._audit_logger.log_ai_response_parsed(len(result.records), correlation_id)
                if result.repairs:
                    self._audit_logger.log_categories_repaired(result.repairs, correlation_id)

            drafts = [record.to_draft(now) for record in result.records]
            updated = self._store.add_many(drafts, source="ai", correlation_id=correlation_id)
            added = updated[:len(drafts)]

            capture.reset()
            return added, None
        finally:
            self._busy = False


class ManualEntryFlow:
    """
    Orchestrates the manual entry form.

    The note defaults to the category's display name; the chosen day is
    stored as local midnight of that day, so it groups under the same
    calendar date in history and reports.
    """

    def __init__(
        self,
        store: LedgerStore,
        registry: Optional[CategoryRegistry] = None,
        tz: Optional[tzinfo] = None,
    ):
        self._store = store
        self._registry = registry or get_registry()
        self._tz = tz

    def submit(
        self,
        amount: Union[str, float, int, None],
        category_id: str,
        txn_type: Union[TransactionType, str],
        note: str = "",
        day: Optional[date] = None,
    ) -> tuple[Optional[Transaction], Optional[str]]:
        """
        Validate the form and add one transaction.

        Returns:
            (transaction, error_message)
        """
        try:
            value = float(amount) if amount not in (None, "") else None
        except (TypeError, ValueError):
            value = None
        if value is None or not math.isfinite(value):
            return None, MSG_INVALID_AMOUNT

        category = self._registry.find_by_id(category_id)
        try:
            txn_type = TransactionType(txn_type)
        except ValueError:
            category = None
        if category is None:
            return None, MSG_UNKNOWN_CATEGORY

        draft = TransactionDraft(
            amount=value,
            category_id=category.id,
            type=txn_type,
            note=(note or "").strip() or category.name,
            date=datetime.combine(day, time.min, tzinfo=self._tz or local_timezone()) if day else None,
        )
        updated = self._store.add_one(draft, source="manual")
        return updated[0], None


def create_app_components(
    backend: Optional[KeyValueBackend] = None,
    settings: Optional[Settings] = None,
) -> tuple[LedgerStore, Optional[AIEntryFlow], ManualEntryFlow, AuditLogger]:
    """
    Factory function to create all application components.

    Args:
        backend: Storage backend to use. If None, one is detected from
            settings (Google Sheets if configured, else local files).
        settings: Settings to use; loaded from the environment if None.

    Returns:
        (ledger_store, ai_entry_flow, manual_entry_flow, audit_logger)

    The AI flow is None when Gemini isn't configured; manual entry
    keeps working.
    """
    settings = settings or get_settings()
    backend = backend or detect_backend(settings)
    gateway = PersistenceGateway.from_settings(backend, settings)

    storage_settings = settings.storage
    audit_logger = AuditLogger(
        gateway,
        audit_key=storage_settings.audit_key,
        retention=storage_settings.audit_retention,
        max_chars=storage_settings.audit_max_chars,
    )
    registry = get_registry()
    store = LedgerStore(gateway, audit_logger=audit_logger)

    ai_flow = None
    try:
        agent = TransactionParsingAgent(registry=registry)
        ai_flow = AIEntryFlow(agent, store, audit_logger=audit_logger)
    except Exception as e:
        # AI not configured - continue without it
        logger.warning("ai_entry_unavailable", error=str(e))
        audit_logger.log_error(type(e).__name__, "AI entry unavailable: " + str(e)[:200])

    manual_flow = ManualEntryFlow(store, registry=registry)
    return store, ai_flow, manual_flow, audit_logger
