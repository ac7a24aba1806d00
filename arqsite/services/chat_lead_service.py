"""Lead intelligence gathered from the website chat.

Every chat reply records the visitor, the conversation and a heuristic lead
score. Recording is best-effort like the public forms: a missing or failing
database is logged and the chat still answers. The admin leads view reads
the same tables and needs the database.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Sequence

from arqsite.adapters.database.base import AbstractDataStore, AnyOf, AtLeast, Row
from arqsite.core.errors import ConfigurationAppError, ExternalServiceAppError
from arqsite.core.logging import email_domain
from arqsite.schemas.ai import ChatTurn
from arqsite.schemas.chat_leads import BehavioralSignal, ChatLeadScore, ChatVisitor, LeadStats, PriorityTier
from arqsite.services.lead_scoring import (
    MAX_STORED_SIGNALS,
    intent_category,
    priority_tier,
    score_conversation,
)
from arqsite.utils.dates import utcnow

logger = logging.getLogger(__name__)

USERS_TABLE = "users"
CONVERSATIONS_TABLE = "conversations"
INTELLIGENCE_TABLE = "lead_intelligence"
SESSIONS_TABLE = "sessions"

ADMIN_LIST_LIMIT = 100
RECENT_WINDOW = timedelta(hours=24)
LEAD_FILTERS = ("intent_category", "company_size", "urgency", "qualification_status")


class ChatLeadService:
    """Stores chat visitors with their lead score and lists them for admins."""

    def __init__(
        self,
        store: AbstractDataStore | None,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store
        self.clock = clock

    def _require_store(self) -> AbstractDataStore:
        if self.store is None:
            raise ConfigurationAppError(code="database_not_configured", message="Database not configured")
        return self.store

    async def record_message(
        self,
        session_id: str,
        message: str,
        visitor: ChatVisitor,
        history: Sequence[ChatTurn] = (),
        reply: str | None = None,
        current_page: str | None = None,
    ) -> PriorityTier | None:
        """Score the conversation so far and store it for the session.

        Returns the follow-up tier, or None when nothing could be stored.
        """
        if self.store is None:
            logger.warning("chat_lead.not_stored", extra={"reason": "database_not_configured"})
            return None
        try:
            return await self._record_message(
                self.store, session_id, message, visitor, history, reply, current_page
            )
        except ExternalServiceAppError as exc:
            logger.error("chat_lead.store_failed", extra={"error_code": exc.code})
            return None

    async def _record_message(
        self,
        store: AbstractDataStore,
        session_id: str,
        message: str,
        visitor: ChatVisitor,
        history: Sequence[ChatTurn],
        reply: str | None,
        current_page: str | None,
    ) -> PriorityTier:
        now = self.clock().isoformat()
        user = await self._upsert_user(store, session_id, visitor, now)

        transcript = [turn.model_dump() for turn in history]
        transcript.append({"role": "user", "content": message})
        if reply is not None:
            transcript.append({"role": "assistant", "content": reply})
        await self._upsert_conversation(store, user["id"], session_id, transcript, current_page, now)

        existing = await store.select_one(INTELLIGENCE_TABLE, {"user_id": user["id"]})
        stored_signals = [BehavioralSignal.model_validate(s) for s in (existing or {}).get("behavioral_signals") or []]
        visitor_messages = [turn.content for turn in history if turn.role == "user"] + [message]
        lead = score_conversation(visitor_messages, visitor, self.clock(), stored_signals)

        values = self._intelligence_values(lead, existing, now)
        if existing:
            await store.update(INTELLIGENCE_TABLE, values, {"id": existing["id"]})
        else:
            await store.insert(INTELLIGENCE_TABLE, {"user_id": user["id"], **values})

        tier = priority_tier(lead)
        if tier == "tier1" or values["intent_category"] == "hot":
            logger.warning(
                "chat_lead.hot",
                extra={
                    "priority_tier": tier,
                    "buy_intent_score": values["buy_intent_score"],
                    "urgency": lead.urgency,
                    "company_size": lead.company_size,
                    "email_domain": email_domain(visitor.email),
                },
            )
        logger.info(
            "chat_lead.recorded",
            extra={"priority_tier": tier, "signals": len(lead.behavioral_signals)},
        )
        return tier

    @staticmethod
    def _intelligence_values(lead: ChatLeadScore, existing: Row | None, now: str) -> dict[str, Any]:
        # The stored score never drops within a session
        score = max(lead.buy_intent_score, int((existing or {}).get("buy_intent_score") or 0))
        values = lead.model_dump(mode="json")
        values.update(
            {
                "buy_intent_score": score,
                "intent_category": intent_category(score),
                "behavioral_signals": values["behavioral_signals"][-MAX_STORED_SIGNALS:],
                "updated_at": now,
            }
        )
        return values

    async def _upsert_user(self, store: AbstractDataStore, session_id: str, visitor: ChatVisitor, now: str) -> Row:
        known = visitor.model_dump(exclude_none=True)
        existing = await store.select_one(USERS_TABLE, {"session_id": session_id})
        if existing:
            rows = await store.update(USERS_TABLE, {**known, "updated_at": now}, {"id": existing["id"]})
            return rows[0] if rows else existing
        return await store.insert(USERS_TABLE, {"session_id": session_id, **known, "updated_at": now})

    async def _upsert_conversation(
        self,
        store: AbstractDataStore,
        user_id: str,
        session_id: str,
        transcript: list[dict[str, Any]],
        current_page: str | None,
        now: str,
    ) -> None:
        page_context = {"current_page": current_page} if current_page else None
        existing = await store.select_one(CONVERSATIONS_TABLE, {"session_id": session_id, "is_active": True})
        if existing:
            await store.update(
                CONVERSATIONS_TABLE,
                {"messages": transcript, "page_context": page_context},
                {"id": existing["id"]},
            )
            return
        await store.insert(
            CONVERSATIONS_TABLE,
            {
                "user_id": user_id,
                "session_id": session_id,
                "messages": transcript,
                "page_context": page_context,
                "started_at": now,
                "is_active": True,
            },
        )

    async def record_session(
        self,
        session_id: str,
        *,
        ip_address: str | None = None,
        user_agent: str | None = None,
        current_page: str | None = None,
    ) -> None:
        """Track the pages a chat session has been seen on."""
        if self.store is None:
            logger.warning("chat_session.not_stored", extra={"reason": "database_not_configured"})
            return
        try:
            await self._record_session(self.store, session_id, ip_address, user_agent, current_page)
        except ExternalServiceAppError as exc:
            logger.error("chat_session.store_failed", extra={"error_code": exc.code})

    async def _record_session(
        self,
        store: AbstractDataStore,
        session_id: str,
        ip_address: str | None,
        user_agent: str | None,
        current_page: str | None,
    ) -> None:
        now = self.clock().isoformat()
        existing = await store.select_one(SESSIONS_TABLE, {"session_id": session_id})
        if existing:
            changes: dict[str, Any] = {"last_activity": now}
            pages = list(existing.get("pages_visited") or [])
            if current_page and current_page not in pages:
                changes["pages_visited"] = pages + [current_page]
            await store.update(SESSIONS_TABLE, changes, {"id": existing["id"]})
            return
        await store.insert(
            SESSIONS_TABLE,
            {
                "session_id": session_id,
                "ip_address": ip_address,
                "user_agent": user_agent,
                "pages_visited": [current_page] if current_page else [],
                "first_visit": now,
                "last_activity": now,
            },
        )

    # Admin back-office

    async def list_leads(self, **filters: str | None) -> list[dict[str, Row]]:
        """Most recently updated leads with their visitor record.

        Accepts ``intent_category``, ``company_size``, ``urgency`` and
        ``qualification_status``; empty values and ``"all"`` are ignored.
        Scores whose visitor row is gone are left out.
        """
        store = self._require_store()
        applied = {
            key: value for key, value in filters.items() if key in LEAD_FILTERS and value and value != "all"
        }
        intelligence = await store.select(
            INTELLIGENCE_TABLE, filters=applied, order_by="updated_at", limit=ADMIN_LIST_LIMIT
        )
        if not intelligence:
            return []

        user_ids = tuple(dict.fromkeys(row["user_id"] for row in intelligence))
        users = await store.select(USERS_TABLE, filters={"id": AnyOf(user_ids)}, order_by=None)
        users_by_id = {user["id"]: user for user in users}

        return [
            {"user": users_by_id[row["user_id"]], "intelligence": row}
            for row in intelligence
            if row["user_id"] in users_by_id
        ]

    async def lead_stats(self) -> LeadStats:
        store = self._require_store()
        since = (self.clock() - RECENT_WINDOW).isoformat()
        return LeadStats(
            total=await store.count(INTELLIGENCE_TABLE),
            hot=await store.count(INTELLIGENCE_TABLE, filters={"intent_category": "hot"}),
            warm=await store.count(INTELLIGENCE_TABLE, filters={"intent_category": "warm"}),
            cold=await store.count(INTELLIGENCE_TABLE, filters={"intent_category": "cold"}),
            qualified=await store.count(INTELLIGENCE_TABLE, filters={"qualification_status": "qualified"}),
            enterprise=await store.count(INTELLIGENCE_TABLE, filters={"company_size": "enterprise"}),
            recent_leads=await store.count(INTELLIGENCE_TABLE, filters={"created_at": AtLeast(since)}),
        )
