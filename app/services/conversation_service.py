"""
Swipematch — Conversation Ledger

Appends messages to a match and keeps the match's last-activity marker
(``matches.last_message_at``) in step.  The message insert and the marker
update share one transaction: a message is never visible unless its match's
marker has reached at least that message's timestamp.

Appends to one match are serialised on the match row (``SELECT ... FOR
UPDATE`` on PostgreSQL, the ``BEGIN IMMEDIATE`` write lock on SQLite) and each
message is stamped strictly after the previous one, so ``created_at`` alone
gives a total order within a conversation.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta

import structlog
from sqlalchemy import case, literal, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings, get_settings
from app.database import Store
from app.errors import ConflictError, InvalidArgumentError, NotFoundError
from app.models.match import Match
from app.models.message import Message
from app.utils.ids import coerce_uuid
from app.utils.timestamps import as_utc, utcnow

logger = structlog.get_logger("swipematch.conversation_service")

_TICK = timedelta(microseconds=1)


class ConversationService:
    """Conversation Ledger backed by the shared :class:`Store`.

    ``enforce_membership`` (``ENFORCE_MATCH_MEMBERSHIP``) rejects senders
    and readers who are not one of the match's two users with
    :class:`ConflictError`.  Switching it off restores the permissive
    behaviour where any existing user may post into any match.
    """

    def __init__(self, store: Store, settings: Settings | None = None) -> None:
        settings = settings or get_settings()
        self.store = store
        self.max_length: int = settings.MESSAGE_MAX_LENGTH
        self.enforce_membership: bool = settings.ENFORCE_MATCH_MEMBERSHIP

    # ── Public API ────────────────────────────────────────────────────────

    async def append_message(
        self,
        match_id: uuid.UUID | str,
        sender_id: uuid.UUID | str,
        content: str,
        image_url: str | None = None,
    ) -> Message:
        """Append a message and advance the match's last-activity marker.

        Raises
        ------
        InvalidArgumentError
            Malformed ids, blank or over-long content.
        NotFoundError
            The match does not exist.
        ConflictError
            The sender is not part of the match (when enforced).
        StoreFailureError
            Any persistence-layer failure; nothing is written.
        """
        match_id = coerce_uuid(match_id, "match_id")
        sender_id = coerce_uuid(sender_id, "sender_id")
        self._validate_content(content)

        log = logger.bind(match_id=str(match_id), sender_id=str(sender_id))

        async with self.store.transaction() as session:
            match = await self._get_match(session, match_id, lock=True)
            self._check_membership(match, sender_id, "sender")

            sent_at = self._next_sent_at(match)
            message = Message(
                match_id=match_id,
                sender_id=sender_id,
                content=content,
                image_url=image_url,
                is_read=False,
                created_at=sent_at,
            )
            session.add(message)
            await session.flush()
            await self._advance_last_activity(session, match_id, sent_at)
            await session.refresh(message)

        log.info("message_appended", message_id=str(message.id))
        return message

    async def list_messages(self, match_id: uuid.UUID | str) -> list[Message]:
        """Return the match's messages, oldest first."""
        match_id = coerce_uuid(match_id, "match_id")

        async with self.store.transaction() as session:
            await self._get_match(session, match_id)
            stmt = (
                select(Message)
                .where(Message.match_id == match_id)
                .order_by(Message.created_at.asc(), Message.id)
            )
            messages = list((await session.scalars(stmt)).all())

        logger.debug("messages_listed", match_id=str(match_id), count=len(messages))
        return messages

    async def mark_read(
        self,
        match_id: uuid.UUID | str,
        reader_id: uuid.UUID | str,
    ) -> int:
        """Mark every unread message the counterpart sent as read.

        Returns the number of messages updated.
        """
        match_id = coerce_uuid(match_id, "match_id")
        reader_id = coerce_uuid(reader_id, "reader_id")

        async with self.store.transaction() as session:
            match = await self._get_match(session, match_id)
            self._check_membership(match, reader_id, "reader")

            stmt = (
                update(Message)
                .where(
                    Message.match_id == match_id,
                    Message.sender_id != reader_id,
                    Message.is_read.is_(False),
                )
                .values(is_read=True)
                .execution_options(synchronize_session=False)
            )
            result = await session.execute(stmt)
            updated = result.rowcount

        logger.info(
            "messages_marked_read",
            match_id=str(match_id),
            reader_id=str(reader_id),
            updated=updated,
        )
        return updated

    # ── Private helpers ──────────────────────────────────────────────────

    def _validate_content(self, content: str) -> None:
        if not isinstance(content, str) or not content.strip():
            raise InvalidArgumentError("Message content must not be empty.")
        if len(content) > self.max_length:
            raise InvalidArgumentError(
                f"Message content exceeds {self.max_length} characters."
            )

    def _check_membership(self, match: Match, user_id: uuid.UUID, role: str) -> None:
        if self.enforce_membership and not match.involves(user_id):
            raise ConflictError(
                f"{role.capitalize()} {user_id} is not part of match {match.id}."
            )

    @staticmethod
    def _next_sent_at(match: Match) -> datetime:
        """Now, or one microsecond past the match's latest message if the clock
        has not moved on; timestamps within a match are strictly increasing."""
        now = utcnow()
        if match.last_message_at is None:
            return now
        return max(now, as_utc(match.last_message_at) + _TICK)

    @staticmethod
    async def _get_match(
        session: AsyncSession,
        match_id: uuid.UUID,
        lock: bool = False,
    ) -> Match:
        match = await session.get(Match, match_id, with_for_update=lock)
        if match is None:
            raise NotFoundError(f"Match {match_id} not found.")
        return match

    @staticmethod
    async def _advance_last_activity(
        session: AsyncSession,
        match_id: uuid.UUID,
        at: datetime,
    ) -> None:
        """Move ``last_message_at`` forward to ``at``; never backwards, so a
        slower concurrent append cannot regress the marker."""
        marker = literal(at, type_=Match.__table__.c.last_message_at.type)
        stmt = (
            update(Match)
            .where(Match.id == match_id)
            .values(
                last_message_at=case(
                    (
                        or_(
                            Match.last_message_at.is_(None),
                            Match.last_message_at < marker,
                        ),
                        marker,
                    ),
                    else_=Match.last_message_at,
                )
            )
            .execution_options(synchronize_session=False)
        )
        await session.execute(stmt)
