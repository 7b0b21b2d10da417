"""
Swipematch — Match Detector & match queries

Turns a freshly recorded like into a match when the other side already
liked back:

  1. Confirm that both ``A -> B`` and ``B -> A`` are currently ``like``
     (one query over the pair).
  2. ``INSERT ... ON CONFLICT (user_a_id, user_b_id) DO NOTHING`` on the
     canonical (sorted) pair.  If two requests complete the same mutual like
     at the same instant, the unique constraint absorbs the second insert,
     which then reads back the row the first one created.

There is deliberately no "select, then insert if absent" step: under
concurrency both callers could see no match and both insert.

Matches are never torn down when one side later passes.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime

import structlog
from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import Store
from app.errors import InvalidArgumentError, NotFoundError
from app.models.match import Decision, Match, Swipe
from app.models.user import User
from app.utils.ids import coerce_uuid
from app.utils.timestamps import utcnow

logger = structlog.get_logger("swipematch.matching_service")


@dataclass(frozen=True)
class MatchResult:
    matched: bool
    match: Match | None = None
    # True only for the call whose insert created the row.
    created: bool = False


@dataclass(frozen=True)
class MatchSummary:
    """A match as seen by one of its users, with the counterpart's display
    fields attached."""

    match_id: uuid.UUID
    other_user_id: uuid.UUID
    other_username: str
    other_display_name: str
    other_avatar_url: str | None
    matched_at: datetime
    last_message_at: datetime | None


class MatchingService:
    """Match Detector backed by the shared :class:`Store`."""

    def __init__(self, store: Store) -> None:
        self.store = store

    # ── Public API ────────────────────────────────────────────────────────

    async def maybe_form_match(
        self,
        swiper_id: uuid.UUID | str,
        target_id: uuid.UUID | str,
    ) -> MatchResult:
        """Create the match for ``{swiper_id, target_id}`` if the like is
        mutual.

        Call this after :meth:`SwipeService.record_decision` has stored a
        like.  Repeated calls for an already matched pair return the
        existing match with ``created=False``.

        Raises
        ------
        InvalidArgumentError
            Same user on both sides, or malformed ids.
        StoreFailureError
            Any persistence-layer failure.
        """
        swiper_id = coerce_uuid(swiper_id, "swiper_id")
        target_id = coerce_uuid(target_id, "target_id")
        if swiper_id == target_id:
            raise InvalidArgumentError("A user cannot match with themselves.")

        log = logger.bind(swiper_id=str(swiper_id), target_id=str(target_id))

        async with self.store.transaction() as session:
            if not await self._check_mutual_like(session, swiper_id, target_id):
                log.info("mutual_like_absent")
                return MatchResult(matched=False)

            match, created = await self._insert_match(session, swiper_id, target_id)

        if created:
            log.info("match_created", match_id=str(match.id))
        else:
            log.info("match_already_exists", match_id=str(match.id))
        return MatchResult(matched=True, match=match, created=created)

    async def get_match(self, match_id: uuid.UUID | str) -> Match:
        match_id = coerce_uuid(match_id, "match_id")
        async with self.store.transaction() as session:
            match = await session.get(Match, match_id)
        if match is None:
            raise NotFoundError(f"Match {match_id} not found.")
        return match

    async def list_matches_for_user(
        self,
        user_id: uuid.UUID | str,
    ) -> list[MatchSummary]:
        """List every match involving ``user_id``, newest first.

        Raises
        ------
        NotFoundError
            The user does not exist.
        """
        user_id = coerce_uuid(user_id, "user_id")
        log = logger.bind(user_id=str(user_id))

        async with self.store.transaction() as session:
            if await session.get(User, user_id) is None:
                raise NotFoundError(f"User {user_id} not found.")

            stmt = (
                select(Match)
                .where(or_(Match.user_a_id == user_id, Match.user_b_id == user_id))
                .order_by(Match.matched_at.desc(), Match.id)
            )
            matches = (await session.scalars(stmt)).all()
            summaries = [self._summarise(m, user_id) for m in matches]

        log.info("user_matches_retrieved", count=len(summaries))
        return summaries

    # ── Stage helpers ────────────────────────────────────────────────────

    async def _check_mutual_like(
        self,
        session: AsyncSession,
        user_a_id: uuid.UUID,
        user_b_id: uuid.UUID,
    ) -> bool:
        """True when both directed swipes between the pair are likes."""
        stmt = (
            select(func.count())
            .select_from(Swipe)
            .where(
                or_(
                    and_(Swipe.swiper_id == user_a_id, Swipe.target_id == user_b_id),
                    and_(Swipe.swiper_id == user_b_id, Swipe.target_id == user_a_id),
                ),
                Swipe.decision == Decision.LIKE.value,
            )
        )
        likes = await session.scalar(stmt)
        return likes == 2

    async def _insert_match(
        self,
        session: AsyncSession,
        first: uuid.UUID,
        second: uuid.UUID,
    ) -> tuple[Match, bool]:
        user_a_id, user_b_id = Match.canonical_pair(first, second)

        stmt = (
            self.store.insert(Match)
            .values(user_a_id=user_a_id, user_b_id=user_b_id, matched_at=utcnow())
            .on_conflict_do_nothing(index_elements=[Match.user_a_id, Match.user_b_id])
            .returning(Match)
        )
        inserted = (await session.scalars(stmt)).one_or_none()
        if inserted is not None:
            return inserted, True

        existing_stmt = select(Match).where(
            Match.user_a_id == user_a_id,
            Match.user_b_id == user_b_id,
        )
        existing = (await session.scalars(existing_stmt)).one()
        return existing, False

    @staticmethod
    def _summarise(match: Match, user_id: uuid.UUID) -> MatchSummary:
        other = match.user_b if match.user_a_id == user_id else match.user_a
        return MatchSummary(
            match_id=match.id,
            other_user_id=other.id,
            other_username=other.username,
            other_display_name=other.display_name,
            other_avatar_url=other.avatar_url,
            matched_at=match.matched_at,
            last_message_at=match.last_message_at,
        )
