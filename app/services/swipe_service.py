"""
Swipematch — Swipe Recorder

Records a user's like / pass decision toward another user.  The write is a
single ``INSERT ... ON CONFLICT (swiper_id, target_id) DO UPDATE`` so that
repeated or concurrent decisions for the same ordered pair collapse onto one
row: the latest decision wins and there is no read-then-write window.

Recording a decision never creates a match by itself; the caller runs
:class:`~app.services.matching_service.MatchingService` after a like.
"""

from __future__ import annotations

import uuid
from typing import Any

import structlog

from app.database import Store
from app.errors import InvalidArgumentError
from app.models.match import Decision, Swipe
from app.utils.ids import coerce_uuid
from app.utils.timestamps import utcnow

logger = structlog.get_logger("swipematch.swipe_service")


def coerce_decision(value: Any) -> Decision:
    if isinstance(value, Decision):
        return value
    try:
        return Decision(value)
    except ValueError as exc:
        allowed = ", ".join(d.value for d in Decision)
        raise InvalidArgumentError(
            f"decision must be one of {allowed}, got {value!r}"
        ) from exc


class SwipeService:
    """Swipe Recorder backed by the shared :class:`Store`."""

    def __init__(self, store: Store) -> None:
        self.store = store

    async def record_decision(
        self,
        swiper_id: uuid.UUID | str,
        target_id: uuid.UUID | str,
        decision: Decision | str,
    ) -> Swipe:
        """Insert or revise the decision of ``swiper_id`` about ``target_id``.

        Parameters
        ----------
        swiper_id:
            The user making the decision.
        target_id:
            The user being decided on.  Existence is not pre-checked; an
            unknown id is rejected by the foreign key and reported as a
            store failure.
        decision:
            ``like`` or ``pass``.

        Returns
        -------
        Swipe
            The single row for the ordered pair, reflecting this decision.

        Raises
        ------
        InvalidArgumentError
            Self-swipe, malformed id or unknown decision value.
        StoreFailureError
            Any persistence-layer failure.
        """
        swiper_id = coerce_uuid(swiper_id, "swiper_id")
        target_id = coerce_uuid(target_id, "target_id")
        decision = coerce_decision(decision)
        if swiper_id == target_id:
            raise InvalidArgumentError("A user cannot swipe on themselves.")

        log = logger.bind(
            swiper_id=str(swiper_id),
            target_id=str(target_id),
            decision=decision.value,
        )

        now = utcnow()
        stmt = self.store.insert(Swipe).values(
            swiper_id=swiper_id,
            target_id=target_id,
            decision=decision.value,
            created_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[Swipe.swiper_id, Swipe.target_id],
            set_={"decision": stmt.excluded.decision, "updated_at": now},
        ).returning(Swipe)

        async with self.store.transaction() as session:
            result = await session.scalars(
                stmt, execution_options={"populate_existing": True}
            )
            swipe = result.one()

        log.info(
            "swipe_recorded",
            swipe_id=str(swipe.id),
            revised=swipe.updated_at is not None,
        )
        return swipe
