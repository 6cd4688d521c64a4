"""Contest registration, cancellation and verification submission.

Every write path runs in one unit of work: either all of its changes are
committed together or the store is rolled back and nothing is kept.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime

from rocket.competition.contest_engine import (
    REASON_NO_CREDITS,
    Contest,
    ContestRegistration,
    ContestStatus,
    check_registration,
    days_remaining,
    days_until_start,
    derive_status,
    ensure_cancellable,
    validate_transition,
)
from rocket.day_utils import ensure_aware, utcnow
from rocket.errors import InvalidStateError, NotEligibleError, NotFoundError
from rocket.events.dispatcher import EventType, ProgressionEvent
from rocket.gamification.activities import ActivityKind, Cadence
from rocket.gamification.progression import ActivityProgress, record_completion_event
from rocket.store.interfaces import Store

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegistrationResult:
    registration: ContestRegistration
    status: ContestStatus
    credits_remaining: int
    events: list[ProgressionEvent] = field(default_factory=list)


@dataclass(frozen=True)
class VerificationResult:
    registration: ContestRegistration
    status: ContestStatus
    completed: bool
    events: list[ProgressionEvent] = field(default_factory=list)


async def _require_contest(store: Store, contest_id: str) -> Contest:
    contest = await store.get_contest(contest_id)
    if contest is None:
        raise NotFoundError(f"Contest {contest_id} not found")
    return contest


async def _require_registration(
    store: Store, contest_id: str, user_id: str
) -> ContestRegistration:
    registration = await store.get_registration(contest_id, user_id)
    if registration is None:
        raise NotFoundError(f"No registration for contest {contest_id}")
    return registration


def _check_stored_transition(stored: ContestStatus, target: ContestStatus) -> None:
    """Validate stored -> target. A pending row passes through active first."""
    if stored == target:
        return
    if stored == ContestStatus.PENDING:
        validate_transition(stored, ContestStatus.ACTIVE)
        stored = ContestStatus.ACTIVE
    if stored != target:
        validate_transition(stored, target)


async def register(
    store: Store,
    user_id: str,
    contest_id: str,
    now: datetime | None = None,
) -> RegistrationResult:
    """Register a user for a contest, consuming the entry fee.

    Raises NotEligibleError with a user-facing reason if any precondition
    fails. The credit is consumed and the registration created together.
    """
    if now is None:
        now = utcnow()

    contest = await _require_contest(store, contest_id)
    member = True
    if contest.community_id is not None:
        member = await store.is_community_member(user_id, contest.community_id)

    check_registration(
        contest,
        user_id,
        now,
        credits=await store.get_credit_balance(user_id),
        registrant_count=await store.count_registrations(contest_id),
        already_registered=await store.get_registration(contest_id, user_id) is not None,
        member_of_community=member,
    )

    registration = ContestRegistration(
        contest_id=contest_id,
        user_id=user_id,
        status=ContestStatus.PENDING,
        verification_count=0,
        verifications_required=contest.verifications_required,
        registered_at=ensure_aware(now),
        credit_consumed=not contest.is_free,
    )

    try:
        await store.create_registration(registration)
        if not contest.is_free:
            if not await store.consume_entry_credit(user_id, contest.entry_fee_credits):
                raise NotEligibleError(REASON_NO_CREDITS)
        await store.commit()
    except Exception:
        await store.rollback()
        raise

    logger.info("User %s registered for contest %s", user_id, contest_id)
    return RegistrationResult(
        registration=registration,
        status=derive_status(registration, contest, now),
        credits_remaining=await store.get_credit_balance(user_id),
        events=[
            ProgressionEvent(
                type=EventType.CONTEST_REGISTERED,
                user_id=user_id,
                payload={"contest_id": contest_id},
            )
        ],
    )


async def cancel(
    store: Store,
    user_id: str,
    contest_id: str,
    now: datetime | None = None,
) -> list[ProgressionEvent]:
    """Cancel a pending or active registration and refund the entry credit."""
    if now is None:
        now = utcnow()

    contest = await _require_contest(store, contest_id)
    registration = await _require_registration(store, contest_id, user_id)
    ensure_cancellable(derive_status(registration, contest, now))

    try:
        await store.delete_registration(contest_id, user_id)
        if registration.credit_consumed:
            await store.refund_entry_credit(user_id, contest.entry_fee_credits)
        await store.commit()
    except Exception:
        await store.rollback()
        raise

    logger.info("User %s cancelled registration for contest %s", user_id, contest_id)
    return [
        ProgressionEvent(
            type=EventType.CONTEST_CANCELLED,
            user_id=user_id,
            payload={"contest_id": contest_id, "refunded": registration.credit_consumed},
        )
    ]


async def submit_verification(
    store: Store,
    user_id: str,
    contest_id: str,
    now: datetime | None = None,
) -> VerificationResult:
    """Count one verification post toward the contest's requirement.

    Reaching `verifications_required` completes the registration. Any
    verification after that, or on a cancelled registration, raises
    InvalidStateError.
    """
    if now is None:
        now = utcnow()

    contest = await _require_contest(store, contest_id)
    registration = await _require_registration(store, contest_id, user_id)
    status = derive_status(registration, contest, now)

    if status == ContestStatus.CANCELLED:
        raise InvalidStateError(f"Registration for contest {contest_id} was cancelled")
    if status == ContestStatus.PENDING:
        raise InvalidStateError(f"Contest {contest_id} has not started")
    if status == ContestStatus.COMPLETED:
        raise InvalidStateError(f"Registration for contest {contest_id} is already completed")
    if ensure_aware(now) >= contest.end_date:
        raise InvalidStateError(f"Contest {contest_id} has ended")

    progress = ActivityProgress(
        activity_id=contest_id,
        user_id=user_id,
        kind=ActivityKind.CONTEST,
        count_completed=registration.verification_count,
        count_required=registration.verifications_required,
        started_at=contest.start_date,
        completed_at=registration.completed_at,
    )
    result = record_completion_event(progress, now=now, cadence=Cadence.VERIFICATION)

    new_status = ContestStatus.COMPLETED if result.completed else ContestStatus.ACTIVE
    _check_stored_transition(registration.status, new_status)

    updated = replace(
        registration,
        status=new_status,
        verification_count=result.progress.count_completed,
        completed_at=result.progress.completed_at,
    )
    try:
        await store.update_registration(updated)
        await store.commit()
    except Exception:
        await store.rollback()
        raise

    events: list[ProgressionEvent] = []
    if result.completed:
        logger.info("User %s completed contest %s", user_id, contest_id)
        events.append(
            ProgressionEvent(
                type=EventType.CONTEST_COMPLETED,
                user_id=user_id,
                payload={
                    "contest_id": contest_id,
                    "verification_count": updated.verification_count,
                },
            )
        )

    return VerificationResult(
        registration=updated,
        status=new_status,
        completed=result.completed,
        events=events,
    )


async def list_user_contests(
    store: Store,
    user_id: str,
    now: datetime | None = None,
) -> list[dict]:
    """The user's registrations with derived status and day counters."""
    if now is None:
        now = utcnow()

    items = []
    for registration in await store.list_registrations(user_id=user_id):
        contest = await store.get_contest(registration.contest_id)
        if contest is None:
            logger.warning("Registration references missing contest %s", registration.contest_id)
            continue
        items.append({
            "contest": contest,
            "registration": registration,
            "status": derive_status(registration, contest, now),
            "days_until_start": days_until_start(contest, now),
            "days_remaining": days_remaining(contest, now),
            "result": await store.get_contest_result(contest.id, user_id),
        })
    return items
