"""Contest and leaderboard API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from rocket.auth.dependencies import get_current_user_id
from rocket.competition.contest_service import (
    cancel,
    list_user_contests,
    register,
    submit_verification,
)
from rocket.competition.leaderboard_service import get_leaderboard
from rocket.competition.schemas import (
    CancelRegistrationResponse,
    LeaderboardResponse,
    MyContestItem,
    MyContestsResponse,
    RegistrationResponse,
    VerificationResponse,
)
from rocket.dependencies import get_dispatcher, get_store
from rocket.events.dispatcher import EventDispatcher
from rocket.store.interfaces import LeaderboardScope, Store

router = APIRouter(prefix="/api/v1", tags=["Competition"])


def _my_contest_item(item: dict) -> MyContestItem:
    result = item["result"]
    return MyContestItem(
        contest_id=item["contest"].id,
        name=item["contest"].name,
        status=item["status"].value,
        start_date=item["contest"].start_date,
        registration_end_date=item["contest"].registration_end_date,
        duration_days=item["contest"].duration_days,
        verification_count=item["registration"].verification_count,
        verifications_required=item["registration"].verifications_required,
        days_until_start=item["days_until_start"],
        days_remaining=item["days_remaining"],
        completed_at=item["registration"].completed_at,
        prize_status=result.status.value if result else None,
        multiplier=result.multiplier if result else None,
        credit_refunded=result.credit_refunded if result else False,
        pool_share=result.pool_share if result else 0.0,
    )


# ── Contests ──


@router.get("/contests/mine", response_model=MyContestsResponse)
async def get_my_contests(
    user_id: str = Depends(get_current_user_id),
    store: Store = Depends(get_store),
):
    """Contests the user is registered for, with derived status."""
    items = await list_user_contests(store, user_id)
    return MyContestsResponse(contests=[_my_contest_item(item) for item in items])


@router.post("/contests/{contest_id}/register", response_model=RegistrationResponse, status_code=201)
async def post_register(
    contest_id: str,
    user_id: str = Depends(get_current_user_id),
    store: Store = Depends(get_store),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
):
    """Register for a contest. 403 with the reason when not eligible."""
    result = await register(store, user_id, contest_id)
    await dispatcher.dispatch(result.events)
    return RegistrationResponse(
        contest_id=contest_id,
        status=result.status.value,
        verification_count=result.registration.verification_count,
        verifications_required=result.registration.verifications_required,
        credits_remaining=result.credits_remaining,
    )


@router.delete("/contests/{contest_id}/registration", response_model=CancelRegistrationResponse)
async def delete_registration(
    contest_id: str,
    user_id: str = Depends(get_current_user_id),
    store: Store = Depends(get_store),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
):
    """Cancel a registration and refund the entry credit."""
    events = await cancel(store, user_id, contest_id)
    await dispatcher.dispatch(events)
    refunded = bool(events and events[0].payload.get("refunded"))
    return CancelRegistrationResponse(contest_id=contest_id, refunded=refunded)


@router.post("/contests/{contest_id}/verifications", response_model=VerificationResponse)
async def post_verification(
    contest_id: str,
    user_id: str = Depends(get_current_user_id),
    store: Store = Depends(get_store),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
):
    """Count one verification post toward the contest requirement."""
    result = await submit_verification(store, user_id, contest_id)
    await dispatcher.dispatch(result.events)
    return VerificationResponse(
        contest_id=contest_id,
        status=result.status.value,
        completed=result.completed,
        verification_count=result.registration.verification_count,
        verifications_required=result.registration.verifications_required,
        completed_at=result.registration.completed_at,
    )


# ── Leaderboard ──


@router.get("/leaderboard/{scope}", response_model=LeaderboardResponse)
async def get_leaderboard_route(
    scope: LeaderboardScope,
    community_id: str | None = Query(None),
    limit: int = Query(100, ge=1, le=500),
    user_id: str = Depends(get_current_user_id),
    store: Store = Depends(get_store),
):
    """Monthly leaderboard with Commander / Hero / Legend status."""
    if scope == LeaderboardScope.COMMUNITY:
        if community_id is None:
            raise HTTPException(status_code=400, detail="community_id is required")
        if not await store.is_community_member(user_id, community_id):
            raise HTTPException(status_code=403, detail="Not a member of this community")

    return LeaderboardResponse(**await get_leaderboard(
        store,
        scope,
        community_id=community_id if scope == LeaderboardScope.COMMUNITY else None,
        user_id=user_id,
        limit=limit,
    ))
