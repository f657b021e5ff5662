"""Admin settlement routes."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request

from crease.errors import AlreadySettledError, InvalidResultError, NotFoundError
from crease.schemas import (
    AdminActionResponse,
    AdminFancySettleRequest,
    AdminSettleRequest,
    AdminVoidRequest,
    UnsettledMatchSummary,
)
from crease.settlement import SettlementAdmin

router = APIRouter(prefix="/admin", tags=["Admin"])


def get_admin(request: Request) -> SettlementAdmin:
    return request.app.state.engine.admin


def _http_error(e: Exception) -> HTTPException:
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, AlreadySettledError):
        return HTTPException(status_code=409, detail=str(e))
    return HTTPException(status_code=400, detail=str(e))


@router.post("/matches/{match_id}/settle", response_model=AdminActionResponse)
async def settle_match(
    match_id: UUID,
    request: AdminSettleRequest,
    admin: SettlementAdmin = Depends(get_admin),
):
    """Set the winner of a match and settle its bets."""
    try:
        return await admin.manual_settle(
            match_id,
            winner=request.winner,
            win_type=request.win_type,
            win_margin=request.win_margin,
            team1_score=request.team1_score,
            team2_score=request.team2_score,
            settled_by=request.settled_by,
        )
    except (NotFoundError, AlreadySettledError, InvalidResultError) as e:
        raise _http_error(e)


@router.post("/matches/{match_id}/void", response_model=AdminActionResponse)
async def void_match(
    match_id: UUID,
    request: AdminVoidRequest,
    admin: SettlementAdmin = Depends(get_admin),
):
    """Void a match and refund all pending bets."""
    try:
        return await admin.manual_void(match_id, request.reason, request.voided_by)
    except (NotFoundError, AlreadySettledError) as e:
        raise _http_error(e)


@router.post("/fancy/{market_id}/settle", response_model=AdminActionResponse)
async def settle_fancy_market(
    market_id: UUID,
    request: AdminFancySettleRequest,
    admin: SettlementAdmin = Depends(get_admin),
):
    """Declare a fancy market result."""
    try:
        return await admin.manual_fancy_settle(
            market_id, request.result_value, request.settled_by
        )
    except (NotFoundError, AlreadySettledError) as e:
        raise _http_error(e)


@router.get("/unsettled", response_model=list[UnsettledMatchSummary])
async def get_unsettled(admin: SettlementAdmin = Depends(get_admin)):
    """Live and completed matches still awaiting settlement."""
    return await admin.get_unsettled_summary()
