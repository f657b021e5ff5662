"""Admin API Pydantic schemas."""

from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import Field

from crease.schemas.common import BaseSchema


class AdminSettleRequest(BaseSchema):
    """Request to set a match winner and settle its bets."""

    winner: str = Field(min_length=1, max_length=100)
    win_type: Optional[str] = None
    win_margin: Optional[str] = None
    team1_score: Optional[str] = None
    team2_score: Optional[str] = None
    settled_by: str = "admin"


class AdminVoidRequest(BaseSchema):
    """Request to void a match and refund its pending bets."""

    reason: str = Field(min_length=1, max_length=400)
    voided_by: str = "admin"


class AdminFancySettleRequest(BaseSchema):
    """Request to declare a fancy market result."""

    result_value: Decimal = Field(ge=0)
    settled_by: str = "admin"


class UnsettledMatchSummary(BaseSchema):
    """Match still awaiting settlement."""

    id: UUID
    name: str
    status: str
    match_winner: Optional[str] = None
    pending_bets: int
    unsettled_fancy_markets: int


class AdminActionResponse(BaseSchema):
    """Generic admin action response."""

    success: bool
    message: str
    data: Optional[dict] = None
