"""
Pydantic schemas for the admin API.
"""

from crease.schemas.admin import (
    AdminActionResponse,
    AdminFancySettleRequest,
    AdminSettleRequest,
    AdminVoidRequest,
    UnsettledMatchSummary,
)
from crease.schemas.common import BaseSchema

__all__ = [
    "BaseSchema",
    "AdminActionResponse",
    "AdminFancySettleRequest",
    "AdminSettleRequest",
    "AdminVoidRequest",
    "UnsettledMatchSummary",
]
