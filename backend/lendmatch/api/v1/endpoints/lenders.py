"""Lender-facing endpoints: offers addressed to a lender."""

from typing import Annotated, Literal
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from lendmatch.deps import get_session
from lendmatch.models.schemas.match import LenderOfferResponse
from lendmatch.services.matching_service import MatchingService

router = APIRouter()


@router.get(
    "/{actor_id}/matches",
    response_model=list[LenderOfferResponse],
    summary="List offers for a lender",
    description="Offers addressed to the individual lender or business the user acts for",
)
async def list_lender_matches(
    actor_id: UUID,
    db: Annotated[AsyncSession, Depends(get_session)],
    filter: Literal["pending", "all"] = Query("pending", description="pending or all"),
) -> list[LenderOfferResponse]:
    """
    List offers for the lenders a user acts for, newest first.

    With ``filter=pending`` only offers that can still be accepted are returned.
    """
    service = MatchingService(db)
    records = await service.list_lender_offers(actor_id, pending_only=filter == "pending")
    return [LenderOfferResponse.model_validate(record) for record in records]
