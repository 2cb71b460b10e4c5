"""Matching endpoints: start rounds, respond to offers, sweep expired offers."""

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from lendmatch.core.enums import AssignmentOutcome
from lendmatch.core.exceptions import (
    LoanNotFoundError,
    MatchRecordNotFoundError,
    NotAuthorizedError,
    OfferNotAvailableError,
)
from lendmatch.deps import get_dispatcher, get_session, verify_cron_secret
from lendmatch.models.schemas.loan import LoanMatchStateResponse
from lendmatch.models.schemas.match import (
    ExpirySweepResponse,
    LenderRejectionResponse,
    MatchActionRequest,
    MatchingOutcomeResponse,
    MatchRecordResponse,
    MatchStatusResponse,
    RematchRequest,
    StartMatchingRequest,
)
from lendmatch.services.matching_service import MatchingOutcome, MatchingService
from lendmatch.services.notifications import NotificationDispatcher

logger = logging.getLogger(__name__)

router = APIRouter()


def to_http_exception(e: ValueError) -> HTTPException:
    """Map a service-layer error onto an HTTP error response."""
    if isinstance(e, (LoanNotFoundError, MatchRecordNotFoundError)):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    if isinstance(e, NotAuthorizedError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    if isinstance(e, OfferNotAvailableError):
        # Losing an acceptance race is a conflict; a closed or expired offer is not
        conflict = e.code in (
            AssignmentOutcome.ALREADY_ASSIGNED.value,
            AssignmentOutcome.INSUFFICIENT_CAPITAL.value,
        )
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT if conflict else status.HTTP_400_BAD_REQUEST,
            detail={"message": str(e), "code": e.code},
        )
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


def _outcome_response(outcome: MatchingOutcome) -> MatchingOutcomeResponse:
    return MatchingOutcomeResponse(
        status=outcome.status,
        loan=LoanMatchStateResponse.model_validate(outcome.loan),
        matches=[MatchRecordResponse.model_validate(record) for record in outcome.records],
        chosen_match_id=outcome.chosen.id if outcome.chosen else None,
        review_url=outcome.review_url,
        notifications=[intent.kind for intent in outcome.intents],
        rejections=[
            LenderRejectionResponse.model_validate(rejection)
            for rejection in outcome.rejections
        ],
    )


def _queue_notifications(
    background_tasks: BackgroundTasks,
    dispatcher: NotificationDispatcher,
    intents: list,
) -> None:
    if intents:
        background_tasks.add_task(dispatcher.dispatch, list(intents))


@router.post(
    "",
    response_model=MatchingOutcomeResponse,
    summary="Start matching a loan request",
    description="Find eligible lenders, then auto-assign or broadcast offers",
)
async def start_matching(
    request: StartMatchingRequest,
    background_tasks: BackgroundTasks,
    db: Annotated[AsyncSession, Depends(get_session)],
    dispatcher: Annotated[NotificationDispatcher, Depends(get_dispatcher)],
) -> MatchingOutcomeResponse:
    """
    Start a matching round for a loan request.

    The round ends in one of:
    - auto_accepted: the top lender auto-accepts and was assigned
    - manual_review: the top lender auto-accepts but could not be assigned
    - pending_acceptance: offers were broadcast to every ranked lender
    - no_match: no lender is eligible
    - already_in_progress: the loan is not unmatched; nothing was changed
    """
    try:
        service = MatchingService(db)
        outcome = await service.start_matching(request.loan_id)
    except ValueError as e:
        logger.error(f"Validation error starting matching: {str(e)}")
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error starting matching: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to start matching",
        )

    _queue_notifications(background_tasks, dispatcher, outcome.intents)
    return _outcome_response(outcome)


@router.get(
    "",
    response_model=MatchStatusResponse,
    summary="Get match status of a loan",
)
async def get_match_status(
    db: Annotated[AsyncSession, Depends(get_session)],
    loan_id: UUID = Query(..., description="Loan request ID"),
) -> MatchStatusResponse:
    """Return the loan's match state and its offers, ordered by attempt and rank."""
    try:
        service = MatchingService(db)
        snapshot = await service.get_match_status(loan_id)
    except ValueError as e:
        raise to_http_exception(e)

    return MatchStatusResponse(
        loan=LoanMatchStateResponse.model_validate(snapshot.loan),
        matches=[MatchRecordResponse.model_validate(record) for record in snapshot.records],
    )


@router.post(
    "/rematch",
    response_model=MatchingOutcomeResponse,
    summary="Start a new matching round",
    description="Re-run matching for a loan whose previous round ended without a lender",
)
async def rematch(
    request: RematchRequest,
    background_tasks: BackgroundTasks,
    db: Annotated[AsyncSession, Depends(get_session)],
    dispatcher: Annotated[NotificationDispatcher, Depends(get_dispatcher)],
) -> MatchingOutcomeResponse:
    try:
        service = MatchingService(db)
        outcome = await service.rematch(request.loan_id)
    except ValueError as e:
        logger.error(f"Validation error re-matching: {str(e)}")
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error re-matching: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to re-match loan",
        )

    _queue_notifications(background_tasks, dispatcher, outcome.intents)
    return _outcome_response(outcome)


@router.post(
    "/expire",
    response_model=ExpirySweepResponse,
    summary="Expire stale offers",
    description="Scheduler endpoint; requires the cron bearer secret when configured",
    dependencies=[Depends(verify_cron_secret)],
)
async def expire_offers(
    background_tasks: BackgroundTasks,
    db: Annotated[AsyncSession, Depends(get_session)],
    dispatcher: Annotated[NotificationDispatcher, Depends(get_dispatcher)],
) -> ExpirySweepResponse:
    try:
        service = MatchingService(db)
        result = await service.expire_offers()
    except Exception as e:
        logger.error(f"Error expiring offers: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to expire offers",
        )

    _queue_notifications(background_tasks, dispatcher, result.intents)
    return ExpirySweepResponse(
        expired_count=result.expired_count,
        closed_loan_ids=result.closed_loan_ids,
    )


@router.post(
    "/{match_id}",
    response_model=MatchingOutcomeResponse,
    summary="Accept or decline an offer",
)
async def respond_to_match(
    match_id: UUID,
    request: MatchActionRequest,
    background_tasks: BackgroundTasks,
    db: Annotated[AsyncSession, Depends(get_session)],
    dispatcher: Annotated[NotificationDispatcher, Depends(get_dispatcher)],
) -> MatchingOutcomeResponse:
    """
    Respond to an offer on behalf of its lender.

    The first acceptance wins; later acceptances of the same loan get a 409
    with code ``already_assigned``.
    """
    try:
        service = MatchingService(db)
        if request.action == "accept":
            outcome = await service.accept_offer(match_id, request.actor_id)
        else:
            outcome = await service.decline_offer(
                match_id, request.actor_id, reason=request.decline_reason
            )
    except ValueError as e:
        logger.info(f"Match {match_id} {request.action} rejected: {str(e)}")
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error processing match {match_id}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to process match response",
        )

    _queue_notifications(background_tasks, dispatcher, outcome.intents)
    return _outcome_response(outcome)
