"""Match orchestrator: runs matching rounds and handles lender responses."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from lendmatch.config import settings
from lendmatch.core.enums import (
    AssignmentOutcome,
    LoanMatchStatus,
    MatchingOutcomeStatus,
    MatchRecordStatus,
    TrustTier,
)
from lendmatch.core.exceptions import (
    LoanAlreadyAssignedError,
    LoanNotFoundError,
    MatchRecordNotFoundError,
    NotAuthorizedError,
    OfferExpiredError,
    OfferNotAvailableError,
    RematchNotAllowedError,
)
from lendmatch.db.base import utcnow
from lendmatch.models.domain.loan import LoanRequest
from lendmatch.models.domain.match import MatchRecord
from lendmatch.repositories.borrower_repository import BorrowerRepository
from lendmatch.repositories.lender_repository import LenderRepository
from lendmatch.repositories.loan_repository import LoanRepository
from lendmatch.repositories.match_repository import MatchRepository
from lendmatch.services.capital_ledger import CapitalLedger
from lendmatch.services.matching.matcher import CandidateMatch, LenderRejection, Matcher
from lendmatch.services.notifications.intents import (
    BorrowerNoMatch,
    BorrowerQueued,
    BothPartiesAssigned,
    LenderOffer,
    ManualReviewRequired,
    NotificationIntent,
)

logger = logging.getLogger(__name__)


@dataclass
class MatchingOutcome:
    """
    What a matching operation did.

    Attributes:
        status: Outcome of the operation
        loan: The loan request, refreshed after the operation
        records: Match records created or touched by the operation
        chosen: The record that was accepted, declined or needs review
        review_url: Link for the lender when auto-accept fell back to manual review
        intents: Notifications to dispatch; delivery is the caller's concern
        rejections: Lenders screened out during a matching round
    """

    status: MatchingOutcomeStatus
    loan: LoanRequest
    records: List[MatchRecord] = field(default_factory=list)
    chosen: Optional[MatchRecord] = None
    review_url: Optional[str] = None
    intents: List[NotificationIntent] = field(default_factory=list)
    rejections: List[LenderRejection] = field(default_factory=list)


@dataclass
class LoanMatchSnapshot:
    """A loan's match state and every record of every round."""

    loan: LoanRequest
    records: List[MatchRecord]


@dataclass
class ExpirySweepResult:
    """
    Result of one expiry sweep.

    Attributes:
        expired_count: Pending records moved to ``expired``
        closed_loan_ids: Loans moved to ``no_match`` because no live offer remained
        intents: Notifications to dispatch
    """

    expired_count: int = 0
    closed_loan_ids: List[UUID] = field(default_factory=list)
    intents: List[NotificationIntent] = field(default_factory=list)


class MatchingService:
    """
    Match orchestrator.

    This service:
    - Runs a matching round for a loan (candidates, records, auto-accept or broadcast)
    - Handles lender accept and decline responses
    - Expires stale offers and closes loans left without offers
    - Starts a new round after a round ended without a lender

    Every lender assignment goes through the ``CapitalLedger``. Operations
    return notification intents instead of sending them.
    """

    def __init__(
        self,
        db: AsyncSession,
        matcher: Optional[Matcher] = None,
        fan_out: Optional[int] = None,
        offer_ttl: Optional[timedelta] = None,
        app_url: Optional[str] = None,
    ):
        """
        Initialize the matching service.

        Args:
            db: Async database session
            matcher: Candidate builder (default resolver, filter and scorer)
            fan_out: Maximum offers per round (defaults to ``MATCH_FAN_OUT``)
            offer_ttl: Offer lifetime (defaults to ``MATCH_OFFER_TTL_HOURS``)
            app_url: Base URL for review links (defaults to ``APP_URL``)
        """
        self.db = db
        self.loan_repo = LoanRepository(db)
        self.lender_repo = LenderRepository(db)
        self.match_repo = MatchRepository(db)
        self.borrower_repo = BorrowerRepository(db)
        self.ledger = CapitalLedger(db)
        self.matcher = matcher or Matcher()
        self.fan_out = settings.MATCH_FAN_OUT if fan_out is None else fan_out
        self.offer_ttl = offer_ttl or timedelta(hours=settings.MATCH_OFFER_TTL_HOURS)
        self.app_url = (app_url or settings.APP_URL).rstrip("/")

    def review_url(self, match_id: UUID) -> str:
        return f"{self.app_url}/lender/matches/{match_id}"

    async def start_matching(self, loan_id: UUID) -> MatchingOutcome:
        """
        Run a matching round for a loan.

        1. Validate the loan (exists, no lender, still ``unmatched``)
        2. Move it to ``matching``
        3. Build ranked candidates and persist one record per candidate
        4. No candidates: ``no_match``
        5. Top candidate auto-accepts: assign through the ledger, falling
           back to manual review if the ledger refuses
        6. Otherwise broadcast offers to every candidate

        Args:
            loan_id: UUID of the loan request

        Returns:
            MatchingOutcome describing the round

        Raises:
            LoanNotFoundError: If the loan does not exist
            LoanAlreadyAssignedError: If the loan already has a lender
        """
        loan = await self.loan_repo.get_by_id(loan_id)
        if loan is None:
            raise LoanNotFoundError(loan_id)
        if loan.has_lender:
            raise LoanAlreadyAssignedError(loan_id)

        if loan.match_status != LoanMatchStatus.UNMATCHED:
            logger.info(f"Loan {loan_id} is already {loan.match_status.value}, not re-matching")
            return await self._in_progress(loan)

        started = await self.loan_repo.update_if_unassigned(
            loan_id,
            {"match_status": LoanMatchStatus.MATCHING, "updated_at": utcnow()},
            expected_status=LoanMatchStatus.UNMATCHED,
        )
        await self.db.commit()
        await self.db.refresh(loan)
        if not started:
            logger.info(f"Loan {loan_id} was claimed by a concurrent matching round")
            return await self._in_progress(loan)

        logger.info(f"Matching loan {loan_id} (${loan.amount} {loan.currency})")

        try:
            tier, is_first_time = await self._borrower_snapshot(loan.borrower_id)
            lenders = await self.lender_repo.get_catalogue()
            evaluation = self.matcher.find_candidates(
                loan,
                lenders,
                borrower_tier=tier,
                is_first_time_borrower=is_first_time,
                fan_out=self.fan_out,
            )

            for rejection in evaluation.rejections:
                logger.debug(
                    f"Loan {loan_id}: lender {rejection.lender_id} rejected at "
                    f"{rejection.stage} ({rejection.reason})"
                )
            logger.info(
                f"Loan {loan_id}: {len(lenders)} lenders evaluated, "
                f"{len(evaluation.candidates)} candidates, {len(evaluation.rejections)} rejected"
            )

            attempt = (loan.match_attempts or 0) + 1

            if not evaluation.has_candidates:
                loan.match_status = LoanMatchStatus.NO_MATCH
                loan.current_match_id = None
                loan.match_attempts = attempt
                await self.db.commit()
                await self.db.refresh(loan)

                logger.info(f"Loan {loan_id}: no eligible lenders (attempt {attempt})")
                return MatchingOutcome(
                    status=MatchingOutcomeStatus.NO_MATCH,
                    loan=loan,
                    intents=[
                        BorrowerNoMatch(
                            loan_id=loan.id,
                            borrower_id=loan.borrower_id,
                            is_first_time=is_first_time,
                        )
                    ],
                    rejections=evaluation.rejections,
                )

            records = await self._create_records(loan, evaluation.candidates, attempt)
            top_candidate = evaluation.candidates[0]
            top_record = records[0]

            loan.match_attempts = attempt
            loan.current_match_id = top_record.id
            await self.db.commit()
        except Exception as e:
            logger.error(f"Matching round failed for loan {loan_id}: {e}", exc_info=True)
            await self._release_round(loan_id)
            raise

        if top_candidate.lender.auto_accept:
            return await self._auto_accept(loan, records, top_record, evaluation.rejections)

        return await self._broadcast(loan, records, evaluation.rejections)

    async def _release_round(self, loan_id: UUID) -> None:
        """Put a loan whose round failed before any offer was stored back to ``unmatched``."""
        await self.db.rollback()
        released = await self.loan_repo.update_if_unassigned(
            loan_id,
            {
                "match_status": LoanMatchStatus.UNMATCHED,
                "current_match_id": None,
                "updated_at": utcnow(),
            },
            expected_status=LoanMatchStatus.MATCHING,
        )
        await self.db.commit()
        if released:
            logger.warning(f"Loan {loan_id} released to unmatched after a failed round")

    async def _create_records(
        self,
        loan: LoanRequest,
        candidates: List[CandidateMatch],
        attempt: int,
    ) -> List[MatchRecord]:
        expires_at = utcnow() + self.offer_ttl
        records = []
        for candidate in candidates:
            owner = candidate.lender.owner_reference()
            records.append(
                MatchRecord(
                    loan_id=loan.id,
                    lender_preference_id=candidate.lender.id,
                    lender_user_id=owner.lender_user_id,
                    lender_business_id=owner.lender_business_id,
                    attempt=attempt,
                    match_rank=candidate.rank,
                    match_score=candidate.score,
                    interest_rate=candidate.policy.interest_rate,
                    status=MatchRecordStatus.PENDING,
                    expires_at=expires_at,
                    lender=candidate.lender,
                )
            )
        return await self.match_repo.create_batch(records)

    async def _auto_accept(
        self,
        loan: LoanRequest,
        records: List[MatchRecord],
        top_record: MatchRecord,
        rejections: List[LenderRejection],
    ) -> MatchingOutcome:
        lender = top_record.lender
        outcome = await self.ledger.try_assign(loan, top_record, is_auto_accept=True)
        records = await self._round_records(loan.id, top_record.attempt)

        if outcome == AssignmentOutcome.ASSIGNED:
            logger.info(f"Loan {loan.id} auto-accepted by lender {lender.id}")
            return MatchingOutcome(
                status=MatchingOutcomeStatus.AUTO_ACCEPTED,
                loan=loan,
                records=records,
                chosen=top_record,
                intents=[
                    BothPartiesAssigned(
                        loan_id=loan.id,
                        match_id=top_record.id,
                        borrower_id=loan.borrower_id,
                        lender_preference_id=lender.id,
                        lender_email=lender.lender_email,
                        is_auto_accept=True,
                    )
                ],
                rejections=rejections,
            )

        review_url = self.review_url(top_record.id)
        logger.warning(
            f"Auto-accept for loan {loan.id} by lender {lender.id} failed "
            f"({outcome.value}); offer left for manual review at {review_url}"
        )
        intents: List[NotificationIntent] = [
            ManualReviewRequired(
                loan_id=loan.id,
                match_id=top_record.id,
                lender_preference_id=lender.id,
                lender_email=lender.lender_email,
                review_url=review_url,
            )
        ]
        # The rest of the round stays open to the other candidates
        intents.extend(
            self._lender_offer(loan, record) for record in records if record.id != top_record.id
        )
        intents.append(
            BorrowerQueued(
                loan_id=loan.id,
                borrower_id=loan.borrower_id,
                match_count=len(records),
            )
        )
        return MatchingOutcome(
            status=MatchingOutcomeStatus.MANUAL_REVIEW,
            loan=loan,
            records=records,
            chosen=top_record,
            review_url=review_url,
            intents=intents,
            rejections=rejections,
        )

    def _lender_offer(self, loan: LoanRequest, record: MatchRecord) -> LenderOffer:
        return LenderOffer(
            loan_id=loan.id,
            match_id=record.id,
            lender_preference_id=record.lender_preference_id,
            lender_email=record.lender.lender_email if record.lender else None,
            amount=loan.amount,
            currency=loan.currency,
            interest_rate=record.interest_rate,
            expires_at=record.expires_at,
            review_url=self.review_url(record.id),
        )

    async def _broadcast(
        self,
        loan: LoanRequest,
        records: List[MatchRecord],
        rejections: List[LenderRejection],
    ) -> MatchingOutcome:
        intents: List[NotificationIntent] = [self._lender_offer(loan, record) for record in records]
        intents.append(
            BorrowerQueued(
                loan_id=loan.id,
                borrower_id=loan.borrower_id,
                match_count=len(records),
            )
        )

        logger.info(f"Loan {loan.id} offered to {len(records)} lenders")
        return MatchingOutcome(
            status=MatchingOutcomeStatus.PENDING_ACCEPTANCE,
            loan=loan,
            records=records,
            chosen=records[0],
            intents=intents,
            rejections=rejections,
        )

    async def accept_offer(self, match_id: UUID, actor_id: UUID) -> MatchingOutcome:
        """
        Accept an offer on behalf of its lender.

        Args:
            match_id: UUID of the match record
            actor_id: UUID of the user acting for the lender

        Returns:
            MatchingOutcome with status ``accepted``

        Raises:
            MatchRecordNotFoundError: If the record does not exist
            NotAuthorizedError: If the actor does not act for the record's lender
            OfferExpiredError: If the offer window has closed
            OfferNotAvailableError: If the record is no longer pending, the loan
                already has a lender, or the lender lacks capital
        """
        record = await self._get_record_for_actor(match_id, actor_id)
        self._ensure_pending(record)

        loan = record.loan
        if loan.has_lender:
            raise OfferNotAvailableError(
                "This loan has already been matched with another lender",
                code=AssignmentOutcome.ALREADY_ASSIGNED.value,
            )

        now = utcnow()
        if record.is_expired(now):
            await self.match_repo.update_if_pending(
                record.id, {"status": MatchRecordStatus.EXPIRED, "updated_at": now}
            )
            await self.db.commit()
            await self.db.refresh(record)
            logger.info(f"Match {match_id} expired before acceptance")
            raise OfferExpiredError(match_id)

        outcome = await self.ledger.try_assign(loan, record, is_auto_accept=False)
        if outcome != AssignmentOutcome.ASSIGNED:
            logger.info(f"Match {match_id} could not be accepted: {outcome.value}")
            # A record answered meanwhile reports its current status
            code = (
                record.status.value
                if outcome == AssignmentOutcome.RECORD_CLOSED
                else outcome.value
            )
            raise OfferNotAvailableError("This offer is no longer available", code=code)

        lender = record.lender
        return MatchingOutcome(
            status=MatchingOutcomeStatus.ACCEPTED,
            loan=loan,
            records=[record],
            chosen=record,
            intents=[
                BothPartiesAssigned(
                    loan_id=loan.id,
                    match_id=record.id,
                    borrower_id=loan.borrower_id,
                    lender_preference_id=record.lender_preference_id,
                    lender_email=lender.lender_email if lender else None,
                    is_auto_accept=False,
                )
            ],
        )

    async def decline_offer(
        self,
        match_id: UUID,
        actor_id: UUID,
        reason: Optional[str] = None,
    ) -> MatchingOutcome:
        """
        Decline an offer on behalf of its lender.

        When the loan has no lender and no live offer remains, the loan
        moves to ``no_match``. Otherwise, if the declined record was the
        loan's current match, the best-ranked remaining offer takes its place.

        Args:
            match_id: UUID of the match record
            actor_id: UUID of the user acting for the lender
            reason: Optional free-text decline reason

        Returns:
            MatchingOutcome with status ``declined``

        Raises:
            MatchRecordNotFoundError: If the record does not exist
            NotAuthorizedError: If the actor does not act for the record's lender
            OfferNotAvailableError: If the record is no longer pending
        """
        record = await self._get_record_for_actor(match_id, actor_id)
        self._ensure_pending(record)

        now = utcnow()
        declined = await self.match_repo.update_if_pending(
            record.id,
            {
                "status": MatchRecordStatus.DECLINED,
                "decline_reason": reason,
                "responded_at": now,
                "updated_at": now,
            },
        )
        if not declined:
            await self.db.rollback()
            await self.db.refresh(record)
            logger.info(f"Match {match_id} was answered before the decline landed")
            self._ensure_pending(record)

        loan = record.loan
        await self.db.refresh(loan)
        intents: List[NotificationIntent] = []

        if not loan.has_lender and loan.match_status == LoanMatchStatus.MATCHING:
            live = await self.match_repo.get_live_pending(loan.id, now)
            if not live:
                closed = await self.loan_repo.update_if_unassigned(
                    loan.id,
                    {
                        "match_status": LoanMatchStatus.NO_MATCH,
                        "current_match_id": None,
                        "updated_at": now,
                    },
                    expected_status=LoanMatchStatus.MATCHING,
                )
                if closed:
                    _, is_first_time = await self._borrower_snapshot(loan.borrower_id)
                    intents.append(
                        BorrowerNoMatch(
                            loan_id=loan.id,
                            borrower_id=loan.borrower_id,
                            is_first_time=is_first_time,
                        )
                    )
                    logger.info(f"Loan {loan.id}: last offer declined, no match")
            elif loan.current_match_id == record.id:
                await self.loan_repo.update_if_unassigned(
                    loan.id,
                    {"current_match_id": live[0].id, "updated_at": now},
                )

        await self.db.commit()
        await self.db.refresh(loan)
        await self.db.refresh(record)

        logger.info(f"Match {match_id} declined for loan {loan.id}")
        return MatchingOutcome(
            status=MatchingOutcomeStatus.DECLINED,
            loan=loan,
            records=[record],
            chosen=record,
            intents=intents,
        )

    async def get_match_status(self, loan_id: UUID) -> LoanMatchSnapshot:
        """
        Get a loan's match state and records.

        Raises:
            LoanNotFoundError: If the loan does not exist
        """
        loan = await self.loan_repo.get_by_id(loan_id)
        if loan is None:
            raise LoanNotFoundError(loan_id)
        records = await self.match_repo.get_by_loan(loan_id)
        return LoanMatchSnapshot(loan=loan, records=records)

    async def list_lender_offers(
        self,
        actor_id: UUID,
        pending_only: bool = True,
    ) -> List[MatchRecord]:
        """
        List offers addressed to the lenders a user acts for.

        With ``pending_only``, offers that can no longer be accepted (expired,
        or on a loan that already has a lender) are left out.

        Args:
            actor_id: UUID of the acting user
            pending_only: Only return offers still open for acceptance

        Returns:
            List of MatchRecord instances, newest first
        """
        lender_ids = await self.lender_repo.get_ids_for_actor(actor_id)
        records = await self.match_repo.get_for_lenders(lender_ids, pending_only=pending_only)
        if not pending_only:
            return records

        now = utcnow()
        return [
            record
            for record in records
            if not record.is_expired(now) and not record.loan.has_lender
        ]

    async def expire_offers(self, now: Optional[datetime] = None) -> ExpirySweepResult:
        """
        Expire pending offers whose window has closed.

        Loans left without a lender and without any live offer move to
        ``no_match``. Loans that already have a lender are left alone.

        Args:
            now: Reference time (defaults to the current time)

        Returns:
            ExpirySweepResult with counts and notification intents
        """
        now = now or utcnow()
        result = ExpirySweepResult()

        expired = await self.match_repo.get_expired_pending(now)
        if not expired:
            return result

        expired_ids = set()
        loan_ids = set()
        for record in expired:
            # Records answered since the query keep their status
            if await self.match_repo.update_if_pending(
                record.id, {"status": MatchRecordStatus.EXPIRED, "updated_at": now}
            ):
                expired_ids.add(record.id)
                loan_ids.add(record.loan_id)
        result.expired_count = len(expired_ids)

        for loan in await self.loan_repo.list_by_ids(sorted(loan_ids)):
            if loan.has_lender or loan.match_status != LoanMatchStatus.MATCHING:
                continue

            live = await self.match_repo.get_live_pending(loan.id, now)
            if live:
                if loan.current_match_id in expired_ids:
                    await self.loan_repo.update_if_unassigned(
                        loan.id,
                        {"current_match_id": live[0].id, "updated_at": now},
                    )
                continue

            closed = await self.loan_repo.update_if_unassigned(
                loan.id,
                {
                    "match_status": LoanMatchStatus.NO_MATCH,
                    "current_match_id": None,
                    "updated_at": now,
                },
                expected_status=LoanMatchStatus.MATCHING,
            )
            if closed:
                _, is_first_time = await self._borrower_snapshot(loan.borrower_id)
                result.closed_loan_ids.append(loan.id)
                result.intents.append(
                    BorrowerNoMatch(
                        loan_id=loan.id,
                        borrower_id=loan.borrower_id,
                        is_first_time=is_first_time,
                    )
                )

        await self.db.commit()

        logger.info(
            f"Expiry sweep: {result.expired_count} offers expired, "
            f"{len(result.closed_loan_ids)} loans without a match"
        )
        return result

    async def rematch(self, loan_id: UUID) -> MatchingOutcome:
        """
        Start a new matching round for a loan whose previous round ended.

        Args:
            loan_id: UUID of the loan request

        Returns:
            MatchingOutcome of the new round

        Raises:
            LoanNotFoundError: If the loan does not exist
            LoanAlreadyAssignedError: If the loan already has a lender
            RematchNotAllowedError: If live offers are still open
        """
        loan = await self.loan_repo.get_by_id(loan_id)
        if loan is None:
            raise LoanNotFoundError(loan_id)
        if loan.has_lender:
            raise LoanAlreadyAssignedError(loan_id)

        live = await self.match_repo.get_live_pending(loan_id, utcnow())
        if live:
            raise RematchNotAllowedError(
                f"Loan {loan_id} still has {len(live)} open offers"
            )

        if loan.match_status != LoanMatchStatus.UNMATCHED:
            reset = await self.loan_repo.update_if_unassigned(
                loan_id,
                {
                    "match_status": LoanMatchStatus.UNMATCHED,
                    "current_match_id": None,
                    "updated_at": utcnow(),
                },
            )
            await self.db.commit()
            await self.db.refresh(loan)
            if not reset:
                raise LoanAlreadyAssignedError(loan_id)

        logger.info(f"Re-matching loan {loan_id} (previous attempts: {loan.match_attempts})")
        return await self.start_matching(loan_id)

    async def _in_progress(self, loan: LoanRequest) -> MatchingOutcome:
        records = await self.match_repo.get_by_loan(loan.id)
        current = next((r for r in records if r.id == loan.current_match_id), None)
        return MatchingOutcome(
            status=MatchingOutcomeStatus.ALREADY_IN_PROGRESS,
            loan=loan,
            records=records,
            chosen=current,
        )

    async def _round_records(self, loan_id: UUID, attempt: int) -> List[MatchRecord]:
        records = await self.match_repo.get_by_loan(loan_id)
        return [record for record in records if record.attempt == attempt]

    async def _borrower_snapshot(self, borrower_id: UUID) -> Tuple[TrustTier, bool]:
        """Trust tier and first-time flag; unknown borrowers are first-time tier 1."""
        profile = await self.borrower_repo.get_by_borrower_id(borrower_id)
        if profile is None:
            return TrustTier.TIER_1, True
        return TrustTier(profile.trust_tier), profile.is_first_time_borrower

    async def _get_record_for_actor(self, match_id: UUID, actor_id: UUID) -> MatchRecord:
        record = await self.match_repo.get_with_relations(match_id)
        if record is None:
            raise MatchRecordNotFoundError(match_id)

        lender = record.lender
        if lender is None or not lender.is_acting_user(actor_id):
            raise NotAuthorizedError("Not authorized to respond to this match")
        return record

    @staticmethod
    def _ensure_pending(record: MatchRecord) -> None:
        if record.status != MatchRecordStatus.PENDING:
            raise OfferNotAvailableError(
                f"This match has already been {record.status.value}",
                code=record.status.value,
            )
