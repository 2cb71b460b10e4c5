"""Core enums for type safety across the application."""

from enum import Enum


class LoanMatchStatus(str, Enum):
    """Matching state of a loan request."""

    UNMATCHED = "unmatched"
    MATCHING = "matching"
    MATCHED = "matched"
    NO_MATCH = "no_match"


class LoanStatus(str, Enum):
    """Lifecycle status of a loan once a lender is attached."""

    REQUESTED = "requested"
    # Auto-accepted: lender assigned but has not funded yet
    PENDING = "pending"
    # Lender explicitly accepted the offer
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class MatchRecordStatus(str, Enum):
    """Status of a single lender offer."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    AUTO_ACCEPTED = "auto_accepted"
    DECLINED = "declined"
    EXPIRED = "expired"


class LenderKind(str, Enum):
    """Discriminator for the lender preference variants."""

    INDIVIDUAL = "individual"
    BUSINESS = "business"


class TrustTier(str, Enum):
    """Borrower trust tier as computed by the trust service."""

    TIER_1 = "tier_1"
    TIER_2 = "tier_2"
    TIER_3 = "tier_3"
    TIER_4 = "tier_4"


class PolicySource(str, Enum):
    """Where a lender's effective rate and limit came from."""

    TIER_POLICY = "tier_policy"
    DEFAULT_PREFERENCES = "default_preferences"


class RejectionReason(str, Enum):
    """Single reason a lender was excluded for a loan request."""

    # Policy resolution
    NO_TIER_POLICY = "no_tier_policy"
    TIER_LIMIT_EXCEEDED = "tier_limit_exceeded"
    ABOVE_MAXIMUM_AMOUNT = "above_maximum_amount"

    # Eligibility filter, in evaluation order
    INSUFFICIENT_CAPITAL = "insufficient_capital"
    BELOW_MINIMUM_AMOUNT = "below_minimum_amount"
    COUNTRY_NOT_SERVED = "country_not_served"
    STATE_NOT_SERVED = "state_not_served"
    FIRST_TIME_NOT_ALLOWED = "first_time_not_allowed"
    FIRST_TIME_LIMIT_EXCEEDED = "first_time_limit_exceeded"
    LOAN_TYPE_NOT_SUPPORTED = "loan_type_not_supported"


class AssignmentOutcome(str, Enum):
    """Result of an atomic capital ledger commit."""

    ASSIGNED = "assigned"
    ALREADY_ASSIGNED = "already_assigned"
    INSUFFICIENT_CAPITAL = "insufficient_capital"
    RECORD_CLOSED = "record_closed"


class MatchingOutcomeStatus(str, Enum):
    """Outcome reported by the match orchestrator to its caller."""

    AUTO_ACCEPTED = "auto_accepted"
    PENDING_ACCEPTANCE = "pending_acceptance"
    MANUAL_REVIEW = "manual_review"
    NO_MATCH = "no_match"
    ALREADY_IN_PROGRESS = "already_in_progress"
    ACCEPTED = "accepted"
    DECLINED = "declined"
