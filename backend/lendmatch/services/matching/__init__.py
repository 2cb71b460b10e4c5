"""Matching engine: policy resolution, eligibility filtering, scoring and ranking."""

from .base import CheckResult, EligibilityCheck, EligibilityContext, PolicyResolution, ResolvedPolicy
from .eligibility import EligibilityFilter, EligibilityResult
from .matcher import CandidateMatch, LenderRejection, MatchEvaluation, Matcher
from .policy import PolicyResolver
from .scoring import MatchScorer

__all__ = [
    "CandidateMatch",
    "CheckResult",
    "EligibilityCheck",
    "EligibilityContext",
    "EligibilityFilter",
    "EligibilityResult",
    "LenderRejection",
    "MatchEvaluation",
    "MatchScorer",
    "Matcher",
    "PolicyResolution",
    "PolicyResolver",
    "ResolvedPolicy",
]
