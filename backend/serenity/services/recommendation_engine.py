"""Recommendation scoring for client onboarding.

Scores catalog candidates (published services, available consultants)
against what a client told us during onboarding: the services they are
interested in and their industry.

Service score:     75 base, +25 when the service covers the client's industry
Consultant score:  70 base, +15 for a skill matching an interest,
                   +15 when the consultant works in the client's industry

Output keeps the catalog's retrieval order; scores are for display and do
not reorder the list. Each list is capped and never names a target twice.
"""

from dataclasses import dataclass, field

from serenity.schemas.onboarding_documents import (
    ClientPreferences,
    CompanyInfo,
    ConsultantRecommendation,
    ServiceRecommendation,
)

DEFAULT_RECOMMENDATION_LIMIT = 5

SERVICE_BASE_SCORE = 75
SERVICE_INDUSTRY_BONUS = 25

CONSULTANT_BASE_SCORE = 70
CONSULTANT_SKILL_BONUS = 15
CONSULTANT_INDUSTRY_BONUS = 15

# =============================================================================
# Inputs
# =============================================================================


@dataclass(frozen=True)
class ServiceCandidate:
    """A published catalog service."""

    id: str
    name: str
    category: str
    industries: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ConsultantCandidate:
    """An available consultant, as listed in the consultant catalog."""

    user_id: str
    display_name: str
    skills: list[str] = field(default_factory=list)
    industries: list[str] = field(default_factory=list)
    primary_specialty: str | None = None
    years_of_experience: int | None = None


@dataclass(frozen=True)
class ClientContext:
    """What the engine knows about the client.

    Attributes:
        interests: Services or topics the client is interested in.
        industries: The client's industry from company info and preferences.
    """

    interests: tuple[str, ...]
    industries: tuple[str, ...]

    @classmethod
    def from_onboarding(
        cls, preferences: ClientPreferences, company_info: CompanyInfo
    ) -> "ClientContext":
        interests = _unique(preferences.services_interested)
        industries = _unique([company_info.industry, preferences.industry])
        return cls(interests=interests, industries=industries)

    @property
    def interest_keys(self) -> frozenset[str]:
        return frozenset(_normalize(i) for i in self.interests)

    @property
    def industry_keys(self) -> frozenset[str]:
        return frozenset(_normalize(i) for i in self.industries)


def _unique(values: list[str | None]) -> tuple[str, ...]:
    """Stripped, non-empty values without case-insensitive repeats."""
    seen: set[str] = set()
    unique: list[str] = []
    for value in values:
        stripped = (value or "").strip()
        if stripped and _normalize(stripped) not in seen:
            seen.add(_normalize(stripped))
            unique.append(stripped)
    return tuple(unique)


def _normalize(value: str) -> str:
    return value.strip().casefold()


def _overlaps(values: list[str], wanted: frozenset[str]) -> bool:
    return any(_normalize(v) in wanted for v in values)


# =============================================================================
# Matching
# =============================================================================


def service_matches(candidate: ServiceCandidate, context: ClientContext) -> bool:
    """Service name or category is one of the client's interests."""
    return (
        _normalize(candidate.name) in context.interest_keys
        or _normalize(candidate.category) in context.interest_keys
    )


def consultant_matches(candidate: ConsultantCandidate, context: ClientContext) -> bool:
    """Skills, industry or specialty line up with the client."""
    return (
        _overlaps(candidate.skills, context.interest_keys)
        or _overlaps(candidate.industries, context.industry_keys)
        or (
            candidate.primary_specialty is not None
            and _normalize(candidate.primary_specialty) in context.interest_keys
        )
    )


# =============================================================================
# Scoring
# =============================================================================


def score_service(candidate: ServiceCandidate, context: ClientContext) -> int:
    score = SERVICE_BASE_SCORE
    if _overlaps(candidate.industries, context.industry_keys):
        score += SERVICE_INDUSTRY_BONUS
    return min(score, 100)


def score_consultant(candidate: ConsultantCandidate, context: ClientContext) -> int:
    score = CONSULTANT_BASE_SCORE
    if _overlaps(candidate.skills, context.interest_keys):
        score += CONSULTANT_SKILL_BONUS
    if _overlaps(candidate.industries, context.industry_keys):
        score += CONSULTANT_INDUSTRY_BONUS
    return min(score, 100)


def service_reason(candidate: ServiceCandidate) -> str:
    return f"This service aligns with your {candidate.category} needs"


def consultant_reason(candidate: ConsultantCandidate) -> str:
    specialty = candidate.primary_specialty or "your areas of interest"
    years = candidate.years_of_experience or "relevant"
    return f"This consultant specializes in {specialty} with {years} years of experience"


def recommend_services(
    candidates: list[ServiceCandidate],
    context: ClientContext,
    limit: int = DEFAULT_RECOMMENDATION_LIMIT,
) -> list[ServiceRecommendation]:
    """Score matching services in retrieval order, at most ``limit``."""
    recommendations: list[ServiceRecommendation] = []
    seen: set[str] = set()
    for candidate in candidates:
        if len(recommendations) >= limit:
            break
        if candidate.id in seen or not service_matches(candidate, context):
            continue
        seen.add(candidate.id)
        recommendations.append(
            ServiceRecommendation(
                service_id=candidate.id,
                match_score=score_service(candidate, context),
                reason=service_reason(candidate),
            )
        )
    return recommendations


def recommend_consultants(
    candidates: list[ConsultantCandidate],
    context: ClientContext,
    limit: int = DEFAULT_RECOMMENDATION_LIMIT,
) -> list[ConsultantRecommendation]:
    """Score matching consultants in retrieval order, at most ``limit``."""
    recommendations: list[ConsultantRecommendation] = []
    seen: set[str] = set()
    for candidate in candidates:
        if len(recommendations) >= limit:
            break
        if candidate.user_id in seen or not consultant_matches(candidate, context):
            continue
        seen.add(candidate.user_id)
        recommendations.append(
            ConsultantRecommendation(
                consultant_id=candidate.user_id,
                match_score=score_consultant(candidate, context),
                reason=consultant_reason(candidate),
                status="recommended",
            )
        )
    return recommendations
