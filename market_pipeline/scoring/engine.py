"""Rule-based scoring for award opportunities.

Competition level and win probability are pure functions of the award
amount and its set-aside description, so the same award always scores the
same way. Thresholds live in ``ScoringPolicy``.
"""

from typing import List, Sequence

from pydantic import BaseModel, model_validator

from ..models.award import AwardRecord
from ..models.opportunity import HitListOpportunity
from ..taxonomy.office_names import enhance_office_name

SET_ASIDE_KEYWORDS = ("small business", "8(a)", "sdvosb", "wosb", "hubzone", "veteran")

WIN_PROBABILITY_RANK = {"high": 3, "medium": 2, "low": 1}


class ScoringPolicy(BaseModel):
    """Dollar thresholds behind competition level, win probability and amount bands.

    Bounds are in dollars. ``competition_high`` and ``competition_medium``
    are exclusive lower bounds: exactly $5M is medium, exactly $1M is low.
    """

    competition_high: float = 5_000_000
    competition_medium: float = 1_000_000
    set_aside_win_ceiling: float = 1_000_000
    unrestricted_win_ceiling: float = 100_000
    sweet_spot_low: float = 100_000
    sweet_spot_high: float = 1_000_000
    small_band_low: float = 50_000

    @model_validator(mode="after")
    def _ordered(self) -> "ScoringPolicy":
        if self.competition_medium > self.competition_high:
            raise ValueError(
                f"competition_medium ({self.competition_medium}) must not exceed "
                f"competition_high ({self.competition_high})"
            )
        if not self.small_band_low <= self.sweet_spot_low <= self.sweet_spot_high:
            raise ValueError("amount bands must satisfy small_band_low <= sweet_spot_low <= sweet_spot_high")
        return self


DEFAULT_POLICY = ScoringPolicy()


def competition_level(amount: float, policy: ScoringPolicy = DEFAULT_POLICY) -> str:
    if amount > policy.competition_high:
        return "high"
    if amount > policy.competition_medium:
        return "medium"
    return "low"


def has_set_aside_keyword(description: str) -> bool:
    lower = (description or "").lower()
    return any(k in lower for k in SET_ASIDE_KEYWORDS)


def win_probability(amount: float, set_aside: str, policy: ScoringPolicy = DEFAULT_POLICY) -> str:
    """Set-aside under $1M is high; set-aside at $1M+ or unrestricted under $100K is medium."""
    if has_set_aside_keyword(set_aside):
        return "high" if amount < policy.set_aside_win_ceiling else "medium"
    if amount < policy.unrestricted_win_ceiling:
        return "medium"
    return "low"


def amount_band_score(amount: float, policy: ScoringPolicy = DEFAULT_POLICY) -> int:
    if policy.sweet_spot_low <= amount <= policy.sweet_spot_high:
        return 3
    if policy.small_band_low <= amount < policy.sweet_spot_low:
        return 2
    if amount > policy.sweet_spot_high:
        return 1
    return 0


def rank_opportunities(
    opportunities: Sequence[HitListOpportunity], policy: ScoringPolicy = DEFAULT_POLICY
) -> List[HitListOpportunity]:
    """Win probability first, then amount band; equal keys keep their input order."""
    return sorted(
        opportunities,
        key=lambda o: (WIN_PROBABILITY_RANK.get(o.win_probability, 0), amount_band_score(o.amount, policy)),
        reverse=True,
    )


def score_award(
    record: AwardRecord, index: int = 0, fallback_naics: str = "", policy: ScoringPolicy = DEFAULT_POLICY
) -> HitListOpportunity:
    set_aside = record.set_aside or "Unrestricted"
    office = enhance_office_name(record.awarding_office or "Unknown Office")
    return HitListOpportunity(
        id=record.award_id or f"hit-list-{index + 1}",
        title=record.description or "Contract Opportunity",
        agency=record.awarding_agency or "Unknown Agency",
        office=office,
        naics=record.naics_code or fallback_naics,
        amount=record.amount,
        set_aside=set_aside,
        award_date=record.award_date,
        description=record.naics_description,
        potential_value=record.amount,
        competition_level=competition_level(record.amount, policy),
        win_probability=win_probability(record.amount, set_aside, policy),
        generated_internal_id=record.generated_internal_id,
        link=record.usaspending_url,
    )
