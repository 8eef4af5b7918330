"""HitListOpportunity - scored view of an award or a curated entry."""

from typing import List, Literal, Optional

from pydantic import Field

from .base import CamelModel

Level = Literal["low", "medium", "high"]


class HitListOpportunity(CamelModel):
    """A ranked opportunity.

    Derived deterministically from an AwardRecord (``source="usaspending"``)
    or copied from the curated hit list (``source="curated"``).
    """

    id: str = Field(..., description="Award id or curated notice id")
    title: str = Field(default="")
    agency: str = Field(default="")
    office: str = Field(default="")
    naics: str = Field(default="")
    amount: float = Field(default=0.0)
    set_aside: str = Field(default="Unrestricted")
    award_date: Optional[str] = Field(None)
    description: str = Field(default="")
    potential_value: float = Field(default=0.0)
    competition_level: Level = Field(default="low")
    win_probability: Level = Field(default="low")
    generated_internal_id: str = Field(default="")
    link: str = Field(default="")
    source: Literal["usaspending", "curated"] = Field(default="usaspending")

    # Curated-only
    rank: Optional[int] = Field(None)
    priority: Optional[Level] = Field(None)
    is_urgent: bool = Field(default=False)
    deadline: Optional[str] = Field(None)
    poc: Optional[str] = Field(None)
    category: Optional[str] = Field(None)


class HitListResult(CamelModel):
    success: bool = True
    opportunities: List[HitListOpportunity] = Field(default_factory=list)
    metadata: dict = Field(default_factory=dict)
