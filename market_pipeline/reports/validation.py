"""Report request shape and the error text shown when it is invalid."""

import re
from typing import Iterable, List, Optional

from pydantic import Field, field_validator

from ..models.agency import AgencyBucket
from ..models.base import CamelModel
from ..models.core_inputs import CoreInputs

MAX_SELECTED_AGENCIES = 50
MAX_NAME_LENGTH = 500

_TAGS = re.compile(r"<[^>]*>")


def sanitize_text(value: str, max_length: int = MAX_NAME_LENGTH) -> str:
    """Strip HTML-like tags and cap the length."""
    return _TAGS.sub("", value)[:max_length]


class ReportRequest(CamelModel):
    inputs: CoreInputs
    selected_agencies: List[str] = Field(..., min_length=1, max_length=MAX_SELECTED_AGENCIES)
    selected_agency_data: Optional[List[AgencyBucket]] = None

    @field_validator("selected_agencies")
    @classmethod
    def clean_names(cls, v: List[str]) -> List[str]:
        cleaned = [sanitize_text(name).strip() for name in v]
        if not all(cleaned):
            raise ValueError("selectedAgencies entries must be non-empty")
        return cleaned


def _location(loc) -> str:
    return ".".join(str(part) for part in loc if part not in ("body",))


def validation_message(errors: Iterable[dict]) -> str:
    """One entry per problem, joined with ``"; "``. Takes ``exc.errors()``."""
    messages = []
    for error in errors:
        where = _location(error.get("loc", ()))
        text = error.get("msg", "invalid value")
        messages.append(f"{where}: {text}" if where else text)
    return "; ".join(messages)
