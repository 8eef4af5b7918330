"""CoreInputs - the user-supplied search parameters that drive every query."""

import re
from enum import Enum
from typing import Optional

from pydantic import ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .base import CamelModel

ZIP_PATTERN = re.compile(r"^\d{5}(-\d{4})?$")
NAICS_PATTERN = re.compile(r"^\d{2,6}$")
PSC_PATTERN = re.compile(r"^[A-Z0-9]{4}$")


class BusinessType(str, Enum):
    WOMEN_OWNED = "Women Owned"
    HUBZONE = "HUBZone"
    EIGHT_A = "8(a) Certified"
    SMALL_BUSINESS = "Small Business"
    DOT_CERTIFIED = "DOT Certified"
    NATIVE_AMERICAN = "Native American/Tribal"


class VeteranStatus(str, Enum):
    VETERAN_OWNED = "Veteran Owned"
    SERVICE_DISABLED = "Service Disabled Veteran"
    NOT_APPLICABLE = "Not Applicable"


class GoodsOrServices(str, Enum):
    GOODS = "Goods"
    SERVICES = "Services"
    BOTH = "Both"


class CoreInputs(CamelModel):
    """Search parameters submitted by the user.

    Immutable once validated. At least one of NAICS or PSC must be given.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    business_type: BusinessType = Field(..., description="Business certification classification")
    naics_code: Optional[str] = Field(None, description="2-6 digit NAICS code")
    zip_code: Optional[str] = Field(None, description="5-digit or ZIP+4 code")
    veteran_status: Optional[VeteranStatus] = Field(None, description="Veteran ownership status")
    goods_or_services: Optional[GoodsOrServices] = Field(None, description="Goods, Services or Both")
    psc_code: Optional[str] = Field(None, description="4-character Product/Service Code")
    company_name: Optional[str] = Field(None, description="Optional company name")
    exclude_dod: bool = Field(default=False, description="Drop Department of Defense buyers")

    @field_validator("naics_code", "zip_code", "psc_code", "company_name", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    @field_validator("naics_code")
    @classmethod
    def naics_digits(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not NAICS_PATTERN.match(v):
            raise ValueError(f"NAICS code must be 2-6 digits, got {v!r}")
        return v

    @field_validator("zip_code")
    @classmethod
    def zip_format(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not ZIP_PATTERN.match(v):
            raise ValueError(f"ZIP code must be NNNNN or NNNNN-NNNN, got {v!r}")
        return v

    @field_validator("psc_code")
    @classmethod
    def psc_format(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.upper()
        if not PSC_PATTERN.match(v):
            raise ValueError(f"PSC code must be 4 alphanumeric characters, got {v!r}")
        return v

    @model_validator(mode="after")
    def naics_or_psc(self) -> "CoreInputs":
        if not self.naics_code and not self.psc_code:
            raise ValueError("Either a NAICS code or a PSC code is required")
        return self

    @property
    def has_veteran_status(self) -> bool:
        return self.veteran_status not in (None, VeteranStatus.NOT_APPLICABLE)
