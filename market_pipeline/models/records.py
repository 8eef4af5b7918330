"""Read-only auxiliary dataset records.

These load from the bundled JSON/YAML files. Source files written by
different tools disagree on key spelling, so every model accepts both
snake_case and camelCase keys.
"""

import re
from typing import List, Optional

from pydantic import AliasChoices, Field, field_validator, model_validator

from .agency import OSBPContact
from .base import CamelModel

HOT_NAICS_PATTERN = re.compile(r"\((\d{5,6})\)")
BALANCE_PATTERN = re.compile(r"([\d.]+)\s*([BM+]+)", re.IGNORECASE)
EMAIL_PATTERN = re.compile(r"([a-zA-Z0-9._-]+@[a-zA-Z0-9._-]+\.[a-zA-Z0-9._-]+)")


def clean_contact(value: Optional[str]) -> str:
    """Strip scraping residue from a contact field; reduce to the email if present."""
    if not value:
        return ""
    text = re.sub(r"smallbusinesscompliance", "", str(value), flags=re.IGNORECASE)
    text = re.sub(r"Small\s*$", "", text)
    text = re.sub(r"Website\s*$", "", text)
    text = re.sub(r"\s+", " ", text).strip()
    if "@" in text:
        match = EMAIL_PATTERN.search(text)
        if match:
            return match.group(1)
    return text


def parse_balance(value) -> float:
    """Parse "$12.4B" / "850M+" style balances to dollars."""
    if isinstance(value, (int, float)):
        return float(value)
    if not value:
        return 0.0
    match = BALANCE_PATTERN.search(str(value))
    if not match:
        return 0.0
    try:
        number = float(match.group(1))
    except ValueError:
        return 0.0
    unit = match.group(2).upper()
    if "B" in unit:
        return number * 1e9
    if "M" in unit:
        return number * 1e6
    return number


def extract_naics_codes(hot_naics: str) -> List[str]:
    return HOT_NAICS_PATTERN.findall(hot_naics or "")


def _split_list(v):
    if v is None:
        return []
    if isinstance(v, str):
        return [part.strip() for part in re.split(r"[,;]", v) if part.strip()]
    return [str(part).strip() for part in v if str(part).strip()]


class TribalBusiness(CamelModel):
    name: str
    region: str = ""
    state: str = ""
    capabilities: List[str] = Field(default_factory=list)
    capabilities_narrative: str = ""
    naics_categories: List[str] = Field(default_factory=list)
    all_naics_codes: List[str] = Field(default_factory=list)
    primary_naics: str = ""
    certifications: List[str] = Field(default_factory=list)
    contact_name: str = ""
    email: str = ""
    phone: str = ""
    website: str = ""

    @field_validator("capabilities", "naics_categories", "all_naics_codes", "certifications", mode="before")
    @classmethod
    def split_lists(cls, v):
        return _split_list(v)

    @property
    def display_region(self) -> str:
        return self.region or self.state or "Unknown"

    @property
    def capability_list(self) -> List[str]:
        return self.capabilities or _split_list(self.capabilities_narrative)

    @property
    def naics_list(self) -> List[str]:
        if self.naics_categories:
            return self.naics_categories
        if self.all_naics_codes:
            return self.all_naics_codes
        return [self.primary_naics] if self.primary_naics else []


class PrimeContractor(CamelModel):
    """A prime (or tier-2) contractor with its small-business liaison."""

    name: str
    sblo_name: str = ""
    email: str = ""
    phone: str = ""
    naics_categories: List[str] = Field(default_factory=list)
    psc_codes: List[str] = Field(default_factory=list)
    agencies: List[str] = Field(default_factory=list)
    supplier_portal: str = ""
    contract_count: Optional[int] = None
    total_contract_value: Optional[float] = None
    certifications: List[str] = Field(default_factory=list)
    tier_classification: str = "Prime"

    @field_validator("naics_categories", "psc_codes", "agencies", "certifications", mode="before")
    @classmethod
    def split_lists(cls, v):
        return _split_list(v)

    @field_validator("email", "sblo_name", "phone", mode="before")
    @classmethod
    def clean(cls, v):
        return clean_contact(v)


class Contractor(CamelModel):
    """A row of the searchable contractor directory."""

    company: str
    sblo_name: str = ""
    email: str = ""
    phone: str = ""
    naics: str = Field(default="", description="Comma-separated NAICS codes")
    agency: str = ""
    source: str = ""
    contract_value_num: float = 0.0
    contract_count: int = 0

    @property
    def has_email(self) -> bool:
        return bool(self.email)

    @property
    def has_contact(self) -> bool:
        return bool(self.email or self.phone)

    @property
    def naics_codes(self) -> List[str]:
        return _split_list(self.naics)


class DecemberSpendRecord(CamelModel):
    """An agency program with unobligated year-end balance."""

    agency: str
    program: str = ""
    unobligated_balance: str = Field(
        default="",
        validation_alias=AliasChoices("unobligated_balance", "unobligatedBalance", "unobligatedBalanceDec"),
    )
    hot_naics: str = Field(default="", validation_alias=AliasChoices("hot_naics", "hotNaics"))
    psc: str = ""
    prime_contractor: str = Field(default="", validation_alias=AliasChoices("prime_contractor", "primeContractor"))
    sblo_name: str = Field(default="", validation_alias=AliasChoices("sblo_name", "sbloName"))
    email: str = Field(default="", validation_alias=AliasChoices("sblo_email", "email", "sbloEmail"))
    phone: str = Field(default="", validation_alias=AliasChoices("sblo_phone", "phone", "sbloPhone"))

    balance_amount: float = 0.0
    naics_codes: List[str] = Field(default_factory=list)

    @field_validator("unobligated_balance", mode="before")
    @classmethod
    def balance_text(cls, v):
        return "" if v is None else str(v)

    @field_validator("sblo_name", "email", "phone", mode="before")
    @classmethod
    def clean(cls, v):
        return clean_contact(v)

    @model_validator(mode="after")
    def derive(self) -> "DecemberSpendRecord":
        if not self.balance_amount:
            self.balance_amount = parse_balance(self.unobligated_balance)
        if not self.naics_codes:
            self.naics_codes = extract_naics_codes(self.hot_naics)
        return self


class CuratedHitListEntry(CamelModel):
    id: str
    rank: int = 0
    title: str = ""
    notice_id: str = ""
    deadline: Optional[str] = None
    type: str = ""
    naics: str = ""
    set_aside: str = ""
    is_urgent: bool = False
    description: str = ""
    poc: str = ""
    link: str = ""
    category: str = ""
    priority: str = "medium"


class Forecast(CamelModel):
    """A published procurement forecast."""

    id: str
    agency: str
    title: str = ""
    description: str = ""
    office: str = ""
    naics_code: str = ""
    set_aside: str = ""
    estimated_value: float = 0.0
    solicitation_date: Optional[str] = None
    award_date: Optional[str] = None
    source_url: str = ""


class CommandInfo(CamelModel):
    """A military command (or civilian buying activity) directory entry."""

    key: str = ""
    full_name: str
    abbreviation: str = ""
    parent_agency: str = ""
    website: str = ""
    forecast_url: str = ""
    sam_forecast_url: str = ""
    small_business_office: Optional[OSBPContact] = None
    acquisition_office: dict = Field(default_factory=dict)
    key_capabilities: List[str] = Field(default_factory=list)


class ServiceBranchInfo(CamelModel):
    key: str = ""
    website: str = ""
    small_business_website: str = ""
    small_business_office: Optional[OSBPContact] = None
