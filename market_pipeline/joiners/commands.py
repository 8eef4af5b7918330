"""Military command and agency directory: websites, forecasts, OSBP contacts."""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional
from urllib.parse import quote

from ..models.agency import OSBPContact
from ..models.records import CommandInfo, ServiceBranchInfo
from .datasets import AuxiliaryDatasets

logger = logging.getLogger(__name__)

SAM_SEARCH_URL = (
    "https://sam.gov/search/?index=opp&sort=-relevance&page=1&pageSize=25"
    "&sfm%5Bstatus%5D%5Bis_active%5D=true"
)
SAM_KEYWORD_SUFFIX = (
    "&sfm%5BsimpleSearch%5D%5BkeywordRadio%5D=ALL"
    "&sfm%5BsimpleSearch%5D%5BkeywordTags%5D%5B0%5D%5Bkey%5D={}"
)

DOD_AGENCIES = [
    "DEPARTMENT OF DEFENSE",
    "DEPARTMENT OF THE ARMY",
    "DEPARTMENT OF THE NAVY",
    "DEPARTMENT OF THE AIR FORCE",
    "U.S. SPACE FORCE",
]


def sam_search_url(keyword: Optional[str] = None) -> str:
    if not keyword:
        return SAM_SEARCH_URL
    return SAM_SEARCH_URL + SAM_KEYWORD_SUFFIX.format(quote(keyword, safe=""))


def is_dod_agency(parent_agency: str) -> bool:
    upper = (parent_agency or "").upper()
    return any(a in upper for a in DOD_AGENCIES)


def _contains_term(text: str, term: str) -> bool:
    """Whole-word containment, so "VA" does not hit "NAVAL"."""
    term = (term or "").strip().upper()
    if not term:
        return False
    return re.search(rf"(?<![A-Z0-9]){re.escape(term)}(?![A-Z0-9])", text.upper()) is not None


@dataclass(frozen=True)
class EnhancedAgencyInfo:
    command: Optional[str]
    command_info: Optional[CommandInfo]
    forecast_url: Optional[str]
    sam_forecast_url: str
    small_business_contact: Optional[OSBPContact]
    website: Optional[str]

    @classmethod
    def from_command(cls, info: CommandInfo) -> "EnhancedAgencyInfo":
        return cls(
            command=info.abbreviation or info.key,
            command_info=info,
            forecast_url=info.forecast_url or None,
            sam_forecast_url=info.sam_forecast_url or sam_search_url(info.abbreviation or info.full_name),
            small_business_contact=info.small_business_office,
            website=info.website or None,
        )

    @classmethod
    def from_branch(cls, branch: ServiceBranchInfo, keyword: str) -> "EnhancedAgencyInfo":
        return cls(
            command=None,
            command_info=None,
            forecast_url=branch.small_business_website or None,
            sam_forecast_url=sam_search_url(keyword),
            small_business_contact=branch.small_business_office,
            website=branch.website or None,
        )


class CommandDirectory:
    """Lookups over the command / service-branch / civilian-agency directory."""

    def __init__(self, datasets: AuxiliaryDatasets):
        self.commands = datasets.commands
        self.branches = datasets.service_branches
        self.civilian_keywords = datasets.civilian_agencies

    def command_info(self, command: str) -> Optional[CommandInfo]:
        """Key, then abbreviation (case-insensitive), then whole-word key/full-name match."""
        if not command:
            return None
        if command in self.commands:
            return self.commands[command]
        upper = command.strip().upper()
        for info in self.commands.values():
            if info.abbreviation and info.abbreviation.upper() == upper:
                return info
        for key, info in self.commands.items():
            if _contains_term(key, upper) or _contains_term(info.full_name, upper):
                return info
        return None

    def service_branch(self, branch: str) -> Optional[ServiceBranchInfo]:
        if not branch:
            return None
        if branch in self.branches:
            return self.branches[branch]
        upper = branch.upper()
        for key, info in self.branches.items():
            if key.upper() in upper or upper in key.upper():
                return info
        return None

    def dod_commands(self) -> List[CommandInfo]:
        return [c for c in self.commands.values() if is_dod_agency(c.parent_agency)]

    def commands_for_branch(self, branch: str) -> List[CommandInfo]:
        """Commands under a military department; a generic DoD name yields every DoD command."""
        upper = (branch or "").upper()
        for service in ("NAVY", "ARMY", "AIR FORCE"):
            if service in upper:
                return [c for c in self.dod_commands() if service in c.parent_agency.upper()]
        return self.dod_commands()

    def _command_in(self, text: str) -> Optional[CommandInfo]:
        if not text:
            return None
        for info in self.commands.values():
            if _contains_term(text, info.abbreviation) or _contains_term(text, info.full_name):
                return info
        return None

    def civilian_agency(self, parent_agency: str) -> Optional[CommandInfo]:
        """Civilian agency entry by exact parent, keyword table, then partial parent match."""
        upper = (parent_agency or "").upper()
        if not upper:
            return None
        for info in self.commands.values():
            if info.parent_agency.upper() == upper:
                return info
        for abbr, keywords in self.civilian_keywords.items():
            if any(k.upper() in upper for k in keywords) and abbr in self.commands:
                return self.commands[abbr]
        for info in self.commands.values():
            parent = info.parent_agency.upper()
            if parent and (parent in upper or upper in parent):
                return info
        return None

    def enhanced_agency_info(
        self,
        office_name: str,
        sub_agency: str,
        parent_agency: str,
        detected_command: Optional[str] = None,
    ) -> EnhancedAgencyInfo:
        """Best available command/branch/agency info for one buying office.

        Falls back through the detected command, the office name, the
        sub-agency, the parent's service branch, the sub-agency's service
        branch and the civilian-agency table. The last resort is a plain
        SAM.gov opportunity search link.
        """
        if detected_command:
            info = self.command_info(detected_command)
            if info:
                return EnhancedAgencyInfo.from_command(info)

        for text in (office_name, sub_agency):
            info = self._command_in(text)
            if info:
                return EnhancedAgencyInfo.from_command(info)

        branch = self.service_branch(parent_agency)
        if branch:
            return EnhancedAgencyInfo.from_branch(branch, parent_agency)
        if sub_agency and sub_agency != parent_agency:
            branch = self.service_branch(sub_agency)
            if branch:
                return EnhancedAgencyInfo.from_branch(branch, sub_agency)

        civilian = self.civilian_agency(parent_agency)
        if civilian:
            return EnhancedAgencyInfo.from_command(civilian)

        return EnhancedAgencyInfo(
            command=None,
            command_info=None,
            forecast_url=None,
            sam_forecast_url=sam_search_url(),
            small_business_contact=None,
            website=None,
        )
