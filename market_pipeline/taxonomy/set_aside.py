"""Business classification -> award-search set-aside type codes."""

from typing import Dict, List, Optional

from ..models.core_inputs import BusinessType, VeteranStatus

SET_ASIDE_CODES: Dict[BusinessType, List[str]] = {
    BusinessType.WOMEN_OWNED: ["WOSB", "EDWOSB"],
    BusinessType.HUBZONE: ["HZBZ", "HUBZ"],
    BusinessType.EIGHT_A: ["8A", "8AN", "8A COMPETED", "8A SOLE SOURCE"],
    BusinessType.SMALL_BUSINESS: [
        "SBA",
        "SBP",
        "SMALL BUSINESS SET-ASIDE",
        "TOTAL SMALL BUSINESS SET-ASIDE (FAR 19.5)",
    ],
    BusinessType.DOT_CERTIFIED: ["SBP"],
    BusinessType.NATIVE_AMERICAN: ["IND"],
}

VETERAN_CODES: Dict[VeteranStatus, List[str]] = {
    VeteranStatus.VETERAN_OWNED: ["VOSB", "VO"],
    VeteranStatus.SERVICE_DISABLED: ["SDVOSB", "SDVOSBC"],
}

SMALL_BUSINESS_CODES = ["SBA", "SBP"]

ALL_SMALL_BUSINESS_CODES = ["SBA", "SBP", "8A", "8AN", "WOSB", "EDWOSB", "HZBZ", "HUBZ", "SDVOSB", "VOSB"]

# Certifications narrow enough that broadening to every small-business
# program is still a meaningful search.
BROADENABLE_TYPES = {BusinessType.WOMEN_OWNED, BusinessType.HUBZONE, BusinessType.EIGHT_A}


def set_aside_codes(business_type: BusinessType, veteran_status: Optional[VeteranStatus] = None) -> List[str]:
    codes = list(SET_ASIDE_CODES.get(business_type, []))
    for code in VETERAN_CODES.get(veteran_status, []) if veteran_status else []:
        if code not in codes:
            codes.append(code)
    return codes
