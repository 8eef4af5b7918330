"""Product/Service Code handling."""

from typing import Dict, List, Optional

# PSC prefix -> NAICS codes commonly awarded under it. Two-character
# (product group) keys win over one-character (service category) keys.
PSC_TO_NAICS: Dict[str, List[str]] = {
    "D": ["541511", "541512", "541513", "541519", "518210"],
    "R": ["541611", "541612", "541613", "541614", "541618", "541620", "541690"],
    "J": ["811111", "811112", "811118", "811310"],
    "S": ["561210", "561720", "561730"],
    "Y": ["236220", "237110", "237310", "237990"],
    "Z": ["236118", "238990"],
    "B": ["541720", "541990"],
    "C": ["541310", "541320", "541330", "541340", "541350"],
    "Q": ["621111", "621210", "621310"],
    "U": ["611430", "611710"],
    "A": ["541713", "541714", "541715"],
    "70": ["334111", "334112", "334118", "511210"],
    "58": ["334210", "334220", "334290"],
    "65": ["339112", "339113", "339114"],
    "66": ["334510", "334511", "334512", "334513"],
    "75": ["339940", "424120"],
    "71": ["337211", "337214", "337215"],
    "23": ["336110", "336111", "336112"],
    "15": ["336411", "336412", "336413"],
}


def normalize_psc(code: Optional[str]) -> str:
    """Uppercase and trim; PSC codes are never expanded."""
    return (code or "").strip().upper()


def psc_related_naics(code: Optional[str]) -> List[str]:
    psc = normalize_psc(code)
    if not psc:
        return []
    return list(PSC_TO_NAICS.get(psc[:2]) or PSC_TO_NAICS.get(psc[:1]) or [])
