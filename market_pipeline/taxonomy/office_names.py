"""Readable names for cryptic awarding-office strings."""

import re
from typing import Dict

OFFICE_NAME_ENHANCEMENTS: Dict[str, str] = {
    "Endist Omaha": "U.S. Army Engineer District, Omaha",
    "W071": "U.S. Army Engineer District, Omaha",
    "Endist Sacramento": "U.S. Army Engineer District, Sacramento",
    "Endist Louisville": "U.S. Army Engineer District, Louisville",
    "Endist Norfolk": "U.S. Army Engineer District, Norfolk",
    "USA Eng Spt Ctr Huntsvil": "U.S. Army Engineering and Support Center, Huntsville, Alabama",
    "2V6": "U.S. Army Engineering and Support Center, Huntsville, Alabama",
    "ACC-PICA": "Army Contracting Command - Program Integration and Contracting Activity",
    "W6QK": "Army Contracting Command",
    "ACC-APG Natick": "Army Contracting Command - Aberdeen Proving Ground, Natick",
    "ACC-RSA": "Army Contracting Command - Redstone Arsenal",
    "ACC-APG": "Army Contracting Command - Aberdeen Proving Ground",
    "Afmc Wpafb Oh": "Air Force Materiel Command - Wright-Patterson AFB, Ohio",
    "Afsc Maxwell Afb Al": "Air Force Sustainment Center - Maxwell AFB, Alabama",
    "772 ESS PKD": "772 Enterprise Sourcing Squadron - Wright-Patterson AFB",
    "Navfac Northwest": "Naval Facilities Engineering Command Northwest",
    "Navfac Atlantic": "Naval Facilities Engineering Command Atlantic",
    "Navfac Pacific": "Naval Facilities Engineering Command Pacific",
    "Navsup Flc Norfolk": "Naval Supply Systems Command Fleet Logistics Center Norfolk",
    "Cbp Oaq": "U.S. Customs and Border Protection - Office of Acquisition",
}

ABBREVIATIONS: Dict[str, str] = {
    "Svc": "Service",
    "Dept": "Department",
    "Hq": "Headquarters",
    "Cmd": "Command",
    "Ctr": "Center",
    "Endist": "Engineer District",
}

_ABBREVIATION_PATTERN = re.compile(r"\b(" + "|".join(ABBREVIATIONS) + r")\b")
_USPFO_PATTERN = re.compile(r"uspfo\s+(?:activity\s+)?(\w{2})\s+arng", re.IGNORECASE)

# Longest keys first so "ACC-APG Natick" wins over "ACC-APG".
_SUBSTRING_KEYS = sorted(OFFICE_NAME_ENHANCEMENTS, key=len, reverse=True)


def enhance_office_name(name: str) -> str:
    """Direct table hit, then a table key contained in the name, then abbreviation expansion."""
    if not name:
        return name
    name = name.strip()
    if name in OFFICE_NAME_ENHANCEMENTS:
        return OFFICE_NAME_ENHANCEMENTS[name]
    for key in _SUBSTRING_KEYS:
        if key in name:
            return OFFICE_NAME_ENHANCEMENTS[key]
    uspfo = _USPFO_PATTERN.search(name)
    if uspfo:
        return f"U.S. Property and Fiscal Office - {uspfo.group(1).upper()} Army National Guard"
    return _ABBREVIATION_PATTERN.sub(lambda m: ABBREVIATIONS[m.group(1)], name)


# Raw FPDS office names: "W6QM MICC-FT CARSON", "NAVFAC ATLANTIC", "42 CONS/PK".
FPDS_ABBREVIATIONS: Dict[str, str] = {
    "NAVFAC": "Naval Facilities Engineering Command",
    "NAVSEA": "Naval Sea Systems Command",
    "NAVAIR": "Naval Air Systems Command",
    "NAVWAR": "Naval Information Warfare Systems Command",
    "SPAWAR": "Space and Naval Warfare Systems Command",
    "USACE": "U.S. Army Corps of Engineers",
    "AFMC": "Air Force Materiel Command",
    "AFLCMC": "Air Force Life Cycle Management Center",
    "AFSC": "Air Force Sustainment Center",
    "DLA": "Defense Logistics Agency",
    "DCMA": "Defense Contract Management Agency",
    "DISA": "Defense Information Systems Agency",
    "MDA": "Missile Defense Agency",
    "NGA": "National Geospatial-Intelligence Agency",
}
UPPERCASE_WORDS = {"MICC", "MCAS", "USA", "DOD"}

_DODAAC_PREFIX = re.compile(r"^[A-Z][0-9][A-Z0-9]{2}\s+", re.IGNORECASE)
_ACA_PREFIX = re.compile(r"^aca,?\s+", re.IGNORECASE)
_ACC_PREFIX = re.compile(r"\bacc-\s*", re.IGNORECASE)
_MICC = re.compile(r"\bmicc-?", re.IGNORECASE)
_CONS = re.compile(r"\b(\d+)\s*cons\b(?:/\w*)?", re.IGNORECASE)
_FPDS_ABBREVIATION_PATTERN = re.compile(r"\b(" + "|".join(FPDS_ABBREVIATIONS) + r")\b", re.IGNORECASE)
_INSTALLATIONS = ((re.compile(r"\bFt\b", re.IGNORECASE), "Fort"), (re.compile(r"\bJb\b", re.IGNORECASE), "Joint Base"))
_UPPER_WORD = re.compile(r"\b[A-Z]{2,}\b")


def _ordinal(n: int) -> str:
    if 10 <= n % 100 <= 20:
        return f"{n}th"
    suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n}{suffix}"


def _title_word(word: str) -> str:
    if word in UPPERCASE_WORDS:
        return word
    if word.startswith("MC") and len(word) > 2:
        return "Mc" + word[2:].capitalize()
    return word.capitalize()


def clean_fpds_office_name(name: str) -> str:
    """Readable form of an FPDS office name: no DODAAC prefix, acronyms spelled out, title case."""
    cleaned = (name or "").strip()
    if not cleaned:
        return cleaned
    cleaned = _DODAAC_PREFIX.sub("", cleaned)
    cleaned = _ACA_PREFIX.sub("Army Contracting Activity - ", cleaned)
    cleaned = _ACC_PREFIX.sub("Army Contracting Command - ", cleaned)
    cleaned = _MICC.sub("MICC ", cleaned)
    cleaned = _CONS.sub(lambda m: f"{_ordinal(int(m.group(1)))} Contracting Squadron", cleaned)
    cleaned = _FPDS_ABBREVIATION_PATTERN.sub(lambda m: FPDS_ABBREVIATIONS[m.group(1).upper()], cleaned)
    for pattern, replacement in _INSTALLATIONS:
        cleaned = pattern.sub(replacement, cleaned)
    cleaned = _UPPER_WORD.sub(lambda m: _title_word(m.group(0)), cleaned)
    return " ".join(cleaned.split())
