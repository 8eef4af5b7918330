"""Pluggable name-matching strategies for the dataset joiners.

Agency names in award data rarely match the curated datasets verbatim, so
lookups go through a TieredMatcher: each strategy is tried in order and the
first one that matches anything wins. Swapping the tier list (for example
dropping substring matching, or putting an alias table first) changes
every joiner without touching its callers.
"""

import re
from abc import ABC, abstractmethod
from typing import Callable, Iterable, List, Mapping, Optional, Sequence, Tuple, TypeVar

from ..taxonomy.naics import naics_widening_tiers, normalize_naics_code

T = TypeVar("T")

_WS = re.compile(r"\s+")


def normalize_name(value: str) -> str:
    return _WS.sub(" ", (value or "").strip()).casefold()


class MatchStrategy(ABC):
    """Decides whether a lookup key matches a candidate key."""

    name: str = "strategy"
    # Fuzzy strategies can return a semantically wrong entry; strict lookups skip them.
    fuzzy: bool = False

    @abstractmethod
    def matches(self, key: str, candidate: str) -> bool:
        pass


class ExactMatch(MatchStrategy):
    name = "exact"

    def matches(self, key: str, candidate: str) -> bool:
        return bool(key) and key == candidate


class CaseInsensitiveMatch(MatchStrategy):
    name = "case_insensitive"

    def matches(self, key: str, candidate: str) -> bool:
        k = normalize_name(key)
        return bool(k) and k == normalize_name(candidate)


class SubstringMatch(MatchStrategy):
    """Either string contains the other (case-insensitive). Empty strings never match."""

    name = "substring"
    fuzzy = True

    def matches(self, key: str, candidate: str) -> bool:
        k, c = normalize_name(key), normalize_name(candidate)
        if not k or not c:
            return False
        return k in c or c in k


class AliasMatch(MatchStrategy):
    """Maintained alias table: ``{"DOD": "Department of Defense", ...}``."""

    name = "alias"

    def __init__(self, aliases: Mapping[str, str]):
        self.aliases = {normalize_name(a): normalize_name(c) for a, c in aliases.items()}

    def matches(self, key: str, candidate: str) -> bool:
        k = normalize_name(key)
        canonical = self.aliases.get(k)
        return canonical is not None and canonical == normalize_name(candidate)


class TieredMatcher:
    """Tries strategies in order; the first tier with any match wins."""

    def __init__(self, strategies: Sequence[MatchStrategy]):
        self.strategies = list(strategies)

    def _tiers(self, strict: bool) -> List[MatchStrategy]:
        return [s for s in self.strategies if not (strict and s.fuzzy)]

    def filter(
        self,
        key: str,
        items: Iterable[T],
        key_of: Callable[[T], Iterable[str]],
        strict: bool = False,
    ) -> List[T]:
        """All items whose keys match ``key`` in the first non-empty tier."""
        items = list(items)
        for strategy in self._tiers(strict):
            hits = [item for item in items if any(strategy.matches(key, k) for k in key_of(item))]
            if hits:
                return hits
        return []

    def lookup(self, key: str, table: Mapping[str, T], strict: bool = False) -> Optional[Tuple[str, T]]:
        """First ``(table_key, value)`` matching ``key``, or None."""
        for strategy in self._tiers(strict):
            for candidate, value in table.items():
                if strategy.matches(key, candidate):
                    return candidate, value
        return None


DEFAULT_MATCHER = TieredMatcher([ExactMatch(), CaseInsensitiveMatch(), SubstringMatch()])


def naics_tiered_filter(code: str, items: Iterable[T], codes_of: Callable[[T], Iterable[str]]) -> List[T]:
    """Widen a NAICS lookup until something matches.

    Tier one is an exact code match; later tiers accept any record code
    that shares the 5-digit, subsector or sector prefix (or is itself a
    prefix of the search code, as with sector-level dataset entries).
    """
    items = list(items)
    tiers = naics_widening_tiers(code)
    if not tiers:
        return []
    exact = normalize_naics_code(code)
    hits = [item for item in items if any(c == exact for c in codes_of(item))]
    if hits:
        return hits
    for prefix in tiers:
        hits = [
            item
            for item in items
            if any(c and (c.startswith(prefix) or prefix.startswith(c)) for c in codes_of(item))
        ]
        if hits:
            return hits
    return []


def keyword_in(keyword: str, text: str) -> bool:
    """Case-insensitive keyword test; short keywords (ai, 5g, it) must be whole words."""
    keyword = keyword.lower()
    text = (text or "").lower()
    if len(keyword) <= 3:
        return re.search(rf"(?<![a-z0-9]){re.escape(keyword)}(?![a-z0-9])", text) is not None
    return keyword in text


def count_keywords(keywords: Iterable[str], text: str) -> int:
    return sum(1 for k in keywords if keyword_in(k, text))

