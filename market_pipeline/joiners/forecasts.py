"""Agency procurement forecasts."""

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional, Sequence

from ..models.records import Forecast
from .datasets import AuxiliaryDatasets


@dataclass
class ForecastStatistics:
    total_value: float = 0.0
    total_forecasts: int = 0
    average_value: float = 0.0
    agency_counts: Dict[str, int] = field(default_factory=dict)
    naics_counts: Dict[str, int] = field(default_factory=dict)
    set_aside_counts: Dict[str, int] = field(default_factory=dict)


def _parse_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


def upcoming(forecasts: Sequence[Forecast], limit: int = 10, today: Optional[date] = None) -> List[Forecast]:
    """Forecasts whose solicitation date is today or later, soonest first."""
    today = today or date.today()
    dated = [(d, f) for f in forecasts for d in [_parse_date(f.solicitation_date)] if d is not None and d >= today]
    dated.sort(key=lambda pair: pair[0])
    return [f for _, f in dated[:limit]]


def statistics(forecasts: Sequence[Forecast]) -> ForecastStatistics:
    stats = ForecastStatistics(total_forecasts=len(forecasts))
    for forecast in forecasts:
        stats.total_value += forecast.estimated_value
        stats.agency_counts[forecast.agency] = stats.agency_counts.get(forecast.agency, 0) + 1
        stats.naics_counts[forecast.naics_code] = stats.naics_counts.get(forecast.naics_code, 0) + 1
        stats.set_aside_counts[forecast.set_aside] = stats.set_aside_counts.get(forecast.set_aside, 0) + 1
    if forecasts:
        stats.average_value = stats.total_value / len(forecasts)
    return stats


class ForecastDirectory:
    def __init__(self, datasets: AuxiliaryDatasets):
        self.forecasts = datasets.forecasts

    def by_agency(self, agency: str) -> List[Forecast]:
        lower = (agency or "").strip().lower()
        if not lower:
            return []
        return [f for f in self.forecasts if lower in f.agency.lower() or f.agency.lower() in lower]

    def by_naics(self, naics_code: str) -> List[Forecast]:
        """Exact code, then the 5-digit prefix of a 6-digit code, then the 3-digit prefix."""
        code = (naics_code or "").strip()
        if not code:
            return []
        matches = [f for f in self.forecasts if f.naics_code == code]
        if not matches and len(code) == 6:
            matches = [f for f in self.forecasts if f.naics_code.startswith(code[:5])]
        if not matches and len(code) >= 5:
            matches = [f for f in self.forecasts if f.naics_code.startswith(code[:3])]
        return matches

    def for_selected_agencies(
        self,
        agencies: Sequence[str],
        naics_code: Optional[str] = None,
        set_aside: Optional[str] = None,
    ) -> List[Forecast]:
        found: Dict[str, Forecast] = {}
        for agency in agencies:
            for forecast in self.by_agency(agency):
                found.setdefault(forecast.id, forecast)
        results = list(found.values())

        if naics_code:
            naics_matches = self.by_naics(naics_code)
            ids = {f.id for f in naics_matches}
            results = [f for f in results if f.id in ids]
            if not results:
                # Nothing at the selected agencies; show the industry elsewhere
                results = naics_matches

        if set_aside:
            lower = set_aside.lower()
            narrowed = [f for f in results if lower in f.set_aside.lower()]
            if narrowed:
                results = narrowed

        return sorted(results, key=lambda f: f.estimated_value, reverse=True)
