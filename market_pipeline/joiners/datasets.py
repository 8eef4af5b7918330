"""Read-only auxiliary datasets, loaded once and injected into the joiners.

Each dataset lives in ``<data_dir>/<name>.json`` or ``<name>.yaml``. A
missing file loads as empty; a file that exists but cannot be parsed or
validated raises DatasetError.
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Type, TypeVar

import yaml
from pydantic import BaseModel, ValidationError

from ..models.records import (
    CommandInfo,
    Contractor,
    CuratedHitListEntry,
    DecemberSpendRecord,
    Forecast,
    PrimeContractor,
    ServiceBranchInfo,
    TribalBusiness,
)
from .matching import AliasMatch, CaseInsensitiveMatch, ExactMatch, SubstringMatch, TieredMatcher

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


class DatasetError(Exception):
    """A bundled dataset exists but is unreadable or malformed."""


@dataclass(frozen=True)
class AgencyPainPoints:
    pain_points: Tuple[str, ...] = ()
    priorities: Tuple[str, ...] = ()


@dataclass(frozen=True)
class PainPointDatabase:
    """Agency -> pain points, plus the rules for reaching an agency indirectly.

    ``component_agencies`` maps a component (e.g. a bureau) to the parent
    whose entry applies to it; ``usace_offices`` holds Corps of Engineers
    district entries.
    """

    agencies: Dict[str, AgencyPainPoints] = field(default_factory=dict)
    component_agencies: Dict[str, str] = field(default_factory=dict)
    usace_offices: Dict[str, AgencyPainPoints] = field(default_factory=dict)


@dataclass(frozen=True)
class AuxiliaryDatasets:
    """Immutable snapshot of every curated dataset."""

    pain_points: PainPointDatabase = field(default_factory=PainPointDatabase)
    commands: Dict[str, CommandInfo] = field(default_factory=dict)
    service_branches: Dict[str, ServiceBranchInfo] = field(default_factory=dict)
    civilian_agencies: Dict[str, Tuple[str, ...]] = field(default_factory=dict)
    agency_aliases: Dict[str, str] = field(default_factory=dict)
    tribal_businesses: Tuple[TribalBusiness, ...] = ()
    prime_contractors: Tuple[PrimeContractor, ...] = ()
    tier2_contractors: Tuple[PrimeContractor, ...] = ()
    contractors: Tuple[Contractor, ...] = ()
    december_spend: Tuple[DecemberSpendRecord, ...] = ()
    hit_list: Tuple[CuratedHitListEntry, ...] = ()
    forecasts: Tuple[Forecast, ...] = ()
    loaded_at: Optional[datetime] = None

    @property
    def matcher(self) -> TieredMatcher:
        """exact -> alias table -> case-insensitive -> substring."""
        return TieredMatcher(
            [ExactMatch(), AliasMatch(self.agency_aliases), CaseInsensitiveMatch(), SubstringMatch()]
        )

    def counts(self) -> Dict[str, int]:
        return {
            "pain_point_agencies": len(self.pain_points.agencies),
            "commands": len(self.commands),
            "tribal_businesses": len(self.tribal_businesses),
            "prime_contractors": len(self.prime_contractors),
            "tier2_contractors": len(self.tier2_contractors),
            "contractors": len(self.contractors),
            "december_spend": len(self.december_spend),
            "hit_list": len(self.hit_list),
            "forecasts": len(self.forecasts),
        }


def _read_file(data_dir: Path, name: str) -> Any:
    for suffix in (".json", ".yaml", ".yml"):
        path = data_dir / f"{name}{suffix}"
        if not path.exists():
            continue
        try:
            with open(path, "r", encoding="utf-8") as f:
                if suffix == ".json":
                    return json.load(f)
                return yaml.safe_load(f)
        except (OSError, json.JSONDecodeError, yaml.YAMLError) as exc:
            raise DatasetError(f"Failed to read dataset {path}: {exc}") from exc
    logger.warning("dataset_missing name=%s dir=%s", name, data_dir)
    return None


def _records(data: Any, model: Type[M], name: str) -> Tuple[M, ...]:
    if data is None:
        return ()
    if isinstance(data, dict):
        # {"records": [...]} wrapper or a keyed map of records
        data = data.get("records", list(data.values()))
    try:
        return tuple(model.model_validate(row) for row in data)
    except ValidationError as exc:
        raise DatasetError(f"Dataset {name} has invalid records: {exc}") from exc


def _pain_point_entry(raw: Any) -> AgencyPainPoints:
    raw = raw or {}
    return AgencyPainPoints(
        pain_points=tuple(raw.get("painPoints") or raw.get("pain_points") or ()),
        priorities=tuple(raw.get("priorities") or ()),
    )


def _pain_points(data: Any) -> PainPointDatabase:
    if not data:
        return PainPointDatabase()
    components = data.get("componentAgencies") or data.get("component_agencies") or {}
    return PainPointDatabase(
        agencies={name: _pain_point_entry(v) for name, v in (data.get("agencies") or {}).items()},
        component_agencies={
            name: (v.get("parentAgency") or v.get("parent_agency") or "") if isinstance(v, dict) else str(v)
            for name, v in components.items()
        },
        usace_offices={
            name: _pain_point_entry(v)
            for name, v in (data.get("usaceOffices") or data.get("usace_offices") or {}).items()
        },
    )


def _keyed(data: Any, model: Type[M], name: str) -> Dict[str, M]:
    out: Dict[str, M] = {}
    for key, raw in (data or {}).items():
        try:
            out[key] = model.model_validate({"key": key, **raw})
        except (ValidationError, TypeError) as exc:
            raise DatasetError(f"Dataset {name} entry {key!r} is invalid: {exc}") from exc
    return out


def load_datasets(data_dir: Path) -> AuxiliaryDatasets:
    """Load every dataset under ``data_dir`` into one immutable snapshot."""
    data_dir = Path(data_dir)
    if not data_dir.is_dir():
        raise DatasetError(f"Dataset directory does not exist: {data_dir}")

    commands_raw = _read_file(data_dir, "commands") or {}
    datasets = AuxiliaryDatasets(
        pain_points=_pain_points(_read_file(data_dir, "pain_points")),
        commands=_keyed(commands_raw.get("commands"), CommandInfo, "commands"),
        service_branches=_keyed(commands_raw.get("serviceBranches"), ServiceBranchInfo, "serviceBranches"),
        civilian_agencies={
            abbr: tuple(keywords) for abbr, keywords in (commands_raw.get("civilianAgencies") or {}).items()
        },
        agency_aliases=dict(_read_file(data_dir, "agency_aliases") or {}),
        tribal_businesses=_records(_read_file(data_dir, "tribal_businesses"), TribalBusiness, "tribal_businesses"),
        prime_contractors=_records(_read_file(data_dir, "prime_contractors"), PrimeContractor, "prime_contractors"),
        tier2_contractors=_records(_read_file(data_dir, "tier2_contractors"), PrimeContractor, "tier2_contractors"),
        contractors=_records(_read_file(data_dir, "contractors"), Contractor, "contractors"),
        december_spend=_records(_read_file(data_dir, "december_spend"), DecemberSpendRecord, "december_spend"),
        hit_list=_records(_read_file(data_dir, "hit_list"), CuratedHitListEntry, "hit_list"),
        forecasts=_records(_read_file(data_dir, "forecasts"), Forecast, "forecasts"),
        loaded_at=datetime.now(timezone.utc),
    )
    logger.info(
        "datasets_loaded dir=%s %s",
        data_dir,
        " ".join(f"{k}={v}" for k, v in datasets.counts().items()),
    )
    return datasets


class DatasetStore:
    """Holds the current snapshot; ``reload`` swaps in a fresh one atomically.

    Requests read ``store.current`` once and keep that reference, so a
    reload never changes data under an in-flight report.
    """

    def __init__(self, data_dir: Optional[Path] = None, datasets: Optional[AuxiliaryDatasets] = None):
        if datasets is None and data_dir is None:
            raise ValueError("DatasetStore needs a data_dir or a datasets snapshot")
        self.data_dir = Path(data_dir) if data_dir is not None else None
        self._lock = threading.Lock()
        self._current = datasets if datasets is not None else load_datasets(self.data_dir)

    @property
    def current(self) -> AuxiliaryDatasets:
        return self._current

    def reload(self) -> AuxiliaryDatasets:
        if self.data_dir is None:
            return self._current
        fresh = load_datasets(self.data_dir)
        with self._lock:
            self._current = fresh
        return fresh

