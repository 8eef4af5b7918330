"""Fold award records into per-office spending buckets."""

import logging
from collections import Counter
from typing import Dict, Iterable, List, Tuple

from ..models.agency import AgencyBucket
from ..models.award import AwardRecord
from ..taxonomy.office_names import enhance_office_name

logger = logging.getLogger(__name__)

UNKNOWN_AGENCY = "Unknown Agency"


def office_key(record: AwardRecord) -> Tuple[str, str]:
    """``(sub_agency, office)`` after name enhancement and fallbacks."""
    agency = record.awarding_agency or UNKNOWN_AGENCY
    sub_agency = enhance_office_name(record.awarding_sub_agency or agency)
    office = enhance_office_name(record.awarding_office) if record.awarding_office else sub_agency
    return sub_agency, office


def count_unique_offices(records: Iterable[AwardRecord]) -> int:
    return len({office_key(r) for r in records})


class AgencyAggregator:
    """Accumulates records into buckets; ``fold`` may be called once per page.

    Spend and count only grow as more records are folded in. A key is
    created once and never duplicated.
    """

    def __init__(self):
        self._buckets: Dict[Tuple[str, str], AgencyBucket] = {}
        self._locations: Dict[Tuple[str, str], Counter] = {}
        self.records_folded = 0

    def fold(self, records: Iterable[AwardRecord]) -> "AgencyAggregator":
        for record in records:
            key = office_key(record)
            bucket = self._buckets.get(key)
            if bucket is None:
                bucket = self._new_bucket(key, record)
                self._buckets[key] = bucket
                self._locations[key] = Counter()
            bucket.spending += record.amount
            bucket.contract_count += 1
            if record.place_of_performance_state:
                self._locations[key][record.place_of_performance_state] += 1
            self.records_folded += 1
        return self

    @staticmethod
    def _new_bucket(key: Tuple[str, str], record: AwardRecord) -> AgencyBucket:
        sub_agency, office = key
        raw_sub = record.awarding_sub_agency or record.awarding_agency
        code = record.awarding_sub_agency_code or record.awarding_agency_code
        return AgencyBucket(
            id=f"{sub_agency}|{office}",
            name=office,
            contracting_office=office,
            sub_agency=sub_agency,
            parent_agency=record.awarding_agency or UNKNOWN_AGENCY,
            has_specific_office=bool(record.awarding_office) and record.awarding_office != raw_sub,
            agency_id=record.agency_id or record.awarding_agency,
            agency_code=record.awarding_agency_code,
            sub_agency_code=record.awarding_sub_agency_code,
            office_id=code,
        )

    def buckets(self) -> List[AgencyBucket]:
        """Buckets by spending, highest first; ties keep first-seen order."""
        out = []
        for key, bucket in self._buckets.items():
            common = self._locations[key].most_common(1)
            bucket.location = common[0][0] if common else "Unknown"
            out.append(bucket)
        out.sort(key=lambda b: b.spending, reverse=True)
        return out


def aggregate_awards(records: Iterable[AwardRecord]) -> List[AgencyBucket]:
    aggregator = AgencyAggregator().fold(records)
    buckets = aggregator.buckets()
    logger.info("aggregate_complete records=%d buckets=%d", aggregator.records_folded, len(buckets))
    return buckets
