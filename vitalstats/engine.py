"""
Aggregation engine
==================

This is the heart of the project. It turns an enriched record list into the
ordered tables that the report writer places on the summary sheets:

1) Municipality summary -> male / female / total per location code
2) Threshold summary    -> one count per location code (e.g. teenage mothers)
3) Cause-of-death list  -> records with any cause text
4) Dead-on-arrival list -> records whose "attended from" marks a DOA

Buckets are plain dicts keyed by location code. A record lands in at most
one bucket per table. Malformed values never raise: a location without a
`|code` part goes to UNKNOWN, a non-numeric age is skipped.

The UNKNOWN bucket always sorts after every real code.
"""

from __future__ import annotations
import logging
from dataclasses import replace
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .models import (
    UNKNOWN,
    CauseOfDeathRow,
    CountRow,
    DeadOnArrivalRow,
    EventRecord,
    LocationEntry,
    MunicipalityRow,
    to_int,
)
from .reference import resolve
from .weeks import derive_week_fields, format_date

logger = logging.getLogger(__name__)

CAUSE_FIELDS = ("cause_immediate", "cause_antecedent", "cause_underlying", "cause_other")

# upper-cased "attended from" values that mark a dead-on-arrival case
DOA_PREFIXES = ("DEAD",)
DOA_MARKERS = ("DOA", "ER DEATH")


# ---------------- Enrichment ----------------
def enrich(records: Iterable[EventRecord]) -> List[EventRecord]:
    """Return copies of `records` with week fields derived from the event date."""
    return [replace(r, week=derive_week_fields(r.event_date)) for r in records]


# ---------------- Keys ----------------
def location_code(value: Optional[str]) -> str:
    """Extract the code after the last `|`, or UNKNOWN."""
    text = (value or "").strip()
    if "|" not in text:
        return UNKNOWN
    code = text.rsplit("|", 1)[1].strip()
    return code or UNKNOWN


def _code_order(code: str) -> Tuple[bool, str]:
    return (code == UNKNOWN, code)


def _location_value(record: EventRecord, primary: str, fallback: Optional[str]) -> str:
    value = (getattr(record, primary) or "").strip()
    if not value and fallback:
        value = (getattr(record, fallback) or "").strip()
    return value


# ---------------- Summaries ----------------
def group_by_municipality(
    records: Iterable[EventRecord],
    ref: Optional[Mapping[str, LocationEntry]] = None,
    *,
    location: str = "residence_municipality",
    fallback: Optional[str] = None,
) -> List[MunicipalityRow]:
    """Count male / female / total records per location code.

    `location` names the record field to group by; `fallback` (optional) is
    used when that field is blank. Only the exact tokens MALE and FEMALE
    (any case) feed the sex counters; every record feeds the total.
    """
    buckets: Dict[str, List[int]] = {}
    for r in records:
        code = location_code(_location_value(r, location, fallback))
        counts = buckets.setdefault(code, [0, 0, 0])
        sex = (r.sex or "").strip().upper()
        if sex == "MALE":
            counts[0] += 1
        elif sex == "FEMALE":
            counts[1] += 1
        counts[2] += 1

    rows: List[MunicipalityRow] = []
    for no, code in enumerate(sorted(buckets, key=_code_order), start=1):
        male, female, total = buckets[code]
        mun, prov, ctry = resolve(code, ref)
        rows.append(MunicipalityRow(
            no=no, code=code, municipality=mun, province=prov, country=ctry,
            male=male, female=female, total=total,
        ))
    logger.debug(f"Municipality summary: {len(rows)} buckets")
    return rows


def group_by_threshold(
    records: Iterable[EventRecord],
    field: str,
    threshold: int,
    ref: Optional[Mapping[str, LocationEntry]] = None,
    *,
    location: str = "residence_municipality",
) -> List[CountRow]:
    """Count records with numeric `field` <= `threshold`, per location code.

    Records whose `field` is absent or non-numeric are skipped. The location
    field has no fallback.
    """
    buckets: Dict[str, int] = {}
    for r in records:
        value = to_int(getattr(r, field))
        if value is None or value > threshold:
            continue
        code = location_code(getattr(r, location))
        buckets[code] = buckets.get(code, 0) + 1

    rows: List[CountRow] = []
    for no, code in enumerate(sorted(buckets, key=_code_order), start=1):
        mun, prov, ctry = resolve(code, ref)
        rows.append(CountRow(
            no=no, code=code, municipality=mun, province=prov, country=ctry,
            count=buckets[code],
        ))
    logger.debug(f"Threshold summary ({field} <= {threshold}): {len(rows)} buckets")
    return rows


# ---------------- Cause of death ----------------
def has_cause_of_death(record: EventRecord, fields: Sequence[str] = CAUSE_FIELDS) -> bool:
    """True when any cause field holds non-blank text."""
    return any((getattr(record, f) or "").strip() for f in fields)


def cause_of_death_rows(records: Iterable[EventRecord]) -> List[CauseOfDeathRow]:
    """Sequence-numbered listing of records with a cause of death, input order."""
    rows: List[CauseOfDeathRow] = []
    for r in records:
        if not has_cause_of_death(r):
            continue
        rows.append(CauseOfDeathRow(
            no=len(rows) + 1,
            registry_num=r.registry_num,
            last_name=r.last_name,
            first_name=r.first_name,
            middle_name=r.middle_name,
            date_of_death=_date_text(r),
            immediate=r.cause_immediate,
            antecedent=r.cause_antecedent,
            underlying=r.cause_underlying,
            underlying_interval=r.cause_underlying_interval,
            other=r.cause_other,
        ))
    return rows


# ---------------- Dead on arrival ----------------
def is_dead_on_arrival(record: EventRecord) -> bool:
    status = (record.attended_from or "").strip().upper()
    if not status:
        return False
    return status.startswith(DOA_PREFIXES) or any(m in status for m in DOA_MARKERS)


def dead_on_arrival_rows(records: Iterable[EventRecord]) -> List[DeadOnArrivalRow]:
    """Sequence-numbered listing of DOA records, input order (no re-sort)."""
    rows: List[DeadOnArrivalRow] = []
    for r in records:
        if not is_dead_on_arrival(r):
            continue
        rows.append(DeadOnArrivalRow(
            no=len(rows) + 1,
            registry_num=r.registry_num,
            last_name=r.last_name,
            first_name=r.first_name,
            middle_name=r.middle_name,
            date_of_death=_date_text(r),
        ))
    return rows


# ---------------- Helpers ----------------
def _date_text(record: EventRecord) -> str:
    if record.event_date is None:
        return ""
    return format_date(record.event_date)
