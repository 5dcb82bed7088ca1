"""
Record selection
================

The registry query narrows the document table before any statistics are
computed. When records come from an exported file instead of the database,
this module applies the same criteria in memory:

- source: Partner documents (`!`-prefixed or `NNNN-N...` identifiers) and/or
  LGU Register documents (anything not `!`-prefixed)
- event year and month range
- optional cause-of-death search terms

and returns the records in registry order: the 4-character prefix of the
identifier, then the serial number after the last `-`.
"""

from __future__ import annotations
import re
from typing import Iterable, List, Sequence, Tuple

from .config import ExportConfig
from .engine import CAUSE_FIELDS
from .models import EventRecord

PARTNER_NUMBER = re.compile(r"^[0-9]{4}-[0-9]+$")


def is_partner(registry_num: str) -> bool:
    return registry_num.startswith("!") or bool(PARTNER_NUMBER.match(registry_num))


def is_lgu(registry_num: str) -> bool:
    return not registry_num.startswith("!")


def matches_source(record: EventRecord, partner: bool, lgu: bool) -> bool:
    num = record.registry_num or ""
    return (partner and is_partner(num)) or (lgu and is_lgu(num))


def matches_period(record: EventRecord, year: int, month_start: int, month_end: int) -> bool:
    d = record.event_date
    return d is not None and d.year == year and month_start <= d.month <= month_end


def matches_cause_terms(record: EventRecord, terms: Sequence[str]) -> bool:
    """True when any term occurs (case-insensitive) in any cause field."""
    needles = [t.lower() for t in terms if t]
    if not needles:
        return True
    haystack = [(getattr(record, f) or "").lower() for f in CAUSE_FIELDS]
    return any(n in h for n in needles for h in haystack)


def registry_order(record: EventRecord) -> Tuple[str, int]:
    num = record.registry_num or ""
    serial = num.rsplit("-", 1)[-1] if "-" in num else num
    m = re.match(r"\d+", serial)
    return (num[:4], int(m.group()) if m else 0)


def select_records(records: Iterable[EventRecord], config: ExportConfig) -> List[EventRecord]:
    """Filter and order records the way the registry query does."""
    terms = config.active_cause_terms() if config.include_cause else ()
    out = [
        r for r in records
        if matches_source(r, config.source_partner, config.source_lgu)
        and matches_period(r, config.year, config.month_start, config.month_end)
        and matches_cause_terms(r, terms)
    ]
    out.sort(key=registry_order)
    return out
