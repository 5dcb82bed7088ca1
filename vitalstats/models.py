"""
Data model
==========

Each row of the civil-registry export becomes one `EventRecord`. Records are
immutable (`frozen=True`):
- the engine never edits a fetched record, and
- enrichment (week fields) produces a new record via `dataclasses.replace`.

The fields the engine reads are named attributes. The source row is kept in
`columns` so the detail sheet can list every column; records built without
one fall back to the named attributes for the columns they map to.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

UNKNOWN = "UNKNOWN"

BIRTH = "birth"
DEATH = "death"

# EventRecord attribute -> source column, per report kind
FIELD_COLUMNS: Dict[str, Dict[str, str]] = {
    BIRTH: {
        "registry_num": "RegistryNum",
        "sex": "CSexId",
        "event_date": "CBirthDate",
        "last_name": "CLastName",
        "first_name": "CFirstName",
        "middle_name": "CMiddleName",
        "event_municipality": "CBirthMunicipality",
        "residence_municipality": "MMunicipality",
        "mother_age": "MAge",
        "father_age": "FAge",
    },
    DEATH: {
        "registry_num": "RegistryNum",
        "sex": "CSexId",
        "event_date": "CDeathDate",
        "last_name": "CLastName",
        "first_name": "CFirstName",
        "middle_name": "CMiddleName",
        "event_municipality": "CDeathMunicipality",
        "residence_municipality": "CResidenceMunicipality",
        "age_years": "CAgeYears",
        "cause_immediate": "CCauseImmediate",
        "cause_antecedent": "CCauseAntecedent",
        "cause_underlying": "CCauseUnderlying",
        "cause_underlying_interval": "CCauseUnderlyingInterval",
        "cause_other": "CCauseOther",
        "attended_from": "AttendantAttendedFrom",
    },
}

# source column -> EventRecord attribute, per report kind
COLUMN_FIELDS: Dict[str, Dict[str, str]] = {
    kind: {column: attr for attr, column in mapping.items()}
    for kind, mapping in FIELD_COLUMNS.items()
}


def to_int(x) -> Optional[int]:
    """Convert a cell to int, returning None if missing/invalid (NaN included)."""
    if x is None:
        return None
    if isinstance(x, str):
        x = x.strip()
        if not x:
            return None
    try:
        return int(float(x))
    except (TypeError, ValueError, OverflowError):
        return None


@dataclass(frozen=True)
class WeekFields:
    """Month-relative week plus calendar parts of an event date.

    All fields are None when the event date is missing or unparseable.
    """
    week_number: Optional[int] = None
    week_start: Optional[date] = None
    week_end: Optional[date] = None
    year: Optional[int] = None
    month: Optional[int] = None
    day: Optional[int] = None


@dataclass(frozen=True)
class EventRecord:
    """One birth or death document."""
    registry_num: str
    sex: str = ""
    event_date: Optional[date] = None
    last_name: str = ""
    first_name: str = ""
    middle_name: str = ""
    # "<display name>|<code>" encoded locations
    event_municipality: str = ""
    residence_municipality: str = ""
    mother_age: Optional[int] = None
    father_age: Optional[int] = None
    age_years: Optional[int] = None
    cause_immediate: str = ""
    cause_antecedent: str = ""
    cause_underlying: str = ""
    cause_underlying_interval: str = ""
    cause_other: str = ""
    attended_from: str = ""
    columns: Mapping[str, Any] = field(default_factory=dict, compare=False, repr=False)
    week: WeekFields = field(default_factory=WeekFields)

    def __post_init__(self) -> None:
        # read-only view of the source row
        object.__setattr__(self, "columns", MappingProxyType(dict(self.columns)))

    def value(self, column: str, kind: Optional[str] = None) -> Any:
        """Return the detail-sheet value for `column`.

        Derived columns come from the structured fields. Other columns come
        from the source row; when the row lacks the column, the named field
        it maps to for `kind` is used (event date as `YYYY-MM-DD`, blanks as
        None). Anything else is None.
        """
        derived = _DERIVED_COLUMNS.get(column)
        if derived is not None:
            return derived(self)
        if column in self.columns:
            return self.columns[column]
        attr = COLUMN_FIELDS.get(kind, {}).get(column)
        if attr is None:
            return None
        val = getattr(self, attr)
        if isinstance(val, date):
            return val.isoformat()
        return None if val == "" else val


def _iso(d: Optional[date]) -> Optional[str]:
    return d.isoformat() if d is not None else None


_DERIVED_COLUMNS = {
    "Week Number": lambda r: r.week.week_number,
    "Week Start Date": lambda r: _iso(r.week.week_start),
    "Week End Date": lambda r: _iso(r.week.week_end),
    "Year": lambda r: r.week.year,
    "Month": lambda r: r.week.month,
    "Day": lambda r: r.week.day,
    "MAgeNumeric": lambda r: r.mother_age,
    "FAgeNumeric": lambda r: r.father_age,
    "AgeYearsNumeric": lambda r: r.age_years,
}


@dataclass(frozen=True)
class LocationEntry:
    """Display names for one location code."""
    municipality: str
    province: str
    country: str


@dataclass(frozen=True)
class SummaryRow:
    """A finalized, sequence-numbered bucket with resolved display names."""
    no: int
    code: str
    municipality: str
    province: str
    country: str

    def counters(self) -> tuple:
        return ()


@dataclass(frozen=True)
class MunicipalityRow(SummaryRow):
    male: int = 0
    female: int = 0
    # includes records whose sex is neither MALE nor FEMALE
    total: int = 0

    def counters(self) -> tuple:
        return (self.male, self.female)


@dataclass(frozen=True)
class CountRow(SummaryRow):
    count: int = 0

    def counters(self) -> tuple:
        return (self.count,)


@dataclass(frozen=True)
class CauseOfDeathRow:
    no: int
    registry_num: str
    last_name: str
    first_name: str
    middle_name: str
    date_of_death: str
    immediate: str
    antecedent: str
    underlying: str
    underlying_interval: str
    other: str


@dataclass(frozen=True)
class DeadOnArrivalRow:
    no: int
    registry_num: str
    last_name: str
    first_name: str
    middle_name: str
    date_of_death: str
