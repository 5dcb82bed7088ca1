"""
Report layout writer
--------------------
This module fills a template workbook (openpyxl) with the record listing and
the summary tables computed by the engine.

Design goals:
- The template owns titles, headers and styling; we only write into fixed
  regions (fixed start row, fixed columns per sheet).
- Totals and composite columns are written as FORMULAS (`=F14+G14`,
  `=SUM(F14:F20)`) so the workbook stays live when users edit rows.
- A missing summary sheet is skipped with a warning; the detail sheet
  (`Data Source`) is mandatory.
- Text is stripped of control characters Excel rejects, so one bad name
  or cause never aborts the export.
- Borders, number formats and column widths are cosmetic only.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Sequence, Tuple

from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.styles import Alignment, Border, Font, Side
from openpyxl.utils import get_column_letter
from openpyxl.workbook.workbook import Workbook
from openpyxl.worksheet.worksheet import Worksheet

from .errors import ResourceError
from .models import BIRTH, DEATH, EventRecord, SummaryRow
from .weeks import format_date

logger = logging.getLogger(__name__)

DETAIL_SHEET = "Data Source"
NUMBER_FORMAT = "#,##0"
MAX_COLUMN_WIDTH = 60

DERIVED_COLUMNS = (
    "Week Number", "Week Start Date", "Week End Date",
    "Year", "Month", "Day",
)

BIRTH_COLUMNS = (
    "RegistryNum", "DocumentStatus", "CFirstName", "CMiddleName", "CLastName",
    "CSexId", "CBirthDate", "CBirthAddress", "CBirthMunicipality", "CBirthMunicipalityId",
    "CBirthProvince", "CBirthProvinceId", "CBirthCountry", "CBirthCountryId", "CBirthTypeId",
    "MFirstName", "MMiddleName", "MLastName", "MCitizenship", "MCitizenshipId",
    "MOccupation", "MOccupationId", "MAge", "MAddress", "MMunicipality", "MMunicipalityId",
    "MProvince", "MProvinceId", "MCountry", "MCountryId",
    "FFirstName", "FMiddleName", "FLastName", "FCitizenship", "FCitizenshipId",
    "FOccupation", "FOccupationId", "FAge", "FAddress", "FMunicipality", "FMunicipalityId",
    "FProvince", "FProvinceId", "FCountry", "FCountryId",
    "AttendantId", "AttendantName", "AttendantTitle",
    "PreparerName", "PreparerTitle", "PreparerDate",
    "DateReceived", "DateRegistered",
) + DERIVED_COLUMNS

DEATH_COLUMNS = (
    "RegistryNum", "DocumentStatus", "CFirstName", "CMiddleName", "CLastName", "CSexId",
    "CDeathDate", "CBirthDate", "CAgeYears", "CAgeMonths", "CAgeDays", "CAgeHours",
    "CAgeMinutes", "CDeathAddress", "CDeathMunicipality", "CDeathMunicipalityId",
    "CDeathProvince", "CDeathProvinceId", "CDeathCountry", "CDeathCountryId",
    "CCivilStatusId", "CReligion", "CCitizenship", "CResidenceAddress",
    "CResidenceMunicipality", "CResidenceMunicipalityId", "CResidenceProvince",
    "CResidenceProvinceId", "CResidenceCountry", "CResidenceCountryId", "COccupation",
    "FFirstName", "FMiddleName", "FLastName", "MFirstName", "MMiddleName", "MLastName",
    "CCauseImmediate", "CCauseImmediateId", "CCauseImmediateInterval",
    "CCauseAntecedent", "CCauseAntecedentId", "CCauseAntecedentInterval",
    "CCauseUnderlying", "CCauseUnderlyingId", "CCauseUnderlyingInterval",
    "CCauseOther", "CCauseOtherId", "AttendantId", "AttendantName", "AttendantTitle",
    "AttendantAttendedFrom", "PreparerName", "PreparerTitle", "PreparerDate",
    "DateReceived", "DateRegistered",
) + DERIVED_COLUMNS + ("AgeYearsNumeric",)

BIRTH_DATE_COLUMNS = frozenset({"CBirthDate", "PreparerDate", "DateReceived", "DateRegistered"})
DEATH_DATE_COLUMNS = frozenset({"CDeathDate", "CBirthDate", "PreparerDate", "DateReceived", "DateRegistered"})


# -----------------------------
# Layout types
# -----------------------------

@dataclass(frozen=True)
class SummaryLayout:
    """Fixed region of one summary sheet.

    `counter_cols` receive the row's counters in order. `composite_col`, when
    set, gets `=<a><r>+<b><r>` over the first two counter columns.
    """
    sheet: str
    start_row: int
    no_col: str = "B"
    name_col: str = "C"
    province_col: str = "D"
    country_col: str = "E"
    counter_cols: Tuple[str, ...] = ("F",)
    composite_col: Optional[str] = None

    @property
    def total_cols(self) -> Tuple[str, ...]:
        if self.composite_col:
            return self.counter_cols + (self.composite_col,)
        return self.counter_cols


@dataclass(frozen=True)
class ListingLayout:
    """Fixed region of a flat, sequence-numbered listing sheet."""
    sheet: str
    start_row: int
    # (column letter, row attribute) pairs
    columns: Tuple[Tuple[str, str], ...]


@dataclass(frozen=True)
class ReportLayout:
    """Everything the writer needs to know about one template."""
    kind: str
    detail_columns: Tuple[str, ...]
    date_columns: frozenset
    summaries: Dict[str, Any] = field(default_factory=dict)
    detail_sheet: str = DETAIL_SHEET


MUNICIPALITY_LAYOUT = SummaryLayout(
    sheet="ByMunicipality", start_row=14,
    counter_cols=("F", "G"), composite_col="H",
)
TEENAGE_LAYOUT = SummaryLayout(sheet="TeenAge", start_row=15, counter_cols=("F",))

CAUSE_OF_DEATH_LAYOUT = ListingLayout(
    sheet="CauseOfDeath",
    start_row=7,
    columns=(
        ("A", "no"), ("B", "registry_num"), ("C", "last_name"), ("D", "first_name"),
        ("E", "middle_name"), ("F", "date_of_death"), ("G", "immediate"),
        ("H", "antecedent"), ("I", "underlying"), ("J", "underlying_interval"),
        ("K", "other"),
    ),
)
DEAD_ON_ARRIVAL_LAYOUT = ListingLayout(
    sheet="DeadonArrival",
    start_row=9,
    columns=(
        ("B", "no"), ("C", "registry_num"), ("D", "last_name"), ("E", "first_name"),
        ("F", "middle_name"), ("G", "date_of_death"),
    ),
)

LAYOUTS: Dict[str, ReportLayout] = {
    BIRTH: ReportLayout(
        kind=BIRTH,
        detail_columns=BIRTH_COLUMNS,
        date_columns=BIRTH_DATE_COLUMNS,
        summaries={"municipality": MUNICIPALITY_LAYOUT, "teenage": TEENAGE_LAYOUT},
    ),
    DEATH: ReportLayout(
        kind=DEATH,
        detail_columns=DEATH_COLUMNS,
        date_columns=DEATH_DATE_COLUMNS,
        summaries={
            "municipality": MUNICIPALITY_LAYOUT,
            "cause_of_death": CAUSE_OF_DEATH_LAYOUT,
            "dead_on_arrival": DEAD_ON_ARRIVAL_LAYOUT,
        },
    ),
}


# -----------------------------
# Cosmetics
# -----------------------------

_THIN = Side(style="thin")
_MEDIUM = Side(style="medium")


def _border_range(ws: Worksheet, first_col: str, last_col: str, first_row: int, last_row: int) -> None:
    """Thin grid with a medium outline around a populated block."""
    c1 = ws[f"{first_col}{first_row}"].column
    c2 = ws[f"{last_col}{first_row}"].column
    for row in ws.iter_rows(min_row=first_row, max_row=last_row, min_col=c1, max_col=c2):
        for cell in row:
            cell.border = Border(
                left=_MEDIUM if cell.column == c1 else _THIN,
                right=_MEDIUM if cell.column == c2 else _THIN,
                top=_MEDIUM if cell.row == first_row else _THIN,
                bottom=_MEDIUM if cell.row == last_row else _THIN,
            )


def _autosize(ws: Worksheet, n_cols: int) -> None:
    for ci in range(1, n_cols + 1):
        letter = get_column_letter(ci)
        width = max(
            (len(str(c.value)) for c in ws[letter] if c.value is not None),
            default=8,
        )
        ws.column_dimensions[letter].width = min(width + 2, MAX_COLUMN_WIDTH)


# -----------------------------
# Writers
# -----------------------------

def _clean(val: Any) -> Any:
    if isinstance(val, str):
        return ILLEGAL_CHARACTERS_RE.sub("", val)
    return val


def _sheet(wb: Workbook, name: str) -> Optional[Worksheet]:
    if name in wb.sheetnames:
        return wb[name]
    logger.warning(f"Template has no '{name}' sheet; skipping it")
    return None


def write_detail_sheet(
    wb: Workbook,
    records: Sequence[EventRecord],
    columns: Sequence[str],
    *,
    date_columns: frozenset = frozenset(),
    sheet: str = DETAIL_SHEET,
    kind: Optional[str] = None,
) -> int:
    """Header at row 1, one row per record from row 2, in input order.

    `kind` selects which named record fields fill columns missing from a
    record's source row. Returns the number of data rows written.
    """
    if sheet not in wb.sheetnames:
        raise ResourceError(f"Template is missing the required '{sheet}' sheet.")
    ws = wb[sheet]

    bold = Font(bold=True)
    for ci, col in enumerate(columns, start=1):
        cell = ws.cell(row=1, column=ci, value=col)
        cell.font = bold

    for ri, rec in enumerate(records, start=2):
        for ci, col in enumerate(columns, start=1):
            val = rec.value(col, kind)
            if col in date_columns and val not in (None, ""):
                val = format_date(val)
            ws.cell(row=ri, column=ci, value=_clean(val))

    _autosize(ws, len(columns))
    return len(records)


def write_summary_sheet(wb: Workbook, layout: SummaryLayout, rows: Sequence[SummaryRow]) -> bool:
    """Write summary rows plus a merged TOTAL row with SUM formulas.

    Returns False when the sheet is missing or there is nothing to write.
    """
    if not rows:
        return False
    ws = _sheet(wb, layout.sheet)
    if ws is None:
        return False

    start = layout.start_row
    r = start
    for row in rows:
        ws[f"{layout.no_col}{r}"] = row.no
        ws[f"{layout.name_col}{r}"] = _clean(row.municipality)
        ws[f"{layout.province_col}{r}"] = _clean(row.province)
        ws[f"{layout.country_col}{r}"] = _clean(row.country)
        for col, value in zip(layout.counter_cols, row.counters()):
            ws[f"{col}{r}"] = value
            ws[f"{col}{r}"].number_format = NUMBER_FORMAT
        if layout.composite_col:
            a, b = layout.counter_cols[:2]
            ws[f"{layout.composite_col}{r}"] = f"={a}{r}+{b}{r}"
            ws[f"{layout.composite_col}{r}"].number_format = NUMBER_FORMAT
        r += 1

    total_row = r
    last_data_row = r - 1
    ws.merge_cells(f"{layout.no_col}{total_row}:{layout.country_col}{total_row}")
    label = ws[f"{layout.no_col}{total_row}"]
    label.value = "TOTAL"
    label.font = Font(bold=True)
    label.alignment = Alignment(horizontal="center")
    for col in layout.total_cols:
        cell = ws[f"{col}{total_row}"]
        cell.value = f"=SUM({col}{start}:{col}{last_data_row})"
        cell.number_format = NUMBER_FORMAT
        cell.font = Font(bold=True)

    _border_range(ws, layout.no_col, layout.total_cols[-1], start, total_row)
    logger.info(f"{layout.sheet}: wrote {len(rows)} rows (total at row {total_row})")
    return True


def write_listing_sheet(wb: Workbook, layout: ListingLayout, rows: Sequence[Any]) -> bool:
    """Write a flat listing (no totals). Returns False when skipped."""
    if not rows:
        return False
    ws = _sheet(wb, layout.sheet)
    if ws is None:
        return False

    for r, row in enumerate(rows, start=layout.start_row):
        for col, attr in layout.columns:
            ws[f"{col}{r}"] = _clean(getattr(row, attr))
    logger.info(f"{layout.sheet}: wrote {len(rows)} rows")
    return True


def write_report(
    wb: Workbook,
    layout: ReportLayout,
    records: Sequence[EventRecord],
    tables: Dict[str, Sequence[Any]],
) -> None:
    """Populate the detail sheet and every summary/listing in `tables`.

    `tables` maps the layout's summary keys ("municipality", "teenage", ...)
    to the rows the engine produced. Keys absent from `tables` are skipped.
    """
    write_detail_sheet(
        wb, records, layout.detail_columns,
        date_columns=layout.date_columns, sheet=layout.detail_sheet, kind=layout.kind,
    )
    for key, region in layout.summaries.items():
        rows = tables.get(key)
        if rows is None:
            continue
        if isinstance(region, SummaryLayout):
            write_summary_sheet(wb, region, rows)
        else:
            write_listing_sheet(wb, region, rows)
