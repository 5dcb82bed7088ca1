"""
Record loader (registry export -> EventRecord list)
===================================================

This module reads an export of the birth or death document table (xlsx or
csv) and converts each row into an `EventRecord`.

Key ideas:
- Every column is read as text so location codes keep their leading zeros.
- Columns are located by exact name first, then by a punctuation/case
  insensitive match, because exports from different tools vary.
- Conversion helpers (to_int/_to_str) turn blanks and junk into None/"".
- The whole source row is kept on the record for the detail sheet.
"""

from __future__ import annotations
import logging
import re
import zipfile
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import pandas as pd
from openpyxl.utils.exceptions import InvalidFileException

from .errors import ResourceError
from .models import FIELD_COLUMNS, EventRecord, to_int
from .weeks import parse_date

logger = logging.getLogger(__name__)

EXCEL_SUFFIXES = (".xlsx", ".xlsm")
CSV_SUFFIXES = (".csv", ".txt")

REQUIRED_FIELDS = ("registry_num", "event_date")
INT_FIELDS = ("mother_age", "father_age", "age_years")


def _to_str(x) -> str:
    if x is None or (not isinstance(x, str) and pd.isna(x)):
        return ""
    return str(x).strip()


def _to_cell(x) -> Any:
    if x is None or (not isinstance(x, str) and pd.isna(x)):
        return None
    return x


def _norm(s: str) -> str:
    return re.sub(r"[^a-z0-9]+", "", str(s).lower())


def _col(df: pd.DataFrame, name: str) -> Optional[str]:
    cols = list(df.columns)
    if name in cols:
        return name
    norm_map = {_norm(c): c for c in cols}
    return norm_map.get(_norm(name))


def read_table(path: Union[str, Path]) -> pd.DataFrame:
    """Read an xlsx or csv export with every column as text.

    Legacy `.xls` workbooks are rejected: openpyxl only reads the OOXML
    formats. Unreadable files raise ResourceError.
    """
    path = Path(path)
    if not path.is_file():
        raise ResourceError(f"Records file not found: {path}")
    suffix = path.suffix.lower()
    if suffix not in EXCEL_SUFFIXES + CSV_SUFFIXES:
        raise ResourceError(
            f"Unsupported records file type '{suffix}': {path}. "
            f"Use one of {', '.join(EXCEL_SUFFIXES + CSV_SUFFIXES)}."
        )
    try:
        if suffix in EXCEL_SUFFIXES:
            df = pd.read_excel(path, engine="openpyxl", dtype=str)
        else:
            df = pd.read_csv(path, dtype=str, keep_default_na=False)
    except (OSError, ValueError, KeyError, zipfile.BadZipFile, InvalidFileException) as e:
        raise ResourceError(f"Cannot read records file {path}: {e}") from e
    df.rename(columns={c: str(c).strip() for c in df.columns}, inplace=True)
    return df


def records_from_frame(df: pd.DataFrame, kind: str) -> List[EventRecord]:
    """Convert a registry table DataFrame into EventRecord objects."""
    if kind not in FIELD_COLUMNS:
        raise ValueError(f"Unknown record kind: {kind!r}")

    resolved: Dict[str, Optional[str]] = {
        attr: _col(df, column) for attr, column in FIELD_COLUMNS[kind].items()
    }
    missing = [FIELD_COLUMNS[kind][a] for a in REQUIRED_FIELDS if resolved[a] is None]
    if missing:
        raise ResourceError(
            f"Missing required column(s) {missing}. Available={list(df.columns)}"
        )

    records: List[EventRecord] = []
    for row in df.to_dict(orient="records"):
        values: Dict[str, Any] = {}
        for attr, col in resolved.items():
            raw = row.get(col) if col is not None else None
            if attr == "event_date":
                values[attr] = parse_date(_to_str(raw))
            elif attr in INT_FIELDS:
                values[attr] = to_int(raw)
            else:
                values[attr] = _to_str(raw)
        values["columns"] = {str(k): _to_cell(v) for k, v in row.items()}
        records.append(EventRecord(**values))
    return records


def load_records(path: Union[str, Path], kind: str) -> List[EventRecord]:
    """Load a birth or death export file into EventRecord objects."""
    df = read_table(path)
    records = records_from_frame(df, kind)
    logger.info(f"Loaded {len(records)} {kind} records from {path}")
    return records
