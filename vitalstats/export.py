"""
Export run
==========

One call to `run_export` produces one report workbook:

1) validate the configuration           (ConfigurationError)
2) check the template, copy it to the destination   (ResourceError)
3) fetch records through the caller's query function
4) stop on an empty result               (EmptyResultError)
5) derive week fields, load the municipality reference, aggregate
6) write the workbook with openpyxl and save it once

Nothing is shared between runs: each run copies its own template.
"""

from __future__ import annotations
import logging
import shutil
import zipfile
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from . import engine
from .config import ExportConfig
from .errors import EmptyResultError, ResourceError
from .loader import load_records
from .models import BIRTH, EventRecord
from .query import select_records
from .reference import load_reference
from .report import LAYOUTS, write_report

logger = logging.getLogger(__name__)

FetchRecords = Callable[[ExportConfig], Sequence[EventRecord]]


def resolve_destination(config: ExportConfig, now: Optional[datetime] = None) -> Path:
    """Return the output file path for `config.save_path`.

    An existing directory always receives a timestamped file name, even if
    its name ends in `.xlsx`. Otherwise a path ending in `.xlsx` is the file
    itself and anything else is a directory created when needed.
    """
    save_path = Path(config.save_path.strip())
    if save_path.suffix.lower() == ".xlsx" and not save_path.is_dir():
        dest = save_path
    else:
        dest = save_path / config.output_filename(now)
    try:
        dest.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ResourceError(f"Cannot create output directory {dest.parent}: {e}") from e
    return dest


def build_tables(records: Sequence[EventRecord], config: ExportConfig, ref) -> Dict[str, List[Any]]:
    """Run the engine for the summaries of one report kind."""
    if config.kind == BIRTH:
        return {
            "municipality": engine.group_by_municipality(
                records, ref, location="residence_municipality", fallback="event_municipality",
            ),
            "teenage": engine.group_by_threshold(
                records, "mother_age", config.teenage_age, ref, location="residence_municipality",
            ),
        }

    tables: Dict[str, List[Any]] = {}
    counted = records
    if config.include_cause:
        counted = [r for r in records if engine.has_cause_of_death(r)]
        tables["cause_of_death"] = engine.cause_of_death_rows(records)
    tables["municipality"] = engine.group_by_municipality(
        counted, ref, location="residence_municipality",
    )
    tables["dead_on_arrival"] = engine.dead_on_arrival_rows(records)
    return tables


def run_export(
    config: ExportConfig,
    fetch: FetchRecords,
    *,
    now: Optional[datetime] = None,
) -> Path:
    """Produce one report workbook and return its path."""
    config.validate()

    template = config.template_path
    if not template.is_file():
        raise ResourceError(f"Template not found: {template}")

    dest = resolve_destination(config, now)
    try:
        shutil.copyfile(template, dest)
    except OSError as e:
        raise ResourceError(f"Failed to copy template to {dest}: {e}") from e
    logger.info(f"Copied template {template.name} to {dest}")

    records = list(fetch(config))
    if not records:
        raise EmptyResultError("No records found for the selected filters.")
    logger.info(f"Fetched {len(records)} {config.kind} records")

    records = engine.enrich(records)
    ref = load_reference(config.reference_paths)
    tables = build_tables(records, config, ref)

    try:
        wb = load_workbook(dest)
    except (OSError, KeyError, zipfile.BadZipFile, InvalidFileException) as e:
        raise ResourceError(f"Template {template.name} is not a readable workbook: {e}") from e
    try:
        write_report(wb, LAYOUTS[config.kind], records, tables)
        try:
            wb.save(dest)
        except OSError as e:
            raise ResourceError(f"Failed to save report to {dest}: {e}") from e
    finally:
        wb.close()
    logger.info(f"Saved {config.kind} statistics report to {dest}")
    return dest


def file_fetcher(records_path) -> FetchRecords:
    """Fetch function reading an exported registry table from disk."""
    def fetch(config: ExportConfig) -> List[EventRecord]:
        return select_records(load_records(records_path, config.kind), config)
    return fetch
