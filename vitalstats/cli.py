"""
vitalstats Command Line Interface (CLI)
=======================================

Produces a birth or death statistics workbook from an exported registry
table:

    python -m vitalstats.cli birth --records births.xlsx --year 2023 \\
        --partner --lgu --save-path reports/

    vitalstats death --records deaths.csv --year 2023 --month-start 1 \\
        --month-end 6 --lgu --include-cause --cause pneumonia \\
        --save-path reports/deaths_h1.xlsx

The CLI never modifies the records file or the template; it writes one new
workbook per run and prints its path.
"""

from __future__ import annotations
import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .config import DEFAULT_REFERENCE_PATHS, DEFAULT_TEENAGE_AGE, ExportConfig
from .errors import ExportError
from .export import file_fetcher, run_export
from .models import BIRTH, DEATH

MAX_CAUSE_TERMS = 3


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="vitalstats",
        description="Export civil-registry birth/death statistics to an Excel report.",
    )
    ap.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    sub = ap.add_subparsers(dest="kind", required=True)

    for kind in (BIRTH, DEATH):
        p = sub.add_parser(kind, help=f"{kind.capitalize()} statistics report")
        p.add_argument("--records", required=True, help="Exported registry table (xlsx or csv)")
        p.add_argument("--year", type=int, required=True)
        p.add_argument("--month-start", type=int, default=1)
        p.add_argument("--month-end", type=int, default=12)
        p.add_argument("--partner", action="store_true", help="Include Partner documents")
        p.add_argument("--lgu", action="store_true", help="Include LGU Register documents")
        p.add_argument("--save-path", default="", help="Output .xlsx file or directory")
        p.add_argument("--template-dir", default="ExcelTemplate",
                       help="Directory holding birthtemplate.xlsx / deathtemplate.xlsx")
        p.add_argument("--reference", action="append", default=None, metavar="FILE",
                       help="Municipality reference file (repeatable; first existing wins)")
        if kind == BIRTH:
            p.add_argument("--teenage-age", type=int, default=DEFAULT_TEENAGE_AGE,
                           help="Mother age threshold for the TeenAge sheet (inclusive)")
        else:
            p.add_argument("--include-cause", action="store_true",
                           help="Only count records with a cause of death")
            p.add_argument("--cause", action="append", default=[], metavar="TEXT",
                           help="Cause of death search term (up to three)")
    return ap


def config_from_args(args: argparse.Namespace) -> ExportConfig:
    refs = tuple(Path(p) for p in args.reference) if args.reference else DEFAULT_REFERENCE_PATHS
    cfg = ExportConfig(
        kind=args.kind,
        year=args.year,
        month_start=args.month_start,
        month_end=args.month_end,
        source_partner=args.partner,
        source_lgu=args.lgu,
        save_path=args.save_path,
        template_dir=Path(args.template_dir),
        reference_paths=refs,
    )
    if args.kind == BIRTH:
        cfg.teenage_age = args.teenage_age
    else:
        cfg.include_cause = args.include_cause
        terms = list(args.cause)
        cfg.cause_terms = tuple(terms + [""] * (MAX_CAUSE_TERMS - len(terms)))
    return cfg


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the vitalstats CLI."""
    ap = build_parser()
    args = ap.parse_args(argv)
    if len(getattr(args, "cause", ())) > MAX_CAUSE_TERMS:
        ap.error(f"at most {MAX_CAUSE_TERMS} --cause terms are allowed, got {len(args.cause)}")
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    cfg = config_from_args(args)
    try:
        path = run_export(cfg, file_fetcher(args.records))
    except ExportError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    print(f"Report written to {path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
