"""
Municipality reference (code -> display names)
==============================================

The reference file is plain text, one location per line:

    <municipality>|<province>|<country>|<code>[|...]

Key ideas:
- Several candidate paths are tried in order; the FIRST existing file is
  used and the rest are ignored (no merging).
- Lines with fewer than four fields or a blank code are skipped.
- On duplicate codes the first line wins.
- No file at all is not an error: every code then resolves as "Unknown".
"""

from __future__ import annotations
import logging
from pathlib import Path
from typing import Dict, Iterable, Mapping, Optional, Tuple, Union

from .models import UNKNOWN, LocationEntry

logger = logging.getLogger(__name__)

DEFAULT_COUNTRY = "Philippines"
NOT_STATED = LocationEntry("Not Stated", "Not Stated", DEFAULT_COUNTRY)

PathLike = Union[str, Path]


def parse_reference(lines: Iterable[str]) -> Dict[str, LocationEntry]:
    """Parse reference lines into a code -> LocationEntry dictionary."""
    ref: Dict[str, LocationEntry] = {}
    for line in lines:
        line = line.rstrip("\r\n")
        if not line:
            continue
        parts = line.split("|")
        if len(parts) < 4:
            continue
        code = parts[3].strip()
        if not code or code in ref:
            continue
        ref[code] = LocationEntry(
            municipality=parts[0].strip(),
            province=parts[1].strip(),
            country=parts[2].strip(),
        )
    return ref


def load_reference(candidate_paths: Iterable[PathLike]) -> Dict[str, LocationEntry]:
    """Load the first existing reference file among `candidate_paths`."""
    for p in candidate_paths:
        path = Path(p)
        if not path.is_file():
            logger.debug(f"Reference file not found: {path}")
            continue
        with open(path, "r", encoding="utf-8", errors="replace") as f:
            ref = parse_reference(f)
        logger.info(f"Loaded {len(ref)} municipality codes from {path}")
        return ref
    logger.warning("No municipality reference file found; codes will show as Unknown")
    return {}


def resolve(code: str, ref: Optional[Mapping[str, LocationEntry]]) -> Tuple[str, str, str]:
    """Return (municipality, province, country) for a bucket code."""
    if code == UNKNOWN:
        entry = NOT_STATED
    elif ref and code in ref:
        entry = ref[code]
    else:
        entry = LocationEntry(f"Unknown ({code})", "Unknown", DEFAULT_COUNTRY)
    return entry.municipality, entry.province, entry.country
