"""
Export configuration
====================

All parameters of one export run travel in a single `ExportConfig` value,
filled in by the CLI (or any other caller). `validate()` is called before
any file is touched or any record fetched.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional, Tuple

from .errors import ConfigurationError
from .models import BIRTH, DEATH

TEMPLATE_NAMES = {
    BIRTH: "birthtemplate.xlsx",
    DEATH: "deathtemplate.xlsx",
}

REPORT_TITLES = {
    BIRTH: "Birth",
    DEATH: "Death",
}

DEFAULT_REFERENCE_PATHS: Tuple[Path, ...] = (
    Path("C:/PhilCRIS/Resources/References/RMunicipality.ref"),
    Path("Resources/References/RMunicipality.ref"),
    Path("references/RMunicipality.ref"),
)

DEFAULT_TEENAGE_AGE = 19


@dataclass
class ExportConfig:
    """Parameters of one birth or death statistics export."""
    kind: str
    year: int
    month_start: int = 1
    month_end: int = 12
    source_partner: bool = False
    source_lgu: bool = False
    save_path: str = ""
    teenage_age: int = DEFAULT_TEENAGE_AGE

    # Death report only: restrict to records with a cause of death
    include_cause: bool = False
    cause_terms: Tuple[str, ...] = ("", "", "")

    template_dir: Path = Path("ExcelTemplate")
    reference_paths: Tuple[Path, ...] = field(default=DEFAULT_REFERENCE_PATHS)

    def validate(self) -> None:
        """Raise ConfigurationError for unusable parameters."""
        if self.kind not in TEMPLATE_NAMES:
            raise ConfigurationError(f"Unknown report kind: {self.kind!r} (use birth or death).")
        if self.include_cause and not self.active_cause_terms():
            raise ConfigurationError("At least one Cause of Death must be entered.")
        if not (self.source_partner or self.source_lgu):
            raise ConfigurationError("Please select at least one Source (Partner or LGU Register).")
        if not self.save_path.strip():
            raise ConfigurationError("Please enter a save path for the exported file.")
        for name in ("month_start", "month_end"):
            m = getattr(self, name)
            if not 1 <= m <= 12:
                raise ConfigurationError(f"{name} must be between 1 and 12 (got {m}).")
        if self.month_start > self.month_end:
            raise ConfigurationError("Month Start must not be after Month End.")

    def active_cause_terms(self) -> Tuple[str, ...]:
        return tuple(t.strip() for t in self.cause_terms if t and t.strip())

    @property
    def template_path(self) -> Path:
        return Path(self.template_dir) / TEMPLATE_NAMES[self.kind]

    def output_filename(self, now: Optional[datetime] = None) -> str:
        now = now or datetime.now()
        return f"{self.year}_{REPORT_TITLES[self.kind]}_Statistics_Reports_{now:%Y%m%d_%H%M%S}.xlsx"
