"""
Medicare Physician Fee Schedule reference data.

Loads the processed CMS National Payment Amount file bundled with the
package and provides lookups by procedure code.

Data source: CMS National Payment Amount File
https://www.cms.gov/medicare/payment/fee-schedules/physician/national-payment-amount-file
"""

import json
import logging
from decimal import Decimal
from pathlib import Path
from typing import Iterable, Optional, Union

from pydantic import BaseModel, ValidationError

from medbill_auditor.core.config import settings
from medbill_auditor.core.exceptions import FeeScheduleError

logger = logging.getLogger(__name__)


class FeeScheduleEntry(BaseModel):
    """One procedure code row of the processed fee schedule file."""

    cpt_code: str
    description: str
    facility_rate: Optional[Decimal] = None  # Hospital/ASC setting
    non_facility_rate: Optional[Decimal] = None  # Office setting
    work_rvu: Optional[Decimal] = None
    pe_rvu: Optional[Decimal] = None  # Practice expense
    mp_rvu: Optional[Decimal] = None  # Malpractice
    total_rvu: Optional[Decimal] = None
    global_days: Optional[str] = None  # 000, 010, 090, XXX
    status_code: Optional[str] = None  # A=Active, R=Restricted, ...


class FeeSchedule:
    """
    Read-only lookup table of Medicare rates indexed by procedure code.

    Construct once at startup, call ``load()``, and pass the instance to
    whatever needs pricing. Reads after loading need no locking.

    Example:
        >>> schedule = FeeSchedule()
        >>> schedule.load()
        >>> schedule.national_price("99213")
        Decimal('92.47')
    """

    def __init__(self, path: Union[str, Path, None] = None):
        self.path = Path(path or settings.FEE_SCHEDULE_PATH)
        self._entries: dict[str, FeeScheduleEntry] = {}
        self._loaded = False

    @classmethod
    def from_entries(cls, entries: Iterable[FeeScheduleEntry]) -> "FeeSchedule":
        """Build an already-loaded schedule from in-memory entries."""
        schedule = cls()
        schedule._index(entries)
        schedule._loaded = True
        return schedule

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    def load(self) -> None:
        """
        Load the fee schedule JSON file.

        Repeated calls after a successful load are no-ops. A missing file
        is logged and leaves the schedule empty, so every lookup misses.

        Raises:
            FeeScheduleError: If the file exists but cannot be decoded.
        """
        if self._loaded:
            return

        if not self.path.exists():
            logger.warning(f"Fee schedule not found at {self.path}, pricing checks disabled")
            return

        try:
            with open(self.path, "r") as f:
                data = json.load(f, parse_float=Decimal)
            if not isinstance(data, list):
                raise FeeScheduleError(f"Expected a list of entries in {self.path}")
            entries = [FeeScheduleEntry.model_validate(row) for row in data]
        except (json.JSONDecodeError, ValidationError, OSError) as e:
            logger.error(f"Failed to load fee schedule: {e}")
            raise FeeScheduleError(f"Failed to load fee schedule from {self.path}: {e}") from e

        self._index(entries)
        self._loaded = True
        logger.info(f"Loaded {len(self._entries)} Medicare fee entries")

    def _index(self, entries: Iterable[FeeScheduleEntry]) -> None:
        for entry in entries:
            self._entries[entry.cpt_code] = entry

    def lookup(self, code: str) -> Optional[FeeScheduleEntry]:
        """Look up the fee schedule entry for a procedure code."""
        return self._entries.get(code)

    def national_price(self, code: str) -> Optional[Decimal]:
        """National non-facility (office) price for a code."""
        entry = self._entries.get(code)
        return entry.non_facility_rate if entry else None

    def facility_price(self, code: str) -> Optional[Decimal]:
        """Facility (hospital) price for a code."""
        entry = self._entries.get(code)
        return entry.facility_rate if entry else None

    def is_known_code(self, code: str) -> bool:
        return code in self._entries

    @property
    def all_codes(self) -> list[str]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
