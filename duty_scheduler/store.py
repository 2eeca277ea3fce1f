"""
store.py — JSON-file shift store (persistence collaborator)

One record per (date, shift_type). assign_batch overwrites records
idempotently; an empty doctorIds list clears the slot. Writes are atomic
(temp file + os.replace) and serialized by a per-store lock, so two
distributions of the same range cannot interleave their upserts.
"""

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

from duty_scheduler.engine import clear_batch
from duty_scheduler.models import DateLike, ShiftRecord, parse_date

logger = logging.getLogger(__name__)


def _atomic_write(path: Path, data: str) -> None:
    fd, tmp_path = tempfile.mkstemp(dir=str(path.parent), prefix=path.name + ".", suffix=".tmp")
    try:
        with os.fdopen(fd, "w") as tmp:
            tmp.write(data)
            tmp.flush()
            os.fsync(tmp.fileno())
        os.replace(tmp_path, path)
    finally:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)


class ShiftStore:
    """
    Shift records persisted to a JSON list of {date, shiftType, doctorIds}.

    path=None keeps records in memory only.
    """

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else None
        self._lock = threading.Lock()
        self._records: Dict[Tuple[str, str], ShiftRecord] = {}
        self._load()

    def _load(self) -> None:
        if self.path is None or not self.path.exists():
            return
        with open(self.path) as f:
            raw = json.load(f)
        for item in raw:
            rec = ShiftRecord.from_dict(item)
            self._records[rec.key] = rec
        logger.info(f"Loaded {len(self._records)} shift records from {self.path}")

    def _save(self) -> None:
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(
            [rec.to_dict() for _key, rec in sorted(self._records.items())],
            indent=2,
        )
        _atomic_write(self.path, payload)

    # -----------------------------------------------------------------------
    # Reads
    # -----------------------------------------------------------------------

    def get_records(
        self,
        start: Optional[DateLike] = None,
        end: Optional[DateLike] = None,
    ) -> List[ShiftRecord]:
        """Records in [start, end] (either bound optional), sorted by (date, shift_type)."""
        lo = parse_date(start).isoformat() if start is not None else None
        hi = parse_date(end).isoformat() if end is not None else None
        with self._lock:
            out = [
                ShiftRecord(rec.date, rec.shift_type, list(rec.doctor_ids))
                for key, rec in sorted(self._records.items())
                if (lo is None or rec.date >= lo) and (hi is None or rec.date <= hi)
            ]
        return out

    def get_records_for_date(self, d: DateLike) -> List[ShiftRecord]:
        return self.get_records(d, d)

    # -----------------------------------------------------------------------
    # Writes
    # -----------------------------------------------------------------------

    def assign_batch(self, entries: Iterable[Dict[str, Any]]) -> List[ShiftRecord]:
        """
        Upsert {date, shiftType, doctorIds} entries. All entries are validated
        (date, known shift type) before anything is written.
        """
        parsed = [ShiftRecord.from_dict(e) for e in entries]
        with self._lock:
            for rec in parsed:
                self._records[rec.key] = rec
            self._save()
        logger.info(f"Upserted {len(parsed)} shift records")
        return parsed

    def clear_range(self, start: DateLike, end: DateLike) -> int:
        """Empty every assigned record in [start, end]. Returns the number cleared."""
        entries = clear_batch(self.get_records(start, end))
        self.assign_batch(entries)
        return len(entries)

