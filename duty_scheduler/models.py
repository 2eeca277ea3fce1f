"""
models.py — Data model for the duty scheduler

  Doctor               roster entry (disabled / oa / standing shift-type exclusions)
  ShiftRecord          persisted (date, shift_type) → doctor_ids
  GeneratedAssignment  one slot of a distribution plan (doctor_id may be None)

Wire shapes use the web app's camelCase keys (shiftType, doctorIds,
unavailableShiftTypes); attributes are snake_case.
"""

import json
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Set, Union

from duty_scheduler.shift_config import get_shift_definition

# doctor_id → {"YYYY-MM-DD", ...}
Unavailability = Dict[int, Set[str]]

DateLike = Union[date, datetime, str]


def parse_date(value: DateLike) -> date:
    """Return a date for a date/datetime/ISO string; malformed input raises ValueError."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            raise ValueError(f"Malformed date {value!r}; expected YYYY-MM-DD") from None
    raise ValueError(f"Malformed date {value!r} ({type(value).__name__})")


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in ("yes", "true", "1", "y")


def _parse_shift_type_list(raw: Any) -> FrozenSet[str]:
    """
    Accepts a list, a JSON array string ('["night"]'), or a
    semicolon/comma separated string ("night;oa").
    """
    if raw is None:
        return frozenset()
    if isinstance(raw, float):   # pandas NaN
        return frozenset()
    if isinstance(raw, str):
        s = raw.strip()
        if not s:
            return frozenset()
        if s.startswith("["):
            raw = json.loads(s)
        else:
            raw = s.replace(";", ",").split(",")
    return frozenset(str(t).strip() for t in raw if str(t).strip())


def normalize_doctor_ids(raw: Any) -> List[int]:
    """Keep integer ids (numeric strings accepted), first occurrence order."""
    if not isinstance(raw, (list, tuple)):
        return []
    out: List[int] = []
    for value in raw:
        if isinstance(value, bool):
            continue
        if isinstance(value, int):
            num = value
        elif isinstance(value, str) and value.strip().lstrip("-").isdigit():
            num = int(value.strip())
        else:
            continue
        if num not in out:
            out.append(num)
    return out


@dataclass(frozen=True)
class Doctor:
    id: int
    name: str
    color: Optional[str] = None
    disabled: bool = False
    oa: bool = False
    unavailable_shift_types: FrozenSet[str] = field(default_factory=frozenset)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Doctor":
        missing = [k for k in ("id", "name") if raw.get(k) is None]
        if missing:
            raise ValueError(f"Doctor record missing required field(s) {missing}: {raw!r}")
        try:
            doctor_id = int(raw["id"])
        except (TypeError, ValueError):
            raise ValueError(f"Doctor id must be an integer: {raw['id']!r}") from None

        exclusions = raw.get("unavailableShiftTypes", raw.get("unavailable_shift_types"))
        color = raw.get("color")
        return cls(
            id=doctor_id,
            name=str(raw["name"]).strip(),
            color=None if color is None or isinstance(color, float) else str(color),
            disabled=_parse_bool(raw.get("disabled", False)),
            oa=_parse_bool(raw.get("oa", False)),
            unavailable_shift_types=_parse_shift_type_list(exclusions),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "color": self.color,
            "disabled": self.disabled,
            "oa": self.oa,
            "unavailableShiftTypes": sorted(self.unavailable_shift_types),
        }


@dataclass
class ShiftRecord:
    date: str
    shift_type: str
    doctor_ids: List[int] = field(default_factory=list)

    @property
    def key(self) -> tuple:
        return (self.date, self.shift_type)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "ShiftRecord":
        shift_type = raw.get("shiftType", raw.get("shift_type"))
        if not raw.get("date") or not shift_type:
            raise ValueError(f"Shift record needs date and shiftType: {raw!r}")
        get_shift_definition(str(shift_type))
        ids = raw.get("doctorIds", raw.get("doctor_ids", []))
        return cls(
            date=parse_date(raw["date"]).isoformat(),
            shift_type=str(shift_type),
            doctor_ids=normalize_doctor_ids(ids),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"date": self.date, "shiftType": self.shift_type, "doctorIds": list(self.doctor_ids)}


@dataclass(frozen=True)
class GeneratedAssignment:
    date: str
    shift_type: str
    doctor_id: Optional[int] = None

    @property
    def filled(self) -> bool:
        return self.doctor_id is not None

    def to_batch_entry(self) -> Dict[str, Any]:
        ids = [] if self.doctor_id is None else [self.doctor_id]
        return {"date": self.date, "shiftType": self.shift_type, "doctorIds": ids}


def index_records(records: Iterable[ShiftRecord]) -> Dict[str, Dict[str, ShiftRecord]]:
    """date_str → {shift_type: record}"""
    out: Dict[str, Dict[str, ShiftRecord]] = {}
    for rec in records:
        out.setdefault(rec.date, {})[rec.shift_type] = rec
    return out
