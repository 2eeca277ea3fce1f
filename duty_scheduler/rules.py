"""
rules.py — Eligibility rules shared by generation and conflict display

  1. DISABLED         disabled doctors are never candidates
  2. ROLE_MATCH       doctor.oa == senior_only(shift_type)
  3. EXCLUDED_TYPE    shift_type not in doctor.unavailable_shift_types
  4. SAME_DAY         doctor not already placed on this date (any shift type)
  5. UNAVAILABLE      date not in doctor's unavailable dates
  6. WEEKEND_GATE     weekend-only types are not staffed Mon–Fri

engine.distribute uses is_eligible (all six). conflicts.find_conflicts reuses
3 and 5 only; it does not re-check 1 and 2 (enforced at write time by callers).
"""

from datetime import date
from typing import AbstractSet, Mapping, Optional

from duty_scheduler.models import Doctor, Unavailability
from duty_scheduler.shift_config import (
    ShiftDefinition,
    get_shift_definition,
    is_weekend,
)


def is_unavailable_on(doctor_id: int, date_str: str, unavailability: Optional[Unavailability]) -> bool:
    if not unavailability:
        return False
    dates = unavailability.get(doctor_id)
    return bool(dates) and date_str in dates


def excludes_shift_type(doctor: Doctor, shift_type: str) -> bool:
    return shift_type in doctor.unavailable_shift_types


def role_matches(
    doctor: Doctor,
    shift_type: str,
    definitions: Optional[Mapping[str, ShiftDefinition]] = None,
) -> bool:
    return doctor.oa == get_shift_definition(shift_type, definitions).senior_only


def weekend_gate_open(
    shift_type: str,
    d: date,
    definitions: Optional[Mapping[str, ShiftDefinition]] = None,
) -> bool:
    """False when a weekend-only slot falls on a weekday (slot is not staffed)."""
    if get_shift_definition(shift_type, definitions).weekend_only:
        return is_weekend(d)
    return True


def is_eligible(
    doctor: Doctor,
    shift_type: str,
    d: date,
    day_state: AbstractSet[int],
    unavailability: Optional[Unavailability] = None,
    definitions: Optional[Mapping[str, ShiftDefinition]] = None,
) -> bool:
    if not weekend_gate_open(shift_type, d, definitions):
        return False
    if doctor.disabled:
        return False
    if not role_matches(doctor, shift_type, definitions):
        return False
    if excludes_shift_type(doctor, shift_type):
        return False
    if doctor.id in day_state:
        return False
    if is_unavailable_on(doctor.id, d.isoformat(), unavailability):
        return False
    return True
