"""
shift_config.py — Shift Taxonomy for the On-Call Duty Scheduler

Static, immutable configuration. Changing this table changes scheduling
behaviour globally (generation, conflict display, export column order).

SHIFT TYPES
───────────
  night    Nachtdienst     (ND)  weekend-only   general duty
  20shift  Spätdienst      (LD)  every day      general duty
  17shift  Stationsdienst  (KD)  weekend-only   general duty
  oa       OA/Hintergrund        every day      senior (OA) duty only

ROLE PARTITION
──────────────
  OA doctors take ONLY the senior slot; non-OA doctors NEVER take it.

AUTO DISTRIBUTION
─────────────────
  The month "Distribute" action fills 20shift and 17shift. Night duty is
  assigned by hand; existing night assignments block the doctor for the
  rest of that date (see engine.block_existing_assignments).

NIGHT OVERLAP
─────────────
  A doctor on night duty must not also hold 20shift or 17shift on the same
  date. Checked by conflicts.find_conflicts against persisted records.
"""

from dataclasses import dataclass
from datetime import date
from typing import Dict, FrozenSet, Mapping, Optional, Tuple


@dataclass(frozen=True)
class ShiftDefinition:
    label: str
    weekend_only: bool = False
    senior_only: bool = False
    acronym: Optional[str] = None


# ---------------------------------------------------------------------------
# Taxonomy
# ---------------------------------------------------------------------------
SHIFT_TYPES: Tuple[str, ...] = ("night", "20shift", "17shift", "oa")

SHIFT_DEFINITIONS: Mapping[str, ShiftDefinition] = {
    "night":   ShiftDefinition(label="Nachtdienst",    acronym="ND", weekend_only=True),
    "20shift": ShiftDefinition(label="Spätdienst",     acronym="LD", weekend_only=False),
    "17shift": ShiftDefinition(label="Stationsdienst", acronym="KD", weekend_only=True),
    "oa":      ShiftDefinition(label="OA",             weekend_only=False, senior_only=True),
}

AUTO_DISTRIBUTE_SHIFT_TYPES: Tuple[str, ...] = ("20shift", "17shift")

NIGHT_SHIFT = "night"
NIGHT_OVERLAP_SHIFTS: FrozenSet[str] = frozenset({"20shift", "17shift"})

# Export header overrides (month table)
EXPORT_HEADERS: Dict[str, str] = {
    "oa": "Hintergrund",
    "20shift": "20:00 Dienst",
}

WEEKEND_DAYS = (5, 6)   # date.weekday(): Saturday, Sunday


# ---------------------------------------------------------------------------
# Accessors
# ---------------------------------------------------------------------------

def get_shift_definition(
    shift_type: str,
    definitions: Optional[Mapping[str, ShiftDefinition]] = None,
) -> ShiftDefinition:
    """Look up a shift type; unknown types are an upstream data error."""
    table = SHIFT_DEFINITIONS if definitions is None else definitions
    try:
        return table[shift_type]
    except KeyError:
        raise ValueError(
            f"Unknown shift type {shift_type!r}. Known: {sorted(table)}"
        ) from None


def is_weekend_only(
    shift_type: str,
    definitions: Optional[Mapping[str, ShiftDefinition]] = None,
) -> bool:
    return get_shift_definition(shift_type, definitions).weekend_only


def is_senior_only(
    shift_type: str,
    definitions: Optional[Mapping[str, ShiftDefinition]] = None,
) -> bool:
    return get_shift_definition(shift_type, definitions).senior_only


def is_weekend(d: date) -> bool:
    return d.weekday() in WEEKEND_DAYS


def shift_label(shift_type: str) -> str:
    """Column header used by the month export."""
    if shift_type in EXPORT_HEADERS:
        return EXPORT_HEADERS[shift_type]
    return get_shift_definition(shift_type).label


def counted_shift_types() -> Tuple[str, ...]:
    """Shift types shown in the per-doctor count table (those with an acronym)."""
    return tuple(t for t in SHIFT_TYPES if SHIFT_DEFINITIONS[t].acronym)
