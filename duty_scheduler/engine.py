"""
engine.py — Duty Distribution Engine

Core algorithm: single-pass randomized greedy, load-balanced.
Supports:
  - Fairness ordering by running assignment count (all shift types, whole pass)
  - Random tie-breaking, seeded per (date, shift-type index)
  - Consecutive-day avoidance (strict + fallback)
  - Weekend-only gate (slot emitted unfilled on weekdays)
  - Unavailability-aware; existing night duty blocks the doctor for that date

Algorithm:
  For each date (chronological), for each shift type (caller order):
    if weekend gate closed → emit None
    candidates = shuffle(roster, rng(date, idx)) stable-sorted by count
    pick first eligible not working yesterday/tomorrow, else first eligible
    emit pick (or None), update counts / day_state / last_assigned

Not a solver: no backtracking, no optimality guarantee. Re-running on the
same input with seed=None may yield a different, equally balanced plan.
"""

import logging
import math
import random
from calendar import monthrange
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Union

from duty_scheduler.models import (
    DateLike,
    Doctor,
    GeneratedAssignment,
    ShiftRecord,
    Unavailability,
    parse_date,
)
from duty_scheduler.rules import is_eligible, weekend_gate_open
from duty_scheduler.shift_config import (
    AUTO_DISTRIBUTE_SHIFT_TYPES,
    NIGHT_SHIFT,
    ShiftDefinition,
    get_shift_definition,
)

logger = logging.getLogger(__name__)

Plan = List[GeneratedAssignment]

# Persisted shift types whose holders are blocked for the rest of that date
BLOCKING_SHIFT_TYPES = (NIGHT_SHIFT,)


# ---------------------------------------------------------------------------
# Pass state
# ---------------------------------------------------------------------------

@dataclass
class DistributionState:
    """Counters for one distribution pass. Created per call, never shared."""
    counts: Dict[int, int] = field(default_factory=dict)
    last_assigned: Dict[int, date] = field(default_factory=dict)
    day_state: Set[int] = field(default_factory=set)

    def start_day(self) -> None:
        self.day_state = set()

    def record(self, doctor_id: int, d: date) -> None:
        self.day_state.add(doctor_id)
        self.counts[doctor_id] = self.counts.get(doctor_id, 0) + 1
        self.last_assigned[doctor_id] = d

    def works_adjacent_day(self, doctor_id: int, d: date) -> bool:
        last = self.last_assigned.get(doctor_id)
        if last is None:
            return False
        return abs((d - last).days) == 1


def _slot_rng(base_seed: int, d: date, shift_idx: int) -> random.Random:
    # String seeds hash deterministically across interpreter runs
    return random.Random(f"{base_seed}:{d.toordinal()}:{shift_idx}")


def _order_candidates(
    doctors: Sequence[Doctor],
    state: DistributionState,
    rng: random.Random,
) -> List[Doctor]:
    """Shuffle for tie-breaking, then stable sort by running count (fewest first)."""
    shuffled = list(doctors)
    rng.shuffle(shuffled)
    return sorted(shuffled, key=lambda doc: state.counts.get(doc.id, 0))


# ---------------------------------------------------------------------------
# Core: single slot assignment
# ---------------------------------------------------------------------------

def _pick_next(
    candidates: Sequence[Doctor],
    shift_type: str,
    d: date,
    state: DistributionState,
    unavailability: Optional[Unavailability],
    definitions: Optional[Mapping[str, ShiftDefinition]],
) -> Optional[Doctor]:
    """
    Pick the first eligible doctor from the fairness-ordered candidates.

    Tries strict mode (avoids doctors working the adjacent day) then falls
    back to any eligible doctor. Hard rules are never relaxed.
    """
    eligible = [
        doc for doc in candidates
        if is_eligible(doc, shift_type, d, state.day_state, unavailability, definitions)
    ]
    if not eligible:
        return None

    for doc in eligible:
        if not state.works_adjacent_day(doc.id, d):
            return doc

    logger.debug(f"Consecutive-day fallback triggered for {shift_type} on {d}")
    return eligible[0]


# ---------------------------------------------------------------------------
# Core: distribute
# ---------------------------------------------------------------------------

def distribute(
    dates: Iterable[DateLike],
    doctors: Sequence[Doctor],
    shift_types: Sequence[str] = AUTO_DISTRIBUTE_SHIFT_TYPES,
    unavailability: Optional[Unavailability] = None,
    existing_records: Optional[Iterable[ShiftRecord]] = None,
    seed: Optional[int] = None,
    definitions: Optional[Mapping[str, ShiftDefinition]] = None,
) -> Plan:
    """
    Produce a full assignment plan for the given dates.

    Args:
        dates:            Dates to fill (date objects or ISO strings). Sorted
                          chronologically; duplicates are rejected.
        doctors:          Current roster. Disabled doctors are never picked.
        shift_types:      Shift types to fill, in fill order per date.
        unavailability:   {doctor_id: {"YYYY-MM-DD", ...}} hard exclusions.
        existing_records: Persisted records overlapping the range. Doctors on
                          a night record are blocked for that date.
        seed:             Base seed for tie-breaking. None → fresh per call.
        definitions:      Optional taxonomy override (defaults to SHIFT_DEFINITIONS).

    Returns:
        One GeneratedAssignment per (date, shift_type); doctor_id None when the
        slot is not staffed that day or nobody is eligible.
    """
    day_list = sorted(parse_date(d) for d in dates)
    doctors = list(doctors)
    if not day_list or not doctors:
        return []

    if len(set(day_list)) != len(day_list):
        raise ValueError("dates contains duplicates")
    for shift_type in shift_types:
        get_shift_definition(shift_type, definitions)

    if existing_records is not None:
        unavailability = block_existing_assignments(unavailability, existing_records)

    base_seed = seed if seed is not None else random.randrange(2 ** 32)
    state = DistributionState(counts={doc.id: 0 for doc in doctors})
    plan: Plan = []

    for d in day_list:
        date_str = d.isoformat()
        state.start_day()

        for shift_idx, shift_type in enumerate(shift_types):
            if not weekend_gate_open(shift_type, d, definitions):
                plan.append(GeneratedAssignment(date_str, shift_type, None))
                continue

            candidates = _order_candidates(doctors, state, _slot_rng(base_seed, d, shift_idx))
            chosen = _pick_next(candidates, shift_type, d, state, unavailability, definitions)

            if chosen is None:
                logger.warning(f"Could not fill {shift_type} on {date_str}")
                plan.append(GeneratedAssignment(date_str, shift_type, None))
                continue

            state.record(chosen.id, d)
            plan.append(GeneratedAssignment(date_str, shift_type, chosen.id))
            logger.debug(f"{date_str} {shift_type} → {chosen.name} (count={state.counts[chosen.id]})")

    filled = sum(1 for a in plan if a.filled)
    logger.info(
        f"Distributed {filled}/{len(plan)} slots over {len(day_list)} dates "
        f"for {len(doctors)} doctors (seed={base_seed})"
    )
    return plan


def block_existing_assignments(
    unavailability: Optional[Unavailability],
    existing_records: Iterable[ShiftRecord],
    blocking_shift_types: Sequence[str] = BLOCKING_SHIFT_TYPES,
) -> Unavailability:
    """
    Return a copy of unavailability with every doctor on a persisted
    blocking-type record (night duty) marked unavailable on that date.
    """
    merged: Unavailability = {
        doctor_id: set(dates) for doctor_id, dates in (unavailability or {}).items()
    }
    for rec in existing_records:
        if rec.shift_type not in blocking_shift_types:
            continue
        for doctor_id in rec.doctor_ids:
            merged.setdefault(doctor_id, set()).add(rec.date)
    return merged


# ---------------------------------------------------------------------------
# Batch payloads (persistence collaborator)
# ---------------------------------------------------------------------------

def plan_to_batch(plan: Iterable[GeneratedAssignment]) -> List[Dict[str, Any]]:
    """Batch-upsert payload: one entry per slot, unfilled slots clear the record."""
    return [a.to_batch_entry() for a in plan]


def clear_batch(records: Iterable[ShiftRecord]) -> List[Dict[str, Any]]:
    """Bulk-clear payload: every currently assigned record → empty doctorIds."""
    return [
        {"date": rec.date, "shiftType": rec.shift_type, "doctorIds": []}
        for rec in records
        if rec.doctor_ids
    ]


# ---------------------------------------------------------------------------
# Fairness Metrics
# ---------------------------------------------------------------------------

def _iter_assignments(items: Iterable[Union[GeneratedAssignment, ShiftRecord]]):
    for item in items:
        if isinstance(item, GeneratedAssignment):
            yield item.shift_type, [] if item.doctor_id is None else [item.doctor_id]
        else:
            yield item.shift_type, list(item.doctor_ids)


def calculate_fairness_metrics(
    items: Iterable[Union[GeneratedAssignment, ShiftRecord]],
    doctors: Sequence[Doctor],
) -> Dict[str, Any]:
    """
    Per-doctor totals and per-shift-type breakdown for enabled doctors.

    Returns:
        {
          counts: {doctor_id: int},
          per_shift: {shift_type: {doctor_id: int}},
          mean, std, min, max, spread,
          unfilled: int,
        }
    """
    enabled = [doc for doc in doctors if not doc.disabled]
    counts: Dict[int, int] = {doc.id: 0 for doc in enabled}
    per_shift: Dict[str, Dict[int, int]] = {}
    unfilled = 0

    for shift_type, ids in _iter_assignments(items):
        if not ids:
            unfilled += 1
            continue
        for doctor_id in ids:
            if doctor_id not in counts:
                # Disabled or no longer on the roster
                continue
            counts[doctor_id] += 1
            per_shift.setdefault(shift_type, {doc.id: 0 for doc in enabled})
            per_shift[shift_type][doctor_id] += 1

    values = list(counts.values())
    mean_val = sum(values) / len(values) if values else 0.0
    variance = sum((v - mean_val) ** 2 for v in values) / len(values) if values else 0.0

    return {
        "counts": counts,
        "per_shift": per_shift,
        "mean": mean_val,
        "std": math.sqrt(variance),
        "min": min(values) if values else 0,
        "max": max(values) if values else 0,
        "spread": (max(values) - min(values)) if values else 0,
        "unfilled": unfilled,
    }


# ---------------------------------------------------------------------------
# Date helpers
# ---------------------------------------------------------------------------

def get_dates_between(start: date, end: date) -> List[date]:
    """Return every date in [start, end]."""
    out = []
    d = start
    while d <= end:
        out.append(d)
        d += timedelta(days=1)
    return out


def get_month_dates(year: int, month: int) -> List[date]:
    """Return every date of a calendar month."""
    last_day = monthrange(year, month)[1]
    return get_dates_between(date(year, month, 1), date(year, month, last_day))

