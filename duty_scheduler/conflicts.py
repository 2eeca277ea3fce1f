"""
conflicts.py — Conflict detection and plan validation

Conflict detector (advisory, read-only — flags data, never corrects it):
  - UNAVAILABLE_DATE:     doctor assigned on one of their unavailable dates
  - EXCLUDED_SHIFT_TYPE:  doctor assigned a shift type they never work
  - NIGHT_OVERLAP:        doctor on night duty and on 20shift/17shift same date

  Disabled status and role match are NOT re-checked here; callers enforce
  them at write time. Keep this asymmetry with rules.is_eligible.

Plan validation (generated plans, engine invariants):
  HARD: DOUBLE_BOOKING, WEEKEND_GATE, ROLE_MISMATCH, UNAVAILABLE_DATE,
        EXCLUDED_SHIFT_TYPE, DISABLED_DOCTOR
  SOFT: UNFILLED_SLOT, CONSECUTIVE_DAYS

Usage:
  checker = ConflictChecker(doctors, unavailability)
  hard, soft = checker.check_all(plan, records=persisted_records)
"""

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from duty_scheduler.models import (
    DateLike,
    Doctor,
    GeneratedAssignment,
    ShiftRecord,
    Unavailability,
    index_records,
    parse_date,
)
from duty_scheduler.rules import (
    excludes_shift_type,
    is_unavailable_on,
    role_matches,
    weekend_gate_open,
)
from duty_scheduler.shift_config import (
    NIGHT_OVERLAP_SHIFTS,
    NIGHT_SHIFT,
    ShiftDefinition,
    get_shift_definition,
)

logger = logging.getLogger(__name__)


class ConstraintSeverity(Enum):
    HARD = "hard"
    SOFT = "soft"


@dataclass
class ConstraintViolation:
    severity: ConstraintSeverity
    constraint_type: str
    description: str
    date: Optional[str] = None
    doctor_id: Optional[int] = None
    shift_type: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        parts = [f"[{self.severity.value.upper()}] {self.constraint_type}"]
        if self.date:
            parts.append(f"date={self.date}")
        if self.doctor_id is not None:
            parts.append(f"doctor={self.doctor_id}")
        if self.shift_type:
            parts.append(f"shift={self.shift_type}")
        parts.append(f"→ {self.description}")
        return " | ".join(parts)


# ---------------------------------------------------------------------------
# Single-slot detector
# ---------------------------------------------------------------------------

def _conflict_reasons(
    doctor_id: int,
    shift: ShiftRecord,
    date_str: str,
    records_for_date: Iterable[ShiftRecord],
    doctor: Optional[Doctor],
    unavailability: Optional[Unavailability],
    definitions: Optional[Mapping[str, ShiftDefinition]] = None,
) -> List[str]:
    get_shift_definition(shift.shift_type, definitions)
    reasons = []
    if is_unavailable_on(doctor_id, date_str, unavailability):
        reasons.append("UNAVAILABLE_DATE")
    if doctor is not None and excludes_shift_type(doctor, shift.shift_type):
        reasons.append("EXCLUDED_SHIFT_TYPE")
    if shift.shift_type == NIGHT_SHIFT:
        for other in records_for_date:
            if other.date != date_str or other.shift_type not in NIGHT_OVERLAP_SHIFTS:
                continue
            if doctor_id in other.doctor_ids:
                reasons.append("NIGHT_OVERLAP")
                break
    return reasons


def find_conflicts(
    shift: ShiftRecord,
    d: DateLike,
    records_for_date: Iterable[ShiftRecord],
    doctors: Sequence[Doctor],
    unavailability: Optional[Unavailability] = None,
    definitions: Optional[Mapping[str, ShiftDefinition]] = None,
) -> Set[int]:
    """
    Return the doctor ids on `shift` that violate an unavailability, a standing
    shift-type exclusion, or the night/daytime overlap rule on date `d`.
    A shift type outside the taxonomy raises ValueError.

    Doctors missing from the roster are still checked for unavailability and
    night overlap.
    """
    date_str = parse_date(d).isoformat()
    by_id = {doc.id: doc for doc in doctors}
    get_shift_definition(shift.shift_type, definitions)
    same_day = list(records_for_date)
    flagged: Set[int] = set()
    for doctor_id in shift.doctor_ids:
        if _conflict_reasons(
            doctor_id, shift, date_str, same_day, by_id.get(doctor_id), unavailability, definitions,
        ):
            flagged.add(doctor_id)
    return flagged


def conflicts_by_slot(
    records: Iterable[ShiftRecord],
    doctors: Sequence[Doctor],
    unavailability: Optional[Unavailability] = None,
) -> Dict[Tuple[str, str], Set[int]]:
    """(date, shift_type) → conflicting doctor ids, only for slots with conflicts."""
    out: Dict[Tuple[str, str], Set[int]] = {}
    for date_str, by_type in index_records(records).items():
        day_records = list(by_type.values())
        for rec in day_records:
            flagged = find_conflicts(rec, date_str, day_records, doctors, unavailability)
            if flagged:
                out[rec.key] = flagged
    return out


# ---------------------------------------------------------------------------
# Checker
# ---------------------------------------------------------------------------

class ConflictChecker:
    """
    Validates persisted records (advisory conflicts) and generated plans
    (engine invariants).
    """

    def __init__(
        self,
        doctors: Sequence[Doctor],
        unavailability: Optional[Unavailability] = None,
        definitions: Optional[Mapping[str, ShiftDefinition]] = None,
    ):
        self.doctors = list(doctors)
        self.unavailability = unavailability or {}
        self.definitions = definitions
        self._by_id: Dict[int, Doctor] = {doc.id: doc for doc in self.doctors}

    def _name(self, doctor_id: int) -> str:
        doc = self._by_id.get(doctor_id)
        return doc.name if doc else f"Doctor #{doctor_id}"

    # -----------------------------------------------------------------------
    # Persisted records (advisory)
    # -----------------------------------------------------------------------

    def check_conflicts(self, records: Iterable[ShiftRecord]) -> List[ConstraintViolation]:
        """Soft: flag conflicting doctors on already-recorded shifts."""
        violations = []
        for date_str, by_type in sorted(index_records(records).items()):
            day_records = list(by_type.values())
            for rec in day_records:
                get_shift_definition(rec.shift_type, self.definitions)
                for doctor_id in rec.doctor_ids:
                    reasons = _conflict_reasons(
                        doctor_id, rec, date_str, day_records,
                        self._by_id.get(doctor_id), self.unavailability, self.definitions,
                    )
                    for reason in reasons:
                        violations.append(ConstraintViolation(
                            severity=ConstraintSeverity.SOFT,
                            constraint_type=reason,
                            description=f"{self._name(doctor_id)} conflicts on {rec.shift_type}",
                            date=date_str,
                            doctor_id=doctor_id,
                            shift_type=rec.shift_type,
                        ))
        if violations:
            logger.info(f"Found {len(violations)} conflicts in recorded shifts")
        return violations

    # -----------------------------------------------------------------------
    # Generated plans
    # -----------------------------------------------------------------------

    def check_double_booking(self, plan: Sequence[GeneratedAssignment]) -> List[ConstraintViolation]:
        """Hard: no doctor on two shift types on the same date."""
        violations = []
        seen: Dict[Tuple[str, int], str] = {}
        for a in plan:
            if a.doctor_id is None:
                continue
            key = (a.date, a.doctor_id)
            if key in seen:
                violations.append(ConstraintViolation(
                    severity=ConstraintSeverity.HARD,
                    constraint_type="DOUBLE_BOOKING",
                    description=(
                        f"{self._name(a.doctor_id)} assigned to both {seen[key]} "
                        f"and {a.shift_type} on {a.date}"
                    ),
                    date=a.date,
                    doctor_id=a.doctor_id,
                    shift_type=a.shift_type,
                    details={"first_shift": seen[key]},
                ))
            else:
                seen[key] = a.shift_type
        return violations

    def check_assignment_rules(self, plan: Sequence[GeneratedAssignment]) -> List[ConstraintViolation]:
        """Hard: weekend gate, role match, disabled, unavailability, exclusions."""
        violations = []
        for a in plan:
            if a.doctor_id is None:
                continue
            d = parse_date(a.date)
            doc = self._by_id.get(a.doctor_id)
            checks = [
                ("WEEKEND_GATE", not weekend_gate_open(a.shift_type, d, self.definitions),
                 f"{a.shift_type} is weekend-only but {a.date} is a weekday"),
                ("UNAVAILABLE_DATE", is_unavailable_on(a.doctor_id, a.date, self.unavailability),
                 f"{self._name(a.doctor_id)} is unavailable on {a.date}"),
            ]
            if doc is not None:
                checks += [
                    ("DISABLED_DOCTOR", doc.disabled,
                     f"{doc.name} is disabled"),
                    ("ROLE_MISMATCH", not role_matches(doc, a.shift_type, self.definitions),
                     f"{doc.name} (oa={doc.oa}) cannot take {a.shift_type}"),
                    ("EXCLUDED_SHIFT_TYPE", excludes_shift_type(doc, a.shift_type),
                     f"{doc.name} never works {a.shift_type}"),
                ]
            for constraint_type, failed, description in checks:
                if failed:
                    violations.append(ConstraintViolation(
                        severity=ConstraintSeverity.HARD,
                        constraint_type=constraint_type,
                        description=description,
                        date=a.date,
                        doctor_id=a.doctor_id,
                        shift_type=a.shift_type,
                    ))
        return violations

    def check_unfilled(self, plan: Sequence[GeneratedAssignment]) -> List[ConstraintViolation]:
        """Soft: staffed slots nobody could take. Weekday-gated slots are not reported."""
        violations = []
        for a in plan:
            if a.doctor_id is not None:
                continue
            if not weekend_gate_open(a.shift_type, parse_date(a.date), self.definitions):
                continue
            violations.append(ConstraintViolation(
                severity=ConstraintSeverity.SOFT,
                constraint_type="UNFILLED_SLOT",
                description=f"Shift {a.shift_type} on {a.date} could not be filled",
                date=a.date,
                shift_type=a.shift_type,
            ))
        return violations

    def check_consecutive_days(self, plan: Sequence[GeneratedAssignment]) -> List[ConstraintViolation]:
        """Soft: doctors working two calendar days in a row."""
        worked: Dict[int, Set[date]] = {}
        for a in plan:
            if a.doctor_id is not None:
                worked.setdefault(a.doctor_id, set()).add(parse_date(a.date))

        violations = []
        for doctor_id, days in sorted(worked.items()):
            for d in sorted(days):
                if d - timedelta(days=1) in days:
                    violations.append(ConstraintViolation(
                        severity=ConstraintSeverity.SOFT,
                        constraint_type="CONSECUTIVE_DAYS",
                        description=f"{self._name(doctor_id)} works {d - timedelta(days=1)} and {d}",
                        date=d.isoformat(),
                        doctor_id=doctor_id,
                    ))
        return violations

    # -----------------------------------------------------------------------
    # Run all checks
    # -----------------------------------------------------------------------

    def check_plan(
        self,
        plan: Sequence[GeneratedAssignment],
    ) -> Tuple[List[ConstraintViolation], List[ConstraintViolation]]:
        hard: List[ConstraintViolation] = []
        soft: List[ConstraintViolation] = []
        hard.extend(self.check_double_booking(plan))
        hard.extend(self.check_assignment_rules(plan))
        soft.extend(self.check_unfilled(plan))
        soft.extend(self.check_consecutive_days(plan))
        return hard, soft

    def check_all(
        self,
        plan: Sequence[GeneratedAssignment],
        records: Optional[Iterable[ShiftRecord]] = None,
    ) -> Tuple[List[ConstraintViolation], List[ConstraintViolation]]:
        """
        Run plan validation plus, when records are given, the advisory
        conflict scan.

        Returns:
            (hard_violations, soft_violations)
        """
        hard, soft = self.check_plan(plan)
        if records is not None:
            soft.extend(self.check_conflicts(records))
        return hard, soft
