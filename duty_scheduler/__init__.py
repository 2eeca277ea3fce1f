"""
On-Call Duty Scheduler

Modules:
- shift_config: Shift taxonomy (weekend-only / senior-only flags)
- rules: Eligibility rules shared by generation and conflict display
- engine: Randomized greedy month distribution, fairness metrics
- conflicts: Conflict detection on recorded shifts, plan validation
- config: Roster / unavailability loaders, default paths
- store: JSON-file shift store (batch upsert)
- api_client: Roster web app REST client
- exporter: CSV, Excel month table, shift count report
"""

from .shift_config import (
    SHIFT_TYPES,
    SHIFT_DEFINITIONS,
    AUTO_DISTRIBUTE_SHIFT_TYPES,
    NIGHT_SHIFT,
    NIGHT_OVERLAP_SHIFTS,
    ShiftDefinition,
    is_weekend_only,
    is_senior_only,
)

from .models import (
    Doctor,
    ShiftRecord,
    GeneratedAssignment,
    Unavailability,
)

from .rules import is_eligible

from .conflicts import (
    ConflictChecker,
    ConstraintSeverity,
    ConstraintViolation,
    find_conflicts,
    conflicts_by_slot,
)

from .engine import (
    distribute,
    block_existing_assignments,
    plan_to_batch,
    clear_batch,
    calculate_fairness_metrics,
    get_month_dates,
)

__all__ = [
    "SHIFT_TYPES",
    "SHIFT_DEFINITIONS",
    "AUTO_DISTRIBUTE_SHIFT_TYPES",
    "NIGHT_SHIFT",
    "NIGHT_OVERLAP_SHIFTS",
    "ShiftDefinition",
    "is_weekend_only",
    "is_senior_only",
    "Doctor",
    "ShiftRecord",
    "GeneratedAssignment",
    "Unavailability",
    "is_eligible",
    "ConflictChecker",
    "ConstraintSeverity",
    "ConstraintViolation",
    "find_conflicts",
    "conflicts_by_slot",
    "distribute",
    "block_existing_assignments",
    "plan_to_batch",
    "clear_batch",
    "calculate_fairness_metrics",
    "get_month_dates",
]
