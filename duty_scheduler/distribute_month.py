"""
distribute_month.py — Month distribution run

Full orchestration:
  1. Load roster, unavailable dates and existing shift records
  2. Distribute the auto-distributed shift types over the month
  3. Validate the plan (hard + soft) and scan recorded shifts for conflicts
  4. Export CSV, Excel month table and shift count report
  5. Optionally upsert the plan into the shift store (--apply)

Bulk clear (--clear) empties every assigned record of the month instead.

With --api, roster, unavailable dates and shift records come from the roster
web app and --apply / --clear write back through PUT /api/shifts.

Usage:
  python -m duty_scheduler.distribute_month --month 2026-03
  python -m duty_scheduler.distribute_month --month 2026-03 --store config/shifts.json   # sample night duties
  python -m duty_scheduler.distribute_month --month 2026-03 --seed 7 --apply
  python -m duty_scheduler.distribute_month --month 2026-03 --clear
  DUTY_API_URL=https://roster.example.org python -m duty_scheduler.distribute_month --month 2026-03 --api
"""

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from duty_scheduler.api_client import RosterApiClient
from duty_scheduler.config import (
    API_URL_ENV,
    DEFAULT_OUTPUTS_DIR,
    DEFAULT_ROSTER_PATH,
    DEFAULT_STORE_PATH,
    DEFAULT_UNAVAILABILITY_PATH,
    get_api_settings,
    load_roster,
    load_unavailability,
)
from duty_scheduler.conflicts import ConflictChecker
from duty_scheduler.engine import (
    calculate_fairness_metrics,
    clear_batch,
    distribute,
    get_month_dates,
    plan_to_batch,
)
from duty_scheduler.exporter import export_month_table, export_shift_counts, export_to_csv
from duty_scheduler.models import GeneratedAssignment, ShiftRecord
from duty_scheduler.shift_config import AUTO_DISTRIBUTE_SHIFT_TYPES, SHIFT_TYPES
from duty_scheduler.store import ShiftStore

logger = logging.getLogger(__name__)


def _merge_plan(records: Sequence[ShiftRecord], plan: Sequence[GeneratedAssignment]) -> List[ShiftRecord]:
    """Records as they will look after the plan is upserted."""
    merged = {rec.key: rec for rec in records}
    for a in plan:
        ids = [] if a.doctor_id is None else [a.doctor_id]
        merged[(a.date, a.shift_type)] = ShiftRecord(a.date, a.shift_type, ids)
    return [rec for _key, rec in sorted(merged.items())]


def _records_in_range(records: Sequence[ShiftRecord], days: Sequence) -> List[ShiftRecord]:
    lo, hi = days[0].isoformat(), days[-1].isoformat()
    return [rec for rec in records if lo <= rec.date <= hi]


def run_distribution(
    year: int,
    month: int,
    roster_path: Path = DEFAULT_ROSTER_PATH,
    unavailability_path: Path = DEFAULT_UNAVAILABILITY_PATH,
    store_path: Path = DEFAULT_STORE_PATH,
    output_dir: Path = DEFAULT_OUTPUTS_DIR,
    shift_types: Sequence[str] = AUTO_DISTRIBUTE_SHIFT_TYPES,
    seed: Optional[int] = None,
    apply: bool = False,
    client: Optional[RosterApiClient] = None,
) -> Dict[str, Any]:
    """
    Distribute one calendar month.

    Args:
        year, month:          Month to distribute
        roster_path:          doctors.csv
        unavailability_path:  unavailable_dates.csv
        store_path:           shifts.json (existing records; target of --apply)
        output_dir:           Directory for output files
        shift_types:          Shift types to fill, in fill order
        seed:                 Tie-breaking seed (None → random per run)
        apply:                If True, upsert the plan into the store
        client:               Read inputs from and apply to the roster web app
                              instead of the local CSV / JSON files

    Returns:
        Dict with plan, metrics, violations, conflicts, output paths
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    prefix = f"duty_{year:04d}-{month:02d}"
    days = get_month_dates(year, month)

    logger.info(f"Distributing {prefix}: {days[0]} → {days[-1]}, shift types {list(shift_types)}")

    # ── 1. Load inputs ─────────────────────────────────────────────────────
    store = None
    if client is not None:
        doctors = client.get_doctors()
        unavailability = client.get_unavailability(doctors)
        existing = _records_in_range(client.get_shifts(), days)
    else:
        doctors = load_roster(roster_path)
        unavailability = load_unavailability(unavailability_path)
        store = ShiftStore(store_path)
        existing = store.get_records(days[0], days[-1])
    logger.info(f"{len(doctors)} doctors | {len(existing)} existing records in range")

    # ── 2. Distribute ──────────────────────────────────────────────────────
    plan = distribute(
        days,
        doctors,
        shift_types=shift_types,
        unavailability=unavailability,
        existing_records=existing,
        seed=seed,
    )

    # ── 3. Validate ────────────────────────────────────────────────────────
    checker = ConflictChecker(doctors, unavailability)
    hard, soft = checker.check_plan(plan)
    after = _merge_plan(existing, plan)
    conflicts = checker.check_conflicts(after)
    metrics = calculate_fairness_metrics(after, doctors)

    if hard:
        for v in hard:
            logger.error(str(v))
    logger.info(
        f"Hard violations: {len(hard)} | soft: {len(soft)} | conflicts: {len(conflicts)} | "
        f"unfilled: {sum(1 for v in soft if v.constraint_type == 'UNFILLED_SLOT')}"
    )

    # ── 4. Export ──────────────────────────────────────────────────────────
    csv_path = output_dir / f"{prefix}_plan.csv"
    xlsx_path = output_dir / f"{prefix}_month_table.xlsx"
    counts_path = output_dir / f"{prefix}_shift_counts.txt"
    violations_path = output_dir / f"{prefix}_violations.txt"

    export_to_csv(plan, csv_path, doctors)
    export_month_table(after, xlsx_path, doctors, days, title=f"Dienstplan {year:04d}-{month:02d}")
    export_shift_counts(metrics, counts_path, doctors, title=f"{year:04d}-{month:02d}")

    with open(violations_path, "w") as f:
        f.write("=== Plan Violations ===\n\n")
        f.write(f"HARD ({len(hard)}):\n")
        for v in hard:
            f.write(f"  {v}\n")
        f.write(f"\nSOFT ({len(soft)}):\n")
        for v in soft:
            f.write(f"  {v}\n")
        f.write(f"\nCONFLICTS ({len(conflicts)}):\n")
        for v in conflicts:
            f.write(f"  {v}\n")

    # ── 5. Apply ───────────────────────────────────────────────────────────
    if apply:
        if hard:
            raise RuntimeError(f"Refusing to apply a plan with {len(hard)} hard violations")
        batch = plan_to_batch(plan)
        if client is not None:
            client.assign_batch(batch)
            logger.info(f"Applied {len(batch)} assignments to {client.base_url}")
        else:
            store.assign_batch(batch)
            logger.info(f"Applied {len(batch)} assignments to {store.path}")

    return {
        "plan": plan,
        "metrics": metrics,
        "hard_violations": hard,
        "soft_violations": soft,
        "conflicts": conflicts,
        "outputs": {
            "csv": csv_path,
            "excel": xlsx_path,
            "counts": counts_path,
            "violations": violations_path,
        },
    }


def run_clear(
    year: int,
    month: int,
    store_path: Path = DEFAULT_STORE_PATH,
    client: Optional[RosterApiClient] = None,
) -> int:
    """Empty every assigned record of the month. Returns the number cleared."""
    days = get_month_dates(year, month)
    if client is not None:
        entries = clear_batch(_records_in_range(client.get_shifts(), days))
        if entries:
            client.assign_batch(entries)
        cleared = len(entries)
    else:
        cleared = ShiftStore(store_path).clear_range(days[0], days[-1])
    logger.info(f"Cleared {cleared} records for {year:04d}-{month:02d}")
    return cleared


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

def _parse_shift_types(value: str) -> list:
    types = [t.strip() for t in value.split(",") if t.strip()]
    unknown = [t for t in types if t not in SHIFT_TYPES]
    if unknown or not types:
        raise argparse.ArgumentTypeError(f"Unknown shift type(s) {unknown}; choose from {list(SHIFT_TYPES)}")
    return types


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Distribute on-call duties for one month")
    parser.add_argument("--month",        required=True, help="Month YYYY-MM")
    parser.add_argument("--roster",       default=str(DEFAULT_ROSTER_PATH), help="Roster CSV")
    parser.add_argument("--unavailable",  default=str(DEFAULT_UNAVAILABILITY_PATH), help="Unavailable dates CSV")
    parser.add_argument("--store",        default=str(DEFAULT_STORE_PATH), help="Shift store JSON (default: outputs/shifts.json)")
    parser.add_argument("--output-dir",   default=str(DEFAULT_OUTPUTS_DIR), help="Output directory")
    parser.add_argument("--shift-types",  type=_parse_shift_types,
                        default=list(AUTO_DISTRIBUTE_SHIFT_TYPES),
                        help="Comma-separated shift types to fill (default: 20shift,17shift)")
    parser.add_argument("--seed",         type=int, default=None, help="Tie-breaking seed")
    parser.add_argument("--apply",        action="store_true", help="Write the plan to the store")
    parser.add_argument("--clear",        action="store_true", help="Clear all assignments of the month")
    parser.add_argument("--api",          action="store_true",
                        help=f"Use the roster web app at ${API_URL_ENV} instead of local files")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        parsed = datetime.strptime(args.month, "%Y-%m")
    except ValueError as e:
        print(f"Invalid month format: {e}")
        return 1

    client = None
    if args.api:
        settings = get_api_settings()
        if not settings["base_url"]:
            print(f"--api needs {API_URL_ENV} to be set")
            return 1
        client = RosterApiClient(settings["base_url"], token=settings["token"])

    if args.clear:
        run_clear(parsed.year, parsed.month, Path(args.store), client=client)
        return 0

    try:
        result = run_distribution(
            parsed.year,
            parsed.month,
            roster_path=Path(args.roster),
            unavailability_path=Path(args.unavailable),
            store_path=Path(args.store),
            output_dir=Path(args.output_dir),
            shift_types=args.shift_types,
            seed=args.seed,
            apply=args.apply,
            client=client,
        )
    except RuntimeError as e:
        logger.error(str(e))
        print(f"\n  Not applied: {e}")
        return 2

    metrics = result["metrics"]
    print(f"\n  Filled slots:     {sum(1 for a in result['plan'] if a.filled)}/{len(result['plan'])}")
    print(f"  Hard violations:  {len(result['hard_violations'])}")
    print(f"  Conflicts:        {len(result['conflicts'])}")
    print(f"  Spread (max-min): {metrics['spread']}")
    for label, path in result["outputs"].items():
        print(f"  ✓ {label:<11}{path.name}")
    return 0 if not result["hard_violations"] else 2


if __name__ == "__main__":
    sys.exit(main())
