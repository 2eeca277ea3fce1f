"""
config.py — Configuration Module for the On-Call Duty Scheduler

Loads the doctor roster and the unavailable-dates table, and exposes default
paths and environment settings.

Roster CSV columns:
  id, name, color, disabled, oa, unavailable_shift_types
  (unavailable_shift_types: "night;17shift", "night,17shift" or '["night"]')

Unavailability CSV columns:
  doctor_id, date   (one row per unavailable date, YYYY-MM-DD)
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from duty_scheduler.models import Doctor, Unavailability, parse_date
from duty_scheduler.shift_config import (
    AUTO_DISTRIBUTE_SHIFT_TYPES,
    NIGHT_OVERLAP_SHIFTS,
    NIGHT_SHIFT,
    SHIFT_DEFINITIONS,
    SHIFT_TYPES,
)

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parent.parent
DEFAULT_CONFIG_DIR = PROJECT_ROOT / "config"
DEFAULT_ROSTER_PATH          = DEFAULT_CONFIG_DIR / "doctors.csv"
DEFAULT_UNAVAILABILITY_PATH  = DEFAULT_CONFIG_DIR / "unavailable_dates.csv"
DEFAULT_OUTPUTS_DIR          = PROJECT_ROOT / "outputs"
DEFAULT_STORE_PATH           = DEFAULT_OUTPUTS_DIR / "shifts.json"

API_URL_ENV   = "DUTY_API_URL"
API_TOKEN_ENV = "DUTY_API_TOKEN"


# ---------------------------------------------------------------------------
# Roster loader
# ---------------------------------------------------------------------------

def load_roster(
    roster_path: Optional[Path] = None,
) -> List[Doctor]:
    """
    Load the doctor roster from CSV.

    Returns list of Doctor sorted by id. Raises ValueError on duplicate ids or
    on standing exclusions naming an unknown shift type.
    """
    import pandas as pd

    path = Path(roster_path) if roster_path else DEFAULT_ROSTER_PATH
    if not path.exists():
        raise FileNotFoundError(f"Roster file not found: {path}")

    df = pd.read_csv(path, dtype={"unavailable_shift_types": str, "color": str})

    doctors: List[Doctor] = []
    for _, row in df.iterrows():
        raw = {k: (None if pd.isna(v) else v) for k, v in row.to_dict().items()}
        doctors.append(Doctor.from_dict(raw))

    ids = [doc.id for doc in doctors]
    dupes = sorted({i for i in ids if ids.count(i) > 1})
    if dupes:
        raise ValueError(f"Duplicate doctor ids in {path}: {dupes}")

    for doc in doctors:
        unknown = doc.unavailable_shift_types - set(SHIFT_TYPES)
        if unknown:
            raise ValueError(f"{doc.name}: unknown shift type(s) in exclusions: {sorted(unknown)}")

    doctors.sort(key=lambda doc: doc.id)
    logger.info(f"Loaded {len(doctors)} doctors from {path}")
    return doctors


# ---------------------------------------------------------------------------
# Unavailability loader
# ---------------------------------------------------------------------------

def load_unavailability(
    unavailability_path: Optional[Path] = None,
) -> Unavailability:
    """
    Load unavailable dates from CSV.

    Returns: {doctor_id: {date_str, ...}}
    """
    import pandas as pd

    path = Path(unavailability_path) if unavailability_path else DEFAULT_UNAVAILABILITY_PATH
    if not path.exists():
        logger.warning(f"Unavailability file not found: {path}. Returning empty map.")
        return {}

    df = pd.read_csv(path, dtype={"date": str})
    unavailability: Unavailability = {}

    for _, row in df.iterrows():
        if pd.isna(row["doctor_id"]) or pd.isna(row["date"]):
            raise ValueError(f"Incomplete unavailability row in {path}: {row.to_dict()}")
        date_str = parse_date(str(row["date"])).isoformat()
        unavailability.setdefault(int(row["doctor_id"]), set()).add(date_str)

    total = sum(len(v) for v in unavailability.values())
    logger.info(f"Loaded {total} unavailable dates for {len(unavailability)} doctors from {path}")
    return unavailability


def unavailability_from_records(records: List[Dict[str, Any]]) -> Unavailability:
    """Build the map from API rows shaped {doctorId, date}."""
    out: Unavailability = {}
    for rec in records:
        doctor_id = rec.get("doctorId", rec.get("doctor_id"))
        if doctor_id is None or not rec.get("date"):
            raise ValueError(f"Unavailable-date record missing doctorId/date: {rec!r}")
        out.setdefault(int(doctor_id), set()).add(parse_date(rec["date"]).isoformat())
    return out


# ---------------------------------------------------------------------------
# Environment
# ---------------------------------------------------------------------------

def get_api_settings() -> Dict[str, Optional[str]]:
    return {
        "base_url": os.environ.get(API_URL_ENV),
        "token": os.environ.get(API_TOKEN_ENV),
    }


# ---------------------------------------------------------------------------
# Full config dict
# ---------------------------------------------------------------------------

def get_config() -> Dict[str, Any]:
    return {
        "shift_types":                 list(SHIFT_TYPES),
        "shift_definitions":           dict(SHIFT_DEFINITIONS),
        "auto_distribute_shift_types": list(AUTO_DISTRIBUTE_SHIFT_TYPES),
        "night_shift":                 NIGHT_SHIFT,
        "night_overlap_shifts":        sorted(NIGHT_OVERLAP_SHIFTS),
        "roster_path":                 DEFAULT_ROSTER_PATH,
        "unavailability_path":         DEFAULT_UNAVAILABILITY_PATH,
        "store_path":                  DEFAULT_STORE_PATH,
    }


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    roster = load_roster()
    print(f"Loaded {len(roster)} doctors")
    for doc in roster:
        flags = " ".join(f for f, on in (("OA", doc.oa), ("disabled", doc.disabled)) if on)
        excl = ", ".join(sorted(doc.unavailable_shift_types)) or "(none)"
        print(f"  [{doc.id:3d}] {doc.name:<24} {flags:<12} | never: {excl}")

    unavailability = load_unavailability()
    print(f"\nUnavailable dates: {sum(len(v) for v in unavailability.values())}")
