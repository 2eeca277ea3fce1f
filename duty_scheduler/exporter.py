"""
exporter.py — Export Layer for the Duty Scheduler

Outputs:
  - CSV: flat (date, shift_type, doctor_id, doctor) for programmatic review
  - Excel (.xlsx): month table, date × shift type grid with doctor names
  - Shift count report (.txt): per-doctor counts by shift acronym

Usage:
  from duty_scheduler.exporter import export_to_csv, export_month_table, export_shift_counts
"""

import logging
from datetime import date
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

from duty_scheduler.models import Doctor, GeneratedAssignment, ShiftRecord
from duty_scheduler.shift_config import (
    SHIFT_DEFINITIONS,
    SHIFT_TYPES,
    counted_shift_types,
    shift_label,
)

logger = logging.getLogger(__name__)

Entry = Union[GeneratedAssignment, ShiftRecord]

WEEKDAY_ABBREV = ("Mo", "Di", "Mi", "Do", "Fr", "Sa", "So")
UNASSIGNED = ""


def _rows(entries: Iterable[Entry]) -> List[Dict[str, Any]]:
    """Flatten plans and records to (date, shift_type, doctor_id) rows."""
    rows = []
    for e in entries:
        if isinstance(e, GeneratedAssignment):
            ids = [] if e.doctor_id is None else [e.doctor_id]
        else:
            ids = list(e.doctor_ids)
        if not ids:
            rows.append({"date": e.date, "shift_type": e.shift_type, "doctor_id": None})
        for doctor_id in ids:
            rows.append({"date": e.date, "shift_type": e.shift_type, "doctor_id": doctor_id})
    return rows


def _row_order(row: Dict[str, Any]) -> tuple:
    shift_type = row["shift_type"]
    idx = SHIFT_TYPES.index(shift_type) if shift_type in SHIFT_TYPES else len(SHIFT_TYPES)
    return (row["date"], idx)


def _doctor_names(doctors: Sequence[Doctor]) -> Dict[int, str]:
    return {doc.id: doc.name for doc in doctors}


# ---------------------------------------------------------------------------
# CSV Export
# ---------------------------------------------------------------------------

def export_to_csv(
    entries: Iterable[Entry],
    output_path: Path,
    doctors: Sequence[Doctor] = (),
) -> None:
    """
    Export a plan or records to flat CSV: date, shift_type, doctor_id, doctor.

    Unfilled slots are written with empty doctor columns.
    """
    import csv
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    names = _doctor_names(doctors)

    with open(output_path, "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=["date", "shift_type", "doctor_id", "doctor"])
        writer.writeheader()
        for row in sorted(_rows(entries), key=_row_order):
            doctor_id = row["doctor_id"]
            writer.writerow({
                "date": row["date"],
                "shift_type": row["shift_type"],
                "doctor_id": "" if doctor_id is None else doctor_id,
                "doctor": "" if doctor_id is None else names.get(doctor_id, f"Doctor #{doctor_id}"),
            })

    logger.info(f"CSV exported → {output_path}")


# ---------------------------------------------------------------------------
# Excel Export
# ---------------------------------------------------------------------------

def build_month_table(
    entries: Iterable[Entry],
    doctors: Sequence[Doctor],
    days: Sequence[date],
    shift_order: Sequence[str] = SHIFT_TYPES,
):
    """
    Month grid as a DataFrame: one row per day, columns Tag, Wochentag, then
    one column per shift type (header = export label). Multiple doctors in a
    cell are joined with " / ".
    """
    import pandas as pd

    names = _doctor_names(doctors)
    cells: Dict[tuple, List[str]] = {}
    for row in _rows(entries):
        if row["doctor_id"] is None:
            continue
        key = (row["date"], row["shift_type"])
        cells.setdefault(key, []).append(names.get(row["doctor_id"], f"Doctor #{row['doctor_id']}"))

    data = []
    for d in days:
        key_date = d.isoformat()
        record = {"Tag": d.day, "Wochentag": WEEKDAY_ABBREV[d.weekday()]}
        for shift_type in shift_order:
            record[shift_label(shift_type)] = " / ".join(cells.get((key_date, shift_type), [])) or UNASSIGNED
        data.append(record)

    return pd.DataFrame(data, columns=["Tag", "Wochentag"] + [shift_label(t) for t in shift_order])


def export_month_table(
    entries: Iterable[Entry],
    output_path: Path,
    doctors: Sequence[Doctor],
    days: Sequence[date],
    title: Optional[str] = None,
    shift_order: Sequence[str] = SHIFT_TYPES,
) -> None:
    """
    Export the month table to a formatted Excel sheet.

    Args:
        entries:     Plan entries or persisted records
        output_path: .xlsx file path
        doctors:     Roster for id → name lookup
        days:        Days of the month, in row order
        title:       Optional sheet title written above the table
        shift_order: Column order
    """
    import pandas as pd

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    grid = build_month_table(entries, doctors, days, shift_order)
    start_row = 2 if title else 0

    with pd.ExcelWriter(output_path, engine="openpyxl") as writer:
        grid.to_excel(writer, sheet_name="Dienstplan", index=False, startrow=start_row)
        ws = writer.sheets["Dienstplan"]
        if title:
            ws.cell(row=1, column=1, value=title)
        _format_month_sheet(ws, header_row=start_row + 1, days=days)

    logger.info(f"Excel exported → {output_path}")


def _format_month_sheet(ws: Any, header_row: int, days: Sequence[date]) -> None:
    """Bold header, thin borders, weekend rows shaded, column widths."""
    from openpyxl.styles import Alignment, Border, Font, PatternFill, Side

    thin = Side(style="thin", color="FF999999")
    border = Border(top=thin, left=thin, bottom=thin, right=thin)
    header_fill = PatternFill("solid", fgColor="1F4E79")
    weekend_fill = PatternFill("solid", fgColor="EBF3FB")

    for cell in ws[header_row]:
        cell.font = Font(bold=True, color="FFFFFF")
        cell.fill = header_fill
        cell.alignment = Alignment(horizontal="center")
        cell.border = border

    for offset, d in enumerate(days, start=1):
        for cell in ws[header_row + offset]:
            cell.border = border
            cell.alignment = Alignment(vertical="center")
            if d.weekday() >= 5:
                cell.fill = weekend_fill

    for col in ws.iter_cols(min_row=header_row):
        max_len = max((len(str(c.value)) for c in col if c.value is not None), default=8)
        ws.column_dimensions[col[0].column_letter].width = min(max_len + 2, 30)


# ---------------------------------------------------------------------------
# Shift count report
# ---------------------------------------------------------------------------

def format_shift_counts(
    metrics: Dict[str, Any],
    doctors: Sequence[Doctor],
    title: str = "",
) -> str:
    """
    Per-doctor count table (enabled doctors), sorted by total descending then
    name. Columns: shift acronyms that appear in the count table, then total.
    """
    shift_types = counted_shift_types()
    counts = metrics.get("counts", {})
    per_shift = metrics.get("per_shift", {})
    names = _doctor_names(doctors)

    rows = []
    for doctor_id in counts:
        by_type = [per_shift.get(t, {}).get(doctor_id, 0) for t in shift_types]
        total = sum(by_type)
        rows.append((names.get(doctor_id, f"Doctor #{doctor_id}"), by_type, total))
    rows.sort(key=lambda r: (-r[2], r[0]))

    sep = "=" * 60
    acronyms = [SHIFT_DEFINITIONS[t].acronym for t in shift_types]
    lines = [
        sep,
        f"  SHIFT COUNTS{(' — ' + title) if title else ''}",
        sep,
        "",
        f"  Mean / Std:       {metrics.get('mean', 0):.2f} / {metrics.get('std', 0):.2f}",
        f"  Min / Max:        {metrics.get('min', 0)} / {metrics.get('max', 0)}",
        f"  Unfilled slots:   {metrics.get('unfilled', 0)}",
        "",
        "  " + f"{'Doctor':<24}" + "".join(f"{a:>6}" for a in acronyms) + f"{'Total':>8}",
        "─" * 60,
    ]
    for name, by_type, total in rows:
        lines.append("  " + f"{name:<24}" + "".join(f"{c:>6d}" for c in by_type) + f"{total:>8d}")
    lines.append(sep)
    return "\n".join(lines)


def export_shift_counts(
    metrics: Dict[str, Any],
    output_path: Path,
    doctors: Sequence[Doctor],
    title: str = "",
) -> str:
    """Write format_shift_counts() to a text file and return the text."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    report_text = format_shift_counts(metrics, doctors, title=title)
    with open(output_path, "w") as f:
        f.write(report_text)
    logger.info(f"Shift count report exported → {output_path}")
    return report_text

