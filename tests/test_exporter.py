"""
Tests for CSV / Excel / shift count exports
"""

import csv
import sys
from datetime import date
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from duty_scheduler.engine import calculate_fairness_metrics
from duty_scheduler.exporter import (
    build_month_table,
    export_month_table,
    export_shift_counts,
    export_to_csv,
    format_shift_counts,
)
from duty_scheduler.models import Doctor, GeneratedAssignment, ShiftRecord

DAYS = [date(2026, 3, 6), date(2026, 3, 7)]


@pytest.fixture
def doctors():
    return [Doctor(1, "Anna"), Doctor(2, "Jonas"), Doctor(3, "Klaus", oa=True)]


@pytest.fixture
def records():
    return [
        ShiftRecord("2026-03-07", "night", [1, 2]),
        ShiftRecord("2026-03-07", "oa", [3]),
        ShiftRecord("2026-03-06", "20shift", [2]),
        ShiftRecord("2026-03-07", "20shift", []),
    ]


class TestCsvExport:

    def test_plan_rows(self, tmp_path, doctors):
        plan = [
            GeneratedAssignment("2026-03-07", "17shift", None),
            GeneratedAssignment("2026-03-07", "20shift", 1),
        ]
        path = tmp_path / "plan.csv"
        export_to_csv(plan, path, doctors)
        with open(path, newline="") as f:
            rows = list(csv.DictReader(f))
        assert rows == [
            {"date": "2026-03-07", "shift_type": "20shift", "doctor_id": "1", "doctor": "Anna"},
            {"date": "2026-03-07", "shift_type": "17shift", "doctor_id": "", "doctor": ""},
        ]


class TestMonthTable:

    def test_grid(self, records, doctors):
        grid = build_month_table(records, doctors, DAYS)
        assert list(grid.columns) == [
            "Tag", "Wochentag", "Nachtdienst", "20:00 Dienst", "Stationsdienst", "Hintergrund",
        ]
        assert list(grid["Wochentag"]) == ["Fr", "Sa"]
        assert grid.loc[0, "20:00 Dienst"] == "Jonas"
        assert grid.loc[1, "Nachtdienst"] == "Anna / Jonas"
        assert grid.loc[1, "Hintergrund"] == "Klaus"
        assert grid.loc[1, "20:00 Dienst"] == ""

    def test_excel_file(self, tmp_path, records, doctors):
        from openpyxl import load_workbook

        path = tmp_path / "month.xlsx"
        export_month_table(records, path, doctors, DAYS, title="Dienstplan 2026-03")
        ws = load_workbook(path)["Dienstplan"]
        assert ws.cell(row=1, column=1).value == "Dienstplan 2026-03"
        assert ws.cell(row=3, column=1).value == "Tag"
        assert ws.cell(row=5, column=2).value == "Sa"


class TestShiftCounts:

    def test_sorted_by_total_then_name(self, tmp_path, records, doctors):
        metrics = calculate_fairness_metrics(records, doctors)
        text = export_shift_counts(metrics, tmp_path / "counts.txt", doctors, title="2026-03")
        assert (tmp_path / "counts.txt").read_text() == text
        lines = text.splitlines()
        jonas = next(i for i, l in enumerate(lines) if "Jonas" in l)
        anna = next(i for i, l in enumerate(lines) if "Anna" in l)
        klaus = next(i for i, l in enumerate(lines) if "Klaus" in l)
        assert jonas < anna < klaus

    def test_columns_and_totals(self, records, doctors):
        text = format_shift_counts(calculate_fairness_metrics(records, doctors), doctors)
        header = next(l for l in text.splitlines() if "Doctor" in l)
        assert header.split() == ["Doctor", "ND", "LD", "KD", "Total"]
        jonas = next(l for l in text.splitlines() if "Jonas" in l)
        assert jonas.split() == ["Jonas", "1", "1", "0", "2"]
        klaus = next(l for l in text.splitlines() if "Klaus" in l)
        assert klaus.split()[-1] == "0"
