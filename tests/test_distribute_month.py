"""
Full month run: load → distribute → validate → export → apply / clear
"""

import json
import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from duty_scheduler.api_client import RosterApiClient
from duty_scheduler.config import API_URL_ENV
from duty_scheduler.conflicts import ConflictChecker, ConstraintSeverity, ConstraintViolation
from duty_scheduler.distribute_month import main, run_clear, run_distribution
from duty_scheduler.models import Doctor, ShiftRecord
from duty_scheduler.store import ShiftStore


@pytest.fixture
def inputs(tmp_path):
    roster = tmp_path / "doctors.csv"
    roster.write_text(
        "id,name,color,disabled,oa,unavailable_shift_types\n"
        "1,Anna,,no,no,\n"
        "2,Jonas,,no,no,17shift\n"
        "3,Lena,,no,no,\n"
        "4,Paul,,no,no,\n"
        "5,Marie,,yes,no,\n"
        "6,Klaus,,no,yes,\n"
    )
    unavailable = tmp_path / "unavailable_dates.csv"
    unavailable.write_text("doctor_id,date\n1,2026-03-14\n3,2026-03-21\n")
    store = tmp_path / "shifts.json"
    store.write_text(json.dumps([{"date": "2026-03-07", "shiftType": "night", "doctorIds": [4]}]))
    return {
        "roster_path": roster,
        "unavailability_path": unavailable,
        "store_path": store,
        "output_dir": tmp_path / "out",
    }


class TestRunDistribution:

    def test_dry_run(self, inputs):
        result = run_distribution(2026, 3, seed=5, **inputs)
        assert len(result["plan"]) == 31 * 2
        assert result["hard_violations"] == []
        assert result["conflicts"] == []
        for path in result["outputs"].values():
            assert path.exists()
        # store untouched without apply
        assert len(ShiftStore(inputs["store_path"]).get_records()) == 1

    def test_night_holder_not_distributed(self, inputs):
        result = run_distribution(2026, 3, seed=5, **inputs)
        assert all(a.doctor_id != 4 for a in result["plan"] if a.date == "2026-03-07")

    def test_apply_then_clear(self, inputs):
        result = run_distribution(2026, 3, seed=5, apply=True, **inputs)
        store = ShiftStore(inputs["store_path"])
        records = store.get_records("2026-03-01", "2026-03-31")
        assert len(records) == 31 * 2 + 1
        filled = sum(1 for a in result["plan"] if a.filled)

        assert run_clear(2026, 3, inputs["store_path"]) == filled + 1
        assert all(not r.doctor_ids for r in ShiftStore(inputs["store_path"]).get_records())

    def test_same_seed_same_plan(self, inputs):
        first = run_distribution(2026, 3, seed=9, **inputs)["plan"]
        assert run_distribution(2026, 3, seed=9, **inputs)["plan"] == first


class TestApiSource:

    @pytest.fixture
    def client(self):
        c = MagicMock(spec=RosterApiClient)
        c.base_url = "https://roster.example.org"
        c.get_doctors.return_value = [Doctor(1, "Anna"), Doctor(2, "Jonas"), Doctor(3, "Klaus", oa=True)]
        c.get_unavailability.return_value = {1: {"2026-03-02"}}
        c.get_shifts.return_value = [
            ShiftRecord("2026-02-28", "night", [1]),
            ShiftRecord("2026-03-07", "night", [2]),
        ]
        return c

    def test_distribute_and_apply(self, tmp_path, client):
        result = run_distribution(2026, 3, output_dir=tmp_path, seed=3, apply=True, client=client)
        assert result["hard_violations"] == []
        assert all(a.doctor_id != 1 for a in result["plan"] if a.date == "2026-03-02")
        assert all(a.doctor_id != 2 for a in result["plan"] if a.date == "2026-03-07")
        (batch,), _kwargs = client.assign_batch.call_args
        assert len(batch) == 31 * 2

    def test_clear_only_month(self, client):
        assert run_clear(2026, 3, client=client) == 1
        client.assign_batch.assert_called_once_with(
            [{"date": "2026-03-07", "shiftType": "night", "doctorIds": []}]
        )

    def test_cli_needs_url(self, monkeypatch):
        monkeypatch.delenv(API_URL_ENV, raising=False)
        assert main(["--month", "2026-03", "--api"]) == 1


class TestMain:

    def test_bad_month(self):
        assert main(["--month", "2026-13"]) == 1

    def test_unknown_shift_type(self):
        with pytest.raises(SystemExit):
            main(["--month", "2026-03", "--shift-types", "breakfast"])

    def test_apply_refused_returns_exit_code(self, inputs, monkeypatch):
        violation = ConstraintViolation(ConstraintSeverity.HARD, "DOUBLE_BOOKING", "booked twice", date="2026-03-07")
        monkeypatch.setattr(ConflictChecker, "check_plan", lambda self, plan: ([violation], []))
        before = inputs["store_path"].read_text()
        rc = main([
            "--month", "2026-03",
            "--roster", str(inputs["roster_path"]),
            "--unavailable", str(inputs["unavailability_path"]),
            "--store", str(inputs["store_path"]),
            "--output-dir", str(inputs["output_dir"]),
            "--seed", "1",
            "--apply",
        ])
        assert rc == 2
        assert inputs["store_path"].read_text() == before

    def test_cli_run(self, inputs):
        rc = main([
            "--month", "2026-03",
            "--roster", str(inputs["roster_path"]),
            "--unavailable", str(inputs["unavailability_path"]),
            "--store", str(inputs["store_path"]),
            "--output-dir", str(inputs["output_dir"]),
            "--seed", "1",
        ])
        assert rc == 0
        assert (inputs["output_dir"] / "duty_2026-03_month_table.xlsx").exists()
