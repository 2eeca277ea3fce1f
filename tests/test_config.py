"""
Tests for roster / unavailability loading and the record models
"""

import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from duty_scheduler.config import (
    API_TOKEN_ENV,
    API_URL_ENV,
    DEFAULT_CONFIG_DIR,
    DEFAULT_OUTPUTS_DIR,
    DEFAULT_STORE_PATH,
    get_api_settings,
    load_roster,
    load_unavailability,
    unavailability_from_records,
)
from duty_scheduler.models import Doctor, ShiftRecord, normalize_doctor_ids, parse_date

ROSTER_HEADER = "id,name,color,disabled,oa,unavailable_shift_types\n"


def _write(path: Path, text: str) -> Path:
    path.write_text(text)
    return path


class TestLoadRoster:

    def test_loads_and_sorts(self, tmp_path):
        path = _write(tmp_path / "doctors.csv", ROSTER_HEADER + (
            "3,Lena,,yes,no,\n"
            "1,Anna,#1f77b4,no,no,night;17shift\n"
            "2,Klaus,,no,yes,\n"
        ))
        roster = load_roster(path)
        assert [d.id for d in roster] == [1, 2, 3]
        anna, klaus, lena = roster
        assert anna.color == "#1f77b4"
        assert anna.unavailable_shift_types == frozenset({"night", "17shift"})
        assert klaus.oa and not klaus.disabled
        assert lena.disabled and lena.color is None

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_roster(tmp_path / "nope.csv")

    def test_duplicate_ids(self, tmp_path):
        path = _write(tmp_path / "doctors.csv", ROSTER_HEADER + "1,Anna,,no,no,\n1,Jonas,,no,no,\n")
        with pytest.raises(ValueError, match="Duplicate"):
            load_roster(path)

    def test_missing_name(self, tmp_path):
        path = _write(tmp_path / "doctors.csv", ROSTER_HEADER + "1,,,no,no,\n")
        with pytest.raises(ValueError):
            load_roster(path)

    def test_unknown_exclusion(self, tmp_path):
        path = _write(tmp_path / "doctors.csv", ROSTER_HEADER + "1,Anna,,no,no,breakfast\n")
        with pytest.raises(ValueError, match="unknown shift type"):
            load_roster(path)

    def test_sample_roster(self):
        roster = load_roster()
        assert roster
        assert any(d.oa for d in roster)


class TestLoadUnavailability:

    def test_loads_map(self, tmp_path):
        path = _write(tmp_path / "u.csv", "doctor_id,date\n1,2026-03-02\n1,2026-03-03\n2,2026-03-02\n")
        assert load_unavailability(path) == {
            1: {"2026-03-02", "2026-03-03"},
            2: {"2026-03-02"},
        }

    def test_missing_file_is_empty(self, tmp_path):
        assert load_unavailability(tmp_path / "nope.csv") == {}

    def test_malformed_date(self, tmp_path):
        path = _write(tmp_path / "u.csv", "doctor_id,date\n1,2026-02-30\n")
        with pytest.raises(ValueError):
            load_unavailability(path)

    def test_from_api_records(self):
        rows = [{"id": 9, "doctorId": 4, "date": "2026-03-10"}]
        assert unavailability_from_records(rows) == {4: {"2026-03-10"}}
        with pytest.raises(ValueError):
            unavailability_from_records([{"date": "2026-03-10"}])


class TestDefaults:

    def test_store_not_in_sample_data(self):
        assert DEFAULT_STORE_PATH.parent == DEFAULT_OUTPUTS_DIR
        assert DEFAULT_STORE_PATH.parent != DEFAULT_CONFIG_DIR

    def test_package_metadata_has_no_design_readme(self):
        pyproject = (PROJECT_ROOT / "pyproject.toml").read_text()
        assert "DESIGN.md" not in pyproject


class TestApiSettings:

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv(API_URL_ENV, "https://roster.example.org")
        monkeypatch.delenv(API_TOKEN_ENV, raising=False)
        assert get_api_settings() == {"base_url": "https://roster.example.org", "token": None}


class TestModels:

    def test_parse_date(self):
        assert parse_date("2026-03-02").isoformat() == "2026-03-02"
        with pytest.raises(ValueError):
            parse_date("02.03.2026")
        with pytest.raises(ValueError):
            parse_date(20260302)

    def test_doctor_from_api_dict(self):
        doc = Doctor.from_dict({
            "id": "5", "name": " Marie ", "disabled": False, "oa": True,
            "unavailableShiftTypes": '["night"]',
        })
        assert doc == Doctor(5, "Marie", oa=True, unavailable_shift_types=frozenset({"night"}))
        assert doc.to_dict()["unavailableShiftTypes"] == ["night"]

    def test_doctor_missing_fields(self):
        with pytest.raises(ValueError):
            Doctor.from_dict({"name": "No Id"})
        with pytest.raises(ValueError):
            Doctor.from_dict({"id": "x", "name": "Bad"})

    def test_normalize_doctor_ids(self):
        assert normalize_doctor_ids([3, "4", 3, "x", True, None]) == [3, 4]
        assert normalize_doctor_ids("3") == []

    def test_shift_record_round_trip(self):
        rec = ShiftRecord.from_dict({"date": "2026-03-07", "shiftType": "night", "doctorIds": ["2"]})
        assert rec == ShiftRecord("2026-03-07", "night", [2])
        assert rec.to_dict() == {"date": "2026-03-07", "shiftType": "night", "doctorIds": [2]}
        with pytest.raises(ValueError):
            ShiftRecord.from_dict({"date": "2026-03-07"})

    def test_shift_record_unknown_type(self):
        with pytest.raises(ValueError, match="Unknown shift type"):
            ShiftRecord.from_dict({"date": "2026-03-07", "shiftType": "nigth", "doctorIds": [1]})
