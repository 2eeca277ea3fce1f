"""
Tests for the roster API client (HTTP mocked)
"""

import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import requests

PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from duty_scheduler.api_client import RosterApiClient
from duty_scheduler.models import Doctor, ShiftRecord


def _response(payload):
    resp = MagicMock()
    resp.json.return_value = payload
    resp.raise_for_status.return_value = None
    return resp


@pytest.fixture
def client():
    c = RosterApiClient("https://roster.example.org/", token="secret")
    c.session = MagicMock()
    return c


class TestRosterApiClient:

    def test_auth_header(self):
        c = RosterApiClient("https://roster.example.org", token="secret")
        assert c.session.headers["Authorization"] == "Bearer secret"
        assert "Authorization" not in RosterApiClient("https://roster.example.org").session.headers

    def test_get_doctors(self, client):
        client.session.get.return_value = _response([
            {"id": 1, "name": "Anna", "disabled": False, "oa": False, "unavailableShiftTypes": ["night"]},
        ])
        doctors = client.get_doctors()
        assert doctors == [Doctor(1, "Anna", unavailable_shift_types=frozenset({"night"}))]
        args, kwargs = client.session.get.call_args
        assert args[0] == "https://roster.example.org/api/doctors"

    def test_get_unavailability(self, client):
        client.session.get.side_effect = [
            _response([{"id": 7, "doctorId": 1, "date": "2026-03-02"}]),
            _response([]),
        ]
        result = client.get_unavailability([Doctor(1, "Anna"), Doctor(2, "Jonas")])
        assert result == {1: {"2026-03-02"}, 2: set()}

    def test_get_shifts_for_date(self, client):
        client.session.get.return_value = _response([
            {"date": "2026-03-07", "shiftType": "night", "doctorIds": [2]},
        ])
        assert client.get_shifts("2026-03-07") == [ShiftRecord("2026-03-07", "night", [2])]
        _args, kwargs = client.session.get.call_args
        assert kwargs["params"] == {"date": "2026-03-07"}

    def test_assign_batch(self, client):
        entries = [{"date": "2026-03-07", "shiftType": "20shift", "doctorIds": [1]}]
        client.session.put.return_value = _response(entries)
        assert client.assign_batch(entries) == [ShiftRecord("2026-03-07", "20shift", [1])]
        args, kwargs = client.session.put.call_args
        assert args[0] == "https://roster.example.org/api/shifts"
        assert kwargs["json"] == {"shifts": entries}

    def test_request_errors_propagate(self, client):
        client.session.get.side_effect = requests.exceptions.ConnectionError("down")
        with pytest.raises(requests.exceptions.RequestException):
            client.get_doctors()
