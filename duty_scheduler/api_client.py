"""
Duty Roster API Client
Reads the roster, unavailable dates and shift records from the roster web
app and pushes distribution batches back to it.

Endpoints:
  GET  /api/doctors
  GET  /api/doctors/{id}/unavailable-dates
  GET  /api/shifts[?date=YYYY-MM-DD]
  PUT  /api/shifts                 {"shifts": [{date, shiftType, doctorIds}]}
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence

import requests

from duty_scheduler.config import unavailability_from_records
from duty_scheduler.models import Doctor, ShiftRecord, Unavailability

logger = logging.getLogger(__name__)


class RosterApiClient:
    """
    Client for the duty roster web app REST API
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = 30,
    ):
        """
        Initialize the client

        Args:
            base_url: Root URL of the web app, e.g. https://roster.example.org
            token: Bearer access token (required for writes)
            timeout: Per-request timeout in seconds
        """
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout

        self.session = requests.Session()
        self.session.headers.update({'Content-Type': 'application/json'})
        if token:
            self.session.headers['Authorization'] = f'Bearer {token}'

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        endpoint = f"{self.base_url}{path}"
        try:
            response = self.session.get(endpoint, params=params, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except requests.exceptions.RequestException as e:
            logger.error(f"Error fetching {path}: {e}")
            raise

    def get_doctors(self) -> List[Doctor]:
        """
        Retrieve the doctor roster

        Returns:
            Doctors with disabled / oa / unavailableShiftTypes as of call time
        """
        logger.info("Fetching doctors")
        data = self._get("/api/doctors")
        doctors = [Doctor.from_dict(item) for item in data]
        logger.info(f"Retrieved {len(doctors)} doctors")
        return doctors

    def get_unavailable_dates(self, doctor_id: int) -> List[Dict[str, Any]]:
        """Unavailable-date rows ({doctorId, date}) for one doctor."""
        return self._get(f"/api/doctors/{doctor_id}/unavailable-dates")

    def get_unavailability(self, doctors: Sequence[Doctor]) -> Unavailability:
        """
        Build {doctor_id: {date_str}} for the whole roster

        Doctors without any unavailable date get an empty set.
        """
        unavailability: Unavailability = {}
        for doc in doctors:
            rows = self.get_unavailable_dates(doc.id)
            for row in rows:
                row.setdefault("doctorId", doc.id)
            unavailability[doc.id] = unavailability_from_records(rows).get(doc.id, set())
        logger.info(f"Retrieved unavailable dates for {len(unavailability)} doctors")
        return unavailability

    def get_shifts(self, date: Optional[str] = None) -> List[ShiftRecord]:
        """
        Retrieve shift records

        Args:
            date: Restrict to one date (YYYY-MM-DD); all records if None
        """
        params = {'date': date} if date else None
        data = self._get("/api/shifts", params=params)
        records = [ShiftRecord.from_dict(item) for item in data]
        logger.info(f"Retrieved {len(records)} shift records")
        return records

    def assign_batch(self, assignments: Iterable[Dict[str, Any]]) -> List[ShiftRecord]:
        """
        Bulk upsert shift records

        Args:
            assignments: {date, shiftType, doctorIds} entries; empty doctorIds
                         clears the slot

        Returns:
            Records as stored by the server
        """
        endpoint = f"{self.base_url}/api/shifts"
        payload = {'shifts': list(assignments)}

        logger.info(f"Uploading {len(payload['shifts'])} shift assignments")

        try:
            response = self.session.put(endpoint, json=payload, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.RequestException as e:
            logger.error(f"Error uploading shift batch: {e}")
            raise

        return [ShiftRecord.from_dict(item) for item in data]
