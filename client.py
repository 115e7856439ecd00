"""BambooHR API client."""

from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any

import httpx

from errors import AuthorizationError, NetworkError
from models import Credentials, Employee, Holiday, MonthFeeds, TimeOffRequest, TimesheetEntry
from utils import format_date, month_bounds

logger = logging.getLogger(__name__)

EMPLOYEE_FIELDS = ["id", "firstName", "lastName", "displayName", "jobTitle", "workEmail", "department"]


def _parse_timestamp(val: str | None) -> datetime | None:
    if not val:
        return None
    return datetime.fromisoformat(val.replace("Z", "+00:00"))


def _parse_date(val: str | None) -> date | None:
    if not val:
        return None
    return date.fromisoformat(val[:10])


def _parse_entry(item: dict[str, Any]) -> TimesheetEntry:
    hours = item.get("hours")
    project = item.get("projectInfo") or {}
    return TimesheetEntry(
        id=item.get("id", 0),
        date=date.fromisoformat(item["date"]),
        kind=item.get("type", "hour"),
        hours=Decimal(str(hours)) if hours is not None else None,
        start=_parse_timestamp(item.get("start")),
        end=_parse_timestamp(item.get("end")),
        note=item.get("note"),
        project_name=project.get("name"),
    )


def _parse_time_off(item: dict[str, Any]) -> TimeOffRequest:
    type_info = item.get("type") or {}
    return TimeOffRequest(
        id=item.get("id", 0),
        name=item.get("name") or "",
        type_name=type_info.get("name") or "",
        start=_parse_date(item.get("start")),
        end=_parse_date(item.get("end")),
        dates=frozenset(date.fromisoformat(d) for d in (item.get("dates") or {})),
    )


def _parse_employee(item: dict[str, Any]) -> Employee:
    return Employee(
        id=str(item.get("id", "")),
        first_name=item.get("firstName") or "",
        last_name=item.get("lastName") or "",
        display_name=item.get("displayName"),
        job_title=item.get("jobTitle"),
        work_email=item.get("workEmail"),
        department=item.get("department"),
    )


class BambooHRClient:
    """Async access to the time-tracking endpoints of one company account."""

    def __init__(self, credentials: Credentials, timeout: float = 30.0):
        self.credentials = credentials
        self.employee_id: str | None = None
        self._client = httpx.AsyncClient(
            base_url=f"https://{credentials.company_domain}.bamboohr.com",
            auth=(credentials.api_key, "x"),
            headers={"Accept": "application/json"},
            timeout=timeout,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            resp = await self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            logger.warning("Timeout calling %s %s", method, path)
            raise NetworkError(f"Request timed out: {path}") from e
        except httpx.HTTPError as e:
            logger.warning("HTTP error calling %s %s: %s", method, path, e)
            raise NetworkError(f"Connection failed: {e}") from e

        if resp.status_code in (401, 403):
            raise AuthorizationError(
                f"BambooHR rejected the credentials ({resp.status_code})",
                status_code=resp.status_code,
            )
        if resp.is_error:
            logger.error("BambooHR API error %s on %s: %s", resp.status_code, path, resp.text)
            raise NetworkError(
                f"BambooHR API error ({resp.status_code}): {resp.text}",
                status_code=resp.status_code,
            )
        if not resp.content:
            return None
        return resp.json()

    def _require_employee(self) -> str:
        if not self.employee_id:
            raise NetworkError("Employee ID not set. Call get_employee() first.")
        return self.employee_id

    async def get_employee(self, employee_id: str | int = 0) -> Employee:
        """Fetch an employee profile; 0 means the key's own employee."""
        data = await self._request(
            "GET",
            f"/api/v1/employees/{employee_id}",
            params={"fields": ",".join(EMPLOYEE_FIELDS)},
        )
        employee = _parse_employee(data or {})
        if employee.id:
            self.employee_id = employee.id
        return employee

    async def get_timesheet_entries(self, start: date, end: date) -> list[TimesheetEntry]:
        data = await self._request(
            "GET",
            "/api/v1/time_tracking/timesheet_entries",
            params={
                "start": format_date(start),
                "end": format_date(end),
                "employeeIds": self._require_employee(),
            },
        )
        return [_parse_entry(item) for item in data or []]

    async def get_time_off_requests(self, start: date, end: date) -> list[TimeOffRequest]:
        """Approved time-off requests overlapping the range."""
        data = await self._request(
            "GET",
            "/api/v1/time_off/requests",
            params={
                "start": format_date(start),
                "end": format_date(end),
                "employeeId": self._require_employee(),
                "status": "approved",
            },
        )
        # The endpoint answers with either a list or an id-keyed object
        items = data.values() if isinstance(data, dict) else (data or [])
        return [_parse_time_off(item) for item in items]

    async def get_holidays(self, start: date, end: date) -> list[Holiday]:
        data = await self._request(
            "GET",
            "/api/v1/time_off/whos_out",
            params={"start": format_date(start), "end": format_date(end)},
        )
        holidays = []
        for item in data or []:
            if item.get("type") != "holiday":
                continue
            holidays.append(Holiday(
                name=item.get("name") or "Holiday",
                start=_parse_date(item.get("start")) or start,
                end=_parse_date(item.get("end")) or start,
            ))
        return holidays

    async def fetch_month_feeds(self, year: int, month: int) -> MonthFeeds:
        """Load entries, time off and holidays for a month concurrently."""
        start, end = month_bounds(year, month)
        entries, time_off, holidays = await asyncio.gather(
            self.get_timesheet_entries(start, end),
            self.get_time_off_requests(start, end),
            self.get_holidays(start, end),
        )
        logger.info(
            "Loaded %d-%02d: %d entries, %d time off, %d holidays",
            year, month, len(entries), len(time_off), len(holidays),
        )
        return MonthFeeds(entries=entries, time_off=time_off, holidays=holidays)

    async def store_clock_entry(self, day: date, start: str, end: str) -> None:
        """Record one contiguous clock span for a date."""
        employee_id = self._require_employee()
        await self._request(
            "POST",
            "/api/v1/time_tracking/clock_entries/store",
            json={"entries": [{
                "employeeId": int(employee_id),
                "date": format_date(day),
                "start": start,
                "end": end,
            }]},
        )
        logger.info("Stored clock entry %s %s-%s", day, start, end)
