"""
Shared test doubles: an in-memory NetSuite that understands the handful of
SuiteQL queries and record API calls the tracker makes.
"""

from __future__ import annotations

import itertools
import json
import re
from typing import Any

import pytest
import requests

import debug_log
from tracker_lifecycle import TrackerController
from tracker_store import (
    FIELD_LINKED_RECORD,
    FIELD_MEMO,
    FIELD_RECORD_TYPE,
    FIELD_STATUS,
    TrackerStore,
)

TRACKER_RECORD = "customrecord_nera_transaction_tracker"
STATUS_LIST = "customlist_nera_tracker_status"

STATUSES = {
    "1": ("DO: Delivered", True),
    "2": ("DO: Partially Returned", True),
    "3": ("DO: Returned", True),
    "4": ("DO: Cancelled (old)", False),
    "5": ("DO: Created, Pending Delivery", True),
}


def http_error(status: int, code: str = "", detail: str = "") -> requests.HTTPError:
    resp = requests.Response()
    resp.status_code = status
    body = {"title": "Error", "status": status, "o:errorDetails": [{"detail": detail, "o:errorCode": code}]}
    resp._content = json.dumps(body).encode("utf-8")
    resp.headers["Content-Type"] = "application/json"
    return requests.HTTPError(f"{status} Error", response=resp)


class FakeNetSuite:
    def __init__(self) -> None:
        self.trackers: dict[str, dict[str, Any]] = {}
        self.roles: dict[str, tuple[str, bool]] = {
            "3": ("Administrator", True),
            "1001": ("Nera Finance Manager", True),
            "1002": ("Finance Clerk", True),
            "1003": ("Nera Logistics", True),
            "1004": ("Finance (retired)", False),
            "1005": ("Sales Rep", True),
        }
        self.calls: list[tuple[str, Any]] = []
        self.current_user = "Jane Doe"
        self._ids = itertools.count(101)
        self._clock = itertools.count(1)

        self.deny_read = False
        self.deny_create = False
        self.deny_update = False
        self.fail_create = False
        self.fail_update = False
        self.fail_roles = False

    # ---------------------------------------------------------
    # Seeding helpers
    # ---------------------------------------------------------
    def add_tracker(self, record_type: str, record_id, status: str, memo: str = "") -> str:
        tracker_id = str(next(self._ids))
        self.trackers[tracker_id] = {
            "name": f"TT-seed-{tracker_id}",
            FIELD_RECORD_TYPE: record_type,
            FIELD_LINKED_RECORD: str(record_id),
            FIELD_STATUS: str(status),
            FIELD_MEMO: memo,
            "modified": next(self._clock),
            "modified_by": self.current_user,
        }
        return tracker_id

    def trackers_for(self, record_type: str, record_id) -> list[dict[str, Any]]:
        return [
            dict(data, id=tid)
            for tid, data in self.trackers.items()
            if data[FIELD_RECORD_TYPE] == record_type and data[FIELD_LINKED_RECORD] == str(record_id)
        ]

    @property
    def writes(self) -> list[tuple[str, Any]]:
        return [c for c in self.calls if c[0] in ("create_record", "update_record")]

    # ---------------------------------------------------------
    # NetSuiteClient surface
    # ---------------------------------------------------------
    def suiteql(self, query: str, limit: int = 100, offset: int = 0) -> dict:
        self.calls.append(("suiteql", query))

        if re.search(r"FROM role\b", query):
            if self.fail_roles:
                raise requests.ConnectionError("connection reset")
            pattern = re.search(r"LIKE '%(.*?)%'", query).group(1).replace("''", "'")
            items = [
                {"id": rid}
                for rid, (name, active) in self.roles.items()
                if active and pattern.lower() in name.lower()
            ]
            return {"items": items, "count": len(items)}

        if STATUS_LIST in query:
            items = [
                {"id": code, "name": name}
                for code, (name, active) in STATUSES.items()
                if active
            ]
            items.sort(key=lambda r: r["name"])
            return {"items": items, "count": len(items)}

        if self.deny_read:
            raise http_error(
                400,
                "INVALID_PARAMETER",
                f"Invalid search query. Search error occurred: Record '{TRACKER_RECORD}' was not found.",
            )

        record_type = re.search(rf"{FIELD_RECORD_TYPE} = '((?:[^']|'')*)'", query).group(1).replace("''", "'")
        record_id = re.search(rf"{FIELD_LINKED_RECORD} = (\d+)", query).group(1)
        rows = self.trackers_for(record_type, record_id)

        if "COUNT(*)" in query:
            return {"items": [{"total": len(rows)}], "count": 1}

        rows.sort(key=lambda r: (r["modified"], int(r["id"])), reverse=True)
        items = [
            {
                "id": r["id"],
                "name": r["name"],
                "record_type": r[FIELD_RECORD_TYPE],
                "linked_record_id": r[FIELD_LINKED_RECORD],
                "status_id": r[FIELD_STATUS],
                "status_name": STATUSES.get(r[FIELD_STATUS], ("", True))[0],
                "memo": r[FIELD_MEMO],
                "updated_on": f"2026-10-19 10:00:{r['modified']:02d}",
                "updated_by": r["modified_by"],
            }
            for r in rows
        ]
        return {"items": items, "count": len(items)}

    def get_record(self, record_type: str, record_id) -> dict:
        self.calls.append(("get_record", str(record_id)))
        if self.deny_update:
            raise http_error(403, "INSUFFICIENT_PERMISSION", "Permission Violation")
        data = self.trackers.get(str(record_id))
        if data is None:
            raise http_error(404, "NONEXISTENT_ID", f"The record instance does not exist. Provided id: {record_id}.")
        status = data[FIELD_STATUS]
        return {
            "id": str(record_id),
            "name": data["name"],
            FIELD_RECORD_TYPE: data[FIELD_RECORD_TYPE],
            FIELD_LINKED_RECORD: {"id": data[FIELD_LINKED_RECORD], "refName": f"#{data[FIELD_LINKED_RECORD]}"},
            FIELD_STATUS: {"id": status, "refName": STATUSES.get(status, ("", True))[0]},
            FIELD_MEMO: data[FIELD_MEMO],
        }

    def create_record(self, record_type: str, values: dict) -> str:
        self.calls.append(("create_record", values))
        if self.deny_create:
            raise http_error(403, "INSUFFICIENT_PERMISSION", "You do not have permissions to create this record.")
        if self.fail_create:
            raise http_error(400, "USER_ERROR", "Please enter value(s) for: Linked Transaction")
        tracker_id = str(next(self._ids))
        self.trackers[tracker_id] = {
            "name": values["name"],
            FIELD_RECORD_TYPE: values[FIELD_RECORD_TYPE],
            FIELD_LINKED_RECORD: values[FIELD_LINKED_RECORD]["id"],
            FIELD_STATUS: values[FIELD_STATUS]["id"],
            FIELD_MEMO: values[FIELD_MEMO],
            "modified": next(self._clock),
            "modified_by": self.current_user,
        }
        return tracker_id

    def update_record(self, record_type: str, record_id, values: dict) -> None:
        self.calls.append(("update_record", (str(record_id), values)))
        if self.fail_update:
            raise http_error(500, "UNEXPECTED_ERROR", "An unexpected error occurred.")
        data = self.trackers[str(record_id)]
        data[FIELD_STATUS] = values[FIELD_STATUS]["id"]
        data[FIELD_MEMO] = values[FIELD_MEMO]
        data["modified"] = next(self._clock)
        data["modified_by"] = self.current_user


@pytest.fixture(autouse=True)
def _debug_log_in_tmp(tmp_path, monkeypatch):
    monkeypatch.setattr(debug_log, "LOG_FILE", tmp_path / "tracker_debug.log")


@pytest.fixture
def netsuite() -> FakeNetSuite:
    return FakeNetSuite()


@pytest.fixture
def store(netsuite) -> TrackerStore:
    return TrackerStore(netsuite, TRACKER_RECORD, STATUS_LIST)


@pytest.fixture
def controller(store) -> TrackerController:
    return TrackerController(store, default_status="5", partial_return_status="2")
