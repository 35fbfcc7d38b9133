import random
from datetime import datetime
from typing import Any, Dict, List, Optional

import requests

from debug_log import _log
from tracker_models import (
    AccessDenied,
    PersistenceFailure,
    StatusOption,
    Tracker,
    TrackerError,
    TrackerNotFound,
    TrackerResult,
    TrackerValidationError,
)

# Tracker custom record fields (deployed in every account under these ids)
FIELD_RECORD_TYPE = "custrecord_tt_record_types"
FIELD_LINKED_RECORD = "custrecord_tt_linked_transaction"
FIELD_STATUS = "custrecord_tt_tracker_status"
FIELD_MEMO = "custrecord_tt_memo"

# NetSuite o:errorCode values that mean "this role can't do that"
PERMISSION_CODES = {"INSUFFICIENT_PERMISSION", "USER_ERROR_PERMISSION", "ACCESS_DENIED"}
NOT_FOUND_CODES = {"NONEXISTENT_ID", "RCRD_DSNT_EXIST"}


def sql_literal(value: str) -> str:
    """SuiteQL string literal (single quotes doubled)."""
    return "'" + str(value).replace("'", "''") + "'"


def _numeric_id(value: Any) -> int:
    try:
        return int(str(value).strip())
    except ValueError:
        raise TrackerValidationError(f"Record id must be numeric, got {value!r}")


def _ref_id(value: Any) -> str:
    """Record API returns list/record references as {"id": ..., "refName": ...}."""
    if isinstance(value, dict):
        return str(value.get("id") or "")
    return "" if value is None else str(value)


def _ref_name(value: Any) -> str:
    if isinstance(value, dict):
        return str(value.get("refName") or "")
    return ""


def _tracker_label(now: Optional[datetime] = None) -> str:
    """
    Human-readable unique name for a new tracker: TT + yymmddHHMMSS + 1..1000.
    Display/audit only, never used to look a tracker up.
    """
    now = now or datetime.now()
    return f"TT{now.strftime('%y%m%d%H%M%S')}{random.randint(1, 1000)}"


def _error_details(resp: requests.Response) -> tuple:
    try:
        body = resp.json()
    except ValueError:
        return set(), resp.text or ""

    details = body.get("o:errorDetails") or []
    codes = {str(d.get("o:errorCode") or "") for d in details}
    text = " ".join(str(d.get("detail") or "") for d in details) or str(body.get("title") or "")
    return codes, text


class TrackerStore:
    """
    Reads and writes tracker custom records.

    Lookups go through SuiteQL, writes through the record API. Every
    NetSuite failure is translated into one of the TrackerError kinds.
    """

    def __init__(self, client, record_type: str, status_list: str) -> None:
        self.client = client
        self.record_type = record_type
        self.status_list = status_list

    # ---------------------------------------------------------
    # Error translation
    # ---------------------------------------------------------
    def _translate(self, exc: requests.RequestException, action: str) -> TrackerError:
        resp = getattr(exc, "response", None)
        if resp is None:
            return PersistenceFailure(f"{action} failed", detail=str(exc))

        codes, detail = _error_details(resp)
        lowered = detail.lower()

        # SuiteQL reports a record the role can't see as "Record '<type>' was not found."
        hidden_record = f"record '{self.record_type.lower()}' was not found" in lowered

        if resp.status_code in (401, 403) or codes & PERMISSION_CODES or "permission" in lowered or hidden_record:
            return AccessDenied(f"{action}: permission denied", detail=detail)
        if resp.status_code == 404 or codes & NOT_FOUND_CODES:
            return TrackerNotFound(f"{action}: tracker not found", detail=detail)
        return PersistenceFailure(f"{action} failed (HTTP {resp.status_code})", detail=detail)

    # ---------------------------------------------------------
    # Reads
    # ---------------------------------------------------------
    def _where(self, host_record_type: str, host_record_id: Any) -> str:
        return (
            f"t.{FIELD_RECORD_TYPE} = {sql_literal(host_record_type)}\n"
            f"      AND t.{FIELD_LINKED_RECORD} = {_numeric_id(host_record_id)}"
        )

    def find_trackers(self, host_record_type: str, host_record_id: Any) -> List[Tracker]:
        """
        All trackers linked to one host record, newest first (latest wins).
        An empty type or id is not an error, there is simply nothing to find.
        """
        if not host_record_id or not host_record_type:
            _log("[INFO] host record type/id is empty. Skipping tracker query...")
            return []

        query = f"""
    SELECT
        t.id                                         AS id,
        t.name                                       AS name,
        t.{FIELD_RECORD_TYPE}                        AS record_type,
        t.{FIELD_LINKED_RECORD}                      AS linked_record_id,
        t.{FIELD_STATUS}                             AS status_id,
        BUILTIN.DF(t.{FIELD_STATUS})                 AS status_name,
        t.{FIELD_MEMO}                               AS memo,
        TO_CHAR(t.lastmodified, 'YYYY-MM-DD HH24:MI:SS') AS updated_on,
        BUILTIN.DF(t.lastmodifiedby)                 AS updated_by
    FROM {self.record_type} t
    WHERE {self._where(host_record_type, host_record_id)}
    ORDER BY t.lastmodified DESC, t.id DESC
    """

        try:
            resp = self.client.suiteql(query=query, limit=1000)
        except requests.RequestException as exc:
            err = self._translate(exc, "find trackers")
            _log(f"[ERROR] find_trackers {host_record_type}/{host_record_id}: {err} {err.detail}")
            raise err

        trackers = []
        for r in resp.get("items", []):
            trackers.append(
                Tracker(
                    id=str(r.get("id")),
                    host_record_type=r.get("record_type") or host_record_type,
                    host_record_id=str(r.get("linked_record_id") or host_record_id),
                    status_code=str(r.get("status_id") or ""),
                    memo=r.get("memo") or "",
                    status_name=r.get("status_name") or "",
                    name=r.get("name") or "",
                    last_modified_at=r.get("updated_on"),
                    last_modified_by=r.get("updated_by"),
                )
            )
        return trackers

    def lookup(self, host_record_type: str, host_record_id: Any) -> TrackerResult:
        """find_trackers, but with the failure returned as a value instead of raised."""
        try:
            return TrackerResult(trackers=self.find_trackers(host_record_type, host_record_id))
        except TrackerError as err:
            return TrackerResult(error=err)

    def count_trackers(self, host_record_type: str, host_record_id: Any) -> int:
        if not host_record_id or not host_record_type:
            return 0

        query = f"""
    SELECT COUNT(*) AS total
    FROM {self.record_type} t
    WHERE {self._where(host_record_type, host_record_id)}
    """
        try:
            resp = self.client.suiteql(query=query, limit=1)
        except requests.RequestException as exc:
            raise self._translate(exc, "count trackers")

        items = resp.get("items", [])
        return int(items[0].get("total") or 0) if items else 0

    def get_tracker(self, tracker_id: Any) -> Tracker:
        try:
            data = self.client.get_record(self.record_type, tracker_id)
        except requests.RequestException as exc:
            raise self._translate(exc, f"load tracker {tracker_id}")

        return Tracker(
            id=str(data.get("id") or tracker_id),
            host_record_type=data.get(FIELD_RECORD_TYPE) or "",
            host_record_id=_ref_id(data.get(FIELD_LINKED_RECORD)),
            status_code=_ref_id(data.get(FIELD_STATUS)),
            memo=data.get(FIELD_MEMO) or "",
            status_name=_ref_name(data.get(FIELD_STATUS)),
            name=data.get("name") or "",
            last_modified_at=data.get("lastModified"),
        )

    def status_options(self) -> List[StatusOption]:
        """Active entries of the tracker status custom list, sorted by name."""
        query = f"""
    SELECT
        id,
        name
    FROM {self.status_list}
    WHERE isinactive = 'F'
    ORDER BY name ASC
    """
        try:
            resp = self.client.suiteql(query=query, limit=1000)
        except requests.RequestException as exc:
            raise self._translate(exc, "load status list")

        return [StatusOption(code=str(r.get("id")), label=r.get("name") or "") for r in resp.get("items", [])]

    # ---------------------------------------------------------
    # Writes
    # ---------------------------------------------------------
    def create_tracker(self, host_record_type: str, host_record_id: Any, status_code: Any, memo: str = "") -> str:
        if not host_record_type or not host_record_id:
            raise TrackerValidationError("A tracker must be linked to a record type and record id")
        if status_code in (None, ""):
            raise TrackerValidationError("A tracker must have a status")

        values: Dict[str, Any] = {
            "name": _tracker_label(),
            FIELD_RECORD_TYPE: host_record_type,
            FIELD_LINKED_RECORD: {"id": str(_numeric_id(host_record_id))},
            FIELD_STATUS: {"id": str(status_code)},
            FIELD_MEMO: memo or "",
        }

        try:
            tracker_id = self.client.create_record(self.record_type, values)
        except requests.RequestException as exc:
            err = self._translate(exc, "create tracker")
            _log(f"[ERROR] create_tracker {host_record_type}/{host_record_id}: {err} {err.detail}")
            raise err

        _log(f"[INFO] Transaction Tracker Created ID: {tracker_id} for {host_record_type}/{host_record_id}")
        return tracker_id

    def update_tracker(self, tracker_id: Any, status_code: Any, memo: str = "") -> None:
        # One read (resolves the id, raises TrackerNotFound) then one write
        current = self.get_tracker(tracker_id)

        try:
            self.client.update_record(
                self.record_type,
                current.id,
                {
                    FIELD_STATUS: {"id": str(status_code)},
                    FIELD_MEMO: memo or "",
                },
            )
        except requests.RequestException as exc:
            err = self._translate(exc, f"update tracker {tracker_id}")
            _log(f"[ERROR] update_tracker {tracker_id}: {err} {err.detail}")
            raise err

        _log(f"[INFO] Transaction Tracker Updated ID: {current.id} status={status_code}")
