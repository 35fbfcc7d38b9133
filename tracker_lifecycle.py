"""
Tracker Lifecycle Controller

Decides, for each transaction event, whether a tracker is created, updated
or left alone:

    NoTracker --(transaction created)--> Tracked     default status, empty memo
    Tracked   --(user update)---------> Tracked     validate, then one write

Tracker problems never reach the transaction's own load/save: every store
failure is turned into a notice here.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from config import Settings
from debug_log import _log
from netsuite_client import NetSuiteClient
from role_access import RoleAllowList
from tracker_models import (
    CONFIRMATION,
    INFORMATION,
    WARNING,
    AccessDenied,
    HostRecord,
    Notice,
    PersistenceFailure,
    StatusOption,
    TrackerError,
    TrackerNotFound,
    TrackerValidationError,
)
from tracker_store import TrackerStore
from tracker_surface import (
    CLIENT_SCRIPT_PATH,
    DISABLED,
    FIELD_GROUP_ID,
    FIELD_GROUP_LABEL,
    HIDDEN,
    INLINE,
    MEMO_FIELD,
    STATUS_ID_FIELD,
    STATUS_NAME_FIELD,
    TRACKER_ID_FIELD,
    UPDATE_BUTTON_ID,
    UPDATE_BUTTON_LABEL,
    UPDATED_BY_FIELD,
    UPDATED_ON_FIELD,
)

# ---------------------------------------------------------
# Notices shown to the user
# ---------------------------------------------------------
VIEW_DENIED = Notice(
    title="Transaction Tracker",
    message="You don't have permission to View Transaction Tracker",
    severity=INFORMATION,
    duration_ms=10000,
)
CREATE_DENIED = Notice(
    title="Transaction Tracker",
    message="You don't have permission to Create Transaction Tracker",
    severity=INFORMATION,
    duration_ms=10000,
)
UPDATE_DENIED = Notice(
    title="Transaction Tracker Update Failure",
    message="You don't have permission to update Transaction Tracker.",
    severity=INFORMATION,
    duration_ms=5000,
)
UPDATE_FAILED = Notice(
    title="Transaction Tracker Update Failure",
    message="The Transaction Tracker could not be updated. Please try again later.",
    severity=INFORMATION,
    duration_ms=5000,
)
SAVE_FAILED = Notice(
    title="Transaction Tracker",
    message="The Transaction Tracker could not be saved. Please try again later.",
    severity=INFORMATION,
    duration_ms=10000,
)
UPDATED = Notice(
    title="Transaction Tracker Updated",
    message="You had updated this transaction tracker.",
    severity=CONFIRMATION,
    duration_ms=5000,
)

MEMO_REQUIRED_TITLE = "Action Required: Memo Missing"
MEMO_REQUIRED_MESSAGE = (
    "To proceed, please provide a memo when setting the status to 'DO: Partially Returned'. "
    "This memo helps to track partial returns and maintain accurate records."
)
STATUS_REQUIRED_TITLE = "Tracker Status Required"
STATUS_REQUIRED_MESSAGE = "Please select a tracker status."


def _js_string(value) -> str:
    """Single-quoted JavaScript string literal for the button handler call."""
    return "'" + str(value).replace("\\", "\\\\").replace("'", "\\'") + "'"


@dataclass
class TrackerState:
    tracker_id: Optional[str] = None
    status_code: str = ""
    status_name: str = ""
    memo: str = ""
    updated_on: Optional[str] = None
    updated_by: Optional[str] = None

    @property
    def exists(self) -> bool:
        return self.tracker_id is not None


@dataclass
class Outcome:
    """
    What a controller call did.

    action: displayed | hidden | created | updated | unchanged | skipped | rejected | failed
    """

    ok: bool
    action: str
    tracker_id: Optional[str] = None
    state: Optional[TrackerState] = None
    notices: List[Notice] = field(default_factory=list)
    error_kind: Optional[str] = None

    @property
    def blocking(self) -> bool:
        return any(n.blocking for n in self.notices)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["blocking"] = self.blocking
        if self.state is not None:
            data["state"]["exists"] = self.state.exists
        return data


class TrackerController:
    def __init__(
        self,
        store: TrackerStore,
        default_status: str = "5",
        partial_return_status: str = "2",
        roles: Optional[RoleAllowList] = None,
    ) -> None:
        self.store = store
        self.default_status = str(default_status)
        self.partial_return_status = str(partial_return_status)
        self.roles = roles

    # ---------------------------------------------------------
    # Failure -> notice
    # ---------------------------------------------------------
    def _failed(self, err: TrackerError, denied: Notice, context: str, failed: Notice = SAVE_FAILED) -> Outcome:
        # Logged so we can see which roles are missing the tracker permission
        _log(f"[ERROR] {context}: {err.kind} {err} {err.detail}")

        if isinstance(err, AccessDenied):
            notices = [denied]
        elif isinstance(err, PersistenceFailure):
            notices = [failed]
        elif isinstance(err, TrackerValidationError):
            notices = [Notice(title="Transaction Tracker", message=str(err), severity=WARNING, blocking=True)]
        else:
            notices = []
        return Outcome(ok=False, action="failed", notices=notices, error_kind=err.kind)

    # ---------------------------------------------------------
    # Read path
    # ---------------------------------------------------------
    def read_state(self, host_record_type: str, host_record_id) -> Outcome:
        """Newest tracker of the transaction, or an unset state when there is none."""
        result = self.store.lookup(host_record_type, host_record_id)
        if not result.ok:
            return self._failed(result.error, VIEW_DENIED, f"read_state {host_record_type}/{host_record_id}")

        latest = result.latest
        if latest is None:
            return Outcome(ok=True, action="unchanged", state=TrackerState())

        return Outcome(
            ok=True,
            action="unchanged",
            tracker_id=latest.id,
            state=TrackerState(
                tracker_id=latest.id,
                status_code=latest.status_code,
                status_name=latest.status_name,
                memo=latest.memo,
                updated_on=latest.last_modified_at,
                updated_by=latest.last_modified_by,
            ),
        )

    def status_options(self) -> List[StatusOption]:
        try:
            return self.store.status_options()
        except TrackerError as err:
            _log(f"[ERROR] status_options: {err.kind} {err} {err.detail}")
            return []

    # ---------------------------------------------------------
    # Host event: before the transaction form is displayed
    # ---------------------------------------------------------
    def on_before_display(self, host_record: HostRecord, form, role_id=None) -> Outcome:
        """
        Adds the "Update Tracker Status" button and the tracker fields to the form.

        Nothing is added for a transaction being created, for roles outside
        the allow-list, or when the trackers can't be read.
        """
        if host_record.mode == "create" or not host_record.record_id:
            return Outcome(ok=True, action="hidden")

        if self.roles is not None and not self.roles.is_allowed(role_id):
            _log(f"[INFO] role {role_id} is not allowed to see the tracker. Skipping...")
            return Outcome(ok=True, action="hidden")

        state_outcome = self.read_state(host_record.record_type, host_record.record_id)
        if not state_outcome.ok:
            state_outcome.action = "hidden"
            return state_outcome

        form.add_button(
            id=UPDATE_BUTTON_ID,
            label=UPDATE_BUTTON_LABEL,
            function_name=(
                f"updateTrackerStatus({_js_string(host_record.record_type)}, {_js_string(host_record.record_id)})"
            ),
        )

        state = state_outcome.state
        if state.exists and state.status_code:
            self._add_tracker_fields(form, state)

        form.client_script_path = CLIENT_SCRIPT_PATH

        state_outcome.action = "displayed"
        return state_outcome

    def _add_tracker_fields(self, form, state: TrackerState) -> None:
        form.add_field_group(FIELD_GROUP_ID, FIELD_GROUP_LABEL)

        fields = [
            (STATUS_NAME_FIELD, "Status", state.status_name, INLINE),
            (MEMO_FIELD, "Memo", state.memo, INLINE),
            (UPDATED_BY_FIELD, "Updated By", state.updated_by or "", DISABLED),
            (UPDATED_ON_FIELD, "Updated On", state.updated_on or "", DISABLED),
            (STATUS_ID_FIELD, "Status Internal ID", state.status_code, HIDDEN),
            (TRACKER_ID_FIELD, "Tracker Internal ID", state.tracker_id, HIDDEN),
        ]
        for field_id, label, value, display in fields:
            form.add_field(id=field_id, label=label, value=value, display=display, container=FIELD_GROUP_ID)

    # ---------------------------------------------------------
    # Host event: after the transaction was written
    # ---------------------------------------------------------
    def on_after_write(self, host_record: HostRecord, is_newly_created: bool) -> Outcome:
        """
        Every new transaction gets a tracker with the default status.
        Safe to fire more than once: an existing tracker is left alone.
        """
        if not is_newly_created:
            return Outcome(ok=True, action="skipped")

        context = f"on_after_write {host_record.record_type}/{host_record.record_id}"

        try:
            existing = self.store.count_trackers(host_record.record_type, host_record.record_id)
        except TrackerError as err:
            return self._failed(err, VIEW_DENIED, context)

        if existing:
            _log(f"[INFO] {host_record.record_type} {host_record.record_id} is already tracked ({existing}).")
            return Outcome(ok=True, action="unchanged")

        try:
            tracker_id = self.store.create_tracker(
                host_record.record_type,
                host_record.record_id,
                self.default_status,
                "",
            )
        except TrackerError as err:
            return self._failed(err, CREATE_DENIED, context)

        return Outcome(ok=True, action="created", tracker_id=tracker_id)

    # ---------------------------------------------------------
    # User action: submit from the popup
    # ---------------------------------------------------------
    def validate_update(self, status_code: str, memo: str) -> None:
        """The one cross-field rule: "partially returned" needs a memo."""
        if not status_code:
            raise TrackerValidationError(STATUS_REQUIRED_MESSAGE, detail=STATUS_REQUIRED_TITLE)
        if status_code == self.partial_return_status and not memo:
            raise TrackerValidationError(MEMO_REQUIRED_MESSAGE, detail=MEMO_REQUIRED_TITLE)

    def submit_update(self, host_record_type: str, host_record_id, status_code, memo: str = "") -> Outcome:
        status_code = "" if status_code is None else str(status_code).strip()
        memo = memo or ""

        try:
            self.validate_update(status_code, memo)
        except TrackerValidationError as err:
            notice = Notice(title=err.detail, message=str(err), severity=WARNING, blocking=True)
            return Outcome(ok=False, action="rejected", notices=[notice], error_kind=err.kind)

        context = f"submit_update {host_record_type}/{host_record_id}"

        result = self.store.lookup(host_record_type, host_record_id)
        if not result.ok:
            return self._failed(result.error, UPDATE_DENIED, context, UPDATE_FAILED)

        try:
            if result.latest is None:
                tracker_id = self.store.create_tracker(host_record_type, host_record_id, status_code, memo)
                action = "created"
            else:
                tracker_id = result.latest.id
                self.store.update_tracker(tracker_id, status_code, memo)
                action = "updated"
        except TrackerNotFound as err:
            _log(f"[WARN] {context}: tracker vanished, nothing to update ({err.detail})")
            return Outcome(ok=False, action="skipped", error_kind=err.kind)
        except TrackerError as err:
            return self._failed(err, UPDATE_DENIED, context, UPDATE_FAILED)

        return Outcome(ok=True, action=action, tracker_id=tracker_id, notices=[UPDATED])


def build_controller(settings: Optional[Settings] = None, client=None) -> TrackerController:
    """Wire client -> store -> controller from .env settings."""
    settings = settings or Settings.from_env()
    client = client or NetSuiteClient(settings)

    store = TrackerStore(client, settings.tracker_record_type, settings.status_list)
    roles = None
    if settings.allowed_role_patterns:
        roles = RoleAllowList(client, settings.allowed_role_patterns, settings.admin_role)

    return TrackerController(
        store,
        default_status=settings.default_status,
        partial_return_status=settings.partial_return_status,
        roles=roles,
    )
