"""
Tracker Interaction Surface

How tracker data is put in front of a user and how their answer comes back.
Rendering itself (NetSuite form, popup window, chat client) belongs to the
caller; this module only fixes the contract:

- TrackerForm   : what the before-display hook adds to the transaction form
- DialogConfig  : everything the "Update Tracker Status" popup needs
- Decision      : Cancel or Submit(status, memo)
- request_status_update(): popup -> controller -> refresh the host view
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Dict, List, Optional, Union

from tracker_models import StatusOption

# ---------------------------------------------------------
# Form element ids (shared with the client script on the NetSuite side)
# ---------------------------------------------------------
UPDATE_BUTTON_ID = "custpage_do_action"
UPDATE_BUTTON_LABEL = "Update Tracker Status"
CLIENT_SCRIPT_PATH = "./transaction_tracker_cs.js"

FIELD_GROUP_ID = "custpage_tracker_fieldgroup"
FIELD_GROUP_LABEL = "Transaction Tracker"

STATUS_NAME_FIELD = "custpage_tracker_status"
MEMO_FIELD = "custpage_tracker_memo"
UPDATED_BY_FIELD = "custpage_tracker_updatedby"
UPDATED_ON_FIELD = "custpage_tracker_updatedon"
STATUS_ID_FIELD = "custpage_tracker_status_id"
TRACKER_ID_FIELD = "custpage_tracker_internal_id"

# Reload flag: the page shows the "updated" notice once when this is present
UPDATED_URL_PARAM = "tt_updated"

# Field display modes
NORMAL = "normal"
INLINE = "inline"
HIDDEN = "hidden"
DISABLED = "disabled"


@dataclass
class FormButton:
    id: str
    label: str
    function_name: str


@dataclass
class FormField:
    id: str
    label: str
    value: Any = ""
    display: str = INLINE
    container: Optional[str] = None


@dataclass
class TrackerForm:
    """Form-rendering capability as plain data; the host turns it into real widgets."""

    buttons: List[FormButton] = field(default_factory=list)
    fields: List[FormField] = field(default_factory=list)
    field_groups: Dict[str, str] = field(default_factory=dict)
    client_script_path: Optional[str] = None

    def add_button(self, id: str, label: str, function_name: str) -> FormButton:
        button = FormButton(id=id, label=label, function_name=function_name)
        self.buttons.append(button)
        return button

    def add_field_group(self, id: str, label: str) -> None:
        self.field_groups[id] = label

    def add_field(self, id: str, label: str, value: Any = "", display: str = INLINE, container: Optional[str] = None) -> FormField:
        if display not in (NORMAL, INLINE, HIDDEN, DISABLED):
            raise ValueError(f"Unknown display mode: {display}")
        form_field = FormField(id=id, label=label, value=value, display=display, container=container)
        self.fields.append(form_field)
        return form_field

    def get_field(self, id: str) -> Optional[FormField]:
        for f in self.fields:
            if f.id == id:
                return f
        return None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# ---------------------------------------------------------
# Popup dialog
# ---------------------------------------------------------
@dataclass(frozen=True)
class Cancel:
    pass


@dataclass(frozen=True)
class Submit:
    status_code: str
    memo: str = ""


Decision = Union[Cancel, Submit]


@dataclass
class DialogConfig:
    current_status: str
    current_memo: str
    status_options: List[StatusOption]
    on_submit: Callable[[str, str], Any]
    on_cancel: Callable[[], None] = lambda: None
    tracker_id: Optional[str] = None
    updated_on: Optional[str] = None
    updated_by: Optional[str] = None

    def status_label(self, code: str) -> str:
        for option in self.status_options:
            if option.code == str(code):
                return option.label
        return ""


class TrackerDialog:
    """One parameterized popup; every caller passes its own options and callbacks."""

    def __init__(self, config: DialogConfig) -> None:
        self.config = config
        self.closed = False

    def cancel(self) -> None:
        self.closed = True
        self.config.on_cancel()

    def submit(self, status_code: Any, memo: str = ""):
        outcome = self.config.on_submit("" if status_code is None else str(status_code), memo or "")
        # Blocking problems (memo missing) keep the popup open
        if getattr(outcome, "ok", False):
            self.closed = True
        return outcome


# ---------------------------------------------------------
# User action: "Update Tracker Status"
# ---------------------------------------------------------
def request_status_update(controller, host_record_type: str, host_record_id, host_view, prompt: Callable[[DialogConfig], Decision]):
    """
    Open the tracker popup for one transaction and apply the user's answer.

    `prompt` shows the dialog and returns a Decision. It is asked again after
    a blocking rejection so the user stays on the form.
    `host_view` is the transaction page (is_editing, set_field, reload,
    notify): if it is still being edited the tracker fields are set in
    place, otherwise it is reloaded.

    Returns the last controller outcome, or None if the user cancelled.
    """
    state_outcome = controller.read_state(host_record_type, host_record_id)
    if not state_outcome.ok:
        host_view.notify(state_outcome.notices)
        return state_outcome

    state = state_outcome.state
    options = controller.status_options()

    config = DialogConfig(
        current_status=state.status_code or controller.default_status,
        current_memo=state.memo,
        status_options=options,
        on_submit=lambda status, memo: controller.submit_update(host_record_type, host_record_id, status, memo),
        tracker_id=state.tracker_id,
        updated_on=state.updated_on,
        updated_by=state.updated_by,
    )
    dialog = TrackerDialog(config)

    while True:
        decision = prompt(config)
        if isinstance(decision, Cancel) or decision is None:
            dialog.cancel()
            return None

        outcome = dialog.submit(decision.status_code, decision.memo)
        if outcome.ok:
            break

        host_view.notify(outcome.notices)
        if not outcome.blocking:
            return outcome

    if host_view.is_editing:
        host_view.set_field(STATUS_ID_FIELD, decision.status_code)
        host_view.set_field(STATUS_NAME_FIELD, config.status_label(decision.status_code))
        host_view.set_field(MEMO_FIELD, decision.memo)
        host_view.set_field(TRACKER_ID_FIELD, outcome.tracker_id)
        if getattr(host_view, "user_name", None):
            host_view.set_field(UPDATED_BY_FIELD, host_view.user_name)
    else:
        host_view.reload({UPDATED_URL_PARAM: "T"})

    return outcome
