"""
Plain data types shared by the tracker store, controller and surfaces.

Nothing in here talks to NetSuite.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


# ---------------------------------------------------------
# Entities
# ---------------------------------------------------------
@dataclass
class Tracker:
    id: str
    host_record_type: str
    host_record_id: str
    status_code: str
    memo: str = ""
    status_name: str = ""
    name: str = ""
    last_modified_at: Optional[str] = None
    last_modified_by: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class StatusOption:
    code: str
    label: str


@dataclass(frozen=True)
class HostRecord:
    """The transaction the tracker hangs off. `mode` is the host event type (create/edit/view)."""

    record_type: str
    record_id: Optional[str] = None
    mode: str = "view"


# ---------------------------------------------------------
# Errors
# ---------------------------------------------------------
class TrackerError(Exception):
    kind = "tracker_error"

    def __init__(self, message: str, detail: str = "") -> None:
        super().__init__(message)
        self.detail = detail


class TrackerNotFound(TrackerError):
    kind = "not_found"


class AccessDenied(TrackerError):
    kind = "access_denied"


class TrackerValidationError(TrackerError):
    kind = "validation_error"


class PersistenceFailure(TrackerError):
    kind = "persistence_failure"


@dataclass
class TrackerResult:
    """Outcome of a tracker read: either the trackers (newest first) or the error."""

    trackers: List[Tracker] = field(default_factory=list)
    error: Optional[TrackerError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def latest(self) -> Optional[Tracker]:
        return self.trackers[0] if self.trackers else None


# ---------------------------------------------------------
# User-facing notices
# ---------------------------------------------------------
INFORMATION = "information"
CONFIRMATION = "confirmation"
WARNING = "warning"
ERROR = "error"


@dataclass(frozen=True)
class Notice:
    title: str
    message: str
    severity: str = INFORMATION
    duration_ms: Optional[int] = None   # None -> stays until dismissed
    blocking: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
