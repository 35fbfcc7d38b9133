import os
from dataclasses import dataclass, field

from dotenv import load_dotenv


def require_env(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise RuntimeError(f"Missing required environment variable: {name}")
    return value


def _split_patterns(raw: str | None) -> tuple[str, ...]:
    if not raw:
        return ()
    return tuple(part.strip() for part in raw.split(",") if part.strip())


@dataclass(frozen=True)
class Settings:
    """
    Everything the tracker needs to know about the NetSuite account.

    Credentials come from .env (same names as the OAuth setup), the
    tracker record/list ids default to the ones deployed in production.
    """

    account_id: str
    client_id: str
    client_secret: str
    refresh_token: str

    tracker_record_type: str = "customrecord_nera_transaction_tracker"
    status_list: str = "customlist_nera_tracker_status"
    default_status: str = "5"           # DO: Created, Pending Delivery
    partial_return_status: str = "2"    # DO: Partially Returned (memo required)

    # Empty -> every role sees the tracker controls
    allowed_role_patterns: tuple[str, ...] = field(default_factory=tuple)
    admin_role: str = "3"

    @property
    def host(self) -> str:
        # NetSuite host format: 3392496_SB2 -> 3392496-sb2
        return self.account_id.lower().replace("_", "-")

    @property
    def base_url(self) -> str:
        return f"https://{self.host}.suitetalk.api.netsuite.com/services/rest"

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()

        missing = [
            name
            for name in (
                "NETSUITE_ACCOUNT_ID",
                "NETSUITE_CLIENT_ID",
                "NETSUITE_CLIENT_SECRET",
                "NETSUITE_REFRESH_TOKEN",
            )
            if not os.getenv(name)
        ]
        if missing:
            raise RuntimeError(
                f"Missing one or more env vars ({', '.join(missing)}). Check your .env values."
            )

        return cls(
            account_id=require_env("NETSUITE_ACCOUNT_ID"),
            client_id=require_env("NETSUITE_CLIENT_ID"),
            client_secret=require_env("NETSUITE_CLIENT_SECRET"),
            refresh_token=require_env("NETSUITE_REFRESH_TOKEN"),
            tracker_record_type=os.getenv("TRACKER_RECORD_TYPE", cls.tracker_record_type),
            status_list=os.getenv("TRACKER_STATUS_LIST", cls.status_list),
            default_status=os.getenv("TRACKER_DEFAULT_STATUS", cls.default_status),
            partial_return_status=os.getenv(
                "TRACKER_PARTIAL_RETURN_STATUS", cls.partial_return_status
            ),
            allowed_role_patterns=_split_patterns(os.getenv("TRACKER_ALLOWED_ROLE_PATTERNS")),
            admin_role=os.getenv("TRACKER_ADMIN_ROLE", cls.admin_role),
        )
