from typing import Iterable, List, Set

import requests

from debug_log import _log
from tracker_store import sql_literal


class RoleAllowList:
    """
    Which roles may see the tracker controls on a transaction.

    Built from name patterns (e.g. "Finance", "Logistics") matched against the
    active roles in the account, plus the administrator role which is always in.
    No patterns configured -> everyone is allowed.
    """

    def __init__(self, client, patterns: Iterable[str], admin_role: str = "3") -> None:
        self.client = client
        self.patterns = tuple(p for p in patterns if p)
        self.admin_role = str(admin_role)

    @property
    def enabled(self) -> bool:
        return bool(self.patterns)

    def role_ids_matching(self, contains: str) -> List[str]:
        """Internal ids of active roles whose name contains `contains`, admin role first."""
        query = f"""
    SELECT
        r.id AS id
    FROM role r
    WHERE r.name LIKE {sql_literal('%' + contains + '%')}
      AND r.isinactive = 'F'
    """
        resp = self.client.suiteql(query=query, limit=1000)
        return [self.admin_role] + [str(r.get("id")) for r in resp.get("items", [])]

    def allowed_roles(self) -> Set[str]:
        allowed = {self.admin_role}
        for pattern in self.patterns:
            allowed.update(self.role_ids_matching(pattern))
        return allowed

    def is_allowed(self, role_id) -> bool:
        if not self.enabled:
            return True
        if role_id is None or str(role_id) == "":
            return False
        if str(role_id) == self.admin_role:
            return True

        try:
            return str(role_id) in self.allowed_roles()
        except requests.RequestException as exc:
            # Can't resolve the list -> treat as not allowed, the controls are just omitted
            _log(f"[ERROR] role lookup failed for role {role_id}: {exc}")
            return False
