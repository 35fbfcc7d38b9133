import base64
import sys
import time
from typing import Any

import requests

from config import Settings
from debug_log import _log


class NetSuiteClient:
    """
    Reusable NetSuite REST client that:
    - Reads config from .env (via Settings.from_env) unless settings are passed in
    - Uses refresh_token to generate a fresh access_token
    - Automatically retries once if token is rejected (401)
    - Logs timings/errors to a file (NO stdout prints -> safer for MCP stdio)
    - Reuses HTTP connections via requests.Session for better performance
    - Covers the two APIs the tracker needs: SuiteQL and the record API
    """

    def __init__(self, settings: Settings | None = None, session: requests.Session | None = None) -> None:
        self.settings = settings or Settings.from_env()

        self.host = self.settings.host
        self.base_url = self.settings.base_url

        # OAuth token endpoint
        self.token_url = f"{self.base_url}/auth/oauth2/v1/token"

        # Precompute Basic auth (client_id:client_secret)
        self._basic_auth = base64.b64encode(
            f"{self.settings.client_id}:{self.settings.client_secret}".encode("utf-8")
        ).decode("utf-8")

        # Cache token in memory for this process
        self._access_token: str | None = None

        self._session = session or requests.Session()

    def _get_access_token(self) -> str:
        """
        Always fetch a NEW access token using refresh_token.
        Access tokens expire ~1 hour, so refresh token is the stable credential.
        """
        t0 = time.perf_counter()

        resp = self._session.post(
            self.token_url,
            headers={
                "Authorization": f"Basic {self._basic_auth}",
                "Content-Type": "application/x-www-form-urlencoded",
            },
            data={
                "grant_type": "refresh_token",
                "refresh_token": self.settings.refresh_token,
                "scope": "rest_webservices",
            },
            timeout=30,
        )

        _log(f"[TIMING] token request took {(time.perf_counter() - t0):.2f}s status={resp.status_code}")

        if resp.status_code >= 400:
            _log(f"TOKEN STATUS: {resp.status_code}")
            _log(f"TOKEN BODY: {resp.text}")

        resp.raise_for_status()
        token = resp.json()["access_token"]
        self._access_token = token
        return token

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        """
        Wrapper that:
        - Adds Bearer token
        - Retries once on 401 by refreshing token
        - Logs timings to a file (and stderr, never stdout)
        """
        token = self._access_token or self._get_access_token()

        headers = kwargs.pop("headers", {})
        headers.update(
            {
                "Authorization": f"Bearer {token}",
                "Accept": "application/json",
                "Prefer": "transient",
            }
        )

        t0 = time.perf_counter()
        resp = self._session.request(method, url, headers=headers, timeout=120, **kwargs)
        dt = time.perf_counter() - t0

        msg = f"[TIMING] {method} {url} took {dt:.2f}s status={resp.status_code}"
        print(msg, file=sys.stderr)
        _log(msg)

        # If token was rejected, refresh once and retry
        if resp.status_code == 401:
            _log("[WARN] 401 received, refreshing token and retrying once")
            token = self._get_access_token()
            headers["Authorization"] = f"Bearer {token}"

            t1 = time.perf_counter()
            resp = self._session.request(method, url, headers=headers, timeout=120, **kwargs)
            _log(f"[TIMING] retry {method} {url} took {(time.perf_counter() - t1):.2f}s status={resp.status_code}")

        if resp.status_code >= 400:
            _log(f"STATUS: {resp.status_code}")
            _log(f"BODY: {resp.text}")

        return resp

    def get_metadata_catalog(self) -> dict:
        """
        Safe test call to confirm auth works.
        """
        resp = self._request("GET", f"{self.base_url}/record/v1/metadata-catalog")
        resp.raise_for_status()
        return resp.json()

    def suiteql(self, query: str, limit: int = 100, offset: int = 0) -> dict:
        """
        Execute a SuiteQL query.
        Note: NetSuite REST SuiteQL 'limit' must be between 1 and 1000.
        """
        # Guardrails: NetSuite enforces 1..1000
        if limit < 1:
            limit = 1
        if limit > 1000:
            limit = 1000

        resp = self._request(
            "POST",
            f"{self.base_url}/query/v1/suiteql",
            params={"limit": limit, "offset": offset},
            json={"q": query},
            headers={"Content-Type": "application/json"},
        )
        resp.raise_for_status()
        return resp.json()

    def get_record(self, record_type: str, record_id: str | int) -> dict:
        """
        Load one record through the REST record API.
        404 means the id does not resolve for this record type.
        """
        resp = self._request("GET", f"{self.base_url}/record/v1/{record_type}/{record_id}")
        resp.raise_for_status()
        return resp.json()

    def create_record(self, record_type: str, values: dict[str, Any]) -> str:
        """
        Create a record and return its new internal id.

        NetSuite answers 204 No Content; the id is the last segment of the
        Location header (.../record/v1/<type>/<id>).
        """
        resp = self._request(
            "POST",
            f"{self.base_url}/record/v1/{record_type}",
            json=values,
            headers={"Content-Type": "application/json"},
        )
        resp.raise_for_status()

        location = resp.headers.get("Location", "")
        new_id = location.rstrip("/").rsplit("/", 1)[-1]
        if not new_id:
            raise requests.HTTPError("NetSuite did not return a Location for the new record", response=resp)
        return new_id

    def update_record(self, record_type: str, record_id: str | int, values: dict[str, Any]) -> None:
        """
        Patch the given fields only; everything else on the record is left alone.
        """
        resp = self._request(
            "PATCH",
            f"{self.base_url}/record/v1/{record_type}/{record_id}",
            json=values,
            headers={"Content-Type": "application/json"},
        )
        resp.raise_for_status()
