"""
httpx-based control-plane client.

Implements :class:`~pgmigrate.clients.base.ControlPlane` against the platform
API. Every non-2xx response and every transport error surfaces as a
:class:`ControlPlaneError`, so steps deal with a single failure type.
"""

from __future__ import annotations

import re
from collections import Counter
from typing import Any

import httpx

from pgmigrate.core.exceptions import AddonAlreadyInstalled, ControlPlaneError
from pgmigrate.core.logger import get_logger

logger = get_logger(__name__)

_ALREADY_INSTALLED = re.compile(r"already (installed|added|present)", re.IGNORECASE)


class HerokuClient:
    """
    Synchronous client for the platform API.

    Args:
        api_key: API key, sent as the basic-auth password
        base_url: API root
        timeout: Per-request timeout in seconds
        transport: Optional httpx transport (tests pass ``httpx.MockTransport``)
    """

    def __init__(
        self,
        api_key: str | None,
        base_url: str = "https://api.heroku.com",
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._client = httpx.Client(
            base_url=base_url,
            timeout=timeout,
            auth=("", api_key or ""),
            headers={"Accept": "application/json"},
            transport=transport,
        )

    def set_maintenance(self, app: str, enabled: bool) -> None:
        self._request(
            "POST",
            f"/apps/{app}/server/maintenance",
            data={"maintenance_mode": "1" if enabled else "0"},
        )

    def get_process_counts(self, app: str) -> dict[str, int]:
        """Count running processes per type (``web.1``, ``web.2`` -> ``web: 2``)."""
        processes = self._request("GET", f"/apps/{app}/ps").json()
        counts = Counter(p["process"].split(".")[0] for p in processes)
        return dict(counts)

    def set_process_count(self, app: str, process_type: str, count: int) -> None:
        self._request(
            "POST",
            f"/apps/{app}/ps/scale",
            data={"type": process_type, "qty": str(count)},
        )

    def provision_addon(self, app: str, addon: str) -> dict[str, Any]:
        try:
            response = self._request("POST", f"/apps/{app}/addons/{addon}")
        except ControlPlaneError as e:
            if e.status_code == 422 and _ALREADY_INSTALLED.search(str(e)):
                raise AddonAlreadyInstalled(str(e), e.status_code, e.body) from e
            raise
        return response.json()

    def get_config_vars(self, app: str) -> dict[str, str]:
        return self._request("GET", f"/apps/{app}/config_vars").json()

    def put_config_vars(self, app: str, config_vars: dict[str, str]) -> None:
        self._request("PUT", f"/apps/{app}/config_vars", json=config_vars)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> HerokuClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        logger.debug(f"{method} {url}")
        try:
            response = self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            msg = f"{method} {url} failed: {e}"
            raise ControlPlaneError(msg) from e

        if response.is_error:
            raise ControlPlaneError(
                _error_message(response), status_code=response.status_code, body=response.text
            )
        return response


def _error_message(response: httpx.Response) -> str:
    """Pull the API's error text out of a failed response."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return response.text.strip() or f"HTTP {response.status_code}"
