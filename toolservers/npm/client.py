from __future__ import annotations

from typing import Any
from urllib.parse import quote

import httpx

from ..observability.logging import get_logger

log = get_logger("npm_registry")


def package_path(name: str) -> str:
    """Registry path for a package; scoped names keep '@' but escape the slash."""
    return "/" + quote(str(name or "").strip(), safe="@")


class NpmRegistryClient:
    def __init__(
        self,
        *,
        base_url: str = "https://registry.npmjs.org",
        timeout: float = 20.0,
        http: httpx.AsyncClient | None = None,
    ):
        self._http = http or httpx.AsyncClient(timeout=timeout, follow_redirects=True)
        self._owns_http = http is None
        self._base_url = str(base_url or "").rstrip("/")

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def get_packument(self, name: str) -> dict[str, Any]:
        """
        Fetch the full package document.

        Returns {ok: True, data} or {ok: False, status?, error}.
        """
        url = self._base_url + package_path(name)
        try:
            resp = await self._http.get(url, headers={"Accept": "application/json"})
        except httpx.HTTPError as e:
            log.warning("npm_registry_request_failed", package=name, error=str(e) or type(e).__name__)
            return {"ok": False, "error": str(e) or type(e).__name__}
        try:
            data = resp.json() if resp.content else {}
        except ValueError:
            data = {}
        if resp.status_code >= 400:
            err = data.get("error") if isinstance(data, dict) else None
            return {
                "ok": False,
                "status": resp.status_code,
                "error": str(err or f"Request failed with status code {resp.status_code}"),
            }
        if not isinstance(data, dict):
            return {"ok": False, "status": resp.status_code, "error": "invalid_response"}
        return {"ok": True, "data": data}
