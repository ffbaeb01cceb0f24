from __future__ import annotations

from typing import Any

import httpx

from ..observability.logging import get_logger

log = get_logger("github")


class GitHubClient:
    """
    Async GitHub REST client.

    Calls return {ok: True, status, data} or {ok: False, status, error, details}; `error`
    carries GitHub's own `message` so failures can be reported verbatim.
    """

    def __init__(
        self,
        *,
        token: str,
        base_url: str = "https://api.github.com",
        timeout: float = 20.0,
        http: httpx.AsyncClient | None = None,
    ):
        self._http = http or httpx.AsyncClient(timeout=timeout, follow_redirects=True)
        self._owns_http = http is None
        self._base_url = str(base_url or "").rstrip("/")
        self._headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": "toolservers-github",
            "Authorization": f"Bearer {token}",
        }

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def request(
        self,
        method: str,
        path: str,
        *,
        json_body: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        url = self._base_url + "/" + str(path or "").lstrip("/")
        try:
            resp = await self._http.request(method, url, headers=self._headers, json=json_body, params=params)
        except httpx.HTTPError as e:
            log.warning("github_request_failed", method=method, path=path, error=str(e) or type(e).__name__)
            return {"ok": False, "status": None, "error": str(e) or type(e).__name__}

        if resp.status_code in (202, 204) and not resp.content:
            return {"ok": True, "status": resp.status_code, "data": {}}
        try:
            data = resp.json() if resp.content else {}
        except ValueError:
            return {"ok": False, "status": resp.status_code, "error": "invalid_response"}
        if resp.status_code >= 400:
            # GitHub uses `message`/`documentation_url`.
            if isinstance(data, dict):
                return {
                    "ok": False,
                    "status": resp.status_code,
                    "error": data.get("message") or "github_error",
                    "details": data,
                }
            return {"ok": False, "status": resp.status_code, "error": "github_error"}
        if not isinstance(data, (dict, list)):
            return {"ok": False, "status": resp.status_code, "error": "invalid_response"}
        return {"ok": True, "status": resp.status_code, "data": data}

    async def get(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, json_body: dict[str, Any]) -> dict[str, Any]:
        return await self.request("POST", path, json_body=json_body)

    async def patch(self, path: str, json_body: dict[str, Any]) -> dict[str, Any]:
        return await self.request("PATCH", path, json_body=json_body)
