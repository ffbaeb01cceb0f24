from __future__ import annotations

from typing import Any

import httpx

from ..observability.logging import get_logger

log = get_logger("slack")


class SlackWebClient:
    """
    Thin async wrapper over the Slack Web API.

    Every call returns Slack's decoded JSON object (which carries `ok`/`error`). Transport
    problems are folded into the same shape so callers only ever branch on `ok`.
    """

    def __init__(
        self,
        *,
        token: str,
        base_url: str = "https://slack.com/api",
        timeout: float = 20.0,
        http: httpx.AsyncClient | None = None,
    ):
        self._http = http or httpx.AsyncClient(timeout=timeout)
        self._owns_http = http is None
        self._base_url = str(base_url or "").rstrip("/")
        self._headers = {"Authorization": f"Bearer {token}"}

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    def _url(self, method: str) -> str:
        return f"{self._base_url}/{method}"

    @staticmethod
    def _decode(resp: httpx.Response) -> dict[str, Any]:
        try:
            data = resp.json() if resp.content else {}
        except ValueError:
            return {"ok": False, "error": f"invalid_response (HTTP {resp.status_code})"}
        if not isinstance(data, dict):
            return {"ok": False, "error": "invalid_response"}
        if not data.get("ok") and not data.get("error"):
            data = {**data, "ok": False, "error": f"HTTP {resp.status_code}"}
        return data

    async def api_get(self, *, method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        m = str(method or "").strip().lstrip("/")
        if not m:
            return {"ok": False, "error": "invalid_method"}
        clean = {k: v for k, v in (params or {}).items() if v is not None}
        try:
            resp = await self._http.get(self._url(m), headers=self._headers, params=clean)
        except httpx.HTTPError as e:
            log.warning("slack_api_get_exception", method=m, error=str(e) or type(e).__name__)
            return {"ok": False, "error": f"request_failed: {str(e) or type(e).__name__}"}
        return self._decode(resp)

    async def api_post(self, *, method: str, json: dict[str, Any] | None = None) -> dict[str, Any]:
        m = str(method or "").strip().lstrip("/")
        if not m:
            return {"ok": False, "error": "invalid_method"}
        try:
            resp = await self._http.post(self._url(m), headers=self._headers, json=json or {})
        except httpx.HTTPError as e:
            log.warning("slack_api_post_exception", method=m, error=str(e) or type(e).__name__)
            return {"ok": False, "error": f"request_failed: {str(e) or type(e).__name__}"}
        return self._decode(resp)

    # ---- identity / channel access ----
    async def auth_test(self) -> dict[str, Any]:
        return await self.api_post(method="auth.test")

    async def conversations_info(self, *, channel: str) -> dict[str, Any]:
        return await self.api_get(method="conversations.info", params={"channel": channel})

    async def conversations_members(
        self, *, channel: str, cursor: str | None = None, limit: int = 200
    ) -> dict[str, Any]:
        return await self.api_get(
            method="conversations.members",
            params={"channel": channel, "cursor": cursor or None, "limit": limit},
        )

    async def conversations_join(self, *, channel: str) -> dict[str, Any]:
        return await self.api_post(method="conversations.join", json={"channel": channel})

    async def conversations_invite(self, *, channel: str, users: str) -> dict[str, Any]:
        return await self.api_post(method="conversations.invite", json={"channel": channel, "users": users})

    # ---- messaging / listing ----
    async def chat_post_message(self, *, channel: str, text: str) -> dict[str, Any]:
        return await self.api_post(method="chat.postMessage", json={"channel": channel, "text": text})

    async def conversations_history(self, *, channel: str, limit: int = 1) -> dict[str, Any]:
        return await self.api_get(method="conversations.history", params={"channel": channel, "limit": limit})

    async def conversations_list(self, *, limit: int | None = None) -> dict[str, Any]:
        return await self.api_get(
            method="conversations.list",
            params={
                "limit": limit,
                "exclude_archived": "true",
                "types": "public_channel,private_channel",
            },
        )

    async def users_list(self, *, limit: int | None = None) -> dict[str, Any]:
        return await self.api_get(method="users.list", params={"limit": limit})
