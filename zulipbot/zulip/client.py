"""Zulip REST API 客户端。

只做请求/响应的封装：鉴权、参数编码、`result` 字段校验。
超时与网络错误原样抛出 httpx 异常，由调用方决定是否重试。
"""

import json
from typing import Any

import httpx

BAD_EVENT_QUEUE_ID = "BAD_EVENT_QUEUE_ID"


class ZulipError(Exception):
    """Zulip 返回了无法解析的响应。"""


class ZulipAPIError(ZulipError):
    """Zulip 返回 `result != "success"`。"""

    def __init__(self, msg: str, code: str | None = None):
        super().__init__(msg)
        self.msg = msg
        self.code = code


class BadEventQueueError(ZulipAPIError):
    """事件队列已过期或不存在，需要重新注册。"""


def _encode(data: dict[str, Any]) -> dict[str, str]:
    # Zulip 要求列表/字典参数以 JSON 字符串提交
    encoded = {}
    for key, value in data.items():
        if value is None:
            continue
        if isinstance(value, (list, dict, bool)):
            encoded[key] = json.dumps(value)
        else:
            encoded[key] = str(value)
    return encoded


class ZulipClient:
    """类说明：ZulipClient。"""

    def __init__(
        self,
        site: str,
        email: str,
        api_key: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.site = site.rstrip("/")
        self.email = email
        self._http = httpx.AsyncClient(
            base_url=f"{self.site}/api/v1",
            auth=httpx.BasicAuth(email, api_key),
            timeout=timeout,
            transport=transport,
        )

    async def request(
        self,
        method: str,
        endpoint: str,
        data: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        """发送请求并返回成功响应的 JSON。"""
        kwargs: dict[str, Any] = {}
        if data:
            if method == "GET":
                kwargs["params"] = _encode(data)
            else:
                kwargs["data"] = _encode(data)
        if timeout is not None:
            kwargs["timeout"] = timeout

        response = await self._http.request(method, endpoint, **kwargs)

        # 4xx 也带 JSON 错误体（例如 BAD_EVENT_QUEUE_ID），先解析再判断
        try:
            parsed = response.json()
        except ValueError:
            raise ZulipError(f"Zulip HTTP {response.status_code}: {response.text[:200]}")
        if not isinstance(parsed, dict):
            raise ZulipError(f"Unexpected Zulip response: {str(parsed)[:200]}")

        if parsed.get("result") != "success":
            msg = str(parsed.get("msg") or "request failed")
            code = parsed.get("code")
            if code == BAD_EVENT_QUEUE_ID or BAD_EVENT_QUEUE_ID in msg:
                raise BadEventQueueError(msg, code)
            raise ZulipAPIError(msg, code)
        return parsed

    # ---- event queue ---------------------------------------------------

    async def register_queue(self, event_types: list[str]) -> dict[str, Any]:
        """注册事件队列，返回 `queue_id` 与 `last_event_id`。"""
        return await self.request("POST", "/register", {"event_types": event_types})

    async def get_events(
        self, queue_id: str, last_event_id: int, timeout: float | None = None
    ) -> list[dict[str, Any]]:
        """长轮询拉取 `last_event_id` 之后的事件。"""
        result = await self.request(
            "GET",
            "/events",
            {"queue_id": queue_id, "last_event_id": last_event_id},
            timeout=timeout,
        )
        return list(result.get("events") or [])

    async def delete_queue(self, queue_id: str) -> None:
        await self.request("DELETE", "/events", {"queue_id": queue_id})

    # ---- messages ------------------------------------------------------

    async def get_messages(
        self,
        narrow: list[dict[str, Any]],
        anchor: int | str = "newest",
        num_before: int = 10,
        num_after: int = 0,
        include_anchor: bool = True,
        timeout: float | None = None,
    ) -> list[dict[str, Any]]:
        """按 narrow 过滤读取历史消息，按时间升序返回。"""
        result = await self.request(
            "GET",
            "/messages",
            {
                "narrow": narrow,
                "anchor": anchor,
                "num_before": num_before,
                "num_after": num_after,
                "include_anchor": include_anchor,
                "apply_markdown": True,
            },
            timeout=timeout,
        )
        return list(result.get("messages") or [])

    async def get_message(self, message_id: int) -> dict[str, Any]:
        result = await self.request("GET", f"/messages/{message_id}")
        return result.get("message") or {}

    async def send_message(
        self, type: str, to: str, content: str, topic: str | None = None
    ) -> dict[str, Any]:
        """发送频道消息（`stream`）或私信（`private`）。"""
        data: dict[str, Any] = {"type": type, "to": to, "content": content}
        if type == "stream":
            data["topic"] = topic
        return await self.request("POST", "/messages", data)

    async def update_message(self, message_id: int | str, content: str) -> dict[str, Any]:
        return await self.request("PATCH", f"/messages/{message_id}", {"content": content})

    async def delete_message(self, message_id: int | str) -> dict[str, Any]:
        return await self.request("DELETE", f"/messages/{message_id}")

    async def add_reaction(self, message_id: int | str, emoji_name: str) -> dict[str, Any]:
        return await self.request(
            "POST", f"/messages/{message_id}/reactions", {"emoji_name": emoji_name}
        )

    async def remove_reaction(self, message_id: int | str, emoji_name: str) -> dict[str, Any]:
        return await self.request(
            "DELETE", f"/messages/{message_id}/reactions", {"emoji_name": emoji_name}
        )

    # ---- users ---------------------------------------------------------

    async def get_profile(self) -> dict[str, Any]:
        """当前机器人的用户信息（`user_id`、`email`、`full_name`）。"""
        return await self.request("GET", "/users/me")

    async def aclose(self) -> None:
        await self._http.aclose()
