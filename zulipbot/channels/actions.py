"""Zulip 出站动作：发送、表情、读取、编辑、删除。

动作种类是封闭枚举，通过分发表路由到各自的处理函数。
"""

from enum import Enum
from typing import Any, Awaitable, Callable

from zulipbot.zulip.client import ZulipAPIError, ZulipClient
from zulipbot.zulip.translate import PRIVATE_PREFIX, STREAM_PREFIX, strip_html

DEFAULT_TOPIC = "chat"
DEFAULT_READ_LIMIT = 10


class ActionKind(str, Enum):
    SEND = "send"
    REACT = "react"
    READ = "read"
    EDIT = "edit"
    DELETE = "delete"


def normalize_target(target: str | None) -> str | None:
    """支持 `stream:general`、`private:user@example.com` 与裸频道名。"""
    if not target:
        return target
    if target.startswith(STREAM_PREFIX) or target.startswith(PRIVATE_PREFIX):
        return target
    return f"{STREAM_PREFIX}{target}"


def looks_like_target_id(value: str) -> bool:
    """函数说明：looks_like_target_id。"""
    return value.startswith(STREAM_PREFIX) or value.startswith(PRIVATE_PREFIX) or "@" in value


def parse_target(target: str) -> tuple[str, str]:
    """解析为 (消息类型, 接收方)。不带前缀时，像邮箱的按私信处理，否则按频道处理。"""
    if target.startswith(STREAM_PREFIX):
        return "stream", target[len(STREAM_PREFIX):]
    if target.startswith(PRIVATE_PREFIX):
        return "private", target[len(PRIVATE_PREFIX):]
    if "@" in target:
        return "private", target
    return "stream", target


def _strip_prefix(value: str) -> str:
    return value[len(STREAM_PREFIX):] if value.startswith(STREAM_PREFIX) else value


async def _send(client: ZulipClient, params: dict[str, Any]) -> dict[str, Any]:
    to = params.get("to") or params.get("target")
    if not to:
        return {"ok": False, "error": "Missing target"}
    content = params.get("message") or params.get("content") or ""
    topic = params.get("threadId") or params.get("topic") or DEFAULT_TOPIC

    type_, recipient = parse_target(to)
    result = await client.send_message(type_, recipient, content, topic)
    return {"ok": True, "messageId": str(result.get("id"))}


async def _react(client: ZulipClient, params: dict[str, Any]) -> dict[str, Any]:
    message_id = params["messageId"]
    emoji = params["emoji"]
    if params.get("remove"):
        await client.remove_reaction(message_id, emoji)
    else:
        await client.add_reaction(message_id, emoji)
    return {"ok": True}


async def _read(client: ZulipClient, params: dict[str, Any]) -> dict[str, Any]:
    stream = params.get("channelId") or params.get("stream")
    topic = params.get("topic") or params.get("threadId")
    limit = int(params.get("limit") or DEFAULT_READ_LIMIT)

    narrow = []
    if stream:
        narrow.append({"operator": "stream", "operand": _strip_prefix(stream)})
    if topic:
        narrow.append({"operator": "topic", "operand": topic})

    raw = await client.get_messages(narrow=narrow, anchor="newest", num_before=limit, num_after=0)
    messages = [
        {
            "id": str(m.get("id")),
            "sender": m.get("sender_full_name"),
            "senderEmail": m.get("sender_email"),
            "content": strip_html(m.get("content")),
            "topic": m.get("subject"),
            "timestamp": m.get("timestamp"),
            "reactions": [
                {"emoji": r.get("emoji_name"), "user": (r.get("user") or {}).get("full_name")}
                for r in m.get("reactions") or []
            ],
        }
        for m in reversed(raw)
    ]
    return {"ok": True, "messages": messages}


async def _edit(client: ZulipClient, params: dict[str, Any]) -> dict[str, Any]:
    content = params.get("message") or params.get("content") or ""
    await client.update_message(params["messageId"], content)
    return {"ok": True}


async def _delete(client: ZulipClient, params: dict[str, Any]) -> dict[str, Any]:
    await client.delete_message(params["messageId"])
    return {"ok": True}


ACTION_HANDLERS: dict[ActionKind, Callable[[ZulipClient, dict[str, Any]], Awaitable[dict[str, Any]]]] = {
    ActionKind.SEND: _send,
    ActionKind.REACT: _react,
    ActionKind.READ: _read,
    ActionKind.EDIT: _edit,
    ActionKind.DELETE: _delete,
}


def list_actions(configured: bool = True) -> list[str]:
    """函数说明：list_actions。"""
    return [kind.value for kind in ActionKind] if configured else []


async def handle_action(client: ZulipClient, action: str, params: dict[str, Any]) -> dict[str, Any]:
    """执行动作；API 错误转成 `{"ok": False, "error": ...}`。"""
    try:
        kind = ActionKind(action)
    except ValueError:
        return {"error": f"Unsupported action: {action}"}

    try:
        return await ACTION_HANDLERS[kind](client, params)
    except KeyError as e:
        return {"ok": False, "error": f"Missing parameter: {e.args[0]}"}
    except ZulipAPIError as e:
        return {"ok": False, "error": e.msg}
