"""把 Zulip 原始事件翻译成规范入站消息。

纯函数，不做任何网络请求：自消息过滤、HTML 去除、会话范围解析都在这里。
"""

import re
from dataclasses import replace
from typing import Any

from zulipbot.bus.events import InboundMessage

CHANNEL = "zulip"
STREAM_PREFIX = "stream:"
PRIVATE_PREFIX = "private:"

_TAG_RE = re.compile(r"<[^>]*>")


def strip_html(content: str | None) -> str:
    """去掉所有 `<...>` 标签；纯文本原样返回。"""
    if not content:
        return ""
    return _TAG_RE.sub("", content)


def is_stream_message(message: dict[str, Any]) -> bool:
    return message.get("type") == "stream"


def resolve_chat_id(message: dict[str, Any]) -> str:
    """频道消息映射到 `stream:<频道名>`，私信映射到 `private:<发送者邮箱>`。"""
    if is_stream_message(message):
        return f"{STREAM_PREFIX}{message.get('display_recipient', '')}"
    return f"{PRIVATE_PREFIX}{message.get('sender_email', '')}"


def is_self_message(message: dict[str, Any], self_id: int | str) -> bool:
    return str(message.get("sender_id")) == str(self_id)


def translate_message(
    message: dict[str, Any],
    self_id: int | str,
    account_id: str,
    text: str | None = None,
) -> InboundMessage | None:
    """翻译一条原始消息；机器人自己发出的消息返回 None。

    `text` 用于覆盖正文（例如表情回应摘要），默认取去除 HTML 后的 `content`。
    """
    if is_self_message(message, self_id):
        return None

    stream = is_stream_message(message)
    return InboundMessage(
        channel=CHANNEL,
        account_id=account_id,
        message_id=str(message.get("id", "")),
        chat_id=resolve_chat_id(message),
        chat_type="group" if stream else "direct",
        sender_id=str(message.get("sender_id", "")),
        sender_name=message.get("sender_full_name", ""),
        sender_handle=message.get("sender_email", ""),
        content=strip_html(message.get("content")) if text is None else text,
        timestamp_ms=int(message.get("timestamp") or 0) * 1000,
        thread_label=(message.get("subject") or None) if stream else None,
        group_label=message.get("display_recipient") if stream else None,
    )


def translate_event(
    event: dict[str, Any], self_id: int | str, account_id: str
) -> InboundMessage | None:
    """只翻译 `message` 事件；其他事件类型（心跳、表情等）返回 None。"""
    if event.get("type") != "message":
        return None
    message = event.get("message")
    if not isinstance(message, dict):
        return None
    return translate_message(message, self_id, account_id)


def summarize_reaction(event: dict[str, Any], target: dict[str, Any], limit: int = 200) -> str:
    """构造表情回应的摘要文本。"""
    user = event.get("user") or {}
    name = user.get("full_name") or user.get("email") or str(event.get("user_id", "someone"))
    summary = strip_html(target.get("content")).strip()
    if len(summary) > limit:
        summary = summary[: limit - 3] + "..."
    return f"[reaction] {name} reacted :{event.get('emoji_name', '')}: to: {summary}"


def translate_reaction(
    event: dict[str, Any],
    target: dict[str, Any],
    self_id: int | str,
    account_id: str,
) -> InboundMessage | None:
    """把 `reaction` 事件翻译成发生在目标消息同一范围内的入站消息。

    回应者是机器人自己，或者不是新增回应时返回 None。
    """
    if event.get("op") != "add":
        return None
    user_id = event.get("user_id", (event.get("user") or {}).get("user_id"))
    if str(user_id) == str(self_id):
        return None

    user = event.get("user") or {}
    # 以回应者作为发送者，范围取自目标消息
    scoped = dict(target)
    scoped["sender_id"] = user_id
    scoped["sender_email"] = user.get("email", "")
    scoped["sender_full_name"] = user.get("full_name", "")
    msg = translate_message(scoped, self_id, account_id, text=summarize_reaction(event, target))
    if msg is None:
        return None
    return replace(msg, metadata={"reaction": event.get("emoji_name"), "target_id": msg.message_id})
