"""近期对话回填（尽力而为）。

任何失败都只记 warning 并返回 None，调用方照常分发消息。
"""

import asyncio
from typing import Any

from loguru import logger

from zulipbot.bus.events import InboundMessage
from zulipbot.zulip.translate import strip_html

SELF_DISPLAY = "you"


def build_narrow(message: InboundMessage, self_email: str) -> list[dict[str, Any]]:
    """频道消息按 频道+topic 过滤，私信按双方邮箱（逗号分隔）过滤。"""
    if message.chat_type == "group":
        narrow = [{"operator": "stream", "operand": message.group_label or ""}]
        if message.thread_label:
            narrow.append({"operator": "topic", "operand": message.thread_label})
        return narrow
    return [{"operator": "dm", "operand": ",".join([message.sender_handle, self_email])}]


def format_history_line(message: dict[str, Any], self_id: int | str) -> str:
    """`[发送者] 正文 [reacts: a, b]`，机器人自己显示为固定占位名。"""
    if str(message.get("sender_id")) == str(self_id):
        sender = SELF_DISPLAY
    else:
        sender = message.get("sender_full_name") or message.get("sender_email") or "unknown"
    line = f"[{sender}] {strip_html(message.get('content')).strip()}"

    reactions = [r.get("emoji_name") for r in message.get("reactions") or [] if r.get("emoji_name")]
    if reactions:
        line += f" [reacts: {', '.join(reactions)}]"
    return line


class ContextBackfiller:
    """类说明：ContextBackfiller。"""

    def __init__(self, client: Any, self_id: int | str, self_email: str, timeout_s: float = 10.0):
        self.client = client
        self.self_id = self_id
        self.self_email = self_email
        self.timeout_s = timeout_s

    async def fetch_context(
        self, message: InboundMessage, anchor_id: int | str, limit: int
    ) -> str | None:
        """读取锚点之前最多 `limit` 条消息，格式化为对话记录。"""
        if limit <= 0:
            return None
        try:
            history = await asyncio.wait_for(
                self.client.get_messages(
                    narrow=build_narrow(message, self.self_email),
                    anchor=anchor_id,
                    num_before=limit,
                    num_after=0,
                    include_anchor=False,
                ),
                timeout=self.timeout_s,
            )
            lines = [
                format_history_line(m, self.self_id)
                for m in history
                if str(m.get("id")) != str(anchor_id)
            ]
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(f"Failed to fetch Zulip context for {message.chat_id}: {e!r}")
            return None

        return "\n".join(lines) or None
