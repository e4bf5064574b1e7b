"""模块说明：events。"""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class InboundMessage:
    """翻译后的规范入站消息，创建后不再修改。"""

    channel: str  # 渠道类型：zulip
    account_id: str
    message_id: str
    chat_id: str  # stream:<频道名> 或 private:<发送者邮箱>
    chat_type: str  # group / direct
    sender_id: str
    sender_name: str
    sender_handle: str  # 发送者邮箱
    content: str  # 已去除 HTML 的正文
    timestamp_ms: int
    thread_label: str | None = None  # Zulip topic，仅频道消息
    group_label: str | None = None  # 频道名，仅频道消息
    context_body: str | None = None  # 回填的近期对话
    metadata: dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def sender(self) -> str:
        """函数说明：sender。"""
        return f"{self.channel}:{self.sender_handle}"

    @property
    def session_key(self) -> str:
        """函数说明：session_key。"""
        key = f"{self.channel}:{self.account_id}:{self.chat_id}"
        if self.thread_label:
            key = f"{key}:topic:{self.thread_label}"
        return key


@dataclass
class OutboundMessage:
    """类说明：OutboundMessage。"""

    channel: str
    chat_id: str
    content: str
    topic: str | None = None
    reply_to: str | None = None
    media: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
