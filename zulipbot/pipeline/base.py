"""回复管线接口。

管线由宿主显式传入（而不是进程级全局状态），渠道只依赖这里的契约：
解析路由、构造入站上下文、调用 `dispatch` 并把回复交给 `deliver`。
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from zulipbot.bus.events import InboundMessage

Deliver = Callable[[Any], Awaitable[None]]


@dataclass(frozen=True)
class Route:
    """类说明：Route。"""
    agent_id: str
    session_key: str


@dataclass
class ReplyContext:
    """管线期望的入站上下文。"""
    body: str
    body_for_agent: str
    from_: str
    to: str
    route: Route
    account_id: str
    chat_type: str
    sender_id: str
    sender_name: str
    sender_handle: str
    message_id: str
    timestamp_ms: int
    provider: str = "zulip"
    thread_label: str | None = None
    group_label: str | None = None
    context_body: str | None = None

    @classmethod
    def from_message(cls, msg: InboundMessage, route: Route) -> "ReplyContext":
        """函数说明：from_message。"""
        body_for_agent = msg.content
        if msg.context_body:
            body_for_agent = f"[Recent messages]\n{msg.context_body}\n\n[Current message]\n{msg.content}"
        return cls(
            body=msg.content,
            body_for_agent=body_for_agent,
            from_=msg.sender,
            to=msg.chat_id,
            route=route,
            account_id=msg.account_id,
            chat_type=msg.chat_type,
            sender_id=msg.sender_id,
            sender_name=msg.sender_name,
            sender_handle=msg.sender_handle,
            message_id=msg.message_id,
            timestamp_ms=msg.timestamp_ms,
            provider=msg.channel,
            thread_label=msg.thread_label,
            group_label=msg.group_label,
            context_body=msg.context_body,
        )


class ReplyPipeline(ABC):
    """类说明：ReplyPipeline。"""

    def __init__(self, agent_id: str = "main"):
        self.agent_id = agent_id

    def resolve_route(self, msg: InboundMessage) -> Route:
        """按会话范围解析路由；同一频道的不同 topic 是不同会话。"""
        return Route(agent_id=self.agent_id, session_key=f"agent:{self.agent_id}:{msg.session_key}")

    @abstractmethod
    async def dispatch(self, ctx: ReplyContext, deliver: Deliver) -> None:
        """处理一条入站消息，回复片段通过 `deliver` 发出。"""
        pass
