"""模块说明：queue。"""

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from zulipbot.pipeline.base import Deliver, ReplyContext


@dataclass
class ReplyRequest:
    """总线上的一条待处理消息，消费方通过 `reply` 回发。"""
    context: "ReplyContext"
    deliver: "Deliver"

    async def reply(self, payload: Any) -> None:
        """异步函数说明：reply。"""
        await self.deliver(payload)


class MessageBus:
    """类说明：MessageBus。"""

    def __init__(self, maxsize: int = 0):
        self.inbound: asyncio.Queue[ReplyRequest] = asyncio.Queue(maxsize=maxsize)

    async def publish_inbound(self, request: ReplyRequest) -> None:
        """异步函数说明：publish_inbound。"""
        await self.inbound.put(request)

    async def consume_inbound(self) -> ReplyRequest:
        """异步函数说明：consume_inbound。"""
        return await self.inbound.get()
