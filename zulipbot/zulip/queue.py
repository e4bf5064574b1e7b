"""事件队列生命周期。

状态机：UNREGISTERED -> REGISTERED -> EXPIRED -> REGISTERED ... -> ABORTED（终态）。
队列过期后 `queue_id` 与游标必须一起从新的注册结果替换，游标永远不由客户端编造。
"""

from dataclasses import dataclass, replace
from enum import Enum

import httpx
from loguru import logger

from zulipbot.zulip.client import ZulipClient, ZulipError


class RegistrationError(Exception):
    """事件队列注册失败。"""


class QueueState(str, Enum):
    UNREGISTERED = "unregistered"
    REGISTERED = "registered"
    EXPIRED = "expired"
    ABORTED = "aborted"


@dataclass(frozen=True)
class EventQueueHandle:
    """服务端事件队列的标识与游标，只能整体替换。"""
    queue_id: str
    last_event_id: int

    def advance(self, event_id: int) -> "EventQueueHandle":
        """函数说明：advance。"""
        return replace(self, last_event_id=event_id)


class EventQueueManager:
    """负责注册、过期检测与重新注册。"""

    def __init__(self, client: ZulipClient, event_types: list[str]):
        self.client = client
        self.event_types = list(event_types)
        self.state = QueueState.UNREGISTERED

    async def register(self) -> EventQueueHandle:
        """注册新队列，订阅 `event_types`。"""
        if self.state == QueueState.ABORTED:
            raise RegistrationError("Event queue manager has been aborted")

        try:
            result = await self.client.register_queue(self.event_types)
        except (ZulipError, httpx.HTTPError) as e:
            raise RegistrationError(f"Failed to register event queue: {e}") from e

        queue_id = result.get("queue_id")
        last_event_id = result.get("last_event_id")
        if not queue_id or last_event_id is None:
            raise RegistrationError("Register response is missing queue_id or last_event_id")

        self.state = QueueState.REGISTERED
        handle = EventQueueHandle(queue_id=str(queue_id), last_event_id=int(last_event_id))
        logger.info(f"Registered Zulip event queue {handle.queue_id} at event {handle.last_event_id}")
        return handle

    async def reregister(self) -> EventQueueHandle:
        """过期后重新注册；调用方用返回值替换整个 handle。"""
        logger.info("Re-registering expired Zulip event queue")
        return await self.register()

    def mark_expired(self) -> None:
        if self.state != QueueState.ABORTED:
            self.state = QueueState.EXPIRED

    async def abort(self, handle: EventQueueHandle | None = None) -> None:
        """进入终态，并尽力删除服务端队列。"""
        was_registered = self.state == QueueState.REGISTERED
        self.state = QueueState.ABORTED
        if handle is None or not was_registered:
            return
        try:
            await self.client.delete_queue(handle.queue_id)
        except Exception as e:
            logger.debug(f"Could not delete Zulip event queue {handle.queue_id}: {e}")
