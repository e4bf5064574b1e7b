"""模块说明：Zulip 事件队列与 REST 客户端。"""

from zulipbot.zulip.client import BadEventQueueError, ZulipAPIError, ZulipClient, ZulipError
from zulipbot.zulip.queue import EventQueueHandle, EventQueueManager, QueueState, RegistrationError

__all__ = [
    "BadEventQueueError",
    "EventQueueHandle",
    "EventQueueManager",
    "QueueState",
    "RegistrationError",
    "ZulipAPIError",
    "ZulipClient",
    "ZulipError",
]
