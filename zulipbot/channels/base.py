"""模块说明：base。"""

from abc import ABC, abstractmethod
from typing import Any

from zulipbot.bus.events import OutboundMessage
from zulipbot.pipeline.base import ReplyPipeline


class BaseChannel(ABC):
    """类说明：BaseChannel。"""

    name: str = "base"

    def __init__(self, config: Any, pipeline: ReplyPipeline):
        """函数说明：__init__。"""
        self.config = config
        self.pipeline = pipeline
        self._running = False

    @abstractmethod
    async def start(self) -> None:
        """异步函数说明：start。"""
        pass

    @abstractmethod
    async def stop(self) -> None:
        """异步函数说明：stop。"""
        pass

    @abstractmethod
    async def send(self, msg: OutboundMessage) -> str | None:
        """发送消息，返回平台消息 ID。"""
        pass

    def is_allowed(self, *sender_keys: str) -> bool:
        """允许列表为空时放行；否则任一身份（ID、邮箱）命中即可。"""
        allow_list = getattr(self.config, "allow_from", [])

        if not allow_list:
            return True

        return any(str(key) in allow_list for key in sender_keys if key)

    @property
    def is_running(self) -> bool:
        """函数说明：is_running。"""
        return self._running
