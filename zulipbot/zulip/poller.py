"""事件队列长轮询主循环。

每轮发起一次长轮询，三种结果：
1. 拿到事件：按顺序逐条推进游标并处理，全部处理完才进入下一轮；
2. 队列失效：立即重新注册，不退避；
3. 其他失败：固定退避后重试。
客户端超时且没有事件属于正常情况，立即进入下一轮。
"""

import asyncio
from typing import Any, Awaitable, Callable

import httpx
from loguru import logger

from zulipbot.zulip.client import BadEventQueueError, ZulipClient
from zulipbot.zulip.queue import EventQueueHandle, EventQueueManager, QueueState, RegistrationError

OnEvent = Callable[[dict[str, Any]], Awaitable[None]]


class PollLoop:
    """单个账号的事件轮询器，独占一个 EventQueueHandle。"""

    def __init__(
        self,
        client: ZulipClient,
        queues: EventQueueManager,
        long_poll_timeout_s: float = 90.0,
        backoff_s: float = 5.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.client = client
        self.queues = queues
        self.long_poll_timeout_s = long_poll_timeout_s
        self.backoff_s = backoff_s
        self._sleep = sleep
        self.handle: EventQueueHandle | None = None

    async def run(
        self,
        handle: EventQueueHandle,
        on_event: OnEvent,
        is_cancelled: Callable[[], bool],
    ) -> None:
        """运行到 `is_cancelled()` 为真为止。"""
        self.handle = handle

        while not is_cancelled():
            if self.queues.state == QueueState.EXPIRED:
                if not await self._reregister():
                    continue

            try:
                events = await self.client.get_events(
                    self.handle.queue_id,
                    self.handle.last_event_id,
                    timeout=self.long_poll_timeout_s,
                )
            except BadEventQueueError:
                logger.info(f"Zulip event queue {self.handle.queue_id} expired")
                self.queues.mark_expired()
                continue
            except httpx.ReadTimeout:
                # 长轮询窗口内没有事件
                continue
            except Exception as e:
                logger.error(f"Zulip poll error: {e!r}")
                await self._sleep(self.backoff_s)
                continue

            for event in events:
                await self._consume(event, on_event)

    async def _reregister(self) -> bool:
        try:
            self.handle = await self.queues.reregister()
            return True
        except RegistrationError as e:
            logger.error(f"Zulip queue re-registration failed: {e}")
            await self._sleep(self.backoff_s)
            return False

    async def _consume(self, event: dict[str, Any], on_event: OnEvent) -> None:
        event_id = event.get("id")
        if not isinstance(event_id, int):
            logger.debug(f"Skipping Zulip event without id: {event.get('type')}")
            return
        if event_id <= self.handle.last_event_id:
            logger.debug(f"Skipping already consumed Zulip event {event_id}")
            return

        # 先推进游标再处理：进程内至多一次投递
        self.handle = self.handle.advance(event_id)

        try:
            await on_event(event)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Error handling Zulip event {event_id}: {e!r}")
