"""网关：为每个已配置账号运行一个 Zulip 渠道。"""

import asyncio

from loguru import logger

from zulipbot.channels.zulip import ZulipChannel
from zulipbot.config.loader import resolve_accounts
from zulipbot.config.schema import Config
from zulipbot.pipeline.base import ReplyPipeline


class Gateway:
    """类说明：Gateway。"""

    def __init__(self, config: Config, pipeline: ReplyPipeline):
        self.config = config
        self.pipeline = pipeline
        self.channels: dict[str, ZulipChannel] = {}
        self._tasks: dict[str, asyncio.Task] = {}

    def build_channels(self) -> dict[str, ZulipChannel]:
        """每个账号一个渠道、一个取消标记，互不共享状态。"""
        zulip = self.config.channels.zulip
        for account_id, account in resolve_accounts(self.config).items():
            self.channels[account_id] = ZulipChannel(
                account_id,
                account,
                self.pipeline,
                poll=zulip.poll,
                default_topic=zulip.default_topic,
                forward_reactions=zulip.forward_reactions,
            )
        return self.channels

    async def start(self) -> None:
        """异步函数说明：start。"""
        if not self.config.channels.zulip.enabled:
            logger.info("Zulip channel disabled")
            return

        if not self.channels:
            self.build_channels()
        if not self.channels:
            logger.warning("No Zulip accounts configured")
            return

        for account_id, channel in self.channels.items():
            self._tasks[account_id] = asyncio.create_task(channel.start())
        logger.info(f"Gateway started {len(self._tasks)} Zulip account(s)")

        await asyncio.gather(*self._tasks.values(), return_exceptions=True)

    async def stop(self) -> None:
        """异步函数说明：stop。"""
        for channel in self.channels.values():
            try:
                await channel.stop()
            except Exception as e:
                logger.error(f"Error stopping Zulip account {channel.account_id}: {e!r}")
        self._tasks.clear()
