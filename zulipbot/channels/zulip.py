"""Zulip 渠道。

一个 ZulipChannel 对应一个账号会话：解析机器人身份、注册事件队列，
然后在单个轮询循环里按到达顺序逐条 翻译 -> 回填上下文 -> 分发 -> 回复。
"""

import asyncio
from dataclasses import replace
from typing import Any

import httpx
from loguru import logger

from zulipbot.bus.events import InboundMessage, OutboundMessage
from zulipbot.channels.actions import parse_target
from zulipbot.channels.base import BaseChannel
from zulipbot.channels.dispatch import ReplyDispatcher
from zulipbot.config.schema import PollConfig, ZulipAccountConfig
from zulipbot.pipeline.base import ReplyPipeline
from zulipbot.zulip.backfill import ContextBackfiller
from zulipbot.zulip.client import ZulipClient, ZulipError
from zulipbot.zulip.poller import PollLoop
from zulipbot.zulip.queue import EventQueueManager, RegistrationError
from zulipbot.zulip.translate import translate_event, translate_reaction


class IdentityResolutionError(Exception):
    """无法获取机器人自身的用户信息。"""


class ZulipChannel(BaseChannel):
    """类说明：ZulipChannel。"""

    name = "zulip"

    def __init__(
        self,
        account_id: str,
        config: ZulipAccountConfig,
        pipeline: ReplyPipeline,
        poll: PollConfig | None = None,
        default_topic: str = "chat",
        forward_reactions: bool = True,
        client: ZulipClient | None = None,
        cancel: asyncio.Event | None = None,
    ):
        super().__init__(config, pipeline)
        self.config: ZulipAccountConfig = config
        self.account_id = account_id
        self.poll = poll or PollConfig()
        self.default_topic = default_topic
        self.forward_reactions = forward_reactions
        self.client = client or ZulipClient(
            config.site, config.email, config.api_key, timeout=self.poll.request_timeout_s
        )
        self.cancel = cancel or asyncio.Event()
        self.queues = EventQueueManager(self.client, self.poll.event_types)
        self.dispatcher = ReplyDispatcher(pipeline, self.send)

        self.self_id: int | None = None
        self.self_email = ""
        self._poller: PollLoop | None = None
        self._backfiller: ContextBackfiller | None = None
        self._task: asyncio.Task | None = None
        self._closed = False

    async def start(self) -> None:
        """运行账号会话直到取消；身份或队列注册失败时记录错误并返回。"""
        self._task = asyncio.current_task()
        logger.info(f"Starting Zulip event poller for {self.config.email} ({self.account_id})")

        try:
            await self._resolve_identity()
            handle = await self.queues.register()
        except (IdentityResolutionError, RegistrationError) as e:
            logger.error(f"Zulip account {self.account_id} not started: {e}")
            return

        self._backfiller = ContextBackfiller(
            self.client, self.self_id, self.self_email, timeout_s=self.poll.context_timeout_s
        )
        self._poller = PollLoop(
            self.client,
            self.queues,
            long_poll_timeout_s=self.poll.long_poll_timeout_s,
            backoff_s=self.poll.retry_backoff_s,
        )

        self._running = True
        try:
            await self._poller.run(handle, self._on_event, self.cancel.is_set)
        finally:
            self._running = False

    async def stop(self) -> None:
        """设置取消标记、放弃进行中的长轮询、删除服务端队列并关闭连接。"""
        if self._closed:
            return
        self._closed = True
        self.cancel.set()

        task = self._task
        if task and task is not asyncio.current_task() and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

        handle = self._poller.handle if self._poller else None
        await self.queues.abort(handle)
        await self.client.aclose()
        logger.info(f"Zulip account {self.account_id} stopped")

    async def send(self, msg: OutboundMessage) -> str | None:
        """发送到频道（带 topic）或私信，返回消息 ID。

        Zulip 没有附件字段，媒体链接逐行追加在正文后面。
        """
        type_, recipient = parse_target(msg.chat_id)
        topic = (msg.topic or self.default_topic) if type_ == "stream" else None
        content = "\n".join(part for part in [msg.content, *msg.media] if part)
        result = await self.client.send_message(type_, recipient, content, topic)
        message_id = result.get("id")
        return str(message_id) if message_id is not None else None

    async def _resolve_identity(self) -> None:
        try:
            profile = await self.client.get_profile()
        except (ZulipError, httpx.HTTPError) as e:
            raise IdentityResolutionError(f"Failed to resolve bot identity: {e}") from e

        if profile.get("user_id") is None:
            raise IdentityResolutionError("Profile response is missing user_id")
        self.self_id = profile["user_id"]
        self.self_email = profile.get("email") or self.config.email
        logger.info(f"Zulip bot identity resolved: {profile.get('full_name', '')} ({self.self_id})")

    async def _on_event(self, event: dict[str, Any]) -> None:
        event_type = event.get("type")
        if event_type == "message":
            msg = translate_event(event, self.self_id, self.account_id)
        elif event_type == "reaction":
            msg = await self._translate_reaction(event)
        else:
            logger.debug(f"Ignoring Zulip event type {event_type}")
            return

        if msg is None:
            return

        if not self.is_allowed(msg.sender_id, msg.sender_handle):
            logger.warning(
                f"Access denied for sender {msg.sender_handle} on channel {self.name}. "
                f"Add them to allowFrom list in config to grant access."
            )
            return

        msg = await self._attach_context(msg)
        await self.dispatcher.dispatch(msg)

    async def _translate_reaction(self, event: dict[str, Any]) -> InboundMessage | None:
        if not self.forward_reactions or event.get("op") != "add":
            return None
        if str(event.get("user_id")) == str(self.self_id):
            return None

        try:
            target = await self.client.get_message(event["message_id"])
        except Exception as e:
            logger.warning(f"Failed to fetch reacted Zulip message {event.get('message_id')}: {e!r}")
            return None
        return translate_reaction(event, target, self.self_id, self.account_id)

    async def _attach_context(self, msg: InboundMessage) -> InboundMessage:
        if not self._backfiller or self.poll.context_limit <= 0:
            return msg
        context = await self._backfiller.fetch_context(msg, msg.message_id, self.poll.context_limit)
        return replace(msg, context_body=context) if context else msg


async def start_account(
    account_id: str,
    account: ZulipAccountConfig,
    pipeline: ReplyPipeline,
    cancel: asyncio.Event,
    poll: PollConfig | None = None,
    **kwargs: Any,
) -> None:
    """账号入口：运行到 `cancel` 被设置为止，取消后立即放弃进行中的长轮询。"""
    channel = ZulipChannel(account_id, account, pipeline, poll=poll, cancel=cancel, **kwargs)
    runner = asyncio.create_task(channel.start())
    waiter = asyncio.create_task(cancel.wait())
    try:
        await asyncio.wait({runner, waiter}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        waiter.cancel()
        await channel.stop()
        result, _ = await asyncio.gather(runner, waiter, return_exceptions=True)
        if isinstance(result, Exception):
            logger.error(f"Zulip account {account_id} crashed: {result!r}")


async def probe_account(client: ZulipClient) -> dict[str, Any]:
    """检查账号凭据是否可用。"""
    try:
        profile = await client.get_profile()
    except (ZulipError, httpx.HTTPError) as e:
        return {"ok": False, "error": str(e)}
    if profile.get("user_id") is None:
        return {"ok": False, "error": profile.get("msg") or "unknown user"}
    return {"ok": True, "name": profile.get("full_name")}
