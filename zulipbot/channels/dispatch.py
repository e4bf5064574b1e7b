"""把规范入站消息交给回复管线，并把回复投递回原会话范围。

单条消息内的任何异常都在这里截住，只记日志，不影响轮询循环和游标。
"""

from typing import Any, Awaitable, Callable

from loguru import logger

from zulipbot.bus.events import InboundMessage, OutboundMessage
from zulipbot.pipeline.base import Deliver, ReplyContext, ReplyPipeline

Sender = Callable[[OutboundMessage], Awaitable[Any]]


def extract_reply_text(payload: Any) -> str:
    """从字符串或结构化负载（`body` / `text` 字段）中取出纯文本。"""
    if payload is None:
        return ""
    if isinstance(payload, str):
        return payload.strip()
    if isinstance(payload, dict):
        text = payload.get("body") or payload.get("text") or ""
    else:
        text = getattr(payload, "body", None) or getattr(payload, "text", None) or ""
    return text.strip() if isinstance(text, str) else ""


def extract_reply_media(payload: Any) -> list[str]:
    """取出负载里的媒体链接（`mediaUrl` 单个或 `media` 列表）。"""
    if payload is None or isinstance(payload, str):
        return []
    if isinstance(payload, dict):
        single, many = payload.get("mediaUrl"), payload.get("media")
    else:
        single, many = getattr(payload, "mediaUrl", None), getattr(payload, "media", None)

    urls = [single] if isinstance(single, str) else []
    if isinstance(many, str):
        urls.append(many)
    elif isinstance(many, (list, tuple)):
        urls.extend(u for u in many if isinstance(u, str))
    return [u.strip() for u in urls if u.strip()]


class ReplyDispatcher:
    """类说明：ReplyDispatcher。"""

    def __init__(self, pipeline: ReplyPipeline, send: Sender):
        self.pipeline = pipeline
        self.send = send

    async def dispatch(self, msg: InboundMessage) -> None:
        """异步函数说明：dispatch。"""
        try:
            route = self.pipeline.resolve_route(msg)
            ctx = ReplyContext.from_message(msg, route)
            await self.pipeline.dispatch(ctx, self.make_deliver(msg))
        except Exception as e:
            logger.error(f"Error dispatching Zulip message {msg.message_id} from {msg.chat_id}: {e!r}")

    def make_deliver(self, msg: InboundMessage) -> Deliver:
        """回复复用触发消息的范围：同一频道+topic，或同一私信对象。

        文本和媒体链接都为空的回复直接丢弃。
        """

        async def deliver(payload: Any) -> None:
            text = extract_reply_text(payload)
            media = extract_reply_media(payload)
            if not text and not media:
                return
            try:
                await self.send(OutboundMessage(
                    channel=msg.channel,
                    chat_id=msg.chat_id,
                    content=text,
                    topic=msg.thread_label,
                    reply_to=msg.message_id,
                    media=media,
                ))
            except Exception as e:
                logger.error(f"Error delivering Zulip reply to {msg.chat_id}: {e!r}")

        return deliver
