"""模块说明：__init__。"""

from zulipbot.bus.events import InboundMessage, OutboundMessage
from zulipbot.bus.queue import MessageBus, ReplyRequest

__all__ = ["MessageBus", "ReplyRequest", "InboundMessage", "OutboundMessage"]
