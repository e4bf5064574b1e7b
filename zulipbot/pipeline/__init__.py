"""模块说明：回复管线。"""

from zulipbot.pipeline.base import Deliver, ReplyContext, ReplyPipeline, Route
from zulipbot.pipeline.bus import BusReplyPipeline

__all__ = ["BusReplyPipeline", "Deliver", "ReplyContext", "ReplyPipeline", "Route"]
