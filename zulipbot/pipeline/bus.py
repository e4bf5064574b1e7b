"""基于进程内消息总线的回复管线。"""

from zulipbot.bus.queue import MessageBus, ReplyRequest
from zulipbot.pipeline.base import Deliver, ReplyContext, ReplyPipeline


class BusReplyPipeline(ReplyPipeline):
    """把入站上下文连同 `deliver` 一起发布到总线，由宿主消费并回复。"""

    def __init__(self, bus: MessageBus, agent_id: str = "main"):
        super().__init__(agent_id)
        self.bus = bus

    async def dispatch(self, ctx: ReplyContext, deliver: Deliver) -> None:
        await self.bus.publish_inbound(ReplyRequest(context=ctx, deliver=deliver))
