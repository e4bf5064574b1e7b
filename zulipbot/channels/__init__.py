"""模块说明：渠道。"""

from zulipbot.channels.base import BaseChannel
from zulipbot.channels.zulip import ZulipChannel, start_account

__all__ = ["BaseChannel", "ZulipChannel", "start_account"]
