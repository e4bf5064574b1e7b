"""zulipbot - 把 Zulip 事件队列桥接到回复管线。"""

__version__ = "0.1.0"
