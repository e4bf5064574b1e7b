"""Tests for the multi-account gateway."""

import pytest

from zulipbot.bus.queue import MessageBus
from zulipbot.config.schema import Config, ZulipAccountConfig
from zulipbot.gateway import Gateway
from zulipbot.pipeline.bus import BusReplyPipeline


def make_config(tmp_path, enabled=True):
    config = Config()
    config.channels.zulip.enabled = enabled
    config.channels.zulip.credentials_file = str(tmp_path / "missing.env")
    config.channels.zulip.default_topic = "bots"
    config.channels.zulip.accounts = {
        "a": ZulipAccountConfig(email="a@example.com", api_key="k", site="https://a.zulipchat.com"),
        "b": ZulipAccountConfig(email="b@example.com", api_key="k", site="https://b.zulipchat.com"),
    }
    return config


class TestGateway:
    """Test per-account channel construction."""

    @pytest.mark.asyncio
    async def test_one_channel_per_account(self, tmp_path):
        gateway = Gateway(make_config(tmp_path), BusReplyPipeline(MessageBus()))
        channels = gateway.build_channels()

        assert set(channels) == {"a", "b"}
        assert channels["a"].cancel is not channels["b"].cancel
        assert channels["a"].client is not channels["b"].client
        assert channels["a"].default_topic == "bots"
        await gateway.stop()

    @pytest.mark.asyncio
    async def test_disabled_gateway_starts_nothing(self, tmp_path):
        gateway = Gateway(make_config(tmp_path, enabled=False), BusReplyPipeline(MessageBus()))
        await gateway.start()

        assert gateway.channels == {}
