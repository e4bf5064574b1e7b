"""Tests for best-effort context backfill."""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from zulipbot.zulip.backfill import SELF_DISPLAY, ContextBackfiller, build_narrow, format_history_line
from zulipbot.zulip.client import ZulipClient
from zulipbot.zulip.translate import translate_message

from tests.factories import BOT_EMAIL, BOT_ID, private_message, stream_message


def make_backfiller(get_messages, timeout_s=10.0):
    client = MagicMock()
    client.get_messages = get_messages
    return ContextBackfiller(client, BOT_ID, BOT_EMAIL, timeout_s=timeout_s), client


class TestNarrow:
    """Test scope filters."""

    def test_stream_narrow_uses_stream_and_topic(self):
        msg = translate_message(stream_message(), BOT_ID, "default")
        assert build_narrow(msg, BOT_EMAIL) == [
            {"operator": "stream", "operand": "general"},
            {"operator": "topic", "operand": "intro"},
        ]

    def test_stream_narrow_without_topic(self):
        msg = translate_message(stream_message(topic=""), BOT_ID, "default")
        assert build_narrow(msg, BOT_EMAIL) == [{"operator": "stream", "operand": "general"}]

    def test_direct_narrow_uses_comma_separated_addresses(self):
        msg = translate_message(private_message(), BOT_ID, "default")
        assert build_narrow(msg, BOT_EMAIL) == [
            {"operator": "dm", "operand": f"user3@example.com,{BOT_EMAIL}"},
        ]


class TestFormatHistoryLine:
    """Test transcript line formatting."""

    def test_plain_line(self):
        line = format_history_line(stream_message(content="<p>Hello <b>there</b></p>"), BOT_ID)
        assert line == "[User 2] Hello there"

    def test_bot_uses_placeholder(self):
        line = format_history_line(stream_message(sender_id=BOT_ID, content="<p>done</p>"), BOT_ID)
        assert line == f"[{SELF_DISPLAY}] done"

    def test_reactions_suffix(self):
        raw = stream_message(
            content="<p>lunch?</p>",
            reactions=[{"emoji_name": "thumbs_up"}, {"emoji_name": "tada"}],
        )
        assert format_history_line(raw, BOT_ID) == "[User 2] lunch? [reacts: thumbs_up, tada]"


class TestFetchContext:
    """Test that failures never escape."""

    @pytest.mark.asyncio
    async def test_returns_transcript(self):
        history = [stream_message(msg_id=498, content="<p>one</p>"), stream_message(msg_id=499, content="two")]
        backfiller, client = make_backfiller(AsyncMock(return_value=history))
        msg = translate_message(stream_message(), BOT_ID, "default")

        context = await backfiller.fetch_context(msg, 501, 5)

        assert context == "[User 2] one\n[User 2] two"
        kwargs = client.get_messages.await_args.kwargs
        assert kwargs["anchor"] == 501
        assert kwargs["num_before"] == 5
        assert kwargs["include_anchor"] is False

    @pytest.mark.asyncio
    async def test_network_failure_returns_none(self):
        backfiller, _ = make_backfiller(AsyncMock(side_effect=httpx.ConnectError("refused")))
        msg = translate_message(stream_message(), BOT_ID, "default")
        assert await backfiller.fetch_context(msg, 501, 5) is None

    @pytest.mark.asyncio
    async def test_malformed_response_returns_none(self):
        backfiller, _ = make_backfiller(AsyncMock(return_value=[None]))
        msg = translate_message(stream_message(), BOT_ID, "default")
        assert await backfiller.fetch_context(msg, 501, 5) is None

    @pytest.mark.asyncio
    async def test_empty_history_returns_none(self):
        backfiller, _ = make_backfiller(AsyncMock(return_value=[]))
        msg = translate_message(stream_message(), BOT_ID, "default")
        assert await backfiller.fetch_context(msg, 501, 5) is None

    @pytest.mark.asyncio
    async def test_slow_fetch_times_out(self):
        async def slow(**kwargs):
            await asyncio.sleep(5)
            return []

        backfiller, _ = make_backfiller(slow, timeout_s=0.01)
        msg = translate_message(stream_message(), BOT_ID, "default")
        assert await backfiller.fetch_context(msg, 501, 5) is None

    @pytest.mark.asyncio
    async def test_zero_limit_skips_fetch(self):
        backfiller, client = make_backfiller(AsyncMock(return_value=[]))
        msg = translate_message(stream_message(), BOT_ID, "default")
        assert await backfiller.fetch_context(msg, 501, 0) is None
        client.get_messages.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_direct_narrow_on_the_wire(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={
                "result": "success",
                "messages": [private_message(msg_id=600, content="<p>earlier</p>")],
            })

        client = ZulipClient(
            "https://example.zulipchat.com", BOT_EMAIL, "test-api-key", transport=httpx.MockTransport(handler)
        )
        backfiller = ContextBackfiller(client, BOT_ID, BOT_EMAIL)
        msg = translate_message(private_message(), BOT_ID, "default")

        context = await backfiller.fetch_context(msg, 601, 5)

        assert context == "[User 3] earlier"
        narrow = json.loads(seen[0].url.params["narrow"])
        assert narrow == [{"operator": "dm", "operand": f"user3@example.com,{BOT_EMAIL}"}]
        await client.aclose()
