"""Tests for event translation: markup stripping, scope resolution, self-filtering."""

from zulipbot.zulip.translate import (
    resolve_chat_id,
    strip_html,
    summarize_reaction,
    translate_event,
    translate_message,
    translate_reaction,
)

from tests.factories import BOT_ID, message_event, private_message, stream_message


class TestStripHtml:
    """Test markup removal."""

    def test_removes_simple_tags(self):
        assert strip_html("<p>Hello</p>") == "Hello"

    def test_removes_nested_tags(self):
        assert strip_html("<div><span>Hello</span></div>") == "Hello"

    def test_removes_tags_with_attributes(self):
        assert strip_html('<a href="http://example.com">link</a>') == "link"

    def test_zulip_formatted_message(self):
        assert strip_html("<p>Hello <strong>world</strong>!</p>") == "Hello world!"

    def test_plain_text_unchanged(self):
        assert strip_html("Hello world") == "Hello world"

    def test_empty_and_none(self):
        assert strip_html("") == ""
        assert strip_html(None) == ""


class TestResolveChatId:
    """Test scope to chat id mapping."""

    def test_stream_message(self):
        assert resolve_chat_id(stream_message(stream="general")) == "stream:general"

    def test_private_message_uses_sender_email(self):
        assert resolve_chat_id(private_message(sender_id=3)) == "private:user3@example.com"


class TestTranslateMessage:
    """Test canonical message construction."""

    def test_stream_message_fields(self):
        msg = translate_event(message_event(5, stream_message()), BOT_ID, "default")
        assert msg is not None
        assert msg.chat_id == "stream:general"
        assert msg.chat_type == "group"
        assert msg.content == "hi"
        assert msg.thread_label == "intro"
        assert msg.group_label == "general"
        assert msg.sender_id == "2"
        assert msg.sender_handle == "user2@example.com"
        assert msg.timestamp_ms == 1700000000 * 1000
        assert msg.message_id == "501"
        assert msg.sender == "zulip:user2@example.com"

    def test_private_message_has_no_thread(self):
        msg = translate_message(private_message(), BOT_ID, "default")
        assert msg.chat_type == "direct"
        assert msg.chat_id == "private:user3@example.com"
        assert msg.thread_label is None
        assert msg.group_label is None
        assert msg.content == "hey"

    def test_self_message_is_skipped(self):
        assert translate_event(message_event(7, stream_message(sender_id=BOT_ID)), BOT_ID, "default") is None

    def test_self_filter_compares_as_strings(self):
        assert translate_message(stream_message(sender_id=BOT_ID), str(BOT_ID), "default") is None

    def test_non_message_events_are_skipped(self):
        assert translate_event({"id": 9, "type": "heartbeat"}, BOT_ID, "default") is None

    def test_session_key_includes_topic(self):
        msg = translate_message(stream_message(), BOT_ID, "default")
        assert msg.session_key == "zulip:default:stream:general:topic:intro"


class TestTranslateReaction:
    """Test reaction events mapped onto the reacted message's scope."""

    def _event(self, user_id=2, op="add"):
        return {
            "id": 11,
            "type": "reaction",
            "op": op,
            "user_id": user_id,
            "user": {"user_id": user_id, "email": f"user{user_id}@example.com", "full_name": "Alice"},
            "message_id": 501,
            "emoji_name": "thumbs_up",
        }

    def test_reaction_summary_is_stripped(self):
        target = stream_message(content="<p>Ship <em>it</em></p>")
        assert summarize_reaction(self._event(), target) == "[reaction] Alice reacted :thumbs_up: to: Ship it"

    def test_reaction_uses_target_scope(self):
        msg = translate_reaction(self._event(), stream_message(), BOT_ID, "default")
        assert msg.chat_id == "stream:general"
        assert msg.thread_label == "intro"
        assert msg.sender_handle == "user2@example.com"
        assert msg.metadata["reaction"] == "thumbs_up"

    def test_bot_reaction_is_skipped(self):
        assert translate_reaction(self._event(user_id=BOT_ID), stream_message(), BOT_ID, "default") is None

    def test_removed_reaction_is_skipped(self):
        assert translate_reaction(self._event(op="remove"), stream_message(), BOT_ID, "default") is None
