"""Unit tests for client stream events and the character pacer."""

import json
from unittest.mock import patch

import pytest

from assistant_relay.chat.events import CharacterPacer, ClientStreamEvent, encode_sse


class TestClientStreamEvent:
    """Tests for ClientStreamEvent encoding."""

    def test_start_uses_camel_case_thread_id(self):
        """start carries the thread id as threadId."""
        frame = ClientStreamEvent.start("thread_1").encode()

        assert frame == 'data: {"type":"start","threadId":"thread_1"}\n\n'

    def test_message(self):
        """message carries one piece of text and nothing else."""
        frame = encode_sse(ClientStreamEvent.message("a"))

        assert json.loads(frame.removeprefix("data: ")) == {"type": "message", "text": "a"}
        assert frame.endswith("\n\n")

    def test_done(self):
        """done has only a type."""
        assert ClientStreamEvent.done().encode() == 'data: {"type":"done"}\n\n'

    def test_error(self):
        """error carries the error message."""
        payload = json.loads(ClientStreamEvent.failed("Run failed").encode().removeprefix("data: "))

        assert payload == {"type": "error", "error": "Run failed"}

    def test_newline_in_text_stays_in_one_frame(self):
        """JSON escaping keeps a newline character inside a single data line."""
        frame = ClientStreamEvent.message("\n").encode()

        assert frame.count("\n") == 2

    def test_terminal(self):
        """Only done and error are terminal."""
        assert ClientStreamEvent.done().is_terminal
        assert ClientStreamEvent.failed("x").is_terminal
        assert not ClientStreamEvent.message("x").is_terminal
        assert not ClientStreamEvent.start("t").is_terminal


class TestCharacterPacer:
    """Tests for CharacterPacer."""

    async def test_one_item_per_character(self):
        """Text is split into single characters, in order."""
        pacer = CharacterPacer(0)

        assert [c async for c in pacer.pace("héllo 👋")] == list("héllo 👋")

    async def test_sleeps_after_each_character(self):
        """The configured delay is applied once per character."""
        pacer = CharacterPacer(0.01)

        with patch("assistant_relay.chat.events.asyncio.sleep") as mock_sleep:
            [c async for c in pacer.pace("abc")]

        assert mock_sleep.await_count == 3
        mock_sleep.assert_awaited_with(0.01)

    async def test_zero_delay_never_sleeps(self):
        """A zero delay disables pacing."""
        with patch("assistant_relay.chat.events.asyncio.sleep") as mock_sleep:
            [c async for c in CharacterPacer(0).pace("abc")]

        mock_sleep.assert_not_called()

    def test_negative_delay_rejected(self):
        """Negative delays are invalid."""
        with pytest.raises(ValueError):
            CharacterPacer(-0.1)
