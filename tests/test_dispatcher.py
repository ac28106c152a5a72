import os
from unittest.mock import patch, AsyncMock

import pytest

from app.channels.push_client import ConsolePushTransport, ExpoPushTransport
from app.core.errors import DispatchError
from app.core.models import LinkPayload, Person
from app.notifications.dispatcher import (
    NotificationDispatcher, collect_tokens, resolve_recipients, get_dispatcher, reset_dispatcher,
)


ALEX = Person(id="u1", name="Alex Rivera", delivery_token="ExponentPushToken[alex]")
SAM = Person(id="u2", name="Sam Okafor", delivery_token="ExponentPushToken[sam]")
JO = Person(id="u3", name="Jo Lindqvist")
KAI = Person(id="u4", name="Kai Moreau", delivery_token="ExponentPushToken[kai]")

LINK = LinkPayload(route="Event", params={"eventId": "evt-1"})


def _transport() -> AsyncMock:
    transport = AsyncMock()
    transport.driver = "mock"
    return transport


class TestCollectTokens:
    """Test recipient filtering and token resolution."""

    def test_excludes_organizer(self):
        assert collect_tokens([ALEX, SAM, KAI], exclude_id="u1") == [SAM.delivery_token, KAI.delivery_token]

    def test_skips_people_without_tokens(self):
        assert collect_tokens([ALEX, JO, SAM], exclude_id="u1") == [SAM.delivery_token]

    def test_collapses_duplicate_tokens(self):
        twin = Person(id="u5", name="Sam Tablet", delivery_token=SAM.delivery_token)
        assert collect_tokens([SAM, twin], exclude_id="u1") == [SAM.delivery_token]

    @pytest.mark.parametrize("recipients", [
        [ALEX],
        [ALEX, SAM],
        [SAM, ALEX, KAI],
        [JO, ALEX, KAI, SAM],
    ])
    def test_organizer_token_never_included(self, recipients):
        tokens = collect_tokens(recipients, exclude_id=ALEX.id)
        assert ALEX.delivery_token not in tokens
        expected = [p.delivery_token for p in recipients if p.id != ALEX.id and p.delivery_token]
        assert tokens == expected


class TestResolveRecipients:
    """Test mapping attendee ids to people."""

    def test_keeps_attendee_order_and_skips_unknown(self):
        people = [ALEX, SAM, JO]
        assert resolve_recipients(people, ["u3", "ghost", "u1"]) == [JO, ALEX]


class TestFanout:
    """Test NotificationDispatcher.fanout."""

    @pytest.mark.asyncio
    async def test_single_transport_call_with_all_tokens(self):
        transport = _transport()
        dispatcher = NotificationDispatcher(transport)

        sent = await dispatcher.fanout([ALEX, SAM, KAI], "u1", "Standup has been Scheduled", "Alex just scheduled...", LINK)

        assert sent == 2
        transport.send.assert_awaited_once_with(
            [SAM.delivery_token, KAI.delivery_token],
            "Standup has been Scheduled",
            "Alex just scheduled...",
            {"navigate": {"route": "Event", "params": {"eventId": "evt-1"}}},
        )

    @pytest.mark.asyncio
    async def test_no_tokens_is_a_noop(self):
        """Test zero resolvable tokens -> zero transport calls, no error."""
        transport = _transport()
        dispatcher = NotificationDispatcher(transport)

        sent = await dispatcher.fanout([ALEX, JO], "u1", "t", "b", LINK)

        assert sent == 0
        transport.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_empty_recipients_is_a_noop(self):
        transport = _transport()
        sent = await NotificationDispatcher(transport).fanout([], "u1", "t", "b", LINK)
        assert sent == 0
        transport.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_transport_error_is_wrapped(self):
        transport = _transport()
        transport.send.side_effect = RuntimeError("socket closed")
        dispatcher = NotificationDispatcher(transport)

        with pytest.raises(DispatchError) as exc_info:
            await dispatcher.fanout([SAM], "u1", "t", "b", LINK)

        assert "socket closed" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_dispatch_error_passes_through(self):
        transport = _transport()
        original = DispatchError("Expo push HTTP error: 500")
        transport.send.side_effect = original

        with pytest.raises(DispatchError) as exc_info:
            await NotificationDispatcher(transport).fanout([SAM], "u1", "t", "b", LINK)

        assert exc_info.value is original

    @pytest.mark.asyncio
    async def test_logs_structured_event(self):
        transport = _transport()
        with patch("app.notifications.dispatcher.log_event") as mock_log:
            await NotificationDispatcher(transport).fanout([SAM], "u1", "Standup", "b", LINK)

        kwargs = mock_log.call_args.kwargs
        assert kwargs["action"] == "notified"
        assert kwargs["driver"] == "mock"
        assert kwargs["recipients_count"] == 1
        assert kwargs["event_id"] == "evt-1"


class TestDispatcherFactory:
    """Test PUSH_DRIVER wiring."""

    def setup_method(self):
        reset_dispatcher()

    def teardown_method(self):
        reset_dispatcher()

    def test_console_by_default(self):
        with patch.dict(os.environ, {}, clear=True):
            dispatcher = get_dispatcher()
            assert isinstance(dispatcher.transport, ConsolePushTransport)
            assert dispatcher.driver == "console"
            assert get_dispatcher() is dispatcher

    def test_expo_driver(self):
        with patch.dict(os.environ, {"PUSH_DRIVER": "expo", "EXPO_ACCESS_TOKEN": "tok"}):
            dispatcher = get_dispatcher()
            assert isinstance(dispatcher.transport, ExpoPushTransport)
            assert dispatcher.transport.access_token == "tok"
