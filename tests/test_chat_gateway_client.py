import asyncio
import re

import pytest

from tests.fixtures.fake_transport import wait_for
from wotd.constants import CHAT_ANONYMOUS_NICK_PREFIX
from wotd.irc.client import ChatGatewayClient
from wotd.irc.models import ConnectionConfig, ConnectionStatus

CONNECTING = ConnectionStatus.CONNECTING
CONNECTED = ConnectionStatus.CONNECTED
DISCONNECTED = ConnectionStatus.DISCONNECTED


class Recorder:
    def __init__(self):
        self.messages: list[tuple[str, str]] = []
        self.statuses: list[tuple[ConnectionStatus, str | None]] = []
        self.logs: list[str] = []

    def on_message(self, message, username):
        self.messages.append((message, username))

    def on_status(self, status, reason):
        self.statuses.append((status, reason))

    def on_log(self, line):
        self.logs.append(line)


def make_client(factory, clients, recorder, *, channel="#MyChan", username="Bot", token="abc", **kwargs):
    kwargs.setdefault("reconnect_delay", 0.01)
    kwargs.setdefault("keepalive_interval", 60)
    client = ChatGatewayClient(
        ConnectionConfig.create(channel, username, token),
        recorder.on_message,
        recorder.on_status,
        recorder.on_log,
        transport_factory=factory,
        url="wss://chat.example/ws",
        **kwargs,
    )
    clients.append(client)
    return client


@pytest.mark.asyncio
async def test_authenticated_handshake_order(transport_factory, clients):
    rec = Recorder()
    client = make_client(transport_factory, clients, rec)

    await wait_for(lambda: client.status is CONNECTED)

    transport = transport_factory.last
    assert transport.url == "wss://chat.example/ws"
    assert transport.sent[:3] == ["PASS oauth:abc", "NICK bot", "JOIN #mychan"]
    assert rec.statuses[:2] == [(CONNECTING, None), (CONNECTED, None)]
    assert client.can_send and not client.is_read_only


@pytest.mark.asyncio
async def test_anonymous_handshake_uses_guest_nick(transport_factory, clients):
    rec = Recorder()
    client = make_client(transport_factory, clients, rec, username=None, token=None)

    await wait_for(lambda: len(transport_factory.last.sent) >= 3)

    sent = transport_factory.last.sent
    assert sent[0] == "PASS SCHMOOPIIE"
    assert re.fullmatch(rf"NICK {re.escape(CHAT_ANONYMOUS_NICK_PREFIX)}\d{{5}}", sent[1])
    assert sent[2] == "JOIN #mychan"
    assert client.is_read_only
    assert "Logging in anonymously (read-only)" in rec.logs


@pytest.mark.asyncio
async def test_token_without_username_logs_in_with_guest_nick(transport_factory, clients):
    rec = Recorder()
    make_client(transport_factory, clients, rec, username=None, token="oauth:xyz")

    await wait_for(lambda: len(transport_factory.last.sent) >= 3)

    sent = transport_factory.last.sent
    assert sent[0] == "PASS oauth:xyz"
    assert sent[1].startswith(f"NICK {CHAT_ANONYMOUS_NICK_PREFIX}")


@pytest.mark.asyncio
async def test_ping_answered_with_pong(transport_factory, clients):
    rec = Recorder()
    client = make_client(transport_factory, clients, rec)
    await wait_for(lambda: client.status is CONNECTED)

    transport_factory.last.feed("PING :tmi.twitch.tv\r\n")

    await wait_for(lambda: "PONG :tmi.twitch.tv" in transport_factory.last.sent)


@pytest.mark.asyncio
async def test_chat_messages_dispatched_for_joined_channel_only(transport_factory, clients):
    rec = Recorder()
    client = make_client(transport_factory, clients, rec)
    await wait_for(lambda: client.status is CONNECTED)

    transport_factory.last.feed(
        ":alice!alice@alice.tmi.twitch.tv PRIVMSG #other :!word\r\n"
        "@badge-info=;color=#FF0000 :bob!bob@bob.tmi.twitch.tv PRIVMSG #mychan :!wotd please\r\n"
        ":carol!carol@carol.tmi.twitch.tv PRIVMSG #mychan :hello\r\n"
    )

    await wait_for(lambda: len(rec.messages) == 2)
    assert rec.messages == [("!wotd please", "bob"), ("hello", "carol")]


@pytest.mark.asyncio
async def test_async_message_callback_is_awaited(transport_factory, clients):
    received: list[str] = []

    async def on_message(message, username):
        await asyncio.sleep(0)
        received.append(f"{username}:{message}")

    client = ChatGatewayClient(
        ConnectionConfig.create("mychan"),
        on_message,
        transport_factory=transport_factory,
        reconnect_delay=0.01,
    )
    clients.append(client)
    await wait_for(lambda: client.status is CONNECTED)

    transport_factory.last.feed(":dave!dave@dave PRIVMSG #mychan :hi there")

    await wait_for(lambda: received == ["dave:hi there"])


@pytest.mark.asyncio
async def test_message_callback_error_does_not_break_connection(transport_factory, clients):
    def on_message(message, username):
        raise RuntimeError("handler exploded")

    client = ChatGatewayClient(
        ConnectionConfig.create("mychan"),
        on_message,
        transport_factory=transport_factory,
        reconnect_delay=0.01,
    )
    clients.append(client)
    await wait_for(lambda: client.status is CONNECTED)

    transport_factory.last.feed(":dave!dave@dave PRIVMSG #mychan :hi")
    transport_factory.last.feed("PING :tmi.twitch.tv")

    await wait_for(lambda: "PONG :tmi.twitch.tv" in transport_factory.last.sent)
    assert client.status is CONNECTED


@pytest.mark.asyncio
async def test_auth_failure_is_terminal(transport_factory, clients):
    rec = Recorder()
    client = make_client(transport_factory, clients, rec)
    await wait_for(lambda: client.status is CONNECTED)

    transport_factory.last.feed(":tmi.twitch.tv NOTICE * :Login authentication failed")

    await wait_for(lambda: client.status_reason == "Auth Failed")
    await asyncio.sleep(0.05)
    assert client.status is DISCONNECTED
    assert rec.statuses[-1] == (DISCONNECTED, "Auth Failed")
    assert len(transport_factory.created) == 1
    assert not client.reconnect_pending
    assert transport_factory.last.closed
    assert "CRITICAL: Authentication failed. Disconnecting." in rec.logs


@pytest.mark.asyncio
async def test_improperly_formatted_auth_is_terminal(transport_factory, clients):
    rec = Recorder()
    client = make_client(transport_factory, clients, rec)
    await wait_for(lambda: client.status is CONNECTED)

    transport_factory.last.feed(":tmi.twitch.tv NOTICE * :Improperly formatted auth")

    await wait_for(lambda: client.status_reason == "Auth Failed")
    await asyncio.sleep(0.05)
    assert len(transport_factory.created) == 1


@pytest.mark.asyncio
async def test_unexpected_close_reconnects_after_delay(transport_factory, clients):
    rec = Recorder()
    client = make_client(transport_factory, clients, rec)
    await wait_for(lambda: client.status is CONNECTED)
    first = transport_factory.last

    first.drop(1006)

    await wait_for(lambda: len(transport_factory.created) == 2)
    await wait_for(lambda: client.status is CONNECTED)
    await asyncio.sleep(0.05)
    assert len(transport_factory.created) == 2
    assert (DISCONNECTED, "Reconnecting...") in rec.statuses
    assert transport_factory.last is not first
    assert transport_factory.last.sent[:3] == ["PASS oauth:abc", "NICK bot", "JOIN #mychan"]
    assert any("Socket closed (code: 1006)" in line for line in rec.logs)


@pytest.mark.asyncio
async def test_reconnect_waits_for_delay(transport_factory, clients):
    rec = Recorder()
    client = make_client(transport_factory, clients, rec, reconnect_delay=10)
    await wait_for(lambda: client.status is CONNECTED)

    transport_factory.last.drop()

    await wait_for(lambda: client.reconnect_pending)
    await asyncio.sleep(0.05)
    assert len(transport_factory.created) == 1
    assert client.status is DISCONNECTED
    assert client.status_reason == "Reconnecting..."


@pytest.mark.asyncio
async def test_disconnect_cancels_pending_reconnect(transport_factory, clients):
    rec = Recorder()
    client = make_client(transport_factory, clients, rec, reconnect_delay=0.05)
    await wait_for(lambda: client.status is CONNECTED)
    transport_factory.last.drop()
    await wait_for(lambda: client.reconnect_pending)

    await client.disconnect()
    await asyncio.sleep(0.1)

    assert len(transport_factory.created) == 1
    assert not client.reconnect_pending
    assert client.status is DISCONNECTED
    assert client.status_reason is None


@pytest.mark.asyncio
async def test_disconnect_is_idempotent_and_suppresses_reconnect(transport_factory, clients):
    rec = Recorder()
    client = make_client(transport_factory, clients, rec)
    await wait_for(lambda: client.status is CONNECTED)

    await client.disconnect()
    await client.disconnect()
    await asyncio.sleep(0.05)

    assert transport_factory.last.closed
    assert len(transport_factory.created) == 1
    assert client.status is DISCONNECTED
    assert rec.statuses[-1] == (DISCONNECTED, None)


@pytest.mark.asyncio
async def test_send_writes_privmsg(transport_factory, clients):
    rec = Recorder()
    client = make_client(transport_factory, clients, rec)
    await wait_for(lambda: client.status is CONNECTED)

    await client.send("Hello chat")

    assert transport_factory.last.sent[-1] == "PRIVMSG #mychan :Hello chat"
    assert "Sent: Hello chat" in rec.logs


@pytest.mark.asyncio
async def test_send_truncates_long_messages(transport_factory, clients):
    rec = Recorder()
    client = make_client(transport_factory, clients, rec, max_message_length=450)
    await wait_for(lambda: client.status is CONNECTED)

    await client.send("x" * 600)

    assert transport_factory.last.sent[-1] == "PRIVMSG #mychan :" + "x" * 450


@pytest.mark.asyncio
async def test_send_in_read_only_mode_is_a_logged_no_op(transport_factory, clients):
    rec = Recorder()
    client = make_client(transport_factory, clients, rec, username=None, token=None)
    await wait_for(lambda: client.status is CONNECTED)
    before = list(transport_factory.last.sent)

    await client.send("hello")

    assert transport_factory.last.sent == before
    assert "Cannot send: no OAuth token provided (read-only mode)." in rec.logs


@pytest.mark.asyncio
async def test_send_without_open_socket_is_a_logged_no_op(transport_factory, clients):
    rec = Recorder()
    client = make_client(transport_factory, clients, rec)
    await wait_for(lambda: client.status is CONNECTED)
    await client.disconnect()

    await client.send("hello")

    assert not any(line.startswith("PRIVMSG") for line in transport_factory.last.sent)
    assert "Cannot send: socket not open." in rec.logs


@pytest.mark.asyncio
async def test_transport_creation_failure_reports_socket_error(transport_factory, clients):
    transport_factory.create_error = ValueError("bad url")
    rec = Recorder()
    client = make_client(transport_factory, clients, rec)

    await asyncio.sleep(0.05)

    assert client.status is DISCONNECTED
    assert client.status_reason == "Socket Error"
    assert not client.reconnect_pending
    assert transport_factory.created == []


@pytest.mark.asyncio
async def test_connect_failure_reports_network_error_and_retries(transport_factory, clients):
    transport_factory.connect_error = OSError("refused")
    rec = Recorder()
    make_client(transport_factory, clients, rec)

    await wait_for(lambda: len(transport_factory.created) >= 2)

    reasons = [reason for status, reason in rec.statuses if status is DISCONNECTED]
    assert "Network Error" in reasons
    assert "Reconnecting..." in reasons


@pytest.mark.asyncio
async def test_transport_error_event_reports_network_error(transport_factory, clients):
    rec = Recorder()
    client = make_client(transport_factory, clients, rec, reconnect_delay=10)
    await wait_for(lambda: client.status is CONNECTED)

    transport_factory.last.error("connection reset")

    await wait_for(lambda: (DISCONNECTED, "Network Error") in rec.statuses)
    assert any("WebSocket error detected: connection reset" in line for line in rec.logs)


@pytest.mark.asyncio
async def test_keepalive_sends_ping(transport_factory, clients):
    rec = Recorder()
    client = make_client(transport_factory, clients, rec, keepalive_interval=0.01)
    await wait_for(lambda: client.status is CONNECTED)

    await wait_for(lambda: "PING" in transport_factory.last.sent)


@pytest.mark.asyncio
async def test_keepalive_stops_after_disconnect(transport_factory, clients):
    rec = Recorder()
    client = make_client(transport_factory, clients, rec, keepalive_interval=0.01)
    await wait_for(lambda: client.status is CONNECTED)

    await client.disconnect()
    count = transport_factory.last.sent.count("PING")
    await asyncio.sleep(0.05)

    assert transport_factory.last.sent.count("PING") == count


@pytest.mark.asyncio
async def test_channel_is_normalized(transport_factory, clients):
    rec = Recorder()
    client = make_client(transport_factory, clients, rec, channel="  #SomeChannel ")

    assert client.channel == "somechannel"


@pytest.mark.asyncio
async def test_join_confirmation_is_logged(transport_factory, clients):
    rec = Recorder()
    client = make_client(transport_factory, clients, rec)
    await wait_for(lambda: client.status is CONNECTED)

    transport_factory.last.feed(":bot!bot@bot.tmi.twitch.tv JOIN #mychan")

    await wait_for(lambda: "Successfully joined #mychan" in rec.logs)


@pytest.mark.asyncio
async def test_async_context_manager_disconnects(transport_factory):
    rec = Recorder()
    async with ChatGatewayClient(
        ConnectionConfig.create("mychan"),
        rec.on_message,
        rec.on_status,
        transport_factory=transport_factory,
    ) as client:
        await wait_for(lambda: client.status is CONNECTED)

    assert client.status is DISCONNECTED
    assert transport_factory.last.closed


def test_client_requires_running_loop(transport_factory):
    with pytest.raises(RuntimeError):
        ChatGatewayClient(
            ConnectionConfig.create("mychan"),
            lambda m, u: None,
            transport_factory=transport_factory,
        )


@pytest.mark.asyncio
async def test_each_ping_gets_one_pong_before_next_line(transport_factory, clients):
    sent_at_dispatch: list[list[str]] = []

    def on_message(message, username):
        sent_at_dispatch.append(list(transport_factory.last.sent))

    client = ChatGatewayClient(
        ConnectionConfig.create("mychan"),
        on_message,
        transport_factory=transport_factory,
        reconnect_delay=0.01,
    )
    clients.append(client)
    await wait_for(lambda: client.status is CONNECTED)

    transport_factory.last.feed("PING :tmi.twitch.tv\r\n:a!a@a PRIVMSG #mychan :x\r\n")

    await wait_for(lambda: len(sent_at_dispatch) == 1)
    assert transport_factory.last.sent.count("PONG :tmi.twitch.tv") == 1
    assert sent_at_dispatch[0][-1] == "PONG :tmi.twitch.tv"


@pytest.mark.asyncio
async def test_viewer_quoting_auth_failure_text_is_just_chat(transport_factory, clients):
    rec = Recorder()
    client = make_client(transport_factory, clients, rec)
    await wait_for(lambda: client.status is CONNECTED)

    transport_factory.last.feed(
        ":troll!troll@troll.tmi.twitch.tv PRIVMSG #mychan :Login authentication failed lol"
    )

    await wait_for(lambda: len(rec.messages) == 1)
    assert rec.messages == [("Login authentication failed lol", "troll")]
    assert client.status is CONNECTED
    assert client.status_reason is None
    assert not transport_factory.last.closed


@pytest.mark.asyncio
async def test_failed_notice_without_auth_marker_is_only_logged(transport_factory, clients):
    rec = Recorder()
    client = make_client(transport_factory, clients, rec)
    await wait_for(lambda: client.status is CONNECTED)

    transport_factory.last.feed(":tmi.twitch.tv NOTICE #mychan :Your message was unsuccessful")

    await wait_for(lambda: any(line.startswith("Server NOTICE:") for line in rec.logs))
    assert client.status is CONNECTED


@pytest.mark.asyncio
async def test_unicode_line_separators_stay_inside_the_message(transport_factory, clients):
    rec = Recorder()
    client = make_client(transport_factory, clients, rec)
    await wait_for(lambda: client.status is CONNECTED)
    before = len(transport_factory.last.sent)

    transport_factory.last.feed(
        ":alice!a@a PRIVMSG #mychan :hello\u2028:mod!m@m PRIVMSG #mychan :!word forged\r\n"
        ":bob!b@b PRIVMSG #mychan :next\u0085PING\r\n"
    )

    await wait_for(lambda: len(rec.messages) == 2)
    assert rec.messages == [
        ("hello\u2028:mod!m@m PRIVMSG #mychan :!word forged", "alice"),
        ("next\u0085PING", "bob"),
    ]
    assert len(transport_factory.last.sent) == before


@pytest.mark.asyncio
async def test_connect_while_live_replaces_socket(transport_factory, clients):
    rec = Recorder()
    client = make_client(transport_factory, clients, rec)
    await wait_for(lambda: client.status is CONNECTED)
    first = transport_factory.last

    client._connect()

    await wait_for(lambda: len(transport_factory.created) == 2 and client.status is CONNECTED)
    await wait_for(lambda: first.closed)
    assert [t.is_open for t in transport_factory.created] == [False, True]
    assert not client.reconnect_pending


@pytest.mark.asyncio
async def test_connect_while_reconnect_pending_leaves_single_timer(transport_factory, clients):
    rec = Recorder()
    client = make_client(transport_factory, clients, rec, reconnect_delay=10)
    await wait_for(lambda: client.status is CONNECTED)
    transport_factory.last.drop()
    await wait_for(lambda: client.reconnect_pending)

    client._connect()

    assert not client.reconnect_pending
    await wait_for(lambda: len(transport_factory.created) == 2 and client.status is CONNECTED)
    assert [t.is_open for t in transport_factory.created] == [False, True]

    transport_factory.last.drop()
    await wait_for(lambda: client.reconnect_pending)
    pending = client._reconnect_handle
    await asyncio.sleep(0.05)
    assert client._reconnect_handle is pending
    assert len(transport_factory.created) == 2


@pytest.mark.asyncio
async def test_malformed_line_is_logged_and_dropped(transport_factory, clients):
    rec = Recorder()
    client = make_client(transport_factory, clients, rec)
    await wait_for(lambda: client.status is CONNECTED)

    transport_factory.last.feed("@badge-info=;color=\r\n:carol!c@c PRIVMSG #mychan :still here")

    await wait_for(lambda: rec.messages == [("still here", "carol")])
    assert any(line.startswith("Parse error:") for line in rec.logs)
    assert client.status is CONNECTED
