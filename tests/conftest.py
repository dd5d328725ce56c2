import pytest

from realtime.state import ChatContext

ADMIN_SENTINEL = "letmein"


class RecordingTransport:
    """In-memory stand-in for SocketIOTransport.

    Channel sends are delivered to whoever is in the room at send time, so
    tests can ask what a given connection actually received.
    """

    def __init__(self):
        self.rooms: dict[str, set[str]] = {}
        self.inbox: dict[str, list[tuple[str, object]]] = {}
        self.channel_sends: list[tuple[str, str, object]] = []
        self.broadcasts: list[tuple[str, object]] = []
        self.disconnected: list[str] = []

    def join(self, sid, channel):
        self.rooms.setdefault(channel, set()).add(sid)

    def leave(self, sid, channel):
        self.rooms.get(channel, set()).discard(sid)

    def send_to_channel(self, channel, event, payload):
        self.channel_sends.append((channel, event, payload))
        for sid in self.rooms.get(channel, set()):
            self.inbox.setdefault(sid, []).append((event, payload))

    def send_to_connection(self, sid, event, payload):
        self.inbox.setdefault(sid, []).append((event, payload))

    def send_to_all(self, event, payload):
        self.broadcasts.append((event, payload))

    def disconnect(self, sid):
        self.disconnected.append(sid)

    # helpers
    def received(self, sid, event=None):
        items = self.inbox.get(sid, [])
        if event is None:
            return list(items)
        return [p for e, p in items if e == event]

    def clear(self):
        self.inbox.clear()
        self.channel_sends.clear()
        self.broadcasts.clear()


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def ctx(transport):
    return ChatContext(transport, {"admin_sentinel": ADMIN_SENTINEL})


@pytest.fixture
def make_user(ctx):
    """Connect + register a user, optionally joining channels."""

    def _make(sid, name, *channels, avatar=None):
        ctx.connect(sid)
        conn, err = ctx.register(sid, {"name": name, "avatar": avatar})
        assert err is None, err
        for ch in channels:
            assert ctx.channels.join(sid, ch)
        return conn

    return _make


@pytest.fixture
def settings():
    from config import get_default_settings

    s = get_default_settings()
    s.update({"admin_sentinel": ADMIN_SENTINEL, "secret_key": "test-secret", "log_file_path": ""})
    return s


@pytest.fixture
def app_and_socketio(settings):
    from server_init import create_app

    app, socketio = create_app(settings)
    app.config["TESTING"] = True
    return app, socketio


@pytest.fixture
def sio_client(app_and_socketio):
    """Factory for connected Socket.IO test clients; all disconnected at teardown."""
    app, socketio = app_and_socketio
    clients = []

    def _make():
        client = socketio.test_client(app)
        assert client.is_connected()
        clients.append(client)
        return client

    yield _make
    for c in clients:
        if c.is_connected():
            c.disconnect()
