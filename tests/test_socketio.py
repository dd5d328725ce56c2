"""End-to-end tests through Flask-SocketIO's test client."""

import pytest

from router import INVALID_MEDIA_TYPE

ADMIN_SENTINEL = "letmein"

PNG = "data:image/png;base64,iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="


def events(client, name):
    return [e["args"][0] if e["args"] else None for e in client.get_received() if e["name"] == name]


@pytest.fixture
def user(sio_client):
    def _user(name, *channels):
        client = sio_client()
        ack = client.emit("register_identity", {"name": name}, callback=True)
        assert ack["success"], ack
        for ch in channels:
            client.emit("join_channel", ch)
        client.get_received()
        return client

    return _user


def test_registration_scenario(sio_client):
    x = sio_client()
    y = sio_client()

    ack = x.emit("register_identity", {"name": "alice"}, callback=True)
    assert ack["success"] is True
    assert ack["username"] == "alice"
    assert ack["is_admin"] is False
    assert ack["profile"]["display_name"] == "alice"
    assert ack["id"]

    ack = y.emit("register_identity", {"name": "alice"}, callback=True)
    assert ack == {"success": False, "message": "Username already taken!"}

    ack = y.emit("set_username", "bob", callback=True)
    assert ack["success"] is True
    assert ack["username"] == "bob"


def test_admin_sentinel_registration(sio_client):
    c = sio_client()
    ack = c.emit("register_identity", ADMIN_SENTINEL, callback=True)
    assert ack["username"] == "Admin"
    assert ack["is_admin"] is True
    assert ack["profile"]["badges"] == ["admin"]


def test_join_and_message_scoping(user):
    alice = user("alice")
    bob = user("bob", "general")
    carol = user("carol", "random")
    lurker = user("dave")

    alice.emit("join_channel", "general")
    received = alice.get_received()
    names = [e["name"] for e in received]
    assert "chat_message" in names
    assert "roster_updated" in names
    assert "channel_list_updated" in names
    bob_join = events(bob, "chat_message")
    assert bob_join[-1]["message"] == "alice joined #general"

    ack = alice.emit("send_message", {"server": "general", "message": "hello"}, callback=True)
    assert ack == {"success": True}

    for client in (alice, bob):
        msgs = events(client, "chat_message")
        assert len(msgs) == 1
        assert msgs[0]["user"] == "alice"
        assert msgs[0]["message"] == "hello"
    assert events(carol, "chat_message") == []
    assert events(lurker, "chat_message") == []


def test_send_without_membership_is_dropped(user):
    alice = user("alice", "random")
    bob = user("bob", "general")
    alice.emit("send_message", {"server": "general", "message": "sneaky"})
    assert events(bob, "chat_message") == []
    assert events(alice, "chat_message") == []


def test_list_channels_and_online(user):
    alice = user("alice", "general")
    ack = alice.emit("list_channels", callback=True)
    assert ack["success"] is True
    assert [c["name"] for c in ack["channels"]][:5] == ["general", "random", "gaming", "music", "tech"]
    assert ack["channels"][0]["online"] == 1

    roster = alice.emit("list_online", "general", callback=True)
    assert roster["server"] == "general"
    assert [u["username"] for u in roster["users"]] == ["alice"]
    assert alice.emit("list_online", {"server": "nope"}, callback=True)["users"] == []


def test_create_channel_broadcasts_to_everyone(user, sio_client):
    alice = user("alice")
    stranger = sio_client()

    ack = alice.emit("create_channel", {"name": "My Room!!"}, callback=True)
    assert ack == {"success": True, "name": "my-room"}
    created = events(stranger, "channel_created")
    assert created[0]["channel"]["name"] == "my-room"
    assert created[0]["channel"]["creator"] == "alice"

    again = alice.emit("create_channel", "MY ROOM", callback=True)
    assert again == {"success": False, "message": "Channel already exists"}

    unregistered = stranger.emit("create_channel", {"name": "another"}, callback=True)
    assert unregistered["success"] is False


def test_leave_channel(user):
    alice = user("alice", "general")
    bob = user("bob", "general")
    alice.emit("leave_server", "general")
    assert events(bob, "chat_message")[-1]["message"] == "alice left #general"
    roster = bob.emit("list_online", "general", callback=True)
    assert [u["username"] for u in roster["users"]] == ["bob"]


def test_non_admin_slash_is_plain_text(user):
    alice = user("alice", "general")
    bob = user("bob", "general")
    alice.emit("send_message", {"server": "general", "message": "/kick bob"})
    assert [m["message"] for m in events(bob, "chat_message")] == ["/kick bob"]
    assert bob.is_connected()


def test_admin_announce(user):
    admin = user(ADMIN_SENTINEL, "general")
    bob = user("bob", "general")
    admin.get_received()

    admin.emit("send_message", {"server": "general", "message": "/announce server restarting"})
    msgs = events(bob, "chat_message")
    assert len(msgs) == 1
    assert msgs[0]["type"] == "announcement"
    assert msgs[0]["announcement"] is True
    assert msgs[0]["message"] == "server restarting"


def test_admin_kick_disconnects_target(user):
    admin = user(ADMIN_SENTINEL, "general")
    bob = user("bob", "general")
    carol = user("carol", "general")
    admin.get_received()

    admin.emit("send_message", {"server": "general", "message": "/kick bob"})

    assert not bob.is_connected()
    lines = [m["message"] for m in events(carol, "chat_message")]
    assert "bob disconnected" in lines
    assert "bob was kicked by Admin" in lines
    roster = carol.emit("list_online", "general", callback=True)
    assert [u["username"] for u in roster["users"]] == ["Admin", "carol"]


def test_admin_clear(user):
    admin = user(ADMIN_SENTINEL, "general")
    bob = user("bob", "general")
    admin.emit("send_message", {"server": "general", "message": "/clear"})
    assert events(bob, "clear_chat") == [{"server": "general", "by": "Admin"}]


def test_media_validation(user):
    alice = user("alice", "general")
    bob = user("bob", "general")
    alice.get_received()

    ack = alice.emit("send_message", {"server": "general", "data": "UEsDBA==", "mime": "application/zip"}, callback=True)
    assert ack == {"success": False, "message": INVALID_MEDIA_TYPE}
    received = alice.get_received()
    assert [e["name"] for e in received] == ["message_error"]
    assert events(bob, "chat_message") == []

    ack = alice.emit("send_message", {"server": "general", "data": PNG}, callback=True)
    assert ack == {"success": True}
    msg = events(bob, "chat_message")[0]
    assert msg["type"] == "image"
    assert msg["data"] == PNG


def test_signaling_relay_between_connections(user):
    alice = user("alice")
    bob = user("bob")
    bob_id = bob.emit("get_profile", callback=True)
    assert bob_id["success"] is True

    roster_ack = alice.emit("register_identity", "again", callback=True)
    assert roster_ack == {"success": False, "message": "Already registered"}

    # Learn bob's connection id through a shared channel roster.
    alice.emit("join_channel", "tech")
    bob.emit("join_channel", "tech")
    users = alice.emit("list_online", "tech", callback=True)["users"]
    target = next(u["id"] for u in users if u["username"] == "bob")
    alice.get_received()
    bob.get_received()

    alice.emit("signal_offer", {"target": target, "payload": {"sdp": "v=0"}})
    offers = events(bob, "call_offer")
    assert offers == [{"from": users[0]["id"], "from_name": "alice", "payload": {"sdp": "v=0"}}]
    assert events(alice, "call_offer") == []

    alice.emit("signal_call_end", {"target": "no-such-sid", "payload": None})
    assert events(bob, "call_end") == []


def test_profile_update_flow(user):
    alice = user("alice", "general")
    bob = user("bob", "general")

    ack = alice.emit("update_profile", {"display_name": "alicia", "bio": "hello"}, callback=True)
    assert ack["success"] is True
    assert ack["profile"]["display_name"] == "alicia"
    roster = events(bob, "roster_updated")[-1]
    assert [u["username"] for u in roster["users"]] == ["alicia", "bob"]

    clash = bob.emit("update_profile", {"display_name": "alicia"}, callback=True)
    assert clash == {"success": False, "message": "Username already taken!"}

    too_long = bob.emit("update_profile", {"bio": "x" * 201}, callback=True)
    assert too_long["success"] is False


def test_get_profile_not_found(user):
    alice = user("alice")
    ack = alice.emit("get_profile", {"id": "nobody"}, callback=True)
    assert ack == {"success": False, "message": "Profile not found"}


def test_disconnect_cleanup(user, sio_client):
    alice = user("alice", "general")
    bob = user("bob", "general")
    bob.disconnect()

    assert events(alice, "chat_message")[-1]["message"] == "bob disconnected"
    roster = alice.emit("list_online", "general", callback=True)
    assert [u["username"] for u in roster["users"]] == ["alice"]

    again = sio_client()
    assert again.emit("register_identity", "bob", callback=True)["success"] is True


def test_handler_error_is_contained(app_and_socketio, user, monkeypatch):
    app, _ = app_and_socketio
    ctx = app.config["RELAYCHAT_CONTEXT"]
    alice = user("alice", "general")
    bob = user("bob", "general")

    def boom(sid, payload):
        raise RuntimeError("boom")

    monkeypatch.setattr(ctx.router, "send_message", boom)
    ack = alice.emit("send_message", {"server": "general", "message": "hi"}, callback=True)
    assert ack == {"success": False, "message": "Internal error"}

    monkeypatch.undo()
    assert bob.emit("send_message", {"server": "general", "message": "still here"}, callback=True) == {"success": True}


def test_health_endpoint(app_and_socketio, user):
    app, _ = app_and_socketio
    user("alice")
    resp = app.test_client().get("/health")
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["status"] == "ok"
    assert body["connections"] == 1
    assert body["channels"] == 5
    assert resp.headers["X-Content-Type-Options"] == "nosniff"
