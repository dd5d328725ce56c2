"""Socket.IO handlers: channel directory, membership and chat messages."""

from flask import request

from channels import channel_key


def register(socketio, settings, ctx):
    """Register Socket.IO event handlers for this module."""

    @socketio.on("list_channels")
    @ctx.serialized
    def handle_list_channels(data=None):
        return {"success": True, "channels": ctx.channels.list_channels()}

    @socketio.on("create_channel")
    @ctx.serialized
    def handle_create_channel(data=None):
        raw = data.get("name") if isinstance(data, dict) else data
        name, err = ctx.channels.create_channel(raw, request.sid)
        if err:
            return {"success": False, "message": err}
        return {"success": True, "name": name}

    @socketio.on("list_online")
    @ctx.serialized
    def handle_list_online(data=None):
        channel = channel_key(data)
        return {"success": True, "server": channel, "users": ctx.channels.roster_snapshot(channel)}

    @socketio.on("join_channel")
    @socketio.on("join_server")
    @ctx.serialized
    def handle_join_channel(data=None):
        ctx.channels.join(request.sid, data)

    @socketio.on("leave_channel")
    @socketio.on("leave_server")
    @ctx.serialized
    def handle_leave_channel(data=None):
        ctx.channels.leave(request.sid, data)

    @socketio.on("send_message")
    @ctx.serialized
    def handle_send_message(data=None):
        delivered, err = ctx.router.send_message(request.sid, data)
        if err:
            return {"success": False, "message": err}
        if delivered:
            return {"success": True}
