"""Socket.IO handlers: connection lifecycle, identity and profiles."""

import logging

from flask import request

from audit import log_audit_event


def register(socketio, settings, ctx):
    """Register Socket.IO event handlers for this module."""

    @socketio.on("connect")
    @ctx.serialized
    def handle_connect(auth=None):
        sid = request.sid
        ctx.connect(sid)
        log_audit_event(None, "connected", details=f"sid={sid}")

    @socketio.on("disconnect")
    @ctx.serialized
    def handle_disconnect(*args, **kwargs):
        # Socket.IO may pass a reason depending on version.
        reason = args[0] if args else kwargs.get("reason")
        sid = request.sid
        if not ctx.disconnect(sid):
            logging.debug("Disconnect from unknown SID: %s (%s)", sid, reason)

    @socketio.on("register_identity")
    @socketio.on("set_username")
    @ctx.serialized
    def handle_register_identity(data=None):
        conn, err = ctx.register(request.sid, data)
        if err:
            return {"success": False, "message": err}
        return {
            "success": True,
            "id": conn.sid,
            "username": conn.name,
            "avatar": conn.avatar,
            "is_admin": conn.is_admin,
            "profile": ctx.profiles.get(conn.sid).to_dict(),
        }

    @socketio.on("update_avatar")
    @ctx.serialized
    def handle_update_avatar(data=None):
        ctx.update_avatar(request.sid, data)

    @socketio.on("get_profile")
    @ctx.serialized
    def handle_get_profile(data=None):
        profile, err = ctx.get_profile(request.sid, data)
        if err:
            return {"success": False, "message": err}
        return {"success": True, "profile": profile.to_dict()}

    @socketio.on("update_profile")
    @ctx.serialized
    def handle_update_profile(data=None):
        profile, err = ctx.update_profile(request.sid, data)
        if err:
            return {"success": False, "message": err}
        return {"success": True, "profile": profile.to_dict()}
