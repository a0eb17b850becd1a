import logging
from typing import Iterable

from flask import current_app, request
from flask_socketio import join_room, leave_room

from duelserver import socketio
from duelserver.protocol import HANDLERS, Effects, dispatch, handle_disconnect as disconnect_effects
from duelserver.services.broadcast import Emit
from duelserver.services.countdown import schedule_countdown
from duelserver.services.lobby import Lobby

logger = logging.getLogger(__name__)


def _get_sid() -> str:
    # request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def publish(emits: Iterable[Emit], namespace: str) -> None:
    """Send outbound events; usable from handlers and background tasks."""
    for item in emits:
        args = () if item.data is None else (item.data,)
        socketio.emit(item.event, *args, to=item.to, skip_sid=item.skip_sid, namespace=namespace)


def _apply(lobby: Lobby, sid: str, effects: Effects, namespace: str) -> None:
    if effects.join:
        # Subscribe before publishing so the joiner sees the room's events
        join_room(effects.join, sid=sid, namespace=namespace)
        for code in _stale_rooms(sid, namespace, keep=effects.join):
            leave_room(code, sid=sid, namespace=namespace)
        logger.debug(f"[subscribe] sid={sid} room={effects.join}")
    publish(effects.emits, namespace)
    if effects.start_countdown:
        schedule_countdown(
            current_app._get_current_object(),
            lobby,
            effects.start_countdown,
            lambda emits: publish(emits, namespace),
        )


def _stale_rooms(sid: str, namespace: str, keep: str):
    # Socket.IO puts every sid in a room named after itself
    return [r for r in socketio.server.rooms(sid, namespace=namespace) if r not in (sid, keep)]


def register_socketio_handlers(lobby: Lobby, namespace: str = '/') -> None:
    """Register Socket.IO event handlers for every protocol message on ``namespace``."""

    def handle_connect(auth=None):
        logger.info(f"[connect] sid={_get_sid()}")

    def handle_disconnect(reason=None):
        sid = _get_sid()
        with lobby.lock:
            effects = disconnect_effects(lobby, sid)
            publish(effects.emits, namespace)
        logger.info(f"[disconnect] sid={sid}")

    def make_handler(event: str):
        def handler(data=None):
            sid = _get_sid()
            with lobby.lock:
                effects = dispatch(lobby, sid, event, data)
                _apply(lobby, sid, effects, namespace)
        return handler

    socketio.on_event('connect', handle_connect, namespace=namespace)
    socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
    for event in HANDLERS:
        socketio.on_event(event, make_handler(event), namespace=namespace)
