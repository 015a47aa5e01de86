from flask_socketio import join_room, leave_room, emit
from flask import current_app, request
from skyjo import socketio, channels, sessions
from skyjo.game import GameError
from skyjo.game.actions import ACTIONS
from typing import Any, Optional


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _session_id_from(data: Any) -> Optional[str]:
    if isinstance(data, str):
        return data or None
    if isinstance(data, dict):
        return data.get('sessionId') or None
    return None


def _broadcast_client_count(session_id: str) -> int:
    count = len(channels.members(session_id))
    channels.broadcast(session_id, 'clients-in-session', count)
    return count


def handle_connect(auth=None):
    channels.connect(_get_sid())
    emit('connected', {'message': 'Connected to /ws'})


def handle_disconnect(reason=None):
    # A player vanishing ends the game they were in; the rest are notified
    sid = _get_sid()
    session_id = channels.disconnect(sid)
    if not session_id:
        return
    current_app.logger.info(f"[disconnect] sid={sid} session={session_id} reason={reason}")
    sessions.on_disconnect(sid, session_id)
    _broadcast_client_count(session_id)


def handle_join_session(data):
    session_id = _session_id_from(data)
    if not session_id:
        channels.send(_get_sid(), 'error', {'message': 'sessionId is required'})
        return None
    name = data.get('name') if isinstance(data, dict) else None
    sid = _get_sid()
    previous = channels.join(sid, session_id, name=name)
    if previous:
        leave_room(channels.room(previous))
        sessions.on_leave(previous, sid)
        _broadcast_client_count(previous)
    join_room(channels.room(session_id))
    current_app.logger.info(f"[join] sid={sid} session={session_id}")
    emit('joined', {'sessionId': session_id, 'actorId': sid})
    count = _broadcast_client_count(session_id)
    return {'sessionId': session_id, 'clients': count}


def handle_leave_session(data=None):
    sid = _get_sid()
    session_id = _session_id_from(data) or channels.session_of(sid)
    if not session_id:
        channels.send(_get_sid(), 'error', {'message': 'sessionId is required'})
        return
    # Explicit quit: end the running game immediately
    sessions.on_leave(session_id, sid)
    if channels.leave(sid, session_id):
        leave_room(channels.room(session_id))
        emit('left', {'sessionId': session_id})
        _broadcast_client_count(session_id)


def handle_new_game(data=None):
    sid = _get_sid()
    session_id = _session_id_from(data) or channels.session_of(sid)
    if not session_id or sid not in channels.members(session_id):
        channels.send(_get_sid(), 'error', {'message': 'Join a session before starting a game'})
        return
    try:
        sessions.create_session(session_id)
    except GameError as exc:
        current_app.logger.info(f"[new-game-refused] session={session_id} {exc}")
        channels.send(_get_sid(), 'error', {'message': str(exc)})


def _make_action_handler(action_name: str):
    def handle_action(data=None):
        sid = _get_sid()
        sessions.on_action(channels.session_of(sid), sid, action_name, data)
    handle_action.__name__ = f"handle_{action_name.replace('-', '_')}"
    return handle_action


def register_socketio_handlers(namespace: str = '/ws') -> None:
    """Register Socket.IO event handlers on the game namespace."""
    socketio.on_event('connect', handle_connect, namespace=namespace)
    socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
    socketio.on_event('join-session', handle_join_session, namespace=namespace)
    socketio.on_event('leave-session', handle_leave_session, namespace=namespace)
    socketio.on_event('new-game', handle_new_game, namespace=namespace)
    for action_name in ACTIONS:
        socketio.on_event(action_name, _make_action_handler(action_name), namespace=namespace)
