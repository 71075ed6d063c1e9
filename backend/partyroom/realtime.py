from flask import request, current_app
from flask_socketio import join_room, leave_room, emit
from partyroom import socketio
from partyroom import clock
from typing import Dict, Any, Optional

NAMESPACE = '/ws'
SIGNAL_EVENTS = ('typing', 'reaction', 'guess')


def room_channel(room_code: str) -> str:
    return f"room:{room_code.upper()}"


def ephemeral_channel(room_code: str, game_type: str) -> str:
    return f"ephemeral:{room_code.upper()}:{game_type}"


# ---- Durable channel ----

def publish_change(room_code: str, table: str, change_type: str, record: Dict[str, Any],
                   old: Optional[Dict[str, Any]] = None) -> None:
    """Notify subscribers of a committed row change.

    Call only after the write is committed. ``record`` carries the row's
    version (where it has one) so clients can drop out-of-order updates.
    """
    payload = {'table': table, 'type': change_type, 'record': record}
    if old is not None:
        payload['old'] = old
    socketio.emit('row_change', payload, to=room_channel(room_code), namespace=NAMESPACE)


def handle_connect():
    emit('connected', {'message': f'Connected to {NAMESPACE}'})


def handle_subscribe_room(data):
    room_code = (data or {}).get('room_code')
    if not room_code:
        emit('error', {'message': 'room_code is required'})
        return
    channel = room_channel(room_code)
    join_room(channel)
    emit('subscribed', {'room': channel})


def handle_unsubscribe_room(data):
    room_code = (data or {}).get('room_code')
    if not room_code:
        emit('error', {'message': 'room_code is required'})
        return
    channel = room_channel(room_code)
    leave_room(channel)
    emit('unsubscribed', {'room': channel})


# ---- Ephemeral channel: signals and presence ----

_presence: Dict[str, Dict[str, Dict[str, Any]]] = {}
_sid_to_channel: Dict[str, str] = {}


def _get_sid() -> str:
    return request.sid  # type: ignore


def presence_for(channel: str):
    return sorted(_presence.get(channel, {}).values(), key=lambda p: p['joinedAt'])


def _sync_presence(channel: str) -> None:
    socketio.emit('presence_sync', {'presence': presence_for(channel)}, to=channel, namespace=NAMESPACE)


def _drop_presence(sid: str) -> Optional[str]:
    channel = _sid_to_channel.pop(sid, None)
    if not channel:
        return None
    members = _presence.get(channel, {})
    members.pop(sid, None)
    if not members:
        _presence.pop(channel, None)
    return channel


def handle_join_channel(data):
    data = data or {}
    room_code = data.get('room_code')
    game_type = data.get('game_type')
    if not room_code or not game_type:
        emit('error', {'message': 'room_code and game_type are required'})
        return
    sid = _get_sid()
    previous = _drop_presence(sid)
    if previous:
        leave_room(previous)
        _sync_presence(previous)
    channel = ephemeral_channel(room_code, game_type)
    join_room(channel)
    _sid_to_channel[sid] = channel
    _presence.setdefault(channel, {})[sid] = {
        'playerName': data.get('player_name') or 'Anonymous',
        'gameType': game_type,
        'joinedAt': clock.now_ms(),
    }
    emit('joined', {'room': channel})
    _sync_presence(channel)


def handle_leave_channel(data=None):
    channel = _drop_presence(_get_sid())
    if not channel:
        return
    leave_room(channel)
    emit('left', {'room': channel})
    _sync_presence(channel)


def handle_broadcast(data):
    """Fan a transient signal out to the other members of the sender's channel.

    Nothing is stored and nothing is retried.
    """
    data = data or {}
    event = data.get('event')
    if event not in SIGNAL_EVENTS:
        emit('error', {'message': f'event must be one of {", ".join(SIGNAL_EVENTS)}'})
        return
    channel = _sid_to_channel.get(_get_sid())
    if not channel:
        emit('error', {'message': 'join_channel first'})
        return
    emit('signal', {'event': event, 'payload': data.get('payload')}, to=channel, include_self=False)


def handle_disconnect(reason=None):
    channel = _drop_presence(_get_sid())
    if channel:
        current_app.logger.debug(f"[presence-leave] channel={channel}")
        _sync_presence(channel)


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    namespaces = [NAMESPACE, '/'] if testing else [NAMESPACE]
    for ns in namespaces:
        socketio.on_event('connect', handle_connect, namespace=ns)
        socketio.on_event('disconnect', handle_disconnect, namespace=ns)
        socketio.on_event('subscribe_room', handle_subscribe_room, namespace=ns)
        socketio.on_event('unsubscribe_room', handle_unsubscribe_room, namespace=ns)
        socketio.on_event('join_channel', handle_join_channel, namespace=ns)
        socketio.on_event('leave_channel', handle_leave_channel, namespace=ns)
        socketio.on_event('broadcast', handle_broadcast, namespace=ns)
