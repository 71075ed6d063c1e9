import uuid
from typing import Optional, Tuple

from flask import current_app
from sqlalchemy.exc import IntegrityError

from partyroom import db, clock
from partyroom.errors import Forbidden, InternalError, NotFound, StaleWrite, ValidationError
from partyroom.models import GameSession, Player, Room, generate_room_code
from partyroom.realtime import publish_change
from partyroom.schemas import settings_payload, validate_base_settings, validate_settings


def _clean_name(player_name) -> str:
    name = (player_name or '').strip() if isinstance(player_name, str) else ''
    if not name:
        raise ValidationError('Player name is required')
    if len(name) > 64:
        raise ValidationError('Player name must be at most 64 characters')
    return name


def _clean_code(room_code) -> str:
    code = (room_code or '').strip().upper() if isinstance(room_code, str) else ''
    if not code:
        raise ValidationError('Room code is required')
    return code


def new_player_id() -> str:
    return str(uuid.uuid4())


def find_room(room_code) -> Optional[Room]:
    return Room.query.filter_by(code=_clean_code(room_code)).first()


def get_room(room_code) -> Room:
    room = find_room(room_code)
    if not room:
        raise NotFound('Room not found')
    return room


def get_member(room: Room, player_id) -> Player:
    player = Player.query.filter_by(id=player_id, room_id=room.id).first() if player_id else None
    if not player:
        raise NotFound('Player not found in this room')
    return player


def require_host(room: Room, player_id) -> Player:
    """Re-verify a host-only action against the stored room row.

    The caller's own belief that it is host is never trusted.
    """
    if not player_id:
        raise ValidationError('hostId is required')
    if room.host_id != player_id:
        raise Forbidden('Only the host may do this')
    return get_member(room, player_id)


def check_version(row, expected, table: str) -> None:
    if expected is None:
        return
    try:
        expected = int(expected)
    except (TypeError, ValueError):
        raise ValidationError('expectedVersion must be an integer')
    if expected != row.version:
        raise StaleWrite(table, expected, row.version)


def locate_player(room: Room, player_id=None, player_name=None) -> Optional[Player]:
    """Rediscover a reconnecting client's row: cached id first, then name."""
    if player_id:
        player = Player.query.filter_by(id=player_id, room_id=room.id).first()
        if player:
            return player
    if player_name:
        return Player.query.filter_by(room_id=room.id, name=player_name.strip()).first()
    return None


def create_room(player_name, player_id=None, game_type=None, settings=None) -> Tuple[Room, Player]:
    name = _clean_name(player_name)
    cfg = current_app.config
    settings = {
        'rounds': int(cfg.get('DEFAULT_TOTAL_ROUNDS', 5)),
        'roundDurationMs': int(cfg.get('DEFAULT_ROUND_DURATION_MS', 15000)),
        'maxPlayers': int(cfg.get('MAX_PLAYERS', 10)),
        **settings_payload(settings),
    }
    if game_type:
        settings = validate_settings(game_type, settings)
    else:
        settings = validate_base_settings(settings)

    code = generate_room_code(
        length=int(cfg.get('ROOM_CODE_LENGTH', 6)),
        max_attempts=int(cfg.get('ROOM_CODE_MAX_ATTEMPTS', 10)),
    )
    if not code:
        raise InternalError('Could not allocate a room code')

    if not player_id or db.session.get(Player, player_id) is not None:
        player_id = new_player_id()
    now = clock.now_ms()
    room = Room(code=code, host_id=player_id, status='waiting', game_type=game_type, created_at=now)
    room.settings = settings
    host = Player(id=player_id, room=room, name=name, is_host=True, score=0, last_seen_at=now, joined_at=now)
    session = GameSession(
        room=room, status='waiting', current_round=0,
        total_rounds=int(settings.get('rounds') or cfg.get('DEFAULT_TOTAL_ROUNDS', 5)),
    )
    session.round_data = {}
    session.answers = {}
    db.session.add_all([room, host, session])
    db.session.commit()

    current_app.logger.info(f"[room-create] code={room.code} host={host.id} name={host.name}")
    publish_change(room.code, 'rooms', 'INSERT', room.to_dict())
    publish_change(room.code, 'players', 'INSERT', host.to_dict())
    publish_change(room.code, 'game_sessions', 'INSERT', session.to_dict())
    return room, host


def join_room(player_name, room_code, player_id=None) -> Tuple[Room, Player, bool]:
    """Join by code. Returns ``(room, player, created)``.

    Joining again with a known id or name returns the existing row. The
    joiner claims the host role only if the room has no host reference.
    """
    name = _clean_name(player_name)
    room = get_room(room_code)

    existing = locate_player(room, player_id, name)
    if existing:
        return room, existing, False

    if not player_id or db.session.get(Player, player_id) is not None:
        player_id = new_player_id()
    now = clock.now_ms()
    player = Player(id=player_id, room_id=room.id, name=name, is_host=False, score=0,
                    last_seen_at=now, joined_at=now)
    claims_host = room.host_id is None
    if claims_host:
        room.host_id = player.id
        player.is_host = True
    db.session.add(player)
    try:
        db.session.commit()
    except IntegrityError:
        # Concurrent join under the same name won the insert
        db.session.rollback()
        existing = Player.query.filter_by(room_id=room.id, name=name).first()
        if existing is None:
            raise
        current_app.logger.info(f"[room-join-dup] code={room.code} name={name}")
        return room, existing, False

    current_app.logger.info(f"[room-join] code={room.code} player={player.id} name={name} host={claims_host}")
    publish_change(room.code, 'players', 'INSERT', player.to_dict())
    if claims_host:
        publish_change(room.code, 'rooms', 'UPDATE', room.to_dict())
    return room, player, True


def leave_room(room_code, player_id) -> None:
    room = get_room(room_code)
    player = get_member(room, player_id)
    old = player.to_dict()
    was_host = room.host_id == player.id
    db.session.delete(player)
    if was_host:
        room.host_id = None
    db.session.commit()
    current_app.logger.info(f"[room-leave] code={room.code} player={old['id']} was_host={was_host}")
    publish_change(room.code, 'players', 'DELETE', {'id': old['id']}, old=old)
    if was_host:
        publish_change(room.code, 'rooms', 'UPDATE', room.to_dict())


def _delete(room: Room) -> None:
    old = room.to_dict()
    db.session.delete(room)
    db.session.commit()
    publish_change(old['code'], 'rooms', 'DELETE', {'id': old['id'], 'code': old['code']}, old=old)


def delete_room(room_code, requesting_player_id) -> None:
    if not requesting_player_id:
        raise ValidationError('Room code and host id are required')
    room = get_room(room_code)
    if room.host_id != requesting_player_id:
        raise Forbidden('Not authorized')
    code = room.code
    _delete(room)
    current_app.logger.info(f"[room-delete] code={code} by={requesting_player_id}")


def cleanup_room(room_code) -> dict:
    """Delete an idle room: no players and older than the grace period.

    Safe to call repeatedly; a missing room is reported, not raised.
    """
    code = _clean_code(room_code)
    room = Room.query.filter_by(code=code).first()
    if not room:
        return {'shouldDelete': False, 'message': 'Room not found'}

    player_count = Player.query.filter_by(room_id=room.id).count()
    if player_count > 0:
        return {'shouldDelete': False, 'message': 'Room not empty', 'playerCount': player_count}

    grace_ms = int(current_app.config.get('ROOM_CLEANUP_GRACE_SEC', 60)) * 1000
    age_ms = clock.now_ms() - room.created_at
    if age_ms < grace_ms:
        return {'shouldDelete': False, 'message': 'Room too recent', 'ageInSeconds': int(age_ms // 1000)}

    _delete(room)
    current_app.logger.info(f"[room-cleanup] code={code} age={int(age_ms // 1000)}s")
    return {'shouldDelete': True, 'message': 'Room deleted', 'roomCode': code}


def _timers() -> dict:
    cfg = current_app.config
    return {
        'heartbeatSec': int(cfg.get('HEARTBEAT_INTERVAL_SEC', 30)),
        'pruneSec': int(cfg.get('PRUNE_INTERVAL_SEC', 60)),
        'hostCheckSec': int(cfg.get('HOST_CHECK_INTERVAL_SEC', 30)),
    }


def room_state(room_code) -> dict:
    room = get_room(room_code)
    return {
        'room': room.to_dict(),
        'players': [p.to_dict() for p in room.players],
        'session': room.session.to_dict() if room.session else None,
        'timers': _timers(),
        'now': clock.now_ms(),
    }
