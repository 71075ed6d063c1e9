from typing import List, Optional, Tuple

from flask import current_app
from sqlalchemy.orm.exc import StaleDataError

from partyroom import db, clock
from partyroom.models import Player, Room
from partyroom.realtime import publish_change
from partyroom.services.rooms import get_member, get_room, require_host


def heartbeat(room_code, player_id) -> Player:
    room = get_room(room_code)
    player = get_member(room, player_id)
    player.last_seen_at = clock.now_ms()
    db.session.commit()
    publish_change(room.code, 'players', 'UPDATE', player.to_dict())
    return player


def prune_stale_players(room_code, host_id) -> List[str]:
    """Delete players whose last heartbeat is older than the liveness threshold.

    Host-only, and the only place player rows are pruned. The requesting host
    is never pruned by its own call.
    """
    room = get_room(room_code)
    require_host(room, host_id)
    cutoff = clock.now_ms() - int(current_app.config.get('STALE_PLAYER_SEC', 120)) * 1000
    stale = (
        Player.query
        .filter(Player.room_id == room.id, Player.last_seen_at < cutoff, Player.id != host_id)
        .all()
    )
    if not stale:
        return []
    removed = [p.to_dict() for p in stale]
    for p in stale:
        db.session.delete(p)
    db.session.commit()
    current_app.logger.info(f"[prune] room={room.code} removed={[p['id'] for p in removed]}")
    for old in removed:
        publish_change(room.code, 'players', 'DELETE', {'id': old['id']}, old=old)
    return [p['id'] for p in removed]


def _host_last_seen(room: Room) -> Optional[float]:
    if not room.host_id:
        return None
    host = Player.query.filter_by(id=room.host_id, room_id=room.id).first()
    return host.last_seen_at if host else None


def check_host_liveness(room_code, player_id) -> Tuple[bool, Optional[float]]:
    """Close the room when its host has been silent past the failover threshold.

    Any member may call this; several may race. The target value is the
    same terminal status, so a lost race is treated as success.
    Returns ``(closed, host_last_seen_at)``.
    """
    room = get_room(room_code)
    get_member(room, player_id)
    last_seen = _host_last_seen(room)
    if room.status == 'closed':
        return True, last_seen
    if room.status == 'finished' or last_seen is None:
        return False, last_seen

    threshold_ms = int(current_app.config.get('HOST_FAILOVER_SEC', 150)) * 1000
    if clock.now_ms() - last_seen <= threshold_ms:
        return False, last_seen

    room.status = 'closed'
    try:
        db.session.commit()
    except StaleDataError:
        db.session.rollback()
        room = get_room(room_code)
        current_app.logger.info(f"[failover-race] room={room.code} status={room.status}")
        return room.status == 'closed', last_seen

    current_app.logger.warning(f"[failover] room={room.code} host={room.host_id} silent since {last_seen}")
    publish_change(room.code, 'rooms', 'UPDATE', room.to_dict())
    return True, last_seen
