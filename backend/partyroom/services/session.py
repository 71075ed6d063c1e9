"""
Round state machine shared by every game type.

    waiting -> round_active -> round_results -> round_active ... -> game_over

Every transition is host-only and re-verified against the room row. Terminal
states are absorbing: a transition requested on a finished or closed game
returns the stored session unchanged.
"""

from typing import List, Optional

from flask import current_app
from sqlalchemy.orm.exc import StaleDataError

from partyroom import db, clock
from partyroom.content import fetch_challenges
from partyroom.errors import ValidationError
from partyroom.models import GameSession, Room
from partyroom.realtime import publish_change
from partyroom.schemas import (
    parse_settings, settings_payload, validate_challenges, validate_round_data, validate_settings,
)
from partyroom.services.rooms import check_version, get_member, get_room, require_host
from partyroom.services.scoring import score_round, to_finite_number

ANSWER_WRITE_ATTEMPTS = 3


# ---- Pure timing rules (shared with clients) ----

def remaining_ms(round_data: dict, now: float) -> float:
    """Time left in the round, derived from the absolute deadline."""
    end = (round_data or {}).get('endTime')
    if end is None:
        return 0.0
    return max(0.0, float(end) - now)


def should_end_round(session: dict, player_count: int, now: float) -> bool:
    """Host-side trigger for ``end_round``.

    True once every present player has answered (early termination) or the
    deadline has passed.
    """
    if not session or session.get('status') != 'round_active':
        return False
    answers = session.get('answers') or {}
    if player_count > 0 and len(answers) >= player_count:
        return True
    end = (session.get('round_data') or {}).get('endTime')
    return end is not None and now >= float(end)


# ---- Helpers ----

def _load(room_code):
    room = get_room(room_code)
    session = room.session
    if session is None:
        session = GameSession(room_id=room.id, status='waiting', current_round=0, total_rounds=0)
        session.round_data = {}
        session.answers = {}
        db.session.add(session)
        db.session.flush()
    return room, session


def _is_absorbed(room: Room, session: GameSession) -> bool:
    return session.is_terminal or room.status == 'closed'


def _round_payload(room: Room, challenge: dict, queue: List[dict], now: float) -> dict:
    cfg = parse_settings(room.game_type, room.settings)
    return validate_round_data(room.game_type, {
        'challenge': challenge,
        'queue': queue,
        'startTime': now,
        'endTime': now + cfg.roundDurationMs,
    })


def _content(room: Room, count: int) -> List[dict]:
    cache = current_app.extensions['partyroom.content_cache']
    challenges, degraded = fetch_challenges(
        room.game_type, room.settings, count, cache,
        timeout=float(current_app.config.get('UPSTREAM_TIMEOUT_SEC', 5)),
    )
    if degraded:
        current_app.logger.warning(f"[content-degraded] room={room.code} game={room.game_type}")
    return challenges


def _publish(room: Room, session: GameSession, room_changed: bool = False) -> None:
    if room_changed:
        publish_change(room.code, 'rooms', 'UPDATE', room.to_dict())
    publish_change(room.code, 'game_sessions', 'UPDATE', session.to_dict())


# ---- Transitions ----

def update_settings(room_code, host_id, settings, game_type=None, expected_version=None) -> Room:
    room = get_room(room_code)
    require_host(room, host_id)
    check_version(room, expected_version, 'rooms')
    if room.status != 'waiting':
        raise ValidationError('Settings can only change before the game starts')
    game_type = game_type or room.game_type
    if not game_type:
        raise ValidationError('gameType is required')
    # Partial updates keep the stored values; keys foreign to the new game are dropped
    room.settings = validate_settings(game_type, {**room.settings, **settings_payload(settings)})
    room.game_type = game_type
    session = room.session
    if session is not None and session.status == 'waiting':
        session.total_rounds = room.settings['rounds']
    db.session.commit()
    current_app.logger.info(f"[settings] room={room.code} game={game_type} settings={room.settings}")
    publish_change(room.code, 'rooms', 'UPDATE', room.to_dict())
    if session is not None:
        publish_change(room.code, 'game_sessions', 'UPDATE', session.to_dict())
    return room


def start_game(room_code, host_id, challenges: Optional[list] = None, expected_version=None) -> GameSession:
    """waiting -> round_active, round 1."""
    room, session = _load(room_code)
    require_host(room, host_id)
    check_version(session, expected_version, 'game_sessions')
    if _is_absorbed(room, session) or session.status != 'waiting':
        # Already started: idempotent
        return session
    if not room.game_type:
        raise ValidationError('Select a game before starting')

    cfg = parse_settings(room.game_type, room.settings)
    if challenges:
        challenges = validate_challenges(room.game_type, challenges)
    else:
        challenges = _content(room, cfg.rounds)
    if not challenges:
        raise ValidationError('No challenge available')

    now = clock.now_ms()
    session.round_data = _round_payload(room, challenges[0], challenges[1:], now)
    session.answers = {}
    session.current_round = 1
    session.total_rounds = cfg.rounds
    session.status = 'round_active'
    room.status = 'in_game'
    db.session.commit()

    current_app.logger.info(
        f"[round-start] room={room.code} round=1/{session.total_rounds} end={session.round_data['endTime']}"
    )
    _publish(room, session, room_changed=True)
    return session


def submit_answer(room_code, player_id, answer) -> GameSession:
    """Upsert ``answers[player_id]``; resubmitting overwrites."""
    if isinstance(answer, bool) or not isinstance(answer, (str, int, float)):
        raise ValidationError('answer must be a string or a number')
    if isinstance(answer, str):
        answer = answer.strip()
        if not answer:
            raise ValidationError('answer is required')
    elif to_finite_number(answer) is None:
        raise ValidationError('answer must be a finite number')

    for attempt in range(ANSWER_WRITE_ATTEMPTS):
        room, session = _load(room_code)
        get_member(room, player_id)
        if session.status != 'round_active':
            raise ValidationError('Not accepting answers at this time')
        now = clock.now_ms()
        if now > float(session.round_data.get('endTime', now)):
            raise ValidationError('The round is over')
        answers = session.answers
        answers[player_id] = {'answer': answer, 'submittedAt': now}
        session.answers = answers
        try:
            db.session.commit()
        except StaleDataError:
            # Another answer landed between read and write; re-apply on the fresh row
            db.session.rollback()
            current_app.logger.debug(f"[answer-retry] room={room_code} player={player_id} attempt={attempt + 1}")
            continue
        publish_change(room.code, 'game_sessions', 'UPDATE', session.to_dict())
        return session
    raise ValidationError('Answer could not be recorded, please resubmit')


def end_round(room_code, host_id, expected_version=None) -> GameSession:
    """round_active -> round_results: score answers and credit players."""
    room, session = _load(room_code)
    require_host(room, host_id)
    check_version(session, expected_version, 'game_sessions')
    if _is_absorbed(room, session) or session.status != 'round_active':
        return session

    players = list(room.players)
    if not should_end_round(session.to_dict(), len(players), clock.now_ms()):
        raise ValidationError('The round is still in progress')

    round_data = session.round_data
    results = score_round(
        room.game_type, room.settings, round_data, session.answers,
        [{'id': p.id, 'name': p.name} for p in players],
    )
    points = {r['playerId']: r['score'] for r in results}
    credited = []
    for p in players:
        if points.get(p.id, 0) > 0:
            p.score += points[p.id]
            credited.append(p)
    round_data['results'] = results
    session.round_data = validate_round_data(room.game_type, round_data)
    session.status = 'round_results'
    db.session.commit()

    current_app.logger.info(
        f"[round-end] room={room.code} round={session.current_round} answers={len(session.answers)}/{len(players)}"
    )
    for p in credited:
        publish_change(room.code, 'players', 'UPDATE', p.to_dict())
    _publish(room, session)
    return session


def next_round(room_code, host_id, expected_version=None) -> GameSession:
    """round_results -> round_active, or -> game_over after the last round."""
    room, session = _load(room_code)
    require_host(room, host_id)
    check_version(session, expected_version, 'game_sessions')
    if _is_absorbed(room, session):
        return session
    if session.status != 'round_results':
        raise ValidationError('End the current round first')

    if session.current_round + 1 > session.total_rounds:
        session.status = 'game_over'
        room.status = 'finished'
        db.session.commit()
        current_app.logger.info(f"[finish] room={room.code} finished at round={session.current_round}")
        _publish(room, session, room_changed=True)
        return session

    queue = list(session.round_data.get('queue') or [])
    if not queue:
        queue = _content(room, session.total_rounds - session.current_round)
    now = clock.now_ms()
    session.round_data = _round_payload(room, queue[0], queue[1:], now)
    session.answers = {}
    session.current_round += 1
    session.status = 'round_active'
    db.session.commit()

    current_app.logger.info(
        f"[next-round] room={room.code} round={session.current_round}/{session.total_rounds} "
        f"end={session.round_data['endTime']}"
    )
    _publish(room, session)
    return session
