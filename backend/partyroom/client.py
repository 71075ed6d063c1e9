"""
Client-side coordinator.

A ``RoomClient`` is one participant. It owns the timers every client runs
(heartbeat, host-liveness watch) and, while it believes it is host, the
host duties (stale-peer prune, ending rounds on deadline or when everyone
has answered). Its host flag is a hint refreshed from the room row; the
server re-verifies every host-only request.

``tick(now)`` performs whatever is due at ``now`` so the schedule can be
driven deterministically; ``run`` calls it on a 1 Hz loop.
"""

import logging
import threading
from typing import Dict, List, Optional

import httpx

from partyroom import clock
from partyroom.errors import Conflict, Forbidden, InternalError, NotFound, PartyRoomError, ValidationError
from partyroom.services.session import remaining_ms, should_end_round

logger = logging.getLogger(__name__)

_STATUS_ERRORS = {400: ValidationError, 403: Forbidden, 404: NotFound, 409: Conflict}


class RoomClient:

    def __init__(self, http: httpx.Client, player_name: str, identity: Optional[Dict[str, str]] = None,
                 heartbeat_sec: int = 30, prune_sec: int = 60, host_check_sec: int = 30):
        self.http = http
        self.player_name = player_name
        # room code -> player id, kept by the caller across reconnects
        self.identity = identity if identity is not None else {}
        self.heartbeat_ms = heartbeat_sec * 1000
        self.prune_ms = prune_sec * 1000
        self.host_check_ms = host_check_sec * 1000
        self.room_code: Optional[str] = None
        self.player_id: Optional[str] = None
        self.state: Dict = {}
        self._last_run: Dict[str, float] = {}

    # ---- transport ----

    def _call(self, method: str, path: str, json=None, params=None) -> dict:
        response = self.http.request(method, path, json=json, params=params)
        try:
            body = response.json()
        except ValueError:
            body = {}
        if response.status_code >= 400:
            message = body.get('error') or response.reason_phrase
            error_cls = _STATUS_ERRORS.get(response.status_code, InternalError)
            raise error_cls(message)
        return body

    def _remember(self, room_code: str, player_id: str) -> None:
        self.room_code = room_code
        self.player_id = player_id
        self.identity[room_code] = player_id

    # ---- room lifecycle ----

    def create_room(self, game_type: Optional[str] = None, settings: Optional[dict] = None) -> str:
        body = self._call('POST', '/api/rooms/create', json={
            'playerName': self.player_name, 'gameType': game_type, 'settings': settings,
        })
        self._remember(body['code'], body['playerId'])
        self.refresh()
        return body['code']

    def join(self, room_code: str) -> dict:
        """Join or rejoin; a cached id for this room resolves to the same row."""
        code = room_code.upper()
        body = self._call('POST', '/api/rooms/join', json={
            'playerName': self.player_name, 'roomCode': code, 'playerId': self.identity.get(code),
        })
        self._remember(body['room']['code'], body['player']['id'])
        self.refresh()
        return body

    def leave(self) -> None:
        self._call('POST', f'/api/rooms/{self.room_code}/leave', json={'playerId': self.player_id})
        self.identity.pop(self.room_code, None)
        self.state = {}

    def refresh(self) -> dict:
        self.state = self._call('GET', f'/api/rooms/{self.room_code}/state')
        timers = self.state.get('timers')
        if timers:
            self.heartbeat_ms = timers['heartbeatSec'] * 1000
            self.prune_ms = timers['pruneSec'] * 1000
            self.host_check_ms = timers['hostCheckSec'] * 1000
        return self.state

    @property
    def room(self) -> dict:
        return self.state.get('room') or {}

    @property
    def session(self) -> dict:
        return self.state.get('session') or {}

    @property
    def players(self) -> List[dict]:
        return self.state.get('players') or []

    @property
    def is_host(self) -> bool:
        """Local hint only."""
        return bool(self.player_id) and self.room.get('host_id') == self.player_id

    def remaining_ms(self, now: Optional[float] = None) -> float:
        return remaining_ms(self.session.get('round_data'), clock.now_ms() if now is None else now)

    # ---- presence ----

    def heartbeat(self) -> float:
        body = self._call('POST', f'/api/rooms/{self.room_code}/heartbeat', json={'playerId': self.player_id})
        return body['lastSeenAt']

    def prune(self) -> List[str]:
        body = self._call('POST', f'/api/rooms/{self.room_code}/prune', json={'hostId': self.player_id})
        return body['removed']

    def check_host(self) -> bool:
        body = self._call('POST', f'/api/rooms/{self.room_code}/host-check', json={'playerId': self.player_id})
        return body['closed']

    # ---- game ----

    def fetch_challenges(self, game_type: str, count: int, **settings) -> List[dict]:
        """Fallback payloads arrive with status 500 and are still usable."""
        response = self.http.get(f'/api/games/{game_type}/challenge', params={'count': count, **settings})
        body = response.json()
        if 'challenges' not in body:
            raise _STATUS_ERRORS.get(response.status_code, InternalError)(body.get('error', 'challenge fetch failed'))
        if body.get('fallback'):
            logger.warning(f"[content-fallback] game={game_type} {body.get('error')}")
        return body['challenges']

    def update_settings(self, settings: dict, game_type: Optional[str] = None) -> dict:
        room = self._call('POST', f'/api/rooms/{self.room_code}/settings', json={
            'hostId': self.player_id, 'gameType': game_type, 'settings': settings,
            'expectedVersion': self.room.get('version'),
        })
        self.refresh()
        return room

    def start(self, challenges: Optional[List[dict]] = None) -> dict:
        session = self._call('POST', f'/api/rooms/{self.room_code}/session/start', json={
            'hostId': self.player_id, 'challenges': challenges,
        })
        self.refresh()
        return session

    def submit_answer(self, answer) -> int:
        body = self._call('POST', f'/api/rooms/{self.room_code}/session/answer', json={
            'playerId': self.player_id, 'answer': answer,
        })
        return body['answers']

    def end_round(self) -> dict:
        session = self._call('POST', f'/api/rooms/{self.room_code}/session/end-round', json={'hostId': self.player_id})
        self.refresh()
        return session

    def next_round(self) -> dict:
        session = self._call('POST', f'/api/rooms/{self.room_code}/session/next', json={'hostId': self.player_id})
        self.refresh()
        return session

    # ---- timers ----

    def _due(self, name: str, period_ms: float, now: float) -> bool:
        last = self._last_run.get(name)
        if last is not None and now - last < period_ms:
            return False
        self._last_run[name] = now
        return True

    def tick(self, now: Optional[float] = None) -> List[str]:
        """Run every duty due at ``now``; returns the names of those that ran."""
        now = clock.now_ms() if now is None else now
        done = []
        if not self.room_code or self.room.get('status') == 'closed':
            return done
        if self._due('heartbeat', self.heartbeat_ms, now):
            try:
                self.heartbeat()
            except NotFound:
                # Pruned while away: rejoin resolves to a fresh or recovered row
                logger.info(f"[rejoin] room={self.room_code} player={self.player_id}")
                self.join(self.room_code)
            done.append('heartbeat')
        self.refresh()

        if self.is_host:
            if self._due('prune', self.prune_ms, now):
                self.prune()
                done.append('prune')
                self.refresh()
            if should_end_round(self.session, len(self.players), now):
                try:
                    self.end_round()
                    done.append('end_round')
                except (Forbidden, ValidationError) as exc:
                    # Lost the host role or clocks disagree; the next tick re-reads
                    logger.info(f"[end-round-skip] room={self.room_code} {exc.message}")
                    self.refresh()
        elif self._due('host_check', self.host_check_ms, now):
            if self.check_host():
                done.append('closed_room')
            else:
                done.append('host_check')
            self.refresh()
        return done

    def run(self, stop: threading.Event, interval_sec: float = 1.0) -> None:
        while not stop.is_set():
            try:
                self.tick()
            except (PartyRoomError, httpx.HTTPError) as exc:
                logger.warning(f"[tick-error] room={self.room_code} {exc}")
            stop.wait(interval_sec)
