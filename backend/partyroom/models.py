from partyroom import db
import json
import string
import random

ROOM_STATUSES = ('waiting', 'in_game', 'finished', 'closed')
SESSION_STATUSES = ('waiting', 'round_active', 'round_results', 'game_over')
CODE_ALPHABET = string.ascii_uppercase + string.digits


def _loads(raw, default):
    if not raw:
        return default
    try:
        return json.loads(raw)
    except ValueError:
        return default


class Player(db.Model):
    __tablename__ = 'players'
    __table_args__ = (db.UniqueConstraint('room_id', 'name', name='uq_players_room_name'),)
    # Generated by the client once and cached so reconnects resolve to this row
    id = db.Column(db.String(36), primary_key=True)
    room_id = db.Column(db.Integer, db.ForeignKey('rooms.id', ondelete='CASCADE'), nullable=False, index=True)
    name = db.Column(db.String(64), nullable=False)
    is_host = db.Column(db.Boolean, default=False, nullable=False)
    score = db.Column(db.Integer, default=0, nullable=False)
    last_seen_at = db.Column(db.Float, nullable=False)
    joined_at = db.Column(db.Float, nullable=False)
    room = db.relationship('Room', back_populates='players')

    def to_dict(self):
        return {
            'id': self.id,
            'room_id': self.room_id,
            'name': self.name,
            'is_host': self.is_host,
            'score': self.score,
            'last_seen_at': self.last_seen_at,
            'joined_at': self.joined_at,
        }


def generate_room_code(length=6, max_attempts=10):
    """Generate a room code not held by any existing room.

    Returns None when every attempt collided.
    """
    for _ in range(max_attempts):
        code = ''.join(random.choices(CODE_ALPHABET, k=length))
        if not Room.query.filter_by(code=code).first():
            return code
    return None


class Room(db.Model):
    __tablename__ = 'rooms'
    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(16), unique=True, nullable=False, index=True)
    # Canonical host reference is a Player id, never a display name
    host_id = db.Column(db.String(36), nullable=True)
    status = db.Column(db.String(16), default='waiting', nullable=False)  # waiting, in_game, finished, closed
    game_type = db.Column(db.String(32), nullable=True)
    settings_json = db.Column('settings', db.Text, nullable=True)
    created_at = db.Column(db.Float, nullable=False)
    version = db.Column(db.Integer, nullable=False)
    players = db.relationship(
        'Player', back_populates='room', cascade='all, delete-orphan', order_by='Player.joined_at',
    )
    session = db.relationship(
        'GameSession', back_populates='room', uselist=False, cascade='all, delete-orphan',
    )

    __mapper_args__ = {'version_id_col': version}

    @property
    def settings(self):
        return _loads(self.settings_json, {})

    @settings.setter
    def settings(self, value):
        self.settings_json = json.dumps(value or {})

    @property
    def is_terminal(self):
        return self.status in ('finished', 'closed')

    def to_dict(self):
        return {
            'id': self.id,
            'code': self.code,
            'host_id': self.host_id,
            'status': self.status,
            'game_type': self.game_type,
            'settings': self.settings,
            'created_at': self.created_at,
            'version': self.version,
        }

    def to_public(self):
        """Shape returned by the join endpoint."""
        return {
            'code': self.code,
            'host': self.host_id,
            'status': self.status,
            'gameType': self.game_type,
            'settings': self.settings,
        }


class GameSession(db.Model):
    __tablename__ = 'game_sessions'
    id = db.Column(db.Integer, primary_key=True)
    room_id = db.Column(db.Integer, db.ForeignKey('rooms.id', ondelete='CASCADE'), unique=True, nullable=False)
    status = db.Column(db.String(16), default='waiting', nullable=False)  # waiting, round_active, round_results, game_over
    current_round = db.Column(db.Integer, default=0, nullable=False)
    total_rounds = db.Column(db.Integer, default=0, nullable=False)
    round_data_json = db.Column('round_data', db.Text, nullable=True)
    answers_json = db.Column('answers', db.Text, nullable=True)
    version = db.Column(db.Integer, nullable=False)
    room = db.relationship('Room', back_populates='session')

    __mapper_args__ = {'version_id_col': version}

    @property
    def round_data(self):
        return _loads(self.round_data_json, {})

    @round_data.setter
    def round_data(self, value):
        self.round_data_json = json.dumps(value or {})

    @property
    def answers(self):
        return _loads(self.answers_json, {})

    @answers.setter
    def answers(self, value):
        self.answers_json = json.dumps(value or {})

    @property
    def is_terminal(self):
        return self.status == 'game_over'

    def to_dict(self):
        return {
            'id': self.id,
            'room_id': self.room_id,
            'status': self.status,
            'current_round': self.current_round,
            'total_rounds': self.total_rounds,
            'round_data': self.round_data,
            'answers': self.answers,
            'version': self.version,
        }
