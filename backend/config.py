import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///partyroom.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    # Room codes
    ROOM_CODE_LENGTH = int(os.environ.get('ROOM_CODE_LENGTH', '6'))
    ROOM_CODE_MAX_ATTEMPTS = int(os.environ.get('ROOM_CODE_MAX_ATTEMPTS', '10'))
    # Empty rooms younger than this are kept by the reaper (seconds)
    ROOM_CLEANUP_GRACE_SEC = int(os.environ.get('ROOM_CLEANUP_GRACE_SEC', '60'))
    MAX_PLAYERS = int(os.environ.get('MAX_PLAYERS', '10'))
    # Presence timers (seconds)
    HEARTBEAT_INTERVAL_SEC = int(os.environ.get('HEARTBEAT_INTERVAL_SEC', '30'))
    PRUNE_INTERVAL_SEC = int(os.environ.get('PRUNE_INTERVAL_SEC', '60'))
    STALE_PLAYER_SEC = int(os.environ.get('STALE_PLAYER_SEC', '120'))
    HOST_FAILOVER_SEC = int(os.environ.get('HOST_FAILOVER_SEC', '150'))
    HOST_CHECK_INTERVAL_SEC = int(os.environ.get('HOST_CHECK_INTERVAL_SEC', '30'))
    # Round defaults when room settings omit them
    DEFAULT_TOTAL_ROUNDS = int(os.environ.get('DEFAULT_TOTAL_ROUNDS', '5'))
    DEFAULT_ROUND_DURATION_MS = int(os.environ.get('DEFAULT_ROUND_DURATION_MS', '15000'))
    # Third-party content sources
    CONTENT_CACHE_TTL_SEC = int(os.environ.get('CONTENT_CACHE_TTL_SEC', '600'))
    UPSTREAM_TIMEOUT_SEC = float(os.environ.get('UPSTREAM_TIMEOUT_SEC', '5'))
