"""
partyroom.errors: error taxonomy
================================

Every failure a request can surface is one of these classes. The Flask
handlers registered by ``register_error_handlers`` turn them into
``{"error": message}`` bodies with the matching status code.
"""

from flask import jsonify, current_app
from sqlalchemy.exc import SQLAlchemyError


class PartyRoomError(Exception):
    """Base exception for all partyroom errors."""
    status_code = 500

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self):
        return {'error': self.message}


class ValidationError(PartyRoomError):
    """Missing or malformed request fields; raised before any write."""
    status_code = 400


class NotFound(PartyRoomError):
    status_code = 404


class Forbidden(PartyRoomError):
    """A non-host attempted a host-only action."""
    status_code = 403


class Conflict(PartyRoomError):
    """Duplicate join or insert. Callers swallow it and report success."""
    status_code = 409


class StaleWrite(Conflict):
    """A host write carried a version that no longer matches the stored row."""

    def __init__(self, table: str, expected: int, actual: int):
        super().__init__(f'{table} was modified concurrently (expected version {expected}, found {actual})')
        self.table = table
        self.expected = expected
        self.actual = actual

    def to_dict(self):
        return {'error': self.message, 'version': self.actual}


class UpstreamUnavailable(PartyRoomError):
    """A third-party content source failed. Recovered by the adapter layer."""
    status_code = 502

    def __init__(self, source: str, reason: str):
        super().__init__(f'{source} unavailable: {reason}')
        self.source = source
        self.reason = reason


class InternalError(PartyRoomError):
    status_code = 500


def register_error_handlers(flask_app) -> None:
    @flask_app.errorhandler(PartyRoomError)
    def handle_partyroom_error(exc):
        if exc.status_code >= 500:
            current_app.logger.error(f"[error] {type(exc).__name__}: {exc.message}")
        return jsonify(exc.to_dict()), exc.status_code

    @flask_app.errorhandler(SQLAlchemyError)
    def handle_store_error(exc):
        from partyroom import db
        db.session.rollback()
        current_app.logger.exception(f"[store-error] {exc}")
        return jsonify({'error': 'Internal server error'}), 500
