from flask import Blueprint, jsonify, request

from partyroom.services import presence, rooms as registry
from partyroom.services.session import update_settings


rooms = Blueprint('rooms', __name__)


def _body():
    return request.get_json(silent=True) or {}


@rooms.route('/create', methods=['POST'])
def create_room():
    data = _body()
    room, host = registry.create_room(
        data.get('playerName'),
        player_id=data.get('playerId'),
        game_type=data.get('gameType'),
        settings=data.get('settings'),
    )
    return jsonify({'code': room.code, 'playerId': host.id}), 201


@rooms.route('/join', methods=['POST'])
def join_room():
    data = _body()
    room, player, _ = registry.join_room(
        data.get('playerName'), data.get('roomCode'), player_id=data.get('playerId'),
    )
    return jsonify({'success': True, 'room': room.to_public(), 'player': player.to_dict()})


@rooms.route('/delete', methods=['DELETE', 'POST'])
def delete_room():
    data = _body()
    registry.delete_room(data.get('roomCode'), data.get('hostId'))
    return jsonify({'success': True})


@rooms.route('/cleanup', methods=['POST'])
def cleanup_room():
    data = _body()
    return jsonify(registry.cleanup_room(data.get('roomCode')))


@rooms.route('/<string:room_code>/state', methods=['GET'])
def get_room_state(room_code):
    return jsonify(registry.room_state(room_code))


@rooms.route('/<string:room_code>/locate', methods=['POST'])
def locate_player(room_code):
    data = _body()
    room = registry.get_room(room_code)
    player = registry.locate_player(room, data.get('playerId'), data.get('playerName'))
    if not player:
        return jsonify({'error': 'Player not found in this room'}), 404
    return jsonify({'player': player.to_dict()})


@rooms.route('/<string:room_code>/leave', methods=['POST'])
def leave_room(room_code):
    registry.leave_room(room_code, _body().get('playerId'))
    return jsonify({'success': True})


@rooms.route('/<string:room_code>/heartbeat', methods=['POST'])
def heartbeat(room_code):
    player = presence.heartbeat(room_code, _body().get('playerId'))
    return jsonify({'lastSeenAt': player.last_seen_at})


@rooms.route('/<string:room_code>/prune', methods=['POST'])
def prune(room_code):
    removed = presence.prune_stale_players(room_code, _body().get('hostId'))
    return jsonify({'removed': removed})


@rooms.route('/<string:room_code>/host-check', methods=['POST'])
def host_check(room_code):
    closed, last_seen = presence.check_host_liveness(room_code, _body().get('playerId'))
    return jsonify({'closed': closed, 'hostLastSeenAt': last_seen})


@rooms.route('/<string:room_code>/settings', methods=['POST'])
def change_settings(room_code):
    data = _body()
    room = update_settings(
        room_code, data.get('hostId'), data.get('settings'),
        game_type=data.get('gameType'), expected_version=data.get('expectedVersion'),
    )
    return jsonify(room.to_dict())
