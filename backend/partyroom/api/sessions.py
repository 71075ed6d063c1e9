from flask import Blueprint, jsonify, request

from partyroom.services import session as machine


sessions = Blueprint('sessions', __name__)


@sessions.route('/<string:room_code>/session/start', methods=['POST'])
def start_game(room_code):
    data = request.get_json(silent=True) or {}
    session = machine.start_game(
        room_code, data.get('hostId'),
        challenges=data.get('challenges'), expected_version=data.get('expectedVersion'),
    )
    return jsonify(session.to_dict())


@sessions.route('/<string:room_code>/session/answer', methods=['POST'])
def submit_answer(room_code):
    data = request.get_json(silent=True) or {}
    session = machine.submit_answer(room_code, data.get('playerId'), data.get('answer'))
    return jsonify({'success': True, 'answers': len(session.answers)})


@sessions.route('/<string:room_code>/session/end-round', methods=['POST'])
def end_round(room_code):
    data = request.get_json(silent=True) or {}
    session = machine.end_round(room_code, data.get('hostId'), expected_version=data.get('expectedVersion'))
    return jsonify(session.to_dict())


@sessions.route('/<string:room_code>/session/next', methods=['POST'])
def next_round(room_code):
    data = request.get_json(silent=True) or {}
    session = machine.next_round(room_code, data.get('hostId'), expected_version=data.get('expectedVersion'))
    return jsonify(session.to_dict())
