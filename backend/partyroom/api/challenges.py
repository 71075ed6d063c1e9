from flask import Blueprint, current_app, jsonify, request

from partyroom.content import fetch_challenges
from partyroom.schemas import game_spec

challenges = Blueprint('challenges', __name__)

MAX_COUNT = 50


@challenges.route('/<string:game_type>/challenge', methods=['GET'])
def get_challenges(game_type):
    """Fetch challenges for one game type.

    Query parameters other than ``count`` are read as settings (region,
    category, generation, artist). When the upstream source is down the
    fallback dataset is returned with status 500 and ``fallback: true``;
    callers treat that as a usable, degraded response.
    """
    game_spec(game_type)
    try:
        count = int(request.args.get('count', 1))
    except ValueError:
        count = 1
    count = max(1, min(count, MAX_COUNT))
    settings = {k: v for k, v in request.args.items() if k != 'count'}

    items, degraded = fetch_challenges(
        game_type, settings, count, current_app.extensions['partyroom.content_cache'],
        timeout=float(current_app.config.get('UPSTREAM_TIMEOUT_SEC', 5)),
    )
    if degraded:
        return jsonify({'challenges': items, 'fallback': True,
                        'error': f'{game_type} content source unavailable'}), 500
    return jsonify({'challenges': items})
