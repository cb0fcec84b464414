from flask import Blueprint, current_app, jsonify, request

from matrixgame.errors import RateLimitedError

rooms = Blueprint('rooms', __name__)


def _requester_key() -> str:
    forwarded = (request.headers.get('X-Forwarded-For') or '').split(',')[0].strip()
    if forwarded:
        return forwarded
    return request.remote_addr or 'unknown'


@rooms.route('', methods=['POST'])
def create_room():
    """
    Mints a fresh room code. Throttled per requester address.
    """
    coordinator = current_app.extensions['matrixgame']
    try:
        room_id = coordinator.create_room(_requester_key())
    except RateLimitedError as exc:
        response = jsonify(exc.to_payload())
        response.headers['Retry-After'] = str(exc.retry_after)
        return response, 429
    return jsonify({'roomId': room_id})


@rooms.route('/list', methods=['GET'])
@rooms.route('/solo', methods=['GET'])
def list_rooms():
    """
    Returns rooms that have at least one seated player, newest first.
    """
    coordinator = current_app.extensions['matrixgame']
    return jsonify({'rooms': coordinator.list_rooms()})


@rooms.route('/<string:room_id>/state', methods=['GET'])
def get_room_state(room_id):
    coordinator = current_app.extensions['matrixgame']
    state = coordinator.get_state(room_id)
    if state is None:
        return jsonify({'error': 'Room not found'}), 404
    return jsonify(state)
