from flask import Blueprint, current_app, jsonify

rooms = Blueprint('rooms', __name__)


def _lobby():
    return current_app.extensions['duelserver']


@rooms.route('', methods=['GET'])
def list_rooms():
    """
    Returns a summary of every live room, in registry order.
    """
    lobby = _lobby()
    with lobby.lock:
        return jsonify([room.to_dict() for room in lobby.rooms]), 200


@rooms.route('/<string:room_code>', methods=['GET'])
def get_room_state(room_code):
    """
    Returns the broadcast snapshot of a room plus its phase and outcome.
    """
    lobby = _lobby()
    with lobby.lock:
        room = lobby.rooms.get(room_code.upper())
        if room is None:
            return jsonify({'error': 'Room not found'}), 404
        response = lobby.broadcast.game_state(room)
        response.update({
            'roomCode': room.code,
            'phase': room.phase.value,
            'winnerId': room.winner_id,
            'loserId': room.loser_id,
        })
        return jsonify(response), 200
