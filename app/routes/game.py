from flask import Blueprint, jsonify, request
from app.routes.main import get_service
import logging

# Set up logging
logger = logging.getLogger(__name__)

bp = Blueprint('game', __name__)


def _int_arg(data, name, default):
    value = data.get(name, default)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer")
    return value


@bp.route('/results', methods=['POST'])
def submit_result():
    """Record one game result and report any achievements it unlocked"""
    try:
        data = request.get_json(silent=True) or {}
        game_type = data.get('gameType')
        if not game_type:
            return jsonify({"error": "gameType is required"}), 400
        won = data.get('won', False)
        if not isinstance(won, bool):
            return jsonify({"error": "won must be true or false"}), 400

        service = get_service()
        success = service.submit_result(game_type,
                                        won,
                                        score=data.get('score'),
                                        extra=data.get('extra'))

        logger.info(f"Result for {game_type} submitted: success={success}")
        return jsonify({
            "success": success,
            "unlocked": service.last_unlocks,
            "recentUnlock": service.recent_unlock
        }), 200

    except Exception as e:
        logger.error(f"Error submitting game result: {str(e)}")
        return jsonify({"error": "Failed to submit result"}), 500


@bp.route('/profile', methods=['POST'])
def update_profile():
    """Set the username and avatar of the current player"""
    try:
        data = request.get_json(silent=True) or {}
        username = data.get('username')
        if not username:
            return jsonify({"error": "username is required"}), 400
        try:
            avatar_id = _int_arg(data, 'avatarId', 0)
        except ValueError as e:
            return jsonify({"error": str(e)}), 400

        success = get_service().update_profile(username, avatar_id)
        return jsonify({"success": success}), 200

    except Exception as e:
        logger.error(f"Error updating profile: {str(e)}")
        return jsonify({"error": "Failed to update profile"}), 500


@bp.route('/rooms', methods=['GET'])
def list_rooms():
    try:
        game_type = request.args.get('gameType')
        rooms = get_service().get_active_rooms(game_type)
        return jsonify({"rooms": [room.to_dict() for room in rooms]}), 200

    except Exception as e:
        logger.error(f"Error listing rooms: {str(e)}")
        return jsonify({"error": "Failed to list rooms"}), 500


@bp.route('/rooms', methods=['POST'])
def create_room():
    try:
        data = request.get_json(silent=True) or {}
        game_type = data.get('gameType')
        if not game_type:
            return jsonify({"error": "gameType is required"}), 400
        try:
            max_players = _int_arg(data, 'maxPlayers', 2)
            entry_fee = _int_arg(data, 'entryFee', 0)
        except ValueError as e:
            return jsonify({"error": str(e)}), 400

        room_id = get_service().create_room(game_type, max_players, entry_fee)
        if room_id is None:
            return jsonify({"success": False, "roomId": None}), 200
        return jsonify({"success": True, "roomId": room_id}), 201

    except Exception as e:
        logger.error(f"Error creating room: {str(e)}")
        return jsonify({"error": "Failed to create room"}), 500


@bp.route('/rooms/<room_id>/join', methods=['POST'])
def join_room(room_id):
    try:
        success = get_service().join_room(room_id)
        return jsonify({"success": success, "roomId": room_id}), 200

    except Exception as e:
        logger.error(f"Error joining room {room_id}: {str(e)}")
        return jsonify({"error": "Failed to join room"}), 500
