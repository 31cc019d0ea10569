from flask import Blueprint, jsonify, request
from app.routes.main import get_service
from app.services.leaderboard import DEFAULT_LIMIT
from app.services.records import ALL_GAMES, GAME_TYPES
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('leaderboard', __name__)

MAX_LIMIT = 50


@bp.route('/leaderboard', methods=['GET'])
def get_leaderboard_data():
    game_type = request.args.get('gameType', ALL_GAMES)
    if game_type not in GAME_TYPES and game_type != ALL_GAMES:
        return jsonify({"error": f"Unknown game type: {game_type}"}), 400
    try:
        limit = max(min(int(request.args.get('limit', DEFAULT_LIMIT)),
                        MAX_LIMIT), 1)  # Between 1 and 50
    except (ValueError, TypeError):
        limit = DEFAULT_LIMIT

    try:
        entries = get_service().get_leaderboard(game_type, limit)
        return jsonify({
            "gameType": game_type,
            "entries": [entry.to_dict() for entry in entries]
        }), 200

    except Exception as e:
        logger.error(f"Error fetching leaderboard: {str(e)}")
        return jsonify({"error": "Failed to fetch leaderboard"}), 500
