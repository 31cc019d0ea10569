from flask import Blueprint, jsonify
from app.routes.main import get_service
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('stats', __name__)


@bp.route('/profile', methods=['GET'])
@bp.route('/profile/<player_id>', methods=['GET'])
def get_profile(player_id=None):
    """Profile view with level and per-game counters"""
    try:
        profile = get_service().get_user_profile(player_id)
        if profile is None:
            return jsonify({"error": "Profile not available"}), 404
        return jsonify(profile.to_dict()), 200

    except Exception as e:
        logger.error(f"Error fetching profile: {str(e)}")
        return jsonify({"error": "Failed to fetch profile"}), 500


@bp.route('/snake/high-score', methods=['GET'])
@bp.route('/snake/high-score/<player_id>', methods=['GET'])
def get_snake_high_score(player_id=None):
    try:
        high_score = get_service().get_snake_high_score(player_id)
        return jsonify({"highScore": high_score}), 200

    except Exception as e:
        logger.error(f"Error fetching snake high score: {str(e)}")
        return jsonify({"error": "Failed to fetch high score"}), 500


@bp.route('/achievements', methods=['GET'])
def get_achievements():
    """Full catalogue with the current player's unlock state"""
    try:
        service = get_service()
        return jsonify({
            "achievements": service.get_achievements(),
            "progress": service.get_achievement_progress(),
            "recentUnlock": service.recent_unlock
        }), 200

    except Exception as e:
        logger.error(f"Error fetching achievements: {str(e)}")
        return jsonify({"error": "Failed to fetch achievements"}), 500


@bp.route('/achievements/recent', methods=['DELETE'])
def clear_recent_unlock():
    get_service().clear_recent_unlock()
    return jsonify({"success": True}), 200
