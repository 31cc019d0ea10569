from flask import Blueprint, jsonify, current_app
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('main', __name__)


def get_service():
    return current_app.extensions['game_station']


@bp.route('/', strict_slashes=True)
def index():
    """Return API status"""
    return jsonify({"status": "ok", "message": "Game Station API"})


@bp.route('/api/health')
def health_check():
    """API health check endpoint"""
    service = get_service()
    return jsonify({
        "status": "ok",
        "message": "API is running",
        "backend": service.backend
    })


@bp.route('/api/session', methods=['GET'])
def session_info():
    """Active backend, player identity and ledger configuration"""
    try:
        return jsonify(get_service().session_info()), 200
    except Exception as e:
        logger.error(f"Error reading session info: {str(e)}")
        return jsonify({"error": "Failed to read session info"}), 500
