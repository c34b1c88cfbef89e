"""Main blueprint with health check endpoints."""
from flask import Blueprint, jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from tunik.database import get_session

main_bp = Blueprint('main', __name__)


@main_bp.route('/')
def index():
    return jsonify({'ok': True, 'msg': 'Tunik API'})


@main_bp.route('/health')
def health():
    """
    Health check endpoint that validates database connection.

    Returns:
        200: Healthy (DB connected)
        500: Unhealthy (DB error)
    """
    try:
        session = get_session()
        row = session.execute(text("SELECT 1 as health_check")).fetchone()

        if row and row[0] == 1:
            return jsonify({
                'ok': True,
                'data': {'status': 'healthy', 'database': 'connected'}
            }), 200
        return jsonify({
            'ok': False,
            'msg': 'Unexpected query result',
            'data': {'status': 'unhealthy', 'database': 'error'}
        }), 500

    except SQLAlchemyError as e:
        return jsonify({
            'ok': False,
            'msg': 'Failed to connect to database',
            'error': str(e),
            'data': {'status': 'unhealthy', 'database': 'disconnected'}
        }), 500
