# camstream/routes/health.py

"""
Routes pour les health checks et le monitoring
Exposent l'état du serveur de streaming
"""

import logging
from flask import Blueprint, current_app, jsonify
from datetime import datetime

from ..services.monitoring_service import system_snapshot

logger = logging.getLogger(__name__)

health_bp = Blueprint('health', __name__)


@health_bp.route('/api/health', methods=['GET'])
def health_check():
    """
    Point de contrôle de santé de l'API
    Retourne 200 si le service répond, avec l'état système en complément
    """
    manager = current_app.extensions['stream_manager']
    sessions = manager.registry.snapshot()

    try:
        system = system_snapshot(manager.publisher.root, sessions)
    except Exception as e:
        logger.error(f"Snapshot système impossible: {e}")
        system = {'error': str(e)}

    return jsonify({
        'status': 'OK',
        'service': 'camstream',
        'environment': current_app.config.get('ENV_NAME'),
        'active_sessions': len(sessions),
        'system': system,
        'timestamp': datetime.now().isoformat()
    }), 200
