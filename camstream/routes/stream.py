"""
Routes API - Streaming RTSP → HLS
=================================

Endpoints pour:
- Démarrer un stream (POST /start-stream)
- Arrêter un stream (POST /stop-stream)
- Servir manifest et segments HLS (GET /streams/<id>/<fichier>)
- Lister / consulter les sessions actives
"""

import logging
from flask import Blueprint, current_app, jsonify, request, send_from_directory

from ..video_system import (
    InvalidSource,
    ResourceError,
    SourceDescriptor,
    SpawnError,
    build_rtsp_url,
    validate_locator
)

logger = logging.getLogger(__name__)

# Blueprint (chemins à la racine, compatibles avec le lecteur existant)
stream_bp = Blueprint('stream', __name__)


def get_session_manager():
    """SessionManager de l'application courante"""
    return current_app.extensions['stream_manager']


def _resolve_source(data: dict) -> str:
    """
    URL source depuis le body: 'url' déjà construite, ou champs 'camera'

    Raises:
        InvalidSource: champs caméra incomplets ou URL invalide
    """
    if data.get('url'):
        return validate_locator(data['url'])

    descriptor = SourceDescriptor.from_camera_fields(data['camera'])
    return validate_locator(build_rtsp_url(descriptor))


# ======================
# SESSIONS
# ======================

@stream_bp.route('/start-stream', methods=['POST'])
def start_stream():
    """
    Démarrer un stream HLS

    Body:
    {
        "url": "rtsp://user:pass@ip:port/path"
    }
    ou
    {
        "camera": {"ip": str, "user": str, "pass": str, "port": str, "rtsp": str}
    }

    Returns:
    {
        "id": str,
        "hlsUrl": "/streams/<id>/index.m3u8"
    }
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}

    if not data.get('url') and not isinstance(data.get('camera'), dict):
        return jsonify({'error': 'Missing RTSP/HTTP URL'}), 400

    try:
        source_url = _resolve_source(data)
    except InvalidSource as e:
        logger.warning(f"⚠️ Source refusée: {e.message}")
        return jsonify({'error': e.message}), 400

    try:
        session = get_session_manager().start_session(source_url)
    except ResourceError as e:
        return jsonify({'error': e.message}), 500
    except SpawnError as e:
        return jsonify({'error': e.message}), 500
    except Exception as e:
        logger.error(f"❌ Erreur démarrage stream: {e}", exc_info=True)
        return jsonify({'error': 'Erreur démarrage stream'}), 500

    return jsonify({
        'id': session.session_id,
        'hlsUrl': session.hls_url
    }), 200


@stream_bp.route('/stop-stream', methods=['POST'])
def stop_stream():
    """
    Arrêter un stream (toujours OK, même si l'ID est inconnu)

    Body:
    {
        "id": str
    }
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}
    session_id = data.get('id')

    if session_id and isinstance(session_id, str):
        try:
            get_session_manager().stop_session(session_id)
        except Exception as e:
            logger.error(f"❌ Erreur arrêt stream {session_id}: {e}", exc_info=True)

    return jsonify({'ok': True}), 200


@stream_bp.route('/streams/<session_id>/<filename>', methods=['GET'])
def serve_stream_file(session_id: str, filename: str):
    """Servir le manifest ou un segment HLS d'une session"""
    manager = get_session_manager()
    manager.touch_session(session_id)

    publisher = manager.publisher
    response = send_from_directory(
        publisher.root,
        f"{session_id}/{filename}",
        mimetype=publisher.media_type(filename)
    )

    # Le manifest change à chaque segment: jamais de cache
    if filename.endswith('.m3u8'):
        response.headers['Cache-Control'] = 'no-cache, no-store'
    return response


@stream_bp.route('/api/streams', methods=['GET'])
def list_streams():
    """Lister les sessions actives"""
    sessions = get_session_manager().list_sessions()
    return jsonify({
        'success': True,
        'sessions': sessions,
        'count': len(sessions)
    }), 200


@stream_bp.route('/api/streams/<session_id>', methods=['GET'])
def get_stream(session_id: str):
    """Obtenir les détails d'une session"""
    session = get_session_manager().get_session(session_id)
    if not session:
        return jsonify({'error': 'Session non trouvée'}), 404

    return jsonify({
        'success': True,
        'session': session.to_dict()
    }), 200
