"""
Fichier principal de l'application Camstream
Factory pattern pour créer l'instance Flask
"""
import atexit
import logging
import os
from pathlib import Path

from flask import Flask
from flask_cors import CORS

from .config import config
from .routes.health import health_bp
from .routes.stream import stream_bp
from .services.logging_service import setup_logging
from .video_system import HlsTranscoder, SessionManager, StreamPublisher

logger = logging.getLogger(__name__)


def create_app(config_name=None, config_overrides=None):
    """
    Factory pour créer l'application Flask

    Args:
        config_name (str): Nom de la configuration à utiliser ('development', 'production', 'testing')
                          Par défaut, utilise la variable d'environnement FLASK_ENV ou 'development'
        config_overrides (dict): Valeurs de configuration prioritaires (tests, scripts)

    Returns:
        Flask: Instance de l'application configurée
    """

    # Déterminer la configuration à utiliser
    if config_name is None:
        config_name = os.environ.get('FLASK_ENV', 'development')
    if config_name not in config:
        config_name = 'default'

    app = Flask(__name__)
    app.config.from_object(config[config_name])
    if config_overrides:
        app.config.update(config_overrides)
    app.config['ENV_NAME'] = config_name

    app.config['JSON_AS_ASCII'] = False
    app.config['JSON_SORT_KEYS'] = False

    # Validation de la configuration en production
    if config_name == 'production':
        config[config_name].validate()

    setup_logging(app)

    # Configuration CORS
    CORS(app,
         origins=app.config['CORS_ORIGINS'],
         allow_headers=["Content-Type"],
         methods=["GET", "POST", "OPTIONS"])

    manager = _init_stream_manager(app)
    app.extensions['stream_manager'] = manager

    # Enregistrement des blueprints
    app.register_blueprint(stream_bp)
    app.register_blueprint(health_bp)

    @app.route('/')
    def index():
        """Page d'accueil de l'API"""
        return {
            'message': 'Bienvenue sur l\'API Camstream',
            'version': '1.0.0',
            'endpoints': {
                'start': '/start-stream',
                'stop': '/stop-stream',
                'streams': '/streams/<id>/index.m3u8',
                'sessions': '/api/streams',
                'health': '/api/health'
            }
        }

    if not app.config.get('TESTING'):
        manager.start_reaper()
        atexit.register(manager.shutdown)

    logger.info(f"✅ Camstream initialisé (env={config_name})")
    return app


def _init_stream_manager(app) -> SessionManager:
    """
    Construit le SessionManager depuis la configuration

    Args:
        app: Instance Flask
    """
    publisher = StreamPublisher(
        app.config['STREAMS_DIR'],
        url_prefix=app.config['STREAMS_URL_PREFIX']
    )
    transcoder = HlsTranscoder(
        ffmpeg_path=app.config['FFMPEG_PATH'],
        logs_dir=Path(app.config['LOGS_DIR']) / 'ffmpeg',
        segment_seconds=app.config['HLS_SEGMENT_SECONDS'],
        list_size=app.config['HLS_LIST_SIZE']
    )
    manager = SessionManager(
        publisher,
        transcoder,
        idle_timeout=app.config['SESSION_IDLE_TIMEOUT'],
        max_lifetime=app.config['SESSION_MAX_LIFETIME'],
        reaper_interval=app.config['SESSION_REAPER_INTERVAL'],
        stop_grace_seconds=app.config['STOP_GRACE_SECONDS'],
        cleanup_output_on_exit=app.config['CLEANUP_OUTPUT_ON_EXIT']
    )

    # Aucune session ne survit à un redémarrage
    manager.purge_stale_outputs()
    return manager
