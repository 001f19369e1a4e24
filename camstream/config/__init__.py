# camstream/config/__init__.py

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent.parent  # Racine du projet


def _env_int(name, default):
    value = os.environ.get(name)
    if value is None or value.strip() == '':
        return default
    return int(value)


def _env_bool(name, default):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    """Configuration de base."""
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'camstream-dev-key-CHANGE-IN-PRODUCTION'

    # Chemins
    STREAMS_DIR = os.environ.get('STREAMS_DIR', str(BASE_DIR / 'streams'))
    LOGS_DIR = os.environ.get('LOGS_DIR', str(BASE_DIR / 'logs'))

    # FFmpeg / HLS
    FFMPEG_PATH = os.environ.get('FFMPEG_PATH', 'ffmpeg')
    HLS_SEGMENT_SECONDS = _env_int('HLS_SEGMENT_SECONDS', 1)
    HLS_LIST_SIZE = _env_int('HLS_LIST_SIZE', 3)
    STREAMS_URL_PREFIX = '/streams'

    # Sessions (0 = désactivé)
    SESSION_IDLE_TIMEOUT = _env_int('SESSION_IDLE_TIMEOUT', 120)  # 2 minutes sans lecteur
    SESSION_MAX_LIFETIME = _env_int('SESSION_MAX_LIFETIME', 6 * 3600)  # 6 heures
    SESSION_REAPER_INTERVAL = _env_int('SESSION_REAPER_INTERVAL', 30)
    STOP_GRACE_SECONDS = _env_int('STOP_GRACE_SECONDS', 10)
    CLEANUP_OUTPUT_ON_EXIT = _env_bool('CLEANUP_OUTPUT_ON_EXIT', True)

    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*')

    @staticmethod
    def validate():
        """Valide que les variables critiques sont définies."""
        env = os.environ.get('FLASK_ENV', 'development')
        if env == 'production':
            required_vars = ['SECRET_KEY']
            missing_vars = [var for var in required_vars if not os.environ.get(var)]
            if missing_vars:
                raise ValueError(f"Variables d'environnement manquantes pour la production: {', '.join(missing_vars)}")


class DevelopmentConfig(Config):
    """Configuration de développement."""
    DEBUG = True
    CORS_ORIGINS = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
        "http://localhost:8080",
        "http://127.0.0.1:8080",
    ]


class ProductionConfig(Config):
    """Configuration de production."""
    DEBUG = False
    TESTING = False
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*').split(',')


class TestingConfig(Config):
    """Configuration de test."""
    TESTING = True
    SESSION_REAPER_INTERVAL = 1
    STOP_GRACE_SECONDS = 0
    CORS_ORIGINS = "*"


config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}

