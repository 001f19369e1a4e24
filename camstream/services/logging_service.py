"""
Service de logging
Fichier journalier + console, format commun à tous les modules
"""
import logging
import os
from datetime import datetime

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def setup_logging(app) -> logging.Logger:
    """
    Configure le logging racine de l'application

    Args:
        app: Instance Flask (utilise LOGS_DIR, DEBUG, TESTING)

    Returns:
        Logger racine configuré
    """
    root_logger = logging.getLogger()
    level = logging.DEBUG if app.config.get('DEBUG') else logging.INFO
    root_logger.setLevel(level)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    # Éviter les doublons (create_app appelé plusieurs fois, reloader Flask)
    if any(getattr(h, '_camstream', False) for h in root_logger.handlers):
        return root_logger

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(formatter)
    console_handler._camstream = True
    root_logger.addHandler(console_handler)

    # Pas de fichier de log pendant les tests
    if app.config.get('TESTING'):
        return root_logger

    logs_dir = app.config['LOGS_DIR']
    try:
        os.makedirs(logs_dir, exist_ok=True)
        log_file = os.path.join(logs_dir, f"camstream_{datetime.now().strftime('%Y%m%d')}.log")
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        file_handler._camstream = True
        root_logger.addHandler(file_handler)
    except OSError as e:
        root_logger.warning(f"⚠️ Fichier de log indisponible dans {logs_dir}: {e}")

    return root_logger
