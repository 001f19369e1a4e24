# camstream/services/monitoring_service.py

"""
Monitoring simple du serveur de streaming
Mémoire, disque des streams et consommation des processus FFmpeg
"""

import logging
from datetime import datetime

import psutil

logger = logging.getLogger(__name__)

MEMORY_WARNING_PERCENT = 80
DISK_WARNING_PERCENT = 90


def process_stats(pid):
    """Statistiques d'un processus FFmpeg (None s'il n'existe plus)"""
    if pid is None:
        return None
    try:
        proc = psutil.Process(pid)
        with proc.oneshot():
            return {
                'pid': pid,
                'cpu_percent': proc.cpu_percent(interval=None),
                'memory_mb': round(proc.memory_info().rss / (1024 * 1024), 1),
                'status': proc.status()
            }
    except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
        return None


def system_snapshot(streams_dir, sessions=()):
    """
    État du système pour /api/health

    Args:
        streams_dir: Répertoire racine des sorties HLS
        sessions: Sessions actives (StreamSession)
    """
    memory = psutil.virtual_memory()
    snapshot = {
        'memory_percent': memory.percent,
        'memory_ok': memory.percent < MEMORY_WARNING_PERCENT,
        'timestamp': datetime.now().isoformat()
    }

    if memory.percent >= MEMORY_WARNING_PERCENT:
        logger.warning(f"⚠️ Mémoire élevée {memory.percent:.1f}%")

    try:
        disk = psutil.disk_usage(str(streams_dir))
        snapshot['disk_percent'] = disk.percent
        snapshot['disk_free_gb'] = round(disk.free / (1024 ** 3), 2)
        snapshot['disk_ok'] = disk.percent < DISK_WARNING_PERCENT
    except OSError as e:
        logger.warning(f"⚠️ Disque des streams illisible ({streams_dir}): {e}")
        snapshot['disk_ok'] = False

    ffmpeg = []
    for session in sessions:
        stats = process_stats(session.pid)
        if stats:
            stats['session_id'] = session.session_id
            ffmpeg.append(stats)
    snapshot['ffmpeg_processes'] = ffmpeg

    return snapshot
