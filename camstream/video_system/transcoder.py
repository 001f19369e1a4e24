"""
HLS Transcoder - Lancement et pilotage de FFmpeg
================================================

- Résolution robuste du chemin FFmpeg
- Construction de la commande RTSP -> HLS (copie vidéo, sans audio)
- Threaded logging de stderr vers un fichier par session
- Interruption propre (SIGINT / CTRL_BREAK_EVENT) puis kill si nécessaire
"""

import io
import logging
import os
import platform
import shutil
import signal
import subprocess
import threading
from pathlib import Path
from typing import Callable, List, Optional

from .exceptions import SpawnError
from .url_builder import mask_credentials

logger = logging.getLogger(__name__)


def build_hls_command(ffmpeg_path: str, source_url: str, manifest_path,
                      segment_seconds: int = 1, list_size: int = 3) -> List[str]:
    """Construire la commande FFmpeg source -> HLS glissant"""
    cmd = [
        ffmpeg_path,
        "-hide_banner",
        "-loglevel", "warning",
        "-nostdin",
        # Ingestion faible latence, sans buffer
        "-fflags", "nobuffer",
        "-flags", "low_delay",
    ]

    if source_url.lower().startswith('rtsp'):
        cmd.extend(["-rtsp_transport", "tcp"])

    cmd.extend([
        "-i", source_url,
        "-an",
        "-c:v", "copy",
        "-hls_time", str(segment_seconds),
        "-hls_list_size", str(list_size),
        "-hls_flags", "delete_segments+append_list",
        "-f", "hls",
        str(manifest_path),
    ])
    return cmd


class HlsTranscoder:
    """Lanceur FFmpeg pour les sessions de streaming"""

    def __init__(self, ffmpeg_path: str = 'ffmpeg', logs_dir=None,
                 segment_seconds: int = 1, list_size: int = 3,
                 popen: Callable = None):
        self.ffmpeg_path = ffmpeg_path
        self.logs_dir = Path(logs_dir) if logs_dir else None
        self.segment_seconds = segment_seconds
        self.list_size = list_size
        self._popen = popen or subprocess.Popen

    def _resolve_ffmpeg(self) -> str:
        """Résoudre le chemin de l'exécutable FFmpeg"""
        ffmpeg_path = self.ffmpeg_path
        if os.path.isabs(ffmpeg_path):
            if Path(ffmpeg_path).exists():
                return ffmpeg_path
            if platform.system() == "Windows" and Path(ffmpeg_path + ".exe").exists():
                return ffmpeg_path + ".exe"
            raise FileNotFoundError(ffmpeg_path)

        resolved = shutil.which(ffmpeg_path)
        if not resolved and platform.system() == "Windows":
            resolved = shutil.which(ffmpeg_path + ".exe")
        if not resolved:
            raise FileNotFoundError(ffmpeg_path)
        return resolved

    def get_log_path(self, session_id: str) -> Optional[Path]:
        """Chemin du fichier log FFmpeg d'une session"""
        if not self.logs_dir:
            return None
        return self.logs_dir / f"{session_id}.ffmpeg.log"

    def launch(self, session_id: str, source_url: str, manifest_path) -> subprocess.Popen:
        """
        Lancer FFmpeg pour une session (une seule tentative)

        Raises:
            SpawnError: FFmpeg introuvable ou lancement refusé par l'OS
        """
        try:
            ffmpeg_exec = self._resolve_ffmpeg()
        except FileNotFoundError:
            logger.error(f"❌ Exécutable FFmpeg introuvable: '{self.ffmpeg_path}'")
            raise SpawnError(session_id, f"FFmpeg introuvable: {self.ffmpeg_path}")

        cmd = build_hls_command(
            ffmpeg_exec, source_url, manifest_path,
            segment_seconds=self.segment_seconds,
            list_size=self.list_size,
        )
        safe_cmd = [mask_credentials(arg) for arg in cmd]
        logger.info(f"📝 Commande FFmpeg [{session_id}]: {' '.join(safe_cmd)}")

        creationflags = 0
        if platform.system() == "Windows":
            creationflags = subprocess.CREATE_NEW_PROCESS_GROUP

        try:
            process = self._popen(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
                creationflags=creationflags
            )
        except (OSError, ValueError, subprocess.SubprocessError) as e:
            logger.error(f"❌ Échec lancement FFmpeg [{session_id}]: {e}")
            raise SpawnError(session_id, f"Échec lancement FFmpeg: {e}") from e

        logger.info(f"✅ FFmpeg démarré [{session_id}] (PID: {process.pid})")
        return process

    def watch(self, session_id: str, process,
              on_exit: Callable[[int], None]) -> threading.Thread:
        """
        Observer stderr puis attendre la fin du processus

        on_exit(returncode) est appelé depuis le thread de surveillance.
        """
        log_path = self.get_log_path(session_id)
        log_file = None
        if log_path:
            try:
                log_path.parent.mkdir(parents=True, exist_ok=True)
                log_file = open(log_path, 'a', encoding='utf-8', errors='replace')
            except OSError as e:
                logger.warning(f"⚠️ Log FFmpeg indisponible {log_path}: {e}")

        def _run():
            try:
                self._drain_stderr(session_id, process.stderr, log_file)
                returncode = process.wait()
            finally:
                if log_file:
                    log_file.close()
            on_exit(returncode)

        thread = threading.Thread(
            target=_run, daemon=True, name=f"ffmpeg-watch-{session_id[:8]}"
        )
        try:
            thread.start()
        except RuntimeError:
            if log_file:
                log_file.close()
            raise
        return thread

    @staticmethod
    def _drain_stderr(session_id: str, stream, fh=None):
        if not stream:
            return
        try:
            text_stream = io.TextIOWrapper(stream, encoding='utf-8', errors='replace')
            for line in text_stream:
                line = line.rstrip('\n')
                if not line:
                    continue
                if fh:
                    fh.write(line + '\n')
                    fh.flush()
                # Console: uniquement les erreurs, le reste va dans le fichier
                if "error" in line.lower():
                    logger.warning(f"[ffmpeg][{session_id}] {line}")
        except (OSError, ValueError) as e:
            logger.debug(f"Lecture stderr FFmpeg interrompue [{session_id}]: {e}")

    @staticmethod
    def interrupt(process) -> bool:
        """Envoyer le signal d'interruption (arrêt propre)"""
        try:
            if platform.system() == "Windows":
                process.send_signal(signal.CTRL_BREAK_EVENT)
            else:
                process.send_signal(signal.SIGINT)
            return True
        except OSError as e:
            logger.warning(f"⚠️ Signal d'arrêt non délivré (PID {process.pid}): {e}")
            return False

    @staticmethod
    def kill(process):
        """Forcer l'arrêt si le processus tourne encore"""
        if process.poll() is not None:
            return
        logger.warning(f"FFmpeg ne s'arrête pas, kill (PID {process.pid})")
        try:
            process.kill()
        except OSError as e:
            logger.error(f"❌ Kill impossible (PID {process.pid}): {e}")
