"""
Session Manager - Cycle de vie des sessions de streaming
========================================================

Responsabilités:
- Allouer un ID unique par session
- Préparer la sortie HLS (StreamPublisher) puis lancer FFmpeg (HlsTranscoder)
- Tenir le registre des sessions actives
- Arrêter les sessions (demande client, sortie du processus, expiration)

Cycle de vie: STARTING -> RUNNING -> STOPPING -> TERMINATED
(RUNNING -> TERMINATED directement si FFmpeg s'arrête de lui-même)
"""

import logging
import signal
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from pathlib import Path
from typing import List, Optional

from .exceptions import ProcessExitError, SpawnError
from .publisher import StreamPublisher
from .registry import SessionRegistry
from .transcoder import HlsTranscoder
from .url_builder import mask_credentials

logger = logging.getLogger(__name__)

# Codes de sortie FFmpeg considérés comme un arrêt normal après interruption
_INTERRUPT_RETURNCODES = {0, 255, -signal.SIGINT, -getattr(signal, 'SIGKILL', 9)}


class SessionState(str, Enum):
    STARTING = 'starting'
    RUNNING = 'running'
    STOPPING = 'stopping'
    TERMINATED = 'terminated'


@dataclass
class StreamSession:
    """Session de transcodage RTSP -> HLS"""
    session_id: str
    source_url: str
    output_dir: Optional[Path] = None
    manifest_path: Optional[Path] = None
    hls_url: Optional[str] = None

    # Processus FFmpeg (détenu exclusivement par le SessionManager)
    process: Optional[object] = field(default=None, repr=False)
    state: SessionState = SessionState.STARTING

    created_at: datetime = field(default_factory=datetime.now)
    last_activity: datetime = field(default_factory=datetime.now)

    returncode: Optional[int] = None
    stop_reason: Optional[str] = None

    def touch(self):
        """Mettre à jour l'activité (un lecteur a demandé un fichier)"""
        self.last_activity = datetime.now()

    def is_idle(self, timeout_seconds: int, now: datetime = None) -> bool:
        if not timeout_seconds:
            return False
        now = now or datetime.now()
        return now - self.last_activity > timedelta(seconds=timeout_seconds)

    def is_past_lifetime(self, max_lifetime_seconds: int, now: datetime = None) -> bool:
        if not max_lifetime_seconds:
            return False
        now = now or datetime.now()
        return now - self.created_at > timedelta(seconds=max_lifetime_seconds)

    def uptime_seconds(self) -> int:
        return int((datetime.now() - self.created_at).total_seconds())

    @property
    def pid(self) -> Optional[int]:
        return self.process.pid if self.process is not None else None

    def to_dict(self) -> dict:
        """Convertir en dictionnaire pour JSON"""
        return {
            'id': self.session_id,
            'source_url': mask_credentials(self.source_url),
            'hlsUrl': self.hls_url,
            'state': self.state.value,
            'pid': self.pid,
            'created_at': self.created_at.isoformat(),
            'last_activity': self.last_activity.isoformat(),
            'uptime_seconds': self.uptime_seconds(),
            'returncode': self.returncode,
            'stop_reason': self.stop_reason,
        }


class SessionManager:
    """Superviseur des processus FFmpeg, un par session"""

    def __init__(
        self,
        publisher: StreamPublisher,
        transcoder: HlsTranscoder,
        idle_timeout: int = 0,
        max_lifetime: int = 0,
        reaper_interval: int = 30,
        stop_grace_seconds: float = 10,
        cleanup_output_on_exit: bool = True
    ):
        self.publisher = publisher
        self.transcoder = transcoder
        self.registry = SessionRegistry()

        self.idle_timeout = idle_timeout
        self.max_lifetime = max_lifetime
        self.reaper_interval = reaper_interval
        self.stop_grace_seconds = stop_grace_seconds
        self.cleanup_output_on_exit = cleanup_output_on_exit

        # Sérialise l'allocation d'ID (réservation jusqu'à l'enregistrement)
        self._allocation_lock = threading.Lock()
        self._reserved_ids = set()

        # Transitions d'état (arrêt demandé vs sortie du processus)
        self._transition_lock = threading.Lock()

        self._reaper_thread = None
        self._reaper_stop = threading.Event()

        logger.info("🎬 SessionManager initialisé")

    # ======================
    # START
    # ======================

    def _allocate_id(self) -> str:
        with self._allocation_lock:
            while True:
                session_id = str(uuid.uuid4())
                if session_id not in self._reserved_ids and session_id not in self.registry:
                    self._reserved_ids.add(session_id)
                    return session_id

    def _release_id(self, session_id: str):
        with self._allocation_lock:
            self._reserved_ids.discard(session_id)

    def start_session(self, source_url: str) -> StreamSession:
        """
        Démarrer une session de streaming

        Args:
            source_url: URL source déjà normalisée

        Returns:
            StreamSession en état RUNNING

        Raises:
            ResourceError: répertoire de sortie impossible à créer
            SpawnError: FFmpeg n'a pas pu être lancé
        """
        session_id = self._allocate_id()
        session = StreamSession(session_id=session_id, source_url=source_url)

        logger.info(f"📹 Création session {session_id} depuis {mask_credentials(source_url)}")

        try:
            output = self.publisher.publish(session_id)
            session.output_dir = output.output_dir
            session.manifest_path = output.manifest_path
            session.hls_url = output.url

            try:
                session.process = self.transcoder.launch(
                    session_id, source_url, output.manifest_path
                )
                session.state = SessionState.RUNNING
                self.transcoder.watch(
                    session_id,
                    session.process,
                    lambda returncode: self._on_process_exit(session, returncode)
                )
            except SpawnError:
                self.publisher.discard(session_id)
                raise
            except Exception as e:
                # Processus lancé mais non surveillé: on ne le garde pas
                if session.process is not None:
                    self.transcoder.kill(session.process)
                session.state = SessionState.TERMINATED
                self.publisher.discard(session_id)
                logger.error(f"❌ Démarrage session {session_id} abandonné: {e}")
                raise SpawnError(session_id, f"Démarrage FFmpeg impossible: {e}") from e

            with self._transition_lock:
                # FFmpeg déjà terminé: la session n'est pas enregistrée
                if session.state == SessionState.RUNNING:
                    self.registry.add(session)
        finally:
            self._release_id(session_id)

        logger.info(f"✅ Session {session_id} démarrée -> {session.hls_url}")
        return session

    # ======================
    # STOP
    # ======================

    def stop_session(self, session_id: str, reason: str = 'requested') -> bool:
        """
        Arrêter une session (idempotent)

        Retourne dès que le signal d'interruption est envoyé; la fin du
        processus est traitée par le thread de surveillance.

        Returns:
            True si une session active a été arrêtée, False sinon
        """
        with self._transition_lock:
            session = self.registry.pop(session_id)
            if session is None:
                logger.debug(f"Session {session_id} inconnue ou déjà terminée")
                return False
            session.state = SessionState.STOPPING
            session.stop_reason = reason

        logger.info(f"🛑 Arrêt session {session_id} ({reason})")
        self.transcoder.interrupt(session.process)

        if self.stop_grace_seconds:
            timer = threading.Timer(
                self.stop_grace_seconds, self.transcoder.kill, args=(session.process,)
            )
            timer.daemon = True
            timer.start()

        return True

    def _on_process_exit(self, session: StreamSession, returncode: int):
        """Callback de fin de processus (thread de surveillance)"""
        session_id = session.session_id

        with self._transition_lock:
            # Déjà retiré si stop_session est passé avant: sans effet
            self.registry.pop(session_id)
            interrupted = session.state == SessionState.STOPPING
            session.returncode = returncode
            session.state = SessionState.TERMINATED
            if session.stop_reason is None:
                session.stop_reason = 'exited'

        if interrupted and returncode in _INTERRUPT_RETURNCODES:
            logger.info(f"FFmpeg {session_id} arrêté (code {returncode})")
        elif returncode != 0:
            logger.error(f"❌ {ProcessExitError(session_id, returncode)}")
        else:
            logger.info(f"FFmpeg {session_id} terminé normalement")

        if self.cleanup_output_on_exit:
            self.publisher.discard(session_id)

    # ======================
    # LECTURE
    # ======================

    def get_session(self, session_id: str) -> Optional[StreamSession]:
        return self.registry.get(session_id)

    def touch_session(self, session_id: str) -> bool:
        """Marquer l'activité d'un lecteur sur la session"""
        session = self.registry.get(session_id)
        if session is None:
            return False
        session.touch()
        return True

    def list_sessions(self) -> List[dict]:
        """Lister toutes les sessions actives"""
        return [s.to_dict() for s in self.registry.snapshot()]

    def active_count(self) -> int:
        return len(self.registry)

    # ======================
    # EXPIRATION
    # ======================

    def reap_expired(self, now: datetime = None) -> int:
        """Arrêter les sessions inactives ou trop anciennes"""
        now = now or datetime.now()
        expired = []

        for session in self.registry.snapshot():
            if session.is_past_lifetime(self.max_lifetime, now):
                expired.append((session.session_id, 'max_lifetime'))
            elif session.is_idle(self.idle_timeout, now):
                expired.append((session.session_id, 'idle'))

        count = 0
        for session_id, reason in expired:
            if self.stop_session(session_id, reason=reason):
                count += 1

        if count:
            logger.info(f"🧹 {count} session(s) expirée(s) arrêtée(s)")
        return count

    def start_reaper(self):
        """Démarrer le thread de nettoyage périodique"""
        if not (self.idle_timeout or self.max_lifetime):
            logger.info("Expiration des sessions désactivée")
            return
        if self._reaper_thread and self._reaper_thread.is_alive():
            return

        self._reaper_stop.clear()

        def run_reaper():
            logger.info("⏰ Nettoyage des sessions expirées démarré")
            while not self._reaper_stop.wait(self.reaper_interval):
                try:
                    self.reap_expired()
                except Exception as e:
                    logger.error(f"❌ Erreur nettoyage sessions: {e}", exc_info=True)

        self._reaper_thread = threading.Thread(
            target=run_reaper, daemon=True, name="StreamSessionReaper"
        )
        self._reaper_thread.start()

    def stop_reaper(self):
        self._reaper_stop.set()
        if self._reaper_thread:
            self._reaper_thread.join(timeout=5)
            self._reaper_thread = None

    def purge_stale_outputs(self) -> int:
        """Supprimer les sorties d'une exécution précédente (aucune session n'y survit)"""
        self.publisher.ensure_root()
        return self.publisher.purge()

    def shutdown(self):
        """Arrêter le nettoyage et toutes les sessions actives"""
        self.stop_reaper()
        ids = [s.session_id for s in self.registry.snapshot()]
        for session_id in ids:
            self.stop_session(session_id, reason='shutdown')
        if ids:
            logger.info(f"✅ {len(ids)} session(s) arrêtée(s) à la fermeture")
