"""
Stream Publisher - Publication des sorties HLS
==============================================

Responsabilités:
- Associer chaque session à un répertoire <streams>/<session_id>/
- Calculer le chemin du manifest et l'URL publique correspondante
- Nettoyer les répertoires des sessions terminées

Le publisher n'attend jamais l'apparition du manifest: le lecteur
tolère quelques 404 le temps que FFmpeg écrive les premiers segments.
"""

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path

from .exceptions import ResourceError

logger = logging.getLogger(__name__)

MANIFEST_NAME = 'index.m3u8'

MEDIA_TYPES = {
    '.m3u8': 'application/vnd.apple.mpegurl',
    '.ts': 'video/mp2t',
    '.m4s': 'video/mp4',
    '.mp4': 'video/mp4',
}


@dataclass(frozen=True)
class PublishedOutput:
    """Emplacement de sortie d'une session"""
    output_dir: Path
    manifest_path: Path
    url: str


class StreamPublisher:
    """Gestionnaire des répertoires de sortie HLS"""

    def __init__(self, streams_root, url_prefix: str = '/streams',
                 manifest_name: str = MANIFEST_NAME):
        self.root = Path(streams_root).resolve()
        self.url_prefix = url_prefix.rstrip('/')
        self.manifest_name = manifest_name

    def output_dir(self, session_id: str) -> Path:
        return self.root / session_id

    def manifest_path(self, session_id: str) -> Path:
        return self.output_dir(session_id) / self.manifest_name

    def manifest_url(self, session_id: str) -> str:
        return f"{self.url_prefix}/{session_id}/{self.manifest_name}"

    def ensure_root(self):
        """Créer le répertoire racine des streams"""
        self.root.mkdir(parents=True, exist_ok=True)

    def publish(self, session_id: str) -> PublishedOutput:
        """
        Préparer la sortie d'une session

        Args:
            session_id: ID de la session

        Returns:
            PublishedOutput (répertoire, manifest, URL HLS)

        Raises:
            ResourceError: si le répertoire ne peut pas être créé
        """
        output_dir = self.output_dir(session_id)
        try:
            output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"❌ Création répertoire impossible {output_dir}: {e}")
            raise ResourceError(session_id, output_dir, str(e)) from e

        return PublishedOutput(
            output_dir=output_dir,
            manifest_path=self.manifest_path(session_id),
            url=self.manifest_url(session_id),
        )

    def discard(self, session_id: str):
        """Supprimer le répertoire d'une session (absent = OK)"""
        output_dir = self.output_dir(session_id)
        if not output_dir.exists():
            return
        try:
            shutil.rmtree(output_dir)
            logger.debug(f"Répertoire supprimé: {output_dir}")
        except OSError as e:
            logger.warning(f"⚠️ Suppression impossible {output_dir}: {e}")

    def purge(self) -> int:
        """Supprimer les sorties laissées par une exécution précédente"""
        if not self.root.exists():
            return 0

        count = 0
        for child in self.root.iterdir():
            if child.is_dir():
                shutil.rmtree(child, ignore_errors=True)
                count += 1

        if count:
            logger.info(f"🧹 {count} répertoire(s) de stream obsolète(s) supprimé(s)")
        return count

    @staticmethod
    def media_type(filename: str):
        """Type MIME d'un fichier HLS (None = laisser Flask deviner)"""
        return MEDIA_TYPES.get(Path(filename).suffix.lower())
