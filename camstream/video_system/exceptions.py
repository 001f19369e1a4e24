"""
Exceptions du système de streaming
==================================

Erreurs d'allocation (remontées au client):
- InvalidSource: URL caméra impossible à construire / invalide
- ResourceError: répertoire de sortie impossible à créer
- SpawnError: FFmpeg n'a pas pu être lancé

Erreur post-lancement (journalisée uniquement):
- ProcessExitError: FFmpeg s'est terminé avec un code non nul
"""


class StreamError(Exception):
    """Erreur de base du système de streaming"""

    def __init__(self, message: str, details: dict = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class InvalidSource(StreamError, ValueError):
    """La source caméra ne produit pas d'URL exploitable"""

    def __init__(self, message: str, field: str = None):
        details = {'field': field} if field else {}
        super().__init__(message, details)


class ResourceError(StreamError):
    """Le répertoire de sortie de la session n'a pas pu être créé"""

    def __init__(self, session_id: str, path, message: str = None):
        details = {'session_id': session_id, 'path': str(path)}
        msg = message or f"Impossible de créer le répertoire de sortie {path}"
        super().__init__(msg, details)


class SpawnError(StreamError):
    """Le processus FFmpeg n'a pas pu être démarré"""

    def __init__(self, session_id: str, message: str):
        super().__init__(message, {'session_id': session_id})


class ProcessExitError(StreamError):
    """FFmpeg s'est arrêté de lui-même avec un code d'erreur"""

    def __init__(self, session_id: str, returncode: int):
        self.returncode = returncode
        msg = f"FFmpeg {session_id} terminé avec le code {returncode}"
        super().__init__(msg, {'session_id': session_id, 'returncode': returncode})
