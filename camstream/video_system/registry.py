"""
Session Registry - Table des sessions actives
=============================================

Table en mémoire session_id -> StreamSession, protégée par un verrou.
Seul le SessionManager la modifie. Le verrou n'est tenu que le temps
de l'opération sur le dict (jamais pendant un signal ou un wait()).
"""

import threading
from typing import Dict, List, Optional


class SessionRegistry:
    """Registre thread-safe des sessions de streaming"""

    def __init__(self):
        self._sessions: Dict[str, 'StreamSession'] = {}
        self._lock = threading.Lock()

    def add(self, session: 'StreamSession'):
        """Enregistrer une session (l'ID ne doit pas déjà exister)"""
        with self._lock:
            if session.session_id in self._sessions:
                raise KeyError(f"Session déjà enregistrée: {session.session_id}")
            self._sessions[session.session_id] = session

    def get(self, session_id: str) -> Optional['StreamSession']:
        with self._lock:
            return self._sessions.get(session_id)

    def pop(self, session_id: str) -> Optional['StreamSession']:
        """Retirer une session si elle existe (None sinon)"""
        with self._lock:
            return self._sessions.pop(session_id, None)

    def snapshot(self) -> List['StreamSession']:
        """Copie de la liste des sessions (ordre non garanti)"""
        with self._lock:
            return list(self._sessions.values())

    def __contains__(self, session_id) -> bool:
        with self._lock:
            return session_id in self._sessions

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
