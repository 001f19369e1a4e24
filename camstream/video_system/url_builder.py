"""
URL Builder - Normalisation des sources caméra
==============================================

Construit l'URL RTSP canonique d'une caméra à partir de ses champs
(ip, utilisateur, mot de passe, port, chemin) ou d'une URL complète.
"""

from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote, urlsplit, urlunsplit

from .exceptions import InvalidSource

RTSP_PREFIX = 'rtsp://'
DEFAULT_RTSP_PORT = 554

# Schémas acceptés par /start-stream (RTSP ou flux HTTP)
ALLOWED_SCHEMES = ('rtsp', 'rtsps', 'http', 'https')


@dataclass
class SourceDescriptor:
    """Paramètres de connexion d'une caméra"""
    host: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    port: Optional[str] = None
    path: Optional[str] = None

    # URL complète saisie par l'utilisateur (prioritaire sur les champs)
    locator: Optional[str] = None

    @classmethod
    def from_camera_fields(cls, cam: dict) -> 'SourceDescriptor':
        """
        Construire un descripteur depuis la forme stockée côté navigateur

        Le champ 'rtsp' contient soit une URL complète, soit un simple chemin.
        """
        cam = cam or {}
        rtsp = cam.get('rtsp') or ''
        is_full_url = isinstance(rtsp, str) and rtsp.strip().lower().startswith(RTSP_PREFIX)

        port = cam.get('port')
        return cls(
            host=cam.get('ip'),
            username=cam.get('user'),
            password=cam.get('pass'),
            port=str(port) if port is not None else None,
            path=None if is_full_url else rtsp,
            locator=rtsp if is_full_url else None,
        )


def _is_blank(value) -> bool:
    return value is None or str(value).strip() == ''


def build_rtsp_url(descriptor: SourceDescriptor) -> str:
    """
    Construire l'URL RTSP canonique

    Args:
        descriptor: Champs de la caméra

    Returns:
        rtsp://<user>:<pass>@<host>:<port>/<path>

    Raises:
        InvalidSource: si host, utilisateur ou mot de passe manquent
    """
    locator = descriptor.locator
    if locator and locator.strip().lower().startswith(RTSP_PREFIX):
        return locator.strip()

    for field_name in ('host', 'username', 'password'):
        if _is_blank(getattr(descriptor, field_name)):
            raise InvalidSource(f"Champ caméra manquant: {field_name}", field=field_name)

    host = str(descriptor.host).strip()
    if any(c in host for c in '/@?# '):
        raise InvalidSource(f"Hôte invalide: {host}", field='host')

    if _is_blank(descriptor.port):
        port = DEFAULT_RTSP_PORT
    else:
        try:
            port = int(str(descriptor.port).strip())
        except ValueError:
            raise InvalidSource(f"Port invalide: {descriptor.port}", field='port')
        if not 0 < port < 65536:
            raise InvalidSource(f"Port hors limites: {port}", field='port')

    path = str(descriptor.path or '').strip().lstrip('/')

    user = quote(str(descriptor.username), safe='')
    password = quote(str(descriptor.password), safe='')
    url = f"{RTSP_PREFIX}{user}:{password}@{host}:{port}/{path}"

    try:
        hostname = urlsplit(url).hostname
    except ValueError:
        hostname = None
    if not hostname:
        raise InvalidSource(f"Hôte invalide: {host}", field='host')

    return url


def validate_locator(url) -> str:
    """Valider une URL source reçue telle quelle par la passerelle"""
    if not isinstance(url, str) or not url.strip():
        raise InvalidSource("URL source manquante", field='url')

    url = url.strip()
    if any(ord(c) < 32 or ord(c) == 127 for c in url):
        raise InvalidSource("URL source invalide: caractère de contrôle", field='url')

    try:
        parts = urlsplit(url)
    except ValueError:
        raise InvalidSource(f"URL source invalide: {mask_credentials(url)}", field='url')

    if parts.scheme.lower() not in ALLOWED_SCHEMES or not parts.netloc:
        raise InvalidSource(f"URL source invalide: {mask_credentials(url)}", field='url')

    return url


def mask_credentials(url: str) -> str:
    """Masquer le mot de passe d'une URL pour les logs"""
    try:
        parts = urlsplit(url)
    except ValueError:
        return url
    if parts.password is None:
        return url

    userinfo, _, hostinfo = parts.netloc.rpartition('@')
    user = userinfo.split(':', 1)[0]
    return urlunsplit(parts._replace(netloc=f"{user}:***@{hostinfo}"))
