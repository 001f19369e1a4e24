"""
Camstream Video System
======================

Pipeline: Caméra RTSP → FFmpeg (copie vidéo) → HLS glissant → navigateur

Composants:
- url_builder: normalisation des URLs caméra
- SessionManager: cycle de vie des sessions FFmpeg
- SessionRegistry: table des sessions actives
- StreamPublisher: répertoires et URLs de sortie HLS
- HlsTranscoder: lancement / arrêt de FFmpeg
"""

from .exceptions import (
    StreamError,
    InvalidSource,
    ResourceError,
    SpawnError,
    ProcessExitError
)
from .url_builder import SourceDescriptor, build_rtsp_url, validate_locator, mask_credentials
from .registry import SessionRegistry
from .publisher import StreamPublisher, PublishedOutput
from .transcoder import HlsTranscoder, build_hls_command
from .session_manager import SessionManager, SessionState, StreamSession

__all__ = [
    'StreamError',
    'InvalidSource',
    'ResourceError',
    'SpawnError',
    'ProcessExitError',
    'SourceDescriptor',
    'build_rtsp_url',
    'validate_locator',
    'mask_credentials',
    'SessionRegistry',
    'StreamPublisher',
    'PublishedOutput',
    'HlsTranscoder',
    'build_hls_command',
    'SessionManager',
    'SessionState',
    'StreamSession'
]
