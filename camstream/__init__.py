"""
Camstream - Serveur de streaming caméras RTSP vers HLS
"""

__version__ = "1.0.0"
