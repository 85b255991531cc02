"""
Development server package.

A small FastAPI service that can stop itself when its source tree changes.
"""

from .config import DevServerConfig
from .server import DevServer, create_app

__all__ = [
    "DevServerConfig",
    "DevServer",
    "create_app",
]
