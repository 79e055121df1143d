from .app import CanvasService, create_app
from .config import ServerConfig

__all__ = [
    "CanvasService",
    "ServerConfig",
    "create_app",
]
