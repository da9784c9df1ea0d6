"""FastAPI routers acting as controllers in the MVC architecture."""

from . import tracks, tts

__all__ = ["tracks", "tts"]
