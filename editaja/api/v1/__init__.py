"""Version 1 of the edit Aja HTTP API."""

from editaja.api.v1.router import router

__all__ = ["router"]
