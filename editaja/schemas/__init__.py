"""
edit Aja Schemas
Response envelopes shared by the API routers.
"""

from editaja.schemas.responses import ok_response

__all__ = [
    "ok_response",
]
