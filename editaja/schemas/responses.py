"""
Standard API Response Wrappers
Every endpoint answers with an ``ok`` flag; failures carry ``error``.
"""

from typing import Any, Dict, Optional


def ok_response(message: Optional[str] = None, **fields: Any) -> Dict[str, Any]:
    """Build a success body: ``{"ok": True, "message"?, **fields}``."""
    body: Dict[str, Any] = {"ok": True}
    if message is not None:
        body["message"] = message
    body.update(fields)
    return body
