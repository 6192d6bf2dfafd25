"""
Local file storage for files served from ``/uploads``.

Style images, the logo and favicon, and feedback screenshots stay on this
server. User photos go to the remote image host instead.
"""

import secrets
import string
import time
from pathlib import Path
from typing import Optional

from editaja.utils.exceptions import ValidationError
from editaja.utils.logger import get_logger

logger = get_logger(__name__)

PUBLIC_PREFIX = "/uploads/"
_RANDOM_ALPHABET = string.ascii_lowercase + string.digits


def random_suffix(length: int = 6) -> str:
    return "".join(secrets.choice(_RANDOM_ALPHABET) for _ in range(length))


def timestamp_ms() -> int:
    return int(time.time() * 1000)


def extension_for(filename: Optional[str], content_type: Optional[str] = None, default: str = "jpg") -> str:
    """Lower-case extension from the file name, else from the content type."""
    if filename and "." in filename:
        return filename.rsplit(".", 1)[-1].lower()
    if content_type and "/" in content_type:
        subtype = content_type.split("/", 1)[1].split(";")[0].strip().lower()
        return {"jpeg": "jpg", "x-icon": "ico", "vnd.microsoft.icon": "ico", "svg+xml": "svg"}.get(subtype, subtype)
    return default


class LocalFileStorage:
    """Writes and removes files below the uploads directory."""

    def __init__(self, root: str):
        self.root = Path(root).resolve()

    def save(self, subdir: str, filename: str, content: bytes) -> str:
        """
        Store ``content`` at ``{root}/{subdir}/{filename}``.

        Returns:
            The public path, e.g. ``/uploads/styles/style_1700000000000_ab12cd.png``.
        """
        directory = self.root / subdir
        directory.mkdir(parents=True, exist_ok=True)
        (directory / filename).write_bytes(content)
        logger.info(f"Saved upload {subdir}/{filename} ({len(content)} bytes)")
        return f"{PUBLIC_PREFIX}{subdir}/{filename}"

    def resolve(self, public_path: str) -> Path:
        """
        Map a public ``/uploads/...`` path or URL to a file below the root.

        Raises:
            ValidationError: the path does not point inside the uploads directory
        """
        marker = public_path.find(PUBLIC_PREFIX)
        if marker < 0:
            raise ValidationError("Invalid file path")
        relative = public_path[marker + len(PUBLIC_PREFIX):].split("?", 1)[0]
        target = (self.root / relative).resolve()
        if target == self.root or self.root not in target.parents:
            raise ValidationError("Invalid file path")
        return target

    def delete(self, public_path: str) -> bool:
        """Remove a stored file. Returns False when it was already gone."""
        target = self.resolve(public_path)
        if not target.is_file():
            return False
        target.unlink()
        logger.info(f"Deleted upload {target.relative_to(self.root)}")
        return True
