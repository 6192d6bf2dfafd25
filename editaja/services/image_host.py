"""
Client for the remote PHP image host (upload.php / delete.php / delete-user.php).
"""

import time
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import httpx
from starlette.concurrency import run_in_threadpool

from editaja.services.image_compression import convert_to_png, detect_image_format
from editaja.utils.exceptions import ImageHostError, ValidationError
from editaja.utils.logger import get_logger

logger = get_logger(__name__)

HOST_FILENAME_MARKER = "editaja.com_img_"
HOST_DOMAIN_MARKER = "editaja.com"
ALLOWED_EXTENSIONS = {"jpg", "jpeg", "png", "webp"}

CONTENT_TYPE_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
}


def extract_image_id(image_url: str) -> str:
    """
    The host's file id for an image URL.

    Raises:
        ValidationError: URL does not point at a host-generated file name.
    """
    path_parts = [part for part in urlparse(image_url).path.split("/") if part]
    if not path_parts:
        raise ValidationError("Invalid image URL")
    filename = next((part for part in path_parts if HOST_FILENAME_MARKER in part), path_parts[-1])
    if HOST_DOMAIN_MARKER not in filename:
        raise ValidationError("Invalid filename format. Expected editaja.com_img_*")
    return filename


def guess_extension(content_type: Optional[str], url: str = "", data: bytes = b"") -> str:
    """
    Extension for downloaded image bytes.

    Starts from the content type or the URL suffix, then lets the magic bytes
    override it since CDNs often mislabel generated images. Detected bytes
    keep their real format even outside ALLOWED_EXTENSIONS (``gif``).
    """
    ext = CONTENT_TYPE_EXTENSIONS.get((content_type or "").split(";")[0].strip().lower())
    if not ext:
        suffix = urlparse(url).path.rsplit(".", 1)[-1].lower() if "." in urlparse(url).path else ""
        ext = "jpg" if suffix == "jpeg" else suffix
    detected = detect_image_format(data) if data else None
    if detected:
        if ext and ext != detected:
            logger.info(f"Correcting image extension {ext} -> {detected} from magic bytes")
        return detected
    return ext if ext in ALLOWED_EXTENSIONS else "jpg"


class ImageHostClient:
    """Thin async client over the PHP image host endpoints."""

    def __init__(
        self,
        base_url: str,
        api_token: str,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_token = api_token
        self.timeout = timeout
        self._transport = transport

    @property
    def host(self) -> str:
        return urlparse(self.base_url).netloc

    def owns_url(self, url: str) -> bool:
        """True when ``url`` points at this image host."""
        return bool(url) and bool(self.host) and self.host in url

    def _client(self, timeout: Optional[float] = None) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=timeout or self.timeout,
            transport=self._transport,
            headers={"Authorization": self.api_token},
        )

    async def _post(self, endpoint: str, **kwargs) -> Dict[str, Any]:
        try:
            async with self._client() as client:
                resp = await client.post(f"{self.base_url}/{endpoint}", **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Image host request to {endpoint} failed: {e}")
            raise ImageHostError(f"Image server unreachable: {e}") from e

        try:
            data = resp.json()
        except ValueError:
            data = {"message": resp.text[:200] or resp.reason_phrase}

        if resp.status_code >= 400 or data.get("status") != "success":
            message = data.get("message") or f"Image server returned {resp.status_code}"
            logger.warning(f"Image host {endpoint} error: {message}")
            raise ImageHostError(message, details={"status_code": resp.status_code})
        return data

    async def upload(
        self,
        content: bytes,
        filename: str,
        content_type: str,
        user_id: Optional[str] = None,
        image_type: str = "upload",
        watermark_enabled: bool = True,
    ) -> Dict[str, Any]:
        """
        Upload an image.

        Returns:
            ``{url, original_url, optimized_url, file_id, user_id}``; ``url``
            is the optimized variant.
        """
        ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationError("Invalid file type. Allowed: jpg, jpeg, png, webp")

        data = await self._post(
            "upload.php",
            files={"file": (filename, content, content_type)},
            data={
                "user_id": user_id or "anonymous",
                "image_type": image_type,
                "watermark_enabled": "1" if watermark_enabled else "0",
            },
        )
        logger.info(f"Uploaded {image_type} image {data.get('file_id')} for {user_id or 'anonymous'}")
        return {
            "url": data.get("optimized_url") or data.get("original_url"),
            "original_url": data.get("original_url"),
            "optimized_url": data.get("optimized_url"),
            "file_id": data.get("file_id"),
            "user_id": data.get("user_id", user_id),
        }

    async def download(self, url: str) -> httpx.Response:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport, follow_redirects=True) as client:
                resp = await client.get(url)
        except httpx.HTTPError as e:
            raise ImageHostError(f"Failed to download image: {e}") from e
        if resp.status_code != 200:
            raise ImageHostError(f"Failed to download image: {resp.status_code} {resp.reason_phrase}")
        return resp

    async def save_generated(self, image_url: str, user_id: Optional[str], index: Optional[int] = None) -> Dict[str, Any]:
        """
        Copy a generated image from the AI provider's CDN to the image host.

        The host takes jpg, png and webp only; GIFs and other decodable formats
        are re-encoded as PNG.

        Raises:
            ValidationError: the download is not an image Pillow can decode.
        """
        resp = await self.download(image_url)
        content = resp.content
        ext = guess_extension(resp.headers.get("content-type"), image_url, content)
        if detect_image_format(content) not in ALLOWED_EXTENSIONS:
            converted = await run_in_threadpool(convert_to_png, content)
            if converted is None:
                raise ValidationError("Generated file is not a supported image")
            logger.info(f"Re-encoded generated image ({ext}) as png")
            content, ext = converted, "png"
        suffix = f"_{index}" if index is not None else ""
        filename = f"generated_{int(time.time() * 1000)}{suffix}.{ext}"
        content_type = "image/jpeg" if ext == "jpg" else f"image/{ext}"
        return await self.upload(content, filename, content_type, user_id=user_id, image_type="generated")

    async def delete_image(self, image_url: str, user_id: Optional[str] = None) -> Dict[str, Any]:
        image_id = extract_image_id(image_url)
        data = await self._post("delete.php", json={"id": image_id, "user_id": user_id or "default"})
        logger.info(f"Deleted image {image_id} from image host")
        return {"deleted": data.get("deleted", image_id), "files_deleted": data.get("files_deleted", [])}

    async def delete_user_folder(self, user_id: str) -> Dict[str, Any]:
        data = await self._post("delete-user.php", json={"user_id": user_id})
        logger.info(f"Deleted image host folders for {user_id}")
        return {
            "deleted_folders": data.get("deleted_folders", []),
            "deleted_files": data.get("deleted_files", []),
            "message": data.get("message", "User folders and files deleted successfully"),
        }
