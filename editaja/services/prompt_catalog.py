"""
Viral prompt catalogue: a remote list of trending prompts that admins
browse, mirror and turn into styles.
"""

import json
import re
import unicodedata
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qs, quote, unquote, urlparse

import cachetools
import httpx

from editaja.services.file_storage import LocalFileStorage
from editaja.utils.exceptions import CatalogFetchError, ValidationError
from editaja.utils.logger import get_logger

logger = get_logger(__name__)

CATALOG_URL = "https://chatgambar.com/api/v1/viral-prompts"
IMAGE_ORIGIN = "https://copasprompt.id"
USER_AGENT = "ViralPrompts-editaja/1.0"
CACHE_TTL = 300
BATCH_SIZE = 50
OPTIMIZER_WIDTH = 640
OPTIMIZER_QUALITY = 100
STORAGE_SUBDIR = "copas"

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")
_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9._-]")

# Fresh copies expire after CACHE_TTL; the last good copy answers when the source is down
_cache: cachetools.TTLCache = cachetools.TTLCache(maxsize=8, ttl=CACHE_TTL)
_last_good: Dict[str, List[Dict[str, Any]]] = {}


def clear_catalog_cache() -> None:
    _cache.clear()
    _last_good.clear()


def clean_json_text(text: str) -> str:
    """Strip a BOM and control characters other than tabs and newlines."""
    return _CONTROL_CHARS.sub("", text.lstrip("\ufeff"))


def _strip_all_control(text: str) -> str:
    return "".join(ch for ch in text if ch in "\t\r\n" or not unicodedata.category(ch).startswith("C"))


def parse_catalog(text: str) -> Any:
    cleaned = clean_json_text(text)
    try:
        return json.loads(cleaned)
    except ValueError:
        pass
    try:
        return json.loads(_strip_all_control(cleaned))
    except ValueError as e:
        raise CatalogFetchError(f"Invalid catalogue JSON: {e}") from e


def normalize_items(decoded: Any) -> List[Dict[str, Any]]:
    """
    The prompt entries of a decoded response.

    Accepts a bare array, ``[{"data": [...]}]``, ``{"data": [...]}`` or a
    single entry object.
    """
    if isinstance(decoded, list) and decoded and isinstance(decoded[0], dict):
        if isinstance(decoded[0].get("data"), list):
            return decoded[0]["data"]
        return decoded
    if isinstance(decoded, dict):
        if isinstance(decoded.get("data"), list):
            return decoded["data"]
        if any(key in decoded for key in ("id", "prompt", "image")):
            return [decoded]
    return []


def display_image_url(image: Optional[str], origin: str = IMAGE_ORIGIN) -> str:
    """Absolute URL for a catalogue image, resized through the origin's optimizer."""
    if not image:
        return ""
    if re.match(r"^https?://", image, re.IGNORECASE):
        return image
    if not image.startswith("/"):
        image = "/" + image
    return f"{origin}/_next/image?url={quote(image, safe='')}&w={OPTIMIZER_WIDTH}&q={OPTIMIZER_QUALITY}"


def extract_image_path(image: Optional[str]) -> str:
    """Path of a catalogue image on the origin, unwrapping optimizer URLs."""
    if not image:
        return ""
    if re.match(r"^https?://", image, re.IGNORECASE):
        parsed = urlparse(image)
        path = parsed.path
        if "/_next/image" in path:
            wrapped = parse_qs(parsed.query).get("url")
            if wrapped:
                path = unquote(wrapped[0])
    else:
        path = image
    if path and not path.startswith("/"):
        path = "/" + path
    return path


def local_image_name(image_path: str) -> str:
    """Relative file path under the mirror directory, safe to join below it."""
    relative = re.sub(r"^/images/", "", image_path).lstrip("/")
    parts = [_UNSAFE_NAME_CHARS.sub("_", part) for part in relative.split("/") if part not in ("", ".", "..")]
    return "/".join(parts)


def split_batches(items: List[Dict[str, Any]], size: int = BATCH_SIZE) -> List[List[Dict[str, Any]]]:
    return [items[i:i + size] for i in range(0, len(items), size)]


def get_batch(items: List[Dict[str, Any]], index: int) -> List[Dict[str, Any]]:
    batches = split_batches(items)
    if index < 0 or index >= len(batches):
        raise ValidationError("Invalid batch index", details={"totalBatches": len(batches)})
    return batches[index]


class PromptCatalogClient:
    """Fetches the catalogue and mirrors its images into local uploads."""

    def __init__(
        self,
        url: str = CATALOG_URL,
        image_origin: str = IMAGE_ORIGIN,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        self.image_origin = image_origin.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            transport=self._transport,
            follow_redirects=True,
            headers={"User-Agent": USER_AGENT},
        )

    def _stale_or_raise(self, error: CatalogFetchError) -> List[Dict[str, Any]]:
        if self.url in _last_good:
            logger.warning(f"Serving last known prompt catalogue: {error.message}")
            return _last_good[self.url]
        raise error

    async def fetch_items(self) -> List[Dict[str, Any]]:
        """Catalogue entries, cached for five minutes."""
        if self.url in _cache:
            return _cache[self.url]

        try:
            async with self._client() as client:
                resp = await client.get(self.url, headers={"Accept": "application/json"})
        except httpx.HTTPError as e:
            logger.error(f"Prompt catalogue request failed: {e}")
            return self._stale_or_raise(CatalogFetchError(f"Failed to fetch data: {e}"))

        if resp.status_code != 200:
            return self._stale_or_raise(CatalogFetchError(details={"status_code": resp.status_code}))

        try:
            items = normalize_items(parse_catalog(resp.text))
        except CatalogFetchError as e:
            return self._stale_or_raise(e)

        _cache[self.url] = items
        _last_good[self.url] = items
        logger.info(f"Prompt catalogue refreshed: {len(items)} entries")
        return items

    async def get_catalog(self) -> List[Dict[str, Any]]:
        """Entries with a displayable ``imageUrl`` added."""
        items = await self.fetch_items()
        return [dict(item, imageUrl=display_image_url(item.get("image"), self.image_origin)) for item in items]

    async def mirror_images(self, batch: List[Dict[str, Any]], storage: LocalFileStorage) -> Dict[str, int]:
        """
        Download a batch's images below ``/uploads/copas``.

        Files already mirrored are skipped and count as downloaded.
        """
        downloaded = failed = skipped = 0
        total = sum(1 for item in batch if item.get("image"))

        async with self._client() as client:
            for item in batch:
                image_path = extract_image_path(item.get("image"))
                name = local_image_name(image_path) if image_path else ""
                if not name:
                    continue

                if (storage.root / STORAGE_SUBDIR / name).is_file():
                    skipped += 1
                    downloaded += 1
                    continue

                try:
                    resp = await client.get(f"{self.image_origin}{image_path}")
                except httpx.HTTPError as e:
                    logger.warning(f"Catalogue image {image_path} failed: {e}")
                    failed += 1
                    continue
                if resp.status_code != 200:
                    failed += 1
                    continue

                subdir, _, filename = f"{STORAGE_SUBDIR}/{name}".rpartition("/")
                storage.save(subdir, filename, resp.content)
                downloaded += 1

        logger.info(f"Catalogue images mirrored: {downloaded} ok ({skipped} existing), {failed} failed")
        return {"downloaded": downloaded, "failed": failed, "skipped": skipped, "total": total}


def export_styles(batch: List[Dict[str, Any]], base_url: str) -> List[Dict[str, Any]]:
    """A batch in the admin style import format, images pointing at the local mirror."""
    exported = []
    for item in batch:
        image_url = ""
        image_path = extract_image_path(item.get("image"))
        if image_path:
            image_url = f"{base_url.rstrip('/')}/uploads/{STORAGE_SUBDIR}/{local_image_name(image_path)}"
        exported.append({
            "prompt": item.get("prompt") or "",
            "imageUrl": image_url,
            "status": "Active",
            "category": item.get("category") or "",
            "tags": item["tags"] if isinstance(item.get("tags"), list) else [],
        })
    return exported
