"""AI style generation through the Freepik Gemini image-preview task API."""

import asyncio
import base64
import time
from typing import Any, Dict, List, Optional, Tuple

import httpx

from editaja.utils.exceptions import AIGenerationError
from editaja.utils.logger import get_logger

logger = get_logger(__name__)

AI_ENDPOINT = "https://api.freepik.com/v1/ai/gemini-2-5-flash-image-preview"
PLACEHOLDER_API_KEY = "YOUR_AI_API_KEY"

RATIO_INSTRUCTION = (
    "Generate the image strictly in vertical 9:16 aspect ratio, full 2160x3840 pixels "
    "resolution. Do not crop, stretch, pad, or add borders. Keep the exact ratio.\n\n"
)


def build_prompt(style_prompt: str) -> str:
    return RATIO_INSTRUCTION + style_prompt


def is_usable_api_key(api_key: Optional[str]) -> bool:
    return bool(api_key) and api_key.strip() != PLACEHOLDER_API_KEY


class ImageGenerator:
    """Creates generation tasks and polls them until they finish."""

    def __init__(
        self,
        endpoint: str = AI_ENDPOINT,
        poll_interval: float = 3.0,
        max_wait: float = 90.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.endpoint = endpoint.rstrip("/")
        self.poll_interval = poll_interval
        self.max_wait = max_wait
        self._transport = transport

    def _client(self, api_key: str) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=60,
            transport=self._transport,
            headers={"x-freepik-api-key": api_key.strip()},
        )

    async def generate(self, image: bytes, style_prompt: str, api_key: str) -> Dict[str, Any]:
        """
        Run a generation end to end.

        Returns:
            ``{"taskId": str, "urls": [str], "status": str}``

        Raises:
            AIGenerationError: task creation failed, task failed, or timeout
        """
        payload = {
            "prompt": build_prompt(style_prompt),
            "reference_images": [base64.b64encode(image).decode("ascii")],
        }

        async with self._client(api_key) as client:
            task_id = await self._create_task(client, payload)
            logger.info(f"AI task created: {task_id}")
            urls, status = await self._poll(client, task_id)

        logger.info(f"AI task {task_id} completed with {len(urls)} image(s)")
        return {"taskId": task_id, "urls": urls, "status": status}

    async def _create_task(self, client: httpx.AsyncClient, payload: Dict[str, Any]) -> str:
        try:
            resp = await client.post(self.endpoint, json=payload)
        except httpx.HTTPError as e:
            raise AIGenerationError(f"Image generation service unreachable: {e}") from e

        if resp.status_code >= 400:
            raise AIGenerationError(
                f"Image generation service error ({resp.status_code}): {resp.text[:200]}",
                details={"status_code": resp.status_code},
            )

        task_id = (resp.json().get("data") or {}).get("task_id")
        if not task_id:
            raise AIGenerationError("No task_id received from AI service")
        return task_id

    async def _poll(self, client: httpx.AsyncClient, task_id: str) -> Tuple[List[str], str]:
        deadline = time.monotonic() + self.max_wait
        while time.monotonic() < deadline:
            try:
                resp = await client.get(f"{self.endpoint}/{task_id}")
            except httpx.HTTPError as e:
                raise AIGenerationError(f"Error polling result: {e}") from e

            if resp.status_code >= 400:
                raise AIGenerationError(f"HTTP {resp.status_code}: {resp.text[:200]}")

            data = resp.json().get("data") or {}
            status = data.get("status")
            if status == "COMPLETED":
                return list(data.get("generated") or []), status
            if status in ("FAILED", "CANCELLED"):
                raise AIGenerationError(f"Task {status}", details={"taskId": task_id})

            await asyncio.sleep(self.poll_interval)

        raise AIGenerationError("Timeout waiting for result", details={"taskId": task_id})

    async def test_api_key(self, api_key: str) -> Dict[str, Any]:
        """
        Check whether the provider accepts a key.

        Only 401/403 mean the key is rejected; a 400 for the deliberately
        incomplete request still proves the key authenticated.
        """
        try:
            async with self._client(api_key) as client:
                resp = await client.post(self.endpoint, json={"prompt": "test image"})
        except httpx.HTTPError as e:
            return {"ok": False, "valid": False, "message": f"Failed to test connection: {e}"}

        if resp.status_code in (401, 403):
            return {"ok": False, "valid": False, "message": "Invalid API key. Please check your API key."}
        return {"ok": True, "valid": True, "message": "API key is valid!"}
