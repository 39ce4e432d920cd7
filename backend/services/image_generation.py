"""Client for the hosted image synthesis provider."""

from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx

from core import ImageGenerationError, settings

logger = logging.getLogger(__name__)

GENERATIONS_PATH = "/images/generations"


class ImageGenerator(Protocol):
    """Turns a text prompt into the URL of a freshly generated image."""

    async def generate(self, prompt: str) -> str: ...


class OpenAIImageGenerator:
    """Calls the OpenAI Images API and returns the hosted preview URL."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        api_key: str,
        base_url: str,
        model: str,
        size: str,
        quality: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self.client = client
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.size = size
        self.quality = quality
        self.timeout = timeout

    def _payload(self, prompt: str) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": self.model,
            "prompt": prompt,
            "n": 1,
            "size": self.size,
            "response_format": "url",
        }
        if self.quality:
            payload["quality"] = self.quality
        return payload

    async def generate(self, prompt: str) -> str:
        if not self.api_key:
            logger.error("IMAGE_API_KEY is not configured")
            raise ImageGenerationError()

        try:
            response = await self.client.post(
                f"{self.base_url}{GENERATIONS_PATH}",
                json=self._payload(prompt),
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=self.timeout,
            )
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPStatusError as exc:
            logger.error(
                "Image provider rejected generation request",
                extra={"status_code": exc.response.status_code},
            )
            raise ImageGenerationError() from exc
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Image provider request failed", exc_info=exc)
            raise ImageGenerationError() from exc

        try:
            image_url = body["data"][0]["url"]
        except (KeyError, IndexError, TypeError) as exc:
            raise ImageGenerationError() from exc
        if not isinstance(image_url, str) or not image_url:
            raise ImageGenerationError()
        return image_url


def build_image_generator(client: httpx.AsyncClient) -> OpenAIImageGenerator:
    return OpenAIImageGenerator(
        client,
        api_key=settings.image_api_key,
        base_url=settings.image_api_base_url,
        model=settings.image_model,
        size=settings.image_size,
        quality=settings.image_quality or None,
        timeout=settings.image_api_timeout_seconds,
    )


__all__ = ["ImageGenerator", "OpenAIImageGenerator", "build_image_generator"]
