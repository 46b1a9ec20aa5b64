"""
HTTP client for the external image host used by product uploads
"""
import httpx
from typing import Optional
from opentelemetry import trace
from storefront.services.errors import ImageHostError
import logging

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class ImageHostClient:
    """Forwards uploaded files to the image host and returns their public URL"""

    def __init__(
        self,
        upload_url: Optional[str] = None,
        api_key: Optional[str] = None,
        upload_preset: Optional[str] = None,
        timeout: float = 30.0
    ):
        self.upload_url = upload_url
        self.api_key = api_key
        self.upload_preset = upload_preset
        self.client = httpx.AsyncClient(timeout=timeout)

    async def upload(self, filename: str, content: bytes, content_type: str) -> str:
        """
        Upload one image

        Raises:
            ImageHostError: host not configured, unreachable or refusing
        """
        with tracer.start_as_current_span("image_client.upload") as span:
            span.set_attribute("image.size", len(content))
            span.set_attribute("image.content_type", content_type)

            if not self.upload_url:
                raise ImageHostError("Image host is not configured")

            data = {}
            if self.api_key:
                data["api_key"] = self.api_key
            if self.upload_preset:
                data["upload_preset"] = self.upload_preset

            try:
                response = await self.client.post(
                    self.upload_url,
                    data=data,
                    files={"file": (filename, content, content_type)}
                )
            except httpx.HTTPError as e:
                logger.error(f"Failed to call image host: {e}")
                span.record_exception(e)
                raise ImageHostError(f"Image host unreachable: {e}")

            span.set_attribute("http.status_code", response.status_code)

            if response.status_code not in (200, 201):
                logger.error(f"Image host error: {response.status_code}")
                raise ImageHostError(f"Image host answered {response.status_code}")

            try:
                body = response.json()
            except ValueError:
                raise ImageHostError("Image host answered with invalid JSON")

            image_url = body.get("secure_url") or body.get("url")
            if not image_url:
                raise ImageHostError("Image host answer has no URL")

            logger.info(f"Uploaded {filename} to {image_url}")
            return image_url

    async def close(self):
        """Close the HTTP client"""
        await self.client.aclose()
