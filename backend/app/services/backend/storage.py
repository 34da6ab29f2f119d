"""
Client for the hosted object storage service holding uploaded audio.
"""

import logging
from typing import List, Optional
from urllib.parse import quote

import httpx

from app.core import config

logger = logging.getLogger(__name__)


class StorageClient:
    """Upload, delete and address objects in a single storage bucket."""

    def __init__(
        self,
        base_url: str = config.SUPABASE_URL,
        api_key: str = config.SUPABASE_SERVICE_KEY,
        bucket: str = config.STORAGE_BUCKET,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.bucket = bucket
        self.transport = transport

    def _headers(self, content_type: str = "application/json") -> dict:
        return {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": content_type,
        }

    async def upload(self, key: str, data: bytes, content_type: str) -> None:
        """
        Store a blob under the given key.

        Raises:
            httpx.HTTPError: If the request fails or is rejected
        """
        url = f"{self.base_url}/storage/v1/object/{self.bucket}/{quote(key)}"

        async with httpx.AsyncClient(transport=self.transport) as client:
            response = await client.post(
                url,
                content=data,
                headers=self._headers(content_type),
                timeout=60.0,
            )
            response.raise_for_status()

    async def remove(self, keys: List[str]) -> None:
        """
        Delete blobs by key.

        Raises:
            httpx.HTTPError: If the request fails or is rejected
        """
        url = f"{self.base_url}/storage/v1/object/{self.bucket}"

        async with httpx.AsyncClient(transport=self.transport) as client:
            response = await client.request(
                "DELETE",
                url,
                json={"prefixes": keys},
                headers=self._headers(),
                timeout=10.0,
            )
            response.raise_for_status()

    def public_url(self, key: str) -> str:
        """Durable public URL for a key. Pure string construction."""
        return f"{self.base_url}/storage/v1/object/public/{self.bucket}/{quote(key)}"
