# enchls/transport.py
import logging
import uuid
from dataclasses import dataclass
from typing import Optional

import httpx

from .errors import TransportError

logger = logging.getLogger(__name__)


@dataclass
class FetchResult:
    url: str
    status: int
    reason: str
    body: bytes

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class BlobStore:
    """In-memory content addressed by `blob:` URLs (local files opened for playback)."""

    def __init__(self):
        self._blobs: dict[str, bytes] = {}

    def register(self, data: bytes) -> str:
        url = f"blob:{uuid.uuid4()}"
        self._blobs[url] = data
        return url

    def revoke(self, url: str) -> None:
        self._blobs.pop(url, None)

    def get(self, url: str) -> Optional[bytes]:
        return self._blobs.get(url)

    def __contains__(self, url: str) -> bool:
        return url in self._blobs


class Transport:
    """Async GET over httpx, with `blob:` URLs served from a BlobStore."""

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        blobs: Optional[BlobStore] = None,
        timeout: float = 20.0,
    ):
        self._own_client = client is None
        self.client = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)
        self.blobs = blobs if blobs is not None else BlobStore()

    async def get(self, url: str) -> FetchResult:
        if url.startswith("blob:"):
            data = self.blobs.get(url)
            if data is None:
                return FetchResult(url=url, status=404, reason="Not Found", body=b"")
            return FetchResult(url=url, status=200, reason="OK", body=data)

        try:
            r = await self.client.get(url)
        except httpx.TransportError as e:
            logger.warning("Transport failure for %s: %s", url, e)
            raise TransportError(f"Network Error: {e}") from e
        return FetchResult(url=url, status=r.status_code, reason=r.reason_phrase, body=r.content)

    async def aclose(self) -> None:
        if self._own_client:
            await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        await self.aclose()
