"""Image upload with per-run deduplication.

ImageUploader owns the cache of local path -> hosted URL for one run and
collapses concurrent requests for the same file into a single upload.
CloudflareImagesClient is the network collaborator that actually sends
the bytes.
"""

import asyncio
import functools
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, Union

import httpx

from content_indexer.core.models import UploadFailed

logger = logging.getLogger(__name__)

CLOUDFLARE_IMAGES_API = "https://api.cloudflare.com/client/v4/accounts/{account_id}/images/v1"

DEFAULT_UPLOAD_TIMEOUT = 60.0


class UploadClient(Protocol):
    """Anything that can turn image bytes into a hosted URL."""

    async def upload(self, path: Path, data: bytes) -> str:
        ...


class CloudflareImagesClient:
    """Uploads images to Cloudflare Images and returns the first variant URL."""

    def __init__(
        self,
        account_id: str,
        api_token: str,
        timeout: float = DEFAULT_UPLOAD_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize CloudflareImagesClient.

        Args:
            account_id: Cloudflare account identifier
            api_token: API token with Images write permission
            timeout: HTTP timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.endpoint = CLOUDFLARE_IMAGES_API.format(account_id=account_id)
        self._client = httpx.AsyncClient(
            headers={'Authorization': f"Bearer {api_token}"},
            timeout=timeout,
            transport=transport,
        )

    async def upload(self, path: Path, data: bytes) -> str:
        """Upload one image.

        Args:
            path: Local path, used for the multipart file name and errors
            data: Raw image bytes

        Returns:
            URL of the first delivery variant

        Raises:
            UploadFailed: On transport errors or an unsuccessful response
        """
        try:
            response = await self._client.post(
                self.endpoint,
                files={'file': (Path(path).name, data)},
            )
        except httpx.HTTPError as e:
            raise UploadFailed(path, f"{type(e).__name__}: {e}") from e

        try:
            payload = response.json()
        except ValueError:
            raise UploadFailed(path, f"HTTP {response.status_code}: response is not JSON")

        if not response.is_success or not payload.get('success'):
            detail = payload.get('errors') or f"HTTP {response.status_code}"
            raise UploadFailed(path, detail)

        variants = (payload.get('result') or {}).get('variants') or []
        if not variants:
            raise UploadFailed(path, "response contained no variant URLs")

        return variants[0]

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "CloudflareImagesClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()


class ImageUploader:
    """Resolves local image paths to hosted URLs, uploading each file once.

    The cache lives as long as this object; create one per run. Calls for a
    path whose upload is still in flight wait on that upload instead of
    starting another. Failures are never cached, so a later call retries.
    """

    def __init__(self, client: UploadClient, timeout: Optional[float] = DEFAULT_UPLOAD_TIMEOUT):
        """Initialize ImageUploader.

        Args:
            client: Upload collaborator
            timeout: Seconds allowed per upload attempt (None for no limit)
        """
        self.client = client
        self.timeout = timeout
        self._cache: Dict[str, str] = {}
        self._pending: Dict[str, "asyncio.Future[str]"] = {}
        self.uploads = 0
        self.cache_hits = 0

    def cached(self, path: Union[str, Path]) -> Optional[str]:
        """Return the cached URL for a path, if any."""
        return self._cache.get(self._key(path))

    @property
    def cache_size(self) -> int:
        return len(self._cache)

    async def resolve(self, path: Union[str, Path]) -> str:
        """Get the hosted URL for a local image, uploading it if needed.

        Args:
            path: Local image path

        Returns:
            Hosted URL

        Raises:
            UploadFailed: If the upload failed or timed out
        """
        key = self._key(path)

        # No await between the lookups and the insert below
        if key in self._cache:
            self.cache_hits += 1
            logger.debug("Cache hit: %s -> %s", key, self._cache[key])
            return self._cache[key]

        pending = self._pending.get(key)
        if pending is not None:
            self.cache_hits += 1
            logger.debug("Waiting on in-flight upload: %s", key)
            return await asyncio.shield(pending)

        task = asyncio.ensure_future(self._upload(key))
        self._pending[key] = task
        task.add_done_callback(functools.partial(self._settle, key))
        return await asyncio.shield(task)

    def _settle(self, key: str, task: "asyncio.Future[str]") -> None:
        self._pending.pop(key, None)
        # Waiters may all have been cancelled; mark the failure as retrieved
        if not task.cancelled():
            task.exception()

    async def _upload(self, key: str) -> str:
        path = Path(key)
        try:
            data = await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            raise UploadFailed(path, f"cannot read file: {e}") from e

        try:
            if self.timeout is None:
                url = await self.client.upload(path, data)
            else:
                url = await asyncio.wait_for(self.client.upload(path, data), self.timeout)
        except asyncio.TimeoutError as e:
            raise UploadFailed(path, f"timed out after {self.timeout}s") from e
        except UploadFailed:
            raise
        except Exception as e:
            raise UploadFailed(path, f"{type(e).__name__}: {e}") from e

        self._cache[key] = url
        self.uploads += 1
        logger.info("Uploaded %s -> %s", path, url)
        return url

    @staticmethod
    def _key(path: Union[str, Path]) -> str:
        return os.path.abspath(path)
