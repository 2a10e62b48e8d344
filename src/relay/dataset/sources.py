"""Remote and bundled-local sources for the dataset."""

import asyncio
import logging
from pathlib import Path
from typing import Optional, Union

import httpx

from ..errors import DatasetSourceError

logger = logging.getLogger(__name__)

DEFAULT_DATASET_URL = (
    "https://storage.googleapis.com/virtualed-466321_cloudbuild/Master_Excel.csv"
)


class RemoteDatasetSource:
    """Fetches the dataset text over HTTP(S) with a bounded timeout."""

    name = "remote"

    def __init__(
        self,
        url: str = DEFAULT_DATASET_URL,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize the remote source.

        Args:
            url: Dataset URL.
            timeout: Request timeout in seconds.
            client: Optional preconfigured client. When omitted the source
                creates and owns one.
        """
        self.url = url
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, follow_redirects=True)
        return self._client

    async def fetch(self) -> str:
        """Return the response body.

        Raises:
            DatasetSourceError: On transport errors, timeouts, or non-2xx status.
        """
        logger.debug(f"Fetching dataset from {self.url}")
        try:
            response = await self.client.get(self.url, timeout=self.timeout)
        except httpx.TimeoutException as e:
            raise DatasetSourceError(
                f"Timed out after {self.timeout}s fetching {self.url}", source=self.name
            ) from e
        except httpx.HTTPError as e:
            raise DatasetSourceError(
                f"Transport error fetching {self.url}: {type(e).__name__}: {e}",
                source=self.name,
            ) from e

        if not response.is_success:
            body = response.text[:200]
            raise DatasetSourceError(
                f"Remote dataset returned HTTP {response.status_code}: {body}",
                source=self.name,
                status_code=response.status_code,
            )
        return response.text

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None


class LocalDatasetSource:
    """Reads the dataset copy bundled with the deployment."""

    name = "local"

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    async def fetch(self) -> str:
        """Read the file without blocking the event loop.

        Raises:
            DatasetSourceError: If the file is missing or unreadable.
        """
        logger.debug(f"Reading bundled dataset from {self.path}")
        try:
            return await asyncio.to_thread(self.path.read_text, encoding="utf-8-sig")
        except (OSError, UnicodeDecodeError) as e:
            raise DatasetSourceError(
                f"Cannot read bundled dataset {self.path}: {e}", source=self.name
            ) from e
