"""
fetcher.py
----------
Idempotent artifact download.

An existing destination is never downloaded again, even if a previous
download was truncated. Delete the file to force a new transfer.
"""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path

import httpx

from bootstrap.errors import DownloadFailed
from bootstrap.models import ArtifactSpec

logger = logging.getLogger(__name__)

EXECUTABLE_MODE = 0o755


class ArtifactFetcher:
    """
    Streams a URL to a local file and marks it executable.

    Args:
        client (httpx.AsyncClient | None): Client to use. One is created per fetch if not given.
        timeout (float): Bound, in seconds, for the whole transfer.
    """

    def __init__(self, client: httpx.AsyncClient | None = None, timeout: float = 120.0):
        self._client = client
        self.timeout = timeout

    async def fetch(self, url: str, destination: Path) -> Path:
        """
        Ensure ``destination`` exists and is executable.

        Raises:
            DownloadFailed: on timeout, transport error or non-2xx status.
        """
        destination = Path(destination)
        if destination.exists():
            logger.info(f"Already present: {destination}")
            return destination
        destination.parent.mkdir(parents=True, exist_ok=True)
        logger.info(f"Downloading {url} -> {destination}")
        try:
            await asyncio.wait_for(self._stream_to(url, destination), timeout=self.timeout)
        except asyncio.TimeoutError:
            _discard(destination)
            raise DownloadFailed(url, f"timed out after {self.timeout}s", log=True) from None
        except (httpx.HTTPError, OSError) as e:
            _discard(destination)
            raise DownloadFailed(url, e, log=True) from e
        except BaseException:
            _discard(destination)
            raise
        os.chmod(destination, EXECUTABLE_MODE)
        logger.info(f"Saved {destination}")
        return destination

    async def fetch_artifact(self, artifact: ArtifactSpec) -> Path:
        return await self.fetch(artifact.url, artifact.destination)

    async def _stream_to(self, url: str, destination: Path) -> None:
        if self._client is not None:
            await self._download(self._client, url, destination)
            return
        async with httpx.AsyncClient(follow_redirects=True, timeout=self.timeout) as client:
            await self._download(client, url, destination)

    @staticmethod
    async def _download(client: httpx.AsyncClient, url: str, destination: Path) -> None:
        async with client.stream("GET", url, follow_redirects=True) as response:
            response.raise_for_status()
            with destination.open("wb") as out:
                async for chunk in response.aiter_bytes():
                    out.write(chunk)


def _discard(path: Path) -> None:
    """Remove a partial download so the next run does not take it for a complete one."""
    try:
        path.unlink()
    except FileNotFoundError:
        pass


__all__ = ["ArtifactFetcher", "EXECUTABLE_MODE"]
