"""
discovery.py
------------
Finds the public hostname the tunnel client was assigned by polling its log.

The hostname only ever appears in the client's startup banner, e.g.::

    INF |  https://abcde12345.trycloudflare.com  |
"""

from __future__ import annotations

import asyncio
import logging
import re
from pathlib import Path
from typing import Awaitable, Callable

from bootstrap.models import DiscoveryResult

logger = logging.getLogger(__name__)

# Scheme and anything after the hostname are left out of the capture
TRYCLOUDFLARE_PATTERN = re.compile(r"https?://([a-z0-9-]+\.trycloudflare\.com)", re.IGNORECASE)


def find_hostname(text: str, pattern: re.Pattern[str] = TRYCLOUDFLARE_PATTERN) -> str | None:
    """Return the first hostname in ``text`` matching ``pattern``, or None."""
    match = pattern.search(text)
    return match.group(1) if match else None


class LogFileDomainDiscoverer:
    """
    Polls an append-only log file for a hostname.

    Each attempt first waits ``interval`` seconds, then reads the whole file.
    A missing file or a file without a match just counts as a spent attempt.
    Worst case latency is about ``attempts * interval``.

    Args:
        log_file (Path): File the tunnel client writes to.
        attempts (int): Number of reads before giving up.
        interval (float): Seconds to wait before each read.
        pattern (re.Pattern): Hostname grammar, first group is the hostname.
        sleep (Callable): Awaitable sleep, ``asyncio.sleep`` unless replaced in tests.
        offset (int): Bytes of the file to skip, i.e. what earlier runs appended.
    """

    def __init__(
        self,
        log_file: Path,
        attempts: int = 20,
        interval: float = 2.0,
        pattern: re.Pattern[str] = TRYCLOUDFLARE_PATTERN,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        offset: int = 0,
    ):
        if attempts < 1:
            raise ValueError("attempts must be at least 1")
        self.log_file = Path(log_file)
        self.attempts = attempts
        self.interval = interval
        self.pattern = pattern
        self.offset = offset
        self._sleep = sleep

    async def discover(self) -> DiscoveryResult:
        for attempt in range(1, self.attempts + 1):
            await self._sleep(self.interval)
            hostname = self._scan()
            if hostname:
                logger.info(f"Hostname {hostname} found on attempt {attempt}")
                return DiscoveryResult(hostname=hostname, attempts=attempt)
            logger.debug(f"Attempt {attempt}/{self.attempts}: no hostname in {self.log_file}")
        logger.warning(f"No hostname found in {self.log_file} after {self.attempts} attempts")
        return DiscoveryResult(hostname=None, attempts=self.attempts)

    def _scan(self) -> str | None:
        try:
            with self.log_file.open("rb") as log:
                # A truncated log is read from the start again
                if log.seek(0, 2) >= self.offset:
                    log.seek(self.offset)
                else:
                    log.seek(0)
                text = log.read().decode("utf-8", errors="replace")
        except FileNotFoundError:
            return None
        return find_hostname(text, self.pattern)


__all__ = ["LogFileDomainDiscoverer", "TRYCLOUDFLARE_PATTERN", "find_hostname"]
