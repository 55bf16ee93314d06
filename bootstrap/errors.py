"""Exceptions raised by the bootstrap core."""

from __future__ import annotations

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class BootstrapError(Exception):
    """Base error with a message. Fatal for the bootstrap sequence."""

    def __init__(self, message: str = "A bootstrap error occurred", log: bool = False):
        self.message = message
        super().__init__(self.message)
        if log:
            logger.error(message)


class DownloadFailed(BootstrapError):
    """Network or transport failure while fetching an artifact."""

    def __init__(self, url: str, cause: BaseException | str, log: bool = False):
        self.url = url
        self.cause = cause
        super().__init__(f"Download of {url} failed: {cause}", log)


class ExtractionFailed(BootstrapError):
    """The archive is corrupt or unreadable."""

    def __init__(self, archive: Path, cause: BaseException | str, log: bool = False):
        self.archive = archive
        self.cause = cause
        super().__init__(f"Extraction of {archive} failed: {cause}", log)


class BinaryNotFound(BootstrapError):
    """The expected executable is absent after extraction."""

    def __init__(self, name: str, where: Path, log: bool = False):
        self.name = name
        self.where = where
        super().__init__(f"Binary {name!r} not found in {where}", log)


class DiscoveryTimeout(BootstrapError):
    """No public hostname appeared in the tunnel log within the retry budget.

    Not fatal: the orchestrator reports a missing hostname as an outcome.
    Only raised by callers that explicitly ask for strict behaviour.
    """

    def __init__(self, log_file: Path, attempts: int, log: bool = False):
        self.log_file = log_file
        self.attempts = attempts
        super().__init__(f"No hostname found after {attempts} attempts, check {log_file}", log)


__all__ = [
    "BootstrapError",
    "BinaryNotFound",
    "DiscoveryTimeout",
    "DownloadFailed",
    "ExtractionFailed",
]
