from __future__ import annotations

from pathlib import Path
from typing import Protocol

from bootstrap.models import DiscoveryResult, LaunchedProcess, SupervisedProcess


class Fetcher(Protocol):
    """
    Protocol for the "fetch URL to file" capability.
    Implementations must be idempotent: an existing destination is returned untouched.
    """
    async def fetch(self, url: str, destination: Path) -> Path: ...


class Installer(Protocol):
    """
    Protocol for archive installers.
    Given an archive and a directory, produce the path of one named executable.
    """
    def install(self, archive: Path, destination_dir: Path, entry_prefix: str, binary_name: str) -> Path: ...


class Launcher(Protocol):
    """
    Protocol for process launchers.
    A launch returns as soon as the process is started; nothing waits on it afterwards.
    """
    def launch(self, spec: SupervisedProcess) -> LaunchedProcess: ...

    def terminate_launched(self) -> list[int]:
        """
        Terminate every process started by this launcher.
        Returns the pids signalled.
        """
        ...


class DomainDiscoverer(Protocol):
    """
    Protocol for hostname discovery.
    Capability: given an append-only text source, extract a hostname matching a known grammar.
    Not finding one is a result, not an error.

    The tunnel client's log phrasing is not a stable contract. If it changes,
    discovery keeps returning "not found" without any other symptom.
    """
    async def discover(self) -> DiscoveryResult: ...
