"""
orchestrator.py
---------------
The bootstrap sequence:

    fetch cloudflared            \
                                  > config -> start sing-box -> start cloudflared -> discover -> link
    fetch + install sing-box     /

Both processes are left running when the sequence ends. If a fatal error
happens once a process has been started, the processes started in this run
are terminated before the error propagates.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path

from bootstrap.config_synth import synthesize_config, write_config
from bootstrap.discovery import LogFileDomainDiscoverer
from bootstrap.fetcher import ArtifactFetcher
from bootstrap.installer import ArchiveInstaller
from bootstrap.interfaces import DomainDiscoverer, Fetcher, Installer, Launcher
from bootstrap.link import build_link
from bootstrap.models import (
    ArtifactSpec,
    ConnectionLink,
    DiscoveryResult,
    InstallationState,
    LaunchedProcess,
    SupervisedProcess,
)
from bootstrap.settings import BootstrapSettings
from bootstrap.supervisor import ProcessSupervisor

logger = logging.getLogger(__name__)


@dataclass
class BootstrapOutcome:
    """What a run produced. ``link`` is None when no hostname was discovered."""

    discovery: DiscoveryResult
    link: ConnectionLink | None
    log_file: Path
    state: InstallationState = field(default_factory=InstallationState)
    processes: list[LaunchedProcess] = field(default_factory=list)


class Bootstrapper:
    """
    Runs the whole bootstrap for one set of settings.
    Collaborators default to the real implementations and can be replaced.
    """

    def __init__(
        self,
        settings: BootstrapSettings,
        fetcher: Fetcher | None = None,
        installer: Installer | None = None,
        supervisor: Launcher | None = None,
        discoverer: DomainDiscoverer | None = None,
    ):
        self.settings = settings
        self.fetcher = fetcher or ArtifactFetcher(timeout=settings.download_timeout)
        self.installer = installer or ArchiveInstaller()
        self.supervisor = supervisor or ProcessSupervisor()
        self.discoverer = discoverer
        self.state = InstallationState()

    async def run(self) -> BootstrapOutcome:
        settings = self.settings
        settings.work_dir.mkdir(parents=True, exist_ok=True)
        await asyncio.gather(*(self.provision(artifact) for artifact in settings.artifacts()))

        config = synthesize_config(settings.credential, settings.listen_port, settings.transport_path)
        write_config(config, settings.config_path)

        discoverer = self.discoverer or self.default_discoverer()
        try:
            processes = self.start_processes()
            logger.info("Waiting for the tunnel to report its hostname")
            discovery = await discoverer.discover()
            link = None
            if discovery.found:
                link = build_link(
                    settings.credential,
                    discovery.hostname,
                    path=settings.transport_path,
                    port=settings.public_port,
                    label=settings.link_label,
                )
        except Exception:
            logger.error("Bootstrap failed after launch, rolling back")
            self.supervisor.terminate_launched()
            raise
        return BootstrapOutcome(
            discovery=discovery,
            link=link,
            log_file=settings.log_path,
            state=self.state,
            processes=processes,
        )

    def default_discoverer(self) -> LogFileDomainDiscoverer:
        """Polls the tunnel log, ignoring what was in it before this run."""
        log_path = self.settings.log_path
        offset = log_path.stat().st_size if log_path.exists() else 0
        return LogFileDomainDiscoverer(
            log_path,
            attempts=self.settings.discovery_attempts,
            interval=self.settings.discovery_interval,
            offset=offset,
        )

    async def provision(self, artifact: ArtifactSpec) -> Path:
        """Fetch ``artifact`` and, for archives, install its binary. Records the executable path."""
        downloaded = await self.fetcher.fetch(artifact.url, artifact.destination)
        if not artifact.is_archive:
            return self.state.record(artifact.name, downloaded)
        binary_name = artifact.entry_binary or artifact.name
        installed = await asyncio.to_thread(
            self.installer.install,
            downloaded,
            artifact.destination.parent,
            binary_name,
            binary_name,
        )
        return self.state.record(artifact.name, installed)

    def start_processes(self) -> list[LaunchedProcess]:
        """Proxy first: the tunnel connects to its port as soon as it starts."""
        settings = self.settings
        proxy = self.supervisor.launch(SupervisedProcess(
            name="sing-box",
            binary=self.state.path_for("sing-box"),
            args=("run", "-c", str(settings.config_path)),
        ))
        tunnel = self.supervisor.launch(SupervisedProcess(
            name="cloudflared",
            binary=self.state.path_for("cloudflared"),
            args=("tunnel", "--url", settings.local_url, "--loglevel", settings.tunnel_loglevel),
            log_file=settings.log_path,
        ))
        return [proxy, tunnel]


__all__ = ["BootstrapOutcome", "Bootstrapper"]
