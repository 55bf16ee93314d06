"""Pydantic models that capture the bootstrap domain concepts."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import quote

from pydantic import BaseModel, ConfigDict, Field

UUID_PATTERN = r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"


class ArtifactSpec(BaseModel):
    """A binary or archive to retrieve, defined once at startup."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Logical artifact name")
    url: str = Field(..., description="Source URL")
    destination: Path = Field(..., description="Where the download is stored")
    is_archive: bool = False
    entry_binary: str | None = Field(
        default=None,
        description="Prefix of the top-level archive entry and name of the binary inside it",
    )


@dataclass
class InstallationState:
    """Artifact name -> resolved executable path. Entries never change once recorded."""

    paths: dict[str, Path] = field(default_factory=dict)

    def record(self, name: str, path: Path) -> Path:
        current = self.paths.get(name)
        if current is not None and current != path:
            raise ValueError(f"Artifact {name!r} already installed at {current}")
        self.paths[name] = path
        return path

    def path_for(self, name: str) -> Path:
        try:
            return self.paths[name]
        except KeyError:
            raise KeyError(f"Artifact {name!r} is not installed") from None

    def __contains__(self, name: object) -> bool:
        return name in self.paths


# ---------------------------------------------------------------------------
# sing-box configuration document


class LogSettings(BaseModel):
    level: str = "error"


class UserCredential(BaseModel):
    uuid: str = Field(..., pattern=UUID_PATTERN)


class TransportConfig(BaseModel):
    type: str = "ws"
    path: str
    max_early_data: int = Field(default=2048, ge=0)


class InboundConfig(BaseModel):
    type: str = "vless"
    listen: str = "::"
    listen_port: int = Field(..., ge=1, le=65535)
    users: list[UserCredential]
    transport: TransportConfig


class OutboundConfig(BaseModel):
    type: str = "direct"


class ProxyConfig(BaseModel):
    """Whole sing-box configuration. Field order is the order written to disk."""

    log: LogSettings = Field(default_factory=LogSettings)
    inbounds: list[InboundConfig]
    outbounds: list[OutboundConfig] = Field(default_factory=lambda: [OutboundConfig()])


# ---------------------------------------------------------------------------
# processes


class SupervisedProcess(BaseModel):
    """A launch request. ``log_file`` None means all output is discarded."""

    model_config = ConfigDict(frozen=True)

    name: str
    binary: Path
    args: tuple[str, ...] = ()
    log_file: Path | None = None
    detached: bool = True

    @property
    def command(self) -> list[str]:
        return [str(self.binary), *self.args]


@dataclass(frozen=True)
class LaunchedProcess:
    """Fire-and-forget handle of a started process."""

    spec: SupervisedProcess
    pid: int


# ---------------------------------------------------------------------------
# discovery and link


class DiscoveryResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    hostname: str | None = None
    attempts: int = 0

    @property
    def found(self) -> bool:
        return self.hostname is not None


class ConnectionLink(BaseModel):
    """VLESS connection parameters, rendered by :attr:`uri`."""

    model_config = ConfigDict(frozen=True)

    credential: str = Field(..., pattern=UUID_PATTERN)
    host: str = Field(..., min_length=1)
    port: int = 443
    path: str
    label: str = "Argo-VLESS"
    encryption: str = "none"
    security: str = "tls"
    transport: str = "ws"

    @property
    def uri(self) -> str:
        query = "&".join([
            f"encryption={self.encryption}",
            f"security={self.security}",
            f"type={self.transport}",
            f"host={self.host}",
            f"path={quote(self.path, safe='')}",
        ])
        return f"vless://{self.credential}@{self.host}:{self.port}?{query}#{quote(self.label)}"

    def __str__(self) -> str:
        return self.uri


__all__ = [
    "ArtifactSpec",
    "ConnectionLink",
    "DiscoveryResult",
    "InboundConfig",
    "InstallationState",
    "LaunchedProcess",
    "LogSettings",
    "OutboundConfig",
    "ProxyConfig",
    "SupervisedProcess",
    "TransportConfig",
    "UUID_PATTERN",
    "UserCredential",
]
