"""Run configuration, constructed once at startup and passed to each component."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .models import UUID_PATTERN, ArtifactSpec

DEFAULT_CREDENTIAL = "792c9cd6-9ece-4ebc-ff02-86eaf8bf7e73"
SINGBOX_URL = "https://github.com/SagerNet/sing-box/releases/download/v1.12.9/sing-box-1.12.9-linux-amd64.tar.gz"
CLOUDFLARED_URL = "https://github.com/cloudflare/cloudflared/releases/latest/download/cloudflared-linux-amd64"

# Environment variable overriding the credential
CREDENTIAL_ENV = "UUID"


class BootstrapSettings(BaseModel):
    """Everything a run needs. All paths are derived from ``work_dir``."""

    model_config = ConfigDict(frozen=True)

    credential: str = Field(default=DEFAULT_CREDENTIAL, pattern=UUID_PATTERN)
    work_dir: Path = Field(default_factory=lambda: Path.cwd() / "tmp")
    listen_port: int = Field(default=8080, ge=1, le=65535)
    public_port: int = Field(default=443, ge=1, le=65535)
    singbox_url: str = SINGBOX_URL
    cloudflared_url: str = CLOUDFLARED_URL
    download_timeout: float = Field(default=120.0, gt=0)
    discovery_attempts: int = Field(default=20, ge=1)
    discovery_interval: float = Field(default=2.0, ge=0)
    link_label: str = "Argo-VLESS"
    tunnel_loglevel: str = "info"

    @field_validator("work_dir")
    @classmethod
    def _absolute_work_dir(cls, value: Path) -> Path:
        # Process lookups compare absolute command paths
        return value.expanduser().absolute()

    @property
    def transport_path(self) -> str:
        return f"/{self.credential}"

    @property
    def archive_path(self) -> Path:
        return self.work_dir / "sing-box.tar.gz"

    @property
    def cloudflared_path(self) -> Path:
        return self.work_dir / "cloudflared"

    @property
    def singbox_path(self) -> Path:
        return self.work_dir / "sing-box"

    @property
    def config_path(self) -> Path:
        return self.work_dir / "config.json"

    @property
    def log_path(self) -> Path:
        return self.work_dir / "argo.log"

    @property
    def local_url(self) -> str:
        return f"http://localhost:{self.listen_port}"

    def artifacts(self) -> tuple[ArtifactSpec, ArtifactSpec]:
        """The standalone tunnel client and the proxy release archive."""
        cloudflared = ArtifactSpec(
            name="cloudflared",
            url=self.cloudflared_url,
            destination=self.cloudflared_path,
        )
        singbox = ArtifactSpec(
            name="sing-box",
            url=self.singbox_url,
            destination=self.archive_path,
            is_archive=True,
            entry_binary="sing-box",
        )
        return cloudflared, singbox


# ---------------------------------------------------------------------------
# helpers


def load_settings(
    env: Mapping[str, str] | None = None,
    settings_file: Path | str | None = None,
    **overrides: Any,
) -> BootstrapSettings:
    """Build settings from, lowest precedence first: defaults, a YAML/JSON
    settings file, the environment, and explicit overrides (None values ignored).

    This is the only place the environment is consulted.
    """
    env = os.environ if env is None else env
    payload: dict[str, Any] = {}
    if settings_file is not None:
        payload.update(_load_text_payload(Path(settings_file).read_text()))
    credential = env.get(CREDENTIAL_ENV)
    if credential:
        payload["credential"] = credential.strip()
    payload.update({key: value for key, value in overrides.items() if value is not None})
    try:
        return BootstrapSettings.model_validate(payload)
    except ValidationError as exc:
        raise ValueError(f"Invalid settings: {exc}") from exc


def _load_text_payload(raw: str | bytes) -> dict[str, Any]:
    """Interpret raw text as YAML first, falling back to JSON."""
    text = raw.decode() if isinstance(raw, bytes) else raw
    try:
        data = yaml.safe_load(text) or {}
    except yaml.YAMLError:
        data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError("Settings file must contain a mapping")
    return data


__all__ = [
    "BootstrapSettings",
    "CLOUDFLARED_URL",
    "CREDENTIAL_ENV",
    "DEFAULT_CREDENTIAL",
    "SINGBOX_URL",
    "load_settings",
]
