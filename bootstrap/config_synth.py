"""Builds and writes the sing-box server configuration."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from bootstrap.models import (
    InboundConfig,
    LogSettings,
    OutboundConfig,
    ProxyConfig,
    TransportConfig,
    UserCredential,
)

logger = logging.getLogger(__name__)


def synthesize_config(credential: str, port: int, path: str | None = None) -> ProxyConfig:
    """One VLESS-over-WebSocket inbound on the wildcard address, one direct outbound.

    The WebSocket path defaults to ``/<credential>``.
    """
    return ProxyConfig(
        log=LogSettings(level="error"),
        inbounds=[
            InboundConfig(
                listen="::",
                listen_port=port,
                users=[UserCredential(uuid=credential)],
                transport=TransportConfig(path=path or f"/{credential}", max_early_data=2048),
            )
        ],
        outbounds=[OutboundConfig(type="direct")],
    )


def render_config(config: ProxyConfig) -> str:
    return json.dumps(config.model_dump(mode="json"), indent=2)


def write_config(config: ProxyConfig, path: Path) -> Path:
    """Replace the file at ``path`` entirely; nothing from a previous run survives."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_config(config), encoding="utf-8")
    logger.info(f"Config written to {path}")
    return path


__all__ = ["render_config", "synthesize_config", "write_config"]
