"""Connection link composition."""

from __future__ import annotations

from bootstrap.models import ConnectionLink

DEFAULT_LABEL = "Argo-VLESS"


def build_link(credential: str, host: str, path: str | None = None, port: int = 443, label: str = DEFAULT_LABEL) -> ConnectionLink:
    """Link for a client reaching the proxy through the tunnel's TLS edge.

    ``path`` defaults to ``/<credential>``, matching the server config.
    An empty ``host`` raises ValueError.
    """
    if not host:
        raise ValueError("A host is required to build a link")
    return ConnectionLink(
        credential=credential,
        host=host,
        port=port,
        path=path or f"/{credential}",
        label=label,
    )


__all__ = ["DEFAULT_LABEL", "build_link"]
