"""Shared pytest fixtures: fake release archives, a fake download transport and a fake Popen."""

import io
import tarfile
from dataclasses import dataclass, field
from pathlib import Path

import httpx
import pytest

UUID = "792c9cd6-9ece-4ebc-ff02-86eaf8bf7e73"
BANNER = (
    "2025-10-01T10:00:00Z INF Thank you for trying Cloudflare Tunnel.\n"
    "2025-10-01T10:00:00Z INF +--------------------------------------------------------------------------------------------+\n"
    "2025-10-01T10:00:00Z INF |  Your quick Tunnel has been created! Visit it at (it may take some time to be reachable):  |\n"
    "2025-10-01T10:00:00Z INF |  https://{host}                                                        |\n"
    "2025-10-01T10:00:00Z INF +--------------------------------------------------------------------------------------------+\n"
)


def build_archive(entries: dict[str, bytes]) -> bytes:
    """Return a tar.gz holding ``entries`` (member name -> content)."""
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
        for name, content in entries.items():
            info = tarfile.TarInfo(name)
            info.size = len(content)
            info.mode = 0o644
            tar.addfile(info, io.BytesIO(content))
    return buffer.getvalue()


@pytest.fixture
def singbox_archive() -> bytes:
    return build_archive({
        "sing-box-1.12.9-linux-amd64/sing-box": b"\x7fELF sing-box",
        "sing-box-1.12.9-linux-amd64/LICENSE": b"GPL",
    })


@dataclass
class FakeServer:
    """Serves fixed bodies per URL and counts requests."""

    bodies: dict[str, bytes]
    requests: list[str] = field(default_factory=list)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(str(request.url))
        body = self.bodies.get(str(request.url))
        if body is None:
            return httpx.Response(404, content=b"not found")
        return httpx.Response(200, content=body)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@dataclass
class FakeProcess:
    pid: int


@dataclass
class FakePopen:
    """Records launches instead of starting processes."""

    calls: list[tuple[list[str], dict]] = field(default_factory=list)
    fail_on: str | None = None

    def __call__(self, command, **kwargs):
        if self.fail_on and Path(command[0]).name == self.fail_on:
            raise FileNotFoundError(2, "No such file or directory", command[0])
        stdout = kwargs.get("stdout")
        recorded = dict(kwargs)
        name = getattr(stdout, "name", None)
        recorded["stdout_name"] = str(name) if name is not None else None
        recorded["stdout_mode"] = getattr(stdout, "mode", None)
        self.calls.append((list(command), recorded))
        return FakeProcess(pid=40000 + len(self.calls))


@pytest.fixture
def fake_popen() -> FakePopen:
    return FakePopen()
