"""Bootstrap core: fetch, install, configure, launch and discover."""

from .errors import BinaryNotFound, BootstrapError, DiscoveryTimeout, DownloadFailed, ExtractionFailed
from .orchestrator import BootstrapOutcome, Bootstrapper
from .settings import BootstrapSettings, load_settings

__all__ = [
    "BinaryNotFound",
    "BootstrapError",
    "BootstrapOutcome",
    "BootstrapSettings",
    "Bootstrapper",
    "DiscoveryTimeout",
    "DownloadFailed",
    "ExtractionFailed",
    "load_settings",
]
