"""
installer.py
------------
Extracts a release archive and installs one binary from it at a stable path.

Release archives put the binary inside a versioned top-level directory
(``sing-box-1.12.9-linux-amd64/sing-box``), so the directory is found by
prefix rather than by exact name.
"""

from __future__ import annotations

import logging
import os
import shutil
import tarfile
from pathlib import Path

from bootstrap.errors import BinaryNotFound, ExtractionFailed
from bootstrap.fetcher import EXECUTABLE_MODE

logger = logging.getLogger(__name__)


class ArchiveInstaller:
    """Installs ``<destination_dir>/<binary_name>`` from a tar archive."""

    def install(self, archive: Path, destination_dir: Path, entry_prefix: str, binary_name: str) -> Path:
        """
        Extract ``archive`` into ``destination_dir`` and copy the binary one level up.

        Args:
            archive (Path): Path of the (compressed) tar archive.
            destination_dir (Path): Extraction target; the binary lands directly in it.
            entry_prefix (str): Prefix of the top-level entry holding the binary.
            binary_name (str): File name of the binary inside that entry.

        Returns:
            Path: the installed, executable binary.

        Raises:
            ExtractionFailed: the archive is corrupt or unreadable.
            BinaryNotFound: no matching entry, or no binary inside it.
        """
        archive = Path(archive)
        destination_dir = Path(destination_dir)
        destination_dir.mkdir(parents=True, exist_ok=True)
        self.extract(archive, destination_dir)
        source = self.locate(destination_dir, entry_prefix, binary_name)
        target = destination_dir / binary_name
        _copy_executable(source, target)
        logger.info(f"{binary_name} installed at {target}")
        return target

    def extract(self, archive: Path, destination_dir: Path) -> None:
        try:
            with tarfile.open(archive, mode="r:*") as tar:
                if hasattr(tarfile, "data_filter"):
                    tar.extractall(destination_dir, filter="data")
                else:
                    tar.extractall(destination_dir)
        except (tarfile.TarError, OSError, EOFError) as e:
            raise ExtractionFailed(archive, e, log=True) from e
        logger.info(f"Extracted {archive}")

    def locate(self, destination_dir: Path, entry_prefix: str, binary_name: str) -> Path:
        """Return the binary inside the first top-level directory starting with ``entry_prefix``."""
        entries = sorted(
            entry for entry in destination_dir.iterdir()
            if entry.is_dir() and entry.name.startswith(entry_prefix)
        )
        if not entries:
            raise BinaryNotFound(binary_name, destination_dir, log=True)
        binary = entries[0] / binary_name
        if not binary.is_file():
            raise BinaryNotFound(binary_name, entries[0], log=True)
        return binary


def _copy_executable(source: Path, target: Path) -> None:
    """Copy through a temporary sibling so ``target`` is never seen half-written."""
    partial = target.with_name(f".{target.name}.partial")
    shutil.copyfile(source, partial)
    os.chmod(partial, EXECUTABLE_MODE)
    os.replace(partial, target)


__all__ = ["ArchiveInstaller"]
