"""Filesystem abstraction for testability.

This module provides a filesystem abstraction that lets installer tests run
without touching real install locations. The RealFileSystem implementation
wraps standard library operations.
"""

from __future__ import annotations

import logging
import re
import shutil
import tempfile
import zipfile
from pathlib import Path

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]+')


def safe_filename(name: str) -> str:
    """Make a display name usable as a Windows file name stem."""
    cleaned = _UNSAFE_CHARS.sub("_", name).strip(" .")
    return cleaned or "download"


class RealFileSystem:
    """Production filesystem implementation.

    Wraps standard library Path, shutil, tempfile and zipfile operations.
    Satisfies the FileSystem protocol structurally.
    """

    def __init__(self, temp_root: Path | None = None) -> None:
        """Initialize filesystem.

        Args:
            temp_root: Directory for downloads. Defaults to <tmp>/winstall.
        """
        self.temp_root = temp_root or Path(tempfile.gettempdir()) / "winstall"

    def exists(self, path: Path) -> bool:
        """Check if a path exists."""
        return path.exists()

    def rmtree(self, path: Path) -> None:
        """Remove a directory tree."""
        shutil.rmtree(path)

    def write_text(self, path: Path, content: str, encoding: str = "utf-8") -> None:
        """Write text content to a file."""
        path.write_text(content, encoding=encoding)

    def temp_path(self, filename: str) -> Path:
        """Path for a temporary download; the directory is created."""
        self.temp_root.mkdir(parents=True, exist_ok=True)
        return self.temp_root / filename

    def remove_quietly(self, path: Path) -> bool:
        """Best-effort file removal.

        Returns:
            True if the file is gone afterwards.
        """
        try:
            path.unlink(missing_ok=True)
            return True
        except OSError as e:
            logger.debug("Could not remove %s: %s", path, e)
            return False

    def extract_zip(self, archive: Path, destination: Path) -> None:
        """Extract a zip archive into a directory.

        Raises:
            zipfile.BadZipFile: If the archive is corrupt.
        """
        destination.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(archive, "r") as zf:
            zf.extractall(destination)

    def find_files(self, root: Path, pattern: str) -> list[Path]:
        """Recursively find files matching a glob, in sorted order."""
        return sorted(p for p in root.rglob(pattern) if p.is_file())
