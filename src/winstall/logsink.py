"""Append-only install log.

Every installer event becomes one timestamped, tagged line, e.g.::

    2026-10-18 14:03:22 [SUCCESS] Visual Studio Code installed via PackageManager

The sink is a dedicated `logging` logger with its own file handler so that
diagnostic logging configured by the CLI never ends up in the install log and
the handler lock keeps concurrent writers from interleaving mid-line.
"""

from __future__ import annotations

import itertools
import logging
from pathlib import Path

TAG_INFO = "INFO"
TAG_SUCCESS = "SUCCESS"
TAG_FAILED = "FAILED"
TAG_ERROR = "ERROR"
TAG_SKIPPED = "SKIPPED"
TAG_WARNING = "WARNING"

LINE_FORMAT = "%(asctime)s [%(tag)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_instance_ids = itertools.count()


class InstallLog:
    """File-backed log sink. Satisfies the LogSink protocol."""

    def __init__(self, path: Path) -> None:
        """Open the log for appending.

        Args:
            path: Log file; parent directories are created.
        """
        self.path = path
        path.parent.mkdir(parents=True, exist_ok=True)

        self._handler = logging.FileHandler(path, mode="a", encoding="utf-8")
        self._handler.setFormatter(logging.Formatter(LINE_FORMAT, datefmt=DATE_FORMAT))

        # One logger per sink so tests and sessions don't share handlers.
        self._logger = logging.getLogger(f"winstall.install_log.{next(_instance_ids)}")
        self._logger.setLevel(logging.INFO)
        self._logger.propagate = False
        self._logger.addHandler(self._handler)

    def write(self, tag: str, message: str) -> None:
        """Append one line.

        Args:
            tag: Severity-like tag (SUCCESS, FAILED, ERROR, SKIPPED, ...).
            message: Human-readable text; newlines are flattened.
        """
        line = " ".join(message.splitlines()) or "-"
        self._logger.info(line, extra={"tag": tag})

    def close(self) -> None:
        """Flush and release the file handle."""
        self._logger.removeHandler(self._handler)
        self._handler.close()

