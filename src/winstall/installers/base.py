"""Base installer with the shared install skeleton.

Pattern: Template Method. `BaseInstaller.install` logs the attempt, calls the
backend-specific `_install` step and converts whatever happens into an
`InstallOutcome`; subclasses only implement `_install`.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from winstall.catalog import SoftwareType
from winstall.logsink import TAG_ERROR, TAG_FAILED, TAG_INFO, TAG_SUCCESS, TAG_WARNING
from winstall.types import InstallOutcome

if TYPE_CHECKING:
    from collections.abc import Sequence

    from winstall.catalog import SoftwareRecord
    from winstall.context import SessionContext

logger = logging.getLogger(__name__)

_ARGUMENT = re.compile(r'(?:[^\s"]+|"[^"]*")+')


def split_arguments(arguments: str | list[str] | None, default: Sequence[str]) -> list[str]:
    """Normalize record arguments into an argv list.

    Strings are split on whitespace, keeping double-quoted segments intact
    (Windows command-line semantics, quotes are passed through).
    """
    if arguments is None:
        return list(default)
    if isinstance(arguments, str):
        return _ARGUMENT.findall(arguments)
    return list(arguments)


class BaseInstaller(ABC):
    """Base class for installation backends.

    Attributes:
        kind: The SoftwareType this backend handles.
    """

    kind: SoftwareType

    def __init__(self, context: SessionContext) -> None:
        """Initialize installer.

        Args:
            context: Session dependencies.
        """
        self.context = context

    def install(self, record: SoftwareRecord) -> InstallOutcome:
        """Install a record. Never raises.

        Writes an `INFO` line before the attempt and one `SUCCESS`, `FAILED`
        or `ERROR` line after it, plus a `WARNING` line per warning.
        """
        log = self.context.log
        log.write(TAG_INFO, f"Installing {record.name} ({record.type})...")
        try:
            outcome = self._install(record)
        except Exception as e:
            logger.debug("%s installer raised for %s", record.type, record.name, exc_info=True)
            message = str(e) or type(e).__name__
            log.write(TAG_ERROR, f"{record.name}: {message}")
            return InstallOutcome.failed(record.name, record.type, message)

        log.write(TAG_SUCCESS if outcome.success else TAG_FAILED, f"{record.name}: {outcome.message}")
        for warning in outcome.warnings:
            log.write(TAG_WARNING, f"{record.name}: {warning}")
        return outcome

    @abstractmethod
    def _install(self, record: SoftwareRecord) -> InstallOutcome:
        """Backend-specific installation step.

        May raise; `install` turns exceptions into failed outcomes.
        """
        ...

    @staticmethod
    def _ok(record: SoftwareRecord, message: str = "installed") -> InstallOutcome:
        return InstallOutcome.ok(record.name, record.type, message)

    @staticmethod
    def _fail(record: SoftwareRecord, message: str) -> InstallOutcome:
        return InstallOutcome.failed(record.name, record.type, message)
