"""Installation dispatcher.

Routes each record to the backend registered for its type and runs batches
sequentially. Nothing a backend does escapes `install`: every problem ends
up as a failed `InstallOutcome`, so one bad item never stops a batch.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping, Sequence
from typing import TYPE_CHECKING

from winstall.installers import INSTALLERS, BaseInstaller, get_installer
from winstall.logsink import TAG_ERROR, TAG_INFO, TAG_SKIPPED
from winstall.types import InstallOutcome, RunSummary

if TYPE_CHECKING:
    from winstall.catalog import SoftwareRecord
    from winstall.context import SessionContext

logger = logging.getLogger(__name__)

UNKNOWN_TYPE_MESSAGE = "unknown installation type"


class Dispatcher:
    """Routes records to installation backends. Satisfies InstallDispatcher."""

    def __init__(
        self,
        context: SessionContext,
        installers: Mapping[str, BaseInstaller],
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize dispatcher.

        Args:
            context: Session dependencies.
            installers: Backend per type value.
            sleep: Sleep function used for the pause between batch items.
        """
        self.context = context
        self.installers = dict(installers)
        self._sleep = sleep

    @classmethod
    def create(cls, context: SessionContext) -> Dispatcher:
        """Create a dispatcher with every registered backend.

        Args:
            context: Session dependencies.

        Returns:
            Configured Dispatcher.
        """
        installers = {kind.value: get_installer(kind.value, context) for kind in INSTALLERS}
        return cls(context, installers)

    def install(self, record: SoftwareRecord) -> InstallOutcome:
        """Install one record.

        Args:
            record: Catalog record.

        Returns:
            The outcome; failures are reported, never raised.
        """
        log = self.context.log
        installer = self.installers.get(record.type)
        if installer is None:
            log.write(TAG_ERROR, f"{record.name}: {UNKNOWN_TYPE_MESSAGE} '{record.type}'")
            return InstallOutcome.failed(record.name, str(record.type), UNKNOWN_TYPE_MESSAGE)

        try:
            return installer.install(record)
        except Exception as e:
            logger.exception("Installer for %s raised", record.type)
            message = str(e) or type(e).__name__
            log.write(TAG_ERROR, f"{record.name}: {message}")
            return InstallOutcome.failed(record.name, record.type, message)

    def install_all(
        self,
        records: Sequence[SoftwareRecord],
        confirm: Callable[[list[str]], bool],
        on_outcome: Callable[[InstallOutcome], None] | None = None,
    ) -> RunSummary:
        """Confirm once, then install every record in order.

        Args:
            records: Records in selection order.
            confirm: Asked once with all selected names; False cancels the batch.
            on_outcome: Called with each outcome as soon as it is known.

        Returns:
            Summary of the batch. Empty and marked cancelled when declined.
        """
        summary = RunSummary()
        if not records:
            return summary

        names = [record.name for record in records]
        if not confirm(names):
            self.context.log.write(TAG_SKIPPED, f"Installation cancelled: {', '.join(names)}")
            summary.cancelled = True
            return summary

        pause = self.context.settings.install_pause_seconds
        for position, record in enumerate(records):
            if position and pause:
                self._sleep(pause)
            outcome = self.install(record)
            summary.add(outcome)
            if on_outcome is not None:
                on_outcome(outcome)

        self.context.log.write(
            TAG_INFO,
            f"Batch finished: {summary.success_count} succeeded, "
            f"{summary.failure_count} failed, {summary.total} total",
        )
        return summary
