"""Remote PowerShell script installer."""

from __future__ import annotations

from typing import TYPE_CHECKING

from winstall.catalog import SoftwareType
from winstall.filesystem import safe_filename
from winstall.installers.base import BaseInstaller
from winstall.process import POWERSHELL
from winstall.types import InstallOutcome

if TYPE_CHECKING:
    from winstall.catalog import RemoteScriptRecord


class RemoteScriptInstaller(BaseInstaller):
    """Fetches a script, stages it as a .ps1 file and runs it.

    There is no exit-code contract: a failed fetch, a failed write or a
    non-zero exit (raised as CalledProcessError) all surface as exceptions
    that the base class turns into a failed outcome.
    """

    kind = SoftwareType.REMOTE_SCRIPT

    def _install(self, record: RemoteScriptRecord) -> InstallOutcome:
        fs = self.context.fs
        script = self.context.http.get_text(record.source_url)

        path = fs.temp_path(safe_filename(record.name) + ".ps1")
        try:
            # BOM so Windows PowerShell reads the file as UTF-8.
            fs.write_text(path, script, encoding="utf-8-sig")
            self.context.runner.run(
                [
                    POWERSHELL,
                    "-NoProfile",
                    "-ExecutionPolicy",
                    "Bypass",
                    "-File",
                    str(path),
                    *(record.invocation_arguments or []),
                ],
                capture=False,
                check=True,
            )
        finally:
            fs.remove_quietly(path)

        return self._ok(record, "script completed")
