"""PowerShell module installer."""

from __future__ import annotations

from typing import TYPE_CHECKING

from winstall.catalog import SoftwareType
from winstall.installers.base import BaseInstaller
from winstall.process import ps_quote
from winstall.types import InstallOutcome

if TYPE_CHECKING:
    from winstall.catalog import ModuleRegistryRecord


class ModuleRegistryInstaller(BaseInstaller):
    """Installs a module from the PowerShell Gallery for the current user.

    Success is decided by a follow-up `Get-Module -ListAvailable` query, not by
    the exit code of `Install-Module`.
    """

    kind = SoftwareType.MODULE_REGISTRY

    def _install(self, record: ModuleRegistryRecord) -> InstallOutcome:
        runner = self.context.runner
        name = ps_quote(record.module_name)

        installed = runner.powershell(
            f"Install-Module -Name {name} -Scope CurrentUser -Force -AllowClobber -ErrorAction Stop"
        )
        check = runner.powershell(
            f"if (Get-Module -ListAvailable -Name {name}) {{ exit 0 }} else {{ exit 1 }}"
        )
        if check.returncode == 0:
            return self._ok(record, f"module {record.module_name} is available")

        detail = _first_line(installed.stderr) or f"exit code {installed.returncode}"
        return self._fail(record, f"module {record.module_name} not found after install ({detail})")


def _first_line(text: str | None) -> str:
    for line in (text or "").splitlines():
        if line.strip():
            return line.strip()
    return ""
