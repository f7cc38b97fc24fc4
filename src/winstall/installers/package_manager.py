"""winget-backed installer."""

from __future__ import annotations

from typing import TYPE_CHECKING

from winstall.catalog import SoftwareType
from winstall.installers.base import BaseInstaller
from winstall.types import InstallOutcome

if TYPE_CHECKING:
    from winstall.catalog import PackageManagerRecord


class PackageManagerInstaller(BaseInstaller):
    """Installs a package by exact winget id."""

    kind = SoftwareType.PACKAGE_MANAGER

    def _install(self, record: PackageManagerRecord) -> InstallOutcome:
        if not self.context.package_manager_available:
            return self._fail(record, "package manager not available")

        exit_code = self.context.winget.install(record.package_id)
        if exit_code == 0:
            return self._ok(record, f"installed {record.package_id} via winget")
        return self._fail(record, f"winget install of {record.package_id} failed with exit code {exit_code}")
