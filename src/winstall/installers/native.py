"""MSI and EXE installers.

Both download `SourceUrl` to a temporary file named after the record, run
the installer and always try to delete the temporary file afterwards, even
when the download itself failed.
"""

from __future__ import annotations

import posixpath
import re
import urllib.parse
from abc import abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING

from winstall.catalog import SoftwareType
from winstall.filesystem import safe_filename
from winstall.installers.base import BaseInstaller, split_arguments
from winstall.types import InstallOutcome

if TYPE_CHECKING:
    from winstall.catalog import ExeRecord, MsiRecord, SoftwareRecord

DEFAULT_EXTENSION = ".exe"
MSI_DEFAULT_ARGUMENTS = ("/quiet", "/norestart")
EXE_DEFAULT_ARGUMENTS = ("/S",)

# Windows Installer "success, reboot required"
REBOOT_REQUIRED = 3010

_EXTENSION = re.compile(r"^\.[A-Za-z0-9]{1,8}$")


def url_extension(url: str, default: str = DEFAULT_EXTENSION) -> str:
    """File extension of a URL's path, lower-cased, or `default`."""
    path = urllib.parse.unquote(urllib.parse.urlsplit(url).path)
    extension = posixpath.splitext(path)[1]
    return extension.lower() if _EXTENSION.match(extension) else default


class _LocalInstaller(BaseInstaller):
    """Downloads an installer file and runs it."""

    default_arguments: tuple[str, ...] = ()

    def _install(self, record: MsiRecord | ExeRecord) -> InstallOutcome:
        fs = self.context.fs
        target = fs.temp_path(safe_filename(record.name) + url_extension(record.source_url))
        try:
            self.context.http.download(record.source_url, target)
            return self.install_local(record, target, record.install_arguments)
        finally:
            fs.remove_quietly(target)

    def install_local(
        self,
        record: SoftwareRecord,
        path: Path,
        arguments: str | list[str] | None = None,
    ) -> InstallOutcome:
        """Run an already-downloaded installer file.

        Args:
            record: Record the outcome is reported for.
            path: Installer file on disk.
            arguments: Installer arguments; the backend default when None.

        Returns:
            Outcome derived from the installer's exit code.
        """
        args = split_arguments(arguments, self.default_arguments)
        completed = self.context.runner.run(self.command(path, args), capture=False)
        exit_code = completed.returncode

        if exit_code == 0:
            return self._ok(record)
        if exit_code == REBOOT_REQUIRED:
            outcome = self._ok(record, "installed (restart required)")
            outcome.warnings.append("a restart is required to complete the installation")
            return outcome
        return self._fail(record, f"installer exited with exit code {exit_code}")

    @abstractmethod
    def command(self, path: Path, arguments: list[str]) -> list[str]:
        """argv that runs the installer file."""
        ...


class MsiInstaller(_LocalInstaller):
    """Runs a downloaded .msi through msiexec."""

    kind = SoftwareType.MSI
    default_arguments = MSI_DEFAULT_ARGUMENTS

    def command(self, path: Path, arguments: list[str]) -> list[str]:
        return ["msiexec", "/i", str(path), *arguments]


class ExeInstaller(_LocalInstaller):
    """Runs a downloaded executable installer directly."""

    kind = SoftwareType.EXE
    default_arguments = EXE_DEFAULT_ARGUMENTS

    def command(self, path: Path, arguments: list[str]) -> list[str]:
        return [str(path), *arguments]
