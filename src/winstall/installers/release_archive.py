"""GitHub release installer."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import TYPE_CHECKING

from winstall.catalog import SoftwareType
from winstall.filesystem import safe_filename
from winstall.github import select_asset
from winstall.installers.base import BaseInstaller
from winstall.installers.native import ExeInstaller, MsiInstaller
from winstall.process import ps_quote
from winstall.types import InstallOutcome

if TYPE_CHECKING:
    from winstall.catalog import ReleaseArchiveRecord

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = (".exe", ".msi", ".zip")


class ReleaseArchiveInstaller(BaseInstaller):
    """Installs the latest release asset of a GitHub repository.

    `.exe` and `.msi` assets are handed to the native installers. `.zip`
    assets are extracted into `InstallPath` (or the configured release root
    plus the repository name) and the first executable inside gets a desktop
    shortcut.
    """

    kind = SoftwareType.RELEASE_ARCHIVE

    def _install(self, record: ReleaseArchiveRecord) -> InstallOutcome:
        release = self.context.github.find_release(record.repository_id)
        if not release.assets:
            return self._fail(record, "no release assets found")

        names = release.asset_names
        chosen = select_asset(names, record.asset_name_pattern)
        if chosen is None:
            return self._fail(record, f"no suitable asset found (available: {', '.join(names)})")

        extension = Path(chosen).suffix.lower()
        if extension not in SUPPORTED_EXTENSIONS:
            return self._fail(record, f"unsupported asset type '{chosen}'")

        logger.debug("Selected asset %s from %s %s", chosen, record.repository_id, release.tag_name)
        fs = self.context.fs
        download = fs.temp_path(safe_filename(chosen))
        try:
            self.context.github.download_asset(release.asset(chosen), download)
            if extension == ".msi":
                outcome = MsiInstaller(self.context).install_local(record, download)
            elif extension == ".exe":
                outcome = ExeInstaller(self.context).install_local(record, download)
            else:
                outcome = self._install_zip(record, download)
        finally:
            fs.remove_quietly(download)

        if outcome.success and record.post_install_hook:
            self._run_hook(record, outcome)
        return outcome

    def install_dir(self, record: ReleaseArchiveRecord) -> Path:
        """Extraction target for a zip asset."""
        if record.install_path:
            return Path(record.install_path).expanduser()
        return self.context.settings.release_install_root / record.repository_name

    def _install_zip(self, record: ReleaseArchiveRecord, archive: Path) -> InstallOutcome:
        fs = self.context.fs
        target = self.install_dir(record)

        if fs.exists(target):
            if not self.context.prompter.confirm(
                f"{target} already exists. Remove it and reinstall {record.name}?",
                default=False,
            ):
                return self._fail(record, f"installation directory exists: {target}")
            fs.rmtree(target)

        fs.extract_zip(archive, target)
        outcome = self._ok(record, f"extracted to {target}")

        executables = fs.find_files(target, "*.exe")
        if executables:
            shortcut = self._create_shortcut(record, executables[0])
            if shortcut is None:
                outcome.warnings.append(f"could not create a desktop shortcut to {executables[0].name}")
            else:
                outcome.message = f"extracted to {target}, shortcut {shortcut.name}"
        return outcome

    def _create_shortcut(self, record: ReleaseArchiveRecord, target: Path) -> Path | None:
        shortcut = self.context.desktop_dir / f"{safe_filename(record.name)}.lnk"
        script = (
            "$s = (New-Object -ComObject WScript.Shell).CreateShortcut("
            f"{ps_quote(str(shortcut))}); "
            f"$s.TargetPath = {ps_quote(str(target))}; "
            f"$s.WorkingDirectory = {ps_quote(str(target.parent))}; "
            "$s.Save()"
        )
        try:
            completed = self.context.runner.powershell(script)
        except (OSError, subprocess.SubprocessError) as e:
            logger.debug("Shortcut creation failed: %s", e)
            return None
        return shortcut if completed.returncode == 0 else None

    def _run_hook(self, record: ReleaseArchiveRecord, outcome: InstallOutcome) -> None:
        """Run the post-install hook; problems only add a warning."""
        try:
            completed = self.context.runner.powershell(record.post_install_hook or "")
        except (OSError, subprocess.SubprocessError) as e:
            outcome.warnings.append(f"post-install hook failed: {e}")
            return
        if completed.returncode != 0:
            outcome.warnings.append(f"post-install hook exited with code {completed.returncode}")
