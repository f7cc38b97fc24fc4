"""Tests for the installation backends."""

from __future__ import annotations

import subprocess
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from conftest import completed

from winstall.catalog import (
    ExeRecord,
    ModuleRegistryRecord,
    MsiRecord,
    PackageManagerRecord,
    ReleaseArchiveRecord,
    RemoteScriptRecord,
)
from winstall.context import SessionContext
from winstall.github import Release, ReleaseAsset
from winstall.installers import (
    ExeInstaller,
    ModuleRegistryInstaller,
    MsiInstaller,
    PackageManagerInstaller,
    ReleaseArchiveInstaller,
    RemoteScriptInstaller,
    get_installer,
)
from winstall.installers.base import split_arguments
from winstall.installers.native import _LocalInstaller, url_extension
from winstall.logsink import TAG_ERROR, TAG_INFO, TAG_SUCCESS, TAG_WARNING
from winstall.net import NetError


def _release(*names: str) -> Release:
    return Release(
        tag_name="v1.0.0",
        assets=[ReleaseAsset(name=n, download_url=f"https://example.com/{n}") for n in names],
    )


class TestRegistry:
    """Tests for get_installer."""

    def test_known_type(self, context: SessionContext) -> None:
        """Test looking up a backend by type value."""
        assert isinstance(get_installer("MSI", context), MsiInstaller)

    def test_unknown_type(self, context: SessionContext) -> None:
        """Test that unknown types are rejected."""
        with pytest.raises(ValueError, match="Unknown installation type"):
            get_installer("Snap", context)


class TestSplitArguments:
    """Tests for argument normalization."""

    def test_default_when_absent(self) -> None:
        assert split_arguments(None, ["/S"]) == ["/S"]

    def test_string_split_keeps_quotes(self) -> None:
        assert split_arguments('/quiet DIR="C:\\Program Files\\X"', []) == [
            "/quiet",
            'DIR="C:\\Program Files\\X"',
        ]

    def test_list_passthrough(self) -> None:
        assert split_arguments(["/a", "/b"], ["/S"]) == ["/a", "/b"]


class TestPackageManagerInstaller:
    """Tests for the winget backend."""

    def test_success(self, context: SessionContext, mock_winget: MagicMock) -> None:
        """Test that exit code 0 is success."""
        record = PackageManagerRecord(name="Git", description="d", package_id="Git.Git")

        outcome = PackageManagerInstaller(context).install(record)

        assert outcome.success
        mock_winget.install.assert_called_once_with("Git.Git")

    def test_nonzero_exit_code_in_message(self, context: SessionContext, mock_winget: MagicMock) -> None:
        """Test that a failing exit code is reported, not swallowed."""
        mock_winget.install.return_value = -1978335212
        record = PackageManagerRecord(name="Git", description="d", package_id="Git.Git")

        outcome = PackageManagerInstaller(context).install(record)

        assert not outcome.success
        assert "-1978335212" in outcome.message

    def test_absent_package_manager(self, context: SessionContext, mock_winget: MagicMock) -> None:
        """Test the precondition short-circuit."""
        context.package_manager_available = False
        record = PackageManagerRecord(name="Git", description="d", package_id="Git.Git")

        outcome = PackageManagerInstaller(context).install(record)

        assert outcome.message == "package manager not available"
        mock_winget.install.assert_not_called()


class TestUrlExtension:
    """Tests for temp file extension detection."""

    @pytest.mark.parametrize(
        ("url", "expected"),
        [
            ("https://example.com/setup.MSI", ".msi"),
            ("https://example.com/dl/tool.exe?token=1", ".exe"),
            ("https://example.com/download", ".exe"),
            ("https://example.com/latest/", ".exe"),
        ],
    )
    def test_extension(self, url: str, expected: str) -> None:
        assert url_extension(url) == expected


class TestNativeInstallers:
    """Tests for the MSI and EXE backends."""

    def test_msi_default_arguments(
        self, context: SessionContext, mock_runner: MagicMock, mock_http: MagicMock, tmp_path: Path
    ) -> None:
        """Test msiexec invocation with default arguments and temp naming."""
        record = MsiRecord(name="GitHub CLI", description="d", source_url="https://example.com/gh.msi")

        outcome = MsiInstaller(context).install(record)

        target = tmp_path / "tmp" / "GitHub CLI.msi"
        assert outcome.success
        mock_http.download.assert_called_once_with("https://example.com/gh.msi", target)
        mock_runner.run.assert_called_once_with(
            ["msiexec", "/i", str(target), "/quiet", "/norestart"], capture=False
        )

    def test_exe_record_arguments(
        self, context: SessionContext, mock_runner: MagicMock, tmp_path: Path
    ) -> None:
        """Test direct execution with the record's arguments."""
        record = ExeRecord(
            name="Python",
            description="d",
            source_url="https://example.com/python-setup.exe",
            install_arguments="/quiet PrependPath=1",
        )

        ExeInstaller(context).install(record)

        target = tmp_path / "tmp" / "Python.exe"
        mock_runner.run.assert_called_once_with([str(target), "/quiet", "PrependPath=1"], capture=False)

    def test_exe_default_arguments(self, context: SessionContext, mock_runner: MagicMock) -> None:
        """Test the /S default for EXE installers."""
        record = ExeRecord(name="Tool", description="d", source_url="https://example.com/tool.exe")
        ExeInstaller(context).install(record)
        assert mock_runner.run.call_args.args[0][1:] == ["/S"]

    def test_default_arguments_are_immutable(self) -> None:
        """Test that backend defaults cannot be mutated through a subclass."""
        assert MsiInstaller.default_arguments == ("/quiet", "/norestart")
        assert isinstance(ExeInstaller.default_arguments, tuple)

    def test_local_installer_requires_command(self, context: SessionContext) -> None:
        """Test that a backend without a command cannot be instantiated."""
        with pytest.raises(TypeError):
            _LocalInstaller(context)

    def test_nonzero_exit(self, context: SessionContext, mock_runner: MagicMock) -> None:
        """Test that a non-zero exit code fails with the code in the message."""
        mock_runner.run.return_value = completed(1603)
        record = MsiRecord(name="Bad", description="d", source_url="https://example.com/bad.msi")

        outcome = MsiInstaller(context).install(record)

        assert not outcome.success
        assert "1603" in outcome.message

    def test_reboot_required_is_success_with_warning(
        self, context: SessionContext, mock_runner: MagicMock
    ) -> None:
        """Test that 3010 counts as success and is surfaced as a warning."""
        mock_runner.run.return_value = completed(3010)
        record = MsiRecord(name="Runtime", description="d", source_url="https://example.com/r.msi")

        outcome = MsiInstaller(context).install(record)

        assert outcome.success
        assert outcome.warnings
        assert context.log.tags() == [TAG_INFO, TAG_SUCCESS, TAG_WARNING]

    def test_temp_file_removed_after_success(
        self, context: SessionContext, mock_filesystem: MagicMock, tmp_path: Path
    ) -> None:
        """Test best-effort cleanup after a completed install."""
        record = ExeRecord(name="Tool", description="d", source_url="https://example.com/tool.exe")
        ExeInstaller(context).install(record)
        mock_filesystem.remove_quietly.assert_called_once_with(tmp_path / "tmp" / "Tool.exe")

    def test_temp_file_removed_after_failed_download(
        self,
        context: SessionContext,
        mock_filesystem: MagicMock,
        mock_http: MagicMock,
        mock_runner: MagicMock,
        tmp_path: Path,
    ) -> None:
        """Test cleanup when the download itself fails."""
        mock_http.download.side_effect = NetError("connection reset")
        record = ExeRecord(name="Tool", description="d", source_url="https://example.com/tool.exe")

        outcome = ExeInstaller(context).install(record)

        assert not outcome.success
        assert outcome.message == "connection reset"
        mock_runner.run.assert_not_called()
        mock_filesystem.remove_quietly.assert_called_once_with(tmp_path / "tmp" / "Tool.exe")
        assert context.log.tags() == [TAG_INFO, TAG_ERROR]


class TestModuleRegistryInstaller:
    """Tests for the PowerShell module backend."""

    def test_success_verified_by_post_check(self, context: SessionContext, mock_runner: MagicMock) -> None:
        """Test that install is followed by a Get-Module check."""
        record = ModuleRegistryRecord(name="posh-git", description="d", module_name="posh-git")

        outcome = ModuleRegistryInstaller(context).install(record)

        assert outcome.success
        install_cmd, check_cmd = [c.args[0] for c in mock_runner.powershell.call_args_list]
        assert install_cmd.startswith("Install-Module -Name 'posh-git' -Scope CurrentUser -Force -AllowClobber")
        assert "Get-Module -ListAvailable -Name 'posh-git'" in check_cmd

    def test_install_exit_zero_but_module_missing(
        self, context: SessionContext, mock_runner: MagicMock
    ) -> None:
        """Test that the post-check, not the install call, decides success."""
        mock_runner.powershell.side_effect = [completed(0), completed(1)]
        record = ModuleRegistryRecord(name="posh-git", description="d", module_name="posh-git")

        outcome = ModuleRegistryInstaller(context).install(record)

        assert not outcome.success
        assert "not found after install" in outcome.message

    def test_install_error_but_module_present(
        self, context: SessionContext, mock_runner: MagicMock
    ) -> None:
        """Test that an already-present module counts as installed."""
        mock_runner.powershell.side_effect = [completed(1, stderr="in use"), completed(0)]
        record = ModuleRegistryRecord(name="PSReadLine", description="d", module_name="PSReadLine")

        assert ModuleRegistryInstaller(context).install(record).success

    def test_module_name_is_quoted(self, context: SessionContext, mock_runner: MagicMock) -> None:
        """Test that module names cannot inject PowerShell."""
        record = ModuleRegistryRecord(name="x", description="d", module_name="a'; Remove-Item C:\\")
        ModuleRegistryInstaller(context).install(record)
        assert "-Name 'a''; Remove-Item C:\\'" in mock_runner.powershell.call_args_list[0].args[0]


class TestRemoteScriptInstaller:
    """Tests for the remote script backend."""

    def test_runs_staged_script(
        self,
        context: SessionContext,
        mock_http: MagicMock,
        mock_runner: MagicMock,
        mock_filesystem: MagicMock,
        tmp_path: Path,
    ) -> None:
        """Test fetch, stage and execute with invocation arguments."""
        mock_http.get_text.return_value = "Write-Host hi"
        record = RemoteScriptRecord(
            name="Scoop",
            description="d",
            source_url="https://get.scoop.sh",
            invocation_arguments=["-RunAsAdmin"],
        )

        outcome = RemoteScriptInstaller(context).install(record)

        script = tmp_path / "tmp" / "Scoop.ps1"
        assert outcome.success
        mock_filesystem.write_text.assert_called_once_with(script, "Write-Host hi", encoding="utf-8-sig")
        args = mock_runner.run.call_args.args[0]
        assert args[:5] == ["powershell", "-NoProfile", "-ExecutionPolicy", "Bypass", "-File"]
        assert args[5:] == [str(script), "-RunAsAdmin"]
        assert mock_runner.run.call_args.kwargs["check"] is True
        mock_filesystem.remove_quietly.assert_called_once_with(script)

    def test_fetch_failure(self, context: SessionContext, mock_http: MagicMock, mock_runner: MagicMock) -> None:
        """Test that a fetch exception becomes the failure message."""
        mock_http.get_text.side_effect = NetError("Not found: https://get.scoop.sh")
        record = RemoteScriptRecord(name="Scoop", description="d", source_url="https://get.scoop.sh")

        outcome = RemoteScriptInstaller(context).install(record)

        assert not outcome.success
        assert outcome.message == "Not found: https://get.scoop.sh"
        mock_runner.run.assert_not_called()

    def test_script_failure(self, context: SessionContext, mock_runner: MagicMock) -> None:
        """Test that a failing script is reported through its exception."""
        mock_runner.run.side_effect = subprocess.CalledProcessError(1, ["powershell"])
        record = RemoteScriptRecord(name="Scoop", description="d", source_url="https://get.scoop.sh")

        outcome = RemoteScriptInstaller(context).install(record)

        assert not outcome.success
        assert "non-zero exit status 1" in outcome.message


class TestReleaseArchiveInstaller:
    """Tests for the GitHub release backend."""

    @pytest.fixture
    def record(self) -> ReleaseArchiveRecord:
        return ReleaseArchiveRecord(
            name="tool",
            description="d",
            repository_id="owner/repo",
            asset_name_pattern="win64",
        )

    def test_pattern_selects_zip_and_extracts(
        self,
        context: SessionContext,
        record: ReleaseArchiveRecord,
        mock_github: MagicMock,
        mock_filesystem: MagicMock,
        mock_runner: MagicMock,
        tmp_path: Path,
    ) -> None:
        """Test that win64 picks tool-win64.zip and takes the zip path."""
        mock_github.find_release.return_value = _release("tool-win64.zip", "tool-linux.tar.gz")
        install_dir = tmp_path / "Programs" / "repo"
        mock_filesystem.find_files.return_value = [install_dir / "tool.exe"]

        outcome = ReleaseArchiveInstaller(context).install(record)

        assert outcome.success
        asset = mock_github.download_asset.call_args.args[0]
        assert asset.name == "tool-win64.zip"
        mock_filesystem.extract_zip.assert_called_once_with(tmp_path / "tmp" / "tool-win64.zip", install_dir)
        mock_runner.run.assert_not_called()
        shortcut_script = mock_runner.powershell.call_args.args[0]
        assert "WScript.Shell" in shortcut_script
        assert str(install_dir / "tool.exe") in shortcut_script

    def test_no_assets(self, context: SessionContext, record: ReleaseArchiveRecord, mock_github: MagicMock) -> None:
        """Test the empty-release failure."""
        mock_github.find_release.return_value = _release()
        outcome = ReleaseArchiveInstaller(context).install(record)
        assert outcome.message == "no release assets found"
        mock_github.download_asset.assert_not_called()

    def test_no_match_lists_assets(
        self, context: SessionContext, record: ReleaseArchiveRecord, mock_github: MagicMock
    ) -> None:
        """Test that an unmatched pattern lists what was available."""
        mock_github.find_release.return_value = _release("tool-linux.tar.gz", "tool-mac.zip")

        outcome = ReleaseArchiveInstaller(context).install(record)

        assert not outcome.success
        assert outcome.message.startswith("no suitable asset found")
        assert "tool-linux.tar.gz" in outcome.message
        assert "tool-mac.zip" in outcome.message

    def test_msi_asset_delegates(
        self, context: SessionContext, mock_github: MagicMock, mock_runner: MagicMock, tmp_path: Path
    ) -> None:
        """Test that an .msi asset runs through msiexec."""
        mock_github.find_release.return_value = _release("tool-x64.msi")
        record = ReleaseArchiveRecord(name="tool", description="d", repository_id="owner/repo")

        outcome = ReleaseArchiveInstaller(context).install(record)

        assert outcome.success
        assert outcome.type == "ReleaseArchive"
        assert mock_runner.run.call_args.args[0][:3] == ["msiexec", "/i", str(tmp_path / "tmp" / "tool-x64.msi")]

    def test_unsupported_extension(self, context: SessionContext, mock_github: MagicMock) -> None:
        """Test that unsupported asset types fail explicitly."""
        mock_github.find_release.return_value = _release("tool-win64.7z")
        record = ReleaseArchiveRecord(
            name="tool", description="d", repository_id="owner/repo", asset_name_pattern=r"\.7z$"
        )

        outcome = ReleaseArchiveInstaller(context).install(record)

        assert not outcome.success
        assert "unsupported asset type" in outcome.message

    def test_existing_directory_declined(
        self,
        context: SessionContext,
        record: ReleaseArchiveRecord,
        mock_github: MagicMock,
        mock_filesystem: MagicMock,
        mock_prompter: MagicMock,
    ) -> None:
        """Test that an existing directory is never removed without consent."""
        mock_github.find_release.return_value = _release("tool-win64.zip")
        mock_filesystem.exists.return_value = True
        mock_prompter.confirm.return_value = False

        outcome = ReleaseArchiveInstaller(context).install(record)

        assert not outcome.success
        assert "installation directory exists" in outcome.message
        mock_filesystem.rmtree.assert_not_called()
        mock_filesystem.extract_zip.assert_not_called()

    def test_existing_directory_replaced(
        self,
        context: SessionContext,
        record: ReleaseArchiveRecord,
        mock_github: MagicMock,
        mock_filesystem: MagicMock,
        tmp_path: Path,
    ) -> None:
        """Test that a confirmed reinstall removes the old directory first."""
        mock_github.find_release.return_value = _release("tool-win64.zip")
        mock_filesystem.exists.return_value = True

        outcome = ReleaseArchiveInstaller(context).install(record)

        assert outcome.success
        mock_filesystem.rmtree.assert_called_once_with(tmp_path / "Programs" / "repo")

    def test_install_path_override(
        self, context: SessionContext, mock_github: MagicMock, mock_filesystem: MagicMock, tmp_path: Path
    ) -> None:
        """Test that InstallPath replaces the default target."""
        mock_github.find_release.return_value = _release("tool-win64.zip")
        record = ReleaseArchiveRecord(
            name="tool", description="d", repository_id="owner/repo", install_path=str(tmp_path / "custom")
        )

        ReleaseArchiveInstaller(context).install(record)

        assert mock_filesystem.extract_zip.call_args.args[1] == tmp_path / "custom"

    def test_hook_failure_is_warning(
        self, context: SessionContext, mock_github: MagicMock, mock_runner: MagicMock
    ) -> None:
        """Test that a failing post-install hook keeps the install successful."""
        mock_github.find_release.return_value = _release("tool-win64.zip")
        mock_runner.powershell.return_value = completed(2)
        record = ReleaseArchiveRecord(
            name="tool", description="d", repository_id="owner/repo", post_install_hook="tool --init"
        )

        outcome = ReleaseArchiveInstaller(context).install(record)

        assert outcome.success
        assert outcome.warnings == ["post-install hook exited with code 2"]
        assert context.log.tags() == [TAG_INFO, TAG_SUCCESS, TAG_WARNING]

    def test_release_lookup_failure(self, context: SessionContext, mock_github: MagicMock) -> None:
        """Test that API errors surface as a failed outcome."""
        mock_github.find_release.side_effect = NetError("HTTP 500")
        record = ReleaseArchiveRecord(name="tool", description="d", repository_id="owner/repo")

        outcome = ReleaseArchiveInstaller(context).install(record)

        assert not outcome.success
        assert outcome.message == "HTTP 500"

    def test_download_removed_afterwards(
        self, context: SessionContext, record: ReleaseArchiveRecord, mock_github: MagicMock, mock_filesystem: MagicMock, tmp_path: Path
    ) -> None:
        """Test that the downloaded asset is cleaned up."""
        mock_github.find_release.return_value = _release("tool-win64.zip")
        ReleaseArchiveInstaller(context).install(record)
        mock_filesystem.remove_quietly.assert_called_once_with(tmp_path / "tmp" / "tool-win64.zip")
