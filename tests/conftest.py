"""Shared test fixtures."""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest

from winstall.catalog import CatalogStore
from winstall.config import Settings
from winstall.context import SessionContext


class RecordingLog:
    """LogSink double that keeps every line in memory."""

    def __init__(self) -> None:
        self.lines: list[tuple[str, str]] = []
        self.closed = False

    def write(self, tag: str, message: str) -> None:
        self.lines.append((tag, message))

    def close(self) -> None:
        self.closed = True

    def tags(self) -> list[str]:
        return [tag for tag, _ in self.lines]


def completed(returncode: int = 0, stdout: str = "", stderr: str = "") -> subprocess.CompletedProcess[str]:
    """Build a CompletedProcess like ProcessRunner.run returns."""
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


@pytest.fixture
def temp_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Override home directory for testing."""
    monkeypatch.setattr(Path, "home", lambda: tmp_path)
    return tmp_path


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings pointing every path into tmp_path, with no install pause."""
    return Settings(
        catalog_path=tmp_path / "catalog.json",
        log_path=tmp_path / "install.log",
        install_pause_seconds=0,
        release_install_root=tmp_path / "Programs",
        export_path=tmp_path / "Desktop" / "installed_software.json",
        page_size=10,
    )


# ============================================================================
# Catalog Fixtures
# ============================================================================


@pytest.fixture
def sample_document() -> dict[str, Any]:
    """Small catalog document covering every software type."""
    return {
        "Development": {
            "IDEs & Editors": [
                {
                    "Name": "Visual Studio Code",
                    "Type": "PackageManager",
                    "Description": "Code editor",
                    "PackageId": "Microsoft.VisualStudioCode",
                },
            ],
            "Tools": [
                {
                    "Name": "GitHub CLI",
                    "Type": "MSI",
                    "Description": "GitHub on the command line",
                    "SourceUrl": "https://example.com/gh.msi",
                },
                {
                    "Name": "Python",
                    "Type": "EXE",
                    "Description": "Python runtime",
                    "SourceUrl": "https://example.com/python-setup.exe",
                    "InstallArguments": "/quiet PrependPath=1",
                },
                {
                    "Name": "posh-git",
                    "Type": "ModuleRegistry",
                    "Description": "Git prompt for PowerShell",
                    "ModuleName": "posh-git",
                },
            ],
        },
        "Utilities": {
            "Command Line": [
                {
                    "Name": "Scoop",
                    "Type": "RemoteScript",
                    "Description": "Command-line installer",
                    "SourceUrl": "https://get.scoop.sh",
                    "InvocationArguments": ["-RunAsAdmin"],
                },
                {
                    "Name": "tool",
                    "Type": "ReleaseArchive",
                    "Description": "A tool from GitHub releases",
                    "RepositoryId": "owner/repo",
                    "AssetNamePattern": "win64",
                },
            ],
        },
    }


@pytest.fixture
def catalog_path(tmp_path: Path, sample_document: dict[str, Any]) -> Path:
    """Sample catalog written to disk."""
    import json

    path = tmp_path / "catalog.json"
    path.write_text(json.dumps(sample_document))
    return path


@pytest.fixture
def catalog(catalog_path: Path) -> CatalogStore:
    """Sample catalog loaded from disk."""
    return CatalogStore.load(catalog_path)


# ============================================================================
# Mock Collaborator Fixtures
# ============================================================================


@pytest.fixture
def log() -> RecordingLog:
    return RecordingLog()


@pytest.fixture
def mock_runner() -> MagicMock:
    """Process runner whose commands all succeed."""
    runner = MagicMock()
    runner.run.return_value = completed(0)
    runner.powershell.return_value = completed(0)
    runner.which.return_value = "C:\\winget.exe"
    return runner


@pytest.fixture
def mock_filesystem(tmp_path: Path) -> MagicMock:
    """Filesystem double with temp paths under tmp_path/tmp."""
    fs = MagicMock()
    fs.temp_path.side_effect = lambda name: tmp_path / "tmp" / name
    fs.exists.return_value = False
    fs.find_files.return_value = []
    fs.remove_quietly.return_value = True
    return fs


@pytest.fixture
def mock_http() -> MagicMock:
    http = MagicMock()
    http.download.side_effect = lambda url, destination: destination
    return http


@pytest.fixture
def mock_winget() -> MagicMock:
    winget = MagicMock()
    winget.install.return_value = 0
    winget.show.return_value = True
    winget.search.return_value = []
    winget.list_installed.return_value = []
    return winget


@pytest.fixture
def mock_github() -> MagicMock:
    return MagicMock()


@pytest.fixture
def mock_prompter() -> MagicMock:
    prompter = MagicMock()
    prompter.confirm.return_value = True
    return prompter


@pytest.fixture
def context(
    settings: Settings,
    catalog: CatalogStore,
    log: RecordingLog,
    mock_runner: MagicMock,
    mock_filesystem: MagicMock,
    mock_http: MagicMock,
    mock_winget: MagicMock,
    mock_github: MagicMock,
    mock_prompter: MagicMock,
    tmp_path: Path,
) -> SessionContext:
    """Session context wired entirely to doubles, winget available."""
    return SessionContext(
        settings=settings,
        catalog=catalog,
        log=log,
        runner=mock_runner,
        fs=mock_filesystem,
        http=mock_http,
        winget=mock_winget,
        github=mock_github,
        prompter=mock_prompter,
        package_manager_available=True,
        desktop_dir=tmp_path / "Desktop",
    )
