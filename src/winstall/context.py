"""Session context for dependency injection.

Everything a session needs (settings, catalog, log sink, process runner,
filesystem, HTTP and the two external-service clients) is created once by
`create_context` and passed explicitly to the dispatcher, installers,
navigator and search pipeline. Tests construct `SessionContext` directly
with doubles.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from winstall.config import Settings
from winstall.github import GitHubClient
from winstall.protocols import (
    CatalogRepository,
    CommandRunner,
    FileSystem,
    HttpFetcher,
    LogSink,
    Prompter,
)
from winstall.winget import WingetClient


def _default_desktop() -> Path:
    return Path.home() / "Desktop"


@dataclass
class SessionContext:
    """Container for session dependencies.

    Attributes:
        settings: Effective settings.
        catalog: The loaded catalog.
        log: Install log sink; closed by `close()`.
        runner: External process runner.
        fs: Filesystem wrapper.
        http: HTTP fetcher.
        winget: winget adapter.
        github: GitHub API client.
        prompter: Asks yes/no questions during installs.
        package_manager_available: Whether winget was found on PATH at startup.
        desktop_dir: Where release-archive shortcuts are created.
    """

    settings: Settings
    catalog: CatalogRepository
    log: LogSink
    runner: CommandRunner
    fs: FileSystem
    http: HttpFetcher
    winget: WingetClient
    github: GitHubClient
    prompter: Prompter
    package_manager_available: bool = False
    desktop_dir: Path = field(default_factory=_default_desktop)

    def close(self) -> None:
        """Release session resources."""
        self.log.close()


def create_context(
    settings: Settings | None = None,
    prompter: Prompter | None = None,
) -> SessionContext:
    """Factory for session dependencies.

    Loads the catalog (copying the bundled starter catalog on first run),
    opens the install log and probes for winget once.

    Args:
        settings: Settings to use. Loaded from disk when omitted.
        prompter: Prompter for in-install questions. Defaults to the console UI.

    Returns:
        Fully wired SessionContext.

    Raises:
        CatalogError: If the catalog is missing or invalid.
    """
    from winstall.catalog import CatalogStore
    from winstall.config import ensure_catalog, load_settings
    from winstall.filesystem import RealFileSystem
    from winstall.logsink import InstallLog
    from winstall.net import HttpClient
    from winstall.process import ProcessRunner
    from winstall.tui import TUI

    settings = settings or load_settings()
    catalog = CatalogStore.load(ensure_catalog(settings))

    runner = ProcessRunner()
    http = HttpClient(timeout=settings.http_timeout, download_timeout=settings.download_timeout)
    winget = WingetClient(runner)
    github = GitHubClient(
        http,
        api_url=settings.github_api_url,
        max_attempts=settings.github_max_attempts,
        backoff_seconds=settings.github_backoff_seconds,
    )

    return SessionContext(
        settings=settings,
        catalog=catalog,
        log=InstallLog(settings.log_path),
        runner=runner,
        fs=RealFileSystem(),
        http=http,
        winget=winget,
        github=github,
        prompter=prompter or TUI(),
        package_manager_available=winget.is_available(),
    )

