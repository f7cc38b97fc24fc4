"""Protocol definitions for core abstractions.

Every collaborator of the session, the dispatcher and the installers is
described here as a Protocol so tests can substitute simple doubles.
Concrete implementations satisfy these protocols structurally.
"""

from __future__ import annotations

import subprocess
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from winstall.types import InstallOutcome, RunSummary

if TYPE_CHECKING:
    from winstall.catalog import SoftwareRecord
    from winstall.discovery import DiscoveryCandidate
    from winstall.inventory import InstalledSoftware


@runtime_checkable
class LogSink(Protocol):
    """Append-only, line-oriented event log."""

    def write(self, tag: str, message: str) -> None:
        """Append one complete line.

        Args:
            tag: Severity-like tag (SUCCESS, FAILED, ERROR, SKIPPED, ...).
            message: Human-readable text.
        """
        ...

    def close(self) -> None:
        """Flush and release the sink."""
        ...


@runtime_checkable
class CommandRunner(Protocol):
    """Protocol for running external programs."""

    def run(
        self,
        args: Sequence[str],
        capture: bool = True,
        check: bool = False,
        timeout: float | None = None,
    ) -> subprocess.CompletedProcess[str]:
        """Run a program to completion.

        Args:
            args: Program and arguments.
            capture: Capture output as text.
            check: Raise CalledProcessError on a non-zero exit code.
            timeout: Optional timeout in seconds.

        Returns:
            The completed process.
        """
        ...

    def which(self, program: str) -> str | None:
        """Resolve a program on PATH."""
        ...

    def powershell(self, command: str, check: bool = False) -> subprocess.CompletedProcess[str]:
        """Run a PowerShell command string."""
        ...


@runtime_checkable
class FileSystem(Protocol):
    """Protocol for the filesystem operations installers need."""

    def exists(self, path: Path) -> bool:
        ...

    def rmtree(self, path: Path) -> None:
        ...

    def write_text(self, path: Path, content: str, encoding: str = "utf-8") -> None:
        ...

    def temp_path(self, filename: str) -> Path:
        """Path for a temporary download."""
        ...

    def remove_quietly(self, path: Path) -> bool:
        """Best-effort file removal."""
        ...

    def extract_zip(self, archive: Path, destination: Path) -> None:
        ...

    def find_files(self, root: Path, pattern: str) -> list[Path]:
        ...


@runtime_checkable
class HttpFetcher(Protocol):
    """Protocol for HTTP reads and downloads."""

    def get_json(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """GET a URL and decode its JSON body."""
        ...

    def get_text(self, url: str) -> str:
        """GET a URL and return its body as text."""
        ...

    def download(self, url: str, destination: Path) -> Path:
        """Stream a URL to a file."""
        ...


@runtime_checkable
class Prompter(Protocol):
    """Protocol for yes/no questions asked in the middle of an install."""

    def confirm(self, message: str, default: bool = False) -> bool:
        ...


@runtime_checkable
class CatalogRepository(Protocol):
    """Protocol for the category tree the session navigates and merges into."""

    def categories(self) -> list[str]:
        """Category names in menu order."""
        ...

    def subcategories(self, category: str) -> list[str]:
        """Subcategory names of a category in menu order."""
        ...

    def software(self, category: str, subcategory: str) -> list[SoftwareRecord]:
        """Software records of a subcategory in display order."""
        ...

    def append(self, category: str, subcategory: str, record: SoftwareRecord) -> None:
        """Append a record to an existing subcategory.

        Raises:
            KeyError: If the category or subcategory does not exist.
            ValueError: If the name is already taken in that subcategory.
        """
        ...

    def save(self, path: Path | None = None) -> Path:
        """Persist the catalog and return the path written."""
        ...

    def find(self, name: str) -> list[tuple[str, str, SoftwareRecord]]:
        """Find records by name across all categories."""
        ...


@runtime_checkable
class DiscoveryClient(Protocol):
    """Protocol for a search source.

    Attributes:
        label: Short source name shown in the results table.
    """

    label: str

    def search(self, term: str) -> list[DiscoveryCandidate]:
        """Search for candidates.

        Args:
            term: Free-text search term.

        Returns:
            Candidates in source order.

        Raises:
            DiscoveryError: If the source cannot be queried at all.
        """
        ...


@runtime_checkable
class InstallDispatcher(Protocol):
    """Protocol for routing records to installation backends."""

    def install(self, record: SoftwareRecord) -> InstallOutcome:
        """Install one record. Never raises."""
        ...

    def install_all(
        self,
        records: Sequence[SoftwareRecord],
        confirm: Callable[[list[str]], bool],
        on_outcome: Callable[[InstallOutcome], None] | None = None,
    ) -> RunSummary:
        """Confirm once, then install records sequentially."""
        ...


@runtime_checkable
class InventorySource(Protocol):
    """Protocol for the installed-software inventory."""

    def collect(self) -> list[InstalledSoftware]:
        """Installed software, de-duplicated by name and sorted."""
        ...
