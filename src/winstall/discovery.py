"""Discovery clients for the search-and-merge workflow.

Two sources are searched: winget and the GitHub repository search API.
Each client returns normalized `DiscoveryCandidate` objects; `run_discovery`
queries all clients concurrently and keeps whatever succeeded.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

from winstall.catalog import (
    PackageManagerRecord,
    ReleaseArchiveRecord,
    SoftwareRecord,
    SoftwareType,
)
from winstall.github import GitHubClient, guess_asset_pattern
from winstall.net import NetError, NotFoundError
from winstall.protocols import DiscoveryClient
from winstall.winget import PackageManagerError, WingetClient

logger = logging.getLogger(__name__)


class DiscoveryError(Exception):
    """A discovery source could not be queried at all."""

    pass


@dataclass
class DiscoveryCandidate:
    """Normalized search hit.

    Attributes:
        name: Display name.
        source_kind: PackageManager or ReleaseArchive.
        identifier: winget package id or GitHub `owner/name`.
        version: Package version or latest release tag.
        stars: Repository star count (GitHub only).
        description: Short description, if the source has one.
        asset_pattern: Suggested AssetNamePattern (GitHub only).
        source: winget source name (winget only).
    """

    name: str
    source_kind: SoftwareType
    identifier: str
    version: str | None = None
    stars: int | None = None
    description: str | None = None
    asset_pattern: str | None = None
    source: str | None = None

    def to_record(self) -> SoftwareRecord:
        """Promote the candidate to a catalog record."""
        if self.source_kind == SoftwareType.PACKAGE_MANAGER:
            return PackageManagerRecord(
                name=self.name,
                description=self.description or f"{self.name} ({self.identifier}) from winget",
                package_id=self.identifier,
            )
        if self.source_kind == SoftwareType.RELEASE_ARCHIVE:
            return ReleaseArchiveRecord(
                name=self.name,
                description=self.description or f"Latest release of {self.identifier}",
                repository_id=self.identifier,
                asset_name_pattern=self.asset_pattern,
            )
        raise ValueError(f"Cannot build a record from a {self.source_kind.value} candidate")


class WingetDiscovery:
    """Searches winget. Satisfies DiscoveryClient."""

    label = "winget"

    def __init__(self, winget: WingetClient, available: bool) -> None:
        self.winget = winget
        self.available = available

    def search(self, term: str) -> list[DiscoveryCandidate]:
        """Search winget by term.

        Raises:
            DiscoveryError: If winget is not available.
        """
        if not self.available:
            raise DiscoveryError("package manager not available")
        try:
            rows = self.winget.search(term)
        except PackageManagerError as e:
            raise DiscoveryError(str(e)) from e

        return [
            DiscoveryCandidate(
                name=row.name,
                source_kind=SoftwareType.PACKAGE_MANAGER,
                identifier=row.id,
                version=row.version,
                source=row.source,
            )
            for row in rows
        ]


class GitHubDiscovery:
    """Searches GitHub repositories that publish release assets.

    A repository is only returned when it has a release with at least one
    asset. Per-repository failures skip that repository.
    """

    label = "GitHub"

    def __init__(self, github: GitHubClient, limit: int = 10) -> None:
        self.github = github
        self.limit = limit

    def search(self, term: str) -> list[DiscoveryCandidate]:
        """Search repositories by term, most starred first.

        Raises:
            DiscoveryError: If the search endpoint itself fails.
        """
        try:
            repositories = self.github.search_repositories(term, limit=self.limit)
        except NetError as e:
            raise DiscoveryError(f"GitHub search failed: {e}") from e

        candidates = []
        for repository in repositories:
            try:
                release = self.github.find_release(repository.full_name)
            except NotFoundError:
                logger.debug("Skipping %s: no releases", repository.full_name)
                continue
            except NetError as e:
                logger.warning("Skipping %s: %s", repository.full_name, e)
                continue

            if not release.assets:
                logger.debug("Skipping %s: release %s has no assets", repository.full_name, release.tag_name)
                continue

            candidates.append(
                DiscoveryCandidate(
                    name=repository.full_name.split("/", 1)[1],
                    source_kind=SoftwareType.RELEASE_ARCHIVE,
                    identifier=repository.full_name,
                    version=release.tag_name,
                    stars=repository.stars,
                    description=repository.description,
                    asset_pattern=guess_asset_pattern(release.asset_names),
                )
            )
        return candidates


@dataclass
class DiscoveryRun:
    """Joined result of one search across all clients.

    Attributes:
        candidates: Candidates in client order, each client's order preserved.
        failures: Client label to error message, for clients that failed.
    """

    candidates: list[DiscoveryCandidate] = field(default_factory=list)
    failures: dict[str, str] = field(default_factory=dict)


def run_discovery(clients: Sequence[DiscoveryClient], term: str) -> DiscoveryRun:
    """Query every client concurrently and join all results.

    A failing client contributes no candidates and does not cancel the others.

    Args:
        clients: Clients in display order.
        term: Search term.

    Returns:
        Combined candidates and per-client failures.
    """
    run = DiscoveryRun()
    if not clients:
        return run

    with ThreadPoolExecutor(max_workers=len(clients), thread_name_prefix="discovery") as pool:
        futures = [pool.submit(client.search, term) for client in clients]

    for client, future in zip(clients, futures):
        try:
            run.candidates.extend(future.result())
        except Exception as e:
            logger.warning("%s search failed: %s", client.label, e)
            run.failures[client.label] = str(e) or type(e).__name__
    return run
