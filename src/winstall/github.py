"""GitHub REST API client and release asset selection.

Only anonymous, read-only endpoints are used. Metadata calls are retried
with exponential backoff on rate limits and timeouts; downloads are not.
"""

from __future__ import annotations

import logging
import re
import time
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from winstall.net import NetError, NotFoundError
from winstall.protocols import HttpFetcher
from winstall.retry import retry_with_backoff

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com"
ACCEPT_HEADERS = {
    "Accept": "application/vnd.github+json",
    "X-GitHub-Api-Version": "2022-11-28",
}

# Fallback order when a record has no AssetNamePattern; first match wins.
ASSET_PREFERENCES: tuple[str, ...] = (
    r"(win64|win-x64|windows[-_.]?(x64|amd64|x86_64)|x86_64[-_.]pc[-_.]windows).*\.zip$",
    r"\.msi$",
    r"(setup|install).*\.exe$",
    r"\.exe$",
    r"win.*\.zip$",
    r"\.zip$",
)

_NON_WINDOWS = re.compile(
    r"(linux|darwin|macos|osx|freebsd|android|\.tar\.\w+$|\.deb$|\.rpm$|\.dmg$|\.pkg$|\.appimage$)",
    re.IGNORECASE,
)


class GitHubError(NetError):
    """GitHub returned a payload the client could not understand."""

    pass


class ReleaseAsset(BaseModel):
    """Downloadable file attached to a release."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    download_url: str = Field(alias="browser_download_url")
    size: int = 0


class Release(BaseModel):
    """A published release."""

    model_config = ConfigDict(populate_by_name=True)

    tag_name: str
    name: str | None = None
    assets: list[ReleaseAsset] = Field(default_factory=list)

    @property
    def asset_names(self) -> list[str]:
        return [asset.name for asset in self.assets]

    def asset(self, name: str) -> ReleaseAsset:
        """Look up an asset by exact name.

        Raises:
            KeyError: If the release has no such asset.
        """
        for asset in self.assets:
            if asset.name == name:
                return asset
        raise KeyError(name)


class Repository(BaseModel):
    """Repository metadata returned by search and lookup endpoints."""

    model_config = ConfigDict(populate_by_name=True)

    full_name: str
    description: str | None = None
    stars: int = Field(default=0, alias="stargazers_count")
    html_url: str | None = None


def select_asset(asset_names: Sequence[str], pattern: str | None = None) -> str | None:
    """Pick the release asset to install.

    Args:
        asset_names: Asset file names in release order.
        pattern: Regular expression from the record. When given it is the only
            criterion (searched case-insensitively).

    Returns:
        The chosen asset name, or None when nothing qualifies.
    """
    if pattern:
        regex = re.compile(pattern, re.IGNORECASE)
        return next((name for name in asset_names if regex.search(name)), None)

    matched = _match_preference(asset_names)
    return matched[0] if matched else None


def guess_asset_pattern(asset_names: Sequence[str]) -> str | None:
    """Best-guess AssetNamePattern for a repository's release assets.

    Returns:
        The preference pattern that selects an asset, or None.
    """
    matched = _match_preference(asset_names)
    return matched[1] if matched else None


def _match_preference(asset_names: Sequence[str]) -> tuple[str, str] | None:
    candidates = [name for name in asset_names if not _NON_WINDOWS.search(name)]
    for preference in ASSET_PREFERENCES:
        regex = re.compile(preference, re.IGNORECASE)
        for name in candidates:
            if regex.search(name):
                return name, preference
    return None


class GitHubClient:
    """Anonymous client for the release and search endpoints."""

    def __init__(
        self,
        http: HttpFetcher,
        api_url: str = DEFAULT_API_URL,
        max_attempts: int = 4,
        backoff_seconds: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize client.

        Args:
            http: HTTP fetcher used for every call.
            api_url: API root.
            max_attempts: Attempts per metadata call, including the first.
            backoff_seconds: Delay before the first retry; doubles each time.
            sleep: Sleep function, injectable for tests.
        """
        self.http = http
        self.api_url = api_url.rstrip("/")
        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds
        self._sleep = sleep

    def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        url = f"{self.api_url}/{path.lstrip('/')}"
        return retry_with_backoff(
            lambda: self.http.get_json(url, params=params, headers=ACCEPT_HEADERS),
            attempts=self.max_attempts,
            base_delay=self.backoff_seconds,
            sleep=self._sleep,
        )

    def get_latest_release(self, repository_id: str) -> Release:
        """Fetch the latest published release.

        Raises:
            NotFoundError: If the repository has no releases.
            GitHubError: If the payload is malformed.
        """
        data = self._get(f"repos/{repository_id}/releases/latest")
        return _parse(Release, data, repository_id)

    def list_releases(self, repository_id: str) -> list[Release]:
        """Fetch the most recent releases, newest first."""
        data = self._get(f"repos/{repository_id}/releases")
        if not isinstance(data, list):
            raise GitHubError(f"Unexpected releases payload for {repository_id}")
        return [_parse(Release, item, repository_id) for item in data]

    def find_release(self, repository_id: str) -> Release:
        """Latest release, or the newest listed release when there is none.

        `releases/latest` never returns prereleases, so repositories that only
        publish prereleases are resolved through the release list. From that
        list the newest release with assets is preferred.

        Raises:
            NotFoundError: If the repository has no releases at all.
            GitHubError: If a payload is malformed.
        """
        try:
            return self.get_latest_release(repository_id)
        except NotFoundError:
            releases = self.list_releases(repository_id)
            if not releases:
                raise
        release = next((r for r in releases if r.assets), releases[0])
        logger.debug("No latest release for %s, using %s", repository_id, release.tag_name)
        return release

    def search_repositories(self, term: str, limit: int = 10) -> list[Repository]:
        """Search repositories by keyword, most starred first."""
        data = self._get(
            "search/repositories",
            params={"q": term, "sort": "stars", "order": "desc", "per_page": limit},
        )
        if not isinstance(data, dict) or not isinstance(data.get("items"), list):
            raise GitHubError(f"Unexpected search payload for '{term}'")
        return [_parse(Repository, item, term) for item in data["items"]]

    def download_asset(self, asset: ReleaseAsset, destination: Path) -> Path:
        """Download a release asset. Not retried.

        Raises:
            NetError: If the download fails or times out.
        """
        logger.debug("Downloading asset %s (%d bytes)", asset.name, asset.size)
        return self.http.download(asset.download_url, destination)


def _parse(model: type[BaseModel], data: Any, context: str) -> Any:
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise GitHubError(f"Malformed {model.__name__} payload for {context}: {e}") from e
