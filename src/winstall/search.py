"""Search-and-merge workflow.

Searches every discovery client, lets the user pick results, converts them
into catalog records under a chosen category and subcategory, and optionally
saves the catalog.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from pydantic import ValidationError

from winstall.catalog import CatalogError, SoftwareType
from winstall.discovery import (
    DiscoveryCandidate,
    GitHubDiscovery,
    WingetDiscovery,
    run_discovery,
)
from winstall.logsink import TAG_INFO
from winstall.navigation import parse_indices, select_indices
from winstall.winget import PackageManagerError

if TYPE_CHECKING:
    from winstall.context import SessionContext
    from winstall.protocols import DiscoveryClient
    from winstall.tui import TUI

logger = logging.getLogger(__name__)

BACK_WORDS = ("b", "back")


class SearchAndMerge:
    """Interactive search, pick and merge into the catalog."""

    def __init__(
        self,
        context: SessionContext,
        ui: TUI,
        clients: Sequence[DiscoveryClient],
    ) -> None:
        """Initialize the pipeline.

        Args:
            context: Session dependencies; the catalog is mutated.
            ui: Console UI.
            clients: Discovery clients in display order.
        """
        self.context = context
        self.ui = ui
        self.clients = list(clients)

    @classmethod
    def create(cls, context: SessionContext, ui: TUI) -> SearchAndMerge:
        """Create the pipeline with the winget and GitHub clients."""
        clients = [
            WingetDiscovery(context.winget, context.package_manager_available),
            GitHubDiscovery(context.github, limit=context.settings.github_search_limit),
        ]
        return cls(context, ui, clients)

    def search(self, term: str) -> list[DiscoveryCandidate]:
        """Query every client and warn about the ones that failed."""
        with self.ui.status(f"Searching for '{term}'..."):
            run = run_discovery(self.clients, term)
        for label, message in run.failures.items():
            self.ui.show_warning(f"{label} search unavailable: {message}")
        return run.candidates

    def run(self, term: str | None = None) -> int:
        """Run the whole workflow.

        Args:
            term: Search term; prompted for when omitted.

        Returns:
            Number of records added to the catalog.
        """
        if term is None:
            term = self.ui.prompt("Search term (blank to cancel)")
        term = term.strip()
        if not term:
            return 0

        candidates = self.search(term)
        if not candidates:
            self.ui.show_info(f"No results found for '{term}'")
            return 0

        self.ui.show_candidates(candidates)
        chosen = self._choose_candidates(candidates)
        if not chosen:
            return 0

        destination = self._choose_destination()
        if destination is None:
            return 0

        added = self.merge(chosen, *destination)
        if added and self.ui.confirm("Save the updated catalog now?", default=True):
            try:
                path = self.context.catalog.save()
            except (OSError, CatalogError) as e:
                self.ui.show_error(f"Could not save catalog: {e}")
            else:
                self.ui.show_success(f"Catalog saved to {path}")
        return added

    def merge(self, candidates: Sequence[DiscoveryCandidate], category: str, subcategory: str) -> int:
        """Append candidates to a subcategory.

        winget candidates are verified with `winget show` first. Candidates
        that fail verification, cannot be converted or clash with an
        existing name are skipped with a warning.

        Returns:
            Number of records appended.
        """
        added = 0
        for candidate in candidates:
            if candidate.source_kind == SoftwareType.PACKAGE_MANAGER and not self._verify(candidate):
                self.ui.show_warning(f"Skipped {candidate.name}: {candidate.identifier} could not be verified")
                continue
            try:
                record = candidate.to_record()
                self.context.catalog.append(category, subcategory, record)
            except (ValidationError, ValueError) as e:
                self.ui.show_warning(f"Skipped {candidate.name}: {e}")
                continue

            added += 1
            self.context.log.write(TAG_INFO, f"Added {record.name} ({record.type}) to {category} > {subcategory}")
            self.ui.show_success(f"Added {record.name} to {category} > {subcategory}")
        return added

    def _verify(self, candidate: DiscoveryCandidate) -> bool:
        try:
            return self.context.winget.show(candidate.identifier)
        except PackageManagerError as e:
            logger.warning("Could not verify %s: %s", candidate.identifier, e)
            return False

    def _choose_candidates(self, candidates: Sequence[DiscoveryCandidate]) -> list[DiscoveryCandidate]:
        while True:
            raw = self.ui.prompt("Results to add (e.g. 1,3 5) or 'back'").strip()
            if raw.lower() in BACK_WORDS:
                return []
            indices = select_indices(parse_indices(raw) or [], len(candidates))
            if indices:
                return [candidates[index - 1] for index in indices]
            self.ui.show_error(f"Enter numbers between 1 and {len(candidates)}, or 'back'")

    def _choose_destination(self) -> tuple[str, str] | None:
        catalog = self.context.catalog
        categories = catalog.categories()
        if not categories:
            self.ui.show_error("The catalog has no categories to add to")
            return None
        category = self._choose("Destination category", categories)
        if category is None:
            return None

        subcategories = catalog.subcategories(category)
        if not subcategories:
            self.ui.show_error(f"{category} has no subcategories to add to")
            return None
        subcategory = self._choose(f"Destination subcategory in {category}", subcategories)
        if subcategory is None:
            return None
        return category, subcategory

    def _choose(self, title: str, options: Sequence[str]) -> str | None:
        self.ui.show_numbered(title, options)
        while True:
            raw = self.ui.prompt(f"{title} (number or 'back')").strip()
            if raw.lower() in BACK_WORDS:
                return None
            if raw.isdecimal() and 1 <= int(raw) <= len(options):
                return options[int(raw) - 1]
            self.ui.show_error(f"Enter a number between 1 and {len(options)}")
