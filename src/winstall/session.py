"""Interactive session loop."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from winstall.dispatcher import Dispatcher
from winstall.export import export_inventory
from winstall.inventory import InventoryCollector
from winstall.logsink import TAG_INFO
from winstall.navigation import (
    Action,
    Error,
    ExportRequest,
    InstallRequest,
    Level,
    Navigator,
    QuitRequest,
    SearchRequest,
    ShowInventoryRequest,
    parse_command,
)
from winstall.search import SearchAndMerge

if TYPE_CHECKING:
    from winstall.context import SessionContext
    from winstall.protocols import InstallDispatcher, InventorySource
    from winstall.tui import TUI

logger = logging.getLogger(__name__)


class Session:
    """Drives navigation, installs, inventory, export and search."""

    def __init__(
        self,
        context: SessionContext,
        ui: TUI,
        dispatcher: InstallDispatcher,
        inventory: InventorySource,
        search: SearchAndMerge,
    ) -> None:
        self.context = context
        self.ui = ui
        self.dispatcher = dispatcher
        self.inventory = inventory
        self.search = search
        self.navigator = Navigator(context.catalog, page_size=context.settings.page_size)

    @classmethod
    def create(cls, context: SessionContext, ui: TUI) -> Session:
        """Create a session wired to the production collaborators."""
        return cls(
            context,
            ui,
            dispatcher=Dispatcher.create(context),
            inventory=InventoryCollector(context.winget, context.package_manager_available),
            search=SearchAndMerge.create(context, ui),
        )

    def run(self) -> None:
        """Run until the user quits or aborts input (Ctrl+C / EOF)."""
        self.context.log.write(TAG_INFO, "Session started")
        self.ui.show_welcome(self.context.package_manager_available)
        try:
            while True:
                self.render()
                raw = self.ui.prompt(self._prompt_text())
                action = self.navigator.handle(parse_command(raw, self.navigator.state.level))
                if not self.perform(action):
                    break
        except (KeyboardInterrupt, EOFError):
            self.ui.console.print()
        finally:
            self.context.log.write(TAG_INFO, "Session ended")

    def render(self) -> None:
        """Draw the current level."""
        navigator = self.navigator
        state = navigator.state
        if state.level is Level.MAIN:
            self.ui.show_main_menu(navigator.categories())
        elif state.level is Level.SUBCATEGORY:
            self.ui.show_subcategories(state.category or "", navigator.subcategories())
        else:
            self.ui.show_software_page(
                f"{state.category} > {state.subcategory}",
                navigator.current_page(),
                state.page_index,
                navigator.page_count(),
                len(navigator.software()),
            )

    def perform(self, action: Action) -> bool:
        """Carry out an action.

        Returns:
            False when the session should end.
        """
        if isinstance(action, QuitRequest):
            return False
        if isinstance(action, Error):
            self.ui.show_error(action.message)
        elif isinstance(action, InstallRequest):
            self.install(action)
        elif isinstance(action, ShowInventoryRequest):
            with self.ui.status("Collecting installed software..."):
                items = self.inventory.collect()
            self.ui.show_inventory(items, self.context.settings.page_size)
        elif isinstance(action, ExportRequest):
            self.export()
        elif isinstance(action, SearchRequest):
            self.search.run()
        return True

    def install(self, request: InstallRequest) -> None:
        summary = self.dispatcher.install_all(
            list(request.records),
            confirm=self.ui.confirm_install,
            on_outcome=self.ui.show_outcome,
        )
        if summary.cancelled:
            self.ui.show_warning("Installation cancelled")
        else:
            self.ui.show_summary(summary)

    def export(self) -> None:
        path = self.context.settings.export_path
        with self.ui.status("Collecting installed software..."):
            items = self.inventory.collect()
        if export_inventory(items, path):
            self.ui.show_success(f"Exported {len(items)} entries to {path}")
        else:
            self.ui.show_error(f"Could not export inventory to {path}")

    def _prompt_text(self) -> str:
        level = self.navigator.state.level
        if level is Level.SOFTWARE:
            return "Selection"
        return "Choice"
