"""Rich console rendering and prompts."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table

from winstall import __version__
from winstall.navigation import page_count, page_slice

if TYPE_CHECKING:
    from rich.status import Status

    from winstall.catalog import SoftwareRecord
    from winstall.discovery import DiscoveryCandidate
    from winstall.inventory import InstalledSoftware
    from winstall.types import InstallOutcome, RunSummary


class TUI:
    """Console user interface for winstall. Satisfies Prompter."""

    def __init__(self, console: Console | None = None) -> None:
        """Initialize TUI.

        Args:
            console: Console to draw on. A new one is created when omitted.
        """
        self.console = console or Console()

    def show_welcome(self, package_manager_available: bool) -> None:
        """Display welcome banner."""
        winget = "[green]available[/green]" if package_manager_available else "[red]not found[/red]"
        self.console.print(
            Panel(
                f"[bold blue]winstall[/bold blue] v{__version__}\n"
                f"Catalog-driven software installer for Windows\n"
                f"winget: {winget}",
                title="Welcome",
                border_style="blue",
            )
        )

    # Prompts

    def prompt(self, message: str) -> str:
        """Read one line of input.

        Raises:
            KeyboardInterrupt, EOFError: When the user aborts input.
        """
        return Prompt.ask(escape(message), console=self.console, default="", show_default=False)

    def confirm(self, message: str, default: bool = False) -> bool:
        """Show confirmation prompt."""
        return Confirm.ask(escape(message), console=self.console, default=default)

    def confirm_install(self, names: list[str]) -> bool:
        """List the selection and ask once before installing."""
        self.console.print()
        self.console.print(f"[bold]Selected for installation ({len(names)}):[/bold]")
        for name in names:
            self.console.print(f"  - {escape(name)}")
        return self.confirm("Proceed with installation?", default=True)

    def status(self, message: str) -> Status:
        """Spinner shown while a slow operation runs."""
        return self.console.status(escape(message))

    # Navigation screens

    def show_main_menu(self, categories: Sequence[str]) -> None:
        self.console.print()
        self.console.print("[bold]Main Menu[/bold]")
        for index, category in enumerate(categories, 1):
            self.console.print(f"  [cyan]{index:>2}[/cyan]  {escape(category)}")
        self.console.print()
        self.console.print("  [dim]i[/dim] Installed software   [dim]s[/dim] Search & add")
        self.console.print("  [dim]e[/dim] Export inventory     [dim]q[/dim] Quit")

    def show_subcategories(self, category: str, subcategories: Sequence[str]) -> None:
        self.console.print()
        self.console.print(f"[bold]{escape(category)}[/bold]")
        for index, subcategory in enumerate(subcategories, 1):
            self.console.print(f"  [cyan]{index:>2}[/cyan]  {escape(subcategory)}")
        self.console.print()
        self.console.print("  [dim]b[/dim] Back   [dim]m[/dim] Main menu   [dim]q[/dim] Quit")

    def show_software_page(
        self,
        title: str,
        entries: Sequence[tuple[int, SoftwareRecord]],
        page_index: int,
        pages: int,
        total: int,
    ) -> None:
        """Display one page of a software list.

        Args:
            title: Category > subcategory heading.
            entries: (index, record) pairs; indices refer to the full list.
            page_index: Zero-based current page.
            pages: Total number of pages.
            total: Number of records in the full list.
        """
        table = Table(title=f"{escape(title)}  (page {page_index + 1}/{pages}, {total} items)")
        table.add_column("#", justify="right", style="cyan")
        table.add_column("Name", style="bold")
        table.add_column("Type")
        table.add_column("Description")
        for index, record in entries:
            table.add_row(str(index), escape(record.name), record.type, escape(record.description))

        self.console.print()
        self.console.print(table)
        self.console.print(
            "  [dim]1,3 5[/dim] Install selection   [dim]all[/dim] Install all   "
            "[dim]n/p[/dim] Next/previous page   [dim]g N[/dim] Go to page"
        )
        self.console.print("  [dim]b[/dim] Back   [dim]m[/dim] Main menu   [dim]q[/dim] Quit")

    def show_numbered(self, title: str, options: Sequence[str]) -> None:
        """Display a numbered list of choices."""
        self.console.print()
        self.console.print(f"[bold]{escape(title)}[/bold]")
        for index, option in enumerate(options, 1):
            self.console.print(f"  [cyan]{index:>2}[/cyan]  {escape(option)}")

    # Results

    def show_outcome(self, outcome: InstallOutcome) -> None:
        """Print one install result as soon as it is known."""
        if outcome.success:
            self.show_success(f"{outcome.name}: {outcome.message}")
        else:
            self.show_error(f"{outcome.name}: {outcome.message}")
        for warning in outcome.warnings:
            self.show_warning(f"{outcome.name}: {warning}")

    def show_summary(self, summary: RunSummary) -> None:
        """Display the end-of-batch summary table."""
        table = Table(title="Installation Summary")
        table.add_column("Name", style="cyan")
        table.add_column("Type")
        table.add_column("Result")
        table.add_column("Message")
        for item in summary.items:
            result = "[green]success[/green]" if item.success else "[red]failed[/red]"
            table.add_row(escape(item.name), item.type, result, escape(item.message))

        self.console.print()
        self.console.print(table)
        self.console.print(
            f"[green]{summary.success_count} succeeded[/green], "
            f"[red]{summary.failure_count} failed[/red], {summary.total} total"
        )

    def show_candidates(self, candidates: Sequence[DiscoveryCandidate]) -> None:
        """Display search results as one indexed table."""
        table = Table(title="Search Results")
        table.add_column("#", justify="right", style="cyan")
        table.add_column("Source")
        table.add_column("Name", style="bold")
        table.add_column("Id")
        table.add_column("Version")
        table.add_column("Stars", justify="right")
        table.add_column("Description")
        for index, candidate in enumerate(candidates, 1):
            table.add_row(
                str(index),
                escape(candidate.source or candidate.source_kind.value),
                escape(candidate.name),
                escape(candidate.identifier),
                escape(candidate.version or ""),
                "" if candidate.stars is None else str(candidate.stars),
                escape(candidate.description or ""),
            )
        self.console.print(table)

    def show_records(self, rows: Sequence[tuple[str, str, SoftwareRecord]]) -> None:
        """Display catalog records with their location."""
        if not rows:
            self.console.print("[yellow]No software found[/yellow]")
            return

        table = Table(title="Catalog")
        table.add_column("Category", style="cyan")
        table.add_column("Subcategory")
        table.add_column("Name", style="bold")
        table.add_column("Type")
        table.add_column("Description")
        for category, subcategory, record in rows:
            table.add_row(
                escape(category), escape(subcategory), escape(record.name), record.type, escape(record.description)
            )
        self.console.print(table)

    def show_inventory_table(self, items: Sequence[InstalledSoftware], title: str = "Installed Software") -> None:
        table = Table(title=escape(title))
        table.add_column("Name", style="bold")
        table.add_column("Version")
        table.add_column("Publisher")
        table.add_column("Source", style="dim")
        for item in items:
            table.add_row(
                escape(item.name), escape(item.version or ""), escape(item.publisher or ""), item.source
            )
        self.console.print(table)

    def show_inventory(self, items: Sequence[InstalledSoftware], page_size: int) -> None:
        """Page through the inventory until the user returns."""
        if not items:
            self.show_warning("No installed software found")
            return

        pages = page_count(len(items), page_size)
        for page_index in range(pages):
            entries = [item for _, item in page_slice(items, page_index, page_size)]
            self.show_inventory_table(
                entries, title=f"Installed Software (page {page_index + 1}/{pages}, {len(items)} items)"
            )
            if page_index + 1 < pages:
                if self.prompt("Enter for next page, q to return").strip().lower() == "q":
                    return

    # Messages

    def show_success(self, message: str) -> None:
        self.console.print(f"[green]✓[/green] {escape(message)}")

    def show_error(self, message: str) -> None:
        self.console.print(f"[red]✗[/red] {escape(message)}")

    def show_warning(self, message: str) -> None:
        self.console.print(f"[yellow]![/yellow] {escape(message)}")

    def show_info(self, message: str) -> None:
        self.console.print(f"[blue]i[/blue] {escape(message)}")
