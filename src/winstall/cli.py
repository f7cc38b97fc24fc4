"""CLI commands using Typer."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from winstall import __version__
from winstall.catalog import CatalogError, CatalogStore
from winstall.config import Settings, get_config_path, load_settings, save_settings
from winstall.context import create_context
from winstall.dispatcher import Dispatcher
from winstall.export import export_inventory
from winstall.inventory import InventoryCollector
from winstall.search import SearchAndMerge
from winstall.session import Session
from winstall.tui import TUI

if TYPE_CHECKING:
    from winstall.context import SessionContext

app = typer.Typer(
    name="winstall",
    help="Catalog-driven software installer for Windows",
    invoke_without_command=True,
)

config_app = typer.Typer(help="Configuration commands")
app.add_typer(config_app, name="config")

console = Console()
tui = TUI(console)


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        console.print(f"winstall v{__version__}")
        raise typer.Exit()


def configure_logging(verbose: bool) -> None:
    """Route diagnostic logging to a Rich handler on stderr."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit",
        ),
    ] = False,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Show diagnostic logging")
    ] = False,
) -> None:
    """Catalog-driven software installer for Windows.

    Without a command, starts the interactive menu.
    """
    configure_logging(verbose)
    if ctx.invoked_subcommand is None:
        interactive()


def _open_context(context: SessionContext | None) -> SessionContext:
    """Return the injected context or create one, exiting on catalog errors."""
    if context is not None:
        return context
    try:
        return create_context(prompter=tui)
    except CatalogError as e:
        tui.show_error(str(e))
        raise typer.Exit(1) from e


# ============================================================================
# Interactive Mode
# ============================================================================


@app.command("interactive")
def interactive(
    _context=None,
) -> None:
    """Browse the catalog and install software interactively."""
    ctx = _open_context(_context)
    try:
        Session.create(ctx, tui).run()
    finally:
        ctx.close()


# ============================================================================
# Catalog Commands
# ============================================================================


@app.command("list")
def list_software(
    category: Annotated[str | None, typer.Argument(help="Category to list")] = None,
    subcategory: Annotated[str | None, typer.Argument(help="Subcategory to list")] = None,
    _context=None,
) -> None:
    """List catalog entries, optionally limited to a category or subcategory."""
    ctx = _open_context(_context)
    try:
        catalog = ctx.catalog
        categories = catalog.categories()
        if category is not None:
            categories = [c for c in categories if c.casefold() == category.casefold()]
            if not categories:
                tui.show_error(f"Unknown category: {category}")
                raise typer.Exit(1)

        rows = []
        for cat in categories:
            subcategories = catalog.subcategories(cat)
            if subcategory is not None:
                subcategories = [s for s in subcategories if s.casefold() == subcategory.casefold()]
                if not subcategories:
                    tui.show_error(f"Unknown subcategory: {cat} > {subcategory}")
                    raise typer.Exit(1)
            for sub in subcategories:
                rows.extend((cat, sub, record) for record in catalog.software(cat, sub))
        tui.show_records(rows)
    finally:
        ctx.close()


@app.command()
def install(
    name: Annotated[str, typer.Argument(help="Software name as shown in the catalog")],
    category: Annotated[
        str | None, typer.Option("--category", "-c", help="Category, to disambiguate")
    ] = None,
    subcategory: Annotated[
        str | None, typer.Option("--subcategory", "-s", help="Subcategory, to disambiguate")
    ] = None,
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation")] = False,
    _context=None,
) -> None:
    """Install one catalog entry by name."""
    ctx = _open_context(_context)
    try:
        matches = [
            (cat, sub, record)
            for cat, sub, record in ctx.catalog.find(name)
            if (category is None or cat.casefold() == category.casefold())
            and (subcategory is None or sub.casefold() == subcategory.casefold())
        ]
        if not matches:
            tui.show_error(f"'{name}' is not in the catalog")
            raise typer.Exit(1)
        if len(matches) > 1:
            tui.show_error(f"'{name}' is ambiguous; use --category/--subcategory")
            tui.show_records(matches)
            raise typer.Exit(1)

        record = matches[0][2]
        summary = Dispatcher.create(ctx).install_all(
            [record],
            confirm=(lambda names: True) if yes else tui.confirm_install,
            on_outcome=tui.show_outcome,
        )
        if summary.cancelled:
            tui.show_warning("Installation cancelled")
            return
        tui.show_summary(summary)
        if summary.failure_count:
            raise typer.Exit(1)
    finally:
        ctx.close()


@app.command()
def search(
    term: Annotated[str, typer.Argument(help="Search term")],
    _context=None,
) -> None:
    """Search winget and GitHub without changing the catalog."""
    ctx = _open_context(_context)
    try:
        candidates = SearchAndMerge.create(ctx, tui).search(term)
        if not candidates:
            tui.show_info(f"No results found for '{term}'")
            return
        tui.show_candidates(candidates)
    finally:
        ctx.close()


@app.command()
def validate(
    path: Annotated[
        Path | None, typer.Argument(help="Catalog file (defaults to the configured catalog)")
    ] = None,
) -> None:
    """Validate a catalog document."""
    path = path or load_settings().catalog_path
    try:
        store = CatalogStore.load(path)
    except CatalogError as e:
        tui.show_error(str(e))
        raise typer.Exit(1) from e
    tui.show_success(f"{path} is valid ({store.record_count()} entries)")


# ============================================================================
# Inventory Commands
# ============================================================================


@app.command()
def inventory(
    _context=None,
) -> None:
    """Show installed software from the registry and winget."""
    ctx = _open_context(_context)
    try:
        items = InventoryCollector(ctx.winget, ctx.package_manager_available).collect()
        if not items:
            tui.show_warning("No installed software found")
            return
        tui.show_inventory_table(items)
    finally:
        ctx.close()


@app.command()
def export(
    path: Annotated[
        Path | None, typer.Argument(help="Output file (.json, .yaml or .yml)")
    ] = None,
    _context=None,
) -> None:
    """Export installed software to a file."""
    ctx = _open_context(_context)
    try:
        target = path or ctx.settings.export_path
        items = InventoryCollector(ctx.winget, ctx.package_manager_available).collect()
        if not export_inventory(items, target):
            tui.show_error(f"Could not export inventory to {target}")
            raise typer.Exit(1)
        tui.show_success(f"Exported {len(items)} entries to {target}")
    finally:
        ctx.close()


# ============================================================================
# Config Commands
# ============================================================================


def _resolve_setting(key: str) -> str | None:
    """Map a camelCase alias or snake_case name to a Settings field name."""
    for field_name, info in Settings.model_fields.items():
        if key in (field_name, info.alias):
            return field_name
    return None


@config_app.command("show")
def config_show(
    _config_path=None,
) -> None:
    """Show current configuration."""
    config_path = _config_path or get_config_path()
    settings = load_settings(config_path)

    table = Table(title=f"Configuration ({config_path})")
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    for key, value in settings.model_dump(by_alias=True, mode="json").items():
        table.add_row(key, str(value))
    console.print(table)


@config_app.command("set")
def config_set(
    key: Annotated[str, typer.Argument(help="Configuration key, e.g. pageSize")],
    value: Annotated[str, typer.Argument(help="Configuration value")],
    _config_path=None,
) -> None:
    """Set a configuration value."""
    config_path = _config_path or get_config_path()
    field_name = _resolve_setting(key)
    if field_name is None:
        tui.show_error(f"Unknown configuration key: {key}")
        raise typer.Exit(1)

    settings = load_settings(config_path, apply_env=False)
    try:
        setattr(settings, field_name, value)
    except ValidationError as e:
        tui.show_error(f"Invalid value for {key}: {e.errors()[0]['msg']}")
        raise typer.Exit(1) from e

    save_settings(settings, config_path)
    tui.show_success(f"Set {key} to {value}")


if __name__ == "__main__":
    app()
