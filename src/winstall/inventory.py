"""Installed-software inventory.

Entries come from the Windows uninstall registry keys and from `winget list`.
They are merged by case-insensitive name; the registry entry wins and winget
only fills in a missing version.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Callable, Iterable

from pydantic import BaseModel, ConfigDict, Field

from winstall.winget import PackageManagerError, WingetClient

logger = logging.getLogger(__name__)

UNINSTALL_SUBKEY = r"SOFTWARE\Microsoft\Windows\CurrentVersion\Uninstall"
UNINSTALL_SUBKEY_WOW64 = r"SOFTWARE\WOW6432Node\Microsoft\Windows\CurrentVersion\Uninstall"

SOURCE_WINGET = "winget"


class InstalledSoftware(BaseModel):
    """One installed program."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(alias="Name")
    version: str | None = Field(default=None, alias="Version")
    publisher: str | None = Field(default=None, alias="Publisher")
    source: str = Field(alias="Source")


def _query_value(winreg, key, name: str) -> str | None:
    try:
        value, _ = winreg.QueryValueEx(key, name)
    except OSError:
        return None
    return str(value).strip() or None


def read_registry() -> list[InstalledSoftware]:
    """Programs listed under the machine and user uninstall keys.

    Returns an empty list on non-Windows platforms. Entries without a
    DisplayName and system components are skipped.
    """
    if sys.platform != "win32":
        return []

    import winreg

    hives = [
        (winreg.HKEY_LOCAL_MACHINE, UNINSTALL_SUBKEY, "Registry (HKLM)"),
        (winreg.HKEY_LOCAL_MACHINE, UNINSTALL_SUBKEY_WOW64, "Registry (HKLM 32-bit)"),
        (winreg.HKEY_CURRENT_USER, UNINSTALL_SUBKEY, "Registry (HKCU)"),
    ]

    entries = []
    for hive, path, label in hives:
        try:
            root = winreg.OpenKey(hive, path, 0, winreg.KEY_READ)
        except OSError:
            logger.debug("Uninstall key %s not present", path)
            continue
        with root:
            for i in range(winreg.QueryInfoKey(root)[0]):
                try:
                    with winreg.OpenKey(root, winreg.EnumKey(root, i)) as sub:
                        name = _query_value(winreg, sub, "DisplayName")
                        if not name or _query_value(winreg, sub, "SystemComponent") == "1":
                            continue
                        entries.append(
                            InstalledSoftware(
                                name=name,
                                version=_query_value(winreg, sub, "DisplayVersion"),
                                publisher=_query_value(winreg, sub, "Publisher"),
                                source=label,
                            )
                        )
                except OSError as e:
                    logger.debug("Skipping uninstall entry %d in %s: %s", i, path, e)
    return entries


def merge_inventory(
    registry: Iterable[InstalledSoftware],
    packages: Iterable[InstalledSoftware],
) -> list[InstalledSoftware]:
    """De-duplicate by case-insensitive name and sort by name.

    Registry entries take precedence; a package-manager entry with the same
    name only supplies a version the registry entry lacks.
    """
    merged: dict[str, InstalledSoftware] = {}
    for item in registry:
        merged.setdefault(item.name.casefold(), item)
    for item in packages:
        key = item.name.casefold()
        existing = merged.get(key)
        if existing is None:
            merged[key] = item
        elif existing.version is None and item.version:
            merged[key] = existing.model_copy(update={"version": item.version})
    return sorted(merged.values(), key=lambda item: item.name.casefold())


class InventoryCollector:
    """Collects installed software. Satisfies InventorySource."""

    def __init__(
        self,
        winget: WingetClient,
        package_manager_available: bool,
        registry_reader: Callable[[], list[InstalledSoftware]] = read_registry,
    ) -> None:
        self.winget = winget
        self.package_manager_available = package_manager_available
        self.registry_reader = registry_reader

    def collect(self) -> list[InstalledSoftware]:
        """Merged, sorted inventory from the registry and winget."""
        registry = self.registry_reader()

        packages: list[InstalledSoftware] = []
        if self.package_manager_available:
            try:
                rows = self.winget.list_installed()
            except PackageManagerError as e:
                logger.warning("winget list failed: %s", e)
            else:
                packages = [
                    InstalledSoftware(name=row.name, version=row.version, source=SOURCE_WINGET)
                    for row in rows
                ]

        return merge_inventory(registry, packages)
