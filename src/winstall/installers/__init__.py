"""Installation backends, one per software type."""

from __future__ import annotations

from typing import TYPE_CHECKING

from winstall.catalog import SoftwareType

from .base import BaseInstaller
from .module_registry import ModuleRegistryInstaller
from .native import ExeInstaller, MsiInstaller
from .package_manager import PackageManagerInstaller
from .release_archive import ReleaseArchiveInstaller
from .remote_script import RemoteScriptInstaller

if TYPE_CHECKING:
    from winstall.context import SessionContext

__all__ = [
    "BaseInstaller",
    "ExeInstaller",
    "INSTALLERS",
    "ModuleRegistryInstaller",
    "MsiInstaller",
    "PackageManagerInstaller",
    "ReleaseArchiveInstaller",
    "RemoteScriptInstaller",
    "get_installer",
]


INSTALLERS: dict[SoftwareType, type[BaseInstaller]] = {
    SoftwareType.PACKAGE_MANAGER: PackageManagerInstaller,
    SoftwareType.MSI: MsiInstaller,
    SoftwareType.EXE: ExeInstaller,
    SoftwareType.MODULE_REGISTRY: ModuleRegistryInstaller,
    SoftwareType.REMOTE_SCRIPT: RemoteScriptInstaller,
    SoftwareType.RELEASE_ARCHIVE: ReleaseArchiveInstaller,
}


def get_installer(kind: str, context: SessionContext) -> BaseInstaller:
    """Get an installer instance for a software type.

    Args:
        kind: Software type value (PackageManager, MSI, EXE, ...).
        context: Session dependencies.

    Returns:
        Installer instance.

    Raises:
        ValueError: If the type has no backend.
    """
    try:
        installer_class = INSTALLERS[SoftwareType(kind)]
    except (ValueError, KeyError):
        supported = [t.value for t in INSTALLERS]
        raise ValueError(f"Unknown installation type: {kind}. Supported: {supported}") from None
    return installer_class(context)
