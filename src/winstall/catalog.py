"""Software catalog models and the in-memory catalog store."""

from __future__ import annotations

import json
import logging
import re
from enum import Enum
from pathlib import Path
from typing import Annotated, Any, Literal, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

logger = logging.getLogger(__name__)

YAML_SUFFIXES = {".yaml", ".yml"}

_REPOSITORY_ID = re.compile(r"^[\w.-]+/[\w.-]+$")
_URL_SCHEMES = ("http://", "https://", "file://")


class CatalogError(Exception):
    """Catalog document is missing, unreadable, or invalid."""

    pass


class SoftwareType(str, Enum):
    """Installation backend discriminator."""

    PACKAGE_MANAGER = "PackageManager"
    MSI = "MSI"
    EXE = "EXE"
    MODULE_REGISTRY = "ModuleRegistry"
    REMOTE_SCRIPT = "RemoteScript"
    RELEASE_ARCHIVE = "ReleaseArchive"


class _RecordBase(BaseModel):
    """Fields shared by every catalog entry."""

    model_config = ConfigDict(
        populate_by_name=True,
        frozen=True,
        extra="forbid",
        str_strip_whitespace=True,
    )

    name: str = Field(alias="Name", min_length=1)
    description: str = Field(alias="Description", min_length=1)

    @property
    def kind(self) -> SoftwareType:
        """The record's installation type as an enum member."""
        return SoftwareType(self.type)  # type: ignore[attr-defined]


class PackageManagerRecord(_RecordBase):
    """Installed through winget by package identifier."""

    type: Literal["PackageManager"] = Field(default="PackageManager", alias="Type")
    package_id: str = Field(alias="PackageId", min_length=1)


class _DownloadRecord(_RecordBase):
    """Entry whose payload is fetched from a URL."""

    source_url: str = Field(alias="SourceUrl", min_length=1)

    @field_validator("source_url")
    @classmethod
    def _check_url(cls, value: str) -> str:
        if not value.lower().startswith(_URL_SCHEMES):
            raise ValueError(f"unsupported URL '{value}'")
        return value


class MsiRecord(_DownloadRecord):
    """Downloaded .msi installed through msiexec."""

    type: Literal["MSI"] = Field(default="MSI", alias="Type")
    install_arguments: str | list[str] | None = Field(default=None, alias="InstallArguments")


class ExeRecord(_DownloadRecord):
    """Downloaded executable installer run directly."""

    type: Literal["EXE"] = Field(default="EXE", alias="Type")
    install_arguments: str | list[str] | None = Field(default=None, alias="InstallArguments")


class ModuleRegistryRecord(_RecordBase):
    """PowerShell module installed from the module gallery."""

    type: Literal["ModuleRegistry"] = Field(default="ModuleRegistry", alias="Type")
    module_name: str = Field(alias="ModuleName", min_length=1)


class RemoteScriptRecord(_DownloadRecord):
    """Script fetched from a URL and executed."""

    type: Literal["RemoteScript"] = Field(default="RemoteScript", alias="Type")
    invocation_arguments: list[str] | None = Field(default=None, alias="InvocationArguments")


class ReleaseArchiveRecord(_RecordBase):
    """Latest release asset of a GitHub repository."""

    type: Literal["ReleaseArchive"] = Field(default="ReleaseArchive", alias="Type")
    repository_id: str = Field(alias="RepositoryId", min_length=1)
    asset_name_pattern: str | None = Field(default=None, alias="AssetNamePattern")
    install_path: str | None = Field(default=None, alias="InstallPath")
    post_install_hook: str | None = Field(default=None, alias="PostInstallHook")

    @field_validator("repository_id")
    @classmethod
    def _check_repository_id(cls, value: str) -> str:
        if not _REPOSITORY_ID.match(value):
            raise ValueError(f"expected 'owner/name', got '{value}'")
        return value

    @field_validator("asset_name_pattern")
    @classmethod
    def _check_pattern(cls, value: str | None) -> str | None:
        if value is None:
            return None
        try:
            re.compile(value)
        except re.error as e:
            raise ValueError(f"invalid regular expression: {e}") from e
        return value

    @property
    def repository_name(self) -> str:
        """Repository part of the owner/name identifier."""
        return self.repository_id.split("/", 1)[1]


SoftwareRecord = Annotated[
    Union[
        PackageManagerRecord,
        MsiRecord,
        ExeRecord,
        ModuleRegistryRecord,
        RemoteScriptRecord,
        ReleaseArchiveRecord,
    ],
    Field(discriminator="type"),
]

RECORD_ADAPTER: TypeAdapter[Any] = TypeAdapter(SoftwareRecord)


def parse_record(data: Any) -> SoftwareRecord:
    """Validate a raw mapping into the matching record variant.

    Raises:
        pydantic.ValidationError: If the mapping does not describe a valid record.
    """
    return RECORD_ADAPTER.validate_python(data)


def dump_record(record: SoftwareRecord) -> dict[str, Any]:
    """Serialize a record to its document form."""
    return record.model_dump(by_alias=True, exclude_none=True, mode="json")


def read_document(path: Path) -> Any:
    """Read a JSON or YAML document based on the file suffix."""
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() in YAML_SUFFIXES:
        return yaml.safe_load(text)
    return json.loads(text)


def write_document(path: Path, data: Any) -> None:
    """Write a JSON or YAML document based on the file suffix."""
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.suffix.lower() in YAML_SUFFIXES:
        text = yaml.safe_dump(data, sort_keys=False, allow_unicode=True)
    else:
        text = json.dumps(data, indent=2, ensure_ascii=False) + "\n"
    path.write_text(text, encoding="utf-8")


class CatalogStore:
    """Category -> subcategory -> ordered software list.

    Software lists keep document order because the position in the list is the
    number a user types to select an entry. Category and subcategory menus are
    presented in sorted order.
    """

    def __init__(
        self,
        tree: dict[str, dict[str, list[SoftwareRecord]]] | None = None,
        path: Path | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            tree: Already-validated catalog tree.
            path: Backing document used by `save()` when no path is given.

        Note:
            Prefer `load()` or `from_document()`; both validate every record.
        """
        self._tree: dict[str, dict[str, list[SoftwareRecord]]] = tree or {}
        self.path = path

    @classmethod
    def load(cls, path: Path) -> CatalogStore:
        """Load and validate a catalog document.

        Args:
            path: Path to a .json, .yaml or .yml catalog.

        Returns:
            Populated CatalogStore bound to `path`.

        Raises:
            CatalogError: If the file is missing, unparseable, or invalid.
        """
        if not path.exists():
            raise CatalogError(f"Catalog not found: {path}")

        try:
            data = read_document(path)
        except (json.JSONDecodeError, yaml.YAMLError, UnicodeDecodeError, OSError) as e:
            raise CatalogError(f"Catalog {path} could not be parsed: {e}") from e

        try:
            store = cls.from_document(data, path=path)
        except CatalogError as e:
            raise CatalogError(f"Catalog {path} is invalid:\n{e}") from e

        logger.debug("Loaded %d records from %s", store.record_count(), path)
        return store

    @classmethod
    def from_document(cls, data: Any, path: Path | None = None) -> CatalogStore:
        """Build a store from a parsed document.

        Raises:
            CatalogError: Listing every invalid record with its category path.
        """
        from winstall.validation import validate_catalog

        result = validate_catalog(data)
        if not result.success:
            raise CatalogError("\n".join(result.errors))
        return cls(result.tree, path=path)

    def categories(self) -> list[str]:
        """Category names in menu order."""
        return sorted(self._tree, key=str.casefold)

    def subcategories(self, category: str) -> list[str]:
        """Subcategory names of a category in menu order.

        Raises:
            KeyError: If the category does not exist.
        """
        return sorted(self._tree[category], key=str.casefold)

    def software(self, category: str, subcategory: str) -> list[SoftwareRecord]:
        """Software records of a subcategory in display order.

        Raises:
            KeyError: If the category or subcategory does not exist.
        """
        return list(self._tree[category][subcategory])

    def append(self, category: str, subcategory: str, record: SoftwareRecord) -> None:
        """Append a record at the end of a subcategory list.

        Raises:
            KeyError: If the category or subcategory does not exist.
            ValueError: If the list already has an entry with the same name.
        """
        entries = self._tree[category][subcategory]
        if any(existing.name.casefold() == record.name.casefold() for existing in entries):
            raise ValueError(f"'{record.name}' already exists in {category} > {subcategory}")
        entries.append(record)
        logger.debug("Appended %s to %s > %s", record.name, category, subcategory)

    def find(self, name: str) -> list[tuple[str, str, SoftwareRecord]]:
        """Find records by name, case-insensitively, across the whole catalog."""
        wanted = name.casefold()
        matches = []
        for category in self.categories():
            for subcategory in self.subcategories(category):
                for record in self._tree[category][subcategory]:
                    if record.name.casefold() == wanted:
                        matches.append((category, subcategory, record))
        return matches

    def record_count(self) -> int:
        """Total number of software records."""
        return sum(len(entries) for subs in self._tree.values() for entries in subs.values())

    def to_document(self) -> dict[str, dict[str, list[dict[str, Any]]]]:
        """Plain nested-dict form of the catalog, preserving insertion order."""
        return {
            category: {
                subcategory: [dump_record(record) for record in entries]
                for subcategory, entries in subs.items()
            }
            for category, subs in self._tree.items()
        }

    def save(self, path: Path | None = None) -> Path:
        """Persist the catalog.

        Args:
            path: Destination; defaults to the path the catalog was loaded from.

        Returns:
            The path written.

        Raises:
            CatalogError: If there is no destination.
            OSError: If the file cannot be written.
        """
        target = path or self.path
        if target is None:
            raise CatalogError("No catalog path to save to")
        write_document(target, self.to_document())
        logger.debug("Saved catalog to %s", target)
        return target
