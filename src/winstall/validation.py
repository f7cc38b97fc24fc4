"""Validation utilities for catalog documents.

A catalog document is a mapping of category name to a mapping of subcategory
name to a list of software records. Every record is validated on its own so
that a single bad entry is reported with its full category path instead of as
an opaque nested error.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from winstall.catalog import parse_record

if TYPE_CHECKING:
    from winstall.catalog import SoftwareRecord


class CatalogValidationResult:
    """Result of validating a catalog document."""

    __slots__ = ("tree", "errors", "success")

    def __init__(
        self,
        tree: dict[str, dict[str, list[SoftwareRecord]]] | None = None,
        errors: list[str] | None = None,
    ) -> None:
        """Initialize validation result.

        Args:
            tree: Validated catalog tree (partial when errors are present).
            errors: List of validation errors encountered.
        """
        self.tree = tree or {}
        self.errors = errors or []
        self.success = len(self.errors) == 0


def format_record_error(path: str, name: str, error: ValidationError) -> list[str]:
    """Turn a pydantic error into one line per problem.

    Lines read like `Development > IDEs > 'VS Code': PackageId: Field required`.
    """
    lines = []
    for detail in error.errors():
        fields = [str(part) for part in detail["loc"] if isinstance(part, str)]
        # The first loc element of a tagged-union error is the tag itself.
        if len(fields) > 1:
            fields = fields[1:]
        field = fields[0] if fields else "Type"
        lines.append(f"{path} > '{name}': {field}: {detail['msg']}")
    return lines


def validate_catalog(data: Any) -> CatalogValidationResult:
    """Validate a parsed catalog document.

    Args:
        data: Parsed JSON/YAML document.

    Returns:
        CatalogValidationResult with the typed tree and any errors.
    """
    if not isinstance(data, dict):
        return CatalogValidationResult(
            errors=["Catalog root must be a mapping of category names"]
        )

    tree: dict[str, dict[str, list[SoftwareRecord]]] = {}
    errors: list[str] = []

    for category, subcategories in data.items():
        if not isinstance(subcategories, dict):
            errors.append(f"{category}: must be a mapping of subcategory names")
            continue
        tree[category] = {}

        for subcategory, entries in subcategories.items():
            path = f"{category} > {subcategory}"
            if not isinstance(entries, list):
                errors.append(f"{path}: must be a list of software records")
                continue

            records: list[SoftwareRecord] = []
            seen: set[str] = set()
            for position, raw in enumerate(entries, 1):
                name = raw.get("Name") if isinstance(raw, dict) else None
                label = name or f"#{position}"
                if not isinstance(raw, dict):
                    errors.append(f"{path} > {label}: record must be a mapping")
                    continue
                try:
                    record = parse_record(raw)
                except ValidationError as e:
                    errors.extend(format_record_error(path, label, e))
                    continue
                key = record.name.casefold()
                if key in seen:
                    errors.append(f"{path} > '{record.name}': duplicate name")
                    continue
                seen.add(key)
                records.append(record)

            tree[category][subcategory] = records

    return CatalogValidationResult(tree=tree, errors=errors)
