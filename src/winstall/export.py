"""Export of the installed-software inventory."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

import yaml

from winstall.catalog import write_document
from winstall.inventory import InstalledSoftware

logger = logging.getLogger(__name__)


def export_inventory(items: Sequence[InstalledSoftware], path: Path) -> bool:
    """Write the inventory as JSON, or YAML for .yaml/.yml paths.

    Args:
        items: Inventory entries.
        path: Destination file; parent directories are created.

    Returns:
        True if the file was written.
    """
    data = [item.model_dump(by_alias=True, exclude_none=True) for item in items]
    try:
        write_document(path, data)
    except (OSError, TypeError, ValueError, yaml.YAMLError) as e:
        logger.error("Could not export inventory to %s: %s", path, e)
        return False
    logger.debug("Exported %d entries to %s", len(data), path)
    return True
