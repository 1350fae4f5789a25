"""Export a variable group to a JSON file."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from azure_vars.core.models import VariableGroup

logger = logging.getLogger(__name__)


def export_filename(group: VariableGroup) -> str:
    return f"{group.name.replace(' ', '_')}_variables.json"


def export_group(group: VariableGroup, directory: str | Path = ".") -> Path:
    """Write ``group`` as JSON and return the file path.

    Secret values are never written; they appear as null.
    """
    path = Path(directory) / export_filename(group)
    path.write_text(json.dumps(group.to_dict(), indent=2) + "\n", encoding="utf-8")
    logger.info("Exported variable group %s to %s", group.name, path)
    return path
