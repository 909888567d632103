"""YAML seed catalogs for UI namespaces.

Two file layouts are accepted in the catalog directory:

    common.EN.yml         one namespace per file:  {key: text | nested dict}
    EN.yml                namespaces as top-level keys: {common: {...}}

Nested dicts are flattened into dotted keys (``booking.form.submit``).
"""

import re
from pathlib import Path
from typing import Any, Dict, Mapping

import yaml

from infrastructure.logging import get_module_logger
from modules.localization.domain.models import LANGUAGE_CODE_PATTERN

logger = get_module_logger()

# namespace -> key -> language -> text
CatalogData = Dict[str, Dict[str, Dict[str, str]]]

PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*(\w+)\s*\}\}")


def flatten(messages: Mapping[str, Any], prefix: str = "") -> Dict[str, str]:
    """Flatten nested message dicts into dotted keys."""
    flat: Dict[str, str] = {}
    for name, value in messages.items():
        key = f"{prefix}.{name}" if prefix else str(name)
        if isinstance(value, Mapping):
            flat.update(flatten(value, key))
        elif value is not None:
            flat[key] = str(value)
    return flat


def interpolate(text: str, variables: Mapping[str, Any]) -> str:
    """Replace ``{{name}}`` placeholders; unknown names are left in place."""

    def replace(match: re.Match) -> str:
        name = match.group(1)
        if name not in variables:
            logger.warning("missing_interpolation_variable", variable=name)
            return match.group(0)
        return str(variables[name])

    return PLACEHOLDER_PATTERN.sub(replace, text)


class YAMLCatalogLoader:
    """Reads every ``*.yml`` file of a catalog directory."""

    def __init__(self, catalog_dir: Path):
        self.catalog_dir = Path(catalog_dir)
        if not self.catalog_dir.is_dir():
            raise ValueError(f"UI catalog directory not found: {self.catalog_dir}")

    def _read(self, path: Path) -> Any:
        try:
            with open(path, "r", encoding="utf-8") as f:
                return yaml.safe_load(f)
        except yaml.YAMLError as e:
            logger.error("yaml_parse_error", file=str(path), error=str(e))
            raise ValueError(f"Failed to parse {path}: {e}") from e

    def load(self) -> CatalogData:
        catalog: CatalogData = {}
        files = sorted(self.catalog_dir.glob("*.yml")) + sorted(self.catalog_dir.glob("*.yaml"))
        for path in files:
            parts = path.stem.split(".")
            language = parts[-1].upper()
            if not LANGUAGE_CODE_PATTERN.match(language):
                logger.warning("catalog_file_skipped", file=str(path), reason="no language suffix")
                continue
            data = self._read(path)
            if not isinstance(data, Mapping):
                logger.warning("invalid_yaml_format", file=str(path), expected="dict")
                continue

            if len(parts) >= 2:
                namespaces = {".".join(parts[:-1]): data}
            else:
                namespaces = {
                    name: messages for name, messages in data.items() if isinstance(messages, Mapping)
                }
            for namespace, messages in namespaces.items():
                keys = catalog.setdefault(namespace, {})
                for key, text in flatten(messages).items():
                    keys.setdefault(key, {})[language] = text

        logger.info(
            "ui_catalog_loaded",
            catalog_dir=str(self.catalog_dir),
            file_count=len(files),
            namespace_count=len(catalog),
        )
        return catalog
