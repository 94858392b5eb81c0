"""YAML file key-value store."""

from __future__ import annotations

import asyncio
import logging
import os
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from ..errors import StorageError

logger = logging.getLogger(__name__)

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.\-]*$")


class YamlFileStore:
    """
    Key-value store keeping each slot in its own YAML file.

    A slot named "boards" lives in ``<root>/boards.yaml``. Writes go to a
    temporary sibling first and are moved into place once every slot of
    the batch has been written.
    """

    FILE_SUFFIX = ".yaml"
    HEADER = "# Auto-generated - do not edit manually\n"

    def __init__(self, root: Path) -> None:
        """
        Initialize the store.

        Args:
            root: Directory holding the slot files (e.g., .boardstore/)
        """
        self.root = root

    def ensure_directory(self) -> None:
        """Create the data directory if it doesn't exist."""
        self.root.mkdir(parents=True, exist_ok=True)

    def path_for(self, key: str) -> Path:
        """Get the file path for a slot."""
        if not _KEY_PATTERN.match(key):
            raise ValueError(f"Invalid slot name: {key!r}")
        return self.root / f"{key}{self.FILE_SUFFIX}"

    # --- Async API ---

    async def get(self, key: str, default: Any = None) -> Any:
        return await asyncio.to_thread(self._read, key, default)

    async def set_many(self, items: Mapping[str, Any]) -> None:
        await asyncio.to_thread(self._write_many, dict(items))

    async def keys(self) -> list[str]:
        return await asyncio.to_thread(self._list_keys)

    # --- Private Methods ---

    def _read(self, key: str, default: Any) -> Any:
        path = self.path_for(key)
        if not path.exists():
            return default
        try:
            with path.open(encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise StorageError(f"Cannot read {path}: {e}") from e
        return default if data is None else data

    def _write_many(self, items: dict[str, Any]) -> None:
        try:
            self.ensure_directory()
            staged: list[tuple[Path, Path]] = []
            for key, value in items.items():
                path = self.path_for(key)
                tmp_path = path.with_name(f".{path.name}.tmp")
                with tmp_path.open("w", encoding="utf-8") as f:
                    f.write(self.HEADER)
                    yaml.safe_dump(
                        value,
                        f,
                        default_flow_style=False,
                        sort_keys=False,
                        allow_unicode=True,
                    )
                staged.append((tmp_path, path))
            for tmp_path, path in staged:
                os.replace(tmp_path, path)
        except (OSError, yaml.YAMLError) as e:
            raise StorageError(f"Cannot write to {self.root}: {e}") from e
        logger.debug("Wrote slots %s to %s", ", ".join(items), self.root)

    def _list_keys(self) -> list[str]:
        if not self.root.exists():
            return []
        return sorted(p.stem for p in self.root.glob(f"*{self.FILE_SUFFIX}"))
