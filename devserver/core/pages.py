"""
Page Registry

Maps request paths to page metadata. The develop HTML route only serves paths
registered here; everything else falls through to the rest of the app.
"""

import json
import logging
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class PageRegistry:
    """In-memory page registry."""

    def __init__(self, pages: dict[str, dict[str, Any]] | None = None):
        self._pages: dict[str, dict[str, Any]] = dict(pages or {})

    def __contains__(self, path: object) -> bool:
        return path in self._pages

    def __len__(self) -> int:
        return len(self._pages)

    def get(self, path: str) -> dict[str, Any] | None:
        return self._pages.get(path)

    def add(self, path: str, **metadata: Any) -> None:
        self._pages[path] = {"path": path, **metadata}

    def load_manifest(self, manifest_path: str | Path) -> int:
        """
        Register pages from a JSON manifest.

        The manifest is either a list of paths or an object mapping each
        path to its metadata.

        Returns:
            Number of pages registered
        """
        data = json.loads(Path(manifest_path).read_text(encoding="utf-8"))
        if isinstance(data, list):
            entries = {path: {} for path in data}
        elif isinstance(data, dict):
            entries = data
        else:
            raise ValueError(f"Unsupported page manifest format in {manifest_path}")

        for path, metadata in entries.items():
            self.add(path, **(metadata or {}))
        logger.info(f"Loaded {len(entries)} page(s) from {manifest_path}")
        return len(entries)
