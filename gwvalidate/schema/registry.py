"""Schema document lookup by dotted path."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Mapping

import orjson
import yaml

from gwvalidate.validate.errors import ConstructionError


class SchemaRegistry:
    """Resolves names such as ``plugins.limit-count`` to raw schema text.

    The backing document has the same shape as the gateway's ``schema.json``:
    a ``main`` section with entity and helper schemas and a ``plugins``
    section keyed by plugin name. Lookups never touch the filesystem; the
    document is read once when the registry is built.
    """

    def __init__(self, document: Mapping[str, Any]) -> None:
        self._document: Dict[str, Any] = dict(document)

    @classmethod
    def from_mapping(cls, document: Mapping[str, Any]) -> "SchemaRegistry":
        return cls(document)

    @classmethod
    def from_file(cls, path: Path) -> "SchemaRegistry":
        """Load a JSON or YAML schema document."""
        try:
            raw = path.read_bytes()
        except OSError as exc:
            raise ConstructionError(f"read schema file failed: {path}: {exc}") from exc
        try:
            if path.suffix in {".yaml", ".yml"}:
                document = yaml.safe_load(raw)
            else:
                document = orjson.loads(raw)
        except (orjson.JSONDecodeError, yaml.YAMLError) as exc:
            raise ConstructionError(f"parse schema file failed: {path}: {exc}") from exc
        if not isinstance(document, dict):
            raise ConstructionError(f"schema file must contain an object: {path}")
        return cls(document)

    def _node(self, path: str) -> Any:
        # longest matching key first, so names containing dots stay reachable
        node: Any = self._document
        segments = path.split(".")
        while segments:
            if not isinstance(node, dict):
                return None
            for end in range(len(segments), 0, -1):
                key = ".".join(segments[:end])
                if key in node:
                    node = node[key]
                    segments = segments[end:]
                    break
            else:
                return None
        return node

    def get(self, path: str) -> str:
        """Return the schema at ``path`` as JSON text, or ``""`` when absent."""
        if not path:
            return ""
        node = self._node(path)
        if node is None:
            return ""
        if isinstance(node, str):
            return node
        return orjson.dumps(node).decode("utf-8")

    def names(self, section: str) -> List[str]:
        """List the entries defined under a section, e.g. ``plugins``."""
        node = self._node(section)
        if not isinstance(node, dict):
            return []
        return sorted(node)
