"""Normalisation of the upstream node list into a uniform sequence."""
from __future__ import annotations

from typing import Any, Dict, List, Tuple

from gwvalidate.entity.models import Node


def _split_address(address: str) -> Tuple[str, int]:
    if address.startswith("["):
        host, _, rest = address[1:].partition("]")
        port = rest[1:] if rest.startswith(":") else ""
    elif address.count(":") == 1:
        host, _, port = address.partition(":")
    else:
        host, port = address, ""
    return host, int(port) if port.isdigit() else 0


def _node_from_mapping(value: Dict[str, Any]) -> Node:
    return Node(
        host=str(value.get("host", "")),
        port=value.get("port") or 0,
        weight=value.get("weight") or 0,
        priority=value.get("priority"),
        metadata=value.get("metadata"),
    )


def format_nodes(nodes: Any) -> List[Node]:
    """Return ``nodes`` as a list of :class:`Node`.

    Accepts the ``{"host:port": weight}`` mapping form as well as a list of
    node mappings or ``Node`` instances. Malformed entries raise
    ``ValueError`` (pydantic's ``ValidationError`` included).
    """
    if nodes is None:
        return []
    if isinstance(nodes, dict):
        formatted: List[Node] = []
        for address, weight in nodes.items():
            host, port = _split_address(str(address))
            formatted.append(Node(host=host, port=port, weight=weight or 0))
        return formatted
    if isinstance(nodes, (list, tuple)):
        formatted = []
        for item in nodes:
            if isinstance(item, Node):
                formatted.append(item)
            elif isinstance(item, dict):
                formatted.append(_node_from_mapping(item))
            else:
                raise ValueError(f"unsupported node entry: {item!r}")
        return formatted
    raise ValueError(f"unsupported nodes value: {type(nodes).__name__}")
