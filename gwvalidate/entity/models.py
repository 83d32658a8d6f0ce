"""Pydantic models for the gateway entities that reach the validator."""
from __future__ import annotations

from typing import Any, ClassVar, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_serializer


_OMIT_EMPTY = ("type", "hash_on", "key", "pass_host", "upstream_host")


class Node(BaseModel):
    """A single upstream target after normalisation."""

    host: str
    port: int = 0
    weight: int = 0
    priority: Optional[int] = None
    metadata: Optional[Dict[str, Any]] = None


class GatewayObject(BaseModel):
    """Shared behaviour across all entity kinds.

    Extra fields are kept so that structural validation sees exactly what
    the caller submitted.
    """

    model_config = ConfigDict(extra="allow")

    kind: ClassVar[str] = ""

    def upstream_definition(self) -> Optional["UpstreamDef"]:
        return None

    def plugin_configs(self) -> Optional[Dict[str, Any]]:
        return None

    def to_document(self) -> Dict[str, Any]:
        """Dump to the JSON form the schema engine evaluates."""
        return self.model_dump(mode="json", exclude_none=True)


class UpstreamDef(GatewayObject):
    """Load-balancing definition embedded in routes, services and upstreams."""

    type: Optional[str] = None
    hash_on: Optional[str] = None
    key: Optional[str] = None
    pass_host: Optional[str] = None
    upstream_host: Optional[str] = None
    nodes: Optional[Union[Dict[str, Any], List[Any]]] = Field(
        default=None, description="Either a host:port to weight mapping or a list of nodes"
    )
    service_name: Optional[str] = None
    discovery_type: Optional[str] = None
    scheme: Optional[str] = None
    retries: Optional[int] = None
    timeout: Optional[Dict[str, Any]] = None

    @model_serializer(mode="wrap")
    def _omit_empty(self, handler):
        # empty strings mean "unset" for these fields
        data = handler(self)
        if isinstance(data, dict):
            for name in _OMIT_EMPTY:
                if data.get(name) == "":
                    data.pop(name)
        return data


class Route(GatewayObject):
    kind: ClassVar[str] = "route"

    id: Optional[Any] = None
    name: Optional[str] = None
    uri: Optional[str] = None
    uris: Optional[List[str]] = None
    host: Optional[str] = None
    methods: Optional[List[str]] = None
    plugins: Optional[Dict[str, Any]] = None
    upstream: Optional[UpstreamDef] = None
    upstream_id: Optional[Any] = None
    service_id: Optional[Any] = None
    plugin_config_id: Optional[Any] = None

    def upstream_definition(self) -> Optional[UpstreamDef]:
        return self.upstream

    def plugin_configs(self) -> Optional[Dict[str, Any]]:
        return self.plugins


class Service(GatewayObject):
    kind: ClassVar[str] = "service"

    id: Optional[Any] = None
    name: Optional[str] = None
    desc: Optional[str] = None
    plugins: Optional[Dict[str, Any]] = None
    upstream: Optional[UpstreamDef] = None
    upstream_id: Optional[Any] = None

    def upstream_definition(self) -> Optional[UpstreamDef]:
        return self.upstream

    def plugin_configs(self) -> Optional[Dict[str, Any]]:
        return self.plugins


class Upstream(UpstreamDef):
    """Standalone upstream object; it is its own definition."""

    kind: ClassVar[str] = "upstream"

    id: Optional[Any] = None
    name: Optional[str] = None
    desc: Optional[str] = None

    def upstream_definition(self) -> Optional[UpstreamDef]:
        return self


class Consumer(GatewayObject):
    kind: ClassVar[str] = "consumer"

    username: Optional[str] = None
    desc: Optional[str] = None
    plugins: Optional[Dict[str, Any]] = None

    def plugin_configs(self) -> Optional[Dict[str, Any]]:
        return self.plugins


class SSL(GatewayObject):
    kind: ClassVar[str] = "ssl"

    id: Optional[Any] = None
    cert: Optional[str] = None
    key: Optional[str] = None
    snis: Optional[List[str]] = None


class PluginConfig(GatewayObject):
    kind: ClassVar[str] = "plugin_config"

    id: Optional[Any] = None
    desc: Optional[str] = None
    plugins: Optional[Dict[str, Any]] = None

    def plugin_configs(self) -> Optional[Dict[str, Any]]:
        return self.plugins


class GlobalRule(GatewayObject):
    kind: ClassVar[str] = "global_rule"

    id: Optional[Any] = None
    plugins: Optional[Dict[str, Any]] = None

    def plugin_configs(self) -> Optional[Dict[str, Any]]:
        return self.plugins


ConfigObject = Union[Route, Service, Upstream, Consumer, SSL, PluginConfig, GlobalRule]

KINDS: Dict[str, type] = {
    model.kind: model for model in (Route, Service, Upstream, Consumer, SSL, PluginConfig, GlobalRule)
}


def parse_object(kind: str, payload: Dict[str, Any]) -> ConfigObject:
    """Build the entity variant for ``kind`` from a raw mapping."""
    try:
        model = KINDS[kind]
    except KeyError:
        raise ValueError(f"unknown entity kind: {kind}") from None
    return model.model_validate(payload)
