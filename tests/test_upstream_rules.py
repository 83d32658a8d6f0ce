import pytest

from gwvalidate.entity.models import Consumer, Route, SSL, Service, Upstream, UpstreamDef
from gwvalidate.schema.registry import SchemaRegistry
from gwvalidate.validate.catalog import HASH_HEADER_SCHEMA, HASH_VARS_SCHEMA, SchemaCatalog
from gwvalidate.validate.errors import MissingSchemaDefinition, SemanticViolation, StructuralViolation
from gwvalidate.validate.upstream import check_semantics, check_upstream


def test_absent_upstream_is_valid(catalog):
    check_upstream(None, catalog)


def test_node_pass_host_requires_single_node(catalog):
    upstream = UpstreamDef(pass_host="node", nodes={"10.0.0.1:80": 1, "10.0.0.2:80": 1})
    with pytest.raises(SemanticViolation) as excinfo:
        check_upstream(upstream, catalog)
    assert excinfo.value.rule == "pass_host"
    assert str(excinfo.value) == "only a single node is supported in node pass-host mode"

    check_upstream(UpstreamDef(pass_host="node", nodes=[{"host": "10.0.0.1", "port": 80, "weight": 1}]), catalog)
    check_upstream(UpstreamDef(pass_host="node"), catalog)


def test_malformed_node_entries_are_semantic_violations(catalog):
    for nodes in ([{"host": "a", "port": [80]}], [{"host": "a", "port": 80, "weight": [1]}], {"a:80": [1]}):
        with pytest.raises(SemanticViolation) as excinfo:
            check_upstream(UpstreamDef(pass_host="node", nodes=nodes), catalog)
        assert excinfo.value.rule == "nodes"


def test_node_pass_host_rejects_empty_node_list(catalog):
    with pytest.raises(SemanticViolation):
        check_upstream(UpstreamDef(pass_host="node", nodes=[]), catalog)


def test_rewrite_requires_upstream_host(catalog):
    with pytest.raises(SemanticViolation) as excinfo:
        check_upstream(UpstreamDef(pass_host="rewrite", upstream_host=""), catalog)
    assert str(excinfo.value) == "upstream_host must be set when pass_host is rewrite"
    check_upstream(UpstreamDef(pass_host="rewrite", upstream_host="internal.example.com"), catalog)


def test_non_chash_upstreams_skip_hash_rules(catalog):
    upstream = UpstreamDef(type="roundrobin", hash_on="bogus", key="")
    check_upstream(upstream, catalog)
    assert upstream.hash_on == "bogus"

    untyped = UpstreamDef(hash_on="")
    check_upstream(untyped, catalog)
    assert untyped.hash_on == ""


@pytest.mark.parametrize("hash_on", [None, ""])
def test_empty_hash_on_defaults_to_vars(catalog, hash_on):
    upstream = UpstreamDef(type="chash", hash_on=hash_on, key="$remote_addr")
    check_upstream(upstream, catalog)
    assert upstream.hash_on == "vars"
    check_upstream(upstream, catalog)
    assert upstream.hash_on == "vars"


def test_consumer_hashing_needs_no_key(catalog):
    check_upstream(UpstreamDef(type="chash", hash_on="consumer"), catalog)


@pytest.mark.parametrize("hash_on", ["vars", "header", "cookie"])
def test_missing_key(catalog, hash_on):
    with pytest.raises(SemanticViolation) as excinfo:
        check_upstream(UpstreamDef(type="chash", hash_on=hash_on, key=""), catalog)
    assert str(excinfo.value) == "missing key"
    assert excinfo.value.rule == "key"


def test_invalid_hash_on_aborts(catalog):
    with pytest.raises(SemanticViolation) as excinfo:
        check_upstream(UpstreamDef(type="chash", hash_on="uri_args", key="x"), catalog)
    assert excinfo.value.rule == "hash_on"
    assert "uri_args" in str(excinfo.value)


def test_key_is_checked_against_selected_schema(catalog):
    check_upstream(UpstreamDef(type="chash", hash_on="vars", key="arg_user"), catalog)
    check_upstream(UpstreamDef(type="chash", hash_on="header", key="X-User-Id"), catalog)
    check_upstream(UpstreamDef(type="chash", hash_on="cookie", key="session_id"), catalog)

    with pytest.raises(StructuralViolation) as excinfo:
        check_upstream(UpstreamDef(type="chash", hash_on="vars", key="not a var"), catalog)
    assert HASH_VARS_SCHEMA in str(excinfo.value)
    assert len(excinfo.value.violations) == 1

    with pytest.raises(StructuralViolation) as excinfo:
        check_upstream(UpstreamDef(type="chash", hash_on="header", key="bad header!"), catalog)
    assert HASH_HEADER_SCHEMA in str(excinfo.value)


def test_missing_hash_key_schema_is_reported(schema_document):
    del schema_document["main"]["upstream_hash_header_schema"]
    catalog = SchemaCatalog.from_registry(SchemaRegistry.from_mapping(schema_document))
    with pytest.raises(MissingSchemaDefinition) as excinfo:
        check_upstream(UpstreamDef(type="chash", hash_on="cookie", key="sid"), catalog)
    assert excinfo.value.path == HASH_HEADER_SCHEMA
    check_upstream(UpstreamDef(type="chash", hash_on="vars", key="uri"), catalog)


def test_dispatch_by_entity_kind(catalog):
    bad = {"pass_host": "rewrite"}
    for model in (Route, Service):
        with pytest.raises(SemanticViolation):
            check_semantics(model(upstream=bad), catalog)
    with pytest.raises(SemanticViolation):
        check_semantics(Upstream(**bad), catalog)

    check_semantics(Route(uri="/no-upstream"), catalog)
    check_semantics(Consumer(username="jack"), catalog)
    check_semantics(SSL(snis=["example.com"]), catalog)
