import copy
from pathlib import Path

import orjson
import pytest

from gwvalidate.schema.registry import SchemaRegistry
from gwvalidate.validate.catalog import SchemaCatalog

SCHEMA_PATH = Path(__file__).resolve().parent.parent / "config" / "schema.json"


@pytest.fixture()
def schema_document():
    """A fresh copy of the shipped schema document, safe to mutate."""
    return copy.deepcopy(orjson.loads(SCHEMA_PATH.read_bytes()))


@pytest.fixture()
def registry(schema_document):
    return SchemaRegistry.from_mapping(schema_document)


@pytest.fixture()
def catalog(registry):
    return SchemaCatalog.from_registry(registry)
