"""Tests for handlers, index name transformation and access population."""

import pytest

from search_libs.indexing.access import AnonymousAccessPopulator
from search_libs.indexing.base import UnsupportedCapabilityError
from search_libs.indexing.dto import (
    ChangeSubscription,
    DocumentDelete,
    DocumentUpdate,
    ObjectForDelete,
    ObjectForUpdate,
)
from search_libs.indexing.handlers import HandlerCapability
from search_libs.indexing.transformers import DefaultIndexNameTransformer
from tests.stubs import EntityDataSourceStub, EntityHandlerStub, EntityStub, SchemaOnlyHandlerStub


@pytest.fixture
def data_source():
    return EntityDataSourceStub([
        EntityStub(1, "first"),
        EntityStub(2, "second"),
        EntityStub(3, "hidden", searchable=False),
    ])


@pytest.fixture
def handler(data_source):
    return EntityHandlerStub(data_source)


def test_entity_handler_declares_all_capabilities(handler):
    assert handler.can(HandlerCapability.TRANSFORM)
    assert handler.can(HandlerCapability.ENUMERATE)
    assert handler.can(HandlerCapability.SUBSCRIBE)


def test_fill_iterable_enumerates_every_entity(handler):
    objects = list(handler.get_fill_iterable())

    assert objects == [
        ObjectForUpdate("EntityStub", {"id": 1}),
        ObjectForUpdate("EntityStub", {"id": 2}),
        ObjectForUpdate("EntityStub", {"id": 3}),
    ]


def test_prefill_uses_single_lookup(handler, data_source):
    """A batch of changes is loaded with one data source call."""
    changes = [ObjectForUpdate("EntityStub", {"id": 1}), ObjectForUpdate("EntityStub", {"id": 2})]

    handler.prefill_items(changes)

    assert data_source.lookups == [[1, 2]]
    assert [change.object.name for change in changes] == ["first", "second"]


def test_prefill_skips_deletes_and_loaded_objects(handler, data_source):
    loaded = ObjectForUpdate("EntityStub", {"id": 1}, object=EntityStub(1, "cached"))

    handler.prefill_items([loaded, ObjectForDelete("EntityStub", {"id": 2})])

    assert data_source.lookups == []
    assert loaded.object.name == "cached"


def test_transform_builds_update(handler):
    change = ObjectForUpdate("EntityStub", {"id": 1})
    handler.prefill_items([change])

    assert handler.transform(change) == DocumentUpdate("1", {"name": "first"})


def test_transform_deleted_entity(handler):
    assert handler.transform(ObjectForDelete("EntityStub", {"id": 1})) == DocumentDelete("1")


def test_transform_vanished_entity_becomes_delete(handler):
    """An entity gone by the time it is loaded is removed from the index."""
    change = ObjectForUpdate("EntityStub", {"id": 99})
    handler.prefill_items([change])

    assert handler.transform(change) == DocumentDelete("99")


def test_transform_skips_unsearchable_entity(handler):
    change = ObjectForUpdate("EntityStub", {"id": 3})
    handler.prefill_items([change])

    assert handler.transform(change) is None


def test_transform_without_search_id(handler):
    assert handler.transform(ObjectForUpdate("EntityStub", {})) is None


def test_entity_handler_subscribes_to_its_class(handler):
    assert handler.get_subscriptions() == [ChangeSubscription("EntityStub")]


@pytest.mark.parametrize("call", [
    lambda handler: list(handler.get_fill_iterable()),
    lambda handler: handler.transform(ObjectForUpdate("stdClass", {"id": 1})),
    lambda handler: handler.get_subscriptions(),
])
def test_undeclared_capability_raises(call):
    with pytest.raises(UnsupportedCapabilityError, match="SchemaOnlyHandlerStub"):
        call(SchemaOnlyHandlerStub())


def test_prefill_is_optional():
    assert SchemaOnlyHandlerStub().prefill_items([ObjectForUpdate("stdClass", {"id": 1})]) is None


def test_default_transformer_lower_cases_root(handler):
    transformer = DefaultIndexNameTransformer()

    assert transformer.transform_index_names(handler) == ["entities"]
    assert transformer.transform_index_name(handler, ObjectForUpdate("EntityStub", {"id": 1})) == "entities"


def test_anonymous_access_populator_does_not_mutate():
    body = {"name": "first"}

    populated = AnonymousAccessPopulator().populate(body)

    assert populated == {"name": "first", "_access_tokens": ["anonymous"]}
    assert body == {"name": "first"}
