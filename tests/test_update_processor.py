"""Tests for the update processor."""

import pytest

from search_libs.common.metrics import MetricsCollector
from search_libs.indexing.access import AccessPopulator, AnonymousAccessPopulator
from search_libs.indexing.base import HandlerNotFoundError
from search_libs.indexing.dto import (
    DocumentDelete,
    DocumentUpdate,
    HandlerObjectForChange,
    IndexAction,
    ObjectForDelete,
    ObjectForUpdate,
)
from search_libs.indexing.registry import RegisteredSearchHandlers
from search_libs.indexing.transformers import DefaultIndexNameTransformer
from search_libs.indexing.update_processor import UpdateProcessor
from tests.stubs import ClientStub, RegisteredSearchHandlersStub, TransformableHandlerStub

ANONYMOUS = {"_access_tokens": ["anonymous"]}


def get_update_processor(client, registered_handlers, access_populator=None):
    """Build an update processor with default collaborators."""
    return UpdateProcessor(
        access_populator or AnonymousAccessPopulator(),
        client,
        DefaultIndexNameTransformer(),
        registered_handlers,
        metrics=MetricsCollector("test"),
    )


def change(handler_key="handler", entity_id=7):
    return HandlerObjectForChange(handler_key, ObjectForUpdate("stdClass", {"id": entity_id}))


def test_actions_sent_to_bulk():
    """A produced action is written with the suffixed index name."""
    action = DocumentUpdate("docu-id", {"title": "document-body"})
    client = ClientStub()
    handler = TransformableHandlerStub("index", [action])
    processor = get_update_processor(client, RegisteredSearchHandlersStub([handler]))

    processor.process("-suffix", [change()])

    expected = IndexAction(DocumentUpdate("docu-id", {"title": "document-body", **ANONYMOUS}), "index-suffix")
    assert client.bulk_calls == [{"actions": [expected]}]


def test_multi_handler_actions_sent_to_bulk():
    """Actions of several handlers go out in one bulk call, in encounter order."""
    action = DocumentUpdate("docu-id", {"body": 1})
    action2 = DocumentUpdate("docu-id2", {"body": 2})
    client = ClientStub()
    handler = TransformableHandlerStub("index", [action])
    handler2 = TransformableHandlerStub("index2", [action2], handler_key="handler2")
    registered_handlers = RegisteredSearchHandlersStub([handler, handler2])
    processor = get_update_processor(client, registered_handlers)

    processor.process("-suffix", [change("handler"), change("handler2")])

    assert client.bulk_calls == [{"actions": [
        IndexAction(DocumentUpdate("docu-id", {"body": 1, **ANONYMOUS}), "index-suffix"),
        IndexAction(DocumentUpdate("docu-id2", {"body": 2, **ANONYMOUS}), "index2-suffix"),
    ]}]
    assert registered_handlers.requested_keys == ["handler", "handler2"]


def test_changes_grouped_by_handler_key():
    """Interleaved changes are grouped per key, keeping encounter order."""
    client = ClientStub()
    handler = TransformableHandlerStub("first", [DocumentUpdate("1"), DocumentUpdate("3")], handler_key="a")
    handler2 = TransformableHandlerStub("second", [DocumentUpdate("2")], handler_key="b")
    registered_handlers = RegisteredSearchHandlersStub([handler, handler2])
    processor = get_update_processor(client, registered_handlers)

    actions = processor.process("", [change("a", 1), change("b", 2), change("a", 3)])

    assert [(a.index, a.document_action.document_id) for a in actions] == [
        ("first", "1"), ("first", "3"), ("second", "2"),
    ]
    assert registered_handlers.requested_keys == ["a", "b"]
    assert [[obj.ids["id"] for obj in group] for group in handler.prefilled] == [[1, 3]]


def test_no_actions_generated():
    """A handler answering ``None`` produces no bulk call at all."""
    client = ClientStub()
    handler = TransformableHandlerStub("index", [None])
    processor = get_update_processor(client, RegisteredSearchHandlersStub([handler]))

    actions = processor.process("", [change()])

    assert actions == []
    assert client.bulk_calls == []


def test_no_updates():
    """No changes means no backend call."""
    client = ClientStub()
    processor = get_update_processor(client, RegisteredSearchHandlersStub())

    processor.process("", [])

    assert client.bulk_calls == []
    assert client.calls == []


def test_delete_actions_skip_access_population():
    """Deletes carry no body and are written as is."""
    client = ClientStub()
    handler = TransformableHandlerStub("index", [DocumentDelete("gone")])
    processor = get_update_processor(client, RegisteredSearchHandlersStub([handler]))

    processor.process("", [HandlerObjectForChange("handler", ObjectForDelete("stdClass", {"id": 1}))])

    assert client.bulk_calls == [{"actions": [IndexAction(DocumentDelete("gone"), "index")]}]


def test_custom_access_populator_applied():
    """Every update body passes through the configured populator."""

    class TenantAccessPopulator(AccessPopulator):
        def populate(self, body):
            return {**body, "_access_tokens": ["tenant-1"]}

    client = ClientStub()
    handler = TransformableHandlerStub("index", [DocumentUpdate("1", {"a": 1})])
    processor = get_update_processor(
        client,
        RegisteredSearchHandlersStub([handler]),
        access_populator=TenantAccessPopulator(),
    )

    processor.process("", [change()])

    body = client.bulk_calls[0]["actions"][0].document_action.body
    assert body == {"a": 1, "_access_tokens": ["tenant-1"]}


def test_unknown_handler_key_is_fatal():
    """Changes for an unregistered handler raise before anything is written."""
    client = ClientStub()
    processor = get_update_processor(client, RegisteredSearchHandlers([]))

    with pytest.raises(HandlerNotFoundError, match="'missing'"):
        processor.process("", [change("missing")])

    assert client.bulk_calls == []


def test_bulk_failure_propagates():
    """Backend errors surface to the caller."""
    client = ClientStub(fail_on=["bulk"])
    handler = TransformableHandlerStub("index", [DocumentUpdate("1", {})])
    processor = get_update_processor(client, RegisteredSearchHandlersStub([handler]))

    with pytest.raises(RuntimeError):
        processor.process("", [change()])
