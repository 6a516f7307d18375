"""Tests for indexing service wiring."""

import pytest

from search_libs.common.config import IndexerConfig, WorkerConfig
from search_libs.common.events import EventPublisher, EventType
from search_libs.indexing.base import HandlerConfigurationError
from search_libs.indexing.factory import (
    build_entity_update_worker,
    build_indexing_services,
    create_search_client,
)
from search_libs.indexing.indexer import DEFAULT_BATCH_SIZE
from search_libs.indexing.opensearch import OpenSearchClient
from tests.stubs import ClientStub, HandlerStub


def test_build_indexing_services_shares_collaborators():
    client = ClientStub()
    config = IndexerConfig(search_populate_batch_size=7, search_events_enabled=False)

    services = build_indexing_services(config, [HandlerStub()], client=client)

    assert services.client is client
    assert services.indexer.client is client
    assert services.indexer.update_processor is services.update_processor
    assert services.indexer.batch_size == 7
    assert services.update_processor.registered_handlers is services.registered_handlers
    assert services.registered_handlers.get_transformable_handler_by_key("valid-handler").index_name == "valid"


def test_build_indexing_services_validates_handlers():
    with pytest.raises(HandlerConfigurationError):
        build_indexing_services(IndexerConfig(), [HandlerStub(), HandlerStub()], client=ClientStub())


def test_create_search_client():
    config = IndexerConfig(search_opensearch_hosts="http://localhost:9200")

    client = create_search_client(config)

    assert isinstance(client, OpenSearchClient)
    assert client.hosts == ["http://localhost:9200"]


def test_create_search_client_requires_hosts():
    with pytest.raises(ValueError, match="SEARCH_OPENSEARCH_HOSTS"):
        create_search_client(IndexerConfig(search_opensearch_hosts=" , "))


def test_event_publisher_built_from_config():
    """Swaps are announced on the configured Redis channel prefix."""
    config = IndexerConfig(search_redis_url="redis://events:6379/1", search_event_channel_prefix="catalog")

    services = build_indexing_services(config, [HandlerStub()], client=ClientStub())

    assert isinstance(services.indexer.event_publisher, EventPublisher)
    assert services.indexer.event_publisher.channel_prefix == "catalog"


def test_event_publisher_disabled():
    config = IndexerConfig(search_events_enabled=False)

    services = build_indexing_services(config, [HandlerStub()], client=ClientStub())

    assert services.indexer.event_publisher is None


def test_worker_config_uses_default_batch_size():
    services = build_indexing_services(WorkerConfig(search_events_enabled=False), [HandlerStub()], client=ClientStub())

    assert services.indexer.batch_size == DEFAULT_BATCH_SIZE


def test_build_entity_update_worker():
    """The worker writes to the configured suffix and listens for entity changes."""
    config = WorkerConfig(
        search_worker_index_suffix="_new",
        search_event_channel_prefix="catalog",
        search_events_enabled=False,
    )
    services = build_indexing_services(config, [HandlerStub()], client=ClientStub())

    worker, subscriber = build_entity_update_worker(config, services)

    assert worker.index_suffix == "_new"
    assert worker.update_processor is services.update_processor
    assert subscriber.channel_prefix == "catalog"
    assert subscriber.handlers[EventType.ENTITIES_CHANGED.value] == [worker.handle_event]
