"""Wiring of the indexing services.

Centralizes creation of the search client, handler directory, update
processor and indexer so entrypoints build everything from one config and an
explicit list of handlers.
"""

from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

import structlog

from ..common.config import BaseConfig, IndexerConfig, WorkerConfig
from ..common.events import EventPublisher, EventSubscriber, create_event_publisher, create_event_subscriber
from ..common.metrics import MetricsCollector
from .access import AccessPopulator, AnonymousAccessPopulator
from .base import SearchClient
from .entity_update_worker import EntityUpdateWorker
from .handlers import SearchHandler
from .indexer import DEFAULT_BATCH_SIZE, Indexer
from .opensearch import OpenSearchClient
from .registry import RegisteredSearchHandlers
from .transformers import DefaultIndexNameTransformer, IndexNameTransformer
from .update_processor import UpdateProcessor

logger = structlog.get_logger("indexing.factory")


@dataclass
class IndexingServices:
    """Everything an entrypoint needs to drive indexing."""
    client: SearchClient
    registered_handlers: RegisteredSearchHandlers
    update_processor: UpdateProcessor
    indexer: Indexer


def create_search_client(config: BaseConfig) -> SearchClient:
    """Create the OpenSearch client described by ``config``."""
    hosts = config.opensearch_hosts
    if not hosts:
        raise ValueError("SEARCH_OPENSEARCH_HOSTS must list at least one host")

    return OpenSearchClient(
        hosts=hosts,
        username=config.search_opensearch_username,
        password=config.search_opensearch_password,
        verify_certs=config.search_opensearch_verify_certs,
        ssl_assert_hostname=config.search_opensearch_ssl_assert_hostname,
        ssl_show_warn=config.search_opensearch_ssl_show_warn,
        timeout=config.search_opensearch_timeout,
    )


def build_indexing_services(
    config: BaseConfig,
    handlers: Iterable[SearchHandler],
    client: Optional[SearchClient] = None,
    access_populator: Optional[AccessPopulator] = None,
    name_transformer: Optional[IndexNameTransformer] = None,
    event_publisher: Optional[EventPublisher] = None,
    metrics: Optional[MetricsCollector] = None,
) -> IndexingServices:
    """Build the indexing services for a fixed set of handlers.

    Parameters
    - config: Connection, event and batching settings
    - handlers: Every handler this process serves; validated once here
    - client: Overrides the client built from ``config``
    - access_populator: Defaults to ``AnonymousAccessPopulator``
    - name_transformer: Defaults to ``DefaultIndexNameTransformer``
    - event_publisher: Notified after applied index swaps; built from
      ``search_redis_url`` when omitted and events are enabled
    - metrics: Overrides the process-wide collector
    """
    client = client or create_search_client(config)
    name_transformer = name_transformer or DefaultIndexNameTransformer()
    registered_handlers = RegisteredSearchHandlers(handlers)

    if event_publisher is None and config.search_events_enabled:
        event_publisher = create_event_publisher(config.search_redis_url, config.search_event_channel_prefix)

    batch_size = (
        config.search_populate_batch_size if isinstance(config, IndexerConfig) else DEFAULT_BATCH_SIZE
    )

    update_processor = UpdateProcessor(
        access_populator or AnonymousAccessPopulator(),
        client,
        name_transformer,
        registered_handlers,
        metrics=metrics,
    )
    indexer = Indexer(
        client,
        update_processor,
        name_transformer,
        batch_size=batch_size,
        event_publisher=event_publisher,
        metrics=metrics,
    )

    logger.info(
        "Indexing services built",
        env=config.search_env,
        handlers=len(registered_handlers.get_all()),
        batch_size=batch_size,
        events=event_publisher is not None
    )
    return IndexingServices(client, registered_handlers, update_processor, indexer)


def build_entity_update_worker(
    config: WorkerConfig,
    services: IndexingServices
) -> Tuple[EntityUpdateWorker, EventSubscriber]:
    """Build the entity update worker and the subscriber feeding it.

    The worker writes to the index selected by ``search_worker_index_suffix``
    and is attached to a subscriber listening on ``search_redis_url``.
    """
    subscriber = create_event_subscriber(config.search_redis_url, config.search_event_channel_prefix)
    worker = EntityUpdateWorker(
        services.registered_handlers,
        services.update_processor,
        index_suffix=config.search_worker_index_suffix,
    )
    worker.attach(subscriber)

    logger.info(
        "Entity update worker built",
        index_suffix=config.search_worker_index_suffix,
        channel_prefix=config.search_event_channel_prefix
    )
    return worker, subscriber
