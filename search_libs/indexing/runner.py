"""Process entrypoints for index rebuilds and the entity update worker.

Both read their settings from the environment unless a config is passed,
configure logging from it and build the services through ``factory``.
"""

from typing import List, Optional, Sequence

import structlog

from ..common.config import IndexerConfig, WorkerConfig
from ..common.logging import configure_logging_from_config
from .base import SearchClient
from .dto import IndexSwapResult
from .factory import build_entity_update_worker, build_indexing_services
from .handlers import HandlerCapability, SearchHandler

logger = structlog.get_logger("indexing.runner")


def run_rebuild(
    handlers: Sequence[SearchHandler],
    config: Optional[IndexerConfig] = None,
    client: Optional[SearchClient] = None,
    dry_run: bool = False,
) -> IndexSwapResult:
    """Rebuild the indices of every populatable handler and go live.

    Runs ``create`` and ``populate`` per handler, then one ``index_swap`` for
    all of them and finally ``clean``. With ``dry_run`` the working indices are
    still built but the swap is only planned and nothing is cleaned.
    """
    config = config or IndexerConfig()
    configure_logging_from_config("search-rebuild", config)

    services = build_indexing_services(config, handlers, client=client)
    indexer = services.indexer

    targets: List[SearchHandler] = [
        handler for handler in services.registered_handlers.get_all()
        if handler.can(HandlerCapability.ENUMERATE) and handler.can(HandlerCapability.TRANSFORM)
    ]

    for handler in targets:
        indexer.create(handler)
        indexer.populate(handler)

    result = indexer.index_swap(targets, dry_run=dry_run)
    if not dry_run:
        indexer.clean(targets)

    logger.info(
        "Rebuild finished",
        handlers=[handler.handler_key for handler in targets],
        dry_run=dry_run
    )
    return result


async def run_entity_update_worker(
    handlers: Sequence[SearchHandler],
    config: Optional[WorkerConfig] = None,
    client: Optional[SearchClient] = None,
) -> None:
    """Feed entity change events into the indices until cancelled."""
    config = config or WorkerConfig()
    configure_logging_from_config("search-entity-worker", config)

    services = build_indexing_services(config, handlers, client=client)
    _, subscriber = build_entity_update_worker(config, services)

    logger.info("Starting entity update worker", env=config.search_env)
    try:
        await subscriber.start_listening()
    finally:
        await subscriber.close()
        logger.info("Entity update worker stopped")
