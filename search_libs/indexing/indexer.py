"""Index lifecycle management.

Implements blue/green reindexing against a search engine whose only
consistency guarantees are per request:

- ``create`` builds an empty working index reachable via ``<root>_new``
- ``populate`` streams a handler's objects into the working index
- ``index_swap`` points ``<root>`` at the working index and drops ``<root>_new``
- ``clean`` deletes physical indices of registered handlers no alias uses

Alias and index listings are fetched at the start of every operation and
never cached. Multi-handler operations build their whole plan before the
first mutation, so a planning error leaves the cluster untouched. A failure
during the mutation phase is not rolled back; rerunning ``create``/``clean``
and ``index_swap`` reconciles.
"""

import uuid
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Sequence

import structlog

from ..common.events import EventPublisher
from ..common.metrics import MetricsCollector, get_metrics_collector, measure_time
from .base import AliasNotFoundError, SearchClient, UnsupportedCapabilityError
from .dto import AliasMove, HandlerObjectForChange, IndexSwapResult
from .handlers import HandlerCapability, SearchHandler
from .transformers import IndexNameTransformer
from .update_processor import UpdateProcessor

logger = structlog.get_logger("indexing.indexer")

NEW_INDEX_SUFFIX = "_new"
DEFAULT_BATCH_SIZE = 100
INDEX_TIMESTAMP_FORMAT = "%Y%m%d%H%M%S%f"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Indexer:
    """Owns the create / populate / swap / clean cycle of handler indices.

    Parameters
    - client: Search client all backend calls go through
    - update_processor: Pipeline population batches are handed to
    - name_transformer: Resolves handler root index names
    - batch_size: Default population batch size
    - clock: Returns the current time, used to name physical indices
    - event_publisher: Optional publisher notified after an applied swap
    - metrics: Optional collector; defaults to the process-wide one
    """

    def __init__(
        self,
        client: SearchClient,
        update_processor: UpdateProcessor,
        name_transformer: IndexNameTransformer,
        batch_size: int = DEFAULT_BATCH_SIZE,
        clock: Optional[Callable[[], datetime]] = None,
        event_publisher: Optional[EventPublisher] = None,
        metrics: Optional[MetricsCollector] = None
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")

        self.client = client
        self.update_processor = update_processor
        self.name_transformer = name_transformer
        self.batch_size = batch_size
        self.clock = clock or _utcnow
        self.event_publisher = event_publisher
        self.metrics = metrics or get_metrics_collector()

    def create(self, handler: SearchHandler) -> List[str]:
        """Prepare a fresh, empty working index for every root of ``handler``.

        A working index left behind by an aborted build is deleted first. The
        live ``<root>`` alias is not touched.

        Returns the names of the physical indices created.
        """
        created = []

        for root in self.name_transformer.transform_index_names(handler):
            new_alias = f"{root}{NEW_INDEX_SUFFIX}"

            for alias in self.client.get_aliases():
                if alias["name"] == new_alias:
                    logger.info(
                        "Deleting previous working index",
                        alias=new_alias,
                        index=alias["index"]
                    )
                    self.client.delete_index(alias["index"])
                    self.metrics.record_index_operation("delete_index")

            self.client.delete_alias([new_alias])
            self.metrics.record_index_operation("delete_alias")

            index_name = self._physical_index_name(root)
            self.client.create_index(
                index_name,
                mappings=handler.get_mappings(),
                settings=handler.get_settings()
            )
            self.metrics.record_index_operation("create_index")

            self.client.create_alias(index_name, new_alias)
            self.metrics.record_index_operation("create_alias")

            logger.info("Working index created", index=index_name, alias=new_alias)
            created.append(index_name)

        return created

    def _physical_index_name(self, root: str) -> str:
        """``<root>_<UTC timestamp with microseconds>_<random token>``."""
        return f"{root}_{self.clock().strftime(INDEX_TIMESTAMP_FORMAT)}_{uuid.uuid4().hex[:8]}"

    @measure_time("populate")
    def populate(self, handler: SearchHandler, batch_size: Optional[int] = None) -> int:
        """Write every object of ``handler`` into its working index.

        Objects are handed to the update processor in batches of
        ``batch_size``; the final partial batch is written too. A failing
        batch aborts population.

        Returns the number of objects handed over.
        """
        size = self.batch_size if batch_size is None else batch_size
        if size < 1:
            raise ValueError("batch_size must be at least 1")

        for capability in (HandlerCapability.ENUMERATE, HandlerCapability.TRANSFORM):
            if not handler.can(capability):
                raise UnsupportedCapabilityError(
                    f"Handler '{handler.handler_key}' cannot be populated without '{capability.value}'"
                )

        batch: List[HandlerObjectForChange] = []
        total = 0
        batches = 0

        for object_for_update in handler.get_fill_iterable():
            batch.append(HandlerObjectForChange(handler.handler_key, object_for_update))

            if len(batch) >= size:
                self._write_batch(handler, batch)
                total += len(batch)
                batches += 1
                batch = []

        if batch:
            self._write_batch(handler, batch)
            total += len(batch)
            batches += 1

        logger.info(
            "Index populated",
            handler=handler.handler_key,
            objects=total,
            batches=batches,
            batch_size=size
        )
        return total

    def _write_batch(self, handler: SearchHandler, batch: List[HandlerObjectForChange]) -> None:
        self.update_processor.process(NEW_INDEX_SUFFIX, batch)
        self.metrics.record_populate_batch(handler.handler_key)

    @measure_time("index_swap")
    def index_swap(self, handlers: Sequence[SearchHandler], dry_run: bool = False) -> IndexSwapResult:
        """Point every ``<root>`` alias at the index behind ``<root>_new``.

        The plan covers all handlers before anything changes. With
        ``dry_run`` the plan is returned and the backend is left untouched.

        Raises
        - AliasNotFoundError: a handler has no ``<root>_new`` alias; nothing
          is swapped for any handler
        """
        bound: Dict[str, str] = {}
        for alias in self.client.get_aliases():
            bound.setdefault(alias["name"], alias["index"])

        aliases_to_move: List[AliasMove] = []
        aliases_to_delete: List[str] = []

        for handler in handlers:
            for root in self.name_transformer.transform_index_names(handler):
                new_alias = f"{root}{NEW_INDEX_SUFFIX}"
                index = bound.get(new_alias)
                if index is None:
                    raise AliasNotFoundError(f"Could not find expected alias '{new_alias}'")

                aliases_to_move.append(AliasMove(root, index))
                aliases_to_delete.append(new_alias)

        if dry_run:
            logger.info("Index swap planned", aliases=[move.to_dict() for move in aliases_to_move], dry_run=True)
            return IndexSwapResult.planned(aliases_to_move, aliases_to_delete)

        bindings = [move.to_dict() for move in aliases_to_move]
        self.client.swap_aliases(bindings, aliases_to_delete)
        self.metrics.record_index_operation("swap_alias", len(aliases_to_move))
        logger.info("Index swap applied", aliases=bindings, deleted=aliases_to_delete)

        if self.event_publisher is not None:
            self.event_publisher.publish_index_swapped(bindings)

        return IndexSwapResult.applied(aliases_to_move, aliases_to_delete)

    @measure_time("clean")
    def clean(self, handlers: Sequence[SearchHandler]) -> List[str]:
        """Delete orphaned physical indices of ``handlers``.

        An index is orphaned when its name starts with a handler's root name
        and no alias references it. Indices outside every root family are
        left alone whatever their alias state.

        Returns the deleted index names in listing order.
        """
        indices = self.client.get_indices()
        in_use = {alias["index"] for alias in self.client.get_aliases()}

        roots = [
            root
            for handler in handlers
            for root in self.name_transformer.transform_index_names(handler)
        ]

        orphaned = []
        for index in indices:
            name = index["name"]
            if name in in_use or name in orphaned:
                continue
            if any(name.startswith(root) for root in roots):
                orphaned.append(name)

        for name in orphaned:
            self.client.delete_index(name)
            self.metrics.record_index_operation("delete_index")

        logger.info("Orphaned indices deleted", indices=orphaned, roots=roots)
        return orphaned
