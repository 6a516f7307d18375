"""Turns change notifications into a single bulk write.

Used for both incremental updates (empty suffix, live index) and index
population (``_new`` suffix, working index).
"""

import time
from collections import Counter, OrderedDict
from dataclasses import replace
from typing import List, Optional, Sequence

import structlog

from ..common.metrics import MetricsCollector, get_metrics_collector
from .access import AccessPopulator
from .base import SearchClient
from .dto import DocumentUpdate, HandlerObjectForChange, IndexAction, ObjectForChange
from .registry import RegisteredSearchHandlers
from .transformers import IndexNameTransformer

logger = structlog.get_logger("indexing.update_processor")


class UpdateProcessor:
    """Resolves changes to handlers, transforms them and bulk writes the result.

    Parameters
    - access_populator: Enriches every update body before it is written
    - client: Search client used for the bulk write
    - name_transformer: Resolves the root index of each object
    - registered_handlers: Directory used to resolve handler keys
    - metrics: Optional collector; defaults to the process-wide one
    """

    def __init__(
        self,
        access_populator: AccessPopulator,
        client: SearchClient,
        name_transformer: IndexNameTransformer,
        registered_handlers: RegisteredSearchHandlers,
        metrics: Optional[MetricsCollector] = None
    ):
        self.access_populator = access_populator
        self.client = client
        self.name_transformer = name_transformer
        self.registered_handlers = registered_handlers
        self.metrics = metrics or get_metrics_collector()

    def process(self, index_suffix: str, changes: Sequence[HandlerObjectForChange]) -> List[IndexAction]:
        """Write the document actions produced by ``changes``.

        No request is sent when nothing produced an action.

        Raises
        - HandlerNotFoundError: a change names an unregistered handler key
        - SearchBackendError: the bulk write failed
        """
        grouped: "OrderedDict[str, List[ObjectForChange]]" = OrderedDict()
        for change in changes:
            grouped.setdefault(change.handler_key, []).append(change.object_for_change)

        actions: List[IndexAction] = []

        for handler_key, objects in grouped.items():
            handler = self.registered_handlers.get_transformable_handler_by_key(handler_key)
            handler.prefill_items(objects)

            for object_for_change in objects:
                document_action = handler.transform(object_for_change)
                if document_action is None:
                    continue

                if isinstance(document_action, DocumentUpdate):
                    document_action = replace(
                        document_action,
                        body=self.access_populator.populate(document_action.body)
                    )

                index = self.name_transformer.transform_index_name(handler, object_for_change)
                actions.append(IndexAction(document_action, f"{index}{index_suffix}"))

        if not actions:
            logger.debug("No document actions produced", changes=len(changes))
            return actions

        start_time = time.time()
        self.client.bulk(actions)

        documents_by_index = Counter(action.index for action in actions)
        self.metrics.record_bulk(dict(documents_by_index), time.time() - start_time)
        logger.info(
            "Document actions written",
            actions=len(actions),
            indices=sorted(documents_by_index),
            handlers=list(grouped)
        )

        return actions
