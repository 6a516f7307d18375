"""Worker feeding entity change notifications into the update processor.

Change detection lives in the persistence layer; it publishes
``search.entities.changed.v1`` events carrying the changed entities. The
worker matches each change against the handler subscriptions and submits the
resulting work to the update processor in one call per event.

The subscriber runs ``handle_event`` in a worker thread. An event whose
processing fails is logged by the subscriber and not retried; pub/sub keeps
no backlog, so the caller re-drives it by republishing the changes or by
rebuilding the affected indices.
"""

from typing import Any, Dict, Iterable, List

import structlog

from ..common.events import EventSubscriber, EventType
from .dto import (
    ChangedEntity,
    ChangeSubscription,
    HandlerObjectForChange,
    IndexAction,
    ObjectForChange,
    ObjectForDelete,
    ObjectForUpdate,
)
from .registry import RegisteredSearchHandlers
from .update_processor import UpdateProcessor

logger = structlog.get_logger("indexing.entity_update_worker")


class EntityUpdateWorker:
    """Resolves entity changes to handler work and processes it.

    Parameters
    - registered_handlers: Source of the change subscriptions
    - update_processor: Receives the resolved work
    - index_suffix: Suffix of the index written to; empty for the live index
    """

    def __init__(
        self,
        registered_handlers: RegisteredSearchHandlers,
        update_processor: UpdateProcessor,
        index_suffix: str = ""
    ):
        self.registered_handlers = registered_handlers
        self.update_processor = update_processor
        self.index_suffix = index_suffix

    def attach(self, subscriber: EventSubscriber) -> None:
        """Handle entities changed events received by ``subscriber``."""
        subscriber.subscribe(EventType.ENTITIES_CHANGED, self.handle_event)

    def handle_event(self, payload: Dict[str, Any]) -> List[IndexAction]:
        changes = [ChangedEntity.from_dict(change) for change in payload.get("changes", [])]
        return self.handle(changes)

    def handle(self, changes: Iterable[ChangedEntity]) -> List[IndexAction]:
        """Process ``changes`` against the live index."""
        subscriptions = self.registered_handlers.get_subscriptions_grouped_by_class()
        work: List[HandlerObjectForChange] = []
        received = 0

        for change in changes:
            received += 1
            for handler_subscription in subscriptions.get(change.class_name, []):
                subscription = handler_subscription.subscription
                if not self._matches(subscription, change):
                    continue

                for object_for_change in self._objects_for(subscription, change):
                    work.append(HandlerObjectForChange(handler_subscription.handler_key, object_for_change))

        if not work:
            logger.debug("No subscribed handlers for changes", changes=received)
            return []

        logger.info("Processing entity changes", changes=received, work_items=len(work))
        return self.update_processor.process(self.index_suffix, work)

    @staticmethod
    def _matches(subscription: ChangeSubscription, change: ChangedEntity) -> bool:
        if change.deleted or subscription.properties is None or change.changed_properties is None:
            return True
        return bool(subscription.properties & change.changed_properties)

    @staticmethod
    def _objects_for(subscription: ChangeSubscription, change: ChangedEntity) -> List[ObjectForChange]:
        if subscription.transform is not None:
            return list(subscription.transform(change))
        if change.deleted:
            return [ObjectForDelete(change.class_name, dict(change.ids))]
        return [ObjectForUpdate(change.class_name, dict(change.ids))]
