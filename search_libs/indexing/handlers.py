"""Search handler abstraction.

A search handler owns one root index: it declares the index schema and,
depending on its capabilities, enumerates the objects to populate, turns
changed objects into document actions and subscribes to entity changes.

Capabilities are declared up front in ``capabilities`` so the handler
directory can partition handlers when it is built instead of probing them at
call time. Calling a method of an undeclared capability raises
``UnsupportedCapabilityError``.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, Iterator, List, Optional, Sequence

import structlog

from .base import UnsupportedCapabilityError
from .data_source import EntityDataSource
from .dto import (
    ChangeSubscription,
    DocumentAction,
    DocumentDelete,
    DocumentUpdate,
    ObjectForChange,
    ObjectForDelete,
    ObjectForUpdate,
)

logger = structlog.get_logger("indexing.handlers")


class HandlerCapability(str, Enum):
    """Optional behaviours a handler may provide."""
    TRANSFORM = "transform"
    ENUMERATE = "enumerate"
    SUBSCRIBE = "subscribe"


class SearchHandler(ABC):
    """Base class for every search handler.

    Subclasses set ``handler_key``, ``index_name`` and ``capabilities`` and
    override the methods of the capabilities they declare.
    """

    handler_key: str = ""
    index_name: str = ""
    capabilities: FrozenSet[HandlerCapability] = frozenset()

    @abstractmethod
    def get_mappings(self) -> Dict[str, Any]:
        """Index mappings applied when the index is created."""
        pass

    @abstractmethod
    def get_settings(self) -> Dict[str, Any]:
        """Index settings applied when the index is created."""
        pass

    def can(self, capability: HandlerCapability) -> bool:
        return capability in self.capabilities

    def get_fill_iterable(self) -> Iterable[ObjectForUpdate]:
        """Lazily yield every object that belongs in a freshly built index."""
        raise self._unsupported(HandlerCapability.ENUMERATE)

    def prefill_items(self, changes: Sequence[ObjectForChange]) -> None:
        """Load the subjects of ``changes`` in bulk before they are transformed."""
        return None

    def transform(self, change: ObjectForChange) -> Optional[DocumentAction]:
        """Turn a changed object into a document action, or ``None`` to skip it."""
        raise self._unsupported(HandlerCapability.TRANSFORM)

    def get_search_id(self, change: ObjectForChange) -> Optional[str]:
        """Stable document id for ``change``."""
        raise self._unsupported(HandlerCapability.TRANSFORM)

    def get_subscriptions(self) -> List[ChangeSubscription]:
        """Entity classes whose changes this handler reindexes."""
        raise self._unsupported(HandlerCapability.SUBSCRIBE)

    def _unsupported(self, capability: HandlerCapability) -> UnsupportedCapabilityError:
        return UnsupportedCapabilityError(
            f"Handler '{self.handler_key or type(self).__name__}' "
            f"does not support '{capability.value}'"
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(key={self.handler_key!r}, index={self.index_name!r})"


class EntitySearchHandler(SearchHandler):
    """Handler indexing one persisted entity class.

    Enumerates every id of ``entity_class`` through the data source, loads the
    entities of a change batch with a single bulk lookup and answers deleted
    or vanished entities with a delete action. Subclasses only build the
    document body.
    """

    entity_class: str = ""
    id_field: str = "id"
    capabilities = frozenset({
        HandlerCapability.TRANSFORM,
        HandlerCapability.ENUMERATE,
        HandlerCapability.SUBSCRIBE,
    })

    def __init__(self, data_source: EntityDataSource):
        self.data_source = data_source

    @abstractmethod
    def build_document(self, entity: Any) -> Optional[Dict[str, Any]]:
        """Document body for ``entity``, or ``None`` if it must not be indexed."""
        pass

    def get_fill_iterable(self) -> Iterator[ObjectForUpdate]:
        for ids in self.data_source.iter_all_ids(self.entity_class):
            yield ObjectForUpdate(self.entity_class, dict(ids))

    def prefill_items(self, changes: Sequence[ObjectForChange]) -> None:
        pending = [
            change for change in changes
            if isinstance(change, ObjectForUpdate) and change.object is None
        ]
        if not pending:
            return

        primary_keys = [change.ids[self.id_field] for change in pending]
        entities = self.data_source.find_by_ids(self.entity_class, primary_keys)

        for change in pending:
            change.object = entities.get(change.ids[self.id_field])

        logger.debug(
            "Prefilled entities",
            handler=self.handler_key,
            requested=len(primary_keys),
            found=len(entities)
        )

    def transform(self, change: ObjectForChange) -> Optional[DocumentAction]:
        search_id = self.get_search_id(change)
        if search_id is None:
            return None

        if isinstance(change, ObjectForDelete) or change.object is None:
            return DocumentDelete(search_id)

        body = self.build_document(change.object)
        if body is None:
            return None

        return DocumentUpdate(search_id, body)

    def get_search_id(self, change: ObjectForChange) -> Optional[str]:
        value = change.ids.get(self.id_field)
        return None if value is None else str(value)

    def get_subscriptions(self) -> List[ChangeSubscription]:
        return [ChangeSubscription(self.entity_class)]
