"""Directory of the search handlers registered with this process.

Built once at startup from an explicit list of handler instances. The
constructor validates the set and partitions it by capability so lookups
never inspect handler types at call time.
"""

from collections import OrderedDict
from typing import Dict, Iterable, List

import structlog

from .base import HandlerConfigurationError, HandlerNotFoundError
from .dto import HandlerChangeSubscription
from .handlers import HandlerCapability, SearchHandler

logger = structlog.get_logger("indexing.registry")


class RegisteredSearchHandlers:
    """Lookup of handlers by key and of subscriptions by entity class."""

    def __init__(self, handlers: Iterable[SearchHandler]):
        self._handlers: List[SearchHandler] = list(handlers)
        self._transformable: "OrderedDict[str, SearchHandler]" = OrderedDict()
        self._subscriptions: Dict[str, List[HandlerChangeSubscription]] = {}

        index_names: Dict[str, SearchHandler] = {}
        keys: Dict[str, SearchHandler] = {}

        for handler in self._handlers:
            root = handler.index_name.lower()
            if not root:
                raise HandlerConfigurationError(f"Handler {handler!r} has no index name")
            if root in index_names:
                raise HandlerConfigurationError(
                    f"Index name '{root}' is used by both {index_names[root]!r} and {handler!r}"
                )
            index_names[root] = handler

            if handler.handler_key:
                if handler.handler_key in keys:
                    raise HandlerConfigurationError(
                        f"Handler key '{handler.handler_key}' is used by both "
                        f"{keys[handler.handler_key]!r} and {handler!r}"
                    )
                keys[handler.handler_key] = handler

            if handler.can(HandlerCapability.TRANSFORM):
                if not handler.handler_key:
                    raise HandlerConfigurationError(
                        f"Transformable handler {handler!r} has no handler key"
                    )
                self._transformable[handler.handler_key] = handler

            if handler.can(HandlerCapability.SUBSCRIBE):
                # Subscribed changes are resolved through the transformable handler key.
                if not handler.can(HandlerCapability.TRANSFORM) or not handler.handler_key:
                    raise HandlerConfigurationError(
                        f"Subscribing handler {handler!r} must be transformable and have a handler key"
                    )
                for subscription in handler.get_subscriptions():
                    self._subscriptions.setdefault(subscription.class_name, []).append(
                        HandlerChangeSubscription(handler.handler_key, subscription)
                    )

        logger.info(
            "Search handlers registered",
            handlers=len(self._handlers),
            transformable=len(self._transformable),
            subscribed_classes=sorted(self._subscriptions)
        )

    def get_all(self) -> List[SearchHandler]:
        return list(self._handlers)

    def get_transformable_handlers(self) -> List[SearchHandler]:
        return list(self._transformable.values())

    def get_transformable_handler_by_key(self, key: str) -> SearchHandler:
        """Resolve a transformable handler.

        Raises
        - HandlerNotFoundError: nothing transformable is registered under ``key``
        """
        try:
            return self._transformable[key]
        except KeyError:
            raise HandlerNotFoundError(
                f"Could not find transformable handler with key '{key}'"
            ) from None

    def get_subscriptions_grouped_by_class(self) -> Dict[str, List[HandlerChangeSubscription]]:
        return {
            class_name: list(subscriptions)
            for class_name, subscriptions in self._subscriptions.items()
        }
