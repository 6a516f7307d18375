"""Search index lifecycle management.

Primary components:
- ``base``: abstract ``SearchClient`` interface and the error hierarchy.
- ``opensearch``: OpenSearch implementation of the client.
- ``handlers`` / ``registry``: search handlers and the directory serving them.
- ``indexer``: create, populate, swap and clean indices.
- ``update_processor``: bulk writes of changed documents.
- ``factory``: builds the services from config and a handler list.
- ``runner``: rebuild and entity update worker entrypoints.
"""

from .access import AccessPopulator, AnonymousAccessPopulator
from .base import (
    AliasNotFoundError,
    BulkWriteError,
    HandlerConfigurationError,
    HandlerNotFoundError,
    SearchBackendError,
    SearchClient,
    SearchError,
    UnsupportedCapabilityError,
)
from .dto import (
    AliasMove,
    ChangedEntity,
    ChangeSubscription,
    DocumentDelete,
    DocumentUpdate,
    HandlerObjectForChange,
    IndexAction,
    IndexSwapResult,
    ObjectForDelete,
    ObjectForUpdate,
)
from .handlers import EntitySearchHandler, HandlerCapability, SearchHandler
from .indexer import NEW_INDEX_SUFFIX, Indexer
from .registry import RegisteredSearchHandlers
from .transformers import DefaultIndexNameTransformer, IndexNameTransformer
from .update_processor import UpdateProcessor

__all__ = [
    "AccessPopulator",
    "AliasMove",
    "AliasNotFoundError",
    "AnonymousAccessPopulator",
    "BulkWriteError",
    "ChangeSubscription",
    "ChangedEntity",
    "DefaultIndexNameTransformer",
    "DocumentDelete",
    "DocumentUpdate",
    "EntitySearchHandler",
    "HandlerCapability",
    "HandlerConfigurationError",
    "HandlerNotFoundError",
    "HandlerObjectForChange",
    "IndexAction",
    "IndexNameTransformer",
    "IndexSwapResult",
    "Indexer",
    "NEW_INDEX_SUFFIX",
    "ObjectForDelete",
    "ObjectForUpdate",
    "RegisteredSearchHandlers",
    "SearchBackendError",
    "SearchClient",
    "SearchError",
    "SearchHandler",
    "UnsupportedCapabilityError",
    "UpdateProcessor",
]
