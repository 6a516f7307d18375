"""Base search client interface.

Defines the command contract the indexer and update processor depend on,
independent of the backing engine (OpenSearch, Elasticsearch, in-memory
fakes in tests). Calls are blocking; a failed call raises
``SearchBackendError`` and is never retried here.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional, Sequence


class SearchClient(ABC):
    """Abstract base class for search engine clients.

    Listings are fetched fresh on every call; implementations must not cache
    indices or aliases.
    """

    @abstractmethod
    def create_index(
        self,
        name: str,
        mappings: Optional[Dict[str, Any]] = None,
        settings: Optional[Dict[str, Any]] = None
    ) -> None:
        """Create a physical index with the given mappings and settings."""
        pass

    @abstractmethod
    def delete_index(self, name: str) -> None:
        """Delete a physical index, dropping any alias bound to it."""
        pass

    @abstractmethod
    def create_alias(self, index_name: str, alias_name: str) -> None:
        """Bind ``alias_name`` to ``index_name``."""
        pass

    @abstractmethod
    def delete_alias(self, aliases: Sequence[str]) -> None:
        """Delete aliases by name.

        Aliases that do not exist are ignored.
        """
        pass

    @abstractmethod
    def get_indices(self) -> List[Dict[str, str]]:
        """List physical indices as ``[{"name": ...}]``."""
        pass

    @abstractmethod
    def get_aliases(self) -> List[Dict[str, str]]:
        """List alias bindings as ``[{"name": alias, "index": index}]``."""
        pass

    @abstractmethod
    def swap_aliases(
        self,
        bindings: Sequence[Dict[str, str]],
        deletions: Sequence[str] = ()
    ) -> None:
        """Move aliases in a single request.

        Each binding ``{"alias": ..., "index": ...}`` evicts whatever the alias
        previously pointed at; each name in ``deletions`` is removed.
        """
        pass

    @abstractmethod
    def bulk(self, actions: Iterable[Any]) -> None:
        """Write a list of ``IndexAction`` in one round trip."""
        pass

    @abstractmethod
    def health_check(self) -> bool:
        """Check if the cluster is reachable."""
        pass


class SearchError(Exception):
    """Base exception for search indexing."""
    pass


class SearchBackendError(SearchError):
    """A call to the search engine failed."""
    pass


class BulkWriteError(SearchBackendError):
    """One or more items of a bulk request were rejected."""

    def __init__(self, message: str, failed_items: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.failed_items = failed_items or []


class AliasNotFoundError(SearchError):
    """An alias expected by an index swap does not exist."""
    pass


class HandlerNotFoundError(SearchError):
    """No transformable handler is registered under the requested key."""
    pass


class HandlerConfigurationError(SearchError):
    """The set of registered handlers is inconsistent."""
    pass


class UnsupportedCapabilityError(SearchError):
    """A handler was asked for a capability it does not declare."""
    pass
