"""Index name resolution for search handlers."""

from abc import ABC, abstractmethod
from typing import List, TYPE_CHECKING

from .dto import ObjectForChange

if TYPE_CHECKING:
    from .handlers import SearchHandler


class IndexNameTransformer(ABC):
    """Derives the root index names a handler reads and writes."""

    @abstractmethod
    def transform_index_name(self, handler: "SearchHandler", change: ObjectForChange) -> str:
        """Root index name the given object is written to."""
        pass

    @abstractmethod
    def transform_index_names(self, handler: "SearchHandler") -> List[str]:
        """Every root index name owned by ``handler``."""
        pass


class DefaultIndexNameTransformer(IndexNameTransformer):
    """One lower-cased root index per handler."""

    def transform_index_name(self, handler: "SearchHandler", change: ObjectForChange) -> str:
        return handler.index_name.lower()

    def transform_index_names(self, handler: "SearchHandler") -> List[str]:
        return [handler.index_name.lower()]
