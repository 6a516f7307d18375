"""Entity data source contract.

The persistence layer is outside this library; it is reached only through
the two calls below. ``iter_all_ids`` must be lazy so populating a large
index never holds every entity in memory, and restarting means calling it
again.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, Sequence


class EntityDataSource(ABC):
    """Read access to persisted entities."""

    @abstractmethod
    def iter_all_ids(self, class_name: str) -> Iterable[Dict[str, Any]]:
        """Yield the identifier mapping of every entity of ``class_name``."""
        pass

    @abstractmethod
    def find_by_ids(self, class_name: str, ids: Sequence[Any]) -> Dict[Any, Any]:
        """Load entities in bulk, keyed by primary key.

        Primary keys without an entity are absent from the result.
        """
        pass
