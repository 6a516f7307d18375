"""Access control enrichment of document bodies.

Every document written by the update processor passes through an
``AccessPopulator`` so search-time filters can restrict results to the
tokens a caller holds.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict

ACCESS_TOKENS_FIELD = "_access_tokens"
ANONYMOUS_TOKEN = "anonymous"


class AccessPopulator(ABC):
    """Adds access control fields to a document body."""

    @abstractmethod
    def populate(self, body: Dict[str, Any]) -> Dict[str, Any]:
        """Return an enriched copy of ``body``; the input is left untouched."""
        pass


class AnonymousAccessPopulator(AccessPopulator):
    """Makes every document readable by anonymous callers."""

    def populate(self, body: Dict[str, Any]) -> Dict[str, Any]:
        return {**body, ACCESS_TOKENS_FIELD: [ANONYMOUS_TOKEN]}
