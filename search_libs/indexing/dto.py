"""Value objects passed between handlers, the processor and the client."""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, FrozenSet, List, Optional, Tuple


@dataclass(frozen=True)
class DocumentAction:
    """A single document operation, identified by its search id."""
    document_id: str


@dataclass(frozen=True)
class DocumentUpdate(DocumentAction):
    """Create or replace a document with ``body``."""
    body: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DocumentDelete(DocumentAction):
    """Remove a document."""
    pass


@dataclass(frozen=True)
class IndexAction:
    """A document action bound to the index (or alias) it is written to."""
    document_action: DocumentAction
    index: str


@dataclass
class ObjectForChange:
    """Identifies a persisted entity a handler has to (re)index.

    ``object`` is empty until a handler's bulk prefill loads the entity.
    """
    class_name: str
    ids: Dict[str, Any]
    object: Any = None


@dataclass
class ObjectForUpdate(ObjectForChange):
    """The entity was created or updated."""
    pass


@dataclass
class ObjectForDelete(ObjectForChange):
    """The entity was deleted."""
    pass


@dataclass(frozen=True)
class HandlerObjectForChange:
    """One unit of change work addressed to a handler."""
    handler_key: str
    object_for_change: ObjectForChange


@dataclass(frozen=True)
class ChangedEntity:
    """A change notification for a persisted entity."""
    class_name: str
    ids: Dict[str, Any]
    changed_properties: Optional[FrozenSet[str]] = None
    deleted: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChangedEntity":
        """Build from an event payload entry."""
        properties = data.get("changed_properties")
        return cls(
            class_name=data["class_name"],
            ids=dict(data["ids"]),
            changed_properties=frozenset(properties) if properties is not None else None,
            deleted=bool(data.get("deleted", False)),
        )


@dataclass(frozen=True)
class ChangeSubscription:
    """Declares interest of a handler in changes to an entity class.

    When ``properties`` is set, updates only match if one of them changed.
    ``transform`` maps a change to the objects the handler has to reindex,
    which lets a change to a related entity fan out to its owners.
    """
    class_name: str
    properties: Optional[FrozenSet[str]] = None
    transform: Optional[Callable[[ChangedEntity], List[ObjectForChange]]] = None


@dataclass(frozen=True)
class HandlerChangeSubscription:
    handler_key: str
    subscription: ChangeSubscription


@dataclass(frozen=True)
class AliasMove:
    """Binding of the live ``alias`` to a freshly built ``index``."""
    alias: str
    index: str

    def to_dict(self) -> Dict[str, str]:
        return {"alias": self.alias, "index": self.index}


@dataclass(frozen=True)
class IndexSwapResult:
    """Outcome of an index swap.

    Built with ``planned`` for a dry run (nothing was changed) or ``applied``
    once the backend accepted the swap.
    """
    aliases_to_move: Tuple[AliasMove, ...]
    aliases_to_delete: Tuple[str, ...]
    dry_run: bool

    @classmethod
    def planned(cls, aliases_to_move: List[AliasMove], aliases_to_delete: List[str]) -> "IndexSwapResult":
        return cls(tuple(aliases_to_move), tuple(aliases_to_delete), dry_run=True)

    @classmethod
    def applied(cls, aliases_to_move: List[AliasMove], aliases_to_delete: List[str]) -> "IndexSwapResult":
        return cls(tuple(aliases_to_move), tuple(aliases_to_delete), dry_run=False)

    def table_rows(self) -> List[Tuple[str, str, str]]:
        """Rows of ``(alias, index, deleted alias)`` for operator output."""
        rows = []
        for position, move in enumerate(self.aliases_to_move):
            deleted = self.aliases_to_delete[position] if position < len(self.aliases_to_delete) else ""
            rows.append((move.alias, move.index, deleted))
        return rows
