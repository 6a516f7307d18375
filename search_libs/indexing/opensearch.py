"""OpenSearch client implementation."""

from typing import Any, Dict, Iterable, List, Optional, Sequence

import structlog
from opensearchpy import OpenSearch, exceptions
from opensearchpy.helpers import bulk

from .base import BulkWriteError, SearchBackendError, SearchClient
from .dto import DocumentDelete, DocumentUpdate, IndexAction

logger = structlog.get_logger("indexing.opensearch")


class OpenSearchClient(SearchClient):
    """OpenSearch-backed search client."""

    def __init__(
        self,
        hosts: List[str],
        username: Optional[str] = None,
        password: Optional[str] = None,
        verify_certs: bool = False,
        ssl_assert_hostname: bool = False,
        ssl_show_warn: bool = False,
        timeout: int = 30,
        client: Optional[OpenSearch] = None,
    ):
        """Initialize the OpenSearch client.

        Args:
            hosts: List of OpenSearch host URLs
            username: OpenSearch username
            password: OpenSearch password
            verify_certs: Whether to verify SSL certificates
            ssl_assert_hostname: Whether to assert hostname
            ssl_show_warn: Whether to show SSL warnings
            timeout: Request timeout in seconds
            client: Pre-built ``OpenSearch`` instance, replaces the one
                built from the arguments above
        """
        if not hosts and client is None:
            raise ValueError("OpenSearch requires at least one host")

        self.hosts = hosts
        self.client = client or OpenSearch(
            hosts=hosts,
            http_auth=(username, password) if username and password else None,
            verify_certs=verify_certs,
            ssl_assert_hostname=ssl_assert_hostname,
            ssl_show_warn=ssl_show_warn,
            use_ssl=hosts[0].startswith('https'),
            timeout=timeout,
        )

    def create_index(
        self,
        name: str,
        mappings: Optional[Dict[str, Any]] = None,
        settings: Optional[Dict[str, Any]] = None
    ) -> None:
        body: Dict[str, Any] = {}
        if mappings:
            body["mappings"] = mappings
        if settings:
            body["settings"] = settings

        try:
            self.client.indices.create(index=name, body=body)
        except exceptions.OpenSearchException as e:
            logger.error("Failed to create index", index=name, error=str(e))
            raise SearchBackendError(f"Failed to create index '{name}': {e}") from e

        logger.info("OpenSearch index created", index=name)

    def delete_index(self, name: str) -> None:
        try:
            self.client.indices.delete(index=name)
        except exceptions.OpenSearchException as e:
            logger.error("Failed to delete index", index=name, error=str(e))
            raise SearchBackendError(f"Failed to delete index '{name}': {e}") from e

        logger.info("OpenSearch index deleted", index=name)

    def create_alias(self, index_name: str, alias_name: str) -> None:
        try:
            self.client.indices.put_alias(index=index_name, name=alias_name)
        except exceptions.OpenSearchException as e:
            logger.error("Failed to create alias", index=index_name, alias=alias_name, error=str(e))
            raise SearchBackendError(
                f"Failed to create alias '{alias_name}' for index '{index_name}': {e}"
            ) from e

        logger.info("OpenSearch alias created", index=index_name, alias=alias_name)

    def delete_alias(self, aliases: Sequence[str]) -> None:
        for alias in aliases:
            try:
                self.client.indices.delete_alias(index="_all", name=alias)
            except exceptions.NotFoundError:
                logger.debug("Alias not found, nothing to delete", alias=alias)
                continue
            except exceptions.OpenSearchException as e:
                logger.error("Failed to delete alias", alias=alias, error=str(e))
                raise SearchBackendError(f"Failed to delete alias '{alias}': {e}") from e

            logger.info("OpenSearch alias deleted", alias=alias)

    def get_indices(self) -> List[Dict[str, str]]:
        try:
            response = self.client.cat.indices(format="json")
        except exceptions.OpenSearchException as e:
            logger.error("Failed to list indices", error=str(e))
            raise SearchBackendError(f"Failed to list indices: {e}") from e

        return [{"name": row["index"]} for row in response]

    def get_aliases(self) -> List[Dict[str, str]]:
        try:
            response = self.client.cat.aliases(format="json")
        except exceptions.OpenSearchException as e:
            logger.error("Failed to list aliases", error=str(e))
            raise SearchBackendError(f"Failed to list aliases: {e}") from e

        return [{"name": row["alias"], "index": row["index"]} for row in response]

    def swap_aliases(
        self,
        bindings: Sequence[Dict[str, str]],
        deletions: Sequence[str] = ()
    ) -> None:
        """Move aliases with one ``_aliases`` request.

        Current bindings are read first so that only existing alias/index
        pairs are removed; the request itself is applied atomically by the
        cluster.
        """
        current = self.get_aliases()
        actions: List[Dict[str, Any]] = []

        for binding in bindings:
            for existing in current:
                if existing["name"] == binding["alias"] and existing["index"] != binding["index"]:
                    actions.append({"remove": {"index": existing["index"], "alias": binding["alias"]}})
            actions.append({"add": {"index": binding["index"], "alias": binding["alias"]}})

        for alias in deletions:
            for existing in current:
                if existing["name"] == alias:
                    actions.append({"remove": {"index": existing["index"], "alias": alias}})

        if not actions:
            return

        try:
            self.client.indices.update_aliases(body={"actions": actions})
        except exceptions.OpenSearchException as e:
            logger.error("Failed to swap aliases", bindings=list(bindings), error=str(e))
            raise SearchBackendError(f"Failed to swap aliases: {e}") from e

        logger.info(
            "OpenSearch aliases swapped",
            bindings=list(bindings),
            deleted=list(deletions)
        )

    def bulk(self, actions: Iterable[IndexAction]) -> None:
        operations = [self._to_bulk_operation(action) for action in actions]
        if not operations:
            return

        try:
            success_count, failed_items = bulk(
                self.client,
                operations,
                raise_on_error=False,
                raise_on_exception=True,
            )
        except exceptions.OpenSearchException as e:
            logger.error("Bulk request failed", count=len(operations), error=str(e))
            raise SearchBackendError(f"Bulk request failed: {e}") from e

        failures = [item for item in failed_items if not self._is_missing_delete(item)]
        if failures:
            logger.error(
                "Bulk items rejected",
                failed_count=len(failures),
                total_count=len(operations)
            )
            raise BulkWriteError(
                f"{len(failures)} of {len(operations)} bulk items failed",
                failures
            )

        logger.debug("Bulk request completed", count=success_count)

    def health_check(self) -> bool:
        try:
            return bool(self.client.ping())
        except exceptions.OpenSearchException as e:
            logger.warning("OpenSearch health check failed", error=str(e))
            return False

    @staticmethod
    def _to_bulk_operation(action: IndexAction) -> Dict[str, Any]:
        document = action.document_action

        if isinstance(document, DocumentUpdate):
            return {
                "_op_type": "index",
                "_index": action.index,
                "_id": document.document_id,
                "_source": document.body,
            }

        if isinstance(document, DocumentDelete):
            return {
                "_op_type": "delete",
                "_index": action.index,
                "_id": document.document_id,
            }

        raise TypeError(f"Unsupported document action: {type(document).__name__}")

    @staticmethod
    def _is_missing_delete(item: Dict[str, Any]) -> bool:
        result = item.get("delete")
        return bool(result) and result.get("status") == 404
