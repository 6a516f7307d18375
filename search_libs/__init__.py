"""Search index lifecycle library.

Subpackages:
- ``search_libs.common``: configuration, logging, metrics, and events.
- ``search_libs.indexing``: search client, handlers, indexer and update processor.

Notes:
- Handlers are registered explicitly; build services with
  ``search_libs.indexing.factory.build_indexing_services``.
"""
