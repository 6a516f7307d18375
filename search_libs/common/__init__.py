"""Common utilities shared by indexing processes.

Includes:
- ``config``: Pydantic-based configuration from environment variables.
- ``logging``: structured logging setup with structlog.
- ``metrics``: Prometheus metrics helpers.
- ``events``: Redis pub/sub event models, publisher, and subscriber.

Import pattern:
- from search_libs.common.config import IndexerConfig
- from search_libs.common.logging import configure_logging
"""
