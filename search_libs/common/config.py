"""Configuration management for search indexing services.

This module centralizes environment-driven configuration for the indexing
library and the processes that embed it (reindex jobs, the entity update
worker). It builds on ``pydantic_settings.BaseSettings`` so configuration can
be provided via environment variables, ``.env`` files, or defaults.

Highlights
- Strongly-typed settings with sensible defaults
- One place to discover the environment variables the library reads
- Small process-specific subclasses to keep concerns clear

Usage
- Inject the appropriate config in your entrypoint:
  ``config = IndexerConfig()``
- Or select dynamically: ``config = get_config("indexer")``
"""

from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration shared by every process using the library.

    Field names double as environment variable names (case-insensitive), so
    ``search_opensearch_hosts`` is read from ``SEARCH_OPENSEARCH_HOSTS``.

    Notes
    - Add new shared settings here so downstream processes inherit them.
    - Prefer declaring a field over reading ``os.environ`` directly.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    search_env: str = Field(default="local")

    # Logging
    search_log_level: str = Field(default="INFO")
    search_log_format: str = Field(default="json")

    # Events
    search_redis_url: str = Field(default="redis://localhost:6379")
    search_event_channel_prefix: str = Field(default="search_events")
    search_events_enabled: bool = Field(default=True)

    # OpenSearch
    search_opensearch_hosts: str = Field(default="http://localhost:9200")
    search_opensearch_username: Optional[str] = Field(default=None)
    search_opensearch_password: Optional[str] = Field(default=None)
    search_opensearch_verify_certs: bool = Field(default=False)
    search_opensearch_ssl_assert_hostname: bool = Field(default=False)
    search_opensearch_ssl_show_warn: bool = Field(default=False)
    search_opensearch_timeout: int = Field(default=30)

    @property
    def opensearch_hosts(self) -> List[str]:
        """Host URLs parsed from the comma-separated setting."""
        return [host.strip() for host in self.search_opensearch_hosts.split(",") if host.strip()]


class IndexerConfig(BaseConfig):
    """Configuration for index builds (create, populate, swap, clean).

    Keeps population knobs together.
    """

    search_populate_batch_size: int = Field(default=100, ge=1)


class WorkerConfig(BaseConfig):
    """Configuration for the entity update worker.

    The live index suffix is normally empty; a worker feeding a rebuild in
    progress can target ``_new`` instead.
    """

    search_worker_index_suffix: str = Field(default="")


def get_config(service_name: str) -> BaseConfig:
    """Get configuration for a specific process.

    Parameters
    - service_name: Literal name: ``indexer`` or ``worker``.

    Returns
    - A concrete ``BaseConfig`` subclass pre-wired to read the right env vars.
    """
    config_map = {
        "indexer": IndexerConfig,
        "worker": WorkerConfig,
    }

    # Default to ``BaseConfig`` to avoid surprising crashes for unknown names.
    config_class = config_map.get(service_name, BaseConfig)
    return config_class()
