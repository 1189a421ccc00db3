"""Configuration management for the catalog layer."""

import os
from pathlib import Path
from typing import Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

from src.models.data_models import ARCHIVE_PAGE_SIZE


DEFAULT_DIMENSION_SOURCES = {"artist": "commerce", "format": "commerce", "tag": "content"}

class BackendConfig(BaseModel):
    """Connection settings for one external backend."""
    name: str = Field(description="Backend identifier used in logs and errors")
    url: str = Field(description="Base URL of the backend")
    api_key: str = Field(default="", description="Key sent with every request")

    @field_validator('url')
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate URL format."""
        if not v.startswith(('http://', 'https://')):
            raise ValueError(f"URL must start with http:// or https://, got: {v}")
        return v.rstrip('/')


class CatalogConfig(BaseModel):
    """Main configuration for the catalog aggregation and invalidation layer."""

    # Backends
    commerce: BackendConfig = Field(
        default=BackendConfig(name="commerce", url="http://localhost:9000"),
        description="Commerce backend (filter, attribute and want-list endpoints)"
    )
    content: BackendConfig = Field(
        default=BackendConfig(name="content", url="http://localhost:9001/v1"),
        description="Content backend queried with GROQ"
    )
    content_dataset: str = Field(default="production", description="Content backend dataset")

    # Archive resolution
    dimension_sources: Dict[str, str] = Field(
        default=dict(DEFAULT_DIMENSION_SOURCES),
        description="Which backend owns each archive dimension"
    )
    archive_page_size: int = Field(default=ARCHIVE_PAGE_SIZE, description="Products per archive page")
    artist_primary_only: bool = Field(
        default=True,
        description="Restrict artist pages to products catalogued under the artist as primary"
    )
    require_image: bool = Field(default=True, description="Skip products without an image")

    # Retry configuration
    max_retries: int = Field(default=2, description="Maximum retry attempts per backend request")
    retry_base_delay: float = Field(default=0.2, description="Base delay for exponential backoff")
    retry_max_delay: float = Field(default=2.0, description="Maximum retry delay")
    retry_jitter_max: float = Field(default=0.1, description="Maximum jitter for retry delay")
    retryable_status_codes: List[int] = Field(
        default=[429, 502, 503, 504],
        description="HTTP status codes that trigger retries"
    )

    # Timeout configuration
    connect_timeout: float = Field(default=3.0, description="HTTP connect timeout in seconds")
    read_timeout: float = Field(default=8.0, description="HTTP read timeout in seconds")

    # Invalidation
    revalidate_secret: str = Field(default="", description="Shared secret for the revalidation trigger")
    attribute_eviction: str = Field(
        default="none",
        description="Attribute cache eviction on invalidation: none, handle or all"
    )
    page_purge_url: Optional[str] = Field(
        default=None,
        description="Rendered-page cache purge endpoint; in-memory cache when unset"
    )
    page_purge_token: str = Field(default="", description="Bearer token for the purge endpoint")

    # Server
    host: str = Field(default="127.0.0.1", description="Bind address for the HTTP app")
    port: int = Field(default=8080, description="Bind port for the HTTP app")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator('archive_page_size')
    @classmethod
    def validate_page_size(cls, v: int) -> int:
        """Validate page size is positive."""
        if v <= 0:
            raise ValueError(f"archive_page_size must be positive, got: {v}")
        return v

    @field_validator('max_retries')
    @classmethod
    def validate_retries(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"max_retries must not be negative, got: {v}")
        return v

    @field_validator('attribute_eviction')
    @classmethod
    def validate_attribute_eviction(cls, v: str) -> str:
        v = v.lower()
        if v not in ("none", "handle", "all"):
            raise ValueError(f"attribute_eviction must be none, handle or all, got: {v}")
        return v

    @field_validator('dimension_sources')
    @classmethod
    def validate_dimension_sources(cls, v: Dict[str, str]) -> Dict[str, str]:
        """Validate names; dimensions left out keep their default source."""
        for dimension, source in v.items():
            if dimension not in DEFAULT_DIMENSION_SOURCES:
                raise ValueError(f"Unknown archive dimension: {dimension}")
            if source not in ("commerce", "content"):
                raise ValueError(f"Unknown catalog source for {dimension}: {source}")
        return {**DEFAULT_DIMENSION_SOURCES, **v}

    # Environment variable overrides
    @classmethod
    def from_env(cls) -> "CatalogConfig":
        """Create configuration with environment variable overrides."""
        config = cls()

        env_mappings = {
            "CATALOG_REVALIDATE_SECRET": "revalidate_secret",
            "CATALOG_ATTRIBUTE_EVICTION": "attribute_eviction",
            "CATALOG_PAGE_PURGE_URL": "page_purge_url",
            "CATALOG_PAGE_PURGE_TOKEN": "page_purge_token",
            "CATALOG_LOG_LEVEL": "log_level",
            "CATALOG_CONNECT_TIMEOUT": "connect_timeout",
            "CATALOG_READ_TIMEOUT": "read_timeout",
            "CATALOG_MAX_RETRIES": "max_retries",
            "CATALOG_PORT": "port",
        }

        for env_var, field_name in env_mappings.items():
            if env_var in os.environ:
                value = os.environ[env_var]
                field_info = cls.model_fields[field_name]
                if field_info.annotation == int:
                    setattr(config, field_name, int(value))
                elif field_info.annotation == float:
                    setattr(config, field_name, float(value))
                else:
                    setattr(config, field_name, value)

        # Backend endpoints and keys
        if "CATALOG_COMMERCE_URL" in os.environ or "CATALOG_COMMERCE_API_KEY" in os.environ:
            config.commerce = BackendConfig(
                name="commerce",
                url=os.environ.get("CATALOG_COMMERCE_URL", config.commerce.url),
                api_key=os.environ.get("CATALOG_COMMERCE_API_KEY", config.commerce.api_key),
            )
        if "CATALOG_CONTENT_URL" in os.environ or "CATALOG_CONTENT_API_KEY" in os.environ:
            config.content = BackendConfig(
                name="content",
                url=os.environ.get("CATALOG_CONTENT_URL", config.content.url),
                api_key=os.environ.get("CATALOG_CONTENT_API_KEY", config.content.api_key),
            )

        return config


class ConfigManager:
    """Manages configuration loading with override precedence."""

    def __init__(self, config_file: Optional[Path] = None):
        self.config_file = config_file or Path("config/config.yaml")
        self._config: Optional[CatalogConfig] = None

    def load_config(self, cli_overrides: Optional[Dict] = None) -> CatalogConfig:
        """
        Load configuration with override precedence: CLI > ENV > YAML.

        Args:
            cli_overrides: Optional dictionary of CLI flag overrides

        Returns:
            Fully merged CatalogConfig instance

        Raises:
            ValueError: If configuration validation fails
        """
        config_dict = {}

        if self.config_file.exists():
            with open(self.config_file, 'r') as f:
                yaml_config = yaml.safe_load(f)
                if yaml_config:
                    for backend in ('commerce', 'content'):
                        if isinstance(yaml_config.get(backend), dict):
                            yaml_config[backend] = BackendConfig(
                                **{"name": backend, **yaml_config[backend]}
                            )
                    config_dict.update(yaml_config)

        base_config = CatalogConfig(**config_dict)

        env_config = CatalogConfig.from_env()

        merged_dict = base_config.model_dump()
        env_dict = env_config.model_dump()

        # Only override with env values that differ from defaults
        default_dict = CatalogConfig().model_dump()
        for key, value in env_dict.items():
            if value != default_dict[key]:
                merged_dict[key] = value

        if cli_overrides:
            cli_overrides = {k: v for k, v in cli_overrides.items() if v is not None}
            merged_dict.update(cli_overrides)

        self._config = CatalogConfig(**merged_dict)
        return self._config

    @property
    def config(self) -> CatalogConfig:
        """Get the loaded configuration."""
        if self._config is None:
            self._config = self.load_config()
        return self._config
