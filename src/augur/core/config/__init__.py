"""Configuration models for Augur.

Pydantic models for loading and validating the YAML engine configuration.
All models are re-exported here so callers can import from
``augur.core.config`` directly.
"""

from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator

from augur.core.config.engine import (
    CacheConfig,
    CircuitBreakerConfig,
    ConsensusConfig,
    LogConfig,
    QueryConfig,
    RetryConfig,
)
from augur.core.config.providers import PerformanceSeed, ProviderConfig, default_providers
from augur.core.errors import ConfigurationError


class AugurConfig(BaseModel):
    """Top-level engine configuration."""

    providers: list[ProviderConfig] = Field(default_factory=list)
    circuit_breaker: CircuitBreakerConfig = Field(default_factory=CircuitBreakerConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    query: QueryConfig = Field(default_factory=QueryConfig)
    consensus: ConsensusConfig = Field(default_factory=ConsensusConfig)
    logging: LogConfig = Field(default_factory=LogConfig)

    @model_validator(mode="after")
    def _validate_unique_ids(self) -> AugurConfig:
        seen: set[str] = set()
        for provider in self.providers:
            if provider.id in seen:
                raise ValueError(f"Duplicate provider id: {provider.id}")
            seen.add(provider.id)
        return self

    @classmethod
    def default(cls) -> AugurConfig:
        """Configuration with the built-in provider set and default settings."""
        return cls(providers=default_providers())

    @classmethod
    def from_yaml(cls, path: Path) -> AugurConfig:
        """Load configuration from a YAML file.

        Raises:
            ConfigurationError: If the file is missing, unparseable or invalid.
        """
        try:
            with open(path) as f:
                text = f.read()
        except OSError as e:
            raise ConfigurationError(f"Cannot read config {path}: {e}") from e
        return cls.from_yaml_string(text)

    @classmethod
    def from_yaml_string(cls, yaml_str: str) -> AugurConfig:
        """Load configuration from a YAML string."""
        try:
            data = yaml.safe_load(yaml_str) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML: {e}") from e
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(str(e)) from e


__all__ = [
    "AugurConfig",
    "CacheConfig",
    "CircuitBreakerConfig",
    "ConsensusConfig",
    "LogConfig",
    "PerformanceSeed",
    "ProviderConfig",
    "QueryConfig",
    "RetryConfig",
    "default_providers",
]
