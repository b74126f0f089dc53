"""
Configuration module for alphdata.

This module centralizes loading, validation and access of configuration
settings, leveraging Pydantic for data modeling.

Exports:
    - AlphDataConfig: The main Pydantic model for all configuration settings.
    - NodeConfig, RateLimitConfig, CacheConfig, ClassifierConfig, MetadataConfig,
      HistoryConfig, LoggingConfig: Sub-models for specific configuration sections.
    - load_config: Function to load configuration from files and environment variables.
    - find_config_file: Utility to automatically locate the configuration file.
    - auto_load_config: Utility to automatically load configuration.
    - validate_config: Utility for configuration sanity checks.
"""
from .config import (
    DEFAULT_NODE_URL,
    DEFAULT_EXPLORER_BACKEND_URL,
    DEFAULT_EXPLORER_API_URL,
    DEFAULT_TOKEN_LIST_URL,
    DEFAULT_IPFS_GATEWAYS,
    AlphDataConfig,
    NodeConfig,
    RateLimitConfig,
    CacheConfig,
    ClassifierConfig,
    MetadataConfig,
    HistoryConfig,
    LoggingConfig,
    load_config
)

from .config_utils import (
    find_config_file,
    auto_load_config,
    validate_config
)

__all__ = [
    "DEFAULT_NODE_URL",
    "DEFAULT_EXPLORER_BACKEND_URL",
    "DEFAULT_EXPLORER_API_URL",
    "DEFAULT_TOKEN_LIST_URL",
    "DEFAULT_IPFS_GATEWAYS",
    "AlphDataConfig",
    "NodeConfig",
    "RateLimitConfig",
    "CacheConfig",
    "ClassifierConfig",
    "MetadataConfig",
    "HistoryConfig",
    "LoggingConfig",
    "load_config",
    "find_config_file",
    "auto_load_config",
    "validate_config",
]
