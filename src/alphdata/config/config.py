"""
Configuration system for the alphdata package.

This module provides a flexible configuration system that can load settings from:
- Environment variables
- YAML files
- Python dictionaries
- Programmatic configuration
"""

import os
import yaml
from pathlib import Path
from typing import Optional, Dict, Any, List, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator
from loguru import logger

from alphdata.types import StorageType

DEFAULT_NODE_URL = "https://node.mainnet.alephium.org"
DEFAULT_EXPLORER_BACKEND_URL = "https://backend.mainnet.alephium.org"
DEFAULT_EXPLORER_API_URL = "https://explorer.alephium.org/api"
DEFAULT_TOKEN_LIST_URL = "https://raw.githubusercontent.com/alephium/token-list/master/tokens/mainnet.json"
DEFAULT_IPFS_GATEWAYS = [
    "https://ipfs.io/ipfs/",
    "https://cloudflare-ipfs.com/ipfs/",
    "https://dweb.link/ipfs/",
]


class NodeConfig(BaseModel):
    """Upstream endpoints and HTTP behaviour."""
    node_url: str = DEFAULT_NODE_URL
    explorer_backend_url: str = DEFAULT_EXPLORER_BACKEND_URL
    explorer_api_url: str = DEFAULT_EXPLORER_API_URL
    token_list_url: str = DEFAULT_TOKEN_LIST_URL
    timeout_seconds: float = 30.0
    max_retries: int = 0  # The gateway does not retry; callers layer retries on top
    retry_delay: float = 1.0

    @field_validator('node_url', 'explorer_backend_url', 'explorer_api_url', 'token_list_url')
    @classmethod
    def validate_url(cls, v):
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"URL must start with http:// or https://: {v}")
        return v.rstrip("/")

    @field_validator('timeout_seconds')
    @classmethod
    def validate_timeout(cls, v):
        if v <= 0:
            raise ValueError("timeout_seconds must be positive")
        return v


class RateLimitConfig(BaseModel):
    """Configuration for the rate-limited gateway."""
    max_concurrent: int = 3
    min_delay_ms: int = 100

    @field_validator('max_concurrent')
    @classmethod
    def validate_max_concurrent(cls, v):
        if v < 1:
            raise ValueError("max_concurrent must be at least 1")
        return v

    @field_validator('min_delay_ms')
    @classmethod
    def validate_min_delay(cls, v):
        if v < 0:
            raise ValueError("min_delay_ms cannot be negative")
        return v


class CacheConfig(BaseModel):
    """Configuration for the two-tier caches."""
    storage_type: str = "memory"  # memory, file
    cache_dir: Optional[str] = None  # Defaults to ~/.alphdata/cache for file storage
    key_prefix: str = "alephium"
    balance_history_ttl_seconds: int = 3600
    token_list_ttl_seconds: int = 3600

    @field_validator('storage_type')
    @classmethod
    def validate_storage_type(cls, v):
        valid_types = [t.value for t in StorageType]
        if v.lower() not in valid_types:
            raise ValueError(f'Storage type must be one of: {valid_types}')
        return v.lower()

    @field_validator('key_prefix')
    @classmethod
    def validate_key_prefix(cls, v):
        if not v or not v.replace("_", "").isalnum():
            raise ValueError("key_prefix must be a non-empty alphanumeric string")
        return v

    def get_cache_dir(self) -> Path:
        """Get the directory used by file storage."""
        if self.cache_dir:
            return Path(self.cache_dir)
        return Path.home() / ".alphdata" / "cache"


class ClassifierConfig(BaseModel):
    """Configuration for batch token classification."""
    batch_size: int = 5
    batch_delay_ms: int = 200

    @field_validator('batch_size')
    @classmethod
    def validate_batch_size(cls, v):
        if v < 1:
            raise ValueError("batch_size must be at least 1")
        return v


class MetadataConfig(BaseModel):
    """Configuration for token metadata and NFT URI resolution."""
    ipfs_gateways: List[str] = Field(default_factory=lambda: list(DEFAULT_IPFS_GATEWAYS))
    uri_timeout_seconds: float = 15.0
    gateway_timeout_seconds: float = 10.0

    @field_validator('ipfs_gateways')
    @classmethod
    def validate_gateways(cls, v):
        if not v:
            raise ValueError("At least one IPFS gateway is required")
        return [g if g.endswith("/") else f"{g}/" for g in v]


class HistoryConfig(BaseModel):
    """Configuration for balance history reconstruction."""
    default_days: int = 30
    tolerance: float = 0.001  # ALPH
    min_transactions: int = 200
    transactions_per_day: int = 10

    @field_validator('default_days')
    @classmethod
    def validate_days(cls, v):
        if v < 1:
            raise ValueError("default_days must be at least 1")
        return v


class LoggingConfig(BaseModel):
    """Configuration for logging."""
    level: str = "INFO"
    format: str = "<green>{time:HH:mm:ss}</green> | <level>{level: <5}</level> | <level>{message}</level>"
    file_path: Optional[str] = None  # Will default to ~/.alphdata/logs/alphdata.log
    file_rotation: str = "10 MB"
    file_retention: int = 3
    enable_console: bool = True
    enable_file: bool = False
    module_levels: Optional[Dict[str, str]] = None  # Module-specific log levels
    console_style: str = "clean"  # "clean", "timestamp", or "detailed"

    @field_validator('level')
    @classmethod
    def validate_level(cls, v):
        valid_levels = ['TRACE', 'DEBUG', 'INFO', 'SUCCESS', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f'Log level must be one of: {valid_levels}')
        return v.upper()

    def get_log_file_path(self) -> Optional[Path]:
        """Get the log file path."""
        if self.file_path:
            return Path(self.file_path)
        return Path.home() / ".alphdata" / "logs" / "alphdata.log"


class AlphDataConfig(BaseModel):
    """Main configuration class for the alphdata package."""

    node: NodeConfig = Field(default_factory=NodeConfig)
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    classifier: ClassifierConfig = Field(default_factory=ClassifierConfig)
    metadata: MetadataConfig = Field(default_factory=MetadataConfig)
    history: HistoryConfig = Field(default_factory=HistoryConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    config_version: str = "1.0.0"
    environment: str = Field(default_factory=lambda: os.getenv("ALPHDATA_ENV", "development"))

    model_config = ConfigDict(extra="allow", validate_assignment=True)

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "AlphDataConfig":
        """
        Load configuration from a YAML file.

        Args:
            path: Path to the YAML configuration file

        Returns:
            AlphDataConfig instance

        Raises:
            FileNotFoundError: If the config file doesn't exist
            yaml.YAMLError: If the YAML is invalid
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f)

            if data is None:
                data = {}

            logger.info(f"Loaded configuration from {path}")
            return cls(**data)
        except yaml.YAMLError as e:
            logger.error(f"Invalid YAML in configuration file {path}: {e}")
            raise

    @classmethod
    def from_env(cls, prefix: str = "ALPHDATA_") -> "AlphDataConfig":
        """
        Load configuration from environment variables.

        Args:
            prefix: Prefix for environment variables (default: "ALPHDATA_")

        Returns:
            AlphDataConfig instance with values from environment
        """
        data: Dict[str, Any] = {}

        env_mappings = {
            f"{prefix}NODE_URL": ("node", "node_url"),
            f"{prefix}EXPLORER_BACKEND_URL": ("node", "explorer_backend_url"),
            f"{prefix}EXPLORER_API_URL": ("node", "explorer_api_url"),
            f"{prefix}TOKEN_LIST_URL": ("node", "token_list_url"),
            f"{prefix}HTTP_TIMEOUT": ("node", "timeout_seconds"),
            f"{prefix}MAX_CONCURRENT": ("rate_limit", "max_concurrent"),
            f"{prefix}MIN_DELAY_MS": ("rate_limit", "min_delay_ms"),
            f"{prefix}STORAGE_TYPE": ("cache", "storage_type"),
            f"{prefix}CACHE_DIR": ("cache", "cache_dir"),
            f"{prefix}KEY_PREFIX": ("cache", "key_prefix"),
            f"{prefix}HISTORY_TTL": ("cache", "balance_history_ttl_seconds"),
            f"{prefix}HISTORY_TOLERANCE": ("history", "tolerance"),
            f"{prefix}LOG_LEVEL": ("logging", "level"),
            f"{prefix}LOG_FILE": ("logging", "file_path"),
            f"{prefix}ENVIRONMENT": ("environment",),
        }

        for env_var, config_path in env_mappings.items():
            value = os.getenv(env_var)
            if value is not None:
                try:
                    # Convert string values to appropriate types
                    if env_var.endswith(('_CONCURRENT', '_MS', '_TTL')):
                        value = int(value)
                    elif env_var.endswith(('_TIMEOUT', '_TOLERANCE')):
                        value = float(value)

                    if len(config_path) == 1:
                        data[config_path[0]] = value
                    else:
                        data.setdefault(config_path[0], {})[config_path[1]] = value

                    logger.debug(f"Set config from {env_var}: {config_path} = {value}")
                except ValueError as e:
                    logger.warning(f"Failed to set config from {env_var}: {e}")

        return cls(**data)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AlphDataConfig":
        """Create configuration from a dictionary."""
        return cls(**data)

    def to_yaml(self, path: Union[str, Path]) -> None:
        """
        Save configuration to a YAML file.

        Args:
            path: Path where to save the configuration
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, 'w', encoding='utf-8') as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, indent=2, sort_keys=True)

        logger.info(f"Configuration saved to {path}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return self.model_dump(exclude_none=True)

    def merge_with(self, other: "AlphDataConfig") -> "AlphDataConfig":
        """
        Merge this configuration with another, with other taking precedence.

        Only values the other configuration explicitly set override ours, so
        merging a default instance is a no-op.
        """
        self_dict = self.to_dict()
        other_dict = other.model_dump(exclude_none=True, exclude_unset=True)

        def deep_merge(base: dict, overlay: dict) -> dict:
            """Recursively merge dictionaries."""
            result = base.copy()
            for key, value in overlay.items():
                if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                    result[key] = deep_merge(result[key], value)
                else:
                    result[key] = value
            return result

        return AlphDataConfig.from_dict(deep_merge(self_dict, other_dict))

    def setup_logging(self) -> None:
        """Configure logging based on the current settings."""
        from ..core.logging_config import setup_logging, create_module_filter

        console_filter = None
        if self.logging.module_levels:
            console_filter = create_module_filter(self.logging.module_levels)

        setup_logging(self.logging, console_filter)


def load_config(
    config_file: Optional[Union[str, Path]] = None,
    use_env: bool = True,
    env_prefix: str = "ALPHDATA_",
    configure_logging: bool = True,
) -> AlphDataConfig:
    """
    Load configuration using the standard precedence:
    1. Default configuration
    2. Environment variables (if use_env=True)
    3. Configuration file (if provided)

    Args:
        config_file: Optional path to YAML configuration file
        use_env: Whether to load from environment variables
        env_prefix: Prefix for environment variables
        configure_logging: Whether to install the loguru handlers

    Returns:
        AlphDataConfig instance
    """
    config = AlphDataConfig()

    if use_env:
        config = config.merge_with(AlphDataConfig.from_env(env_prefix))

    if config_file:
        config = config.merge_with(AlphDataConfig.from_yaml(config_file))

    if configure_logging:
        config.setup_logging()
    return config
