"""
Utility functions for working with configurations.
"""

import os
from pathlib import Path
from typing import Optional, Dict, Any
from loguru import logger

from .config import AlphDataConfig, load_config

def find_config_file() -> Optional[Path]:
    """
    Find configuration file using the standard search paths.

    Search order:
    1. $ALPHDATA_CONFIG
    2. ./alphdata.yaml
    3. ./config/alphdata.yaml
    4. ~/.alphdata/config.yaml

    Returns:
        Path to configuration file if found, None otherwise
    """
    search_paths = []
    env_path = os.getenv("ALPHDATA_CONFIG")
    if env_path:
        search_paths.append(Path(env_path))
    search_paths.extend([
        Path("./alphdata.yaml"),
        Path("./config/alphdata.yaml"),
        Path.home() / ".alphdata" / "config.yaml",
    ])

    for path in search_paths:
        if path.exists() and path.is_file():
            logger.info(f"Found configuration file: {path}")
            return path

    logger.debug("No configuration file found, using environment variables and defaults")
    return None

def auto_load_config(configure_logging: bool = True) -> AlphDataConfig:
    """
    Automatically load configuration using standard search and precedence.

    Returns:
        AlphDataConfig instance
    """
    config_file = find_config_file()
    return load_config(config_file=config_file, use_env=True, configure_logging=configure_logging)

def validate_config(config: AlphDataConfig) -> Dict[str, Any]:
    """
    Check a configuration for settings that are legal but likely unintended.

    Args:
        config: Configuration to validate

    Returns:
        Dictionary with validation results
    """
    issues = []
    warnings = []

    if config.rate_limit.max_concurrent > 10:
        warnings.append(
            f"High concurrency ({config.rate_limit.max_concurrent}) is likely to trip the public node's rate limits"
        )

    if config.rate_limit.min_delay_ms == 0:
        warnings.append("min_delay_ms is 0; requests will start back to back")

    if config.cache.storage_type == "file":
        cache_dir = config.cache.get_cache_dir()
        try:
            cache_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            issues.append(f"Cannot create cache directory {cache_dir}: {e}")

    if config.history.tolerance <= 0:
        issues.append("history.tolerance must be positive")

    if config.logging.enable_file and config.logging.file_path:
        log_dir = Path(config.logging.file_path).parent
        if not log_dir.exists():
            try:
                log_dir.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                warnings.append(f"Cannot create log directory {log_dir}: {e}")

    return {
        "valid": len(issues) == 0,
        "issues": issues,
        "warnings": warnings
    }
