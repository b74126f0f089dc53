"""
Logging configuration for alphdata.

Installs loguru handlers for console and rotating file output, with an
optional per-module level filter.
"""

from loguru import logger
import os
import sys
from typing import Callable, Dict, Optional


def format_record(record: Dict) -> str:
    """
    Clean console format: the message only, coloured by level.
    """
    # Escape curly braces so loguru does not treat payload dumps as fields
    message = record["message"].replace("{", "{{").replace("}", "}}")
    level = record["level"].name

    if level in ("DEBUG", "TRACE"):
        return f"<dim>{message}</dim>\n"
    if level in ("ERROR", "CRITICAL"):
        return f"<red>{message}</red>\n"
    if level == "WARNING":
        return f"<yellow>{message}</yellow>\n"
    if level == "SUCCESS":
        return f"<green><bold>{message}</bold></green>\n"
    return f"{message}\n"


def get_console_format(style: str = "clean"):
    """Get console format based on style preference."""
    if style == "timestamp":
        return "<dim>{time:HH:mm:ss}</dim> | <level>{message}</level>"
    elif style == "detailed":
        return "<green>{time:HH:mm:ss}</green> | <level>{level: <5}</level> | <dim>{name}</dim> | <level>{message}</level>"
    else:
        return format_record


def setup_logging(config: 'LoggingConfig', console_filter: Optional[Callable] = None):
    """
    Set up logging handlers.

    Args:
        config: LoggingConfig instance
        console_filter: Optional filter function for console output
    """
    logger.remove()

    if config.enable_console:
        logger.add(
            sys.stdout,
            format=get_console_format(config.console_style),
            level=config.level,
            colorize=True,
            filter=console_filter,
            backtrace=True,
            diagnose=True,
            enqueue=True,
        )

    if config.enable_file:
        log_path = config.get_log_file_path()
        if log_path:
            log_path.parent.mkdir(parents=True, exist_ok=True)

            file_format = (
                "{time:YYYY-MM-DD HH:mm:ss.SSS} | "
                "{level: <8} | "
                "{name: <36} | "
                "{function: <24} | "
                "{message}"
            )

            # Only 'w' (truncate) or 'a' (append) are meaningful here
            log_mode = os.getenv('ALPHDATA_LOG_FILE_MODE', 'a').lower()
            if log_mode not in ['w', 'a']:
                log_mode = 'a'

            logger.add(
                str(log_path),
                format=file_format,
                level=config.level,
                rotation=config.file_rotation,
                retention=config.file_retention,
                compression="zip",
                backtrace=True,
                diagnose=False,  # No variable values in persisted logs
                enqueue=True,
                mode=log_mode,
            )

    logger.debug(f"Logging configured: level={config.level}")


def create_module_filter(module_levels: Dict[str, str]):
    """
    Create a filter function based on module-specific log levels.

    Args:
        module_levels: Dict mapping module name prefixes to log levels

    Returns:
        Filter function for loguru
    """
    def filter_func(record):
        module = record["name"] or ""

        for pattern, level in module_levels.items():
            if module.startswith(pattern):
                return record["level"].no >= logger.level(level.upper()).no

        return True

    return filter_func
