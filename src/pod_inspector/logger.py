"""
Logging configuration for Pod Inspector
"""

import logging
import sys
from typing import Any, Dict

import structlog
from colorama import init as colorama_init

# Initialize colorama for cross-platform colored output
colorama_init()

NOISY_LOGGERS = ("kubernetes", "urllib3")


def setup_logging(debug: bool = False, log_format: str = "console") -> None:
    """Setup structured logging for the application"""
    level = logging.DEBUG if debug else logging.INFO

    # Configure structlog
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer() if log_format == "json"
            else structlog.dev.ConsoleRenderer(colors=True)
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Configure standard library logging
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level,
        force=True,
    )

    # Suppress verbose kubernetes client logs
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger instance"""
    return structlog.get_logger(name)


def log_startup(config_dict: Dict[str, Any], version: str) -> None:
    """Log application startup"""
    get_logger("pod-inspector").info(
        "Pod Inspector starting up",
        version=version,
        config=config_dict,
    )
