"""
Logging utilities.
Configures structured logging for the application.
"""

import logging
import os
import re
import sys
from typing import Any, Dict

import colorama
import structlog

from src.core.config import settings

EMAIL_REGEX = re.compile(r'\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Z|a-z]{2,}\b')


def mask_pii(text: str) -> str:
    """
    Mask email addresses in a string.
    Only applies masking if running in PRODUCTION environment.
    """
    if settings.api.environment != "production":
        return text

    if not text:
        return text

    return EMAIL_REGEX.sub('[EMAIL_REDACTED]', text)


class PIIMaskingProcessor:
    """
    Structlog processor that masks email addresses in log events.

    Auth providers sometimes hand us an email as the user id, so user_id
    values are masked like any other string field.
    """
    def __call__(self, logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
        if settings.api.environment != "production":
            return event_dict

        for key, value in event_dict.items():
            if isinstance(value, str):
                event_dict[key] = EMAIL_REGEX.sub('[EMAIL_REDACTED]', value)
        return event_dict


# FORCE_COLOR=true keeps colors even when piping to files
force_color = os.getenv("FORCE_COLOR", "false").lower() == "true"
colorama.init(autoreset=True, strip=False if force_color else None)


class ColoredConsoleRenderer:
    """
    Console renderer that colors structlog output in development.
    """

    LEVEL_COLORS = {
        'debug': colorama.Fore.CYAN,
        'info': colorama.Fore.GREEN,
        'warning': colorama.Fore.YELLOW,
        'error': colorama.Fore.RED,
        'critical': colorama.Fore.RED + colorama.Style.BRIGHT,
    }

    def __call__(self, logger, method_name, event_dict):
        level = event_dict.get('level', 'info').lower()
        color = self.LEVEL_COLORS.get(level, colorama.Fore.WHITE)

        timestamp = event_dict.pop('timestamp', '')
        logger_name = event_dict.pop('logger', '')
        event = event_dict.pop('event', '')

        parts = []
        if timestamp:
            parts.append(f"{colorama.Fore.WHITE}{timestamp}")
        if logger_name:
            parts.append(f"{colorama.Fore.MAGENTA}{logger_name}")
        parts.append(f"{color}{level.upper()}")
        parts.append(f"{color}{event}")

        for k, v in event_dict.items():
            key_style = colorama.Fore.CYAN + colorama.Style.DIM
            eq_style = colorama.Fore.WHITE + colorama.Style.DIM
            val_style = colorama.Fore.GREEN

            parts.append(f"{key_style}{k}{eq_style}={val_style}{v}{colorama.Style.RESET_ALL}")

        return ' '.join(parts) + colorama.Style.RESET_ALL


_configured = False


def configure_logging():
    """
    Configure structured logging for the application.
    """
    global _configured
    if _configured:
        return

    shared_processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        PIIMaskingProcessor(),
    ]

    if settings.api.environment == "development" or settings.api.debug:
        renderer = ColoredConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=shared_processors + [renderer],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.log.level.upper()),
    )

    _configured = True


def get_logger(name: str) -> Any:
    """
    Get a structured logger instance.
    Automatically configures logging if not yet configured.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Structured logger instance
    """
    if not _configured:
        configure_logging()
    return structlog.get_logger(name)
