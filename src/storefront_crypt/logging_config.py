"""
Centralized logging configuration.

Library modules only call ``logging.getLogger(__name__)``. Applications (and
the command line tool) call :func:`setup_logging` once at startup to attach
a stderr handler to the ``storefront_crypt`` logger, with secret masking so
that key material and order PII never reach log output.
"""

import logging
import re
import sys
from typing import Pattern

from .config import StorefrontCryptConfig

PACKAGE_LOGGER = "storefront_crypt"

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class SecretMaskingFilter(logging.Filter):
    """
    Logging filter that masks sensitive data in log records.

    Masks:
    - Long hex strings (encryption secrets, IVs, ciphertext)
    - Encryption key assignments
    - Email addresses
    - Street addresses
    """

    PATTERNS: list[tuple[Pattern, str]] = [
        (re.compile(r'(encryption[_-]?key["\']?\s*[:=]\s*["\']?)([^\s"\']+)(["\']?)', re.IGNORECASE),
         r'\1[REDACTED_KEY]\3'),
        (re.compile(r'\b[a-fA-F0-9]{32,}\b'), '[REDACTED_HEX]'),
        (re.compile(r'\b([a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,})\b'), '[REDACTED_EMAIL]'),
        (re.compile(r'(address\d?["\']?\s*[:=]\s*["\']?)([^"\']{6,})(["\']?)', re.IGNORECASE),
         r'\1[REDACTED_ADDRESS]\3'),
    ]

    @classmethod
    def mask(cls, text: str) -> str:
        for pattern, replacement in cls.PATTERNS:
            text = pattern.sub(replacement, text)
        return text

    def filter(self, record: logging.LogRecord) -> bool:
        """
        Mask secrets in the message and its string arguments.

        Returns:
            True (records are modified, never dropped)
        """
        if record.msg:
            record.msg = self.mask(str(record.msg))

        if record.args:
            if isinstance(record.args, dict):
                record.args = {
                    k: self.mask(v) if isinstance(v, str) else v
                    for k, v in record.args.items()
                }
            else:
                record.args = tuple(
                    self.mask(arg) if isinstance(arg, str) else arg
                    for arg in record.args
                )

        return True


def setup_logging(level: str | None = None, mask_secrets: bool | None = None) -> logging.Logger:
    """
    Initialize logging for the storefront_crypt package.

    Calling this more than once replaces the previously installed handler.

    Args:
        level: Log level name; defaults to ``logging.level`` from configuration
        mask_secrets: Install the masking filter; defaults to ``logging.mask_secrets``

    Returns:
        The configured package logger
    """
    if level is None:
        level = StorefrontCryptConfig.get_log_level()
    if mask_secrets is None:
        mask_secrets = bool(StorefrontCryptConfig.get("logging.mask_secrets", True))

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in list(logger.handlers):
        if getattr(handler, "_storefront_crypt", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    if mask_secrets:
        handler.addFilter(SecretMaskingFilter())
    handler._storefront_crypt = True
    logger.addHandler(handler)

    return logger
