"""Logging utilities for the SES mailer.

This module provides a centralized logging helper. The actual logging setup
(level, handlers, format) is configured via ``logging.basicConfig()`` in the
command-line entry point to avoid duplicate handlers.

Example:
    Typical usage in a module::

        from ses_mailer.logger import get_logger

        logger = get_logger("SesMailer")
        logger.info("Email sent")
"""

import logging


def get_logger(name: str = "SesMailer") -> logging.Logger:
    """Retrieve a logger instance.

    Returns a standard library logger with the specified name. Handlers and
    formatters are left to the application entry point.

    Args:
        name: The logger name. Defaults to "SesMailer".

    Returns:
        A ``logging.Logger`` instance bound to the given name.
    """
    return logging.getLogger(name)
