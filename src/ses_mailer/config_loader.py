# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Configuration loader for the SES mailer.

Settings come from an optional INI file with environment variables taking
precedence. The configuration is loaded once by the application and passed
to ``SesMailer`` explicitly.

Example:
    Configuration file format (config.ini)::

        [ses]
        access_key_id = AKIA...
        secret_access_key = ...
        region = eu-west-1
        from_email = noreply@example.com
        from_name = Example

        # Optional
        endpoint_url = http://localhost:4566/
        max_attempts = 3
        retry_base_delay = 1.0
        request_timeout = 30

    Environment variables (override the file):
        SES_MAILER_CONFIG - Path to the INI file
        AWS_ACCESS_KEY_ID, AWS_SECRET_ACCESS_KEY - Credentials
        AWS_SES_REGION - Region (default: us-east-1)
        AWS_SES_FROM_EMAIL - Sender address (default: noreply@tutor-flow.app)
        AWS_SES_FROM_NAME - Sender display name (default: Tutor Flow)
        AWS_SES_ENDPOINT - Endpoint URL override
        SES_MAILER_MAX_ATTEMPTS - Total attempts per send (default: 3)
        SES_MAILER_RETRY_DELAY - Backoff unit in seconds (default: 1.0)
        SES_MAILER_REQUEST_TIMEOUT - Per-attempt timeout in seconds (default: 30)

    Loading::

        config = load_config()
        mailer = SesMailer(config)
"""

from __future__ import annotations

import configparser
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .logger import get_logger

DEFAULT_REGION = "us-east-1"
DEFAULT_FROM_EMAIL = "noreply@tutor-flow.app"
DEFAULT_FROM_NAME = "Tutor Flow"
DEFAULT_REQUEST_TIMEOUT = 30.0

logger = get_logger("SesConfigLoader")

# INI option -> environment variable
_ENV_KEYS = {
    "access_key_id": "AWS_ACCESS_KEY_ID",
    "secret_access_key": "AWS_SECRET_ACCESS_KEY",
    "region": "AWS_SES_REGION",
    "from_email": "AWS_SES_FROM_EMAIL",
    "from_name": "AWS_SES_FROM_NAME",
    "endpoint_url": "AWS_SES_ENDPOINT",
    "max_attempts": "SES_MAILER_MAX_ATTEMPTS",
    "retry_base_delay": "SES_MAILER_RETRY_DELAY",
    "request_timeout": "SES_MAILER_REQUEST_TIMEOUT",
}


@dataclass
class SesConfig:
    """Credentials, sender identity and retry settings.

    Attributes:
        access_key_id: AWS access key id.
        secret_access_key: AWS secret access key. Never shown in repr.
        region: SES region.
        from_email: Sender address.
        from_name: Sender display name.
        endpoint_url: Endpoint override (e.g. a local SES emulator).
        max_attempts: Total attempts per send.
        retry_base_delay: Linear backoff unit in seconds.
        request_timeout: Per-attempt timeout in seconds.
    """

    access_key_id: str | None = None
    secret_access_key: str | None = field(default=None, repr=False)
    region: str = DEFAULT_REGION
    from_email: str = DEFAULT_FROM_EMAIL
    from_name: str = DEFAULT_FROM_NAME
    endpoint_url: str | None = None
    max_attempts: int = 3
    retry_base_delay: float = 1.0
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT

    @property
    def has_credentials(self) -> bool:
        return bool(self.access_key_id and self.secret_access_key)

    @property
    def source_address(self) -> str:
        """Sender in "Name <email>" form."""
        return f"{self.from_name} <{self.from_email}>"

    @property
    def endpoint(self) -> str:
        """SES query API URL for the configured region."""
        if self.endpoint_url:
            return self.endpoint_url
        return f"https://email.{self.region}.amazonaws.com/"

    def masked(self) -> dict[str, Any]:
        """Settings for display, with the secret replaced by ``***``."""
        return {
            "access_key_id": self.access_key_id,
            "secret_access_key": "***" if self.secret_access_key else None,
            "region": self.region,
            "from_email": self.from_email,
            "from_name": self.from_name,
            "endpoint": self.endpoint,
            "max_attempts": self.max_attempts,
            "retry_base_delay": self.retry_base_delay,
            "request_timeout": self.request_timeout,
        }


def load_config(
    config_path: str | None = None,
    environ: Mapping[str, str] | None = None,
) -> SesConfig:
    """Load ``SesConfig`` from an INI file and the environment.

    Args:
        config_path: INI file path. Falls back to ``SES_MAILER_CONFIG``; when
            neither is set only the environment is used.
        environ: Environment mapping, ``os.environ`` by default.

    Returns:
        SesConfig with defaults for any missing value.

    Raises:
        FileNotFoundError: If an explicit config path does not exist.
    """
    env = os.environ if environ is None else environ
    config_path = config_path or env.get("SES_MAILER_CONFIG")

    parser = configparser.ConfigParser()
    if config_path:
        if not Path(config_path).exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        parser.read(config_path)
        if not parser.has_section("ses"):
            logger.info("No [ses] section in %s, using environment and defaults", config_path)

    def get(option: str, default: str | None = None) -> str | None:
        value = env.get(_ENV_KEYS[option])
        if value is None and parser.has_option("ses", option):
            value = parser.get("ses", option)
        if value is None:
            return default
        value = value.strip()
        return value or default

    def get_int(option: str, default: int, minimum: int | None = None) -> int:
        value = get(option)
        if value is None:
            return default
        try:
            number = int(value)
        except ValueError:
            logger.warning("Invalid int for %s, using default %s", option, default)
            return default
        if minimum is not None and number < minimum:
            logger.warning("%s must be at least %s, using default %s", option, minimum, default)
            return default
        return number

    def get_float(option: str, default: float, minimum: float | None = None) -> float:
        value = get(option)
        if value is None:
            return default
        try:
            number = float(value)
        except ValueError:
            logger.warning("Invalid float for %s, using default %s", option, default)
            return default
        if minimum is not None and number < minimum:
            logger.warning("%s must be at least %s, using default %s", option, minimum, default)
            return default
        return number

    return SesConfig(
        access_key_id=get("access_key_id"),
        secret_access_key=get("secret_access_key"),
        region=get("region", DEFAULT_REGION),
        from_email=get("from_email", DEFAULT_FROM_EMAIL),
        from_name=get("from_name", DEFAULT_FROM_NAME),
        endpoint_url=get("endpoint_url"),
        max_attempts=get_int("max_attempts", 3, minimum=1),
        retry_base_delay=get_float("retry_base_delay", 1.0, minimum=0.0),
        request_timeout=get_float("request_timeout", DEFAULT_REQUEST_TIMEOUT),
    )
