"""Asynchronous Amazon SES email client with SigV4 signing and retry.

This package sends single emails through the SES query API
(``Action=SendEmail``) without the AWS SDK:

- Hand-built AWS Signature Version 4 signing of every request
- Bounded retry with linear backoff and a fresh signature per attempt
- Uniform ``EmailResult`` outcome; sending never raises
- INI/environment configuration, Prometheus counters and a small CLI

Example:
    Basic usage::

        from ses_mailer import SesMailer, load_config

        mailer = SesMailer(load_config())
        result = await mailer.send({
            "to": ["student@example.com"],
            "subject": "Invoice available",
            "html": "<p>Your invoice is ready.</p>",
        })
"""

from .config_loader import SesConfig, load_config
from .models import EmailRequest, EmailResult
from .sender import SesApiError, SesMailer, send_email

__all__ = [
    "EmailRequest",
    "EmailResult",
    "SesApiError",
    "SesConfig",
    "SesMailer",
    "load_config",
    "send_email",
]
