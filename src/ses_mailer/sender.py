# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Retrying email sender for the Amazon SES query API.

This module provides the SesMailer class, which sends a single email through
``Action=SendEmail`` over HTTPS with a SigV4-signed form POST:

- Input checks before any network I/O (terminal, never retried)
- A freshly signed request on every attempt (new timestamp, new key chain)
- Linear backoff between attempts (``attempt * base_delay``)
- A uniform ``EmailResult``; ``send`` never raises

Example:
    Sending a notification::

        from ses_mailer.config_loader import load_config
        from ses_mailer.sender import SesMailer

        mailer = SesMailer(load_config())
        result = await mailer.send({
            "to": "student@example.com",
            "subject": "Class confirmed",
            "html": "<p>See you on Monday</p>",
        })
        if not result.success:
            logger.warning("Notification not sent: %s", result.error)
"""

from __future__ import annotations

import asyncio
import re
from collections.abc import Awaitable, Callable, Mapping
from datetime import datetime, timezone
from typing import Any
from urllib.parse import quote

import aiohttp
from pydantic import ValidationError

from .config_loader import SesConfig, load_config
from .logger import get_logger
from .models import UNKNOWN_MESSAGE_ID, EmailRequest, EmailResult
from .prometheus import SesMetrics
from .retry import RetryStrategy
from .signing import redact_authorization, sign_request

SERVICE = "ses"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
UNKNOWN_ERROR = "Unknown error sending email"
CREDENTIALS_ERROR = "AWS credentials not configured"

_MESSAGE_ID_RE = re.compile(r"<MessageId>\s*(.*?)\s*</MessageId>", re.DOTALL)


class SesApiError(RuntimeError):
    """Raised when SES answers with a non-2xx status."""

    def __init__(self, status: int, body: str):
        super().__init__(f"SES API error: {status} - {body}")
        self.status = status
        self.body = body


class SesTransportError(RuntimeError):
    """Raised when an attempt does not get any response in time."""


def _encode(value: str) -> str:
    return quote(value, safe="")


def build_form_body(request: EmailRequest, source: str) -> str:
    """Build the URL-encoded ``SendEmail`` form body.

    Every value is percent-encoded on its own before being joined, so
    ``&``, ``=`` and ``+`` inside a field cannot leak into the form structure.
    """
    body = "Action=SendEmail"
    body += "&Source=" + _encode(source)
    for index, address in enumerate(request.to, start=1):
        body += f"&Destination.ToAddresses.member.{index}=" + _encode(address)
    body += "&Message.Subject.Data=" + _encode(request.subject)
    body += "&Message.Subject.Charset=UTF-8"
    body += "&Message.Body.Html.Data=" + _encode(request.html)
    body += "&Message.Body.Html.Charset=UTF-8"
    if request.text:
        body += "&Message.Body.Text.Data=" + _encode(request.text)
        body += "&Message.Body.Text.Charset=UTF-8"
    if request.reply_to:
        body += "&ReplyToAddresses.member.1=" + _encode(request.reply_to)
    return body


def parse_message_id(body: str) -> str:
    """Extract ``<MessageId>`` from a SendEmail response, or "unknown"."""
    match = _MESSAGE_ID_RE.search(body or "")
    if match and match.group(1):
        return match.group(1)
    return UNKNOWN_MESSAGE_ID


def _describe_validation_error(exc: ValidationError) -> str:
    error = exc.errors()[0]
    location = ".".join(str(part) for part in error.get("loc", ()))
    if location:
        return f"Invalid email request: {location}: {error['msg']}"
    return f"Invalid email request: {error['msg']}"


class SesMailer:
    """Send emails through SES with bounded automatic retry.

    The mailer holds only read-only configuration, so one instance can serve
    any number of concurrent ``send`` calls.

    Attributes:
        config: Credentials, sender identity and retry settings.
        retry: Attempt cap and backoff policy.
        metrics: Optional Prometheus counters.
    """

    def __init__(
        self,
        config: SesConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        metrics: SesMetrics | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], datetime] | None = None,
        retry: RetryStrategy | None = None,
    ):
        """Initialize the mailer.

        Args:
            config: SES configuration.
            session: Shared aiohttp session. When omitted a session is opened
                for each send and closed afterwards.
            metrics: Optional metrics collector.
            sleep: Coroutine used for the backoff wait.
            clock: Returns the signing time; current UTC time by default.
            retry: Retry policy; built from ``config`` when omitted.
        """
        self.config = config
        self.metrics = metrics
        self.retry = retry or RetryStrategy(config.max_attempts, config.retry_base_delay)
        self.logger = get_logger("SesMailer")
        self._session = session
        self._sleep = sleep
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def send(self, request: EmailRequest | Mapping[str, Any]) -> EmailResult:
        """Send one email.

        Args:
            request: EmailRequest or a mapping with ``to``, ``subject``,
                ``html`` and optional ``text`` / ``reply_to`` (``replyTo``).

        Returns:
            ``EmailResult.ok`` with the SES message id, or ``EmailResult.fail``
            with the validation error or the last attempt's error message.
        """
        if not isinstance(request, EmailRequest):
            try:
                request = EmailRequest.model_validate(request)
            except ValidationError as exc:
                return self._reject(_describe_validation_error(exc))

        error = request.validation_error()
        if error is None and not self.config.has_credentials:
            error = CREDENTIALS_ERROR
        if error is not None:
            return self._reject(error)

        try:
            if self._session is not None:
                return await self._send_with_retries(self._session, request)
            async with aiohttp.ClientSession() as session:
                return await self._send_with_retries(session, request)
        except Exception as exc:
            # Session setup/teardown failures; attempts handle their own errors.
            self.logger.exception("Unexpected error sending email to %s", request.to)
            return EmailResult.fail(str(exc) or UNKNOWN_ERROR)

    def _reject(self, error: str) -> EmailResult:
        self.logger.warning("Email rejected before sending: %s", error)
        if self.metrics:
            self.metrics.inc_validation_error()
        return EmailResult.fail(error, attempts=0)

    async def _send_with_retries(self, session: aiohttp.ClientSession, request: EmailRequest) -> EmailResult:
        total = self.retry.max_attempts
        last_error: Exception | None = None

        for attempt in self.retry.attempts():
            self.logger.info(
                "Sending email (attempt %d/%d) to=%s subject=%r",
                attempt,
                total,
                request.to,
                request.subject,
            )
            try:
                message_id = await self._attempt(session, request)
            except Exception as exc:
                last_error = exc
                if self.metrics:
                    self.metrics.inc_failed_attempt(self.config.region)
                self.logger.warning(
                    "Attempt %d/%d failed for %s: %s",
                    attempt,
                    total,
                    request.to,
                    exc,
                )
                if self.retry.should_retry(attempt):
                    delay = self.retry.calculate_delay(attempt)
                    self.logger.info("Waiting %.1fs before retry", delay)
                    await self._sleep(delay)
                continue

            self.logger.info("Email sent to %s, message id %s", request.to, message_id)
            if self.metrics:
                self.metrics.inc_sent(self.config.region)
            return EmailResult.ok(message_id, attempts=attempt)

        error = (str(last_error) if last_error is not None else "") or UNKNOWN_ERROR
        self.logger.error("All %d attempts failed for %s: %s", total, request.to, error)
        if self.metrics:
            self.metrics.inc_error(self.config.region)
        return EmailResult.fail(error, attempts=total)

    async def _attempt(self, session: aiohttp.ClientSession, request: EmailRequest) -> str:
        """Sign and issue one request; return the message id."""
        body = build_form_body(request, self.config.source_address)
        url = self.config.endpoint
        headers = sign_request(
            "POST",
            url,
            {"Content-Type": FORM_CONTENT_TYPE},
            body,
            access_key_id=self.config.access_key_id,
            secret_key=self.config.secret_access_key,
            region=self.config.region,
            service=SERVICE,
            now=self._clock(),
        )
        self.logger.debug("POST %s %s", url, redact_authorization(headers["Authorization"]))

        timeout = self.config.request_timeout
        try:
            return await asyncio.wait_for(self._post(session, url, headers, body), timeout=timeout)
        except asyncio.TimeoutError as exc:
            raise SesTransportError(f"SES request timed out after {timeout}s") from exc

    async def _post(self, session: aiohttp.ClientSession, url: str, headers: dict[str, str], body: str) -> str:
        # The signed Host goes out as-is so the server hashes the same value.
        async with session.post(url, data=body.encode("utf-8"), headers=headers) as response:
            text = await response.text()
            if not 200 <= response.status < 300:
                raise SesApiError(response.status, text)
            return parse_message_id(text)


async def send_email(
    request: EmailRequest | Mapping[str, Any],
    config: SesConfig | None = None,
    **kwargs: Any,
) -> EmailResult:
    """Send one email with a throwaway ``SesMailer``.

    Args:
        request: The email to send.
        config: SES configuration; loaded with ``load_config()`` when omitted.
        **kwargs: Forwarded to ``SesMailer``.
    """
    try:
        mailer = SesMailer(config if config is not None else load_config(), **kwargs)
    except (FileNotFoundError, ValueError) as exc:
        get_logger("SesMailer").error("Invalid SES configuration: %s", exc)
        return EmailResult.fail(str(exc))
    return await mailer.send(request)
