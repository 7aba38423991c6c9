# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Pydantic models for the SES mailer.

Models:
    - EmailRequest: One outbound email as supplied by the caller
    - EmailResult: Uniform outcome of a send (success or failure)
"""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

UNKNOWN_MESSAGE_ID = "unknown"


class EmailRequest(BaseModel):
    """Payload for a single email.

    Empty values are accepted here; ``SesMailer.send`` checks them in a fixed
    order so every missing field reports its own error.

    Attributes:
        to: Recipient address or list of addresses.
        subject: Subject line.
        html: HTML body.
        text: Optional plain-text alternative.
        reply_to: Optional Reply-To address.
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    to: Annotated[
        list[str],
        Field(default_factory=list, description="Recipient addresses")
    ]
    subject: Annotated[
        str,
        Field(default="", description="Subject line")
    ]
    html: Annotated[
        str,
        Field(default="", description="HTML body")
    ]
    text: Annotated[
        str | None,
        Field(default=None, description="Plain-text alternative body")
    ]
    reply_to: Annotated[
        str | None,
        Field(default=None, alias="replyTo", description="Reply-To address")
    ]

    @field_validator("to", mode="before")
    @classmethod
    def normalize_recipients(cls, v: Any) -> list[str]:
        """Accept a single address or a list. Addresses are kept as given."""
        if v is None or v == "":
            return []
        if isinstance(v, str):
            return [v]
        return v

    def validation_error(self) -> str | None:
        """Return the first precondition failure, or None if sendable."""
        if not any(addr.strip() for addr in self.to):
            return "No recipient specified"
        if not self.subject:
            return "Subject is required"
        if not self.html:
            return "HTML content is required"
        return None


class EmailResult(BaseModel):
    """Outcome of a send.

    Exactly one of ``message_id`` (success) or ``error`` (failure) is set.
    Callers branch on ``success``.

    Attributes:
        success: Whether SES accepted the message.
        message_id: SES message id, or "unknown" if the response lacked one.
        error: Error text of the validation failure or last failed attempt.
        attempts: Number of HTTP attempts made (0 if rejected before I/O).
    """

    model_config = ConfigDict(frozen=True)

    success: bool
    message_id: str | None = None
    error: str | None = None
    attempts: Annotated[int, Field(default=0, ge=0)]

    @model_validator(mode="after")
    def check_variant(self) -> EmailResult:
        if self.success and (self.message_id is None or self.error is not None):
            raise ValueError("successful result requires message_id and no error")
        if not self.success and (self.error is None or self.message_id is not None):
            raise ValueError("failed result requires error and no message_id")
        return self

    @classmethod
    def ok(cls, message_id: str, attempts: int = 1) -> EmailResult:
        return cls(success=True, message_id=message_id, attempts=attempts)

    @classmethod
    def fail(cls, error: str, attempts: int = 0) -> EmailResult:
        return cls(success=False, error=error, attempts=attempts)
