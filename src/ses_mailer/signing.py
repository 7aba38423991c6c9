# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""AWS Signature Version 4 request signing.

This module builds every value needed to authenticate an HTTP request against
an AWS query API such as SES, following the four signing steps:

1. Canonical request (method, path, query, headers, payload hash)
2. String to sign (algorithm, timestamp, credential scope, request hash)
3. Signing key derived from the secret through an HMAC chain
4. Signature and ``Authorization`` header

The canonical request and string to sign are assembled by explicit string
concatenation. AWS recomputes the same bytes on its side, so field order and
newline placement must not change.

Example:
    Signing a form POST to SES::

        headers = sign_request(
            "POST",
            "https://email.us-east-1.amazonaws.com/",
            {"Content-Type": "application/x-www-form-urlencoded"},
            body,
            access_key_id="AKIA...",
            secret_key="...",
            region="us-east-1",
            service="ses",
        )
"""

from __future__ import annotations

import hashlib
import hmac
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from urllib.parse import urlsplit

ALGORITHM = "AWS4-HMAC-SHA256"
TERMINATOR = "aws4_request"

_SIGNATURE_RE = re.compile(r"Signature=[0-9a-fA-F]+")
_DEFAULT_PORTS = {"http": 80, "https": 443}


def sha256_hex(data: str | bytes) -> str:
    """Return the lowercase hex SHA-256 digest of ``data``.

    Strings are encoded as UTF-8; bytes are hashed as given.
    """
    if isinstance(data, str):
        data = data.encode("utf-8")
    return hashlib.sha256(data).hexdigest()


def hmac_sha256(key: str | bytes, data: str) -> bytes:
    """Return the raw HMAC-SHA256 of ``data`` keyed by ``key``.

    ``key`` may be a string (the initial ``"AWS4" + secret``) or the raw bytes
    produced by a previous step of the key chain.
    """
    if isinstance(key, str):
        key = key.encode("utf-8")
    return hmac.new(key, data.encode("utf-8"), hashlib.sha256).digest()


def derive_signing_key(secret: str, date_stamp: str, region: str, service: str) -> bytes:
    """Derive the SigV4 signing key for one day, region and service.

    Each step's output is the key of the next step::

        kDate    = HMAC("AWS4" + secret, date_stamp)
        kRegion  = HMAC(kDate, region)
        kService = HMAC(kRegion, service)
        kSigning = HMAC(kService, "aws4_request")
    """
    k_date = hmac_sha256("AWS4" + secret, date_stamp)
    k_region = hmac_sha256(k_date, region)
    k_service = hmac_sha256(k_region, service)
    return hmac_sha256(k_service, TERMINATOR)


def build_canonical_request(
    method: str,
    path: str,
    headers: dict[str, str],
    signed_header_names: list[str],
    payload_hash: str,
) -> str:
    """Assemble the canonical request string.

    Layout (one item per line)::

        METHOD
        /path
        <empty query string>
        name1:value1
        name2:value2
        <blank line closing the header block>
        name1;name2
        <payload hash>

    Args:
        method: HTTP method, e.g. "POST".
        path: URI path, "/" for the SES query API.
        headers: Header values keyed by name (any case).
        signed_header_names: Lowercase header names to sign, already sorted.
        payload_hash: Hex SHA-256 of the request body.
    """
    lowered = {name.lower(): value for name, value in headers.items()}

    # Every header line ends with "\n"; the "\n" appended below is the blank line.
    canonical_headers = ""
    for name in signed_header_names:
        canonical_headers += f"{name}:{lowered[name].strip()}\n"

    return (
        method + "\n"
        + path + "\n"
        + "" + "\n"  # query string
        + canonical_headers + "\n"
        + ";".join(signed_header_names) + "\n"
        + payload_hash
    )


def build_string_to_sign(
    algorithm: str,
    amz_date: str,
    credential_scope: str,
    canonical_request_hash: str,
) -> str:
    """Assemble the string to sign: four fields separated by newlines."""
    return (
        algorithm + "\n"
        + amz_date + "\n"
        + credential_scope + "\n"
        + canonical_request_hash
    )


def build_authorization_header(
    access_key_id: str,
    credential_scope: str,
    signed_header_names: list[str],
    signature: str,
) -> str:
    """Format the ``Authorization`` header value."""
    return (
        f"{ALGORITHM} Credential={access_key_id}/{credential_scope}, "
        f"SignedHeaders={';'.join(signed_header_names)}, "
        f"Signature={signature}"
    )


def redact_authorization(value: str) -> str:
    """Hide the signature of an ``Authorization`` header for logging.

    The ``Credential=`` part only carries the access key id and is kept.
    """
    return _SIGNATURE_RE.sub("Signature=***", value)


def canonical_host(url: str) -> str:
    """Return the ``Host`` header value for ``url``.

    The hostname is lowercased and the port is kept only when it is not the
    scheme's default, the same form HTTP clients put on the wire.
    """
    parts = urlsplit(url)
    host = parts.hostname or ""
    if ":" in host:
        host = f"[{host}]"
    port = parts.port
    if port is not None and port != _DEFAULT_PORTS.get(parts.scheme.lower()):
        host = f"{host}:{port}"
    return host


@dataclass(frozen=True)
class SigningContext:
    """Timestamp and scope of a single signing operation.

    Attributes:
        amz_date: ISO8601 basic timestamp, e.g. "20250115T120000Z".
        date_stamp: Date part of ``amz_date``, e.g. "20250115".
        region: AWS region identifier.
        service: AWS service identifier ("ses").
    """

    amz_date: str
    date_stamp: str
    region: str
    service: str

    @classmethod
    def from_datetime(cls, moment: datetime, region: str, service: str) -> SigningContext:
        """Build a context from a datetime, converted to UTC."""
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        moment = moment.astimezone(timezone.utc)
        return cls(
            amz_date=moment.strftime("%Y%m%dT%H%M%SZ"),
            date_stamp=moment.strftime("%Y%m%d"),
            region=region,
            service=service,
        )

    @property
    def credential_scope(self) -> str:
        return f"{self.date_stamp}/{self.region}/{self.service}/{TERMINATOR}"


def sign_request(
    method: str,
    url: str,
    headers: dict[str, str],
    body: str | bytes,
    *,
    access_key_id: str,
    secret_key: str,
    region: str,
    service: str,
    now: datetime | None = None,
) -> dict[str, str]:
    """Sign a request and return the headers to send with it.

    ``Host`` and ``X-Amz-Date`` are added to ``headers``; all headers passed
    in are signed. A new signing key is derived on every call.

    Args:
        method: HTTP method.
        url: Absolute request URL.
        headers: Extra headers to sign (e.g. Content-Type).
        body: Request body exactly as it will be sent.
        access_key_id: AWS access key id.
        secret_key: AWS secret access key.
        region: AWS region.
        service: AWS service identifier.
        now: Signing time; defaults to the current UTC time.

    Returns:
        The headers, including ``Authorization``.
    """
    context = SigningContext.from_datetime(now or datetime.now(timezone.utc), region, service)
    parts = urlsplit(url)

    request_headers = dict(headers)
    request_headers["Host"] = canonical_host(url)
    request_headers["X-Amz-Date"] = context.amz_date

    signed_header_names = sorted(name.lower() for name in request_headers)
    canonical_request = build_canonical_request(
        method.upper(),
        parts.path or "/",
        request_headers,
        signed_header_names,
        sha256_hex(body),
    )
    string_to_sign = build_string_to_sign(
        ALGORITHM,
        context.amz_date,
        context.credential_scope,
        sha256_hex(canonical_request),
    )
    signing_key = derive_signing_key(secret_key, context.date_stamp, region, service)
    signature = hmac.new(signing_key, string_to_sign.encode("utf-8"), hashlib.sha256).hexdigest()

    request_headers["Authorization"] = build_authorization_header(
        access_key_id, context.credential_scope, signed_header_names, signature
    )
    return request_headers
