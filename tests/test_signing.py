# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Tests for SigV4 signing helpers."""

from datetime import datetime, timedelta, timezone

import pytest

from ses_mailer.signing import (
    ALGORITHM,
    SigningContext,
    build_authorization_header,
    build_canonical_request,
    build_string_to_sign,
    canonical_host,
    derive_signing_key,
    hmac_sha256,
    redact_authorization,
    sha256_hex,
    sign_request,
)

# Credentials used by the published AWS SigV4 examples.
EXAMPLE_KEY_ID = "AKIDEXAMPLE"
EXAMPLE_SECRET = "wJalrXUtnFEMI/K7MDENG+bPxRfiCYEXAMPLEKEY"
EMPTY_SHA256 = "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"


class TestPrimitives:
    """Tests for hashing and HMAC helpers."""

    def test_sha256_of_empty_string(self):
        assert sha256_hex("") == EMPTY_SHA256

    def test_sha256_accepts_bytes(self):
        assert sha256_hex(b"abc") == sha256_hex("abc")

    def test_sha256_encodes_utf8(self):
        assert sha256_hex("café") == sha256_hex("café".encode("utf-8"))

    def test_hmac_accepts_str_and_bytes_keys(self):
        assert hmac_sha256("key", "data") == hmac_sha256(b"key", "data")
        assert len(hmac_sha256(b"key", "data")) == 32


class TestDeriveSigningKey:
    """Tests for the kDate -> kSigning chain."""

    def test_matches_aws_documented_example(self):
        key = derive_signing_key(EXAMPLE_SECRET, "20120215", "us-east-1", "iam")
        assert key.hex() == "f4780e2d9f65fa895f9c67b32ce1baf0b0d8a43505a000a1a9e090d414db404d"

    def test_chain_uses_previous_output_as_key(self):
        k_date = hmac_sha256("AWS4secret", "20250115")
        k_region = hmac_sha256(k_date, "eu-west-1")
        k_service = hmac_sha256(k_region, "ses")
        expected = hmac_sha256(k_service, "aws4_request")
        assert derive_signing_key("secret", "20250115", "eu-west-1", "ses") == expected

    def test_deterministic(self):
        first = derive_signing_key("secret", "20250115", "us-east-1", "ses")
        second = derive_signing_key("secret", "20250115", "us-east-1", "ses")
        assert first == second

    def test_depends_on_date(self):
        first = derive_signing_key("secret", "20250115", "us-east-1", "ses")
        second = derive_signing_key("secret", "20250116", "us-east-1", "ses")
        assert first != second


class TestCanonicalRequest:
    """Tests for canonical request layout."""

    def test_exact_layout(self):
        canonical = build_canonical_request(
            "POST",
            "/",
            {
                "Content-Type": "application/x-www-form-urlencoded",
                "Host": "email.us-east-1.amazonaws.com",
                "X-Amz-Date": "20250115T120000Z",
            },
            ["content-type", "host", "x-amz-date"],
            EMPTY_SHA256,
        )
        assert canonical == (
            "POST\n"
            "/\n"
            "\n"
            "content-type:application/x-www-form-urlencoded\n"
            "host:email.us-east-1.amazonaws.com\n"
            "x-amz-date:20250115T120000Z\n"
            "\n"
            "content-type;host;x-amz-date\n"
            + EMPTY_SHA256
        )

    def test_header_values_are_trimmed(self):
        canonical = build_canonical_request("GET", "/", {"Host": "  example.com "}, ["host"], EMPTY_SHA256)
        assert "host:example.com\n" in canonical


class TestStringToSign:
    """Tests for string-to-sign assembly."""

    def test_layout(self):
        result = build_string_to_sign(ALGORITHM, "20250115T120000Z", "20250115/us-east-1/ses/aws4_request", "abc")
        assert result == "AWS4-HMAC-SHA256\n20250115T120000Z\n20250115/us-east-1/ses/aws4_request\nabc"

    def test_deterministic(self):
        args = (ALGORITHM, "20250115T120000Z", "20250115/us-east-1/ses/aws4_request", sha256_hex("x"))
        assert build_string_to_sign(*args) == build_string_to_sign(*args)


class TestAuthorizationHeader:
    """Tests for header formatting and redaction."""

    def test_format(self):
        header = build_authorization_header(
            "AKID", "20250115/us-east-1/ses/aws4_request", ["content-type", "host", "x-amz-date"], "deadbeef"
        )
        assert header == (
            "AWS4-HMAC-SHA256 Credential=AKID/20250115/us-east-1/ses/aws4_request, "
            "SignedHeaders=content-type;host;x-amz-date, Signature=deadbeef"
        )

    def test_redaction_keeps_credential(self):
        header = build_authorization_header("AKID", "20250115/us-east-1/ses/aws4_request", ["host"], "0a1b2c")
        redacted = redact_authorization(header)
        assert "0a1b2c" not in redacted
        assert "Signature=***" in redacted
        assert "Credential=AKID/20250115" in redacted


class TestSigningContext:
    """Tests for timestamps and credential scope."""

    def test_from_utc_datetime(self):
        ctx = SigningContext.from_datetime(datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc), "us-east-1", "ses")
        assert ctx.amz_date == "20250115T120000Z"
        assert ctx.date_stamp == "20250115"
        assert ctx.credential_scope == "20250115/us-east-1/ses/aws4_request"

    def test_converts_to_utc(self):
        moment = datetime(2025, 1, 16, 1, 30, 0, tzinfo=timezone(timedelta(hours=3)))
        ctx = SigningContext.from_datetime(moment, "us-east-1", "ses")
        assert ctx.amz_date == "20250115T223000Z"
        assert ctx.date_stamp == "20250115"


class TestSignRequest:
    """Tests against the AWS SigV4 test suite."""

    def test_get_vanilla_vector(self):
        headers = sign_request(
            "GET",
            "https://example.amazonaws.com/",
            {},
            "",
            access_key_id=EXAMPLE_KEY_ID,
            secret_key=EXAMPLE_SECRET,
            region="us-east-1",
            service="service",
            now=datetime(2015, 8, 30, 12, 36, 0, tzinfo=timezone.utc),
        )
        assert headers["X-Amz-Date"] == "20150830T123600Z"
        assert headers["Host"] == "example.amazonaws.com"
        assert headers["Authorization"] == (
            "AWS4-HMAC-SHA256 Credential=AKIDEXAMPLE/20150830/us-east-1/service/aws4_request, "
            "SignedHeaders=host;x-amz-date, "
            "Signature=5fa00fa31553b73ebf1942676e86291e8372ff2a2260956d9b8aae1d763fbf31"
        )

    def test_ses_form_post_signs_expected_headers(self):
        now = datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc)
        kwargs = dict(
            access_key_id="AKID",
            secret_key="secret",
            region="eu-west-1",
            service="ses",
            now=now,
        )
        headers = sign_request(
            "POST",
            "https://email.eu-west-1.amazonaws.com/",
            {"Content-Type": "application/x-www-form-urlencoded"},
            "Action=SendEmail",
            **kwargs,
        )
        assert "SignedHeaders=content-type;host;x-amz-date," in headers["Authorization"]
        assert "Credential=AKID/20250115/eu-west-1/ses/aws4_request" in headers["Authorization"]

        again = sign_request(
            "POST",
            "https://email.eu-west-1.amazonaws.com/",
            {"Content-Type": "application/x-www-form-urlencoded"},
            "Action=SendEmail",
            **kwargs,
        )
        assert again == headers

    def test_body_changes_signature(self):
        kwargs = dict(
            access_key_id="AKID",
            secret_key="secret",
            region="us-east-1",
            service="ses",
            now=datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc),
        )
        first = sign_request("POST", "https://email.us-east-1.amazonaws.com/", {}, "a=1", **kwargs)
        second = sign_request("POST", "https://email.us-east-1.amazonaws.com/", {}, "a=2", **kwargs)
        assert first["Authorization"] != second["Authorization"]

    def test_secret_not_in_headers(self):
        headers = sign_request(
            "POST",
            "https://email.us-east-1.amazonaws.com/",
            {},
            "",
            access_key_id="AKID",
            secret_key="very-secret-value",
            region="us-east-1",
            service="ses",
        )
        assert all("very-secret-value" not in value for value in headers.values())

    def test_host_normalised_before_signing(self):
        kwargs = dict(
            access_key_id="AKID",
            secret_key="secret",
            region="us-east-1",
            service="ses",
            now=datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc),
        )
        plain = sign_request("POST", "https://email.us-east-1.amazonaws.com/", {}, "a=1", **kwargs)
        noisy = sign_request("POST", "https://EMAIL.us-east-1.amazonaws.com:443/", {}, "a=1", **kwargs)

        assert noisy["Host"] == "email.us-east-1.amazonaws.com"
        assert noisy["Authorization"] == plain["Authorization"]


class TestCanonicalHost:
    """Tests for the Host header value derived from a URL."""

    @pytest.mark.parametrize(
        "url, expected",
        [
            ("https://email.us-east-1.amazonaws.com/", "email.us-east-1.amazonaws.com"),
            ("https://EMAIL.US-EAST-1.amazonaws.com/", "email.us-east-1.amazonaws.com"),
            ("https://email.us-east-1.amazonaws.com:443/", "email.us-east-1.amazonaws.com"),
            ("http://localhost:80/", "localhost"),
            ("http://LocalHost:4566/", "localhost:4566"),
            ("https://localhost:80/", "localhost:80"),
            ("http://[::1]:4566/", "[::1]:4566"),
        ],
    )
    def test_canonical_host(self, url, expected):
        assert canonical_host(url) == expected
