# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Prometheus metrics for the SES mailer.

All metrics use the ``ses_mailer_`` prefix.

Metrics exposed:
    - ``ses_mailer_sent_total``: Emails accepted by SES.
    - ``ses_mailer_errors_total``: Sends that failed after all attempts.
    - ``ses_mailer_failed_attempts_total``: Individual failed HTTP attempts.
    - ``ses_mailer_validation_errors_total``: Sends rejected before any I/O.
"""

from prometheus_client import CollectorRegistry, Counter, generate_latest


class SesMetrics:
    """Prometheus counters for SES sends, labeled by region.

    Attributes:
        registry: The Prometheus CollectorRegistry holding all metrics.
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        """Initialize metrics with an optional custom registry.

        Args:
            registry: Optional Prometheus CollectorRegistry. A new one is
                created when omitted.
        """
        self.registry = registry or CollectorRegistry()
        self.sent = Counter(
            "ses_mailer_sent_total",
            "Total emails accepted by SES",
            ["region"],
            registry=self.registry,
        )
        self.errors = Counter(
            "ses_mailer_errors_total",
            "Total sends failed after all attempts",
            ["region"],
            registry=self.registry,
        )
        self.failed_attempts = Counter(
            "ses_mailer_failed_attempts_total",
            "Total failed HTTP attempts",
            ["region"],
            registry=self.registry,
        )
        self.validation_errors = Counter(
            "ses_mailer_validation_errors_total",
            "Total sends rejected before any request",
            registry=self.registry,
        )

    def inc_sent(self, region: str) -> None:
        self.sent.labels(region=region or "default").inc()

    def inc_error(self, region: str) -> None:
        self.errors.labels(region=region or "default").inc()

    def inc_failed_attempt(self, region: str) -> None:
        self.failed_attempts.labels(region=region or "default").inc()

    def inc_validation_error(self) -> None:
        self.validation_errors.inc()

    def generate_latest(self) -> bytes:
        """Export all metrics in Prometheus text exposition format."""
        return generate_latest(self.registry)
