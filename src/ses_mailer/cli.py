"""Command-line interface for ses-mailer.

Usage:
    ses-mailer send --to student@example.com --subject "Hello" --html "<p>Hi</p>"
    ses-mailer send --to a@example.com --to b@example.com \\
        --subject "Report" --html-file report.html --text "See attached report"
    ses-mailer config

Credentials and sender identity come from the environment (AWS_ACCESS_KEY_ID,
AWS_SECRET_ACCESS_KEY, AWS_SES_REGION, ...) or from ``--config config.ini``.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ses_mailer.config_loader import SesConfig, load_config
from ses_mailer.models import EmailRequest
from ses_mailer.prometheus import SesMetrics
from ses_mailer.sender import SesMailer

console = Console()
err_console = Console(stderr=True)


def run_async(coro):
    """Run an async coroutine synchronously."""
    return asyncio.run(coro)


def print_error(message: str) -> None:
    """Print an error message to stderr."""
    err_console.print(f"[red]Error:[/red] {escape(message)}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]✓[/green] {message}")


def print_json(data: Any) -> None:
    """Print data as formatted JSON."""
    console.print_json(json.dumps(data, indent=2, default=str))


def _load_or_exit(config_path: Optional[str]) -> SesConfig:
    try:
        return load_config(config_path)
    except FileNotFoundError as exc:
        print_error(str(exc))
        sys.exit(1)


@click.group()
@click.version_option(package_name="ses-mailer")
@click.option(
    "--log-level",
    default=lambda: os.getenv("SES_MAILER_LOG_LEVEL", "WARNING"),
    show_default="WARNING",
    help="Logging level (DEBUG, INFO, WARNING, ERROR).",
)
def main(log_level: str) -> None:
    """ses-mailer: send email through Amazon SES."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.WARNING),
        format="[%(asctime)s] [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )


@main.command("send")
@click.option("--to", "recipients", multiple=True, required=True, help="Recipient address (repeatable).")
@click.option("--subject", "-s", required=True, help="Subject line.")
@click.option("--html", "html", default=None, help="HTML body.")
@click.option(
    "--html-file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Read the HTML body from a file.",
)
@click.option("--text", default=None, help="Plain-text alternative body.")
@click.option("--reply-to", default=None, help="Reply-To address.")
@click.option("--config", "config_path", default=None, help="Path to an INI config file.")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def send_command(
    recipients: tuple[str, ...],
    subject: str,
    html: Optional[str],
    html_file: Optional[Path],
    text: Optional[str],
    reply_to: Optional[str],
    config_path: Optional[str],
    as_json: bool,
) -> None:
    """Send one email."""
    if html and html_file:
        print_error("Use either --html or --html-file, not both")
        sys.exit(2)
    if html_file:
        html = html_file.read_text(encoding="utf-8")

    config = _load_or_exit(config_path)
    request = EmailRequest(
        to=list(recipients),
        subject=subject,
        html=html or "",
        text=text,
        reply_to=reply_to,
    )
    mailer = SesMailer(config, metrics=SesMetrics())
    result = run_async(mailer.send(request))

    if as_json:
        print_json(result.model_dump())
    elif result.success:
        print_success(f"Email sent (message id {result.message_id}, attempts {result.attempts})")
    else:
        print_error(result.error)

    if not result.success:
        sys.exit(1)


@main.command("config")
@click.option("--config", "config_path", default=None, help="Path to an INI config file.")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def config_command(config_path: Optional[str], as_json: bool) -> None:
    """Show the resolved configuration (secret masked)."""
    config = _load_or_exit(config_path)
    settings = config.masked()

    if as_json:
        print_json(settings)
    else:
        table = Table(title="SES configuration")
        table.add_column("Setting", style="cyan")
        table.add_column("Value")
        for key, value in settings.items():
            table.add_row(key, "-" if value is None else str(value))
        console.print(table)

    if not config.has_credentials:
        err_console.print("[yellow]Warning:[/yellow] AWS credentials not configured")


if __name__ == "__main__":
    main()
