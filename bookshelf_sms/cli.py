"""Click CLI for running and operating the SMS assistant."""

from __future__ import annotations

import asyncio
import json
import logging
import os

import click

from bookshelf_sms.assistant.classifier import classify as classify_message
from bookshelf_sms.audit.logger import AuditLogger
from bookshelf_sms.config import SMSSettings
from bookshelf_sms.library.sqlite import SQLiteLibraryService
from bookshelf_sms.models import AuditEventType, RiskLevel
from bookshelf_sms.webhook.phone import mask_phone, parse_allowlist
from bookshelf_sms.webhook.twilio import WELCOME_MESSAGE, TwilioSender


@click.group()
@click.option("--db", default=None, help="Library database path (default: LIBRARY_DB_PATH).")
@click.option("--verbose", is_flag=True, help="Log at DEBUG level.")
@click.pass_context
def cli(ctx: click.Context, db: str | None, verbose: bool) -> None:
    """Bookshelf SMS assistant."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO)
    ctx.ensure_object(dict)
    settings = SMSSettings.from_env()
    ctx.obj["settings"] = settings
    ctx.obj["db"] = db or settings.library_db_path


@cli.command()
@click.option("--host", default="127.0.0.1", help="Bind address.")
@click.option("--port", default=8000, type=int, help="Bind port.")
@click.pass_context
def serve(ctx: click.Context, host: str, port: int) -> None:
    """Run the webhook server with uvicorn."""
    import uvicorn

    os.environ["LIBRARY_DB_PATH"] = ctx.obj["db"]
    uvicorn.run("bookshelf_sms.app:create_app_from_env", host=host, port=port, factory=True)


@cli.command()
@click.argument("text")
def classify(text: str) -> None:
    """Print how a message would be classified."""
    click.echo(classify_message(text).model_dump_json(indent=2))


@cli.command("init-db")
@click.pass_context
def init_db(ctx: click.Context) -> None:
    """Create the library tables if they do not exist."""
    SQLiteLibraryService(ctx.obj["db"]).close()
    click.echo(f"Library database ready: {ctx.obj['db']}")


@cli.command("send-welcome")
@click.pass_context
def send_welcome(ctx: click.Context) -> None:
    """Text the welcome message to every number on the allow-list."""
    settings: SMSSettings = ctx.obj["settings"]
    if not (settings.twilio_account_sid and settings.twilio_auth_token and settings.twilio_phone_number):
        raise click.ClickException(
            "TWILIO_SID, TWILIO_AUTH_TOKEN and TWILIO_PHONE_NUMBER must be set",
        )

    library = SQLiteLibraryService(ctx.obj["db"])
    try:
        raw = asyncio.run(library.get_setting(settings.allowlist_setting_key))
    finally:
        library.close()
    numbers = sorted(parse_allowlist(raw))
    if not numbers:
        raise click.ClickException("No admin phone numbers configured")

    sender = TwilioSender(
        settings.twilio_account_sid, settings.twilio_auth_token, settings.twilio_phone_number,
    )
    audit_logger = AuditLogger(settings.audit_log_path) if settings.audit_log_path else None
    sent, failed = asyncio.run(_broadcast(sender, numbers, audit_logger))

    suffix = f", {failed} failed" if failed else ""
    click.echo(json.dumps({
        "message": f"Sent welcome SMS to {sent} number(s){suffix}",
        "sent": sent,
        "failed": failed,
    }, indent=2))


async def _broadcast(
    sender: TwilioSender, numbers: list[str], audit_logger: AuditLogger | None,
) -> tuple[int, int]:
    results = await asyncio.gather(
        *(sender.send_sms(n, WELCOME_MESSAGE) for n in numbers), return_exceptions=True,
    )
    sent = 0
    for number, result in zip(numbers, results, strict=True):
        ok = not isinstance(result, BaseException)
        if ok:
            sent += 1
        else:
            click.echo(f"Failed to send to {mask_phone(number)}: {result}", err=True)
        if audit_logger:
            audit_logger.record(
                AuditEventType.WELCOME_SENT,
                action="send_welcome",
                result="success" if ok else "failure",
                risk_level=RiskLevel.INFO,
                sender=mask_phone(number),
                details=None if ok else {"error": str(result)},
            )
    return sent, len(numbers) - sent

