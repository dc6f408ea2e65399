"""FastAPI application exposing the Twilio SMS webhook."""

from __future__ import annotations

import logging
from pathlib import Path

from fastapi import FastAPI, Request, Response
from fastapi.responses import PlainTextResponse

from bookshelf_sms.assistant.orchestrator import SMSOrchestrator
from bookshelf_sms.audit.logger import AuditLogger
from bookshelf_sms.config import SMSSettings
from bookshelf_sms.library.service import LibraryService
from bookshelf_sms.library.sqlite import SQLiteLibraryService
from bookshelf_sms.webhook.models import TEXT_XML
from bookshelf_sms.webhook.signature import SIGNATURE_HEADER
from bookshelf_sms.webhook.twiml import INTERNAL_ERROR_MESSAGE, format_twiml

logger = logging.getLogger(__name__)

WEBHOOK_PATH = "/api/sms/webhook"


def create_app_from_env() -> FastAPI:
    """Factory for uvicorn --factory: reads config from environment variables."""
    settings = SMSSettings.from_env()
    Path(settings.library_db_path).parent.mkdir(parents=True, exist_ok=True)
    library = SQLiteLibraryService(settings.library_db_path)
    audit_logger = (
        AuditLogger.from_env(settings.audit_log_path) if settings.audit_log_path else None
    )
    return create_app(settings, library, audit_logger)


def create_app(
    settings: SMSSettings,
    library: LibraryService,
    audit_logger: AuditLogger | None = None,
    orchestrator: SMSOrchestrator | None = None,
) -> FastAPI:
    """Create the webhook app around one orchestrator instance."""
    app = FastAPI(docs_url=None, redoc_url=None)
    pipeline = orchestrator or SMSOrchestrator(library, settings, audit_logger=audit_logger)
    app.state.orchestrator = pipeline

    if not settings.signature_validation_enabled:
        logger.warning("Twilio signature validation is disabled (APP_ENV=%s)", settings.app_env)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get(WEBHOOK_PATH)
    async def webhook_status() -> PlainTextResponse:
        return PlainTextResponse("SMS webhook is active")

    @app.post(WEBHOOK_PATH)
    async def webhook(request: Request) -> Response:
        try:
            form = await request.form()
            params = {k: v for k, v in form.items() if isinstance(v, str)}
            url = settings.webhook_url or str(request.url)
            result = await pipeline.handle_webhook(
                url, params, request.headers.get(SIGNATURE_HEADER, ""),
            )
        except Exception:
            logger.exception("SMS webhook error")
            return Response(format_twiml(INTERNAL_ERROR_MESSAGE), status_code=500, media_type=TEXT_XML)

        return Response(
            result.reply.body,
            status_code=result.reply.status_code,
            media_type=result.reply.media_type,
        )

    return app
