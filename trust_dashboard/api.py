"""HTTP endpoint for personalised email batches."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .config import Settings, configure_logging
from .notifications import EmailDispatcher, EmailSender, SmtpEmailSender

logger = logging.getLogger(__name__)

SenderFactory = Callable[[Settings], EmailSender]


class SendEmailRequest(BaseModel):
    # Checked in the handler.
    recipients: Optional[Any] = None
    subject: str = ""
    message: str = ""


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


def create_app(
    settings: Settings | None = None,
    sender_factory: SenderFactory | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> FastAPI:
    config = settings or Settings.from_env()
    build_sender = sender_factory or SmtpEmailSender.from_settings

    app = FastAPI(title="Trust Dashboard API")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def invalid_body(_request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.warning("Rejected malformed send-email body: %s", exc.errors())
        return _error("Invalid request body", 400)

    @app.post("/api/send-email")
    def send_email(payload: SendEmailRequest) -> JSONResponse:
        recipients = payload.recipients
        if not isinstance(recipients, list) or not recipients:
            return _error("Recipients required", 400)

        if not config.has_smtp_credentials:
            logger.error("Missing SMTP credentials in environment variables")
            return _error("Server configuration error: Missing SMTP credentials", 500)

        try:
            dispatcher = EmailDispatcher(
                sender=build_sender(config),
                delay_seconds=config.send_delay_seconds,
                sleep=sleep,
            )
            report = dispatcher.send_batch(recipients, payload.subject, payload.message)
        except Exception as exc:
            logger.exception("Error sending email batch")
            return _error(str(exc) or "Failed to send emails", 500)

        if report.all_failed:
            return _error("Failed to send all emails", 500)
        return JSONResponse({"success": True, "message": report.summary})

    return app


def serve(host: str = "127.0.0.1", port: int = 8000) -> None:
    import uvicorn

    settings = Settings.from_env()
    configure_logging(settings.log_level)
    uvicorn.run(create_app(settings), host=host, port=port)


if __name__ == "__main__":
    serve()
