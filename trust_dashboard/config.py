"""Environment-driven configuration for the dashboard, API, and senders."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path


DEFAULT_DB_PATH = Path(".data/trust_dashboard.db")
DEFAULT_SENDER_NAME = "PRAJAKIRANA SEVA CHARITABLE TRUST"
DEFAULT_SMTP_SERVER = "smtp.gmail.com"
DEFAULT_SMTP_PORT = 587
DEFAULT_SEND_DELAY_SECONDS = 0.5
DEFAULT_GRAPH_API_VERSION = "v17.0"

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def _env(name: str, default: str | None = None) -> str | None:
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped or default


@dataclass(frozen=True)
class Settings:
    db_path: Path = DEFAULT_DB_PATH
    smtp_email: str | None = None
    smtp_password: str | None = None
    smtp_server: str = DEFAULT_SMTP_SERVER
    smtp_port: int = DEFAULT_SMTP_PORT
    sender_name: str = DEFAULT_SENDER_NAME
    send_delay_seconds: float = DEFAULT_SEND_DELAY_SECONDS
    whatsapp_token: str | None = None
    whatsapp_phone_number_id: str | None = None
    graph_api_version: str = DEFAULT_GRAPH_API_VERSION
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            db_path=Path(_env("TRUST_DB_PATH", str(DEFAULT_DB_PATH)) or DEFAULT_DB_PATH),
            smtp_email=_env("SMTP_EMAIL"),
            smtp_password=_env("SMTP_PASSWORD"),
            smtp_server=_env("SMTP_SERVER", DEFAULT_SMTP_SERVER) or DEFAULT_SMTP_SERVER,
            smtp_port=int(_env("SMTP_PORT", str(DEFAULT_SMTP_PORT)) or DEFAULT_SMTP_PORT),
            sender_name=_env("ORG_SENDER_NAME", DEFAULT_SENDER_NAME) or DEFAULT_SENDER_NAME,
            send_delay_seconds=float(
                _env("EMAIL_SEND_DELAY_SECONDS", str(DEFAULT_SEND_DELAY_SECONDS))
                or DEFAULT_SEND_DELAY_SECONDS
            ),
            whatsapp_token=_env("META_WHATSAPP_TOKEN"),
            whatsapp_phone_number_id=_env("META_PHONE_NUMBER_ID"),
            graph_api_version=_env("META_GRAPH_API_VERSION", DEFAULT_GRAPH_API_VERSION)
            or DEFAULT_GRAPH_API_VERSION,
            log_level=(_env("LOG_LEVEL", "INFO") or "INFO").upper(),
        )

    @property
    def has_smtp_credentials(self) -> bool:
        return bool(self.smtp_email and self.smtp_password)

    @property
    def has_whatsapp_credentials(self) -> bool:
        return bool(self.whatsapp_token and self.whatsapp_phone_number_id)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
