"""Outbound email delivery over SMTP."""

from __future__ import annotations

import asyncio
import logging
import smtplib
import ssl
from email.message import EmailMessage
from typing import Protocol

from tasklane.config.models import SMTPConfig
from tasklane.errors import EmailDeliveryError

logger = logging.getLogger(__name__)


class Mailer(Protocol):
    async def send(self, to: str, subject: str, html_body: str) -> None: ...


class SMTPMailer:
    """Send HTML email through an SMTP relay.

    ``smtplib`` is blocking, so each delivery runs in a worker thread and is
    bounded by ``timeout_seconds`` both at socket level and around the thread.
    """

    def __init__(self, config: SMTPConfig, *, logger: logging.Logger | None = None) -> None:
        self.config = config
        self._logger = logger if logger is not None else logging.getLogger(__name__)

    def build_message(self, to: str, subject: str, html_body: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.config.from_address
        message["To"] = to
        message["Subject"] = subject
        message.set_content(html_body, subtype="html")
        return message

    async def send(self, to: str, subject: str, html_body: str) -> None:
        message = self.build_message(to, subject, html_body)
        try:
            await asyncio.wait_for(
                asyncio.to_thread(self._deliver, message),
                timeout=self.config.timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            raise EmailDeliveryError(
                f"failed to send email: timed out after {self.config.timeout_seconds}s"
            ) from exc
        except (smtplib.SMTPException, OSError) as exc:
            raise EmailDeliveryError(f"failed to send email: {exc}") from exc
        self._logger.debug("Sent email to %s via %s:%s", to, self.config.host, self.config.port)

    def _deliver(self, message: EmailMessage) -> None:
        cfg = self.config
        smtp: smtplib.SMTP
        if cfg.use_ssl:
            smtp = smtplib.SMTP_SSL(
                cfg.host, cfg.port, timeout=cfg.timeout_seconds, context=ssl.create_default_context()
            )
        else:
            smtp = smtplib.SMTP(cfg.host, cfg.port, timeout=cfg.timeout_seconds)
        with smtp:
            if not cfg.use_ssl and cfg.starttls:
                smtp.starttls(context=ssl.create_default_context())
            if cfg.username:
                smtp.login(cfg.username, cfg.password or "")
            smtp.send_message(message)
