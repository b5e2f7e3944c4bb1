"""SMTP mailer for transactional email."""

from __future__ import annotations

import hashlib
import logging
from email.message import EmailMessage
from email.utils import formataddr, make_msgid
from typing import Any, Awaitable, Callable, Optional, Sequence

import aiosmtplib

from running_diary.domain.errors import DiaryError, FailedPrecondition, Internal
from running_diary.settings import settings

logger = logging.getLogger(__name__)

SendFunc = Callable[..., Awaitable[Any]]


def mask_email(email: str) -> str:
    return hashlib.sha256(email.lower().encode("utf-8")).hexdigest()[:12]


class Mailer:
    """Sends HTML email through the configured SMTP account.

    Missing credentials surface as ``FailedPrecondition`` at send time, provider
    failures as ``Internal``. Returns the Message-ID of the sent email.
    """

    def __init__(self, *, send_func: Optional[SendFunc] = None) -> None:
        self._send = send_func or aiosmtplib.send

    @staticmethod
    def is_configured() -> bool:
        return bool(settings.smtp_user and settings.smtp_password)

    async def send(
        self,
        to: str | Sequence[str],
        subject: str,
        html: str,
        *,
        from_name: Optional[str] = None,
    ) -> str:
        if not self.is_configured():
            raise FailedPrecondition("email_provider_not_configured")

        recipients = [to] if isinstance(to, str) else list(to)
        message_id = make_msgid(domain=settings.smtp_user.split("@", 1)[-1])
        msg = EmailMessage()
        msg["From"] = formataddr((from_name or settings.smtp_from_name, settings.smtp_user))
        msg["To"] = ", ".join(recipients)
        msg["Subject"] = subject
        msg["Message-ID"] = message_id
        msg.set_content(html, subtype="html")

        # STARTTLS on 587, implicit TLS on 465
        start_tls = bool(settings.smtp_tls) and int(settings.smtp_port) == 587
        use_tls = bool(settings.smtp_tls) and int(settings.smtp_port) == 465
        masked = [mask_email(address) for address in recipients]
        try:
            await self._send(
                msg,
                hostname=settings.smtp_host,
                port=settings.smtp_port,
                username=settings.smtp_user,
                password=settings.smtp_password,
                start_tls=start_tls,
                use_tls=use_tls,
            )
        except DiaryError:
            raise
        except Exception as exc:
            logger.error("Failed to send email to %s: %s", masked, exc)
            raise Internal("email_send_failed") from exc
        logger.info("Email sent to %s", masked, extra={"message_id": message_id})
        return message_id
