from __future__ import annotations

import html
import smtplib
import ssl
from collections.abc import Callable
from email.message import EmailMessage
from typing import Any

from movie_wizard.core.config import MailConfig
from movie_wizard.utils.logging import get_logger

logger = get_logger(__name__)

SUBJECT_TEMPLATE = "Movie-Wizard Contact-Form Message From {name}"


class MailDeliveryError(RuntimeError):
    pass


def build_contact_message(
    config: MailConfig, *, name: str, email: str, message: str
) -> EmailMessage:
    msg = EmailMessage()
    msg["From"] = config.user
    msg["To"] = config.to
    msg["Subject"] = SUBJECT_TEMPLATE.format(name=" ".join(name.split()))
    # Replies go straight to the person who filled in the form.
    msg["Reply-To"] = email
    msg.set_content(f"{message} | Sent from: {email}")
    msg.add_alternative(
        f"<div>{html.escape(message)}</div><p>Sent from:\n{html.escape(email)}</p>",
        subtype="html",
    )
    return msg


class MailRelay:
    """Delivers contact-form submissions over SMTP with implicit TLS."""

    def __init__(
        self,
        config: MailConfig,
        *,
        smtp_factory: Callable[..., Any] = smtplib.SMTP_SSL,
        timeout_s: float = 30.0,
    ) -> None:
        self._config = config
        self._smtp_factory = smtp_factory
        self._timeout_s = timeout_s

    @property
    def config(self) -> MailConfig:
        return self._config

    def send_contact_message(self, *, name: str, email: str, message: str) -> None:
        msg = build_contact_message(self._config, name=name, email=email, message=message)

        try:
            with self._smtp_factory(
                self._config.host,
                self._config.port,
                timeout=self._timeout_s,
                context=ssl.create_default_context(),
            ) as smtp:
                smtp.login(self._config.user, self._config.password)
                smtp.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Contact message delivery failed: %s", type(e).__name__)
            raise MailDeliveryError("Failed to deliver contact message") from e

        logger.info("Contact message delivered (%d chars)", len(message))
