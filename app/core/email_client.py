# app/core/email_client.py
"""
Outgoing mail for the shop. Services call send_email() and never care
which transport is behind it.

Backend selection (first match wins):
  1. RESEND_API_KEY set       -> Resend HTTP API
  2. SMTP host + credentials  -> smtplib (GMAIL_USER / GMAIL_PASSWORD work too)
  3. nothing configured       -> log-only; the send is simulated

Gmail over implicit SSL, using an app password:

    GMAIL_USER=autospeedshop@gmail.com
    GMAIL_PASSWORD=<16 char app password>
    SMTP_PORT=465
    SMTP_USE_TLS=false
    SMTP_USE_SSL=true
"""
from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage

import requests

from app.core.config import get_settings

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"


class EmailDeliveryError(RuntimeError):
    """Raised when a configured backend fails to deliver a message."""


def get_backend_name() -> str:
    settings = get_settings()
    if settings.RESEND_API_KEY:
        return "resend"
    if settings.smtp_host and settings.smtp_username and settings.smtp_password:
        return "smtp"
    return "log"


def _check_header(name: str, value: str) -> None:
    if "\r" in value or "\n" in value:
        raise EmailDeliveryError(f"{name} header contains a line break: {value!r}")


def _open_smtp() -> smtplib.SMTP:
    # SMTP_USE_SSL means implicit TLS (port 465); otherwise plain SMTP,
    # upgraded with STARTTLS when SMTP_USE_TLS is set.
    settings = get_settings()
    host = settings.smtp_host
    if not host:
        raise EmailDeliveryError("no SMTP host configured")

    if settings.SMTP_USE_SSL:
        server: smtplib.SMTP = smtplib.SMTP_SSL(host, settings.SMTP_PORT, timeout=30)
    else:
        server = smtplib.SMTP(host, settings.SMTP_PORT, timeout=30)
        if settings.SMTP_USE_TLS:
            server.starttls()

    return server


def _send_via_smtp(
    to_email: str,
    subject: str,
    text_body: str,
    html_body: str | None,
) -> None:
    settings = get_settings()
    from_email = settings.SMTP_FROM_EMAIL or settings.smtp_username

    msg = EmailMessage()
    try:
        msg["From"] = f"{settings.SMTP_FROM_NAME} <{from_email}>"
        msg["To"] = to_email
        msg["Subject"] = subject
    except ValueError as exc:
        raise EmailDeliveryError(f"Invalid header for {to_email!r}: {exc}") from exc

    msg.set_content(text_body)
    if html_body:
        msg.add_alternative(html_body, subtype="html")

    try:
        server = _open_smtp()
    except (OSError, smtplib.SMTPException) as exc:
        raise EmailDeliveryError(f"SMTP connection to {settings.smtp_host} failed: {exc}") from exc

    try:
        server.login(settings.smtp_username, settings.smtp_password)  # type: ignore[arg-type]
        server.send_message(msg)
    except (OSError, smtplib.SMTPException) as exc:
        raise EmailDeliveryError(f"SMTP send to {to_email} failed: {exc}") from exc
    finally:
        try:
            server.quit()
        except smtplib.SMTPException:
            # Connection is being torn down anyway.
            pass


def _send_via_resend(
    to_email: str,
    subject: str,
    text_body: str,
    html_body: str | None,
) -> None:
    settings = get_settings()
    payload = {
        "from": settings.RESEND_FROM_EMAIL,
        "to": [to_email],
        "subject": subject,
        "text": text_body,
    }
    if html_body:
        payload["html"] = html_body

    try:
        response = requests.post(
            RESEND_API_URL,
            json=payload,
            headers={"Authorization": f"Bearer {settings.RESEND_API_KEY}"},
            timeout=15,
        )
    except requests.exceptions.RequestException as exc:
        raise EmailDeliveryError(f"Resend request for {to_email} failed: {exc}") from exc

    if response.status_code >= 400:
        raise EmailDeliveryError(
            f"Resend API failed: {response.status_code} - {response.text}"
        )


def send_email(
    to_email: str,
    subject: str,
    text_body: str,
    html_body: str | None = None,
) -> str:
    """
    Deliver one message and return the backend that handled it:
    "resend", "smtp" or "log".

    `text_body` is always sent; `html_body`, when given, goes along as an
    HTML alternative. Raises EmailDeliveryError when the configured
    backend refuses or fails, and before any backend is tried when the
    recipient or subject contains a line break.
    """
    _check_header("To", to_email)
    _check_header("Subject", subject)
    backend = get_backend_name()

    if backend == "resend":
        _send_via_resend(to_email, subject, text_body, html_body)
    elif backend == "smtp":
        _send_via_smtp(to_email, subject, text_body, html_body)
    else:
        logger.info(
            "Email simulated for %s (subject=%r); no email backend configured",
            to_email,
            subject,
        )
        return backend

    logger.info("Email sent to %s via %s", to_email, backend)
    return backend
