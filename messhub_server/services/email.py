# Copyright (C) 2024 MessHub Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Email delivery of one-time codes. Logs to console when SMTP not configured."""

import asyncio
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Literal

from messhub_server.config import settings
from messhub_server.exceptions import DeliveryFailedError

logger = logging.getLogger(__name__)

Purpose = Literal["verification", "reset"]

SUBJECTS: dict[str, str] = {
    "verification": "Verify Your Account - MessHub",
    "reset": "Password Reset Code - MessHub",
}


def render_otp_body(code: str, name: str, purpose: Purpose) -> str:
    """Plain-text body for a code email."""
    if purpose == "reset":
        intro = "You requested to reset your password for your MessHub account. Use the verification code below:"
        outro = "If you didn't request this password reset, please ignore this email."
    else:
        intro = "Thank you for registering with MessHub. Please verify your email address using the code below:"
        outro = "If you didn't create this account, please ignore this email."
    return (
        f"Hello {name},\n\n{intro}\n\n    {code}\n\n"
        f"This code will expire in {settings.otp_expiry_minutes} minutes for security reasons.\n\n{outro}"
    )


def wrap_body_html(plain_body: str) -> str:
    """Wrap plain text body in minimal HTML."""
    body_escaped = plain_body.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;").replace("\n", "<br>\n")
    return f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"></head>
<body style="font-family: Arial, sans-serif; color: #333; max-width: 600px;">
<div style="white-space: pre-wrap;">{body_escaped}</div>
<hr style="margin: 30px 0; border: none; border-top: 1px solid #eee;">
<p style="color: #666; font-size: 12px;">This is an automated message from MessHub. Please do not reply to this email.</p>
</body>
</html>"""


def _smtp_send(to: str, subject: str, body: str) -> None:
    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = settings.smtp_from
    msg["To"] = to
    msg.attach(MIMEText(body, "plain"))
    msg.attach(MIMEText(wrap_body_html(body), "html"))
    with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=30) as server:
        server.starttls()
        server.login(settings.smtp_user, settings.smtp_password or "")
        server.sendmail(settings.smtp_from, [to], msg.as_string())


async def send_email(to: str, subject: str, body: str) -> None:
    """Send an email. Raises DeliveryFailedError if SMTP is configured and sending fails."""
    if settings.skip_email or not (settings.smtp_host and settings.smtp_user):
        logger.info("Email (SMTP not configured): To=%s Subject=%s Body=%s", to, subject, body[:400])
        return
    try:
        await asyncio.to_thread(_smtp_send, to, subject, body)
    except (smtplib.SMTPException, OSError) as e:
        logger.exception("Failed to send email to %s: %s", to, e)
        raise DeliveryFailedError()
    logger.info("Email sent: To=%s Subject=%s", to, subject)


async def send_otp_email(to: str, code: str, name: str, purpose: Purpose = "verification") -> None:
    """Deliver a one-time code. Callers decide whether a failure is fatal."""
    await send_email(to, SUBJECTS[purpose], render_otp_body(code, name, purpose))
