"""
Email adapter for the Anongram backend.

The default implementation uses SMTP, reading credentials from Settings. With
``MAIL_BACKEND=console`` the message is logged instead of sent, which is what
local development runs with.
"""

from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from functools import lru_cache
from pathlib import Path
import logging
import smtplib
import ssl

from jinja2 import Environment, FileSystemLoader, select_autoescape

from .config import Settings, get_settings

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parents[1] / "templates"


@lru_cache
def _templates() -> Environment:
    return Environment(
        loader=FileSystemLoader(str(TEMPLATES_DIR)),
        autoescape=select_autoescape(["html"]),
    )


def send_email(
    subject: str,
    to_email: str,
    html_body: str,
    text_body: str | None = None,
    *,
    settings: Settings | None = None,
) -> bool:
    """
    Send an email with the SMTP credentials from the environment.
    Returns False without sending when SMTP is not configured or delivery fails.
    """
    settings = settings or get_settings()
    if settings.mail_backend == "console":
        logger.info("[console mail] to=%s subject=%s\n%s", to_email, subject, text_body or html_body)
        return True
    if not (
        settings.smtp_host
        and settings.smtp_user
        and settings.smtp_password
        and settings.smtp_from
        and settings.smtp_port
    ):
        logger.warning("SMTP configuration missing; not sending to %s", to_email)
        return False
    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = settings.smtp_from
    msg["To"] = to_email
    plain = text_body or html_body
    msg.attach(MIMEText(plain, "plain", "utf-8"))
    msg.attach(MIMEText(html_body, "html", "utf-8"))
    port = settings.smtp_port or 465
    timeout = settings.mail_timeout_seconds or None
    try:
        if port == 465:
            context = ssl.create_default_context()
            with smtplib.SMTP_SSL(settings.smtp_host, port, context=context, timeout=timeout) as server:
                server.login(settings.smtp_user, settings.smtp_password)
                server.sendmail(settings.smtp_from, [to_email], msg.as_string())
        else:
            with smtplib.SMTP(settings.smtp_host, port, timeout=timeout) as server:
                server.ehlo()
                server.starttls(context=ssl.create_default_context())
                server.login(settings.smtp_user, settings.smtp_password)
                server.sendmail(settings.smtp_from, [to_email], msg.as_string())
        return True
    except (smtplib.SMTPException, OSError) as exc:
        logger.error("Failed to send email to %s: %s", to_email, exc)
        return False


def render_verification_email(code: str, ttl_minutes: int) -> tuple[str, str]:
    """Return (html, text) bodies for a verification code email."""
    env = _templates()
    context = {"code": code, "ttl_minutes": ttl_minutes}
    html_body = env.get_template("verification_code.html").render(**context)
    text_body = env.get_template("verification_code.txt").render(**context)
    return html_body, text_body


def send_verification_code(email: str, code: str, *, settings: Settings | None = None) -> bool:
    settings = settings or get_settings()
    html_body, text_body = render_verification_email(code, max(1, settings.code_ttl_seconds // 60))
    return send_email("Your Anongram code", email, html_body, text_body, settings=settings)
