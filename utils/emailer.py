import logging
import smtplib
from email.message import EmailMessage

from flask import current_app

logger = logging.getLogger(__name__)


def _smtp_settings() -> dict:
    cfg = current_app.config
    username = cfg.get("SMTP_USERNAME")
    return {
        "host": cfg.get("SMTP_HOST"),
        "port": cfg.get("SMTP_PORT", 587),
        "username": username,
        "password": cfg.get("SMTP_PASSWORD"),
        "sender": cfg.get("SMTP_FROM_EMAIL") or username,
        "use_tls": cfg.get("SMTP_USE_TLS", True),
        "timeout": cfg.get("SMTP_TIMEOUT_SECONDS", 10),
    }


def send_email(to_email: str, subject: str, body: str, reply_to: str = None):
    """Send a plain-text email. Returns (ok, error); never raises for delivery problems."""
    smtp = _smtp_settings()
    if not smtp["host"] or not smtp["sender"]:
        logger.info("SMTP not configured; not sending %r", subject)
        return False, "Email not configured"
    if not to_email:
        return False, "No recipient"

    msg = EmailMessage()
    msg["From"] = smtp["sender"]
    msg["To"] = to_email
    msg["Subject"] = subject
    if reply_to:
        msg["Reply-To"] = reply_to
    msg.set_content(body)

    try:
        with smtplib.SMTP(smtp["host"], smtp["port"], timeout=smtp["timeout"]) as server:
            if smtp["use_tls"]:
                server.starttls()
            if smtp["username"] and smtp["password"]:
                server.login(smtp["username"], smtp["password"])
            server.send_message(msg)
    except (smtplib.SMTPException, OSError) as exc:
        logger.warning("Could not deliver %r to %s: %s", subject, to_email, exc)
        return False, str(exc)
    return True, None
