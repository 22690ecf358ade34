"""Email sending tool: console (dev), SMTP/Gmail and SendGrid."""

from __future__ import annotations

import logging
import smtplib
from email.mime.text import MIMEText

from rich.console import Console
from rich.panel import Panel

from slotmatch.config import Config

log = logging.getLogger(__name__)

console = Console()


def send_email(cfg: Config, *, to_emails: list[str], subject: str, body: str) -> dict:
    """Send an email using the configured backend.

    Returns {"status": "ok"} on success or {"status": "error", "message": ...}.
    Never raises.
    """
    recipients = [e for e in to_emails if e]
    if not recipients:
        return {"status": "error", "message": "No recipients"}

    backend = cfg.email_backend.lower()
    if backend == "console":
        return _send_console(cfg, recipients, subject, body)
    if backend in ("smtp", "gmail"):
        return _send_smtp(cfg, backend, recipients, subject, body)
    if backend == "sendgrid":
        return _send_sendgrid(cfg, recipients, subject, body)
    return {"status": "error", "message": f"Unknown email backend: {backend}"}


def _send_console(cfg: Config, recipients: list[str], subject: str, body: str) -> dict:
    console.print(Panel(
        f"[bold]From:[/bold] {cfg.email_from}\n"
        f"[bold]To:[/bold] {', '.join(recipients)}\n"
        f"[bold]Subject:[/bold] {subject}\n\n"
        f"{body}",
        title="Email (console mode, not actually sent)",
        border_style="cyan",
    ))
    return {"status": "ok", "message": "Printed to console (dev mode)"}


def _send_smtp(cfg: Config, backend: str, recipients: list[str], subject: str, body: str) -> dict:
    smtp_host, smtp_port, smtp_username = cfg.smtp_host, cfg.smtp_port, cfg.smtp_username
    # Auto-fill Gmail SMTP settings
    if backend == "gmail":
        smtp_host = smtp_host or "smtp.gmail.com"
        smtp_port = smtp_port or 587
        smtp_username = smtp_username or cfg.email_from

    if not smtp_host:
        return {"status": "error", "message": "SMTP host not configured"}
    if not cfg.smtp_password:
        return {"status": "error", "message": "SMTP password not configured"}

    msg = MIMEText(body, "plain", "utf-8")
    msg["From"] = cfg.email_from
    msg["To"] = ", ".join(recipients)
    msg["Subject"] = subject

    try:
        with smtplib.SMTP(smtp_host, smtp_port, timeout=15) as server:
            server.ehlo()
            server.starttls()
            server.ehlo()
            server.login(smtp_username or cfg.email_from, cfg.smtp_password)
            server.sendmail(cfg.email_from, recipients, msg.as_string())
    except smtplib.SMTPAuthenticationError:
        return {"status": "error", "message": "SMTP authentication failed"}
    except Exception as e:
        return {"status": "error", "message": f"SMTP error: {e}"}
    return {"status": "ok", "message": "Email sent via SMTP"}


def _send_sendgrid(cfg: Config, recipients: list[str], subject: str, body: str) -> dict:
    import sendgrid
    from sendgrid.helpers.mail import Mail

    if not cfg.sendgrid_api_key:
        return {"status": "error", "message": "SendGrid API key not configured"}

    try:
        sg = sendgrid.SendGridAPIClient(api_key=cfg.sendgrid_api_key)
        message = Mail(
            from_email=cfg.email_from,
            to_emails=recipients,
            subject=subject,
            plain_text_content=body,
        )
        response = sg.send(message)
    except Exception as e:
        return {"status": "error", "message": f"SendGrid error: {e}"}
    if response.status_code in (200, 201, 202):
        return {"status": "ok", "message": "Email sent via SendGrid"}
    return {"status": "error", "message": f"SendGrid error: {response.status_code}"}
