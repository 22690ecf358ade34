"""Best-effort side effects: history audit trail, notifications, host email.

Every function here reports success as a bool and never raises; failures
are logged as warnings so the request that triggered them still succeeds.
"""

from __future__ import annotations

import logging

from slotmatch.config import Config
from slotmatch.database import Database
from slotmatch.tools.email_sender import send_email

log = logging.getLogger(__name__)


def record_history(db: Database, operation: str, table_name: str, details: str) -> bool:
    """Append an entry to the history table."""
    try:
        db.insert_history(operation, table_name, details)
    except Exception as e:
        log.warning("Failed to log %s on %s: %s", operation, table_name, e)
        return False
    log.info("Operation logged: %s on %s", operation, table_name)
    return True


def notify_user(
    cfg: Config,
    db: Database,
    user: dict,
    title: str,
    description: str,
    send_mail: bool = False,
) -> bool:
    """Store a notification for *user*, optionally emailing them as well.

    Returns True only if every requested step succeeded.
    """
    ok = True
    try:
        db.insert_notification({"user_id": user["id"], "title": title, "description": description})
    except Exception as e:
        log.warning("Failed to store notification for user %s: %s", user.get("id"), e)
        ok = False

    if send_mail:
        try:
            result = send_email(cfg, to_emails=[user.get("email", "")], subject=title, body=description)
        except Exception as e:
            result = {"status": "error", "message": str(e)}
        if result.get("status") != "ok":
            log.warning("Failed to email user %s: %s", user.get("id"), result.get("message"))
            ok = False
    return ok
