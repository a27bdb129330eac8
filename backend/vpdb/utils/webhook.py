"""Fire-and-forget webhook notifications for moderation events"""
import hashlib
import hmac
import json
import threading
from datetime import datetime
from typing import Any, Dict

import requests

from vpdb.config import settings
from vpdb.utils.logger import logger


def _deliver(url: str, body: bytes, headers: Dict[str, str]) -> None:
    """Deliver webhook payload in a daemon background thread (fire-and-forget)."""
    try:
        resp = requests.post(url, data=body, headers=headers, timeout=5)
        logger.debug(
            "Webhook delivered",
            extra={"url": url, "status_code": resp.status_code},
        )
    except requests.RequestException as exc:
        logger.warning(
            "Webhook delivery failed",
            extra={"url": url, "error": str(exc)},
        )


def _slack_body(event_type: str, payload: Dict[str, Any]) -> bytes:
    """Format a moderation event as a Slack incoming-webhook message."""
    entity_type = payload.get("entity_type", "entity")
    label = payload.get("label") or payload.get("entity_id", "unknown")
    actor = payload.get("actor") or "unknown"
    ts = datetime.utcnow().strftime("%Y-%m-%d %H:%M UTC")

    if event_type == "moderation.pending":
        text = (
            f"*VPDB - Moderation Required* :hourglass_flowing_sand:\n"
            f"*{actor}* submitted {entity_type} *{label}*, waiting for approval."
        )
        color = "#F59E0B"
    elif event_type == "moderation.approved":
        text = (
            f"*VPDB - Approved* :white_check_mark:\n"
            f"{entity_type.capitalize()} *{label}* was approved by *{actor}*."
        )
        color = "#10B981"
    else:  # moderation.refused
        message = payload.get("message", "")
        text = (
            f"*VPDB - Refused* :x:\n"
            f"{entity_type.capitalize()} *{label}* was refused by *{actor}*."
            + (f"\n> {message}" if message else "")
        )
        color = "#EF4444"

    slack_payload = {
        "attachments": [{
            "color": color,
            "text": text,
            "footer": f"VPDB | {ts}",
        }]
    }
    return json.dumps(slack_payload).encode()


def send_webhook(event_type: str, payload: Dict[str, Any]) -> None:
    """
    Send a webhook notification for a moderation event (non-blocking).

    Supported event types:
      - ``moderation.pending``   - a submission needs a moderator's decision
      - ``moderation.approved``  - a moderator approved a submission
      - ``moderation.refused``   - a moderator refused a submission

    Configuration:
      - ``WEBHOOK_URL``    - destination URL; Slack incoming webhooks are auto-detected.
      - ``WEBHOOK_SECRET`` - if set, adds ``X-Vpdb-Signature: sha256=<hex>``.

    The call returns immediately; delivery happens in a daemon thread.
    """
    url = settings.WEBHOOK_URL
    if not url:
        return

    if "hooks.slack.com" in url:
        body = _slack_body(event_type, payload)
        headers: Dict[str, str] = {"Content-Type": "application/json"}
    else:
        body_dict: Dict[str, Any] = {
            "event": event_type,
            "timestamp": datetime.utcnow().isoformat() + "Z",
            **payload,
        }
        body = json.dumps(body_dict, default=str).encode()
        headers = {"Content-Type": "application/json"}

        if settings.WEBHOOK_SECRET:
            sig = hmac.new(
                settings.WEBHOOK_SECRET.encode(), body, hashlib.sha256
            ).hexdigest()
            headers["X-Vpdb-Signature"] = f"sha256={sig}"

    threading.Thread(target=_deliver, args=(url, body, headers), daemon=True).start()
