# ─────────────────────────────────────────────────────────────────
# alerts.py: Logging Setup & Status-Change Alerts
#
# Logging is configured once, here, for the whole process.
# Every other module just asks for a named logger:
#     logger = logging.getLogger("liveness")
# so each line shows which part of the relay wrote it.
#
# The sweep in timer.py calls device_offline() / device_online()
# when a display controller drops off or comes back. Today those
# only log; more channels (email, webhook) would be added here.
# ─────────────────────────────────────────────────────────────────

import logging
from datetime import datetime, timezone

from config import LOG_LEVEL

# %(asctime)s    → timestamp e.g. "2026-03-01 10:34:22"
# %(levelname)s  → severity e.g. "INFO", "WARNING"
# %(name)s       → which logger sent this e.g. "alerts"
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s — %(levelname)s — [%(name)s] — %(message)s"
)

logger = logging.getLogger("alerts")


def _iso(epoch_ms: int):
    if not epoch_ms:
        return None
    return datetime.fromtimestamp(epoch_ms / 1000, tz=timezone.utc).isoformat()


def device_offline(view):
    """Called when a device that was online stopped sending heartbeats."""
    alert_payload = {
        "ALERT": f"Device {view.device_id} is OFFLINE! No heartbeat received.",
        "last_seen": _iso(view.last_contact_at),
        "position": [view.lat, view.lng],
    }
    logger.warning(f"🚨 DEVICE OFFLINE: {alert_payload}")
    return alert_payload


def device_online(view):
    """Called when an offline device is heard from again."""
    alert_payload = {
        "RECOVERED": f"Device {view.device_id} is back ONLINE.",
        "last_seen": _iso(view.last_contact_at),
    }
    logger.info(f"🟢 DEVICE ONLINE: {alert_payload}")
    return alert_payload
