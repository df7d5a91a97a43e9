# ─────────────────────────────────────────────────────────────────
# routes/configuration.py: Display Configuration Endpoints
#
# Device side (no credentials):
#   GET /api/config/{id}            → full config
#   GET /api/config/{id}?since=7    → {"changed": false, "version": 7}
#                                     or {"changed": true, "version": 8, "config": {...}}
#
# Operator side (x-admin-user / x-admin-pass headers required):
#   POST /api/config  with "action" = force | save_slot | apply_slot
# ─────────────────────────────────────────────────────────────────

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query

from deps import Relay, get_relay, require_operator

logger = logging.getLogger("routes")

router = APIRouter(prefix="/api/config", tags=["Config"])


@router.get("/{device_id}")
async def read_config(
    device_id: str,
    since: Optional[str] = Query(None),
    relay: Relay = Depends(get_relay),
):
    """
    Without `since`: the complete config (created with defaults if the
    device has none yet). With `since`: a delta pull.
    """
    if since is None:
        config = await relay.sync.read_config(device_id)
        return config.to_wire()
    delta = await relay.sync.read_config_since(device_id, since)
    return delta.to_wire()


@router.post("")
async def write_config(
    payload: Optional[Dict[str, Any]] = Body(None),
    relay: Relay = Depends(get_relay),
    operator: str = Depends(require_operator),
):
    """
    Examples:
      {"device_id": "J-104", "action": "force", "force": "red"}
      {"device_id": "J-104", "action": "save_slot", "sig": "red", "slot": 1, "l1": "STOP", "l2": "WAIT"}
      {"device_id": "J-104", "action": "apply_slot", "sig": "red", "slot": 1}
    """
    config = await relay.sync.handle_write(payload or {})
    logger.info(f"Operator '{operator}' updated '{config.device_id}' → version {config.version}")
    return {"ok": True, "config": config.to_wire()}
