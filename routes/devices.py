# ─────────────────────────────────────────────────────────────────
# routes/devices.py: Device & Liveness Endpoints
#
# Devices call:
#   POST /heartbeat          → "I'm alive" (+ optional lat/lng)
#   POST /devices/register   → announce without counting as contact
#
# The dashboard calls:
#   GET /devices             → every device, most recently seen first
#   GET /devices/summary     → total / online / offline counts
#   GET /devices/{id}        → one device, 404 if never seen
#
# This file only translates HTTP to core calls. Validation and
# status derivation live in liveness.py.
# ─────────────────────────────────────────────────────────────────

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends

from deps import Relay, get_relay
from errors import NotFound
from models import HeartbeatIn, RegisterIn, parse_payload

logger = logging.getLogger("routes")

router = APIRouter(tags=["Devices"])


@router.post("/heartbeat")
async def heartbeat(
    payload: Optional[Dict[str, Any]] = Body(None),
    relay: Relay = Depends(get_relay),
):
    """
    {"device_id": "J-104", "lat": 17.38, "lng": 78.48}

    Unknown devices are created on the spot. A non-numeric lat/lng
    is ignored and the last known position is kept.
    """
    beat = parse_payload(HeartbeatIn, payload or {})
    view = await relay.ingest.heartbeat(beat.device_id, lat=beat.lat, lng=beat.lng)
    return {"ok": True, "device": view.model_dump(mode="json", by_alias=True)}


@router.post("/devices/register", status_code=201)
async def register_device(
    payload: Optional[Dict[str, Any]] = Body(None),
    relay: Relay = Depends(get_relay),
):
    body = parse_payload(RegisterIn, payload or {})
    view = await relay.ingest.register(body.device_id)
    return {"ok": True, "device": view.model_dump(mode="json", by_alias=True)}


@router.get("/devices")
async def list_devices(relay: Relay = Depends(get_relay)):
    views = await relay.liveness.list_devices()
    return [view.model_dump(mode="json", by_alias=True) for view in views]


# Declared before /devices/{device_id} so "summary" isn't read as an id
@router.get("/devices/summary")
async def devices_summary(relay: Relay = Depends(get_relay)):
    summary = await relay.liveness.summary()
    return summary.model_dump()


@router.get("/devices/{device_id}")
async def get_device(device_id: str, relay: Relay = Depends(get_relay)):
    """
    One device, 404 if never seen.

    The id "summary" is shadowed by GET /devices/summary; such a device
    still shows up in GET /devices.
    """
    view = await relay.liveness.get_device(device_id)
    if view is None:
        raise NotFound(f"Device '{device_id}' not found.", field="device_id")
    return view.model_dump(mode="json", by_alias=True)
