# ─────────────────────────────────────────────────────────────────
# timer.py: Background Offline Sweep
#
# Liveness status is derived on every read, so nothing here is
# needed for correctness. The sweep exists to NOTICE transitions
# while nobody is looking at the dashboard:
#
#   every SWEEP_INTERVAL_S seconds
#     1. list all devices (statuses derived at that instant)
#     2. compare with what the previous pass saw
#     3. report online → offline and offline → online via alerts.py
#
# The first time a device is seen it only becomes the baseline;
# no alert fires for it. The sweep never writes to the store.
# ─────────────────────────────────────────────────────────────────

import asyncio
import logging

from alerts import device_offline, device_online
from errors import StorageUnavailable
from models import DeviceStatus

logger = logging.getLogger("timer")


def detect_transitions(previous, views):
    """
    Compares the last known statuses {device_id: DeviceStatus} with
    fresh views. Returns (new_statuses, went_offline, came_online).
    """
    went_offline = []
    came_online = []
    current = {}
    for view in views:
        current[view.device_id] = view.status
        before = previous.get(view.device_id)
        if before is None or before == view.status:
            continue
        if view.status == DeviceStatus.OFFLINE:
            went_offline.append(view)
        else:
            came_online.append(view)
    return current, went_offline, came_online


async def sweep_once(liveness, previous):
    views = await liveness.list_devices()
    current, went_offline, came_online = detect_transitions(previous, views)
    for view in went_offline:
        device_offline(view)
    for view in came_online:
        device_online(view)
    return current


async def run_sweep(liveness, interval_s: float):
    """
    Loops until cancelled. A store outage skips one pass and keeps the
    previous statuses, so the next good pass still sees transitions.
    """
    logger.info(f"⏱️  Offline sweep started, every {interval_s}s")
    statuses = {}
    try:
        while True:
            await asyncio.sleep(interval_s)
            try:
                statuses = await sweep_once(liveness, statuses)
            except StorageUnavailable as exc:
                logger.warning(f"Sweep skipped: {exc.message}")
            except Exception:
                logger.exception("Sweep pass failed; keeping previous statuses")
    except asyncio.CancelledError:
        # Shutdown cancels the task; nothing to clean up
        logger.info("⏱️  Offline sweep stopped")
        return
