# ─────────────────────────────────────────────────────────────────
# ingest.py: Heartbeat Ingest
#
# Entry point for everything a device sends on its own:
#   heartbeat → stamp liveness (and position), make sure a config exists
#   register  → create the device and its config, no contact recorded
#
# Ingest never edits a config. It only makes sure one is there, so
# the device's very first config pull always finds something.
# ─────────────────────────────────────────────────────────────────

import logging

logger = logging.getLogger("ingest")


class HeartbeatIngest:

    def __init__(self, liveness, config_store):
        self._liveness = liveness
        self._configs = config_store

    async def heartbeat(self, device_id, lat=None, lng=None, timeout=None):
        view = await self._liveness.record_heartbeat(device_id, lat=lat, lng=lng, timeout=timeout)
        await self._configs.get_or_create(view.device_id, timeout=timeout)
        return view

    async def register(self, device_id, timeout=None):
        view = await self._liveness.register(device_id, timeout=timeout)
        await self._configs.get_or_create(view.device_id, timeout=timeout)
        return view
