# ─────────────────────────────────────────────────────────────────
# liveness.py: Device Liveness
#
# Answers one question: "when did we last hear from each device?"
#
# A device is ONLINE while  now - last_contact_at <= threshold
# (the boundary itself still counts as online) and OFFLINE after.
# Status is computed every time someone reads it and is never
# written anywhere, so it can't go stale.
# ─────────────────────────────────────────────────────────────────

import logging
from typing import Optional

from config import OFFLINE_THRESHOLD_S
from database import bounded, now_ms
from errors import InvalidArgument
from models import DeviceRecord, DevicesSummary, DeviceStatus, DeviceView, as_coordinate

logger = logging.getLogger("liveness")


def require_device_id(device_id):
    if device_id is None or not str(device_id).strip():
        raise InvalidArgument("device_id is required", field="device_id")
    return str(device_id).strip()


class LivenessStore:

    def __init__(self, store, offline_threshold_s: float = OFFLINE_THRESHOLD_S,
                 clock=now_ms, timeout: Optional[float] = None):
        self._store = store
        self._clock = clock
        self._timeout = timeout
        self.offline_threshold_ms = int(round(offline_threshold_s * 1000))

    def status_at(self, last_contact_at: int, now: int):
        if now - last_contact_at <= self.offline_threshold_ms:
            return DeviceStatus.ONLINE
        return DeviceStatus.OFFLINE

    def _view(self, record: DeviceRecord, now: int):
        return DeviceView(
            device_id=record.device_id,
            lat=record.lat,
            lng=record.lng,
            last_contact_at=record.last_contact_at,
            status=self.status_at(record.last_contact_at, now),
        )

    async def record_heartbeat(self, device_id, lat=None, lng=None, timeout=None):
        """
        Upserts the device and stamps last_contact_at = now.
        Each coordinate is overwritten only when the supplied value is
        numeric; otherwise the last known position stays.
        """
        device_id = require_device_id(device_id)
        lat = as_coordinate(lat)
        lng = as_coordinate(lng)
        now = self._clock()

        def touch(record):
            # concurrent heartbeats may land out of order; keep the newest
            record.last_contact_at = max(record.last_contact_at, now)
            if lat is not None:
                record.lat = lat
            if lng is not None:
                record.lng = lng

        record, created = await bounded(
            self._store.upsert_device(device_id, touch, _new_record),
            timeout if timeout is not None else self._timeout,
        )
        if created:
            logger.info(f"✅ First contact from '{device_id}'")
        else:
            logger.debug(f"💓 Heartbeat: '{device_id}'")
        return self._view(record, now)

    async def register(self, device_id, timeout=None):
        """Creates the device record if absent without counting it as contact."""
        device_id = require_device_id(device_id)
        record, created = await bounded(
            self._store.upsert_device(device_id, lambda record: None, _new_record),
            timeout if timeout is not None else self._timeout,
        )
        if created:
            logger.info(f"Registered device '{device_id}'")
        return self._view(record, self._clock())

    async def get_device(self, device_id, timeout=None):
        """Returns the view, or None for a device we have never seen."""
        device_id = require_device_id(device_id)
        record = await bounded(
            self._store.get_device(device_id),
            timeout if timeout is not None else self._timeout,
        )
        if record is None:
            return None
        return self._view(record, self._clock())

    async def list_devices(self, timeout=None):
        """Most recently seen first; ties keep insertion order."""
        records = await bounded(
            self._store.list_devices(),
            timeout if timeout is not None else self._timeout,
        )
        records.sort(key=lambda r: (-r.last_contact_at, r.seq))
        now = self._clock()
        return [self._view(record, now) for record in records]

    async def summary(self, timeout=None):
        views = await self.list_devices(timeout=timeout)
        online = sum(1 for v in views if v.status == DeviceStatus.ONLINE)
        return DevicesSummary(
            total=len(views),
            online=online,
            offline=len(views) - online,
            last_seen_max=max((v.last_contact_at for v in views), default=0),
        )


def _new_record(device_id, seq):
    return DeviceRecord(device_id=device_id, seq=seq)
