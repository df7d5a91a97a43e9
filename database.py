# ─────────────────────────────────────────────────────────────────
# database.py: Device Storage
#
# This file owns all data storage for the relay.
# Nothing else knows HOW data is kept, only that a store offers:
#   - devices:        get / upsert / list
#   - device_configs: get / get-or-create / atomic update
#
# The in-memory implementation below keeps two dicts:
#   _devices  → {device_id: DeviceRecord}
#   _configs  → {device_id: DeviceConfig}
#
# Writes to one device's config are serialized with a per-device
# asyncio.Lock, so version read-modify-write can never interleave.
# Different devices use different locks and never wait on each other.
#
# Every method hands back a COPY. Callers can't reach into the
# dicts and mutate stored state behind the store's back.
#
# A document store or SQL table would replace this class; the
# liveness and config stores would not change.
# ─────────────────────────────────────────────────────────────────

import asyncio
import itertools
import logging
import time

from errors import Conflict, StorageUnavailable

logger = logging.getLogger("database")


def now_ms():
    """Wall clock in epoch milliseconds."""
    return int(time.time() * 1000)


async def bounded(coro, timeout=None):
    """
    Awaits a store call, giving up after `timeout` seconds.
    A store that doesn't answer in time is treated as unavailable.
    """
    if timeout is None:
        return await coro
    try:
        return await asyncio.wait_for(coro, timeout)
    except asyncio.TimeoutError as exc:
        raise StorageUnavailable(f"store did not answer within {timeout}s") from exc


class MemoryStore:

    def __init__(self):
        self._devices = {}
        self._configs = {}
        self._config_locks = {}
        self._seq = itertools.count()
        # Flip to False to simulate the backing store going away
        self.available = True

    def _ensure_available(self):
        if not self.available:
            raise StorageUnavailable("device store is unreachable")

    def _lock_for(self, device_id: str):
        # setdefault runs without an await, so two coroutines can't both create a lock
        return self._config_locks.setdefault(device_id, asyncio.Lock())

    # ── devices ──────────────────────────────────────────────────

    async def get_device(self, device_id: str):
        self._ensure_available()
        record = self._devices.get(device_id)
        return record.model_copy() if record is not None else None

    async def upsert_device(self, device_id: str, mutate, factory):
        """
        Creates the record with `factory(device_id, seq)` if absent,
        applies `mutate` to a copy, then stores the copy.
        Returns (record_copy, created).
        """
        self._ensure_available()
        current = self._devices.get(device_id)
        created = current is None
        if created:
            current = factory(device_id, next(self._seq))
        updated = current.model_copy()
        mutate(updated)
        self._devices[device_id] = updated
        return updated.model_copy(), created

    async def list_devices(self):
        self._ensure_available()
        return [record.model_copy() for record in self._devices.values()]

    # ── device_configs ───────────────────────────────────────────

    async def get_config(self, device_id: str):
        self._ensure_available()
        config = self._configs.get(device_id)
        return config.model_copy(deep=True) if config is not None else None

    async def get_or_create_config(self, device_id: str, factory):
        """Insert-if-absent: at most one config per device_id, ever."""
        self._ensure_available()
        config = self._configs.get(device_id)
        if config is None:
            config = self._configs.setdefault(device_id, factory(device_id))
            logger.info(f"Created default config for '{device_id}'")
        return config.model_copy(deep=True)

    async def update_config(self, device_id: str, mutate, factory, expected_version=None):
        """
        Atomic read-modify-write of one device's config.

        `mutate` receives a deep copy of the current config (created by
        `factory` if absent) and edits it in place. If `mutate` raises,
        nothing is stored. With `expected_version` set, the write is
        refused with Conflict unless the stored version still matches.
        """
        self._ensure_available()
        async with self._lock_for(device_id):
            self._ensure_available()
            current = self._configs.get(device_id)
            if current is None:
                current = factory(device_id)
            if expected_version is not None and expected_version != current.version:
                raise Conflict(
                    f"config for '{device_id}' is at version {current.version}, "
                    f"not {expected_version}",
                    field="expected_version",
                )
            updated = current.model_copy(deep=True)
            mutate(updated)
            self._configs[device_id] = updated
            return updated.model_copy(deep=True)
