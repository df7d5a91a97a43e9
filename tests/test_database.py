"""
Tests for MemoryStore: copy-on-read, failed mutations, per-device
locking, timeouts and simulated outages.
"""

from __future__ import annotations

import asyncio
import unittest

from config_store import default_config
from database import MemoryStore, bounded
from errors import StorageUnavailable
from models import DeviceRecord, SignalClass


def _record(device_id, seq):
    return DeviceRecord(device_id=device_id, seq=seq)


class TestMemoryStore(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.store = MemoryStore()

    async def test_upsert_reports_creation_once(self):
        _, created = await self.store.upsert_device("D1", lambda r: None, _record)
        self.assertTrue(created)
        _, created = await self.store.upsert_device("D1", lambda r: None, _record)
        self.assertFalse(created)

    async def test_insertion_order_is_recorded(self):
        first, _ = await self.store.upsert_device("A", lambda r: None, _record)
        second, _ = await self.store.upsert_device("B", lambda r: None, _record)
        self.assertLess(first.seq, second.seq)

    async def test_device_reads_are_copies(self):
        record, _ = await self.store.upsert_device("D1", lambda r: None, _record)
        record.lat = 99.0
        self.assertEqual((await self.store.get_device("D1")).lat, 0.0)

    async def test_failed_mutation_stores_nothing(self):
        await self.store.get_or_create_config("D1", default_config)

        def explode(config):
            config.version = 42
            raise RuntimeError("boom")

        with self.assertRaises(RuntimeError):
            await self.store.update_config("D1", explode, default_config)
        self.assertEqual((await self.store.get_config("D1")).version, 0)

    async def test_update_creates_missing_config(self):
        def bump(config):
            config.version += 1

        config = await self.store.update_config("new", bump, default_config)
        self.assertEqual(config.version, 1)
        self.assertEqual(config.active_slot[SignalClass.RED], 0)

    async def test_missing_config_is_none(self):
        self.assertIsNone(await self.store.get_config("nope"))

    async def test_held_lock_times_out_only_for_that_device(self):
        def bump(config):
            config.version += 1

        async with self.store._lock_for("busy"):
            with self.assertRaises(StorageUnavailable):
                await bounded(self.store.update_config("busy", bump, default_config), 0.05)

            other = await bounded(self.store.update_config("free", bump, default_config), 0.05)
            self.assertEqual(other.version, 1)

        config = await self.store.update_config("busy", bump, default_config)
        self.assertEqual(config.version, 1)

    async def test_bounded_without_timeout_just_awaits(self):
        async def answer():
            return 42

        self.assertEqual(await bounded(answer()), 42)

    async def test_outage(self):
        self.store.available = False
        with self.assertRaises(StorageUnavailable):
            await self.store.list_devices()
        with self.assertRaises(StorageUnavailable):
            await self.store.get_or_create_config("D1", default_config)

        self.store.available = True
        self.assertEqual(await self.store.list_devices(), [])

    async def test_concurrent_creators_share_one_config(self):
        configs = await asyncio.gather(*[
            self.store.get_or_create_config("D1", default_config) for _ in range(10)
        ])
        self.assertEqual(len({c.model_dump_json() for c in configs}), 1)
        self.assertEqual(len(self.store._configs), 1)


if __name__ == "__main__":
    unittest.main()
