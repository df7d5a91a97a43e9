"""
Tests for the offline sweep: transition detection, alert dispatch,
outage handling and clean cancellation.
"""

from __future__ import annotations

import asyncio
import unittest
from unittest.mock import patch

import alerts
from database import MemoryStore
from liveness import LivenessStore
from models import DeviceStatus, DeviceView
from tests.fakes import FakeClock
from timer import detect_transitions, run_sweep, sweep_once


def _view(device_id, status):
    return DeviceView(device_id=device_id, lat=0.0, lng=0.0, last_contact_at=1, status=status)


class TestDetectTransitions(unittest.TestCase):

    def test_first_sighting_is_only_a_baseline(self):
        current, offline, online = detect_transitions({}, [_view("D1", DeviceStatus.OFFLINE)])
        self.assertEqual(current, {"D1": DeviceStatus.OFFLINE})
        self.assertEqual((offline, online), ([], []))

    def test_transitions_in_both_directions(self):
        previous = {"A": DeviceStatus.ONLINE, "B": DeviceStatus.OFFLINE, "C": DeviceStatus.ONLINE}
        views = [
            _view("A", DeviceStatus.OFFLINE),
            _view("B", DeviceStatus.ONLINE),
            _view("C", DeviceStatus.ONLINE),
        ]
        _, offline, online = detect_transitions(previous, views)
        self.assertEqual([v.device_id for v in offline], ["A"])
        self.assertEqual([v.device_id for v in online], ["B"])


class TestSweep(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.clock = FakeClock()
        self.store = MemoryStore()
        self.liveness = LivenessStore(self.store, offline_threshold_s=30, clock=self.clock)

    async def test_sweep_alerts_when_device_drops_and_returns(self):
        await self.liveness.record_heartbeat("D1")

        with patch("timer.device_offline") as offline, patch("timer.device_online") as online:
            statuses = await sweep_once(self.liveness, {})
            offline.assert_not_called()

            self.clock.advance(45)
            statuses = await sweep_once(self.liveness, statuses)
            offline.assert_called_once()
            self.assertEqual(offline.call_args[0][0].device_id, "D1")

            await self.liveness.record_heartbeat("D1")
            statuses = await sweep_once(self.liveness, statuses)
            online.assert_called_once()

        self.assertEqual(statuses, {"D1": DeviceStatus.ONLINE})

    async def test_sweep_never_writes(self):
        await self.liveness.record_heartbeat("D1")
        before = await self.store.list_devices()
        self.clock.advance(60)
        await sweep_once(self.liveness, {"D1": DeviceStatus.ONLINE})
        self.assertEqual(await self.store.list_devices(), before)

    async def test_run_sweep_survives_outage_and_stops_on_cancel(self):
        self.store.available = False
        task = asyncio.create_task(run_sweep(self.liveness, 0.01))
        await asyncio.sleep(0.05)
        self.assertFalse(task.done())

        task.cancel()
        await task  # returns quietly
        self.assertTrue(task.done())
        self.assertFalse(task.cancelled())

    async def test_run_sweep_logs_unexpected_errors_and_keeps_going(self):
        with patch.object(self.liveness, "list_devices", side_effect=RuntimeError("boom")):
            with self.assertLogs("timer", level="ERROR") as logs:
                task = asyncio.create_task(run_sweep(self.liveness, 0.01))
                await asyncio.sleep(0.05)
            self.assertFalse(task.done())

        task.cancel()
        await task
        self.assertIn("Sweep pass failed", logs.output[0])


class TestAlerts(unittest.TestCase):

    def test_offline_payload(self):
        view = DeviceView(device_id="J-1", lat=17.1, lng=78.2,
                          last_contact_at=1_700_000_000_000, status=DeviceStatus.OFFLINE)
        with self.assertLogs("alerts", level="WARNING"):
            payload = alerts.device_offline(view)
        self.assertIn("J-1", payload["ALERT"])
        self.assertEqual(payload["position"], [17.1, 78.2])
        self.assertTrue(payload["last_seen"].startswith("2023-11-14"))

    def test_online_payload_for_never_seen_device(self):
        view = DeviceView(device_id="J-2", lat=0.0, lng=0.0, last_contact_at=0,
                          status=DeviceStatus.ONLINE)
        with self.assertLogs("alerts", level="INFO"):
            payload = alerts.device_online(view)
        self.assertIsNone(payload["last_seen"])


if __name__ == "__main__":
    unittest.main()
