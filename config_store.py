# ─────────────────────────────────────────────────────────────────
# config_store.py: Display Configuration
#
# Owns every DeviceConfig. A config holds, per device:
#   force        → optional signal override (None = AUTO)
#   active_slot  → which message slot is live, per signal class
#   messages     → SLOT_COUNT {line1, line2} pairs, per signal class
#   version      → bumped by one on every accepted write
#   updated_at   → epoch ms of that write
#
# Each write follows the same three steps:
#   1. validate every argument (nothing touched yet)
#   2. inside the store's per-device lock, edit a copy and bump
#      version + updated_at together
#   3. hand back the full updated config
# ─────────────────────────────────────────────────────────────────

import logging
from typing import Optional

from config import SLOT_COUNT
from database import bounded, now_ms
from errors import InvalidArgument
from liveness import require_device_id
from models import DeviceConfig, MessageSlot, SignalClass, as_slot_index

logger = logging.getLogger("config_store")

# Pre-seeded into slot 0 of a fresh config, after the dashboard legend
DEFAULT_MESSAGES = {
    SignalClass.RED: ("STOP", ""),
    SignalClass.AMBER: ("WAIT", ""),
    SignalClass.GREEN: ("GO", ""),
    SignalClass.NO_SIGNAL: ("", ""),
}


def clamp_slot(index: int, slot_count: int):
    return max(0, min(slot_count - 1, index))


def default_config(device_id: str, slot_count: int = SLOT_COUNT):
    messages = {}
    for signal in SignalClass:
        slots = [MessageSlot() for _ in range(slot_count)]
        line1, line2 = DEFAULT_MESSAGES[signal]
        slots[0] = MessageSlot(line1=line1, line2=line2)
        messages[signal] = slots
    return DeviceConfig(
        device_id=device_id,
        force=None,
        active_slot={signal: 0 for signal in SignalClass},
        messages=messages,
        slot_count=slot_count,
        version=0,
        updated_at=0,
    )


def normalize(config: DeviceConfig, slot_count: int):
    """
    Brings a stored config to exactly `slot_count` slots for every
    signal class: missing signals and slots are filled with empty
    messages, extras are dropped, active slots are clamped into range.
    Does not touch version or updated_at.
    """
    for signal in SignalClass:
        slots = list(config.messages.get(signal, []))[:slot_count]
        slots.extend(MessageSlot() for _ in range(slot_count - len(slots)))
        config.messages[signal] = slots
        config.active_slot[signal] = clamp_slot(config.active_slot.get(signal, 0), slot_count)
    config.slot_count = slot_count
    return config


def _signal(value, field="sig"):
    try:
        return SignalClass.parse(value)
    except ValueError as exc:
        raise InvalidArgument(str(exc), field=field) from exc


def _force(value):
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return _signal(value, field="force")


def _slot(value, field="slot"):
    # same rule the HTTP payload models apply
    try:
        return as_slot_index(value)
    except ValueError as exc:
        raise InvalidArgument(f"{field} {exc}", field=field) from exc


def _text(value):
    return "" if value is None else str(value)


class ConfigStore:

    def __init__(self, store, slot_count: int = SLOT_COUNT, clock=now_ms,
                 timeout: Optional[float] = None):
        if slot_count < 1:
            raise ValueError("slot_count must be at least 1")
        self._store = store
        self._clock = clock
        self._timeout = timeout
        self.slot_count = slot_count

    def _factory(self, device_id):
        return default_config(device_id, self.slot_count)

    def _limit(self, timeout):
        return timeout if timeout is not None else self._timeout

    async def get_or_create(self, device_id, timeout=None):
        device_id = require_device_id(device_id)
        config = await bounded(
            self._store.get_or_create_config(device_id, self._factory),
            self._limit(timeout),
        )
        return normalize(config, self.slot_count)

    async def set_force(self, device_id, force, expected_version=None, timeout=None):
        device_id = require_device_id(device_id)
        force = _force(force)

        def change(config):
            config.force = force

        return await self._write(device_id, "force", change, expected_version, timeout,
                                 detail=force.value if force else "AUTO")

    async def save_slot(self, device_id, signal, slot_index, line1, line2,
                        expected_version=None, timeout=None):
        device_id = require_device_id(device_id)
        signal = _signal(signal)
        index = clamp_slot(_slot(slot_index), self.slot_count)
        message = MessageSlot(line1=_text(line1), line2=_text(line2))

        def change(config):
            config.messages[signal][index] = message

        return await self._write(device_id, "save_slot", change, expected_version, timeout,
                                 detail=f"{signal.value}[{index}]")

    async def apply_slot(self, device_id, signal, slot_index, expected_version=None, timeout=None):
        device_id = require_device_id(device_id)
        signal = _signal(signal)
        index = clamp_slot(_slot(slot_index), self.slot_count)

        def change(config):
            config.active_slot[signal] = index

        return await self._write(device_id, "apply_slot", change, expected_version, timeout,
                                 detail=f"{signal.value} -> {index}")

    async def _write(self, device_id, action, change, expected_version, timeout, detail=""):
        now = self._clock()

        def mutate(config):
            normalize(config, self.slot_count)
            change(config)
            config.version += 1
            # strictly later than the previous write, even within one millisecond
            config.updated_at = max(now, config.updated_at + 1)

        config = await bounded(
            self._store.update_config(device_id, mutate, self._factory, expected_version),
            self._limit(timeout),
        )
        logger.info(f"📝 {action} on '{device_id}' ({detail}) → version {config.version}")
        return config
