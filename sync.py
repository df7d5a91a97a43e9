# ─────────────────────────────────────────────────────────────────
# sync.py: Configuration Sync Protocol
#
# DEVICE SIDE (reads):
#   full pull   → read_config(id): the whole config, every time
#   delta pull  → read_config_since(id, v): nothing but the version
#                 when v is already current, the whole config otherwise
#
# There is no field-level diff. Any change anywhere in the config
# means the device downloads the full snapshot once.
#
# OPERATOR SIDE (writes):
#   one command type with three variants (force / save_slot /
#   apply_slot), validated in full before it reaches the store.
# ─────────────────────────────────────────────────────────────────

import logging

from errors import InvalidArgument
from models import ApplySlotCommand, ConfigDelta, ForceCommand, SaveSlotCommand, parse_command

logger = logging.getLogger("sync")


def _since(value):
    if isinstance(value, bool):
        raise InvalidArgument("since must be an integer version", field="since")
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError as exc:
        raise InvalidArgument("since must be an integer version", field="since") from exc


class ConfigSync:

    def __init__(self, config_store):
        self._configs = config_store

    async def read_config(self, device_id, timeout=None):
        return await self._configs.get_or_create(device_id, timeout=timeout)

    async def read_config_since(self, device_id, since_version, timeout=None):
        since = _since(since_version)
        config = await self._configs.get_or_create(device_id, timeout=timeout)
        if since >= config.version:
            return ConfigDelta(changed=False, version=config.version)
        logger.debug(f"'{config.device_id}' is behind: {since} < {config.version}")
        return ConfigDelta(changed=True, version=config.version, config=config)

    async def execute(self, command, timeout=None):
        """Runs one validated operator command and returns the updated config."""
        if isinstance(command, ForceCommand):
            return await self._configs.set_force(
                command.device_id, command.force,
                expected_version=command.expected_version, timeout=timeout,
            )
        if isinstance(command, SaveSlotCommand):
            return await self._configs.save_slot(
                command.device_id, command.signal, command.slot_index,
                command.line1, command.line2,
                expected_version=command.expected_version, timeout=timeout,
            )
        if isinstance(command, ApplySlotCommand):
            return await self._configs.apply_slot(
                command.device_id, command.signal, command.slot_index,
                expected_version=command.expected_version, timeout=timeout,
            )
        raise InvalidArgument(f"unsupported command {type(command).__name__}", field="action")

    async def handle_write(self, payload, timeout=None):
        """Validates a raw operator payload, then executes it."""
        try:
            command = parse_command(payload)
        except InvalidArgument as exc:
            logger.warning(f"⛔ Rejected config write: {exc.message}")
            raise
        return await self.execute(command, timeout=timeout)
