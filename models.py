# ─────────────────────────────────────────────────────────────────
# models.py: Data Models (Pydantic Schemas)
#
# All data shapes live here: what we store per device, what we send
# back to the dashboard and the devices, and what an operator is
# allowed to send when changing a display.
#
# WIRE NAMES:
# The display firmware and the dashboard use short field names
# ("l1", "l2", "sig", "slot", "active", "last_seen", and "no" for the
# no-signal class). Models declare those as aliases, so JSON in and
# out keeps the short form while Python code reads the long names.
# Incoming JSON may use either form.
# ─────────────────────────────────────────────────────────────────

import math
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    field_validator,
)

from errors import InvalidArgument


class SignalClass(str, Enum):
    """The traffic-light context a message applies to."""

    RED = "red"
    AMBER = "amber"
    GREEN = "green"
    NO_SIGNAL = "no"

    @classmethod
    def parse(cls, value):
        """
        Accepts a member, its wire value ("no") or its long name
        ("no_signal", "NO_SIGNAL"). Raises ValueError for anything else.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            text = value.strip().lower()
            if text == "no_signal":
                return cls.NO_SIGNAL
            for member in cls:
                if member.value == text:
                    return member
        raise ValueError(
            f"unknown signal {value!r}; expected one of "
            + ", ".join(m.value for m in cls)
        )


class DeviceStatus(str, Enum):
    ONLINE = "online"
    OFFLINE = "offline"


# ─────────────────────────────────────────────────────────────────
# STORED STATE
# ─────────────────────────────────────────────────────────────────

class DeviceRecord(BaseModel):
    """One row of the `devices` collection. Status is never stored."""

    device_id: str
    lat: float = 0.0
    lng: float = 0.0
    last_contact_at: int = 0  # epoch ms, 0 = registered but never heard from
    seq: int = 0              # insertion order, breaks last_contact_at ties


class MessageSlot(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    line1: str = Field("", alias="l1")
    line2: str = Field("", alias="l2")


class DeviceConfig(BaseModel):
    """
    One row of the `device_configs` collection.

    `version` and `updated_at` move together: both change on every
    accepted write and never otherwise.
    """

    model_config = ConfigDict(populate_by_name=True)

    device_id: str
    force: Optional[SignalClass] = None
    active_slot: Dict[SignalClass, int] = Field(default_factory=dict, alias="active")
    messages: Dict[SignalClass, List[MessageSlot]] = Field(default_factory=dict)
    slot_count: int = Field(5, alias="slots")
    version: int = 0
    updated_at: int = 0  # epoch ms of the last accepted write

    def to_wire(self):
        return self.model_dump(mode="json", by_alias=True)


# ─────────────────────────────────────────────────────────────────
# READ RESULTS
# ─────────────────────────────────────────────────────────────────

class DeviceView(BaseModel):
    """What the dashboard sees for one device."""

    model_config = ConfigDict(populate_by_name=True)

    device_id: str
    lat: float
    lng: float
    last_contact_at: int = Field(alias="last_seen")
    status: DeviceStatus


class DevicesSummary(BaseModel):
    total: int
    online: int
    offline: int
    last_seen_max: int


class ConfigDelta(BaseModel):
    """
    Result of a delta pull. `config` is only present when `changed`
    is true; an unchanged reply carries just the current version.
    """

    changed: bool
    version: int
    config: Optional[DeviceConfig] = None

    def to_wire(self):
        # only the top-level snapshot is dropped; inside it, null fields stay
        exclude = {"config"} if self.config is None else None
        return self.model_dump(mode="json", by_alias=True, exclude=exclude)


# ─────────────────────────────────────────────────────────────────
# INCOMING PAYLOADS
# ─────────────────────────────────────────────────────────────────

class _DevicePayload(BaseModel):
    device_id: str

    @field_validator("device_id", mode="before")
    @classmethod
    def _device_id_present(cls, value):
        if value is None:
            raise ValueError("device_id is required")
        text = str(value).strip()
        if not text:
            raise ValueError("device_id is required")
        return text


class HeartbeatIn(_DevicePayload):
    """
    {"device_id": "J-104", "lat": 17.38, "lng": 78.48}

    lat/lng stay untyped here: a non-numeric position is ignored by
    the liveness store rather than rejecting the whole heartbeat.
    """

    lat: Any = None
    lng: Any = None


class RegisterIn(_DevicePayload):
    pass


class _ConfigCommandBase(_DevicePayload):
    model_config = ConfigDict(populate_by_name=True)

    # Optimistic write: reject with Conflict unless the stored
    # version still equals this value.
    expected_version: Optional[int] = None


class ForceCommand(_ConfigCommandBase):
    """{"device_id": "J-104", "action": "force", "force": "red"}  ("" or null = AUTO)"""

    action: Literal["force"]
    # must be present; "" or null is the explicit AUTO
    force: Optional[SignalClass] = Field(...)

    @field_validator("force", mode="before")
    @classmethod
    def _parse_force(cls, value):
        if value is None or (isinstance(value, str) and not value.strip()):
            return None
        return SignalClass.parse(value)


class _SlotCommand(_ConfigCommandBase):
    signal: SignalClass = Field(validation_alias=AliasChoices("sig", "signal"))
    slot_index: int = Field(validation_alias=AliasChoices("slot", "slot_index"))

    @field_validator("signal", mode="before")
    @classmethod
    def _parse_signal(cls, value):
        return SignalClass.parse(value)

    @field_validator("slot_index", mode="before")
    @classmethod
    def _parse_slot(cls, value):
        return as_slot_index(value)


class SaveSlotCommand(_SlotCommand):
    """{"device_id": "J-104", "action": "save_slot", "sig": "red", "slot": 1, "l1": "STOP", "l2": "WAIT"}"""

    action: Literal["save_slot"]
    line1: str = Field("", validation_alias=AliasChoices("l1", "line1"))
    line2: str = Field("", validation_alias=AliasChoices("l2", "line2"))

    @field_validator("line1", "line2", mode="before")
    @classmethod
    def _text(cls, value):
        return "" if value is None else str(value)


class ApplySlotCommand(_SlotCommand):
    """{"device_id": "J-104", "action": "apply_slot", "sig": "red", "slot": 1}"""

    action: Literal["apply_slot"]


ConfigCommand = Annotated[
    Union[ForceCommand, SaveSlotCommand, ApplySlotCommand],
    Field(discriminator="action"),
]

_command_adapter = TypeAdapter(ConfigCommand)


def _first_error(exc: ValidationError):
    error = exc.errors()[0]
    loc = [part for part in error["loc"] if isinstance(part, str)]
    if error["type"].startswith("union_tag"):
        return "action", "action must be one of force, save_slot, apply_slot"
    field = loc[-1] if loc else None
    message = error["msg"]
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]
    if field and field not in message:
        message = f"{field}: {message}"
    return field, message


def parse_payload(model, payload):
    """
    Validates a raw JSON object against `model` and turns any pydantic
    failure into InvalidArgument naming the offending field.
    """
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        field, message = _first_error(exc)
        raise InvalidArgument(message, field=field) from exc


def parse_command(payload):
    """Validates an operator write into one of the three command variants."""
    try:
        return _command_adapter.validate_python(payload)
    except ValidationError as exc:
        field, message = _first_error(exc)
        raise InvalidArgument(message, field=field) from exc


def as_slot_index(value):
    """
    Whole numbers, integral floats and numeric strings are slot indexes.
    Booleans and everything else raise ValueError.
    """
    if isinstance(value, bool):
        raise ValueError("must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise ValueError("must be an integer")


def as_coordinate(value):
    """Returns value as a finite float, or None when it isn't numeric."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number
