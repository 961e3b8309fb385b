"""Mixer controls: typed, ranged values grouped under a mixer."""

from __future__ import annotations

import enum
import struct
from collections import deque
from dataclasses import dataclass
from typing import ClassVar, Deque, Iterable, Iterator, List, Optional, Sequence, Union

EVENT_ELEM = 0
EVENT_MASK_VALUE = 1

_NAME_SIZE = 44
_EVENT_STRUCT = struct.Struct(f"<iIIiII{_NAME_SIZE}sI")


class MixerError(Exception):
    """Raised when a control is used with an invalid value or index."""


class MixerCtlType(enum.IntEnum):
    """The type of a mixer control."""

    BOOL = 0
    INT = 1
    ENUM = 2
    BYTE = 3
    IEC958 = 4
    INT64 = 5
    UNKNOWN = 6
    MAX = 7

    @classmethod
    def from_value(cls, value: int) -> "MixerCtlType":
        """Map a raw type number to a control type, UNKNOWN if it is none."""
        try:
            ctl_type = cls(value)
        except ValueError:
            return cls.UNKNOWN
        return cls.UNKNOWN if ctl_type is cls.MAX else ctl_type


@dataclass(frozen=True)
class MixerCtlEvent:
    """A notification that an element of the mixer changed."""

    type: int = EVENT_ELEM
    mask: int = 0
    numid: int = 0
    iface: int = 0
    device: int = 0
    subdevice: int = 0
    name: str = ""
    index: int = 0

    SIZE: ClassVar[int] = _EVENT_STRUCT.size

    def to_bytes(self) -> bytes:
        raw_name = self.name.encode("utf-8")[: _NAME_SIZE - 1]
        return _EVENT_STRUCT.pack(
            self.type,
            self.mask,
            self.numid,
            self.iface,
            self.device,
            self.subdevice,
            raw_name,
            self.index,
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> "MixerCtlEvent":
        if len(data) < cls.SIZE:
            raise MixerError(f"event needs {cls.SIZE} bytes, got {len(data)}")
        etype, mask, numid, iface, device, subdevice, raw_name, index = (
            _EVENT_STRUCT.unpack_from(data)
        )
        name = raw_name.split(b"\0", 1)[0].decode("utf-8", "replace")
        return cls(etype, mask, numid, iface, device, subdevice, name, index)


class MixerControl:
    """One control of a mixer, holding one or more values of a single type."""

    def __init__(
        self,
        name: str,
        ctl_type: Union[MixerCtlType, int],
        values: Iterable[int] = (),
        *,
        minimum: int = 0,
        maximum: int = 0,
        enum_names: Sequence[str] = (),
        device: int = 0,
        access_tlv_rw: bool = False,
    ) -> None:
        self.id = 0
        self.name = name
        self.type = MixerCtlType.from_value(int(ctl_type))
        self.minimum = minimum
        self.maximum = maximum
        self.enum_names = tuple(enum_names)
        self.device = device
        self.access_tlv_rw = access_tlv_rw
        self._mixer: Optional[Mixer] = None
        if self.type is MixerCtlType.ENUM and not self.enum_names:
            raise MixerError(f"enumerated control '{name}' has no items")
        if minimum > maximum:
            raise MixerError(f"control '{name}' has min {minimum} above max {maximum}")
        self._values: List[int] = [self._checked(v) for v in values]

    def __repr__(self) -> str:
        return f"MixerControl(id={self.id}, name={self.name!r}, type={self.type.name})"

    @property
    def type_string(self) -> str:
        return self.type.name

    @property
    def num_values(self) -> int:
        return len(self._values)

    @property
    def num_enums(self) -> int:
        return len(self.enum_names)

    @property
    def values(self) -> tuple:
        return tuple(self._values)

    def _checked(self, value: int) -> int:
        value = int(value)
        if self.type is MixerCtlType.BOOL:
            return int(bool(value))
        if self.type in (MixerCtlType.INT, MixerCtlType.INT64):
            if not self.minimum <= value <= self.maximum:
                raise MixerError(
                    f"{value} outside {self.minimum}..{self.maximum} for '{self.name}'"
                )
            return value
        if self.type is MixerCtlType.ENUM:
            if not 0 <= value < self.num_enums:
                raise MixerError(f"no item {value} in enumerated control '{self.name}'")
            return value
        if self.type is MixerCtlType.BYTE:
            if not 0 <= value <= 0xFF:
                raise MixerError(f"{value} is not a byte")
            return value
        raise MixerError(f"control '{self.name}' of type {self.type.name} is not settable")

    def _check_index(self, index: int) -> None:
        if not 0 <= index < self.num_values:
            raise MixerError(f"control '{self.name}' has no value {index}")

    def _require_int(self) -> None:
        if self.type is not MixerCtlType.INT:
            raise MixerError(f"control '{self.name}' is not an integer control")

    def _store(self, index: int, value: int) -> None:
        if self._values[index] != value:
            self._values[index] = value
            if self._mixer is not None:
                self._mixer._notify(self)

    @property
    def range_min(self) -> int:
        self._require_int()
        return self.minimum

    @property
    def range_max(self) -> int:
        self._require_int()
        return self.maximum

    def get_value(self, index: int) -> int:
        self._check_index(index)
        return self._values[index]

    def set_value(self, index: int, value: int) -> None:
        self._check_index(index)
        self._store(index, self._checked(value))

    def get_percent(self, index: int) -> int:
        """Return a value as a percentage of the control's range."""
        self._require_int()
        span = self.maximum - self.minimum
        value = self.get_value(index)
        if span == 0:
            return 0
        return (value - self.minimum) * 100 // span

    def set_percent(self, index: int, percent: int) -> None:
        """Set a value to a percentage of the control's range."""
        self._require_int()
        if not 0 <= percent <= 100:
            raise MixerError(f"percentage {percent} outside 0..100")
        span = self.maximum - self.minimum
        self.set_value(index, self.minimum + span * percent // 100)

    def get_array(self) -> Union[bytes, List[int]]:
        """Return all values; a byte control gives bytes."""
        if self.type is MixerCtlType.BYTE:
            return bytes(self._values)
        return list(self._values)

    def set_array(self, values: Iterable[int]) -> None:
        """Replace the leading values with the given ones."""
        new = [self._checked(v) for v in values]
        if len(new) > self.num_values:
            raise MixerError(
                f"{len(new)} values given, control '{self.name}' holds {self.num_values}"
            )
        for index, value in enumerate(new):
            self._store(index, value)

    def enum_string(self, enum_id: int) -> str:
        if self.type is not MixerCtlType.ENUM or not 0 <= enum_id < self.num_enums:
            raise MixerError(f"no item {enum_id} in control '{self.name}'")
        return self.enum_names[enum_id]

    def set_enum_by_string(self, text: str) -> None:
        if self.type is not MixerCtlType.ENUM:
            raise MixerError(f"control '{self.name}' is not enumerated")
        try:
            item = self.enum_names.index(text)
        except ValueError:
            raise MixerError(f"'{text}' is not an item of '{self.name}'") from None
        self._check_index(0)
        self._store(0, item)


class Mixer:
    """A named set of controls with an optional queue of change events."""

    def __init__(
        self, name: str = "", controls: Iterable[MixerControl] = (), card: int = 0
    ) -> None:
        self.name = name
        self.card = card
        self._controls: List[MixerControl] = []
        self._subscribed = False
        self._events: Deque[MixerCtlEvent] = deque()
        for control in controls:
            self.add_ctl(control)

    def __enter__(self) -> "Mixer":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def __len__(self) -> int:
        return len(self._controls)

    def __iter__(self) -> Iterator[MixerControl]:
        return iter(self._controls)

    def close(self) -> None:
        self._subscribed = False
        self._events.clear()

    def add_ctl(self, control: MixerControl) -> MixerControl:
        control.id = len(self._controls)
        control._mixer = self
        self._controls.append(control)
        return control

    @property
    def controls(self) -> tuple:
        return tuple(self._controls)

    @property
    def num_ctls(self) -> int:
        return len(self._controls)

    def num_ctls_by_name(self, name: str) -> int:
        return sum(1 for c in self._controls if c.name == name)

    def get_ctl(self, ctl_id: int) -> Optional[MixerControl]:
        """Return the control with this id, or None."""
        if 0 <= ctl_id < len(self._controls):
            return self._controls[ctl_id]
        return None

    def get_ctl_by_name(self, name: str) -> Optional[MixerControl]:
        return self.get_ctl_by_name_and_index(name, 0)

    def get_ctl_by_name_and_device(self, name: str, device: int) -> Optional[MixerControl]:
        return next(
            (c for c in self._controls if c.name == name and c.device == device), None
        )

    def get_ctl_by_name_and_index(self, name: str, index: int) -> Optional[MixerControl]:
        """Return the index-th control carrying this name, or None."""
        matches = [c for c in self._controls if c.name == name]
        return matches[index] if 0 <= index < len(matches) else None

    def subscribe_events(self, subscribe: bool = True) -> None:
        self._subscribed = subscribe
        if not subscribe:
            self._events.clear()

    @property
    def pending_events(self) -> int:
        return len(self._events)

    def read_event(self) -> Optional[MixerCtlEvent]:
        """Remove and return the oldest event, or None if there is none."""
        return self._events.popleft() if self._events else None

    def consume_event(self) -> bool:
        """Drop the oldest event; return whether there was one."""
        return self.read_event() is not None

    def _notify(self, control: MixerControl) -> None:
        if self._subscribed:
            self._events.append(
                MixerCtlEvent(
                    type=EVENT_ELEM,
                    mask=EVENT_MASK_VALUE,
                    numid=control.id,
                    device=control.device,
                    name=control.name,
                )
            )