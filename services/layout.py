# SPDX-License-Identifier: Apache-2.0
# This file was created or modified with the assistance of an AI (Large Language Model).
"""Layout store: placed devices and the rack-unit occupancy rule."""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Any
from uuid import uuid4

from models import HardwareModel
from services.errors import (
    NoRoomAvailableError,
    OutOfBoundsError,
    SlotOccupiedError,
    UnknownDeviceError,
    UnknownPortError,
)
from services.geometry import U_MAX, fits_in_rack, intervals_overlap, max_start_unit, unit_span

log = logging.getLogger(__name__)

VLAN_MIN = 1
VLAN_MAX = 4094

UNSET: Any = object()


@dataclass(frozen=True)
class PortRef:
    """Global identity of a port: owning device id plus 1-based index."""

    device_id: str
    index: int

    @property
    def key(self) -> str:
        return f"{self.device_id}-p{self.index}"

    @classmethod
    def parse(cls, key: str) -> "PortRef":
        device_id, sep, index = key.rpartition("-p")
        if not sep or not device_id or not index.isdigit():
            raise ValueError(f"malformed port key: {key!r}")
        return cls(device_id, int(index))

    def __str__(self) -> str:
        return self.key


@dataclass
class Port:
    index: int
    label: str | None = None
    vlan: int | None = None


@dataclass
class Device:
    id: str
    model_key: str
    name: str
    height_units: int
    port_count: int
    color: str
    category: str
    start_unit: int
    ports: list[Port] = field(default_factory=list)

    @property
    def end_unit(self) -> int:
        return self.start_unit + self.height_units - 1

    @property
    def units(self) -> range:
        return unit_span(self.start_unit, self.height_units)

    def port_refs(self) -> list[PortRef]:
        return [PortRef(self.id, p.index) for p in self.ports]

    def overlaps(self, start_unit: int, height_units: int) -> bool:
        return intervals_overlap(self.start_unit, self.height_units, start_unit, height_units)


def new_device_id() -> str:
    return f"dev-{uuid4().hex[:12]}"


def build_device(
    model_key: str, model: HardwareModel, start_unit: int, device_id: str | None = None
) -> Device:
    """Instantiate a device from a catalog entry, copying every model field."""
    return Device(
        id=device_id or new_device_id(),
        model_key=model_key,
        name=model.name,
        height_units=model.height_units,
        port_count=model.port_count,
        color=model.color,
        category=model.category,
        start_unit=start_unit,
        ports=[Port(index=i) for i in range(1, model.port_count + 1)],
    )


class LayoutStore:
    """Owns the placed devices of a single rack.

    Every mutating call validates first and commits last, so a raised
    ``RackwireError`` leaves the store untouched.
    """

    def __init__(self, rack_units: int = U_MAX):
        if rack_units < 1:
            raise ValueError("rack_units must be positive")
        self._rack_units = rack_units
        self._devices: dict[str, Device] = {}

    @property
    def rack_units(self) -> int:
        return self._rack_units

    def __len__(self) -> int:
        return len(self._devices)

    def _require(self, device_id: str) -> Device:
        device = self._devices.get(device_id)
        if device is None:
            raise UnknownDeviceError(f"unknown device: {device_id}")
        return device

    def _collides(self, start_unit: int, height_units: int, ignore_id: str | None = None) -> bool:
        return any(
            d.overlaps(start_unit, height_units)
            for d in self._devices.values()
            if d.id != ignore_id
        )

    def find_free_start(self, height_units: int) -> int | None:
        """Lowest start unit where ``height_units`` fits without overlap, or None."""
        for start in range(1, max_start_unit(height_units, self._rack_units) + 1):
            if not self._collides(start, height_units):
                return start
        return None

    def place_device(self, model_key: str, model: HardwareModel) -> Device:
        start = self.find_free_start(model.height_units)
        if start is None:
            log.warning("no room for %s (%dU)", model_key, model.height_units)
            raise NoRoomAvailableError(
                f"no free {model.height_units}U interval for {model.name} "
                f"in a {self._rack_units}U rack"
            )
        device = build_device(model_key, model, start)
        self._devices[device.id] = device
        log.debug("placed %s (%s) at U%d", device.id, model_key, start)
        return copy.deepcopy(device)

    def restore_device(self, device: Device) -> Device:
        """Insert a device at its recorded position, as when loading a snapshot."""
        if device.id in self._devices:
            raise ValueError(f"duplicate device id: {device.id}")
        if not fits_in_rack(device.start_unit, device.height_units, self._rack_units):
            raise OutOfBoundsError(
                f"{device.id} at U{device.start_unit} ({device.height_units}U) "
                f"does not fit a {self._rack_units}U rack"
            )
        if self._collides(device.start_unit, device.height_units):
            raise SlotOccupiedError(f"{device.id} overlaps an existing device")
        stored = copy.deepcopy(device)
        self._devices[stored.id] = stored
        return copy.deepcopy(stored)

    def resolve_start_unit(self, device: Device, requested_start_unit: object) -> int:
        """Apply the out-of-bounds policy for a proposed start unit.

        Non-integers and values below 1 are rejected. Values above the
        highest legal start for the device height are clamped down to it.
        """
        if isinstance(requested_start_unit, bool) or not isinstance(requested_start_unit, int):
            raise OutOfBoundsError(f"start unit must be an integer: {requested_start_unit!r}")
        if requested_start_unit < 1:
            raise OutOfBoundsError(f"start unit must be >= 1: {requested_start_unit}")
        return min(requested_start_unit, max_start_unit(device.height_units, self._rack_units))

    def move_device(self, device_id: str, requested_start_unit: object) -> Device:
        device = self._require(device_id)
        start = self.resolve_start_unit(device, requested_start_unit)
        if start == device.start_unit:
            return copy.deepcopy(device)
        if self._collides(start, device.height_units, ignore_id=device_id):
            log.warning("move of %s to U%d rejected: slot occupied", device_id, start)
            raise SlotOccupiedError(f"U{start}-U{start + device.height_units - 1} is occupied")
        device.start_unit = start
        log.debug("moved %s to U%d", device_id, start)
        return copy.deepcopy(device)

    def remove_device(self, device_id: str) -> tuple[Device, frozenset[PortRef]]:
        """Delete a device and report the port identities that became invalid."""
        device = self._require(device_id)
        del self._devices[device_id]
        log.debug("removed %s", device_id)
        return device, frozenset(device.port_refs())

    def clear(self) -> frozenset[PortRef]:
        invalidated = frozenset(ref for d in self._devices.values() for ref in d.port_refs())
        self._devices.clear()
        return invalidated

    def get_device(self, device_id: str) -> Device:
        return copy.deepcopy(self._require(device_id))

    def list_devices(self) -> list[Device]:
        return [copy.deepcopy(d) for d in self._devices.values()]

    def has_device(self, device_id: str) -> bool:
        return device_id in self._devices

    def has_port(self, ref: PortRef) -> bool:
        device = self._devices.get(ref.device_id)
        return device is not None and 1 <= ref.index <= device.port_count

    def set_port_metadata(
        self,
        device_id: str,
        index: int,
        label: str | None = UNSET,
        vlan: int | None = UNSET,
    ) -> Port:
        """Update a port's label and VLAN tag.

        Fields left as ``UNSET`` keep their current value; ``None`` clears them.
        """
        device = self._require(device_id)
        if not 1 <= index <= device.port_count:
            raise UnknownPortError(f"{device_id} has no port {index}")
        if vlan is not UNSET and vlan is not None and not VLAN_MIN <= vlan <= VLAN_MAX:
            raise ValueError(f"vlan must be within {VLAN_MIN}..{VLAN_MAX}: {vlan}")
        port = device.ports[index - 1]
        if label is not UNSET:
            port.label = label
        if vlan is not UNSET:
            port.vlan = vlan
        return copy.deepcopy(port)

    def occupied_units(self) -> dict[int, str]:
        return {u: d.id for d in self._devices.values() for u in d.units}

    def free_units(self) -> list[int]:
        occupied = self.occupied_units()
        return [u for u in range(1, self._rack_units + 1) if u not in occupied]
