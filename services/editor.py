# SPDX-License-Identifier: Apache-2.0
# This file was created or modified with the assistance of an AI (Large Language Model).
"""Editing session tying the layout and connection stores together.

The editor routes device removal into the connection cascade and owns the
snapshot boundary. Loading builds fresh stores from a sanitized snapshot and
swaps them in only once the whole load has succeeded.
"""

from __future__ import annotations

import logging
import threading
from typing import Any

import yaml
from pydantic import ValidationError

from models import (
    Catalog,
    ConnectionRecord,
    DeviceRecord,
    EndpointRecord,
    PortRecord,
    dump_record,
)
from services.connections import Connection, ConnectionStore, SelectionResult
from services.errors import InvalidSnapshotError, RackwireError, UnknownModelError
from services.geometry import U_MAX
from services.layout import UNSET, Device, LayoutStore, Port, PortRef, build_device

log = logging.getLogger(__name__)


class RackEditor:
    """One editing session. Commands hold ``lock`` so they never interleave."""

    def __init__(self, catalog: Catalog, rack_units: int = U_MAX):
        self.catalog = catalog
        self.lock = threading.RLock()
        self.layout, self.connections = self._new_stores(rack_units)

    @staticmethod
    def _new_stores(rack_units: int) -> tuple[LayoutStore, ConnectionStore]:
        layout = LayoutStore(rack_units)
        return layout, ConnectionStore(port_exists=layout.has_port)

    @property
    def rack_units(self) -> int:
        return self.layout.rack_units

    def add_device(self, model_key: str) -> Device:
        model = self.catalog.get(model_key)
        if model is None:
            raise UnknownModelError(f"unknown catalog key: {model_key}")
        with self.lock:
            return self.layout.place_device(model_key, model)

    def move_device(self, device_id: str, requested_start_unit: object) -> Device:
        with self.lock:
            return self.layout.move_device(device_id, requested_start_unit)

    def remove_device(self, device_id: str) -> tuple[Device, set[str]]:
        with self.lock:
            device, invalidated = self.layout.remove_device(device_id)
            affected: set[str] = set()
            for ref in invalidated:
                affected |= self.connections.cascade_remove_port(ref)
            return device, affected

    def set_port_metadata(
        self, device_id: str, index: int, label: str | None = UNSET, vlan: int | None = UNSET
    ) -> Port:
        with self.lock:
            return self.layout.set_port_metadata(device_id, index, label=label, vlan=vlan)

    def select_port(self, device_id: str, port_index: int) -> SelectionResult:
        with self.lock:
            return self.connections.select_port(PortRef(device_id, port_index))

    def delete_connection(self, connection_id: str) -> Connection:
        with self.lock:
            return self.connections.delete_connection(connection_id)

    def clear(self) -> None:
        with self.lock:
            self.layout.clear()
            self.connections.clear()
        log.debug("cleared rack")

    def snapshot(self) -> dict[str, Any]:
        with self.lock:
            device_list = self.layout.list_devices()
            connection_list = self.connections.list_connections()
        devices = [
            dump_record(
                DeviceRecord(
                    id=d.id,
                    model_key=d.model_key,
                    start_unit=d.start_unit,
                    ports=[
                        PortRecord(index=p.index, label=p.label, vlan=p.vlan) for p in d.ports
                    ],
                )
            )
            for d in device_list
        ]
        connections = [
            dump_record(
                ConnectionRecord(
                    id=c.id,
                    endpoint_a=EndpointRecord(device_id=c.a.device_id, port_index=c.a.index),
                    endpoint_b=EndpointRecord(device_id=c.b.device_id, port_index=c.b.index),
                    color=c.color,
                )
            )
            for c in connection_list
        ]
        return {"devices": devices, "connections": connections}

    def load_snapshot(self, data: Any) -> list[str]:
        """Replace the session state with ``data`` and return the sanitizing warnings.

        Records that fail validation, do not resolve, or would break the
        occupancy or endpoint rules are dropped rather than failing the load.
        Port lists that disagree with the model's port count are trimmed or
        filled, with a warning.
        """
        if not isinstance(data, dict):
            raise InvalidSnapshotError("snapshot must be a mapping")
        raw_devices = data.get("devices", [])
        raw_connections = data.get("connections", [])
        if not isinstance(raw_devices, list) or not isinstance(raw_connections, list):
            raise InvalidSnapshotError("snapshot devices and connections must be lists")

        layout, connections = self._new_stores(self.rack_units)
        warnings: list[str] = []

        for raw in raw_devices:
            try:
                record = DeviceRecord.model_validate(raw)
            except ValidationError as exc:
                warnings.append(f"dropped device record: {exc.errors()[0]['msg']}")
                continue
            model = self.catalog.get(record.model_key)
            if model is None:
                warnings.append(f"dropped device {record.id}: unknown model {record.model_key}")
                continue
            if layout.has_device(record.id):
                warnings.append(f"dropped device {record.id}: duplicate id")
                continue
            device = build_device(record.model_key, model, record.start_unit, record.id)
            for port in record.ports[: model.port_count]:
                device.ports[port.index - 1] = Port(port.index, port.label, port.vlan)
            try:
                layout.restore_device(device)
            except RackwireError as exc:
                warnings.append(f"dropped device {record.id}: {exc}")
                continue
            if len(record.ports) > model.port_count:
                warnings.append(
                    f"device {record.id}: dropped ports {model.port_count + 1}.."
                    f"{len(record.ports)} beyond {record.model_key} port count"
                )
            elif len(record.ports) < model.port_count:
                warnings.append(
                    f"device {record.id}: added ports {len(record.ports) + 1}.."
                    f"{model.port_count} to match {record.model_key} port count"
                )

        for raw in raw_connections:
            try:
                record = ConnectionRecord.model_validate(raw)
            except ValidationError as exc:
                warnings.append(f"dropped connection record: {exc.errors()[0]['msg']}")
                continue
            a = PortRef(record.endpoint_a.device_id, record.endpoint_a.port_index)
            b = PortRef(record.endpoint_b.device_id, record.endpoint_b.port_index)
            dangling = [ref.key for ref in (a, b) if not layout.has_port(ref)]
            if dangling:
                warnings.append(f"dropped connection {record.id}: dangling {', '.join(dangling)}")
                continue
            try:
                connections.add_connection(Connection(record.id, a, b, record.color))
            except ValueError as exc:
                warnings.append(f"dropped connection {record.id}: {exc}")

        for warning in warnings:
            log.warning(warning)
        with self.lock:
            self.layout, self.connections = layout, connections
        log.debug(
            "loaded snapshot with %d device(s), %d connection(s)", len(layout), len(connections)
        )
        return warnings

    def snapshot_yaml(self) -> str:
        return yaml.safe_dump(self.snapshot(), sort_keys=False, allow_unicode=True)

    def load_snapshot_yaml(self, raw: str) -> list[str]:
        try:
            data = yaml.safe_load(raw)
        except yaml.YAMLError as exc:
            raise InvalidSnapshotError(f"YAML parse error: {exc}") from exc
        return self.load_snapshot(data)
