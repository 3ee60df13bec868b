# SPDX-License-Identifier: Apache-2.0
# This file was created or modified with the assistance of an AI (Large Language Model).
"""Connection store and the two-click port selection state machine.

Selecting a port while idle arms it. Selecting the armed port again cancels
the selection. Selecting any other port completes a connection between the
two and returns to idle. Nothing else creates a connection.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from uuid import uuid4

from services.errors import UnknownConnectionError, UnknownPortError
from services.layout import PortRef

log = logging.getLogger(__name__)

DEFAULT_CABLE_COLOR = "#38bdf8"


class SelectionState(str, Enum):
    IDLE = "IDLE"
    ARMED = "ARMED"


@dataclass(frozen=True)
class Connection:
    """Unordered cable between two distinct ports.

    ``a`` and ``b`` keep the click order for display only; equality of the
    link itself is by ``pair``.
    """

    id: str
    a: PortRef
    b: PortRef
    color: str = DEFAULT_CABLE_COLOR

    def __post_init__(self) -> None:
        if self.a == self.b:
            raise ValueError(f"connection {self.id} links port {self.a} to itself")

    @property
    def pair(self) -> frozenset[PortRef]:
        return frozenset((self.a, self.b))

    @property
    def label(self) -> str:
        return f"{self.a.key} ↔ {self.b.key}"

    def touches(self, ref: PortRef) -> bool:
        return ref == self.a or ref == self.b

    def touches_device(self, device_id: str) -> bool:
        return self.a.device_id == device_id or self.b.device_id == device_id


@dataclass(frozen=True)
class SelectionResult:
    state: SelectionState
    pending: PortRef | None
    connection: Connection | None = None


def new_connection_id() -> str:
    return f"c-{uuid4().hex[:12]}"


class ConnectionStore:
    def __init__(
        self,
        port_exists: Callable[[PortRef], bool] | None = None,
        default_color: str = DEFAULT_CABLE_COLOR,
    ):
        self._port_exists = port_exists
        self._default_color = default_color
        self._connections: dict[str, Connection] = {}
        self._pending: PortRef | None = None

    @property
    def state(self) -> SelectionState:
        return SelectionState.IDLE if self._pending is None else SelectionState.ARMED

    @property
    def pending(self) -> PortRef | None:
        return self._pending

    def __len__(self) -> int:
        return len(self._connections)

    def select_port(self, ref: PortRef) -> SelectionResult:
        if self._port_exists is not None and not self._port_exists(ref):
            raise UnknownPortError(f"unknown port: {ref.key}")

        if self._pending is None:
            self._pending = ref
            return SelectionResult(SelectionState.ARMED, ref)

        if self._pending == ref:
            self._pending = None
            return SelectionResult(SelectionState.IDLE, None)

        connection = Connection(new_connection_id(), self._pending, ref, self._default_color)
        self._connections[connection.id] = connection
        self._pending = None
        log.debug("connected %s", connection.label)
        return SelectionResult(SelectionState.IDLE, None, connection)

    def cancel_selection(self) -> None:
        self._pending = None

    def add_connection(self, connection: Connection) -> Connection:
        """Insert an existing connection record, as when loading a snapshot."""
        if connection.id in self._connections:
            raise ValueError(f"duplicate connection id: {connection.id}")
        self._connections[connection.id] = connection
        return connection

    def delete_connection(self, connection_id: str) -> Connection:
        connection = self._connections.pop(connection_id, None)
        if connection is None:
            raise UnknownConnectionError(f"unknown connection: {connection_id}")
        log.debug("deleted connection %s", connection_id)
        return connection

    def cascade_remove_port(self, ref: PortRef) -> set[str]:
        removed = {cid for cid, c in self._connections.items() if c.touches(ref)}
        for cid in removed:
            del self._connections[cid]
        if self._pending == ref:
            self._pending = None
        if removed:
            log.debug("cascade from %s removed %d connection(s)", ref.key, len(removed))
        return removed

    def clear(self) -> None:
        self._connections.clear()
        self._pending = None

    def get_connection(self, connection_id: str) -> Connection:
        try:
            return self._connections[connection_id]
        except KeyError:
            raise UnknownConnectionError(f"unknown connection: {connection_id}") from None

    def list_connections(self) -> list[Connection]:
        return list(self._connections.values())

    def connections_for_port(self, ref: PortRef) -> list[Connection]:
        return [c for c in self._connections.values() if c.touches(ref)]

    def connections_for_device(self, device_id: str) -> list[Connection]:
        return [c for c in self._connections.values() if c.touches_device(device_id)]
