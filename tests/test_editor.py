# SPDX-License-Identifier: Apache-2.0
# This file was created or modified with the assistance of an AI (Large Language Model).
from __future__ import annotations

import copy
import itertools
import random
from concurrent.futures import ThreadPoolExecutor

import pytest

from models import DEFAULT_CATALOG
from services.connections import SelectionState
from services.editor import RackEditor
from services.errors import (
    InvalidSnapshotError,
    SlotOccupiedError,
    UnknownModelError,
    UnknownPortError,
)
from services.geometry import intervals_overlap
from services.layout import PortRef


def _wired_editor() -> RackEditor:
    editor = RackEditor(DEFAULT_CATALOG)
    fw = editor.add_device("FIREWALL")
    sw = editor.add_device("SWITCH_24")
    srv = editor.add_device("SERVER_2U")
    editor.select_port(fw.id, 1)
    editor.select_port(sw.id, 1)
    editor.select_port(sw.id, 2)
    editor.select_port(srv.id, 4)
    return editor


def _ports(n: int) -> list[dict]:
    return [{"index": i} for i in range(1, n + 1)]


def _snapshot_3x2() -> dict:
    return {
        "devices": [
            {"id": "dev-fw", "modelKey": "FIREWALL", "startUnit": 1, "ports": _ports(8)},
            {"id": "dev-sw", "modelKey": "SWITCH_24", "startUnit": 5, "ports": _ports(24)},
            {"id": "dev-srv", "modelKey": "SERVER_2U", "startUnit": 10, "ports": _ports(4)},
        ],
        "connections": [
            {
                "id": "c-1",
                "endpointA": {"deviceId": "dev-fw", "portIndex": 1},
                "endpointB": {"deviceId": "dev-sw", "portIndex": 1},
                "color": "#38bdf8",
            },
            {
                "id": "c-2",
                "endpointA": {"deviceId": "dev-sw", "portIndex": 2},
                "endpointB": {"deviceId": "dev-srv", "portIndex": 4},
                "color": "#f97316",
            },
        ],
    }


def test_add_device_uses_catalog(editor: RackEditor) -> None:
    fw = editor.add_device("FIREWALL")
    srv = editor.add_device("SERVER_2U")
    assert (fw.name, fw.start_unit, fw.port_count) == ("NextGen Firewall", 1, 8)
    assert (srv.start_unit, srv.height_units, srv.category) == (2, 2, "SERVER")


def test_add_unknown_model(editor: RackEditor) -> None:
    with pytest.raises(UnknownModelError):
        editor.add_device("TOASTER")
    assert editor.layout.list_devices() == []


def test_remove_device_cascades_connections_and_pending() -> None:
    editor = _wired_editor()
    fw, sw, srv = editor.layout.list_devices()
    srv_link = editor.connections.connections_for_device(srv.id)[0]
    editor.select_port(sw.id, 5)

    removed, affected = editor.remove_device(sw.id)

    assert removed.id == sw.id
    assert len(affected) == 2
    assert editor.connections.list_connections() == []
    assert editor.connections.state is SelectionState.IDLE
    assert srv_link.id in affected


def test_remove_device_keeps_unrelated_connections() -> None:
    editor = _wired_editor()
    fw, sw, srv = editor.layout.list_devices()
    _, affected = editor.remove_device(fw.id)
    assert len(affected) == 1
    remaining = editor.connections.list_connections()
    assert len(remaining) == 1
    assert remaining[0].pair == frozenset({PortRef(sw.id, 2), PortRef(srv.id, 4)})


def test_select_port_on_removed_device_rejected() -> None:
    editor = _wired_editor()
    fw = editor.layout.list_devices()[0]
    editor.remove_device(fw.id)

    with pytest.raises(UnknownPortError):
        editor.select_port(fw.id, 1)


def test_clear_empties_both_stores() -> None:
    editor = _wired_editor()
    editor.select_port(editor.layout.list_devices()[0].id, 3)
    editor.clear()
    assert editor.snapshot() == {"devices": [], "connections": []}
    assert editor.connections.pending is None


def test_snapshot_round_trip_preserves_input() -> None:
    editor = RackEditor(DEFAULT_CATALOG)
    data = _snapshot_3x2()
    data["devices"][0]["ports"][2] = {"index": 3, "label": "wan", "vlan": 10}

    warnings = editor.load_snapshot(copy.deepcopy(data))

    assert warnings == []
    assert editor.snapshot() == data
    assert [d.start_unit for d in editor.layout.list_devices()] == [1, 5, 10]


def test_save_load_between_editors_is_equivalent() -> None:
    source = _wired_editor()
    source.set_port_metadata(source.layout.list_devices()[0].id, 2, label="mgmt")
    target = RackEditor(DEFAULT_CATALOG)
    target.load_snapshot(source.snapshot())
    assert target.snapshot() == source.snapshot()
    assert target.layout.list_devices() == source.layout.list_devices()


def test_yaml_round_trip(editor: RackEditor) -> None:
    editor.load_snapshot(_snapshot_3x2())
    other = RackEditor(DEFAULT_CATALOG)
    other.load_snapshot_yaml(editor.snapshot_yaml())
    assert other.snapshot() == _snapshot_3x2()


def test_load_drops_dangling_and_invalid_connections(editor: RackEditor) -> None:
    data = _snapshot_3x2()
    data["devices"].pop(0)
    data["connections"].extend(
        [
            {
                "id": "c-3",
                "endpointA": {"deviceId": "dev-sw", "portIndex": 99},
                "endpointB": {"deviceId": "dev-srv", "portIndex": 1},
                "color": "#fff",
            },
            {
                "id": "c-4",
                "endpointA": {"deviceId": "dev-sw", "portIndex": 3},
                "endpointB": {"deviceId": "dev-sw", "portIndex": 3},
                "color": "#fff",
            },
            {
                "id": "c-2",
                "endpointA": {"deviceId": "dev-sw", "portIndex": 4},
                "endpointB": {"deviceId": "dev-srv", "portIndex": 1},
                "color": "#fff",
            },
            {"id": "c-5", "endpointA": {"deviceId": "dev-sw"}},
        ]
    )

    warnings = editor.load_snapshot(data)

    assert [c.id for c in editor.connections.list_connections()] == ["c-2"]
    assert len(warnings) == 5


def test_load_drops_unknown_overlapping_and_out_of_range_devices(editor: RackEditor) -> None:
    data = _snapshot_3x2()
    data["devices"].extend(
        [
            {"id": "dev-x", "modelKey": "TOASTER", "startUnit": 20},
            {"id": "dev-ov", "modelKey": "FIREWALL", "startUnit": 11},
            {"id": "dev-top", "modelKey": "SERVER_2U", "startUnit": 42},
            {"id": "dev-fw", "modelKey": "FIREWALL", "startUnit": 30},
            {"id": "dev-ok", "modelKey": "PATCH_PANEL", "startUnit": 42, "ports": _ports(24)},
        ]
    )

    warnings = editor.load_snapshot(data)

    ids = [d.id for d in editor.layout.list_devices()]
    assert ids == ["dev-fw", "dev-sw", "dev-srv", "dev-ok"]
    assert len(warnings) == 4
    assert len(editor.connections) == 2


def test_load_fills_short_port_list_with_warning(editor: RackEditor) -> None:
    data = _snapshot_3x2()
    data["devices"][0]["ports"] = [{"index": 1, "label": "wan"}, {"index": 2}, {"index": 3}]

    warnings = editor.load_snapshot(data)

    device = editor.layout.get_device("dev-fw")
    assert [p.index for p in device.ports] == list(range(1, 9))
    assert device.ports[0].label == "wan"
    assert warnings == ["device dev-fw: added ports 4..8 to match FIREWALL port count"]
    assert len(editor.connections) == 2


def test_load_trims_long_port_list_with_warning(editor: RackEditor) -> None:
    data = _snapshot_3x2()
    data["devices"][0]["ports"] = _ports(10)
    data["devices"][0]["ports"][7] = {"index": 8, "vlan": 30}

    warnings = editor.load_snapshot(data)

    device = editor.layout.get_device("dev-fw")
    assert len(device.ports) == 8
    assert device.ports[7].vlan == 30
    assert warnings == ["device dev-fw: dropped ports 9..10 beyond FIREWALL port count"]


def test_concurrent_moves_never_overlap(editor: RackEditor) -> None:
    ids = [editor.add_device("SERVER_2U").id for _ in range(8)]
    rng = random.Random(7)
    requests = [(rng.choice(ids), rng.randint(17, 30)) for _ in range(400)]

    def move(request: tuple[str, int]) -> None:
        try:
            editor.move_device(*request)
        except SlotOccupiedError:
            pass

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(move, requests))

    devices = editor.layout.list_devices()
    assert len(devices) == 8
    for first, second in itertools.combinations(devices, 2):
        assert not intervals_overlap(
            first.start_unit, first.height_units, second.start_unit, second.height_units
        )


def test_load_replaces_state_and_resets_selection() -> None:
    editor = _wired_editor()
    editor.select_port(editor.layout.list_devices()[0].id, 5)
    editor.load_snapshot({"devices": [], "connections": []})
    assert editor.layout.list_devices() == []
    assert editor.connections.pending is None


@pytest.mark.parametrize("bad", [None, [], "devices", {"devices": {}}])
def test_invalid_snapshot_leaves_state_intact(bad: object) -> None:
    editor = _wired_editor()
    before = editor.snapshot()
    with pytest.raises(InvalidSnapshotError):
        editor.load_snapshot(bad)
    assert editor.snapshot() == before


def test_load_snapshot_yaml_parse_error(editor: RackEditor) -> None:
    with pytest.raises(InvalidSnapshotError):
        editor.load_snapshot_yaml("devices: [unclosed")
