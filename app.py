# SPDX-License-Identifier: Apache-2.0
# This file was created or modified with the assistance of an AI (Large Language Model).
"""Flask JSON API dispatching host UI events to a rack editing session."""

from __future__ import annotations

import logging
import os
from typing import Any

import yaml
from flask import Flask, Response, jsonify, request

from db import Database
from models import load_catalog
from services.connections import Connection, SelectionResult
from services.editor import RackEditor
from services.errors import (
    InvalidSnapshotError,
    NoRoomAvailableError,
    OutOfBoundsError,
    RackwireError,
    SlotOccupiedError,
)
from services.export import bom_csv, connections_csv, snapshot_json
from services.layout import Device, Port

log = logging.getLogger(__name__)

CONFLICT_ERRORS = (NoRoomAvailableError, SlotOccupiedError)
BAD_REQUEST_ERRORS = (OutOfBoundsError, InvalidSnapshotError)


def _port_json(port: Port) -> dict[str, Any]:
    data: dict[str, Any] = {"index": port.index}
    if port.label is not None:
        data["label"] = port.label
    if port.vlan is not None:
        data["vlan"] = port.vlan
    return data


def _device_json(device: Device) -> dict[str, Any]:
    return {
        "id": device.id,
        "modelKey": device.model_key,
        "name": device.name,
        "heightUnits": device.height_units,
        "color": device.color,
        "category": device.category,
        "startUnit": device.start_unit,
        "ports": [_port_json(p) for p in device.ports],
    }


def _connection_json(connection: Connection) -> dict[str, Any]:
    return {
        "id": connection.id,
        "endpointA": {"deviceId": connection.a.device_id, "portIndex": connection.a.index},
        "endpointB": {"deviceId": connection.b.device_id, "portIndex": connection.b.index},
        "color": connection.color,
        "label": connection.label,
    }


def _selection_json(result: SelectionResult) -> dict[str, Any]:
    return {
        "state": result.state.value,
        "pending": result.pending.key if result.pending else None,
        "connection": _connection_json(result.connection) if result.connection else None,
    }


def _error(kind: str, message: str, status: int) -> tuple[Response, int]:
    return jsonify({"error": kind, "message": message}), status


def _json_body() -> dict[str, Any]:
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


def create_app() -> Flask:
    app = Flask(__name__)
    app.secret_key = os.environ.get("SECRET_KEY", "dev-secret")
    app.config["MAX_CONTENT_LENGTH"] = 1024 * 1024

    db = Database(os.environ.get("RACKWIRE_DB", "rackwire.db"))
    db.init_db()
    catalog = load_catalog(os.environ.get("RACKWIRE_CATALOG"))
    editor = RackEditor(catalog)

    @app.errorhandler(RackwireError)
    def handle_rackwire_error(exc: RackwireError) -> tuple[Response, int]:
        if isinstance(exc, CONFLICT_ERRORS):
            status = 409
        elif isinstance(exc, BAD_REQUEST_ERRORS):
            status = 400
        else:
            status = 404
        log.warning("rejected %s %s: %s", request.method, request.path, exc)
        return _error(exc.kind, str(exc), status)

    @app.get("/catalog")
    def get_catalog() -> Response:
        return jsonify({key: model.model_dump() for key, model in catalog.items()})

    @app.get("/layout")
    def get_layout() -> Response:
        with editor.lock:
            devices = editor.layout.list_devices()
            connections = editor.connections.list_connections()
            state = editor.connections.state
            pending = editor.connections.pending
        return jsonify(
            {
                "rackUnits": editor.rack_units,
                "devices": [_device_json(d) for d in devices],
                "connections": [_connection_json(c) for c in connections],
                "selection": {
                    "state": state.value,
                    "pending": pending.key if pending else None,
                },
            }
        )

    @app.post("/devices")
    def add_device() -> tuple[Response, int]:
        model_key = _json_body().get("modelKey")
        if not isinstance(model_key, str):
            return _error("BadRequest", "modelKey is required", 400)
        device = editor.add_device(model_key)
        return jsonify(_device_json(device)), 201

    @app.patch("/devices/<device_id>")
    def move_device(device_id: str) -> tuple[Response, int] | Response:
        body = _json_body()
        if "startUnit" not in body:
            return _error("BadRequest", "startUnit is required", 400)
        return jsonify(_device_json(editor.move_device(device_id, body["startUnit"])))

    @app.delete("/devices/<device_id>")
    def remove_device(device_id: str) -> Response:
        device, affected = editor.remove_device(device_id)
        return jsonify(
            {"removed": _device_json(device), "affectedConnectionIds": sorted(affected)}
        )

    @app.patch("/devices/<device_id>/ports/<int:index>")
    def update_port(device_id: str, index: int) -> tuple[Response, int] | Response:
        body = _json_body()
        label = body.get("label")
        vlan = body.get("vlan")
        if label is not None and not isinstance(label, str):
            return _error("BadRequest", "label must be a string", 400)
        if vlan is not None and (isinstance(vlan, bool) or not isinstance(vlan, int)):
            return _error("BadRequest", "vlan must be an integer", 400)
        changes = {key: body[key] for key in ("label", "vlan") if key in body}
        try:
            port = editor.set_port_metadata(device_id, index, **changes)
        except ValueError as exc:
            return _error("BadRequest", str(exc), 400)
        return jsonify(_port_json(port))

    @app.post("/ports/select")
    def select_port() -> tuple[Response, int] | Response:
        body = _json_body()
        device_id = body.get("deviceId")
        port_index = body.get("portIndex")
        if (
            not isinstance(device_id, str)
            or isinstance(port_index, bool)
            or not isinstance(port_index, int)
        ):
            return _error("BadRequest", "deviceId and integer portIndex are required", 400)
        return jsonify(_selection_json(editor.select_port(device_id, port_index)))

    @app.delete("/connections/<connection_id>")
    def delete_connection(connection_id: str) -> Response:
        return jsonify(_connection_json(editor.delete_connection(connection_id)))

    @app.post("/reset")
    def reset() -> Response:
        editor.clear()
        return jsonify(editor.snapshot())

    @app.post("/layouts")
    def save_layout() -> tuple[Response, int]:
        body = _json_body()
        name = body.get("name")
        note = body.get("note")
        if name is not None and not isinstance(name, str):
            return _error("BadRequest", "name must be a string", 400)
        if note is not None and not isinstance(note, str):
            return _error("BadRequest", "note must be a string", 400)
        name = (name or "").strip() or "untitled-layout"
        layout_id, revision_id = db.save_revision(name, note, editor.snapshot())
        return jsonify({"layoutId": layout_id, "revisionId": revision_id}), 201

    @app.get("/layouts")
    def list_layouts() -> Response:
        return jsonify([dict(row) for row in db.list_layouts()])

    @app.get("/layouts/<layout_id>/revisions")
    def list_revisions(layout_id: str) -> Response:
        return jsonify(
            [
                {k: row[k] for k in ("revision_id", "layout_id", "created_at", "note")}
                for row in db.list_revisions(layout_id)
            ]
        )

    @app.post("/revisions/<revision_id>/load")
    def load_revision(revision_id: str) -> tuple[Response, int] | Response:
        snapshot = db.load_snapshot(revision_id)
        if snapshot is None:
            return _error("UnknownRevision", f"unknown revision: {revision_id}", 404)
        warnings = editor.load_snapshot(snapshot)
        return jsonify({"snapshot": editor.snapshot(), "warnings": warnings})

    @app.get("/revisions/<revision_id>/export/connections.csv")
    def export_connections(revision_id: str) -> Response:
        snapshot = db.load_snapshot(revision_id)
        if snapshot is None:
            return Response("not found", status=404)
        return Response(
            connections_csv(snapshot, revision_id),
            mimetype="text/csv",
            headers={"Content-Disposition": f"attachment; filename={revision_id}_connections.csv"},
        )

    @app.get("/revisions/<revision_id>/export/bom.csv")
    def export_bom(revision_id: str) -> Response:
        snapshot = db.load_snapshot(revision_id)
        if snapshot is None:
            return Response("not found", status=404)
        return Response(
            bom_csv(snapshot, catalog),
            mimetype="text/csv",
            headers={"Content-Disposition": f"attachment; filename={revision_id}_bom.csv"},
        )

    @app.get("/revisions/<revision_id>/export/snapshot.json")
    def export_snapshot_json(revision_id: str) -> Response:
        snapshot = db.load_snapshot(revision_id)
        if snapshot is None:
            return Response("not found", status=404)
        return Response(snapshot_json(snapshot), mimetype="application/json")

    @app.get("/revisions/<revision_id>/export/snapshot.yaml")
    def export_snapshot_yaml(revision_id: str) -> Response:
        snapshot = db.load_snapshot(revision_id)
        if snapshot is None:
            return Response("not found", status=404)
        return Response(
            yaml.safe_dump(snapshot, sort_keys=False, allow_unicode=True),
            mimetype="application/x-yaml",
        )

    return app


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    create_app().run(host="0.0.0.0", port=5000, debug=True)
