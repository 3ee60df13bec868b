# SPDX-License-Identifier: Apache-2.0
# This file was created or modified with the assistance of an AI (Large Language Model).
"""CSV and JSON exports of a layout snapshot."""

from __future__ import annotations

import csv
import io
import json
from collections import Counter
from typing import Any

from models import Catalog

CONNECTION_COLUMNS = [
    "revision_id",
    "connection_id",
    "label",
    "a_device",
    "a_model",
    "a_unit",
    "a_port",
    "b_device",
    "b_model",
    "b_unit",
    "b_port",
    "color",
]

BOM_COLUMNS = [
    "item_type",
    "description",
    "quantity",
]


def _port_key(endpoint: dict[str, Any]) -> str:
    return f"{endpoint['deviceId']}-p{endpoint['portIndex']}"


def connections_csv(snapshot: dict[str, Any], revision_id: str | None = None) -> str:
    """Cable schedule: one row per connection with both endpoints' rack positions."""
    devices = {d["id"]: d for d in snapshot.get("devices", [])}
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=CONNECTION_COLUMNS)
    writer.writeheader()
    for c in snapshot.get("connections", []):
        a, b = c["endpointA"], c["endpointB"]
        dev_a = devices.get(a["deviceId"], {})
        dev_b = devices.get(b["deviceId"], {})
        writer.writerow(
            {
                "revision_id": revision_id or "",
                "connection_id": c["id"],
                "label": f"{_port_key(a)} ↔ {_port_key(b)}",
                "a_device": a["deviceId"],
                "a_model": dev_a.get("modelKey", ""),
                "a_unit": dev_a.get("startUnit", ""),
                "a_port": a["portIndex"],
                "b_device": b["deviceId"],
                "b_model": dev_b.get("modelKey", ""),
                "b_unit": dev_b.get("startUnit", ""),
                "b_port": b["portIndex"],
                "color": c["color"],
            }
        )
    return buf.getvalue()


def bom_rows(snapshot: dict[str, Any], catalog: Catalog) -> list[dict[str, Any]]:
    """Build Bill of Materials rows: devices per catalog model plus patch cables."""
    rows: list[dict[str, Any]] = []

    device_counts: Counter[str] = Counter()
    for d in snapshot.get("devices", []):
        model = catalog.get(d["modelKey"])
        desc = f"{model.name} ({model.height_units}U)" if model else d["modelKey"]
        device_counts[desc] += 1
    for desc, qty in sorted(device_counts.items()):
        rows.append({"item_type": "device", "description": desc, "quantity": qty})

    cable_count = len(snapshot.get("connections", []))
    if cable_count:
        rows.append({"item_type": "cable", "description": "patch cable", "quantity": cable_count})

    return rows


def bom_csv(snapshot: dict[str, Any], catalog: Catalog) -> str:
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=BOM_COLUMNS)
    writer.writeheader()
    writer.writerows(bom_rows(snapshot, catalog))
    return buf.getvalue()


def snapshot_json(snapshot: dict[str, Any]) -> str:
    return json.dumps(snapshot, ensure_ascii=False, indent=2, default=str)
