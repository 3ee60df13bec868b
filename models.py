# SPDX-License-Identifier: Apache-2.0
# This file was created or modified with the assistance of an AI (Large Language Model).
"""Hardware catalog and layout snapshot models for rackwire."""

from __future__ import annotations

import re
from collections.abc import ItemsView, Iterator
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, RootModel, model_validator

CATALOG_KEY_PATTERN = re.compile(r"^[A-Z0-9_]+$")


class HardwareModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str
    height_units: int = Field(ge=1)
    port_count: int = Field(ge=0)
    color: str
    category: Literal["NET", "SERVER", "PATCH"]


class Catalog(RootModel[dict[str, HardwareModel]]):
    """Read-only mapping of catalog key to hardware model."""

    @model_validator(mode="after")
    def validate_keys(self) -> "Catalog":
        bad = [key for key in self.root if not CATALOG_KEY_PATTERN.match(key)]
        if bad:
            raise ValueError(f"catalog keys must match {CATALOG_KEY_PATTERN.pattern}: {bad}")
        return self

    def __getitem__(self, key: str) -> HardwareModel:
        return self.root[key]

    def __contains__(self, key: object) -> bool:
        return key in self.root

    def __iter__(self) -> Iterator[str]:  # type: ignore[override]
        return iter(self.root)

    def __len__(self) -> int:
        return len(self.root)

    def get(self, key: str) -> HardwareModel | None:
        return self.root.get(key)

    def items(self) -> ItemsView[str, HardwareModel]:
        return self.root.items()

    @classmethod
    def from_yaml(cls, raw: str) -> "Catalog":
        data = yaml.safe_load(raw)
        if not isinstance(data, dict):
            raise ValueError("catalog YAML must be a mapping of key to hardware model")
        return cls.model_validate(data)


DEFAULT_CATALOG = Catalog.model_validate(
    {
        "FIREWALL": {
            "name": "NextGen Firewall",
            "height_units": 1,
            "port_count": 8,
            "color": "bg-red-900",
            "category": "NET",
        },
        "SWITCH_24": {
            "name": "Layer 3 24-Port",
            "height_units": 1,
            "port_count": 24,
            "color": "bg-slate-800",
            "category": "NET",
        },
        "SERVER_2U": {
            "name": "Storage Server",
            "height_units": 2,
            "port_count": 4,
            "color": "bg-blue-900",
            "category": "SERVER",
        },
        "PATCH_PANEL": {
            "name": "Cat6 Patch Panel",
            "height_units": 1,
            "port_count": 24,
            "color": "bg-zinc-900",
            "category": "PATCH",
        },
    }
)


def load_catalog(path: str | Path | None = None) -> Catalog:
    if path is None:
        return DEFAULT_CATALOG
    return Catalog.from_yaml(Path(path).read_text(encoding="utf-8"))


class PortRecord(BaseModel):
    model_config = ConfigDict(extra="forbid")

    index: int = Field(ge=1)
    label: str | None = None
    vlan: int | None = Field(default=None, ge=1, le=4094)


class DeviceRecord(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True, protected_namespaces=())

    id: str = Field(min_length=1)
    model_key: str = Field(alias="modelKey")
    start_unit: int = Field(alias="startUnit")
    ports: list[PortRecord] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_port_indices(self) -> "DeviceRecord":
        indices = [p.index for p in self.ports]
        if indices != list(range(1, len(indices) + 1)):
            raise ValueError(f"device {self.id} ports must be indexed 1..n in order")
        return self


class EndpointRecord(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    device_id: str = Field(alias="deviceId")
    port_index: int = Field(alias="portIndex")


class ConnectionRecord(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    id: str = Field(min_length=1)
    endpoint_a: EndpointRecord = Field(alias="endpointA")
    endpoint_b: EndpointRecord = Field(alias="endpointB")
    color: str

    @model_validator(mode="after")
    def validate_distinct_endpoints(self) -> "ConnectionRecord":
        if self.endpoint_a == self.endpoint_b:
            raise ValueError(f"connection {self.id} endpoints must be different ports")
        return self


def dump_record(record: BaseModel) -> dict[str, Any]:
    return record.model_dump(by_alias=True, exclude_none=True)
