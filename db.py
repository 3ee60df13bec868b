# SPDX-License-Identifier: Apache-2.0
# This file was created or modified with the assistance of an AI (Large Language Model).
"""SQLite persistence layer for saved rack layout revisions."""

from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from hashlib import sha256
from pathlib import Path
from typing import Any, Iterator

SCHEMA = """
CREATE TABLE IF NOT EXISTS layout (
  layout_id TEXT PRIMARY KEY,
  name TEXT NOT NULL,
  created_at TEXT NOT NULL,
  updated_at TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS revision (
  revision_id TEXT PRIMARY KEY,
  layout_id TEXT NOT NULL,
  created_at TEXT NOT NULL,
  note TEXT,
  snapshot_json TEXT NOT NULL,
  snapshot_hash TEXT NOT NULL,
  FOREIGN KEY(layout_id) REFERENCES layout(layout_id)
);
CREATE INDEX IF NOT EXISTS idx_revision_layout ON revision(layout_id);
"""


def snapshot_hash(snapshot: dict[str, Any]) -> str:
    return sha256(json.dumps(snapshot, sort_keys=True).encode("utf-8")).hexdigest()


class Database:
    def __init__(self, path: str = "rackwire.db"):
        self.path = path

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def init_db(self) -> None:
        Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        with self.connect() as conn:
            conn.executescript(SCHEMA)

    def save_revision(
        self, name: str, note: str | None, snapshot: dict[str, Any]
    ) -> tuple[str, str]:
        now = datetime.now(timezone.utc).isoformat()
        payload = json.dumps(snapshot, ensure_ascii=False)
        layout_id = f"lay_{sha256(name.encode('utf-8')).hexdigest()[:16]}"
        revision_id = f"rev_{sha256((name + now + payload).encode('utf-8')).hexdigest()[:16]}"
        with self.connect() as conn:
            conn.execute(
                "INSERT INTO layout(layout_id,name,created_at,updated_at) VALUES(?,?,?,?) ON CONFLICT(layout_id) DO UPDATE SET updated_at=excluded.updated_at,name=excluded.name",
                (layout_id, name, now, now),
            )
            conn.execute(
                "INSERT INTO revision(revision_id,layout_id,created_at,note,snapshot_json,snapshot_hash) VALUES(?,?,?,?,?,?)",
                (revision_id, layout_id, now, note or "", payload, snapshot_hash(snapshot)),
            )
        return layout_id, revision_id

    def list_layouts(self) -> list[sqlite3.Row]:
        with self.connect() as conn:
            return conn.execute("SELECT * FROM layout ORDER BY updated_at DESC").fetchall()

    def list_revisions(self, layout_id: str) -> list[sqlite3.Row]:
        with self.connect() as conn:
            return conn.execute(
                "SELECT * FROM revision WHERE layout_id=? ORDER BY created_at DESC", (layout_id,)
            ).fetchall()

    def get_revision(self, revision_id: str) -> sqlite3.Row | None:
        with self.connect() as conn:
            return conn.execute(
                "SELECT * FROM revision WHERE revision_id=?", (revision_id,)
            ).fetchone()

    def load_snapshot(self, revision_id: str) -> dict[str, Any] | None:
        rev = self.get_revision(revision_id)
        if rev is None:
            return None
        return json.loads(rev["snapshot_json"])
