"""
Saved board filter presets (SQLite).

A preset is a named snapshot of the board filter bar. At most MAX_PRESETS
are kept; saving a new one evicts the oldest.
"""
import json
import logging
import sqlite3
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

MAX_PRESETS = 20

# Board filter keys holding datetimes in memory and ISO strings at rest
DATE_KEYS = ("customStart", "customEnd")


def _connect(db_path: str) -> sqlite3.Connection:
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode = WAL")
    return conn


def serialize_filters(filters: Dict[str, Any]) -> Dict[str, Any]:
    """Convert custom range datetimes to ISO strings for storage."""
    out = dict(filters)
    for key in DATE_KEYS:
        value = out.get(key)
        out[key] = value.isoformat() if isinstance(value, datetime) else value
    return out


def deserialize_filters(filters: Dict[str, Any]) -> Dict[str, Any]:
    """Rebuild custom range datetimes from stored ISO strings."""
    out = dict(filters)
    for key in DATE_KEYS:
        value = out.get(key)
        out[key] = datetime.fromisoformat(value) if value else None
    return out


@dataclass
class FilterPreset:
    """A named set of board filters."""
    name: str
    filters: Dict[str, Any]
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "filters": serialize_filters(self.filters),
            "createdAt": self.created_at.isoformat(),
        }


class FilterPresetStore:
    """SQLite-backed store for filter presets."""

    def __init__(self, db_path: Optional[str] = None, max_presets: int = MAX_PRESETS):
        if db_path is None:
            db_path = str(Path.home() / ".local" / "share" / "flowboard" / "presets.db")
        self.db_path = db_path
        self.max_presets = max_presets
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    def _init_schema(self):
        with _connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS filter_presets (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    id TEXT UNIQUE NOT NULL,
                    name TEXT NOT NULL,
                    filters TEXT NOT NULL,  -- JSON object
                    created_at TEXT NOT NULL
                )
            """)
            conn.commit()

    def load_presets(self) -> List[FilterPreset]:
        """All presets, newest first. Rows that fail to parse are skipped."""
        try:
            with _connect(self.db_path) as conn:
                rows = conn.execute(
                    "SELECT * FROM filter_presets ORDER BY created_at DESC, seq DESC"
                ).fetchall()
        except sqlite3.Error as e:
            logger.error(f"Failed to load filter presets: {e}")
            return []

        presets = []
        for row in rows:
            try:
                presets.append(self._row_to_preset(row))
            except (ValueError, TypeError) as e:
                logger.warning(f"Skipping corrupt preset {row['id']}: {e}")
        return presets

    def save_preset(self, name: str, filters: Dict[str, Any]) -> FilterPreset:
        """Store a new preset and evict the oldest beyond max_presets."""
        preset = FilterPreset(name=name, filters=dict(filters))
        data = preset.to_dict()
        with _connect(self.db_path) as conn:
            conn.execute(
                "INSERT INTO filter_presets (id, name, filters, created_at) VALUES (?, ?, ?, ?)",
                (data["id"], data["name"], json.dumps(data["filters"]), data["createdAt"]),
            )
            conn.execute("""
                DELETE FROM filter_presets WHERE seq NOT IN (
                    SELECT seq FROM filter_presets
                    ORDER BY created_at DESC, seq DESC LIMIT ?
                )
            """, (self.max_presets,))
            conn.commit()
        logger.info(f"Saved filter preset '{name}' ({preset.id})")
        return preset

    def delete_preset(self, preset_id: str) -> bool:
        """Delete a preset. Returns True if a row was removed."""
        with _connect(self.db_path) as conn:
            cur = conn.execute("DELETE FROM filter_presets WHERE id = ?", (preset_id,))
            conn.commit()
        return cur.rowcount > 0

    def get_preset(self, preset_id: str) -> Optional[FilterPreset]:
        try:
            with _connect(self.db_path) as conn:
                row = conn.execute(
                    "SELECT * FROM filter_presets WHERE id = ?", (preset_id,)
                ).fetchone()
            return self._row_to_preset(row) if row else None
        except (sqlite3.Error, ValueError, TypeError) as e:
            logger.error(f"Error retrieving preset {preset_id}: {e}")
            return None

    @staticmethod
    def _row_to_preset(row: sqlite3.Row) -> FilterPreset:
        return FilterPreset(
            id=row["id"],
            name=row["name"],
            filters=deserialize_filters(json.loads(row["filters"])),
            created_at=datetime.fromisoformat(row["created_at"]),
        )
