"""SQLite-backed drink log: drinks, categories, and user settings."""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import date
from typing import Any

from drinklog.models import Category, ConsumptionEvent, Location

logger = logging.getLogger(__name__)

EVENT_COLUMNS = (
    "id, name, category, quantity, unit, alcohol_content, date, time, "
    "latitude, longitude, accuracy, address, barcode"
)

UPDATABLE_FIELDS = {"name", "category", "quantity", "unit", "alcohol_content", "date", "time", "barcode"}


def init_db(db_path: str) -> None:
    with sqlite3.connect(db_path) as conn:
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS categories (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL UNIQUE,
                drink_count INTEGER NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL DEFAULT (datetime('now')),
                updated_at TEXT NOT NULL DEFAULT (datetime('now'))
            )
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS drinks (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                category TEXT NOT NULL,
                quantity REAL NOT NULL,
                unit TEXT NOT NULL,
                alcohol_content REAL NOT NULL DEFAULT 0,
                date TEXT NOT NULL,
                time TEXT NOT NULL,
                latitude REAL,
                longitude REAL,
                accuracy REAL,
                address TEXT,
                barcode TEXT,
                created_at TEXT NOT NULL DEFAULT (datetime('now')),
                updated_at TEXT NOT NULL DEFAULT (datetime('now'))
            )
            """
        )
        conn.execute("CREATE INDEX IF NOT EXISTS idx_drinks_date ON drinks(date)")
        conn.execute("CREATE INDEX IF NOT EXISTS idx_drinks_category ON drinks(category)")
        conn.execute("CREATE INDEX IF NOT EXISTS idx_drinks_name ON drinks(name)")
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS settings (
                key TEXT PRIMARY KEY,
                value_json TEXT,
                updated_at TEXT NOT NULL DEFAULT (datetime('now'))
            )
            """
        )
        conn.commit()


def _row_to_event(row: sqlite3.Row) -> ConsumptionEvent:
    location = None
    if row["latitude"] is not None and row["longitude"] is not None:
        location = Location(
            latitude=row["latitude"],
            longitude=row["longitude"],
            accuracy=row["accuracy"],
            address=row["address"],
        )
    return ConsumptionEvent(
        id=row["id"],
        name=row["name"],
        category=row["category"],
        quantity=row["quantity"],
        unit=row["unit"],
        alcohol_content=row["alcohol_content"] or 0.0,
        date=row["date"],
        time=row["time"],
        location=location,
        barcode=row["barcode"],
    )


def _row_to_category(row: sqlite3.Row) -> Category:
    return Category(id=row["id"], name=row["name"], drink_count=row["drink_count"])


def _refresh_drink_count(conn: sqlite3.Connection, name: str) -> None:
    conn.execute(
        """
        UPDATE categories
        SET drink_count = (SELECT COUNT(*) FROM drinks WHERE drinks.category = categories.name),
            updated_at = datetime('now')
        WHERE name = ?
        """,
        (name,),
    )


def _query_events(db_path: str, where: str = "", params: tuple = ()) -> list[ConsumptionEvent]:
    with sqlite3.connect(db_path) as conn:
        conn.row_factory = sqlite3.Row
        rows = conn.execute(
            f"SELECT {EVENT_COLUMNS} FROM drinks {where} ORDER BY date DESC, time DESC, id DESC",
            params,
        ).fetchall()
    return [_row_to_event(r) for r in rows]


# Categories


def add_category(db_path: str, *, name: str) -> Category | None:
    name = name.strip()
    if not name:
        return None
    try:
        with sqlite3.connect(db_path) as conn:
            cur = conn.execute("INSERT INTO categories (name) VALUES (?)", (name,))
            conn.commit()
            category_id = int(cur.lastrowid)
    except sqlite3.IntegrityError:
        return None
    return Category(id=category_id, name=name, drink_count=0)


def get_categories(db_path: str) -> list[Category]:
    with sqlite3.connect(db_path) as conn:
        conn.row_factory = sqlite3.Row
        rows = conn.execute(
            "SELECT id, name, drink_count FROM categories ORDER BY drink_count DESC, name ASC"
        ).fetchall()
    return [_row_to_category(r) for r in rows]


def get_category(db_path: str, category_id: int) -> Category | None:
    with sqlite3.connect(db_path) as conn:
        conn.row_factory = sqlite3.Row
        row = conn.execute(
            "SELECT id, name, drink_count FROM categories WHERE id = ?", (category_id,)
        ).fetchone()
    return _row_to_category(row) if row else None


def get_category_by_name(db_path: str, name: str) -> Category | None:
    with sqlite3.connect(db_path) as conn:
        conn.row_factory = sqlite3.Row
        row = conn.execute(
            "SELECT id, name, drink_count FROM categories WHERE name = ?", (name.strip(),)
        ).fetchone()
    return _row_to_category(row) if row else None


def update_category_drink_count(db_path: str, *, name: str) -> None:
    with sqlite3.connect(db_path) as conn:
        _refresh_drink_count(conn, name)
        conn.commit()


def rename_category(db_path: str, *, category_id: int, new_name: str) -> tuple[bool, str]:
    """Rename a category and every drink that references it."""
    new_name = new_name.strip()
    if not new_name:
        return False, "New category name is empty"
    category = get_category(db_path, category_id)
    if category is None:
        return False, "Category not found"
    if category.name == new_name:
        return True, "Unchanged"
    if get_category_by_name(db_path, new_name) is not None:
        return False, "A category with this name already exists"

    with sqlite3.connect(db_path) as conn:
        conn.execute(
            "UPDATE categories SET name = ?, updated_at = datetime('now') WHERE id = ?",
            (new_name, category_id),
        )
        conn.execute(
            "UPDATE drinks SET category = ?, updated_at = datetime('now') WHERE category = ?",
            (new_name, category.name),
        )
        _refresh_drink_count(conn, new_name)
        conn.commit()
    return True, "Category renamed"


def delete_category(db_path: str, *, category_id: int) -> tuple[bool, str]:
    """Delete a category; refused while any drink still references it."""
    category = get_category(db_path, category_id)
    if category is None:
        return False, "Category not found"
    with sqlite3.connect(db_path) as conn:
        in_use = conn.execute(
            "SELECT COUNT(*) FROM drinks WHERE category = ?", (category.name,)
        ).fetchone()[0]
        if in_use:
            return False, "Cannot delete a category that still has drinks"
        conn.execute("DELETE FROM categories WHERE id = ?", (category_id,))
        conn.commit()
    return True, "Category deleted"


# Drinks


def add_event(db_path: str, *, event: ConsumptionEvent, create_category: bool = False) -> ConsumptionEvent | None:
    """Insert a drink. Returns None when its category does not exist (and may not be created)."""
    if get_category_by_name(db_path, event.category) is None:
        if not create_category:
            return None
        # Barcode flow: unknown product categories are created on the fly.
        add_category(db_path, name=event.category)

    loc = event.location
    with sqlite3.connect(db_path) as conn:
        cur = conn.execute(
            """
            INSERT INTO drinks (name, category, quantity, unit, alcohol_content, date, time,
                                latitude, longitude, accuracy, address, barcode)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                event.name,
                event.category,
                event.quantity,
                event.unit,
                event.alcohol_content or 0.0,
                event.date,
                event.time,
                loc.latitude if loc else None,
                loc.longitude if loc else None,
                loc.accuracy if loc else None,
                loc.address if loc else None,
                event.barcode,
            ),
        )
        _refresh_drink_count(conn, event.category)
        conn.commit()
        event_id = int(cur.lastrowid)
    return get_event(db_path, event_id)


def get_event(db_path: str, event_id: int) -> ConsumptionEvent | None:
    rows = _query_events(db_path, "WHERE id = ?", (event_id,))
    return rows[0] if rows else None


def update_event(db_path: str, *, event_id: int, updates: dict[str, Any]) -> ConsumptionEvent | None:
    """Patch a drink; unknown keys are ignored. `location` may be a dict or None."""
    old = get_event(db_path, event_id)
    if old is None:
        return None

    assignments: dict[str, Any] = {k: v for k, v in updates.items() if k in UPDATABLE_FIELDS}
    if "location" in updates:
        loc = updates["location"]
        assignments["latitude"] = loc.latitude if loc else None
        assignments["longitude"] = loc.longitude if loc else None
        assignments["accuracy"] = loc.accuracy if loc else None
        assignments["address"] = loc.address if loc else None
    if not assignments:
        return old

    columns = ", ".join(f"{k} = ?" for k in assignments)
    with sqlite3.connect(db_path) as conn:
        conn.execute(
            f"UPDATE drinks SET {columns}, updated_at = datetime('now') WHERE id = ?",
            (*assignments.values(), event_id),
        )
        new_category = assignments.get("category")
        if new_category and new_category != old.category:
            _refresh_drink_count(conn, old.category)
            _refresh_drink_count(conn, new_category)
        conn.commit()
    return get_event(db_path, event_id)


def set_event_address(db_path: str, *, event_id: int, address: str | None) -> bool:
    """Fill in the address of an already geo-tagged drink."""
    with sqlite3.connect(db_path) as conn:
        cur = conn.execute(
            """
            UPDATE drinks SET address = ?, updated_at = datetime('now')
            WHERE id = ? AND latitude IS NOT NULL
            """,
            (address, event_id),
        )
        conn.commit()
        return cur.rowcount > 0


def delete_event(db_path: str, *, event_id: int) -> bool:
    event = get_event(db_path, event_id)
    if event is None:
        return False
    with sqlite3.connect(db_path) as conn:
        conn.execute("DELETE FROM drinks WHERE id = ?", (event_id,))
        _refresh_drink_count(conn, event.category)
        conn.commit()
    return True


def get_all_events(db_path: str) -> list[ConsumptionEvent]:
    return _query_events(db_path)


def get_events_in_range(db_path: str, *, start: date | str, end: date | str) -> list[ConsumptionEvent]:
    """Drinks whose date falls in [start, end], both inclusive."""
    start_s = start.isoformat() if isinstance(start, date) else str(start)
    end_s = end.isoformat() if isinstance(end, date) else str(end)
    return _query_events(db_path, "WHERE date BETWEEN ? AND ?", (start_s, end_s))


def get_events_by_category(db_path: str, *, category: str) -> list[ConsumptionEvent]:
    return _query_events(db_path, "WHERE category = ?", (category,))


def get_events_by_name(db_path: str, *, name: str) -> list[ConsumptionEvent]:
    return _query_events(db_path, "WHERE name = ?", (name,))


# Settings


def get_setting(db_path: str, key: str) -> Any | None:
    with sqlite3.connect(db_path) as conn:
        row = conn.execute("SELECT value_json FROM settings WHERE key = ?", (key,)).fetchone()
    if row is None or row[0] is None:
        return None
    try:
        return json.loads(row[0])
    except json.JSONDecodeError:
        logger.warning("Ignoring corrupt setting %r", key)
        return None


def set_setting(db_path: str, *, key: str, value: Any) -> None:
    value_json = json.dumps(value, separators=(",", ":"), ensure_ascii=True)
    with sqlite3.connect(db_path) as conn:
        conn.execute(
            """
            INSERT INTO settings (key, value_json) VALUES (?, ?)
            ON CONFLICT(key) DO UPDATE SET value_json = excluded.value_json, updated_at = datetime('now')
            """,
            (key, value_json),
        )
        conn.commit()


def get_all_settings(db_path: str) -> dict[str, Any]:
    with sqlite3.connect(db_path) as conn:
        rows = conn.execute("SELECT key, value_json FROM settings ORDER BY key").fetchall()
    out: dict[str, Any] = {}
    for key, value_json in rows:
        try:
            out[key] = json.loads(value_json) if value_json is not None else None
        except json.JSONDecodeError:
            out[key] = None
    return out
