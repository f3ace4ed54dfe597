"""Persisted preferences: remembered filters and view settings, one key per field."""
import json
import logging
import sqlite3
from datetime import datetime

from guidance_console.db import get_connection

logger = logging.getLogger(__name__)

_MISSING = object()


def get_pref(db_path: str, key: str, default=None):
    """Return the stored value for ``key``, or ``default``.

    Missing keys, undecodable values and database errors all fall back to
    ``default``; stored preferences are a cache and never stop a view loading.
    """
    try:
        conn = get_connection(db_path)
        try:
            row = conn.execute("SELECT value FROM user_settings WHERE key = ?", (key,)).fetchone()
        finally:
            conn.close()
    except sqlite3.Error as e:
        logger.warning("Could not read preference %s: %s", key, e)
        return default
    if row is None or row["value"] is None:
        return default
    try:
        return json.loads(row["value"])
    except (TypeError, ValueError) as e:
        logger.warning("Ignoring corrupt preference %s=%r: %s", key, row["value"], e)
        return default


def set_pref(db_path: str, key: str, value) -> None:
    """Store ``value`` (JSON-serializable) under ``key``. Failures are logged, not raised."""
    try:
        encoded = json.dumps(value)
    except (TypeError, ValueError) as e:
        logger.warning("Preference %s is not JSON-serializable: %s", key, e)
        return
    try:
        conn = get_connection(db_path)
        try:
            conn.execute(
                """INSERT INTO user_settings (key, value, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET value=excluded.value, updated_at=excluded.updated_at""",
                (key, encoded, datetime.now().isoformat()),
            )
            conn.commit()
        finally:
            conn.close()
    except sqlite3.Error as e:
        logger.warning("Could not save preference %s: %s", key, e)


def delete_pref(db_path: str, key: str) -> None:
    try:
        conn = get_connection(db_path)
        try:
            conn.execute("DELETE FROM user_settings WHERE key = ?", (key,))
            conn.commit()
        finally:
            conn.close()
    except sqlite3.Error as e:
        logger.warning("Could not delete preference %s: %s", key, e)


def clear_prefs(db_path: str, prefix: str) -> int:
    """Delete every preference under ``prefix``. Returns the number removed."""
    try:
        conn = get_connection(db_path)
        try:
            cur = conn.execute(
                "DELETE FROM user_settings WHERE key = ? OR substr(key, 1, ?) = ?",
                (prefix, len(prefix) + 1, prefix + "."),
            )
            conn.commit()
            return cur.rowcount
        finally:
            conn.close()
    except sqlite3.Error as e:
        logger.warning("Could not clear preferences under %s: %s", prefix, e)
        return 0


def coerce(value, default):
    """Fit a stored value to the type of its default, or give back the default."""
    if value is None:
        return default
    if isinstance(default, bool):
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in ("true", "1", "yes", "false", "0", "no"):
            return value.strip().lower() in ("true", "1", "yes")
        return default
    if isinstance(default, int):
        if isinstance(value, bool):
            return default
        if isinstance(value, int):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
        if isinstance(value, str):
            try:
                return int(value.strip())
            except ValueError:
                return default
        return default
    if isinstance(default, float):
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
        return default
    if isinstance(default, str):
        if isinstance(value, str):
            return value
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return default
    return value


class PreferenceGroup:
    """The preferences owned by one view, stored as ``<prefix>.<field>`` keys.

    ``defaults`` fixes the set of fields and their types. Hydration drops keys the
    view no longer knows about and resets values that no longer fit their field.
    """

    def __init__(self, db_path: str, prefix: str, defaults: dict):
        self.db_path = db_path
        self.prefix = prefix
        self.defaults = dict(defaults)

    def key(self, field: str) -> str:
        return f"{self.prefix}.{field}"

    def get(self, field: str):
        default = self.defaults[field]
        stored = get_pref(self.db_path, self.key(field), _MISSING)
        if stored is _MISSING:
            return default
        return coerce(stored, default)

    def load(self) -> dict:
        return {field: self.get(field) for field in self.defaults}

    def save(self, field: str, value) -> None:
        if field not in self.defaults:
            raise KeyError(f"Unknown preference field: {field}")
        set_pref(self.db_path, self.key(field), value)

    def save_all(self, values: dict) -> None:
        for field, value in values.items():
            if field in self.defaults:
                self.save(field, value)

    def reset(self) -> dict:
        clear_prefs(self.db_path, self.prefix)
        return dict(self.defaults)
