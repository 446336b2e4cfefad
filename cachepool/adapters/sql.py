"""
SQLite adapter.

All pools share one table; rows are scoped by a pool name column and are
unique per (key, pool). Values are pickled into a BLOB column and expirations
are stored as UTC strings in a configurable strftime format.
"""

import logging
import pickle
import re
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Union

from cachepool.adapters.base import AbstractAdapter
from cachepool.collection import CacheItemCollection
from cachepool.config.settings import settings
from cachepool.exceptions import InvalidArgument, ItemNotFound, PersistenceError
from cachepool.item import CacheItem

logger = logging.getLogger(__name__)

DEFAULT_TABLE_OPTIONS: Dict[str, str] = {
    "table_name": "cache_items",
    "id_column": "id",
    "key_column": "key",
    "value_column": "value",
    "pool_name_column": "pool_name",
    "expiration_column": "expires_at",
}

_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")

_FORMAT_PROBE = datetime(2001, 2, 3, 4, 5, 6)

# Keys per IN (...) list; with the pool parameter this stays under SQLite's
# historic limit of 999 host parameters per statement.
MAX_KEYS_PER_STATEMENT = 900


def _chunks(keys: List[str]) -> Iterator[List[str]]:
    for start in range(0, len(keys), MAX_KEYS_PER_STATEMENT):
        yield keys[start:start + MAX_KEYS_PER_STATEMENT]


def resolve_table_options(table_options: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    """Merge custom table/column names over the defaults and validate them."""
    options = dict(DEFAULT_TABLE_OPTIONS)
    options["table_name"] = settings.sql_table_name
    unknown = set(table_options or {}) - set(DEFAULT_TABLE_OPTIONS)
    if unknown:
        raise InvalidArgument(f"Unknown table options: {sorted(unknown)}")
    options.update(table_options or {})
    for name, identifier in options.items():
        if not isinstance(identifier, str) or not _IDENTIFIER.fullmatch(identifier):
            raise InvalidArgument(f"Invalid SQL identifier for {name}: {identifier!r}")
    return options


def create_cache_table(conn: sqlite3.Connection, table_options: Optional[Dict[str, str]] = None) -> None:
    """Create the cache table and its (key, pool) unique index if missing."""
    o = resolve_table_options(table_options)
    conn.execute(f"""
        CREATE TABLE IF NOT EXISTS "{o['table_name']}" (
            "{o['id_column']}" INTEGER PRIMARY KEY AUTOINCREMENT,
            "{o['key_column']}" TEXT NOT NULL,
            "{o['value_column']}" BLOB,
            "{o['pool_name_column']}" TEXT NOT NULL,
            "{o['expiration_column']}" TEXT
        )
    """)
    conn.execute(f"""
        CREATE UNIQUE INDEX IF NOT EXISTS "idx_{o['table_name']}_key_pool"
        ON "{o['table_name']}"("{o['key_column']}", "{o['pool_name_column']}")
    """)
    conn.commit()


class SqlAdapter(AbstractAdapter):
    """SQLite-based storage for one cache pool."""

    def __init__(
        self,
        pool_name: str,
        db_path: Optional[Union[str, Path]] = None,
        table_options: Optional[Dict[str, str]] = None,
        expiration_format: Optional[str] = None,
        connection: Optional[sqlite3.Connection] = None,
    ):
        """
        Args:
            pool_name: rows written by this adapter are tagged with this name
            db_path: SQLite file (settings.sql_db_path); ignored when connection is given
            table_options: overrides for table and column names
            expiration_format: strftime format of the expiration column
            connection: existing sqlite3 connection to use instead of db_path
        """
        if not pool_name:
            raise InvalidArgument("SQL adapter requires a pool name")
        self.pool_name = pool_name
        self.table_options = resolve_table_options(table_options)
        self.expiration_format = expiration_format or settings.sql_expiration_format
        self._check_expiration_format()

        if connection is None:
            path = Path(db_path or settings.sql_db_path)
            path.parent.mkdir(parents=True, exist_ok=True)
            connection = sqlite3.connect(str(path), check_same_thread=False)
            self.db_path: Optional[Path] = path
        else:
            self.db_path = None
        self._conn = connection
        create_cache_table(self._conn, self.table_options)
        logger.info(f"Initialized SQL cache pool '{pool_name}' (table={self.table_options['table_name']})")

    def _check_expiration_format(self) -> None:
        """The format must round-trip a datetime to the second."""
        try:
            parsed = datetime.strptime(_FORMAT_PROBE.strftime(self.expiration_format), self.expiration_format)
        except (ValueError, TypeError) as e:
            raise InvalidArgument(f"Invalid expiration column format '{self.expiration_format}'") from e
        if parsed != _FORMAT_PROBE:
            raise InvalidArgument(
                f"Expiration column format '{self.expiration_format}' does not keep date and time to the second"
            )

    def _format_expiration(self, item: CacheItem) -> str:
        return self.expiration_of(item).strftime(self.expiration_format)

    def _parse_expiration(self, raw: str) -> datetime:
        return datetime.strptime(raw, self.expiration_format).replace(tzinfo=timezone.utc)

    @contextmanager
    def _query(self, description: str):
        """Translate sqlite errors on read paths into PersistenceError."""
        try:
            yield self._conn
        except sqlite3.Error as e:
            raise PersistenceError(f"SQL cache {description} failed: {e}") from e

    def _row_to_item(self, row) -> CacheItem:
        key, value, expiration = row
        return CacheItem(key, pickle.loads(value), self._parse_expiration(expiration))

    def _select_sql(self, where: str) -> str:
        o = self.table_options
        return (
            f'SELECT "{o["key_column"]}", "{o["value_column"]}", "{o["expiration_column"]}" '
            f'FROM "{o["table_name"]}" WHERE "{o["pool_name_column"]}" = ? AND {where}'
        )

    def get_item(self, key: str) -> CacheItem:
        sql = self._select_sql(f'"{self.table_options["key_column"]}" = ?')
        with self._query(f"read of '{key}'") as conn:
            row = conn.execute(sql, (self.pool_name, key)).fetchone()
        if row is None:
            raise ItemNotFound(key)
        return self._row_to_item(row)

    def get_items(self, keys: Iterable[str] = ()) -> CacheItemCollection:
        keys = list(keys)
        collection = self.create_collection()
        if not keys:
            return collection

        rows = {}
        with self._query("batch read") as conn:
            for chunk in _chunks(list(dict.fromkeys(keys))):
                placeholders = ", ".join("?" for _ in chunk)
                sql = self._select_sql(f'"{self.table_options["key_column"]}" IN ({placeholders})')
                for row in conn.execute(sql, (self.pool_name, *chunk)).fetchall():
                    rows[row[0]] = row
        # Preserve the caller's key order
        for key in keys:
            if key in rows:
                collection.add(self._row_to_item(rows[key]))
        return collection

    def has_item(self, key: str) -> bool:
        o = self.table_options
        sql = (
            f'SELECT 1 FROM "{o["table_name"]}" '
            f'WHERE "{o["pool_name_column"]}" = ? AND "{o["key_column"]}" = ? LIMIT 1'
        )
        with self._query(f"lookup of '{key}'") as conn:
            return conn.execute(sql, (self.pool_name, key)).fetchone() is not None

    def clear(self) -> bool:
        o = self.table_options
        try:
            with self._conn:
                cursor = self._conn.execute(
                    f'DELETE FROM "{o["table_name"]}" WHERE "{o["pool_name_column"]}" = ?',
                    (self.pool_name,),
                )
        except sqlite3.Error as e:
            logger.warning(f"SQL cache clear error for pool '{self.pool_name}': {e}")
            return False
        logger.info(f"Cleared {cursor.rowcount} row(s) from SQL cache pool '{self.pool_name}'")
        return True

    def delete_item(self, key: str) -> bool:
        return self.delete_items([key])

    def delete_items(self, keys: Iterable[str]) -> bool:
        """Delete keys in one transaction. Present keys are removed even when others are missing."""
        unique = list(dict.fromkeys(keys))
        if not unique:
            return True

        o = self.table_options
        deleted = 0
        try:
            with self._conn:
                for chunk in _chunks(unique):
                    placeholders = ", ".join("?" for _ in chunk)
                    cursor = self._conn.execute(
                        f'DELETE FROM "{o["table_name"]}" '
                        f'WHERE "{o["pool_name_column"]}" = ? AND "{o["key_column"]}" IN ({placeholders})',
                        (self.pool_name, *chunk),
                    )
                    deleted += cursor.rowcount
        except sqlite3.Error as e:
            logger.warning(f"SQL cache delete error for {len(unique)} key(s): {e}")
            return False
        return deleted == len(unique)

    def _upsert(self, item: CacheItem) -> None:
        o = self.table_options
        self._conn.execute(
            f'INSERT INTO "{o["table_name"]}" '
            f'("{o["key_column"]}", "{o["value_column"]}", "{o["pool_name_column"]}", "{o["expiration_column"]}") '
            f"VALUES (?, ?, ?, ?) "
            f'ON CONFLICT("{o["key_column"]}", "{o["pool_name_column"]}") DO UPDATE SET '
            f'"{o["value_column"]}" = excluded."{o["value_column"]}", '
            f'"{o["expiration_column"]}" = excluded."{o["expiration_column"]}"',
            (item.get_key(), pickle.dumps(item.value), self.pool_name, self._format_expiration(item)),
        )

    def save(self, item: CacheItem) -> bool:
        return self.save_items([item])

    def save_items(self, items: Iterable[CacheItem]) -> bool:
        """Upsert the batch in one transaction; any failing item rolls back every row."""
        batch = self.ensure_items(items)
        try:
            with self._conn:
                for item in batch:
                    self._upsert(item)
        except (sqlite3.Error, pickle.PicklingError, AttributeError, TypeError) as e:
            logger.warning(
                f"SQL cache batch of {len(batch)} item(s) rolled back in pool '{self.pool_name}': {e}"
            )
            return False
        return True

    def close(self) -> None:
        self._conn.close()
