"""
Repository pattern for data access.

Handles database operations and data persistence logic. Snapshots are
insert-only: the only mutation besides insert is deletion by id.
"""

import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Dict, Iterator, List, Optional, Tuple

from yorc_stats.core.errors import StorageError
from .db import DEFAULT_DB_PATH, get_connection
from .models import Owner, YoRC, category_columns, option_columns

_OPTION_COLUMNS = option_columns()
_CATEGORY_COLUMNS = frozenset(category_columns())


@contextmanager
def _connect(db_path: str) -> Iterator[sqlite3.Connection]:
    """Open a connection and translate driver errors into StorageError."""
    conn = get_connection(db_path)
    try:
        yield conn
    except sqlite3.Error as e:
        raise StorageError(str(e)) from e
    finally:
        conn.close()


def to_storage_timestamp(value: datetime) -> str:
    """Render a timestamp in the fixed-width UTC text form used in storage.

    Naive datetimes are taken to be UTC already. The fixed width keeps
    text comparison in SQL equivalent to chronological comparison.
    """
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.isoformat(sep=" ", timespec="microseconds")


def from_storage_timestamp(raw: str) -> datetime:
    """Parse a stored timestamp back into an aware UTC datetime."""
    return datetime.fromisoformat(raw).replace(tzinfo=timezone.utc)


class YoRCRepository:
    """Repository for accessing and managing generator snapshots.

    Every call opens its own connection, so one instance can be shared
    between threads.
    """

    def __init__(self, db_path: str = DEFAULT_DB_PATH):
        """Initialize the repository with a database path.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path

    def save(self, yorc: YoRC) -> int:
        """Insert a snapshot and its selected languages in one transaction.

        Args:
            yorc: Snapshot to persist; its creation_date must be set

        Returns:
            The id assigned to the new snapshot

        Raises:
            ValueError: If creation_date is missing
            StorageError: If the database rejects the write
        """
        if yorc.creation_date is None:
            raise ValueError("creation_date must be set before saving")

        columns = ["creation_date", "owner_id"] + _OPTION_COLUMNS
        values = [to_storage_timestamp(yorc.creation_date), yorc.owner_id]
        values += [getattr(yorc, name) for name in _OPTION_COLUMNS]
        placeholders = ", ".join("?" for _ in columns)

        with _connect(self.db_path) as conn:
            try:
                conn.execute("BEGIN TRANSACTION")
                cursor = conn.execute(
                    f"INSERT INTO yorc ({', '.join(columns)}) VALUES ({placeholders})",
                    values
                )
                yorc_id = cursor.lastrowid
                for language in sorted(yorc.selected_languages):
                    conn.execute(
                        "INSERT INTO selected_language (yorc_id, language_code) VALUES (?, ?)",
                        (yorc_id, language)
                    )
                conn.commit()
            except Exception:
                conn.rollback()
                raise
        return yorc_id

    def save_language(self, yorc_id: int, language_code: str) -> None:
        """Attach one more selected language to an existing snapshot."""
        with _connect(self.db_path) as conn:
            conn.execute(
                "INSERT INTO selected_language (yorc_id, language_code) VALUES (?, ?)",
                (yorc_id, language_code)
            )
            conn.commit()

    def delete(self, yorc_id: int) -> bool:
        """Delete a snapshot by id; its languages go with it.

        Returns:
            True if a snapshot was deleted
        """
        with _connect(self.db_path) as conn:
            cursor = conn.execute("DELETE FROM yorc WHERE id = ?", (yorc_id,))
            conn.commit()
            return cursor.rowcount > 0

    def count_all(self) -> int:
        """Total number of stored snapshots."""
        with _connect(self.db_path) as conn:
            return conn.execute("SELECT COUNT(*) FROM yorc").fetchone()[0]

    def find_one(self, yorc_id: int) -> Optional[YoRC]:
        """Fetch a single snapshot by id, or None when it does not exist."""
        with _connect(self.db_path) as conn:
            rows = self._select_yorcs(conn, "WHERE id = ?", (yorc_id,))
        return rows[0] if rows else None

    def find_all(self) -> List[YoRC]:
        """Fetch every snapshot ordered by creation date (oldest first)."""
        with _connect(self.db_path) as conn:
            return self._select_yorcs(conn, "ORDER BY creation_date ASC, id ASC", ())

    def count_by_year(self, since: datetime) -> List[Tuple[int, int]]:
        """Count snapshots created after `since`, grouped by calendar year.

        Returns:
            (year, count) rows in ascending year order
        """
        return self._grouped_count("CAST(strftime('%Y', creation_date) AS INTEGER)", since)

    def count_by_month(self, since: datetime) -> List[Tuple[str, int]]:
        """Count snapshots created after `since`, grouped by month.

        Returns:
            ("YYYYMM", count) rows in ascending month order
        """
        return self._grouped_count("strftime('%Y%m', creation_date)", since)

    def count_by_day(self, since: datetime) -> List[Tuple[str, int]]:
        """Count snapshots created after `since`, grouped by day.

        Returns:
            ("YYYY-MM-DD", count) rows in ascending day order
        """
        return self._grouped_count("date(creation_date)", since)

    def count_by_category_by_month(
        self,
        category: str,
        since: datetime
    ) -> List[Tuple[str, str, int]]:
        """Count snapshots created after `since` per month and category value.

        Args:
            category: Name of a categorical column, e.g. "client_framework"
            since: Exclusive lower bound on creation date

        Returns:
            ("YYYYMM", category value, count) rows ordered by month then value

        Raises:
            ValueError: If category is not a categorical column
        """
        if category not in _CATEGORY_COLUMNS:
            raise ValueError(f"Unknown category column: {category}")

        with _connect(self.db_path) as conn:
            cursor = conn.execute(f"""
                SELECT strftime('%Y%m', creation_date) AS bucket,
                       {category} AS category_value,
                       COUNT(*)
                FROM yorc
                WHERE creation_date > ?
                GROUP BY bucket, category_value
                ORDER BY bucket ASC, category_value ASC
            """, (to_storage_timestamp(since),))
            return [(row[0], row[1], row[2]) for row in cursor.fetchall()]

    def find_owner_by_login(self, login: str) -> Optional[Owner]:
        """Look up the owner linked to a user login."""
        with _connect(self.db_path) as conn:
            row = conn.execute(
                "SELECT id, login FROM owner WHERE login = ?", (login,)
            ).fetchone()
        return Owner(id=row[0], login=row[1]) if row else None

    def insert_owner(self, login: Optional[str]) -> Owner:
        """Create an owner, optionally linked to a user login.

        When another caller already created the owner for `login`, that
        owner is returned instead of failing on the unique login.
        """
        with _connect(self.db_path) as conn:
            if login is None:
                cursor = conn.execute("INSERT INTO owner (login) VALUES (NULL)")
                conn.commit()
                return Owner(id=cursor.lastrowid, login=None)

            conn.execute("INSERT OR IGNORE INTO owner (login) VALUES (?)", (login,))
            conn.commit()
            row = conn.execute(
                "SELECT id, login FROM owner WHERE login = ?", (login,)
            ).fetchone()
            return Owner(id=row[0], login=row[1])

    def _grouped_count(self, bucket_expression: str, since: datetime) -> List[Tuple]:
        with _connect(self.db_path) as conn:
            cursor = conn.execute(f"""
                SELECT {bucket_expression} AS bucket, COUNT(*)
                FROM yorc
                WHERE creation_date > ?
                GROUP BY bucket
                ORDER BY bucket ASC
            """, (to_storage_timestamp(since),))
            return [(row[0], row[1]) for row in cursor.fetchall()]

    def _select_yorcs(self, conn: sqlite3.Connection, clause: str, params: Tuple) -> List[YoRC]:
        columns = ["id", "creation_date", "owner_id"] + _OPTION_COLUMNS
        cursor = conn.execute(f"SELECT {', '.join(columns)} FROM yorc {clause}", params)
        rows = cursor.fetchall()

        languages: Dict[int, set] = {}
        language_rows = conn.execute(
            "SELECT yorc_id, language_code FROM selected_language "
            f"WHERE yorc_id IN (SELECT id FROM yorc {clause})",
            params
        )
        for yorc_id, code in language_rows:
            languages.setdefault(yorc_id, set()).add(code)

        yorcs = []
        for row in rows:
            values = dict(zip(columns, row))
            options = {}
            for name in _OPTION_COLUMNS:
                value = values[name]
                options[name] = value if name in _CATEGORY_COLUMNS else bool(value)
            yorcs.append(YoRC(
                id=values["id"],
                creation_date=from_storage_timestamp(values["creation_date"]),
                owner_id=values["owner_id"],
                selected_languages=frozenset(languages.get(values["id"], ())),
                **options
            ))
        return yorcs


# Repository instances, one per database path
_repositories: Dict[str, YoRCRepository] = {}


def get_repository(db_path: str = DEFAULT_DB_PATH) -> YoRCRepository:
    """Get a repository instance.

    Instances are shared per database path.

    Args:
        db_path: Path to SQLite database file

    Returns:
        An instance of YoRCRepository
    """
    if db_path not in _repositories:
        _repositories[db_path] = YoRCRepository(db_path)
    return _repositories[db_path]


def initialize_schema(db_path: str = DEFAULT_DB_PATH) -> None:
    """Create the owner, yorc and selected_language tables if missing.

    Args:
        db_path: Path to SQLite database file
    """
    option_definitions = ",\n".join(
        f"    {name} TEXT NOT NULL DEFAULT ''" if name in _CATEGORY_COLUMNS
        else f"    {name} INTEGER NOT NULL DEFAULT 0"
        for name in _OPTION_COLUMNS
    )
    with _connect(db_path) as conn:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS owner (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                login TEXT UNIQUE
            )
        """)
        conn.execute(f"""
            CREATE TABLE IF NOT EXISTS yorc (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                creation_date TEXT NOT NULL,
                owner_id INTEGER REFERENCES owner (id),
{option_definitions}
            )
        """)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS selected_language (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                yorc_id INTEGER NOT NULL REFERENCES yorc (id) ON DELETE CASCADE,
                language_code TEXT NOT NULL
            )
        """)
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_yorc_creation_date ON yorc (creation_date)"
        )
        conn.commit()
