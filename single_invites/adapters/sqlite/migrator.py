import logging
import os
import sqlite3
import threading

logger = logging.getLogger(__name__)

# Optional single_profiles columns added after the first release
PROFILE_CONTACT_COLUMNS = {
    "contact_email": "TEXT",
    "city": "TEXT",
}


class SQLiteMigrator:
    def __init__(self, db_path: str, migrations_dir: str):
        self.db_path = db_path
        self.migrations_dir = migrations_dir

    def _get_connection(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.execute("PRAGMA foreign_keys = ON;")
        return conn

    def _ensure_migration_table(self, conn: sqlite3.Connection) -> None:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS _migrations (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                filename TEXT UNIQUE NOT NULL,
                applied_at DATETIME DEFAULT CURRENT_TIMESTAMP
            );
        """)

    def _get_applied_migrations(self, conn: sqlite3.Connection) -> set[str]:
        cursor = conn.execute("SELECT filename FROM _migrations")
        return {row[0] for row in cursor.fetchall()}

    def run_migrations(self) -> list[str]:
        """Apply all pending migrations; returns the filenames applied."""
        applied_now: list[str] = []
        conn = self._get_connection()
        try:
            self._ensure_migration_table(conn)
            applied = self._get_applied_migrations(conn)

            files = sorted(f for f in os.listdir(self.migrations_dir) if f.endswith(".sql"))

            for filename in files:
                if filename not in applied:
                    logger.info("Applying migration: %s", filename)
                    self._apply_migration(conn, filename)
                    applied_now.append(filename)

            logger.info("Migrations up to date (%d applied this run)", len(applied_now))
            return applied_now
        finally:
            conn.close()

    def _read_up_script(self, filename: str) -> str:
        path = os.path.join(self.migrations_dir, filename)
        with open(path) as f:
            content = f.read()

        # Files start with the Up part; everything after '-- Down' is ignored
        return content.split("-- Down")[0]

    def _apply_migration(self, conn: sqlite3.Connection, filename: str) -> None:
        script = self._read_up_script(filename)
        try:
            conn.executescript(script)
            conn.execute("INSERT INTO _migrations (filename) VALUES (?)", (filename,))
            conn.commit()
        except Exception as e:
            conn.rollback()
            raise RuntimeError(f"Migration {filename} failed: {e}") from e


def ensure_profile_contact_columns(db_path: str) -> list[str]:
    """Add any missing optional single_profiles columns; returns those added."""
    conn = sqlite3.connect(db_path)
    try:
        existing = {row[1] for row in conn.execute("PRAGMA table_info(single_profiles)")}
        if not existing:
            raise RuntimeError("single_profiles table is missing; run migrations first")

        added = []
        for column, column_type in PROFILE_CONTACT_COLUMNS.items():
            if column not in existing:
                conn.execute(f"ALTER TABLE single_profiles ADD COLUMN {column} {column_type}")
                added.append(column)
        conn.commit()
        return added
    finally:
        conn.close()


class SchemaGuard:
    """
    Run schema setup at most once per process.

    A successful ensure() is remembered; a failed one is not, so the next
    call retries instead of reporting a cached failure forever.
    """

    def __init__(self, db_path: str, migrations_dir: str):
        self.db_path = db_path
        self.migrator = SQLiteMigrator(db_path, migrations_dir)
        self._ready = False
        self._lock = threading.Lock()

    @property
    def ready(self) -> bool:
        return self._ready

    def ensure(self) -> None:
        if self._ready:
            return
        with self._lock:
            if self._ready:
                return
            try:
                self.migrator.run_migrations()
                added = ensure_profile_contact_columns(self.db_path)
            except Exception:
                logger.exception(
                    "Schema setup failed for %s; will retry on next call", self.db_path
                )
                raise
            if added:
                logger.info("Added single_profiles columns: %s", ", ".join(added))
            self._ready = True
            logger.info("Schema ready for %s", self.db_path)

    def reset(self) -> None:
        with self._lock:
            self._ready = False
