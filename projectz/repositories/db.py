# Rev 0.2.0

"""SQLite connection, write path & migration runner (Rev 0.2.0)
- One connection for the process; WAL mode, foreign_keys=ON
- Every mutation goes through write(): BEGIN IMMEDIATE … COMMIT under one lock
- Committed writes notify per-table observers (the live-query trigger)
- Applies NNNN_<tag>.sql files in numeric order, all pending ones in one transaction
- Tracks applied migrations in schema_migrations(identifier, sha256, applied_at_utc)
"""
from __future__ import annotations
import hashlib
import logging
import re
import sqlite3
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Set, TypeVar

from projectz.repositories.errors import MigrationError, PersistenceError
from projectz.utils.paths import DB_PATH, MIGRATIONS_DIR

log = logging.getLogger(__name__)

T = TypeVar("T")
TableObserver = Callable[[str], None]

MEMORY = ":memory:"
_MIGRATION_NAME = re.compile(r"^(\d+)_(\w+)\.sql$")


@dataclass(frozen=True)
class Migration:
    order: int
    identifier: str
    filename: str
    sql: str

    @property
    def sha256(self) -> str:
        return hashlib.sha256(self.sql.encode("utf-8")).hexdigest()


def load_migrations(migrations_dir: Path = MIGRATIONS_DIR) -> List[Migration]:
    """Reads NNNN_<tag>.sql files; the tag (e.g. "v1") is the ledger identifier."""
    out: List[Migration] = []
    for p in Path(migrations_dir).glob("*.sql"):
        m = _MIGRATION_NAME.match(p.name)
        if m is None:
            raise MigrationError(f"Bad migration filename {p.name!r} (expected NNNN_<tag>.sql)")
        sql = p.read_text(encoding="utf-8")
        if not sqlite3.complete_statement(sql):
            raise MigrationError(f"Migration {p.name} does not end with a complete statement")
        out.append(Migration(order=int(m.group(1)), identifier=m.group(2), filename=p.name, sql=sql))
    out.sort(key=lambda mig: mig.order)
    seen: Set[str] = set()
    for mig in out:
        if mig.identifier in seen:
            raise MigrationError(f"Duplicate migration identifier {mig.identifier!r}")
        seen.add(mig.identifier)
    return out


class Database:
    def __init__(self, path: Path | str = DB_PATH, *, erase_on_schema_change: bool = False) -> None:
        self.path = str(path)
        if self.path != MEMORY:
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        self.erase_on_schema_change = erase_on_schema_change
        # Transactions are explicit (BEGIN/COMMIT in write()), hence isolation_level=None
        self.conn = sqlite3.connect(self.path, isolation_level=None, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA journal_mode=WAL;")
        self.conn.execute("PRAGMA foreign_keys=ON;")

        self._lock = threading.RLock()
        self._depth = 0
        self._pending: Set[str] = set()
        self._observers: Dict[str, List[TableObserver]] = {}
        self._observers_lock = threading.Lock()
        log.info("SQLite open %s", self.path)

    def close(self) -> None:
        with self._lock:
            self.conn.close()

    # ---------- read / write ----------

    def read(self, fn: Callable[[sqlite3.Connection], T]) -> T:
        """Runs fn under the connection lock; never observes a half-applied write."""
        with self._lock:
            try:
                return fn(self.conn)
            except sqlite3.Error as e:
                raise PersistenceError(str(e)) from e

    def write(self, fn: Callable[[sqlite3.Connection], T], *, tables: Iterable[str] = ()) -> T:
        """
        Runs fn inside one transaction on the single writer path.
        Nested calls join the outer transaction; observers of `tables`
        are notified once, after the outermost COMMIT.
        """
        with self._lock:
            outer = self._depth == 0
            try:
                if outer:
                    self.conn.execute("BEGIN IMMEDIATE")
                self._depth += 1
                try:
                    result = fn(self.conn)
                finally:
                    self._depth -= 1
                self._pending.update(tables)
                if not outer:
                    return result
                self.conn.execute("COMMIT")
            except sqlite3.Error as e:
                if outer:
                    self._rollback()
                raise PersistenceError(str(e)) from e
            except BaseException:
                if outer:
                    self._rollback()
                raise
            changed, self._pending = self._pending, set()

        self._notify(changed)
        return result

    def _rollback(self) -> None:
        self._pending = set()
        try:
            if self.conn.in_transaction:
                self.conn.execute("ROLLBACK")
        except sqlite3.Error:
            log.exception("ROLLBACK failed on %s", self.path)

    # ---------- change observation ----------

    def add_observer(self, table: str, callback: TableObserver) -> Callable[[], None]:
        """Calls callback(table) after every committed write that touched `table`."""
        with self._observers_lock:
            self._observers.setdefault(table, []).append(callback)

        def remove() -> None:
            with self._observers_lock:
                callbacks = self._observers.get(table, [])
                if callback in callbacks:
                    callbacks.remove(callback)

        return remove

    def _notify(self, tables: Set[str]) -> None:
        for table in sorted(tables):
            with self._observers_lock:
                callbacks = list(self._observers.get(table, ()))
            for cb in callbacks:
                try:
                    cb(table)
                except Exception:
                    log.exception("Observer %r failed for table %s", cb, table)

    # ---------- migrations ----------

    def _ensure_ledger(self) -> None:
        self.conn.execute(
            """
            CREATE TABLE IF NOT EXISTS schema_migrations (
                identifier TEXT PRIMARY KEY,
                sha256 TEXT NOT NULL,
                applied_at_utc TEXT NOT NULL
            )
            """
        )

    def applied(self) -> Dict[str, str]:
        rows = self.conn.execute("SELECT identifier, sha256 FROM schema_migrations").fetchall()
        return {r[0]: r[1] for r in rows}

    def run_migrations(self, migrations_dir: Path = MIGRATIONS_DIR) -> List[str]:
        """Applies pending migrations; returns their identifiers. All or nothing."""
        migrations = load_migrations(migrations_dir)
        with self._lock:
            try:
                self._ensure_ledger()
                applied = self.applied()
            except sqlite3.Error as e:
                raise MigrationError(f"Cannot read migration ledger: {e}") from e

            known = {m.identifier: m for m in migrations}
            unknown = sorted(i for i in applied if i not in known)
            changed = [m.identifier for m in migrations if m.identifier in applied and applied[m.identifier] != m.sha256]

            if unknown or changed:
                if self.erase_on_schema_change:
                    log.warning("Schema changed (unknown=%s, edited=%s); erasing %s", unknown, changed, self.path)
                    self._erase()
                    applied = {}
                elif unknown:
                    raise MigrationError(f"Database has migrations unknown to this build: {', '.join(unknown)}")
                else:
                    for ident in changed:
                        log.warning("Hash changed for already applied migration %s; not re-applying", ident)

            pending = [m for m in migrations if m.identifier not in applied]
            if not pending:
                return []

            # One script → one transaction for the whole pending set
            script = "BEGIN IMMEDIATE;\n" + "\n".join(m.sql for m in pending)
            now = datetime.now(timezone.utc).isoformat(timespec="seconds")
            try:
                self.conn.executescript(script)
                self.conn.executemany(
                    "INSERT INTO schema_migrations(identifier, sha256, applied_at_utc) VALUES (?, ?, ?)",
                    [(m.identifier, m.sha256, now) for m in pending],
                )
                self.conn.execute("COMMIT")
            except sqlite3.Error as e:
                self._rollback()
                raise MigrationError(f"Migration failed ({', '.join(m.filename for m in pending)}): {e}") from e

        names = [m.identifier for m in pending]
        log.info("Applied migrations %s to %s", names, self.path)
        return names

    def _erase(self) -> None:
        rows = self.conn.execute(
            "SELECT type, name FROM sqlite_master WHERE type IN ('table', 'view') AND name NOT LIKE 'sqlite_%'"
        ).fetchall()
        self.conn.execute("PRAGMA foreign_keys=OFF;")
        try:
            self.conn.execute("BEGIN IMMEDIATE")
            for kind, name in rows:
                self.conn.execute(f'DROP {kind.upper()} IF EXISTS "{name}"')
            self.conn.execute("COMMIT")
            self._ensure_ledger()
        except sqlite3.Error as e:
            self._rollback()
            raise MigrationError(f"Cannot erase {self.path}: {e}") from e
        finally:
            self.conn.execute("PRAGMA foreign_keys=ON;")
