# Rev 0.2.0
# projectZ – SQLiteProjectRepository (schema v1)
from __future__ import annotations
import logging
import random
import sqlite3
from datetime import datetime
from typing import Callable, Iterable, List, Optional, TypeVar

from projectz.models.entities import Project, ProjectOrdering
from projectz.models.random_projects import make_random_project
from projectz.repositories.db import Database

log = logging.getLogger(__name__)

T = TypeVar("T")

TABLE = "project"
_COLUMNS = "id, name, due_date, priority"
# Stay well below SQLITE_MAX_VARIABLE_NUMBER on old builds
_IN_CHUNK = 500


def _encode_due_date(value: datetime) -> str:
    # Fixed-width naive local time so lexical ORDER BY is chronological
    if value.tzinfo is not None:
        value = value.astimezone().replace(tzinfo=None)
    return value.isoformat(sep="T", timespec="microseconds")


def _row_to_project(row: sqlite3.Row) -> Project:
    return Project(
        id=int(row["id"]),
        name=row["name"],
        due_date=datetime.fromisoformat(row["due_date"]),
        priority=int(row["priority"]),
    )


class SQLiteProjectRepository:
    """
    Project store: upsert-by-identity, bulk deletes, demo seeding and reads.
    All writes go through Database.write() and notify `project` observers.
    """

    table = TABLE

    def __init__(self, db: Database):
        self._db = db

    @property
    def db(self) -> Database:
        return self._db

    # ---------- writes ----------

    def save_project(self, project: Project) -> Project:
        """Inserts when id is None, otherwise overwrites the row with that id. Returns the stored value."""
        return self._db.write(lambda con: self._save(con, project), tables=(TABLE,))

    def delete_projects(self, ids: Iterable[int]) -> int:
        """Deletes rows by id; ids that do not exist are ignored."""
        wanted = sorted({int(i) for i in ids})
        if not wanted:
            return 0

        def op(con: sqlite3.Connection) -> int:
            deleted = 0
            for start in range(0, len(wanted), _IN_CHUNK):
                chunk = wanted[start:start + _IN_CHUNK]
                placeholders = ",".join("?" * len(chunk))
                deleted += con.execute(f"DELETE FROM project WHERE id IN ({placeholders})", chunk).rowcount
            return deleted

        deleted = self._db.write(op, tables=(TABLE,))
        log.info("Deleted %d project(s) of %d requested", deleted, len(wanted))
        return deleted

    def delete_all_projects(self) -> int:
        deleted = self._db.write(lambda con: con.execute("DELETE FROM project").rowcount, tables=(TABLE,))
        log.info("Deleted all projects (%d)", deleted)
        return deleted

    def seed_if_empty(self, n: int = 8, *, rng: Optional[random.Random] = None) -> int:
        """Inserts n random projects when the table is empty; one transaction, one notification."""
        rng = rng or random.Random()

        def op(con: sqlite3.Connection) -> int:
            (count,) = con.execute("SELECT COUNT(*) FROM project").fetchone()
            if count:
                return 0
            for _ in range(n):
                self._save(con, make_random_project(rng))
            return n

        inserted = self._db.write(op, tables=(TABLE,))
        if inserted:
            log.info("Seeded %d demo project(s)", inserted)
        return inserted

    def _save(self, con: sqlite3.Connection, project: Project) -> Project:
        values = (project.name, _encode_due_date(project.due_date), int(project.priority))
        if project.id is None:
            cur = con.execute("INSERT INTO project(name, due_date, priority) VALUES (?, ?, ?)", values)
            return project.with_id(int(cur.lastrowid))

        cur = con.execute("UPDATE project SET name = ?, due_date = ?, priority = ? WHERE id = ?", (*values, project.id))
        if cur.rowcount == 0:
            # Row vanished (deleted elsewhere): put it back under the same id
            con.execute("INSERT INTO project(id, name, due_date, priority) VALUES (?, ?, ?, ?)", (project.id, *values))
        return project

    # ---------- reads ----------

    def read(self, fn: Callable[[sqlite3.Connection], T]) -> T:
        return self._db.read(fn)

    def get_project(self, project_id: int) -> Optional[Project]:
        row = self._db.read(lambda con: con.execute(f"SELECT {_COLUMNS} FROM project WHERE id = ?", (project_id,)).fetchone())
        return _row_to_project(row) if row else None

    def fetch_one(self) -> Optional[Project]:
        row = self._db.read(lambda con: con.execute(f"SELECT {_COLUMNS} FROM project ORDER BY id LIMIT 1").fetchone())
        return _row_to_project(row) if row else None

    def count_projects(self) -> int:
        return int(self._db.read(lambda con: con.execute("SELECT COUNT(*) FROM project").fetchone()[0]))

    def list_projects(self, ordering: ProjectOrdering = ProjectOrdering.BY_PRIORITY) -> List[Project]:
        sql = f"SELECT {_COLUMNS} FROM project ORDER BY {ordering.order_by}"
        rows = self._db.read(lambda con: con.execute(sql).fetchall())
        return [_row_to_project(r) for r in rows]

    # ---------- observation ----------

    def observe(self, callback: Callable[[str], None]) -> Callable[[], None]:
        """Registers callback for committed changes to the project table; returns an unsubscribe callable."""
        return self._db.add_observer(TABLE, callback)
