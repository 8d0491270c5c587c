# projectZ application context
# Rev 0.2.0

from __future__ import annotations
import logging
from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional

from projectz.repositories.db import Database
from projectz.repositories.sqlite_project_repository import SQLiteProjectRepository
from projectz.utils.config import StoreConfig


@dataclass
class AppContext:
    """Shared app resources, built once at startup and passed down explicitly."""
    config: StoreConfig
    db: Database
    projects: SQLiteProjectRepository
    executor: Optional[Executor] = None

    @classmethod
    def create(cls, config: StoreConfig, *, threaded: bool = True) -> "AppContext":
        """Open the DB, migrate, build the repository. MigrationError is fatal to the caller."""
        log = logging.getLogger("AppContext")
        db = Database(config.path, erase_on_schema_change=config.erase_on_schema_change)
        try:
            db.run_migrations()
        except Exception:
            db.close()
            raise
        projects = SQLiteProjectRepository(db)
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="live-query") if threaded else None
        log.info("AppContext initialized with DB=%s (debug=%s)", config.path, config.erase_on_schema_change)
        return cls(config=config, db=db, projects=projects, executor=executor)

    def seed_demo_data(self) -> int:
        if self.config.seed_count <= 0:
            return 0
        return self.projects.seed_if_empty(self.config.seed_count)

    def shutdown(self) -> None:
        # The connection lives as long as the process; only the re-read worker stops.
        if self.executor is not None:
            self.executor.shutdown(wait=True, cancel_futures=True)
