# Rev 0.2.0
# projectZ – persistence errors
from __future__ import annotations


class PersistenceError(RuntimeError):
    """A database read or write failed. The underlying sqlite3 error is chained."""


class MigrationError(PersistenceError):
    """Schema setup failed; the app must not run on an unmigrated database."""
