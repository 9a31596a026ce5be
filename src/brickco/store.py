"""Transactional JSON storage for brickco."""

import fcntl
import json
import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from .errors import DataExistsError, InvalidSchemaVersionError
from .models import Database

SCHEMA_VERSION = 1

# Centralized storage constants
# Can be overridden via BRICKCO_DATA_DIR environment variable
_default_data_dir = Path(__file__).parent.parent.parent / "data"
DATA_DIR_ENV = "BRICKCO_DATA_DIR"
DATA_DIR = Path(os.environ.get(DATA_DIR_ENV, _default_data_dir))
DATA_FILE = "brickco.json"
LOCK_FILE = ".brickco.lock"

logger = logging.getLogger(__name__)


def default_data_dir() -> Path:
    """Data directory from the environment, read at call time."""
    return Path(os.environ.get(DATA_DIR_ENV, DATA_DIR))


class DataStore:
    """
    Holds every brickco table in one JSON document.

    All mutations go through transaction(): the document is loaded under an
    exclusive file lock, changed in memory, and written back atomically when
    the block exits cleanly. An exception inside the block discards all
    changes, so multi-table operations (checkout, order transitions) either
    fully commit or leave the file untouched.
    """

    def __init__(self, data_dir: Path | None = None):
        """
        Initialize DataStore.

        Args:
            data_dir: Override data directory (for testing).
        """
        self.data_dir = Path(data_dir) if data_dir else default_data_dir()
        self.data_path = self.data_dir / DATA_FILE
        self._local = threading.local()

    def _ensure_dir(self) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)

    @contextmanager
    def _lock(self, mode: int) -> Iterator[None]:
        """Hold a lock on the data directory for the duration of the block."""
        self._ensure_dir()
        lock_path = self.data_dir / LOCK_FILE
        with open(lock_path, "a") as lock_file:
            fcntl.flock(lock_file.fileno(), mode)
            try:
                yield
            finally:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)

    def exists(self) -> bool:
        """Check if the data file exists."""
        return self.data_path.exists()

    def _load(self) -> Database:
        """
        Load the document from disk; a missing file is an empty database.

        Raises:
            InvalidSchemaVersionError: If schema version is unsupported.
        """
        if not self.exists():
            return Database.create(SCHEMA_VERSION)

        with open(self.data_path, "r", encoding="utf-8") as f:
            data = json.load(f)

        version = data.get("schema_version", 0)
        if version != SCHEMA_VERSION:
            raise InvalidSchemaVersionError(version, SCHEMA_VERSION)

        return Database.from_dict(data)

    def _save(self, db: Database) -> None:
        """
        Save the document to disk atomically.

        Uses write-to-temp-then-rename for atomicity.
        """
        self._ensure_dir()

        data = db.to_dict()
        fd, temp_path = tempfile.mkstemp(
            dir=self.data_dir, prefix=".brickco_", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
                f.write("\n")
            os.replace(temp_path, self.data_path)
        except Exception:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise

    @contextmanager
    def transaction(self) -> Iterator[Database]:
        """
        Run a read-modify-write cycle against the data file.

        Nested calls on the same thread join the outer transaction, which
        commits once at the end. Callers must validate before mutating:
        changes made before an exception are discarded only when that
        exception leaves the outermost block.
        """
        current = getattr(self._local, "db", None)
        if current is not None:
            yield current
            return

        with self._lock(fcntl.LOCK_EX):
            db = self._load()
            self._local.db = db
            try:
                yield db
            finally:
                self._local.db = None
            self._save(db)

    def read(self) -> Database:
        """Return a consistent snapshot for read-only use."""
        current = getattr(self._local, "db", None)
        if current is not None:
            return current

        with self._lock(fcntl.LOCK_SH):
            return self._load()

    def init(self, force: bool = False) -> Database:
        """
        Create an empty data file.

        Args:
            force: If True, overwrite an existing data file.

        Raises:
            DataExistsError: If the data file exists and force=False.
        """
        if self.exists() and not force:
            raise DataExistsError(str(self.data_path))

        db = Database.create(SCHEMA_VERSION)
        with self._lock(fcntl.LOCK_EX):
            self._save(db)
        logger.info("Initialized data file at %s", self.data_path)
        return db
