"""
Snapshot Repository

Persists governance store snapshots as JSON files.
"""

import os
import tempfile
from pathlib import Path

import structlog
from pydantic import ValidationError

from daocore.errors import SnapshotIntegrityError
from daocore.models.governance import GovernanceSnapshot
from daocore.monitoring.logging import log_duration

logger = structlog.get_logger(__name__)


class JsonSnapshotRepository:
    """
    File-backed snapshot storage.

    Saves are atomic: the snapshot is written to a temporary file in the
    same directory and moved over the target.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def save(self, snapshot: GovernanceSnapshot) -> None:
        """Write a snapshot, replacing any previous one."""
        self.path.parent.mkdir(parents=True, exist_ok=True)

        with log_duration(logger, "snapshot_save", path=str(self.path)):
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(snapshot.model_dump_json(indent=2))
                os.replace(tmp_name, self.path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise

    def load(self) -> GovernanceSnapshot | None:
        """
        Read the stored snapshot.

        Returns:
            The snapshot, or None when nothing was saved yet

        Raises:
            SnapshotIntegrityError: If the file is not a valid snapshot
        """
        if not self.path.exists():
            return None

        try:
            snapshot = GovernanceSnapshot.model_validate_json(
                self.path.read_text(encoding="utf-8")
            )
        except ValidationError as e:
            logger.error("snapshot_load_failed", path=str(self.path), error=str(e))
            raise SnapshotIntegrityError(f"Invalid snapshot at {self.path}") from e

        logger.info("snapshot_loaded", path=str(self.path), **snapshot.summary())
        return snapshot

    def delete(self) -> bool:
        try:
            self.path.unlink()
        except FileNotFoundError:
            return False
        return True
