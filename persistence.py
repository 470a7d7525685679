"""
Persistence layer for household snapshots
One JSON document per household code, overwritten whole on every save.
The household code is a shared namespace key, not a credential.
"""
import json
import logging
import os
import re
import shutil
from datetime import datetime
from pathlib import Path
from typing import Optional

from config import (
    BACKUP_DIR,
    BACKUP_RETENTION_DAYS,
    DATA_DIR,
    HOUSEHOLD_CODE_MAX_LEN,
    HOUSEHOLD_CODE_MIN_LEN,
)
from data_schema import validate_snapshot
from models import Snapshot

logger = logging.getLogger(__name__)


def household_key(code: str) -> str:
    """Storage key for a household code: 'cc:' + lowercased, trimmed code"""
    if not isinstance(code, str):
        raise ValueError("Invalid household code")
    normalized = code.strip().lower()
    if not (HOUSEHOLD_CODE_MIN_LEN <= len(normalized) <= HOUSEHOLD_CODE_MAX_LEN):
        raise ValueError("Invalid household code")
    return f"cc:{normalized}"


class SnapshotStore:
    """Read and replace household snapshots on disk with timestamped backups"""

    def __init__(self, data_dir: Path = DATA_DIR, backup_dir: Optional[Path] = None):
        self.data_dir = Path(data_dir)
        self.backup_dir = Path(backup_dir) if backup_dir is not None else (
            BACKUP_DIR if self.data_dir == DATA_DIR else self.data_dir / "backups"
        )

    def _path_for(self, code: str) -> Path:
        key = household_key(code)
        # Keep file names portable; the key itself is what identifies the household
        safe = re.sub(r'[^a-z0-9._-]', '_', key.replace(':', '_'))
        return self.data_dir / f"{safe}.json"

    def load(self, code: str) -> Snapshot:
        """Load a household snapshot; an unknown household starts empty"""
        path = self._path_for(code)
        if not path.exists():
            logger.info(f"No snapshot stored for {household_key(code)}; starting empty")
            return Snapshot.empty()

        try:
            with open(path, 'r') as f:
                payload = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Could not read snapshot {path}: {e}")
            raise

        # Stored documents may be wrapped as {"data": {...}}
        if isinstance(payload, dict) and 'data' in payload and isinstance(payload['data'], dict):
            payload = payload['data']

        result = validate_snapshot(payload)
        if not result['valid']:
            logger.warning(f"Snapshot {path} has schema problems: {result['errors']}")

        snapshot = Snapshot.from_dict(payload)
        logger.info(f"Loaded {len(snapshot.positions)} positions and {len(snapshot.calls)} calls from {path}")
        return snapshot

    def save(self, code: str, snapshot: Snapshot) -> Path:
        """
        Replace the household snapshot

        Writes to a temp file and swaps it in, so a failed write never leaves
        a half-written document. The previous document is backed up first.
        Last write wins; there is no merge with concurrent editors.
        """
        path = self._path_for(code)
        self.data_dir.mkdir(parents=True, exist_ok=True)

        if path.exists():
            self.backup_file(path)

        tmp_path = path.with_suffix('.json.tmp')
        try:
            with open(tmp_path, 'w') as f:
                json.dump(snapshot.to_dict(), f, indent=2)
            os.replace(tmp_path, path)
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Could not save snapshot {path}: {e}")
            if tmp_path.exists():
                tmp_path.unlink()
            raise

        logger.info(f"Snapshot saved to {path}")
        return path

    def backup_file(self, path: Path) -> Path:
        """Create timestamped backup of a snapshot file"""
        self.backup_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        backup_path = self.backup_dir / f"{path.stem}_backup_{timestamp}.json"

        shutil.copy2(path, backup_path)
        logger.info(f"Backup created: {backup_path}")

        self._cleanup_old_backups()
        return backup_path

    def _cleanup_old_backups(self):
        """Remove backups older than BACKUP_RETENTION_DAYS"""
        cutoff = datetime.now().timestamp() - (BACKUP_RETENTION_DAYS * 24 * 60 * 60)

        for backup_file in self.backup_dir.glob("*_backup_*.json"):
            if backup_file.stat().st_mtime < cutoff:
                backup_file.unlink()
                logger.info(f"Removed old backup: {backup_file}")

    def restore_from_backup(self, code: str, backup_path: Path):
        """Restore a household snapshot from backup"""
        backup_path = Path(backup_path)
        if not backup_path.exists():
            raise FileNotFoundError(f"Backup file not found: {backup_path}")

        shutil.copy2(backup_path, self._path_for(code))
        logger.warning(f"Restored from backup: {backup_path}")
