"""Ledger file store with atomic writes.

A ledger file is a YAML header (schema version, creation time, entities)
followed by an events marker line and one JSON object per event, in append
order.
"""

import json
import logging
import os
import shutil
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import yaml  # type: ignore[import-untyped]

from time_ledger.core.days import DayBoundaryResolver
from time_ledger.core.events import EventLog
from time_ledger.core.ledger import Ledger
from time_ledger.core.models import LedgerHeader, TimeEvent

logger = logging.getLogger(__name__)

EVENTS_MARKER = "=== EVENTS ==="


class StorageError(Exception):
    """Ledger file cannot be decoded."""


def _lock_file(file_obj: Any, exclusive: bool = True) -> None:
    """Lock a file in a cross-platform way.

    Args:
        file_obj: File object to lock
        exclusive: If True, acquire exclusive lock; if False, acquire shared lock
    """
    if sys.platform == "win32":
        import msvcrt  # type: ignore[import-not-found]

        mode = msvcrt.LK_NBLCK if exclusive else msvcrt.LK_NBRLCK
        msvcrt.locking(file_obj.fileno(), mode, 1)
    else:
        import fcntl  # type: ignore[import-not-found]

        mode = fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH
        fcntl.flock(file_obj.fileno(), mode)


def _unlock_file(file_obj: Any) -> None:
    """Unlock a file in a cross-platform way."""
    if sys.platform == "win32":
        import msvcrt  # type: ignore[import-not-found]

        msvcrt.locking(file_obj.fileno(), msvcrt.LK_UNLCK, 1)
    else:
        import fcntl  # type: ignore[import-not-found]

        fcntl.flock(file_obj.fileno(), fcntl.LOCK_UN)


def encode_ledger(ledger: Ledger) -> str:
    """Serialize a ledger to the file format."""
    header = yaml.safe_dump(
        ledger.header.to_dict(), default_flow_style=False, sort_keys=False, allow_unicode=True
    )
    lines = [header.rstrip("\n"), EVENTS_MARKER]
    lines.extend(json.dumps(event.to_dict(), ensure_ascii=False) for event in ledger.events)
    return "\n".join(lines) + "\n"


def decode_ledger(raw: str, resolver: Optional[DayBoundaryResolver] = None) -> Ledger:
    """Parse the file format. Blank input gives a fresh ledger.

    Raises:
        StorageError: If the header or an event line is malformed
    """
    if not raw.strip():
        return Ledger(resolver=resolver)

    header_blob, marker, events_blob = raw.partition(f"\n{EVENTS_MARKER}\n")
    if not marker and raw.rstrip("\n").endswith(EVENTS_MARKER):
        header_blob = raw.rstrip("\n")[: -len(EVENTS_MARKER)]
        events_blob = ""

    try:
        header = LedgerHeader.from_dict(yaml.safe_load(header_blob) or {})
    except (yaml.YAMLError, KeyError, TypeError, ValueError) as e:
        raise StorageError(f"failed to parse ledger header: {e}") from e

    events = EventLog()
    for line_no, line in enumerate(events_blob.splitlines(), start=1):
        if not line.strip():
            continue
        try:
            events.append(TimeEvent.from_dict(json.loads(line)))
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            raise StorageError(f"failed to parse event on line {line_no}: {e}") from e

    return Ledger(header, events, resolver)


class LedgerStore:
    """Loads and saves one ledger file."""

    def __init__(self, path: Path, resolver: Optional[DayBoundaryResolver] = None):
        """Initialize store.

        Args:
            path: Ledger file path
            resolver: Day boundaries given to loaded ledgers
        """
        self.path = Path(path).expanduser()
        self.resolver = resolver
        self.backup_dir = self.path.parent / "backups"

    def load(self) -> Ledger:
        """Load the ledger. A missing or blank file gives a fresh ledger."""
        if not self.path.exists():
            logger.info(f"No ledger at {self.path}, starting a new one")
            return Ledger(resolver=self.resolver)

        with open(self.path, encoding="utf-8") as f:
            _lock_file(f, exclusive=False)
            try:
                raw = f.read()
            finally:
                _unlock_file(f)

        ledger = decode_ledger(raw, self.resolver)
        logger.debug(f"Loaded ledger {self.path}: {len(ledger.events)} events")
        return ledger

    def save(self, ledger: Ledger) -> None:
        """Write the ledger atomically using a temporary file and rename."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        temp_file = self.path.with_suffix(self.path.suffix + ".tmp")

        try:
            with open(temp_file, "w", encoding="utf-8") as f:
                _lock_file(f, exclusive=True)
                f.write(encode_ledger(ledger))
                f.flush()
                os.fsync(f.fileno())
                _unlock_file(f)

            temp_file.replace(self.path)

        except Exception as e:
            if temp_file.exists():
                temp_file.unlink()
            raise e

        logger.debug(f"Saved ledger {self.path}: {len(ledger.events)} events")

    def backup(self, label: Optional[str] = None) -> Optional[Path]:
        """Copy the ledger file into the backup directory.

        Args:
            label: Backup name. Defaults to a timestamp.

        Returns:
            Path of the copy, or None if there is no ledger file yet
        """
        if not self.path.exists():
            return None

        if label is None:
            label = datetime.now().strftime("%Y%m%d_%H%M%S")

        self.backup_dir.mkdir(parents=True, exist_ok=True)
        target = self.backup_dir / f"{self.path.stem}_{label}{self.path.suffix}"
        shutil.copy2(self.path, target)
        logger.info(f"Backed up ledger to {target}")
        return target
