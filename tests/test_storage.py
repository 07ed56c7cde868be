"""Tests for the ledger file store."""

import tempfile
from datetime import datetime, timezone
from pathlib import Path

import pytest  # type: ignore[import-not-found]

from time_ledger.core.days import DayBoundaryResolver
from time_ledger.core.ledger import Ledger
from time_ledger.core.storage import (
    EVENTS_MARKER,
    LedgerStore,
    StorageError,
    decode_ledger,
    encode_ledger,
)

T0 = datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)


@pytest.fixture  # type: ignore[misc]
def temp_dir() -> Path:
    """Create temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture  # type: ignore[misc]
def store(temp_dir: Path, utc_resolver: DayBoundaryResolver) -> LedgerStore:
    """Create store for a ledger file in a nested directory."""
    return LedgerStore(temp_dir / "nested" / "ledger.tl", utc_resolver)


def populated_ledger(resolver: DayBoundaryResolver) -> Ledger:
    ledger = Ledger(resolver=resolver)
    project_id = ledger.add_project("Client", "blue")
    category_id = ledger.add_category("Writing", "Docs and reports")
    task_id = ledger.add_task(project_id, "Write report\nsection two", category_id)
    ledger.add_manual_session(task_id, T0, T0.replace(hour=10), "première")
    ledger.start_task(task_id, T0.replace(hour=10))
    return ledger


class TestLedgerStore:
    """Test LedgerStore."""

    def test_missing_file_gives_fresh_ledger(self, store: LedgerStore) -> None:
        ledger = store.load()
        assert len(ledger.events) == 0
        assert ledger.header.schema_version == 1
        assert ledger.resolver is store.resolver

    def test_blank_file_gives_fresh_ledger(self, store: LedgerStore) -> None:
        store.path.parent.mkdir(parents=True)
        store.path.write_text("\n\n", encoding="utf-8")
        assert len(store.load().events) == 0

    def test_save_and_load(self, store: LedgerStore, utc_resolver: DayBoundaryResolver) -> None:
        """Test everything survives a save and load."""
        ledger = populated_ledger(utc_resolver)
        store.save(ledger)

        loaded = store.load()

        assert loaded.header.projects == ledger.header.projects
        assert loaded.header.categories == ledger.header.categories
        assert loaded.header.tasks == ledger.header.tasks
        assert loaded.header.created_at == ledger.header.created_at
        assert loaded.events.to_list() == ledger.events.to_list()
        assert loaded.snapshot(T0.replace(hour=11)) == ledger.snapshot(T0.replace(hour=11))

    def test_save_leaves_no_temp_file(self, store: LedgerStore, utc_resolver: DayBoundaryResolver) -> None:
        store.save(populated_ledger(utc_resolver))
        assert [p.name for p in store.path.parent.iterdir()] == ["ledger.tl"]

    def test_backup(self, store: LedgerStore, utc_resolver: DayBoundaryResolver) -> None:
        assert store.backup() is None

        store.save(populated_ledger(utc_resolver))
        target = store.backup("before-import")

        assert target == store.backup_dir / "ledger_before-import.tl"
        assert target.read_text(encoding="utf-8") == store.path.read_text(encoding="utf-8")


class TestFileFormat:
    """Test encode_ledger and decode_ledger."""

    def test_layout(self, utc_resolver: DayBoundaryResolver) -> None:
        raw = encode_ledger(populated_ledger(utc_resolver))
        header, events = raw.split(f"\n{EVENTS_MARKER}\n")

        assert header.startswith("schema_version: 1")
        assert len(events.splitlines()) == 3
        assert '"type": "start"' in events.splitlines()[0]

    def test_empty_event_section(self, utc_resolver: DayBoundaryResolver) -> None:
        ledger = Ledger(resolver=utc_resolver)
        ledger.add_project("Client")
        loaded = decode_ledger(encode_ledger(ledger), utc_resolver)
        assert len(loaded.events) == 0
        assert loaded.header.projects[0].name == "Client"

    def test_equal_timestamps_keep_order(self, utc_resolver: DayBoundaryResolver) -> None:
        ledger = Ledger(resolver=utc_resolver)
        project_id = ledger.add_project("Client")
        a = ledger.add_task(project_id, "A")
        b = ledger.add_task(project_id, "B")
        ledger.start_task(b, T0)
        ledger.start_task(a, T0)

        loaded = decode_ledger(encode_ledger(ledger), utc_resolver)
        assert [e.task_id for e in loaded.events] == [b, a]

    def test_malformed_event_line(self) -> None:
        raw = f"schema_version: 1\n{EVENTS_MARKER}\n{{not json\n"
        with pytest.raises(StorageError, match="line 1"):
            decode_ledger(raw)

    def test_event_with_unknown_type(self) -> None:
        line = '{"timestamp": "2026-01-05T09:00:00+00:00", "type": "pause", "task_id": "x"}'
        with pytest.raises(StorageError):
            decode_ledger(f"schema_version: 1\n{EVENTS_MARKER}\n{line}\n")

    def test_malformed_header(self) -> None:
        with pytest.raises(StorageError, match="header"):
            decode_ledger(f"projects: [\n{EVENTS_MARKER}\n")
