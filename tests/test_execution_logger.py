"""Tests for the capped execution log store."""

from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import OperationalError

from flowengine.core.execution_logger import DEFAULT_MAX_ENTRIES, ExecutionLogStore
from flowengine.models.core import ExecutionLogEntry, ExecutionStatusEnum, NodeResult

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


class FailingSession:
    """Session stand-in whose writes always fail."""

    def __init__(self):
        self.rolled_back = False
        self.closed = False

    def merge(self, instance):
        raise OperationalError("INSERT", {}, Exception("database is locked"))

    def rollback(self):
        self.rolled_back = True

    def close(self):
        self.closed = True


def make_entry(index: int, workflow_id: str = "wf-1", **overrides) -> ExecutionLogEntry:
    fields = dict(
        id=f"log-{index}",
        workflow_id=workflow_id,
        workflow_name="Customers",
        timestamp=BASE_TIME + timedelta(seconds=index),
        status=ExecutionStatusEnum.SUCCESS,
        execution_time=12,
        node_results=[NodeResult(node_id="s", success=True, timestamp=BASE_TIME)]
    )
    fields.update(overrides)
    return ExecutionLogEntry(**fields)


class TestExecutionLogStore:
    """Test cases for ExecutionLogStore."""

    def test_append_and_get(self, log_store):
        log_store.append(make_entry(1, error=None))

        entry = log_store.get("log-1")
        assert entry is not None
        assert entry.workflow_id == "wf-1"
        assert entry.status == ExecutionStatusEnum.SUCCESS
        assert entry.node_results[0].node_id == "s"
        assert entry.timestamp == BASE_TIME + timedelta(seconds=1)

    def test_get_missing_returns_none(self, log_store):
        assert log_store.get("nope") is None

    def test_newest_first(self, log_store):
        for index in (2, 5, 1):
            log_store.append(make_entry(index))

        assert [entry.id for entry in log_store.list_all()] == ["log-5", "log-2", "log-1"]

    def test_list_for_workflow_filters(self, log_store):
        log_store.append(make_entry(1, workflow_id="wf-a"))
        log_store.append(make_entry(2, workflow_id="wf-b"))
        log_store.append(make_entry(3, workflow_id="wf-a"))

        assert [entry.id for entry in log_store.list_for_workflow("wf-a")] == ["log-3", "log-1"]
        assert log_store.list_for_workflow("wf-c") == []

    def test_delete_for_workflow(self, log_store):
        log_store.append(make_entry(1, workflow_id="wf-a"))
        log_store.append(make_entry(2, workflow_id="wf-b"))
        log_store.append(make_entry(3, workflow_id="wf-a"))

        assert log_store.delete_for_workflow("wf-a") == 2
        assert [entry.id for entry in log_store.list_all()] == ["log-2"]
        assert log_store.delete_for_workflow("wf-a") == 0

    def test_small_cap_evicts_oldest(self, session_factory):
        store = ExecutionLogStore(session_factory, max_entries=3)
        for index in range(1, 6):
            store.append(make_entry(index))

        assert [entry.id for entry in store.list_all()] == ["log-5", "log-4", "log-3"]

    def test_concurrent_appends_respect_cap(self, session_factory):
        store = ExecutionLogStore(session_factory, max_entries=5)
        total = 40

        with ThreadPoolExecutor(max_workers=8) as executor:
            futures = [executor.submit(store.append, make_entry(index)) for index in range(total)]
            for future in as_completed(futures):
                assert future.result() is None

        entries = store.list_all()
        assert len(entries) == 5
        assert [entry.id for entry in entries] == [f"log-{index}" for index in range(total - 1, total - 6, -1)]

    def test_default_cap_holds_one_thousand(self, log_store):
        assert log_store.max_entries == DEFAULT_MAX_ENTRIES == 1000

        for index in range(DEFAULT_MAX_ENTRIES + 1):
            log_store.append(make_entry(index))

        entries = log_store.list_all()
        assert len(entries) == 1000
        assert entries[0].id == "log-1000"
        assert log_store.get("log-0") is None

    def test_cap_is_process_wide_across_workflows(self, session_factory):
        store = ExecutionLogStore(session_factory, max_entries=2)
        store.append(make_entry(1, workflow_id="wf-a"))
        store.append(make_entry(2, workflow_id="wf-b"))
        store.append(make_entry(3, workflow_id="wf-b"))

        assert store.list_for_workflow("wf-a") == []

    def test_reappending_same_id_replaces_entry(self, log_store):
        log_store.append(make_entry(1))
        log_store.append(make_entry(1, status=ExecutionStatusEnum.FAILURE, error="boom"))

        entries = log_store.list_all()
        assert len(entries) == 1
        assert entries[0].error == "boom"

    def test_append_failure_is_swallowed(self):
        session = FailingSession()
        store = ExecutionLogStore(lambda: session)

        store.append(make_entry(1))

        assert session.rolled_back
        assert session.closed

    def test_invalid_cap_rejected(self, session_factory):
        with pytest.raises(ValueError):
            ExecutionLogStore(session_factory, max_entries=0)
