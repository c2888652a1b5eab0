"""Tests for logging context propagation."""

import asyncio
import logging

import pytest

from flowengine.core.logging import WorkflowContextFilter


def make_record(message: str = "handled") -> logging.LogRecord:
    return logging.LogRecord("flowengine.test", logging.INFO, __file__, 1, message, None, None)


class TestWorkflowContextFilter:
    """Test cases for WorkflowContextFilter."""

    def test_adds_context_without_overriding_record_fields(self):
        context_filter = WorkflowContextFilter()
        context_filter.set_context(request_id="req-1", path="/api/workflows")

        record = make_record()
        record.extra_fields = {"path": "/explicit"}
        assert context_filter.filter(record)

        assert record.extra_fields == {"request_id": "req-1", "path": "/explicit"}

    def test_clear_context(self):
        context_filter = WorkflowContextFilter()
        context_filter.set_context(request_id="req-1")
        context_filter.clear_context()

        record = make_record()
        context_filter.filter(record)

        assert record.extra_fields == {}

    @pytest.mark.asyncio
    async def test_concurrent_tasks_keep_their_own_context(self):
        context_filter = WorkflowContextFilter()
        both_set = asyncio.Event()
        ready = []

        async def handle(request_id: str) -> dict:
            context_filter.set_context(request_id=request_id)
            ready.append(request_id)
            if len(ready) == 2:
                both_set.set()
            await both_set.wait()

            record = make_record()
            context_filter.filter(record)
            return record.extra_fields

        first, second = await asyncio.gather(
            asyncio.create_task(handle("req-a")),
            asyncio.create_task(handle("req-b"))
        )

        assert first["request_id"] == "req-a"
        assert second["request_id"] == "req-b"
        assert context_filter.get_context() == {}
