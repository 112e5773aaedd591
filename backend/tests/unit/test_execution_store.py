# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Unit tests for ExecutionStore

Tests execution persistence, queries and cleanup.
"""

import asyncio
import json
from datetime import datetime, timedelta

import pytest

from aether.execution_store import ExecutionStore
from aether.workflow.models import ExecutionRecord, ExecutionStatus, TriggerSource


def make_record(execution_id, workflow_id="wf-1", status=ExecutionStatus.COMPLETED,
                trigger_source=TriggerSource.MANUAL, started_at=None):
    return ExecutionRecord(
        execution_id=execution_id,
        workflow_id=workflow_id,
        trigger_source=trigger_source,
        status=status,
        started_at=started_at or datetime.now().isoformat(),
        output={"ok": True},
    )


def today_id(suffix):
    return f"exec_{datetime.now().strftime('%Y%m%d')}_120000_{suffix}"


@pytest.fixture
def execution_store(tmp_path):
    return ExecutionStore(tmp_path / "executions")


class TestInit:
    def test_creates_directory_if_not_exists(self, tmp_path):
        """Should create the base directory"""
        target = tmp_path / "nested" / "executions"
        assert not target.exists()

        ExecutionStore(target)

        assert target.is_dir()


class TestSaveAndGet:
    @pytest.mark.asyncio
    async def test_saves_into_date_directory(self, execution_store, tmp_path):
        """Files are grouped by the date encoded in the execution id"""
        path = await execution_store.save(make_record("exec_20250102_030405_abcd1234"))

        assert path.endswith("2025-01-02/exec_20250102_030405_abcd1234.json")
        saved = json.loads((tmp_path / "executions" / "2025-01-02" / "exec_20250102_030405_abcd1234.json").read_text())
        assert saved["status"] == "completed"
        assert saved["output"] == {"ok": True}

    @pytest.mark.asyncio
    async def test_get_roundtrip(self, execution_store):
        execution_id = today_id("aaaa0001")
        await execution_store.save(make_record(execution_id))

        saved = execution_store.get(execution_id)

        assert saved["execution_id"] == execution_id
        assert saved["trigger_source"] == "manual"

    @pytest.mark.asyncio
    async def test_get_with_foreign_id_searches_all_dates(self, execution_store):
        """Ids from a job queue don't encode a date"""
        await execution_store.save(make_record("job-42"))

        assert execution_store.get("job-42")["execution_id"] == "job-42"

    def test_get_missing(self, execution_store):
        assert execution_store.get(today_id("missing0")) is None
        assert execution_store.get("nope") is None

    @pytest.mark.asyncio
    async def test_output_pydantic_cannot_serialize_is_stored_as_text(self, execution_store):
        execution_id = today_id("bytes001")
        record = make_record(execution_id).model_copy(update={"output": {"raw": b"\xff", "obj": object()}})

        await execution_store.save(record)

        saved = execution_store.get(execution_id)
        assert saved["status"] == "completed"
        assert saved["output"]["raw"] == "b'\\xff'"
        assert saved["output"]["obj"].startswith("<object object")

    @pytest.mark.asyncio
    async def test_concurrent_saves(self, execution_store):
        ids = [today_id(f"conc{n:04d}") for n in range(5)]

        await asyncio.gather(*(execution_store.save(make_record(execution_id)) for execution_id in ids))

        assert sorted(e["execution_id"] for e in execution_store.list()) == sorted(ids)


class TestList:
    @pytest.mark.asyncio
    async def test_filters(self, execution_store):
        await execution_store.save(make_record(today_id("00000001"), workflow_id="wf-a"))
        await execution_store.save(make_record(today_id("00000002"), workflow_id="wf-b",
                                               status=ExecutionStatus.FAILED))
        await execution_store.save(make_record(today_id("00000003"), workflow_id="wf-a",
                                               trigger_source=TriggerSource.WEBHOOK))

        assert len(execution_store.list()) == 3
        assert {e["execution_id"][-1] for e in execution_store.list(workflow_id="wf-a")} == {"1", "3"}
        assert [e["workflow_id"] for e in execution_store.list(status="failed")] == ["wf-b"]
        assert len(execution_store.list(trigger_source="webhook")) == 1
        assert len(execution_store.list(date=datetime.now().strftime("%Y-%m-%d"))) == 3
        assert execution_store.list(date="1999-01-01") == []

    @pytest.mark.asyncio
    async def test_newest_first_with_pagination(self, execution_store):
        for n in range(5):
            await execution_store.save(make_record(f"exec_{datetime.now().strftime('%Y%m%d')}_12000{n}_deadbeef"))

        page = execution_store.list(limit=2, offset=1)

        assert [e["execution_id"][-16:-9] for e in page] == ["_120003", "_120002"]

    @pytest.mark.asyncio
    async def test_skips_corrupt_files(self, execution_store, tmp_path):
        execution_id = today_id("00000001")
        await execution_store.save(make_record(execution_id))
        date_dir = tmp_path / "executions" / datetime.now().strftime("%Y-%m-%d")
        (date_dir / "exec_corrupt.json").write_text("{not json")

        assert [e["execution_id"] for e in execution_store.list()] == [execution_id]


class TestStatistics:
    @pytest.mark.asyncio
    async def test_counts_and_success_rate(self, execution_store):
        await execution_store.save(make_record(today_id("00000001"), workflow_id="wf-a"))
        await execution_store.save(make_record(today_id("00000002"), workflow_id="wf-a",
                                               status=ExecutionStatus.FAILED))
        await execution_store.save(make_record(today_id("00000003"), workflow_id="wf-b",
                                               status=ExecutionStatus.TIMED_OUT,
                                               trigger_source=TriggerSource.WEBHOOK))
        await execution_store.save(make_record(today_id("00000004"), workflow_id="wf-b"))

        stats = execution_store.get_statistics(days=7)

        assert stats["total_executions"] == 4
        assert stats["completed"] == 2
        assert stats["failed"] == 2
        assert stats["success_rate"] == 50.0
        assert stats["by_workflow"]["wf-a"] == {"total": 2, "completed": 1, "failed": 1}
        assert stats["by_trigger"] == {"manual": 3, "webhook": 1}

    def test_empty(self, execution_store):
        stats = execution_store.get_statistics()

        assert stats["total_executions"] == 0
        assert stats["success_rate"] == 0


class TestCleanup:
    @pytest.mark.asyncio
    async def test_deletes_old_date_directories(self, execution_store, tmp_path):
        old = datetime.now() - timedelta(days=120)
        old_id = f"exec_{old.strftime('%Y%m%d')}_120000_00000001"
        new_id = today_id("00000002")
        await execution_store.save(make_record(old_id, started_at=old.isoformat()))
        await execution_store.save(make_record(new_id))
        (tmp_path / "executions" / "not-a-date").mkdir()

        deleted = execution_store.delete_old_executions(days=90)

        assert deleted == 1
        assert execution_store.get(old_id) is None
        assert execution_store.get(new_id) is not None
        assert not (tmp_path / "executions" / old.strftime("%Y-%m-%d")).exists()
