# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Unit tests for the workflow engine
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from aether.core.errors import (
    CyclicWorkflowError,
    ExecutionLimitExceededError,
    NodeExecutionError,
    NoStartNodeError,
    RunTimeoutError,
    TimedOutError,
    UnknownNodeTypeError,
)
from aether.workflow.engine import WorkflowEngine
from aether.workflow.models import ExecutionStatus, TriggerSource, WorkflowDefinition


def workflow(nodes, edges=(), workflow_id="wf-test"):
    return WorkflowDefinition(id=workflow_id, nodes=list(nodes), edges=list(edges))


@pytest.fixture
def calls(registry):
    """Registers test node types; returns the list of executed node ids"""
    executed = []

    @registry.handler("RECORD")
    async def record(node, input, context):
        executed.append(node.id)
        return input

    @registry.handler("CONST")
    async def const(node, input, context):
        executed.append(node.id)
        return node.config.get("value")

    @registry.handler("BOOM")
    async def boom(node, input, context):
        executed.append(node.id)
        raise RuntimeError("kaboom")

    @registry.handler("BOOM_SOFT", error_policy="return")
    async def boom_soft(node, input, context):
        executed.append(node.id)
        raise RuntimeError("soft kaboom")

    @registry.handler("SLOW")
    async def slow(node, input, context):
        executed.append(node.id)
        await asyncio.sleep(node.config.get("seconds", 10))
        return input

    return executed


@pytest.mark.asyncio
async def test_zero_edge_workflow_runs_every_node_once(engine, calls):
    """Every node without incoming edges is its own start node"""
    wf = workflow([
        {"id": "A", "type": "RECORD"},
        {"id": "B", "type": "RECORD"},
        {"id": "C", "type": "RECORD"},
    ])

    record = await engine.run(wf, {"x": 1})

    assert sorted(calls) == ["A", "B", "C"]
    assert record.status == ExecutionStatus.COMPLETED
    assert record.outputs == {"A": {"x": 1}, "B": {"x": 1}, "C": {"x": 1}}


@pytest.mark.asyncio
async def test_linear_chain_passes_outputs(engine):
    wf = workflow(
        [
            {"id": "start", "type": "TRIGGER_MANUAL"},
            {"id": "greet", "type": "ACTION_SET", "config": {"fields": {"greeting": "Hello {{name}}"}}},
            {"id": "shout", "type": "ACTION_EXPRESSION", "config": {"expression": "greeting + '!'"}},
        ],
        [{"source": "start", "target": "greet"}, {"source": "greet", "target": "shout"}],
    )

    record = await engine.run(wf, {"name": "Ada"})

    assert record.outputs["greet"] == {"name": "Ada", "greeting": "Hello Ada"}
    assert record.output == "Hello Ada!"
    assert record.trigger_source == TriggerSource.MANUAL
    assert record.finished_at is not None


@pytest.mark.asyncio
async def test_multiple_inputs_are_joined_in_port_order(engine, calls):
    wf = workflow(
        [
            {"id": "A", "type": "CONST", "config": {"value": {"a": 1}}},
            {"id": "B", "type": "CONST", "config": {"value": "text"}},
            {"id": "M", "type": "RECORD"},
        ],
        [
            {"source": "A", "target": "M", "targetEndpoint": 1},
            {"source": "B", "target": "M", "targetEndpoint": 0},
        ],
    )

    record = await engine.run(wf)

    assert record.outputs["M"] == 'text\n---\n{"a":1}'


@pytest.mark.asyncio
async def test_merge_skips_none_outputs(engine, calls):
    wf = workflow(
        [
            {"id": "A", "type": "CONST", "config": {"value": None}},
            {"id": "B", "type": "CONST", "config": {"value": 42}},
            {"id": "C", "type": "CONST", "config": {"value": True}},
            {"id": "M", "type": "RECORD"},
        ],
        [
            {"source": "A", "target": "M"},
            {"source": "B", "target": "M"},
            {"source": "C", "target": "M"},
        ],
    )

    record = await engine.run(wf)

    assert record.outputs["M"] == "42\n---\ntrue"


@pytest.mark.asyncio
async def test_custom_merge_separator(engine, calls, config):
    engine.config = config.with_overrides(merge_separator=" | ")
    wf = workflow(
        [
            {"id": "A", "type": "CONST", "config": {"value": "left"}},
            {"id": "B", "type": "CONST", "config": {"value": "right"}},
            {"id": "M", "type": "RECORD"},
        ],
        [{"source": "A", "target": "M"}, {"source": "B", "target": "M"}],
    )

    record = await engine.run(wf)

    assert record.outputs["M"] == "left | right"


@pytest.mark.asyncio
async def test_unexecuted_sources_are_skipped(engine, calls):
    """M runs once, as soon as it is dequeued, with whatever inputs exist"""
    wf = workflow(
        [
            {"id": "X", "type": "CONST", "config": {"value": "from-x"}},
            {"id": "Y", "type": "CONST", "config": {"value": "from-y"}},
            {"id": "Z", "type": "RECORD"},
            {"id": "M", "type": "RECORD"},
        ],
        [
            {"source": "X", "target": "M"},
            {"source": "Y", "target": "Z"},
            {"source": "Z", "target": "M"},
        ],
    )

    record = await engine.run(wf)

    assert calls == ["X", "Y", "M", "Z"]
    assert record.outputs["M"] == "from-x"


@pytest.mark.asyncio
async def test_cyclic_workflow_rejected_before_any_handler(engine, calls):
    wf = workflow(
        [{"id": "S", "type": "RECORD"}, {"id": "A", "type": "RECORD"}, {"id": "B", "type": "RECORD"}],
        [{"source": "S", "target": "A"}, {"source": "A", "target": "B"}, {"source": "B", "target": "A"}],
    )

    with pytest.raises(CyclicWorkflowError):
        await engine.run(wf)

    assert calls == []


@pytest.mark.asyncio
async def test_cycle_terminates_when_validation_disabled(engine, calls, config):
    engine.config = config.with_overrides(reject_cyclic_workflows=False)
    wf = workflow(
        [{"id": "S", "type": "RECORD"}, {"id": "A", "type": "RECORD"}, {"id": "B", "type": "RECORD"}],
        [{"source": "S", "target": "A"}, {"source": "A", "target": "B"}, {"source": "B", "target": "A"}],
    )

    record = await engine.run(wf, "ping")

    assert calls == ["S", "A", "B"]
    assert record.status == ExecutionStatus.COMPLETED


@pytest.mark.asyncio
async def test_execution_ceiling(engine, calls, config, store):
    engine.config = config.with_overrides(max_executed_nodes=2)
    wf = workflow(
        [{"id": "A", "type": "RECORD"}, {"id": "B", "type": "RECORD"}, {"id": "C", "type": "RECORD"}],
        [{"source": "A", "target": "B"}, {"source": "B", "target": "C"}],
    )

    with pytest.raises(ExecutionLimitExceededError) as exc_info:
        await engine.run(wf)

    assert calls == ["A", "B"]
    record = exc_info.value.record
    assert record.status == ExecutionStatus.FAILED
    assert "limit" in record.error
    assert store.get(record.execution_id)["status"] == "failed"


@pytest.mark.asyncio
async def test_no_start_node(engine, calls, config):
    engine.config = config.with_overrides(reject_cyclic_workflows=False)
    wf = workflow(
        [{"id": "A", "type": "RECORD"}, {"id": "B", "type": "RECORD"}],
        [{"source": "A", "target": "B"}, {"source": "B", "target": "A"}],
    )

    with pytest.raises(NoStartNodeError):
        await engine.run(wf)

    assert calls == []


@pytest.mark.asyncio
async def test_concurrent_runs_have_disjoint_outputs(engine, registry):
    @registry.handler("DOUBLE")
    async def double(node, input, context):
        await asyncio.sleep(0.01)
        context.variables["seen"] = input
        return input * 2

    wf = workflow(
        [{"id": "first", "type": "DOUBLE"}, {"id": "second", "type": "DOUBLE"}],
        [{"source": "first", "target": "second"}],
    )

    records = await asyncio.gather(*(engine.run(wf, n) for n in (1, 10, 100)))

    assert [r.outputs["second"] for r in records] == [4, 40, 400]
    assert len({r.execution_id for r in records}) == 3
    assert engine.active_executions == {}


@pytest.mark.asyncio
async def test_raise_policy_failure_is_fatal(engine, calls, store):
    wf = workflow(
        [{"id": "A", "type": "RECORD"}, {"id": "B", "type": "BOOM"}, {"id": "C", "type": "RECORD"}],
        [{"source": "A", "target": "B"}, {"source": "B", "target": "C"}],
    )

    with pytest.raises(NodeExecutionError) as exc_info:
        await engine.run(wf, {"x": 1})

    error = exc_info.value
    assert error.node_id == "B"
    assert isinstance(error.__cause__, RuntimeError)
    assert calls == ["A", "B"]

    record = error.record
    assert record.status == ExecutionStatus.FAILED
    assert record.node_results["B"].error == "kaboom"
    assert record.node_results["A"].output == {"x": 1}
    assert error.execution_id == record.execution_id
    assert store.get(record.execution_id) is not None


@pytest.mark.asyncio
async def test_return_policy_failure_becomes_payload(engine, calls):
    wf = workflow(
        [{"id": "A", "type": "BOOM_SOFT"}, {"id": "B", "type": "RECORD"}],
        [{"source": "A", "target": "B"}],
    )

    record = await engine.run(wf, {"x": 1})

    assert record.status == ExecutionStatus.COMPLETED
    assert calls == ["A", "B"]
    assert record.output == {
        "error": "soft kaboom",
        "error_type": "RuntimeError",
        "node_id": "A",
        "input": {"x": 1},
    }


@pytest.mark.asyncio
async def test_unknown_node_type_fails_run(engine, calls):
    wf = workflow(
        [{"id": "A", "type": "RECORD"}, {"id": "B", "type": "NOT_REGISTERED"}],
        [{"source": "A", "target": "B"}],
    )

    with pytest.raises(UnknownNodeTypeError) as exc_info:
        await engine.run(wf)

    assert exc_info.value.record.status == ExecutionStatus.FAILED
    assert calls == ["A"]


@pytest.mark.asyncio
async def test_run_deadline(engine, calls, store):
    wf = workflow([{"id": "A", "type": "SLOW", "config": {"seconds": 10}}])

    with pytest.raises(TimedOutError) as exc_info:
        await engine.run(wf, timeout=0.05)

    assert isinstance(exc_info.value, RunTimeoutError)
    assert exc_info.value.status_code == 504
    record = exc_info.value.record
    assert record.status == ExecutionStatus.TIMED_OUT
    assert store.get(record.execution_id)["status"] == "timed_out"
    assert engine.active_executions == {}


@pytest.mark.asyncio
async def test_respond_node_sets_response(engine):
    wf = workflow(
        [
            {"id": "start", "type": "TRIGGER_MANUAL"},
            {"id": "reply", "type": "ACTION_RESPOND",
             "config": {"statusCode": 201, "body": "Hi {{name}}", "headers": {"Content-Type": "text/plain"}}},
        ],
        [{"source": "start", "target": "reply"}],
    )

    record = await engine.run(wf, {"name": "Ada"})

    assert record.response.status_code == 201
    assert record.response.body == "Hi Ada"
    assert record.response.headers == {"Content-Type": "text/plain"}


@pytest.mark.asyncio
async def test_no_respond_node_means_no_response(engine, calls):
    record = await engine.run(workflow([{"id": "A", "type": "RECORD"}]), 1)

    assert record.response is None


@pytest.mark.asyncio
async def test_context_exposes_trigger_payload(engine, registry):
    seen = {}

    @registry.handler("INSPECT")
    async def inspect(node, input, context):
        seen.update(
            original=context.input,
            trigger=context.trigger_source,
            workflow_id=context.workflow_id,
            execution_id=context.execution_id,
        )
        return "done"

    wf = workflow(
        [{"id": "A", "type": "CONST_FIRST"}, {"id": "B", "type": "INSPECT"}],
        [{"source": "A", "target": "B"}],
    )
    registry.register("CONST_FIRST", _const_first)

    record = await engine.run(wf, {"payload": 1}, trigger_source="schedule")

    assert seen["original"] == {"payload": 1}
    assert seen["trigger"] == TriggerSource.SCHEDULE
    assert seen["workflow_id"] == "wf-test"
    assert seen["execution_id"] == record.execution_id
    assert record.trigger_source == TriggerSource.SCHEDULE


async def _const_first(node, input, context):
    return "replaced"


@pytest.mark.asyncio
async def test_completed_runs_are_persisted(engine, calls, store):
    record = await engine.run(workflow([{"id": "A", "type": "RECORD"}]), {"x": 1})

    saved = store.get(record.execution_id)
    assert saved["status"] == "completed"
    assert saved["workflow_id"] == "wf-test"
    assert saved["node_results"]["A"]["output"] == {"x": 1}


@pytest.mark.asyncio
async def test_engine_without_store(registry, config, calls):
    engine = WorkflowEngine(registry, config=config)
    try:
        record = await engine.run(workflow([{"id": "A", "type": "RECORD"}]), 5)
    finally:
        await engine.aclose()

    assert record.output == 5


@pytest.mark.asyncio
async def test_output_pydantic_cannot_serialize_still_persists(engine, store):
    wf = workflow([{"id": "raw", "type": "ACTION_EXPRESSION", "config": {"expression": "b'\\xff'"}}])

    record = await engine.run(wf, {})

    assert record.status == ExecutionStatus.COMPLETED
    assert record.output == b"\xff"
    saved = store.get(record.execution_id)
    assert saved["status"] == "completed"
    assert saved["output"] == "b'\\xff'"


@pytest.mark.asyncio
async def test_store_failure_does_not_fail_run(engine, calls, caplog):
    engine.store = AsyncMock()
    engine.store.save.side_effect = TypeError("cannot encode")

    record = await engine.run(workflow([{"id": "A", "type": "RECORD"}]), {"x": 1})

    assert record.status == ExecutionStatus.COMPLETED
    engine.store.save.assert_awaited_once()
    assert f"Failed to persist execution {record.execution_id}" in caplog.text
