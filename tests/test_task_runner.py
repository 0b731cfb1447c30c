# tests/test_task_runner.py

from __future__ import annotations

import asyncio

import pytest

from gobii_tasks.api.errors import AuthError, TransportError
from gobii_tasks.credentials import StaticApiKey
from gobii_tasks.tasks.output_schema import sample_schema
from gobii_tasks.tasks.task_models import TaskRecord, TaskStatus
from gobii_tasks.tasks.task_runner import TaskRunner
from gobii_tasks.tasks.task_store import TaskNotFoundError, TaskStore

from .fakes import CountingRegistry, FakeExecutionClient, ref


@pytest.mark.asyncio
async def test_run_task_submits_and_polls_to_completion(
    runner: TaskRunner,
    client: FakeExecutionClient,
    task_store: TaskStore,
    registry: CountingRegistry,
) -> None:
    placeholder = task_store.add_task(name="greet", prompt="hello", output_schema=sample_schema())
    client.submit_results.append(ref("t1", "pending"))
    client.script("t1", ref("t1", "in_progress"), ref("t1", "completed", "done"))

    record = await runner.run_task(placeholder.id)
    assert record.id == "t1"
    assert record.status == TaskStatus.PENDING

    await runner.wait_idle()

    final = task_store.get_task("t1")
    assert final.status == TaskStatus.COMPLETED
    assert final.last_result == "done"
    assert task_store.get_task(placeholder.id) is None
    assert "t1" not in registry
    assert client.submit_calls[0].prompt == "hello"
    assert client.submit_calls[0].output_schema == sample_schema()


@pytest.mark.asyncio
async def test_terminal_status_releases_once_and_stops_fetching(
    runner: TaskRunner,
    client: FakeExecutionClient,
    task_store: TaskStore,
    registry: CountingRegistry,
) -> None:
    task_store.save_tasks([TaskRecord(id="t1", name="", prompt="p", status=TaskStatus.PENDING)])
    client.script("t1", ref("t1", "completed", "x"))

    runner.start_polling("t1")
    await runner.wait_idle()
    await asyncio.sleep(0.01)

    assert registry.released == ["t1"]
    assert client.fetch_calls == ["t1"]


@pytest.mark.asyncio
async def test_task_is_pending_before_submit_returns(
    runner: TaskRunner, client: FakeExecutionClient, task_store: TaskStore
) -> None:
    task = task_store.add_task(name="n", prompt="p")
    seen: list[TaskStatus | None] = []
    client.on_submit = lambda: seen.append(task_store.get_task(task.id).status)
    client.submit_results.append(ref("t9", "pending"))
    client.script("t9", ref("t9", "completed", "ok"))

    await runner.run_task(task.id)
    await runner.wait_idle()

    assert seen == [TaskStatus.PENDING]


@pytest.mark.asyncio
async def test_submit_failure_propagates_and_leaves_task_pending(
    runner: TaskRunner,
    client: FakeExecutionClient,
    task_store: TaskStore,
    registry: CountingRegistry,
) -> None:
    task = task_store.add_task(name="n", prompt="p")
    client.submit_results.append(TransportError("offline"))

    with pytest.raises(TransportError):
        await runner.run_task(task.id)

    stored = task_store.get_task(task.id)
    assert stored.status == TaskStatus.PENDING
    assert stored.last_result is None
    assert len(registry) == 0
    assert client.fetch_calls == []


@pytest.mark.asyncio
async def test_run_unknown_task_raises(runner: TaskRunner, client: FakeExecutionClient) -> None:
    with pytest.raises(TaskNotFoundError):
        await runner.run_task("nope")
    assert client.submit_calls == []


@pytest.mark.asyncio
async def test_poll_error_releases_slot_and_keeps_status(
    runner: TaskRunner,
    client: FakeExecutionClient,
    task_store: TaskStore,
    registry: CountingRegistry,
) -> None:
    task_store.save_tasks([TaskRecord(id="t1", name="", prompt="p", status=TaskStatus.PENDING)])
    client.script("t1", ref("t1", "in_progress"), TransportError("boom"))

    runner.start_polling("t1")
    await runner.wait_idle()

    stored = task_store.get_task("t1")
    assert stored.status == TaskStatus.IN_PROGRESS
    assert stored.last_result is None
    assert registry.released == ["t1"]
    assert len(registry) == 0


@pytest.mark.asyncio
async def test_batch_scan_twice_starts_one_poller_per_task(
    runner: TaskRunner,
    client: FakeExecutionClient,
    task_store: TaskStore,
    registry: CountingRegistry,
) -> None:
    task_store.save_tasks(
        [
            TaskRecord(id="a", name="a", prompt="", status=TaskStatus.PENDING),
            TaskRecord(id="b", name="b", prompt="", status=TaskStatus.IN_PROGRESS),
            TaskRecord(id="c", name="c", prompt="", status=TaskStatus.COMPLETED, last_result="r"),
            TaskRecord(id="d", name="d", prompt="", status=None),
        ]
    )
    client.gate = asyncio.Event()
    client.script("a", ref("a", "completed", "A"))
    client.script("b", ref("b", "failed"))

    assert runner.check_all_tasks() == 2
    assert runner.check_all_tasks() == 0
    assert registry.acquired == ["a", "b"]

    client.gate.set()
    await runner.wait_idle()

    assert sorted(client.fetch_calls) == ["a", "b"]
    assert task_store.get_task("a").last_result == "A"
    assert task_store.get_task("b").last_result == "Failed"
    assert task_store.get_task("c").last_result == "r"
    assert len(registry) == 0


@pytest.mark.asyncio
async def test_batch_scan_without_credentials_is_a_silent_no_op(
    client: FakeExecutionClient, task_store: TaskStore, registry: CountingRegistry
) -> None:
    runner = TaskRunner(
        client=client,
        task_store=task_store,
        credentials=StaticApiKey(None),
        registry=registry,
        poll_interval_seconds=0.0,
    )
    task_store.save_tasks(
        [
            TaskRecord(id="a", name="a", prompt="", status=TaskStatus.PENDING),
            TaskRecord(id="b", name="b", prompt="", status=TaskStatus.PENDING),
        ]
    )

    assert runner.check_all_tasks() == 0
    await asyncio.sleep(0)

    assert client.submit_calls == []
    assert client.fetch_calls == []
    assert registry.acquired == []
    assert len(registry) == 0


@pytest.mark.asyncio
async def test_check_task_only_resumes_active_tasks(
    runner: TaskRunner, client: FakeExecutionClient, task_store: TaskStore
) -> None:
    task_store.save_tasks(
        [
            TaskRecord(id="done", name="", prompt="", status=TaskStatus.COMPLETED, last_result="x"),
            TaskRecord(id="live", name="", prompt="", status=TaskStatus.PENDING),
        ]
    )
    client.script("live", ref("live", "completed", "y"))

    assert runner.check_task("done") is None
    assert runner.check_task("live") is not None
    with pytest.raises(TaskNotFoundError):
        runner.check_task("missing")

    await runner.wait_idle()
    assert client.fetch_calls == ["live"]


@pytest.mark.asyncio
async def test_listeners_see_each_persisted_change(
    runner: TaskRunner, client: FakeExecutionClient, task_store: TaskStore
) -> None:
    task = task_store.add_task(name="n", prompt="p")
    client.submit_results.append(ref("t1", "pending"))
    client.script("t1", ref("t1", "in_progress"), ref("t1", "completed", "done"))

    events: list[tuple[str, TaskStatus | None]] = []
    runner.add_listener(lambda t: events.append((t.id, t.status)))

    await runner.run_task(task.id)
    await runner.wait_idle()

    assert events == [
        (task.id, TaskStatus.PENDING),
        ("t1", TaskStatus.PENDING),
        ("t1", TaskStatus.IN_PROGRESS),
        ("t1", TaskStatus.COMPLETED),
    ]


@pytest.mark.asyncio
async def test_shutdown_cancels_pollers_and_frees_slots(
    runner: TaskRunner,
    client: FakeExecutionClient,
    task_store: TaskStore,
    registry: CountingRegistry,
) -> None:
    task_store.save_tasks([TaskRecord(id="t1", name="", prompt="", status=TaskStatus.IN_PROGRESS)])
    client.gate = asyncio.Event()
    client.script("t1", ref("t1", "completed", "never"))

    runner.start_polling("t1")
    await asyncio.sleep(0)
    await runner.shutdown()

    assert len(registry) == 0
    assert runner.running_pollers() == []
    assert task_store.get_task("t1").status == TaskStatus.IN_PROGRESS


@pytest.mark.asyncio
async def test_missing_key_from_client_surfaces_to_caller(
    runner: TaskRunner, client: FakeExecutionClient, task_store: TaskStore
) -> None:
    task = task_store.add_task(name="n", prompt="p")
    client.submit_results.append(AuthError("API key is not set"))

    with pytest.raises(AuthError):
        await runner.run_task(task.id)
