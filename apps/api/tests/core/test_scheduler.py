"""
Tests for the JobRegistry.

These tests verify:
- Schedule validation at registration
- Re-registering a name replaces the old job
- Wrapped execution records results and never raises
- Stop/start/restart of known and unknown jobs
- Bounded run history
"""

import asyncio
from datetime import UTC, datetime

import pytest

from app.core.scheduler import JobConfigurationError, JobNotFoundError, JobRegistry


@pytest.fixture
def registry():
    return JobRegistry(timezone="America/Sao_Paulo", history_size=10)


async def noop():
    return None


async def failing():
    raise RuntimeError("disk on fire")


# ============================================
# Registration
# ============================================


def test_registries_can_be_built_repeatedly():
    first = JobRegistry(timezone="UTC")
    second = JobRegistry(timezone="UTC")

    first.register("report", "0 2 * * *", noop)
    second.register("report", "0 2 * * *", noop)

    assert "report" in first
    assert "report" in second


def test_register_lists_job(registry):
    registry.register("cleanup-temp", "0 2 * * *", noop)

    jobs = registry.list_jobs()
    assert len(jobs) == 1
    assert jobs[0].name == "cleanup-temp"
    assert jobs[0].schedule == "0 2 * * *"
    assert jobs[0].timezone == "America/Sao_Paulo"
    assert jobs[0].is_running is True
    assert jobs[0].is_executing is False


def test_reregister_replaces_instead_of_duplicating(registry):
    registry.register("report", "0 2 * * *", noop)
    registry.register("report", "*/5 * * * *", failing)

    jobs = registry.list_jobs()
    assert len(jobs) == 1
    assert len(registry) == 1
    assert jobs[0].schedule == "*/5 * * * *"


def test_list_jobs_keeps_registration_order(registry):
    for name in ("b-job", "a-job", "c-job"):
        registry.register(name, "0 * * * *", noop)

    assert [job.name for job in registry.list_jobs()] == ["b-job", "a-job", "c-job"]


@pytest.mark.parametrize("schedule", ["not a cron", "0 2 * *", "61 * * * *"])
def test_invalid_schedule_rejected(registry, schedule):
    with pytest.raises(JobConfigurationError):
        registry.register("broken", schedule, noop)

    assert "broken" not in registry


def test_invalid_timezone_rejected(registry):
    with pytest.raises(JobConfigurationError):
        registry.register("broken", "0 2 * * *", noop, timezone="Mars/Olympus_Mons")


def test_unscheduled_job_is_registered_stopped(registry):
    registry.register("manual", "0 2 * * *", noop, scheduled=False)

    assert registry.get_job("manual").is_running is False


def test_unregister(registry):
    registry.register("report", "0 2 * * *", noop)

    assert registry.unregister("report") is True
    assert registry.unregister("report") is False
    assert registry.list_jobs() == []


# ============================================
# Execution
# ============================================


@pytest.mark.asyncio
async def test_run_job_records_success(registry):
    registry.register("report", "0 2 * * *", noop)

    result = await registry.run_job("report")

    assert result.success is True
    assert result.error is None
    assert result.trigger == "manual"
    assert result.finished_at >= result.started_at
    assert registry.history() == [result]


@pytest.mark.asyncio
async def test_failing_job_is_recorded_and_stays_armed(registry):
    registry.register("fragile", "0 2 * * *", failing)

    result = await registry.run_job("fragile")

    assert result.success is False
    assert "RuntimeError" in result.error
    assert "disk on fire" in result.error
    assert "fragile" in registry
    assert registry.get_job("fragile").is_running is True

    # A second run is still possible
    second = await registry.run_job("fragile")
    assert second.success is False
    assert len(registry.history("fragile")) == 2


@pytest.mark.asyncio
async def test_sync_task_runs_in_thread(registry):
    calls = []
    registry.register("sync", "0 2 * * *", lambda: calls.append("ran"))

    result = await registry.run_job("sync")

    assert result.success is True
    assert calls == ["ran"]


@pytest.mark.asyncio
async def test_run_unknown_job_raises(registry):
    with pytest.raises(JobNotFoundError) as exc_info:
        await registry.run_job("missing")

    assert exc_info.value.error_code == "JOB_NOT_FOUND"
    assert exc_info.value.status_code == 404


@pytest.mark.asyncio
async def test_job_marked_executing_while_running(registry):
    started = asyncio.Event()
    release = asyncio.Event()

    async def slow():
        started.set()
        await release.wait()

    registry.register("slow", "0 2 * * *", slow)
    run = asyncio.create_task(registry.run_job("slow"))
    await started.wait()

    assert registry.get_job("slow").is_executing is True

    release.set()
    await run
    assert registry.get_job("slow").is_executing is False


@pytest.mark.asyncio
async def test_history_is_bounded():
    registry = JobRegistry(timezone="UTC", history_size=3)
    registry.register("a", "0 2 * * *", noop)
    registry.register("b", "0 2 * * *", failing)

    for _ in range(3):
        await registry.run_job("a")
    await registry.run_job("b")

    history = registry.history()
    assert len(history) == 3
    assert history[-1].job_name == "b"
    assert len(registry.history("a")) == 2


# ============================================
# Stop / start / restart
# ============================================


@pytest.mark.parametrize("action", ["stop_job", "start_job", "restart_job"])
def test_unknown_job_control_returns_false(registry, action):
    assert getattr(registry, action)("missing") is False


def test_stop_then_start(registry):
    registry.register("report", "0 2 * * *", noop)

    assert registry.stop_job("report") is True
    assert registry.get_job("report").is_running is False

    assert registry.start_job("report") is True
    assert registry.get_job("report").is_running is True

    assert registry.restart_job("report") is True
    assert registry.get_job("report").is_running is True


@pytest.mark.asyncio
async def test_start_arms_jobs_and_schedules_next_run(registry):
    registry.register("scheduled", "0 2 * * *", noop)
    registry.register("manual", "0 3 * * *", noop, scheduled=False)

    registry.start()
    try:
        assert registry.running is True
        for job in registry.list_jobs():
            assert job.is_running is True
            assert job.next_run_time is not None
            assert job.next_run_time.hour in (2, 3)

        registry.stop_job("scheduled")
        assert registry.get_job("scheduled").next_run_time is None
    finally:
        registry.shutdown(wait=False)

    assert registry.running is False


@pytest.mark.asyncio
async def test_start_keeps_explicitly_stopped_jobs_paused(registry):
    registry.register("paused", "0 2 * * *", noop)
    registry.register("manual", "0 3 * * *", noop, scheduled=False)
    registry.stop_job("paused")

    registry.start()
    try:
        assert registry.get_job("paused").is_running is False
        assert registry.get_job("paused").next_run_time is None
        assert registry.get_job("manual").is_running is True
        assert registry.get_job("manual").next_run_time is not None
    finally:
        registry.shutdown(wait=False)


@pytest.mark.asyncio
async def test_failing_scheduled_run_keeps_next_tick(registry):
    registry.register("fragile", "0 2 * * *", failing)
    registry.start()
    try:
        registry._scheduler.modify_job("fragile", next_run_time=datetime.now(UTC))
        registry._scheduler.wakeup()

        for _ in range(100):
            if registry.history("fragile"):
                break
            await asyncio.sleep(0.02)

        history = registry.history("fragile")
        assert [(result.trigger, result.success) for result in history] == [("scheduled", False)]

        job = registry.get_job("fragile")
        assert job.is_running is True
        assert job.next_run_time is not None
        assert job.next_run_time > history[0].started_at
    finally:
        registry.shutdown(wait=False)
