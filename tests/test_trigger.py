import asyncio

import pytest

from gitbucket_bridge.exceptions import PollingError
from gitbucket_bridge.gitbucket.models import parse_push_event
from gitbucket_bridge.jenkins.trigger import PushCause, PushTrigger
from gitbucket_bridge.queue import SerialQueue

from conftest import load_sample_data


@pytest.fixture
def event():
    return parse_push_event(load_sample_data("push.json"))


def test_push_cause_description():
    assert (
        PushCause(pushed_by="sogabe").short_description
        == "Started by GitBucket push by sogabe"
    )
    assert PushCause().short_description == "Started by GitBucket push"


@pytest.mark.asyncio
async def test_run_schedules_build_on_changes(make_job, event):
    job = make_job(changes=True, scheduled=True)
    trigger = PushTrigger(job, SerialQueue())

    await trigger.run(event)

    job.poll.assert_awaited_once()
    job.schedule_build.assert_awaited_once()
    cause, parameters = job.schedule_build.call_args.args
    assert parameters == {"sha1": "9f6e2c1a0b7d43d2b3e4f5a6b7c8d9e0f1a2b3c4"}
    assert cause.pushed_by == "sogabe"
    assert cause.short_description == "Started by GitBucket push by sogabe"
    assert "Changes found" in cause.polling_log


@pytest.mark.asyncio
async def test_run_unknown_pusher(make_job):
    job = make_job()
    trigger = PushTrigger(job, SerialQueue())

    await trigger.run(parse_push_event(load_sample_data("push_no_pusher.json")))

    cause, _ = job.schedule_build.call_args.args
    assert cause.pushed_by is None
    assert cause.short_description == "Started by GitBucket push"


@pytest.mark.asyncio
async def test_run_no_changes(make_job, event):
    job = make_job(changes=False)
    trigger = PushTrigger(job, SerialQueue())

    await trigger.run(event)

    job.poll.assert_awaited_once()
    job.schedule_build.assert_not_awaited()
    log = trigger.log_file.read_text()
    assert log.startswith("Started on ")
    assert "Done. Took " in log
    assert log.endswith("No changes\n")


@pytest.mark.asyncio
async def test_run_already_queued(make_job, event):
    job = make_job(changes=True, scheduled=False)
    trigger = PushTrigger(job, SerialQueue())

    await trigger.run(event)

    # no retry when the host reports the build as already queued
    job.schedule_build.assert_awaited_once()


@pytest.mark.asyncio
async def test_polling_writes_to_log(make_job, event):
    job = make_job()

    async def poll(log):
        log.write("Polling for changes in http://x/y.git\n")
        return True

    job.poll.side_effect = poll
    trigger = PushTrigger(job, SerialQueue())

    await trigger.run(event)

    log = trigger.log_file.read_text()
    assert "Polling for changes in http://x/y.git" in log
    assert log.endswith("Changes found\n")
    assert trigger.log_file == job.root_dir / "gitbucket-polling.log"


@pytest.mark.asyncio
async def test_polling_failure(make_job, event):
    job = make_job()
    job.poll.side_effect = RuntimeError("repository is gone")
    trigger = PushTrigger(job, SerialQueue())

    with pytest.raises(PollingError):
        await trigger.run(event)

    job.schedule_build.assert_not_awaited()
    log = trigger.log_file.read_text()
    assert "Failed to record SCM polling" in log
    assert "repository is gone" in log


@pytest.mark.asyncio
async def test_polling_log_action(make_job, event):
    job = make_job(changes=False)
    trigger = PushTrigger(job, SerialQueue())
    (action,) = trigger.project_actions()

    assert action.get_log() is None

    await trigger.run(event)

    assert action.display_name == "GitBucket Hook Log"
    assert "No changes" in action.get_log()


@pytest.mark.asyncio
async def test_queue_runs_pushes_in_arrival_order(make_job, event):
    job = make_job()
    calls = []

    async def poll(log):
        calls.append(("poll", len(calls)))
        await asyncio.sleep(0)
        return True

    async def schedule_build(cause, parameters):
        calls.append(("schedule", len(calls)))
        return True

    job.poll.side_effect = poll
    job.schedule_build.side_effect = schedule_build

    queue = SerialQueue()
    trigger = PushTrigger(job, queue)

    trigger.on_post(event)
    trigger.on_post(event)
    await queue.join()
    await queue.close()

    assert calls == [("poll", 0), ("schedule", 1), ("poll", 2), ("schedule", 3)]


@pytest.mark.asyncio
async def test_queue_survives_failing_task(make_job, event):
    failing = make_job("failing")
    failing.poll.side_effect = RuntimeError("boom")
    healthy = make_job("healthy")

    queue = SerialQueue()
    PushTrigger(failing, queue).on_post(event)
    PushTrigger(healthy, queue).on_post(event)
    await queue.join()
    await queue.close()

    failing.schedule_build.assert_not_awaited()
    healthy.schedule_build.assert_awaited_once()


@pytest.mark.asyncio
async def test_queue_close_without_tasks():
    queue = SerialQueue()
    await queue.close()

    assert len(queue) == 0


@pytest.mark.asyncio
async def test_queue_close_runs_pending_tasks():
    queue = SerialQueue()
    ran = []

    def make_task(i):
        async def task():
            await asyncio.sleep(0)
            ran.append(i)

        return task

    for i in range(3):
        queue.execute(make_task(i))
    await queue.close()

    assert ran == [0, 1, 2]
    assert len(queue) == 0


@pytest.mark.asyncio
async def test_queue_close_timeout_drops_stuck_tasks():
    queue = SerialQueue()
    ran = []

    async def stuck():
        await asyncio.Event().wait()

    async def never():
        ran.append("never")

    queue.execute(stuck)
    queue.execute(never)
    await queue.close(timeout=0.05)

    assert ran == []
    assert len(queue) == 1
