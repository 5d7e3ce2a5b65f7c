import datetime
import traceback
from pathlib import Path

from pydantic import BaseModel
from sanic.log import logger

from gitbucket_bridge import metrics
from gitbucket_bridge.exceptions import PollingError
from gitbucket_bridge.gitbucket.models import PushEvent
from gitbucket_bridge.jenkins.host import Job
from gitbucket_bridge.queue import SerialQueue
from gitbucket_bridge.utils import format_duration

POLLING_LOG_NAME = "gitbucket-polling.log"


class PushCause(BaseModel):
    pushed_by: str | None = None
    polling_log: str | None = None

    @property
    def short_description(self) -> str:
        if self.pushed_by is None:
            return "Started by GitBucket push"
        return f"Started by GitBucket push by {self.pushed_by}"


class PollingLogAction(BaseModel):
    """Job page exposing the log of the last push-triggered poll."""

    log_file: Path
    display_name: str = "GitBucket Hook Log"
    url_name: str = "GitBucketPollLog"
    icon_file_name: str = "/plugin/gitbucket/images/24x24/gitbucket-log.png"

    def get_log(self) -> str | None:
        if not self.log_file.exists():
            return None
        return self.log_file.read_text(encoding="utf-8")


class PushTrigger:
    """Build when a change is pushed to GitBucket."""

    display_name = "Build when a change is pushed to GitBucket"

    def __init__(
        self, job: Job, queue: SerialQueue, log_name: str = POLLING_LOG_NAME
    ):
        self.job = job
        self.queue = queue
        self.log_name = log_name

    @property
    def log_file(self) -> Path:
        return Path(self.job.root_dir) / self.log_name

    def project_actions(self) -> list[PollingLogAction]:
        return [PollingLogAction(log_file=self.log_file)]

    def on_post(self, event: PushEvent):
        async def task():
            await self.run(event)

        self.queue.execute(task)

    async def run(self, event: PushEvent):
        logger.info("%s triggered.", self.job.name)
        if not await self.poll():
            return

        name = f" #{self.job.next_build_number}"
        cause = self.create_cause(event)
        parameters = self.create_parameters(event)
        if await self.job.schedule_build(cause, parameters):
            metrics.builds_scheduled_total.labels(self.job.name, "scheduled").inc()
            logger.info(
                "SCM changes detected in %s. Triggering %s", self.job.name, name
            )
        else:
            metrics.builds_scheduled_total.labels(
                self.job.name, "already_queued"
            ).inc()
            logger.info(
                "SCM changes detected in %s. Job is already in the queue.",
                self.job.name,
            )

    async def poll(self) -> bool:
        self.log_file.parent.mkdir(parents=True, exist_ok=True)
        with self.log_file.open("w", encoding="utf-8") as log:
            log.write(f"Started on {datetime.datetime.now():%b %d, %Y %I:%M:%S %p}\n")
            try:
                with metrics.track_polling(self.job.name) as timer:
                    result = await self.job.poll(log)
            except Exception as e:
                log.write("ERROR: Failed to record SCM polling\n")
                traceback.print_exception(e, file=log)
                logger.exception("Failed to record SCM polling for %s", self.job.name)
                raise PollingError(f"Polling {self.job.name} failed: {e}") from e

            log.write(f"Done. Took {format_duration(timer.duration)}\n")
            logger.debug(
                "Polling %s took %s", self.job.name, format_duration(timer.duration)
            )

            if result:
                log.write("Changes found\n")
            else:
                log.write("No changes\n")

        return result

    def create_cause(self, event: PushEvent) -> PushCause:
        try:
            polling_log = self.log_file.read_text(encoding="utf-8")
        except OSError:
            polling_log = None
        return PushCause(pushed_by=event.pusher_name, polling_log=polling_log)

    def create_parameters(self, event: PushEvent) -> dict[str, str]:
        parameters = {}
        last_commit = event.last_commit
        if last_commit is not None:
            parameters["sha1"] = last_commit.id
        return parameters
