from sanic.log import logger

from gitbucket_bridge import metrics
from gitbucket_bridge.gitbucket.models import PushEvent
from gitbucket_bridge.jenkins.host import Job, JobRegistry, as_system
from gitbucket_bridge.jenkins.scm import collect_repository_urls
from gitbucket_bridge.jenkins.trigger import POLLING_LOG_NAME, PushTrigger
from gitbucket_bridge.queue import SerialQueue


class PushDispatcher:
    def __init__(
        self,
        registry: JobRegistry,
        queue: SerialQueue,
        log_name: str = POLLING_LOG_NAME,
    ):
        self.registry = registry
        self.queue = queue
        self.log_name = log_name

    def create_trigger(self, job: Job) -> PushTrigger:
        """Trigger for ``job`` sharing this dispatcher's serial queue."""
        return PushTrigger(job, self.queue, log_name=self.log_name)

    def dispatch(self, event: PushEvent) -> list[Job]:
        """Hand ``event`` to the trigger of every job building its repository.

        Returns the jobs a trigger task was enqueued for.
        """
        repository_url = event.repository.url
        if repository_url is None:
            logger.warning("No repository url found.")
            return []

        repository_url = repository_url.lower()
        logger.debug("Dispatching push to %s", repository_url)

        dispatched = []
        with as_system():
            for job in self.registry.all_jobs():
                trigger = job.trigger
                if trigger is None:
                    continue
                if repository_url not in collect_repository_urls(job.scm):
                    logger.debug("Job %s does not build %s", job.name, repository_url)
                    continue

                logger.debug("Enqueueing push for job %s", job.name)
                trigger.on_post(event)
                metrics.pushes_dispatched_total.labels(job.name).inc()
                dispatched.append(job)

        return dispatched
