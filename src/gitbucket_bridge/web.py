import hmac

import aiohttp
from aiolimiter import AsyncLimiter
from gidgethub.sansio import Event
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sanic import Sanic, response
from sanic.exceptions import BadRequest
from sanic.log import logger

from gitbucket_bridge import metrics
from gitbucket_bridge.config import Config
from gitbucket_bridge.exceptions import InvalidPayloadError
from gitbucket_bridge.gitbucket import GitBucket
from gitbucket_bridge.gitbucket.models import load_payload
from gitbucket_bridge.gitbucket.router import router as gitbucket_router
from gitbucket_bridge.jenkins.dispatcher import PushDispatcher
from gitbucket_bridge.jenkins.host import (
    InMemoryJobRegistry,
    JobRegistry,
    SecretResolver,
)
from gitbucket_bridge.jenkins.issue_updater import IssueUpdater
from gitbucket_bridge.queue import SerialQueue

CRUMB_HEADER = "Jenkins-Crumb"


def is_crumb_exempt(path: str | None, webhook_path: str) -> bool:
    """Only the exact webhook path, with its trailing slash, skips the crumb check."""
    return path is not None and path == f"/{webhook_path}/"


def get_payload(request) -> str | bytes | None:
    if request.content_type.startswith("application/json"):
        return request.body or None
    payload = request.form.get("payload") if request.form else None
    if payload is None:
        payload = request.args.get("payload")
    return payload


async def handle_gitbucket_webhook(request, *, app: Sanic):
    payload = get_payload(request)
    if payload is None:
        raise BadRequest(
            "Not intended to be browsed interactively (must specify payload parameter)"
        )

    event_type = request.headers.get("X-Github-Event", "push")
    metrics.webhooks_received_total.labels(event_type).inc()

    with metrics.track_webhook_processing(event_type):
        data = load_payload(payload)
        logger.debug("payload: %s", data)
        event = Event(
            data,
            event=event_type,
            delivery_id=request.headers.get("X-Github-Delivery", ""),
        )

        logger.debug("Dispatching event %s", event.event)
        await gitbucket_router.dispatch(event, dispatcher=app.ctx.dispatcher)


def create_app(
    config: Config | None = None,
    registry: JobRegistry | None = None,
    secrets: SecretResolver | None = None,
):
    if config is None:
        config = Config()

    app = Sanic("gitbucket-bridge")
    app.update_config(config.model_dump())
    app.ctx.config = config
    logger.setLevel(config.OVERRIDE_LOGGING)

    app.ctx.registry = registry if registry is not None else InMemoryJobRegistry()
    app.ctx.queue = SerialQueue()
    app.ctx.dispatcher = PushDispatcher(
        app.ctx.registry, app.ctx.queue, log_name=config.POLLING_LOG_NAME
    )

    limiter = AsyncLimiter(config.HEALTH_RATE_LIMIT)

    @app.listener("before_server_start")
    async def init(app, loop):
        config.print_config()
        logger.debug("Creating aiohttp session")
        app.ctx.aiohttp_session = aiohttp.ClientSession()
        app.ctx.gitbucket = GitBucket(app.ctx.aiohttp_session, config)
        app.ctx.issue_updater = IssueUpdater(app.ctx.gitbucket, config, secrets)

    @app.listener("after_server_stop")
    async def shutdown(app, loop):
        await app.ctx.queue.close(config.QUEUE_DRAIN_TIMEOUT)
        await app.ctx.aiohttp_session.close()

    @app.middleware("request")
    async def check_crumb(request):
        crumb = app.config.CRUMB
        if crumb is None or request.method != "POST":
            return None
        if is_crumb_exempt(request.path, app.config.WEBHOOK_PATH):
            return None
        if not hmac.compare_digest(request.headers.get(CRUMB_HEADER, ""), crumb):
            logger.warning("No valid crumb was included in request for %s", request.path)
            return response.text(
                "No valid crumb was included in the request", status=403
            )
        return None

    @app.exception(InvalidPayloadError)
    async def invalid_payload(request, exception):
        logger.warning("Rejected webhook: %s", exception)
        return response.text(str(exception), status=400)

    @app.route("/")
    async def index(request):
        logger.debug("status check")
        return response.text("ok")

    @app.route("/health")
    async def health(request):
        if not limiter.has_capacity():
            return response.text("Rate limited", status=429)
        await limiter.acquire()

        logger.info("Checking health")
        jobs = len(list(app.ctx.registry.all_jobs()))
        return response.text(f"Jobs: {jobs}, Queued: {len(app.ctx.queue)}")

    @app.route("/metrics")
    async def prometheus_metrics(request):
        return response.raw(generate_latest(), content_type=CONTENT_TYPE_LATEST)

    @app.route(f"/{config.WEBHOOK_PATH}", methods=["POST"], strict_slashes=False)
    async def gitbucket_webhook(request):
        logger.debug("WebHook called.")
        await handle_gitbucket_webhook(request, app=app)
        return response.empty(200)

    @app.route("/job/<name:str>/gitbucket")
    async def link_action(request, name: str):
        job = app.ctx.registry.get_job(name)
        if job is None or job.link_config is None:
            return response.text("Not found", status=404)
        actions = job.link_config.job_actions()
        if not actions:
            return response.text("Not found", status=404)
        return response.redirect(actions[0].url)

    @app.route("/job/<name:str>/gitbucket-polling-log")
    async def polling_log(request, name: str):
        job = app.ctx.registry.get_job(name)
        if job is None or job.trigger is None:
            return response.text("Not found", status=404)
        log = job.trigger.project_actions()[0].get_log()
        if log is None:
            return response.text("Not found", status=404)
        return response.text(log)

    return app
