from gidgethub.routing import Router
from gidgethub.sansio import Event
from sanic.log import logger

from gitbucket_bridge.gitbucket.models import parse_push_event
from gitbucket_bridge.jenkins.dispatcher import PushDispatcher

router = Router()


@router.register("push")
async def on_push(event: Event, dispatcher: PushDispatcher):
    data = parse_push_event(event.data)
    logger.debug("Received push event for %s on %s", data.repository.url, data.ref)
    jobs = dispatcher.dispatch(data)
    logger.debug("Push dispatched to %d job(s)", len(jobs))


@router.register("ping")
async def on_ping(event: Event, dispatcher: PushDispatcher):
    logger.debug("Received ping event")
