import asyncio

import aiohttp
from sanic.log import logger

from gitbucket_bridge import metrics
from gitbucket_bridge.config import Config
from gitbucket_bridge.exceptions import CommentPostError
from gitbucket_bridge.gitbucket import GitBucket
from gitbucket_bridge.gitbucket.references import find_issue_ids
from gitbucket_bridge.jenkins.host import Build, PlainSecretResolver, SecretResolver


def extract_ids_from_change_log(build: Build) -> list[int]:
    ids = []
    for entry in build.change_set:
        ids.extend(find_issue_ids(entry.message))
    return ids


def create_issue_comment(build: Build, root_url: str) -> str:
    return (
        f"Integrated to ![{build.result}]({root_url}images/16x16/{build.status_icon})"
        f"[{build.job.display_name} No.{build.id}]({root_url}{build.url})"
    )


class IssueUpdater:
    """Comments the build result on every issue a build's commits close."""

    display_name = "GitBucket update issue"

    def __init__(
        self,
        gitbucket: GitBucket,
        config: Config,
        secrets: SecretResolver | None = None,
    ):
        self.gitbucket = gitbucket
        self.config = config
        self.secrets = secrets or PlainSecretResolver()

    async def perform(self, build: Build) -> bool:
        link_config = build.job.link_config
        if link_config is None or link_config.url is None:
            logger.debug("No GitBucket url configured for %s", build.job.name)
            return True

        token = self.secrets.resolve(link_config.token)
        if token == "":
            logger.debug("No GitBucket api token configured for %s", build.job.name)
            return True

        ids = extract_ids_from_change_log(build)
        logger.debug("Issues referenced by %s #%s: %s", build.job.name, build.id, ids)
        if not ids:
            return True

        comment = create_issue_comment(build, self.config.ROOT_URL)
        for issue_id in ids:
            try:
                posted = await self.gitbucket.post_issue_comment(
                    link_config.url, issue_id, comment, token
                )
            except (CommentPostError, aiohttp.ClientError, asyncio.TimeoutError) as e:
                metrics.issue_comments_total.labels("failed").inc()
                logger.error(
                    "Failed to comment on issue #%d of %s: %s",
                    issue_id,
                    link_config.url,
                    e,
                    exc_info=e,
                )
                continue
            metrics.issue_comments_total.labels("posted" if posted else "sterile").inc()

        return True
