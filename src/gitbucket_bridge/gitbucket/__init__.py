import aiohttp
from sanic.log import logger
from yarl import URL

from gitbucket_bridge.config import Config
from gitbucket_bridge.exceptions import CommentPostError


class GitBucket:
    def __init__(self, session: aiohttp.ClientSession, config: Config):
        self.session = session
        self.config = config
        self._timeout = aiohttp.ClientTimeout(
            sock_connect=config.COMMENT_TIMEOUT, sock_read=config.COMMENT_TIMEOUT
        )

    def get_api_repo_url(self, repo_url: str) -> str:
        """Map ``http://host/owner/repo/`` to ``http://host/api/v3/repos/owner/repo``."""
        try:
            url = URL(repo_url)
            if not url.absolute or not url.host:
                raise ValueError("not an absolute url")
            api_url = f"{url.origin()}/api/v3/repos{url.path.rstrip('/')}"
        except ValueError as e:
            raise CommentPostError(
                f"Malformed GitBucket repository url: {repo_url}"
            ) from e
        return api_url

    def get_issue_comments_url(self, repo_url: str, issue_id: int) -> str:
        return f"{self.get_api_repo_url(repo_url)}/issues/{issue_id}/comments"

    def _headers(self, token: str) -> dict[str, str]:
        return {
            "Content-Type": "application/json; charset=UTF-8",
            "Accept-Charset": "utf-8",
            "User-Agent": "Jenkins GitBucket Bridge",
            "Authorization": f"token {token}",
        }

    async def post_issue_comment(
        self, repo_url: str, issue_id: int, body: str, token: str
    ) -> bool:
        url = self.get_issue_comments_url(repo_url, issue_id)

        if self.config.STERILE:
            logger.debug("Sterile mode: skipping comment on %s", url)
            return False

        logger.debug("Posting comment to %s", url)
        async with self.session.post(
            url,
            json={"body": body},
            headers=self._headers(token),
            timeout=self._timeout,
            max_redirects=self.config.COMMENT_MAX_REDIRECTS,
        ) as resp:
            resp.raise_for_status()
            logger.debug("Comment posted to issue #%d", issue_id)
        return True
