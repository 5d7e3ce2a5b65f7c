from typing import TYPE_CHECKING

from pydantic import BaseModel, SecretStr, field_validator

from gitbucket_bridge.gitbucket import references
from gitbucket_bridge.utils import fix_empty_and_trim, normalize_url

if TYPE_CHECKING:
    from gitbucket_bridge.jenkins.host import Job


class LinkAction(BaseModel):
    """Sidebar link from a job to its GitBucket repository."""

    url: str
    display_name: str = "GitBucket"
    icon_file_name: str = "/plugin/gitbucket/images/24x24/gitbucket.png"


class LinkConfig(BaseModel):
    url: str | None = None
    link_enabled: bool = False
    token: SecretStr | None = None

    @field_validator("url", mode="before")
    @classmethod
    def _normalize_url(cls, value):
        return normalize_url(value)

    @field_validator("token", mode="before")
    @classmethod
    def _fix_empty_token(cls, value):
        if isinstance(value, str):
            return fix_empty_and_trim(value)
        return value

    def job_actions(self) -> list[LinkAction]:
        if self.url is None:
            return []
        return [LinkAction(url=self.url)]


class GitBucketLinkAnnotator:
    """Turns references in change log messages of a job into GitBucket links."""

    def annotate(self, job: "Job", text: str) -> str:
        link_config = job.link_config
        if link_config is None:
            return text
        if not link_config.link_enabled or link_config.url is None:
            return text
        return references.annotate(text, link_config.url)
