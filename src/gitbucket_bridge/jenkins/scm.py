from typing import Any

from pydantic import BaseModel


class RemoteConfig(BaseModel):
    name: str = "origin"
    urls: list[str] = []


class GitSCM(BaseModel):
    remotes: list[RemoteConfig] = []


class MultiSCM(BaseModel):
    scms: list[Any] = []


class NullSCM(BaseModel):
    pass


def _git_urls(scm: GitSCM) -> set[str]:
    return {url.strip().lower() for remote in scm.remotes for url in remote.urls}


def collect_repository_urls(scm: Any) -> set[str]:
    """Remote urls of every Git repository configured in ``scm``.

    Anything that is not a Git or a multi-SCM configuration yields no urls.
    """
    if isinstance(scm, GitSCM):
        return _git_urls(scm)
    if isinstance(scm, MultiSCM):
        urls: set[str] = set()
        for member in scm.scms:
            if isinstance(member, GitSCM):
                urls |= _git_urls(member)
        return urls
    return set()


def matches_repository(scm: Any, repository_url: str | None) -> bool:
    if repository_url is None:
        return False
    return repository_url.lower() in collect_repository_urls(scm)
