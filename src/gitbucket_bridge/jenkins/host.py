"""
Capabilities the build host provides to the bridge.

The bridge does not schedule builds, store job configuration or poll SCMs by
itself. A host hands it objects satisfying the protocols below; the in-memory
registry is enough to run the service standalone and in tests.
"""

import contextlib
import contextvars
from pathlib import Path
from typing import TYPE_CHECKING, Any, Iterable, Iterator, Protocol, Sequence, TextIO

from pydantic import SecretStr

from gitbucket_bridge.jenkins.property import LinkConfig

if TYPE_CHECKING:
    from gitbucket_bridge.jenkins.trigger import PushCause, PushTrigger


SYSTEM = "SYSTEM"
ANONYMOUS = "anonymous"

_identity: contextvars.ContextVar[str] = contextvars.ContextVar(
    "identity", default=ANONYMOUS
)


class Job(Protocol):
    name: str
    display_name: str
    root_dir: Path
    scm: Any
    link_config: LinkConfig | None
    trigger: "PushTrigger | None"
    next_build_number: int

    async def poll(self, log: TextIO) -> bool:
        """Look for SCM changes, writing progress to ``log``."""
        ...

    async def schedule_build(
        self, cause: "PushCause", parameters: dict[str, str]
    ) -> bool:
        """Queue a build. ``False`` means one is already queued."""
        ...


class ChangeLogEntry(Protocol):
    message: str


class Build(Protocol):
    job: Job
    id: str
    result: str
    status_icon: str
    url: str
    change_set: Sequence[ChangeLogEntry]


class JobRegistry(Protocol):
    def all_jobs(self) -> Iterable[Job]: ...

    def get_job(self, name: str) -> Job | None: ...


class SecretResolver(Protocol):
    def resolve(self, secret: SecretStr | None) -> str: ...


class PlainSecretResolver:
    def resolve(self, secret: SecretStr | None) -> str:
        if secret is None:
            return ""
        return secret.get_secret_value()


class InMemoryJobRegistry:
    def __init__(self, jobs: Iterable[Job] = ()):
        self._jobs: dict[str, Job] = {job.name: job for job in jobs}

    def register(self, job: Job):
        self._jobs[job.name] = job

    def unregister(self, name: str):
        self._jobs.pop(name, None)

    def all_jobs(self) -> Iterable[Job]:
        return list(self._jobs.values())

    def get_job(self, name: str) -> Job | None:
        return self._jobs.get(name)

    def __len__(self) -> int:
        return len(self._jobs)


def current_identity() -> str:
    return _identity.get()


@contextlib.contextmanager
def as_system() -> Iterator[None]:
    """Run the block as the system identity, restoring the caller's afterwards."""
    token = _identity.set(SYSTEM)
    try:
        yield
    finally:
        _identity.reset(token)
