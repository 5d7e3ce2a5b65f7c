import json
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from gitbucket_bridge.exceptions import InvalidPayloadError


class User(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str | None = None
    email: str | None = None


class Commit(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    message: str = ""
    timestamp: str | None = None
    url: str | None = None
    added: frozenset[str] = frozenset()
    removed: frozenset[str] = frozenset()
    modified: frozenset[str] = frozenset()


class Repository(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str | None = None
    url: str | None = None
    description: str | None = None
    fork_count: int | None = Field(default=None, alias="forks")
    is_private: bool = Field(default=False, alias="private")
    owner: User | None = None


class PushEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    # GitBucket 1.7 and older do not send the pusher
    pusher: User | None = None
    ref: str | None = None
    commits: tuple[Commit, ...] = ()
    repository: Repository

    @property
    def pusher_name(self) -> str | None:
        if self.pusher is None or self.pusher.name is None:
            return None
        name = self.pusher.name.strip()
        return name or None

    @property
    def last_commit(self) -> Commit | None:
        if not self.commits:
            return None
        return self.commits[-1]


def load_payload(payload: str | bytes | Mapping[str, Any] | None) -> dict[str, Any]:
    """Decode a raw webhook payload into a JSON object."""
    if payload is None:
        raise InvalidPayloadError("payload should not be null")

    if isinstance(payload, (str, bytes)):
        try:
            payload = json.loads(payload)
        except ValueError as e:
            raise InvalidPayloadError(f"payload is not valid JSON: {e}") from e

    if not isinstance(payload, Mapping):
        raise InvalidPayloadError(
            f"payload must be a JSON object, got {type(payload).__name__}"
        )

    return dict(payload)


def parse_push_event(payload: str | bytes | Mapping[str, Any] | None) -> PushEvent:
    data = load_payload(payload)
    try:
        return PushEvent.model_validate(data)
    except ValidationError as e:
        raise InvalidPayloadError(f"payload is not a push event: {e}") from e
