import bisect
from enum import StrEnum
from typing import Protocol, Sequence

from yarl import URL

from gitbucket_bridge.utils import normalize_url


class EditType(StrEnum):
    ADD = "add"
    EDIT = "edit"
    DELETE = "delete"


class ChangeSet(Protocol):
    id: str
    parent_commit: str | None
    affected_paths: Sequence[str]


class AffectedPath(Protocol):
    path: str
    src: str | None
    dst: str | None
    edit_type: EditType
    change_set: ChangeSet


class GitBucketBrowser:
    """Links into the GitBucket web UI for commits and files of a repository."""

    def __init__(self, url: str):
        normalized = normalize_url(url)
        if normalized is None or not URL(normalized).absolute:
            raise ValueError(f"Not an absolute GitBucket repository url: {url!r}")
        self.url = normalized

    def changeset_link(self, change_set: ChangeSet) -> str:
        return f"{self.url}commit/{change_set.id}"

    def diff_link(self, path: AffectedPath) -> str | None:
        if (
            path.edit_type != EditType.EDIT
            or path.src is None
            or path.dst is None
            or path.change_set.parent_commit is None
        ):
            return None
        return self._diff_link_regardless_of_edit_type(path)

    def _diff_link_regardless_of_edit_type(self, path: AffectedPath) -> str:
        change_set = path.change_set
        affected_paths = sorted(change_set.affected_paths)
        index = bisect.bisect_left(affected_paths, path.path)
        return f"{self.changeset_link(change_set)}#diff-{index}"

    def file_link(self, path: AffectedPath) -> str:
        if path.edit_type == EditType.DELETE:
            return self._diff_link_regardless_of_edit_type(path)
        return f"{self.url}blob/{path.change_set.id}/{path.path}"
