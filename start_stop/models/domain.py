"""
Domain models for the start/stop plugin.

These dataclasses are the normalized internal representation of the issue
tracker entities the plugin works with. They are built from webhook payloads
or from issue tracker responses and never persisted by the plugin.

Example:
    Building an issue from a webhook payload::

        issue = Issue.from_payload(payload["issue"], repository)
        if issue.state == IssueState.CLOSED:
            ...
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, IntEnum
from typing import Any


class IssueState(str, Enum):
    """Enumeration of possible issue states."""

    OPEN = "open"
    CLOSED = "closed"


class HttpStatusCode(IntEnum):
    """Outcome of a handler, expressed the way the host expects it."""

    OK = 200
    NOT_MODIFIED = 304


def parse_datetime(value: str | datetime | None) -> datetime | None:
    """Parse an ISO-8601 timestamp as returned by the GitHub API."""
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


@dataclass(frozen=True)
class RepositoryRef:
    """Owner and name of a repository."""

    owner: str
    name: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> "RepositoryRef":
        """Build from a webhook ``repository`` object."""
        return cls(owner=data["owner"]["login"], name=data["name"])

    @classmethod
    def from_html_url(cls, url: str) -> "RepositoryRef":
        """Build from an issue or pull request html url.

        ``https://github.com/<owner>/<repo>/pull/<n>`` gives ``owner/repo``.
        """
        parts = url.split("/")
        return cls(owner=parts[3], name=parts[4])


@dataclass
class User:
    """An issue tracker account."""

    id: int
    login: str

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> "User":
        return cls(id=data.get("id", 0), login=data["login"])


@dataclass
class Issue:
    """Represents an issue.

    Labels are kept as names only. The price label (``Price: ...``) marks a
    task that can be started, the time label (``Time: <1 Hour``) encodes the
    expected duration used for the deadline.
    """

    id: int
    """Identifier assigned by the issue tracker."""

    number: int
    """Repository-scoped issue number (e.g., #42)."""

    title: str

    body: str
    """Issue description in markdown. Parent issues carry a checklist of
    child issue references here."""

    state: IssueState

    labels: list[str]

    created_at: datetime

    repository: RepositoryRef

    assignees: list[User] = field(default_factory=list)
    """Currently assigned users, in the order the tracker returns them."""

    url: str = ""

    @property
    def assignee_logins(self) -> list[str]:
        return [assignee.login for assignee in self.assignees]

    def is_assigned_to(self, login: str) -> bool:
        return login in self.assignee_logins

    @classmethod
    def from_payload(cls, data: dict[str, Any], repository: RepositoryRef) -> "Issue":
        """Build from a REST ``issue`` object (webhook payload or API)."""
        return cls(
            id=data.get("id", 0),
            number=data["number"],
            title=data.get("title", ""),
            body=data.get("body") or "",
            state=IssueState(data.get("state", "open")),
            labels=[label["name"] for label in data.get("labels") or []],
            created_at=parse_datetime(data["created_at"]),
            repository=repository,
            assignees=[User.from_payload(user) for user in data.get("assignees") or [] if user],
            url=data.get("html_url", ""),
        )


@dataclass
class PullRequest:
    """Normalized summary of a pull request."""

    number: int
    author: str
    body: str
    state: str
    organization: str
    """Login of the repository owner the pull request belongs to."""

    url: str
    draft: bool = False
    id: int | None = None
    created_at: datetime | None = None

    @property
    def is_open(self) -> bool:
        return self.state == "open"

    @property
    def repository(self) -> RepositoryRef:
        return RepositoryRef.from_html_url(self.url)


@dataclass
class Review:
    """A pull request review."""

    state: str
    """Review state as reported by the tracker (``APPROVED``, ``COMMENTED``, ...)."""

    reviewer: str
    author_association: str = "NONE"


@dataclass
class CrossReferenceEvent:
    """Timeline entry recording that another item referenced an issue."""

    source_number: int
    source_state: str
    source_body: str
    source_owner: str
    source_author: str
    source_url: str
    is_pull_request: bool = False
    draft: bool = False

    def to_pull_request(self) -> PullRequest:
        return PullRequest(
            number=self.source_number,
            author=self.source_author,
            body=self.source_body,
            state=self.source_state,
            organization=self.source_owner,
            url=self.source_url,
            draft=self.draft,
        )


@dataclass
class Command:
    """A slash command parsed from a comment body."""

    name: str
    """Command name without the leading slash (``start``, ``stop``, ...)."""

    teammates: list[str] = field(default_factory=list)
    """Logins mentioned with ``@`` after the command."""


@dataclass
class AssignmentComment:
    """Values rendered into the comment posted after a successful start."""

    deadline: str | None
    days_elapsed_since_task_creation: int
    registered_wallet: str
    tips: str


@dataclass
class HandlerResult:
    """Result returned by every event handler."""

    status: HttpStatusCode
    output: str | None = None
