"""
Typed webhook events.

``parse_event`` turns the ``eventName`` and ``eventPayload`` sent by the host
into one of the event classes below. Events the plugin does not handle
become ``UnsupportedEvent`` so the dispatcher can skip them explicitly.
"""

from dataclasses import dataclass
from typing import Any

import structlog

from start_stop.enums import SupportedEvent
from start_stop.exceptions import StartStopError
from start_stop.models.domain import Issue, PullRequest, RepositoryRef, User, parse_datetime

log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class IssueCommentCreated:
    """A comment was posted on an issue."""

    issue: Issue
    sender: User
    comment_body: str


@dataclass(frozen=True)
class IssuesAssigned:
    issue: Issue
    sender: User
    assignee: User | None


@dataclass(frozen=True)
class IssuesUnassigned:
    issue: Issue
    sender: User
    assignee: User | None


@dataclass(frozen=True)
class PullRequestOpened:
    """A pull request was opened, reopened or edited."""

    pull_request: PullRequest
    repository: RepositoryRef
    author: User
    action: str


@dataclass(frozen=True)
class UnsupportedEvent:
    name: str


PluginEvent = IssueCommentCreated | IssuesAssigned | IssuesUnassigned | PullRequestOpened | UnsupportedEvent


def _optional_user(data: dict[str, Any] | None) -> User | None:
    return User.from_payload(data) if data else None


def _pull_request_from_payload(data: dict[str, Any], repository: RepositoryRef) -> PullRequest:
    return PullRequest(
        id=data.get("id"),
        number=data["number"],
        author=data["user"]["login"],
        body=data.get("body") or "",
        state=data.get("state", "open"),
        organization=repository.owner,
        url=data.get("html_url", ""),
        draft=bool(data.get("draft", False)),
        created_at=parse_datetime(data.get("created_at")),
    )


def parse_event(event_name: str, payload: dict[str, Any]) -> PluginEvent:
    """Build the typed event for a webhook.

    Raises:
        StartStopError: If the payload of a supported event is malformed
    """
    try:
        event = SupportedEvent(event_name)
    except ValueError:
        log.debug("unsupported_event", event_name=event_name)
        return UnsupportedEvent(name=event_name)

    try:
        repository = RepositoryRef.from_payload(payload["repository"])
        sender = User.from_payload(payload["sender"])

        if event == SupportedEvent.ISSUE_COMMENT_CREATED:
            return IssueCommentCreated(
                issue=Issue.from_payload(payload["issue"], repository),
                sender=sender,
                comment_body=payload["comment"].get("body") or "",
            )
        if event == SupportedEvent.ISSUES_ASSIGNED:
            return IssuesAssigned(
                issue=Issue.from_payload(payload["issue"], repository),
                sender=sender,
                assignee=_optional_user(payload.get("assignee")),
            )
        if event == SupportedEvent.ISSUES_UNASSIGNED:
            return IssuesUnassigned(
                issue=Issue.from_payload(payload["issue"], repository),
                sender=sender,
                assignee=_optional_user(payload.get("assignee")),
            )

        if event.is_pull_request:
            pull_request = payload["pull_request"]
            return PullRequestOpened(
                pull_request=_pull_request_from_payload(pull_request, repository),
                repository=repository,
                author=User.from_payload(pull_request["user"]),
                action=payload.get("action", event.value.split(".")[1]),
            )
    except (KeyError, TypeError, ValueError) as e:
        raise StartStopError(f"Malformed {event_name} payload: {e}") from e

    return UnsupportedEvent(name=event_name)
