"""Domain models for the start/stop plugin.

Key Models:
    - Issue: Issue with labels, assignees and owning repository
    - PullRequest: Normalized pull request summary
    - CrossReferenceEvent: Timeline entry referencing an issue
    - Command: Parsed slash command
    - HandlerResult: Outcome of an event handler

Example:
    >>> from start_stop.models import Issue, RepositoryRef
    >>> issue = Issue.from_payload(payload["issue"], RepositoryRef("ubiquity", "test-repo"))
"""

from start_stop.models.domain import (
    AssignmentComment,
    Command,
    CrossReferenceEvent,
    HandlerResult,
    HttpStatusCode,
    Issue,
    IssueState,
    PullRequest,
    RepositoryRef,
    Review,
    User,
)

__all__ = [
    "AssignmentComment",
    "Command",
    "CrossReferenceEvent",
    "HandlerResult",
    "HttpStatusCode",
    "Issue",
    "IssueState",
    "PullRequest",
    "RepositoryRef",
    "Review",
    "User",
]
