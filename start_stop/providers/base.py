"""
Abstract base class for the issue tracker client.

The plugin never talks to the tracker directly; every remote read and write
goes through an ``IssueTracker``. This keeps the rules engine testable with
an ``AsyncMock(spec=IssueTracker)``.

Error contract:
    - Reads (searches, reviews, roles, user lookups) log failures and return
      a neutral value (empty list, ``None``, the contributor role).
    - ``add_comment`` logs failures and returns, ``close_pull_request`` logs
      them and returns ``False``.
    - ``add_assignees`` and ``remove_assignees`` raise ``ExternalServiceError``;
      without them the command has no effect.
    - Iterating ``iter_cross_references`` raises ``ExternalServiceError`` when a
      page cannot be fetched. Callers decide how to degrade.
"""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterable

from start_stop.models.domain import (
    CrossReferenceEvent,
    Issue,
    PullRequest,
    RepositoryRef,
    Review,
    User,
)


class IssueTracker(ABC):
    """Issue tracker operations needed by the start/stop workflows."""

    @abstractmethod
    async def get_assigned_issues(self, org: str, login: str) -> list[Issue]:
        """Open issues in ``org`` currently assigned to ``login``.

        Pull requests are excluded.
        """

    @abstractmethod
    async def get_opened_pull_requests(self, org: str, login: str) -> list[PullRequest]:
        """Open pull requests in ``org`` authored by ``login``."""

    @abstractmethod
    async def get_pull_request_reviews(self, repository: RepositoryRef, pr_number: int) -> list[Review]:
        """All reviews submitted on a pull request."""

    @abstractmethod
    async def add_comment(self, repository: RepositoryRef, issue_number: int, body: str) -> None:
        """Post a comment on an issue or pull request."""

    @abstractmethod
    async def add_assignees(self, repository: RepositoryRef, issue_number: int, logins: list[str]) -> None:
        """Assign users to an issue.

        Raises:
            ExternalServiceError: If the tracker rejects the change
        """

    @abstractmethod
    async def remove_assignees(self, repository: RepositoryRef, issue_number: int, logins: list[str]) -> None:
        """Unassign users from an issue.

        Raises:
            ExternalServiceError: If the tracker rejects the change
        """

    @abstractmethod
    async def close_pull_request(self, repository: RepositoryRef, pr_number: int) -> bool:
        """Set a pull request's state to closed.

        Returns whether the pull request was closed.
        """

    @abstractmethod
    def iter_cross_references(self, repository: RepositoryRef, issue_number: int) -> AsyncIterable[CrossReferenceEvent]:
        """Lazily iterate the cross-reference events of an issue's timeline.

        Every ``async for`` starts again from the first page.
        """

    @abstractmethod
    async def get_closing_issue_references(self, repository: RepositoryRef, pr_number: int) -> list[Issue]:
        """Issues a pull request will close when merged."""

    @abstractmethod
    async def get_user_role(self, repository: RepositoryRef, login: str) -> str:
        """Role of ``login`` in the repository's organization.

        Returns one of the ``Role`` values.
        """

    @abstractmethod
    async def get_user(self, login: str) -> User | None:
        """Look up an account by login, ``None`` if it does not exist."""
