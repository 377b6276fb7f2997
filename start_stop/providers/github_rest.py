"""GitHub issue tracker implementation using PyGithub and the GraphQL API."""

import asyncio
from collections.abc import AsyncIterator, Callable
from typing import Any, Generic, TypeVar

import structlog
from github import Auth, Github, GithubException  # type: ignore[import-not-found]
from github.Issue import Issue as GHIssue  # type: ignore[import-not-found]
from github.PaginatedList import PaginatedList  # type: ignore[import-not-found]
from github.Repository import Repository as GHRepository  # type: ignore[import-not-found]

from start_stop.enums import Role
from start_stop.exceptions import ExternalServiceError
from start_stop.models.domain import (
    CrossReferenceEvent,
    Issue,
    IssueState,
    PullRequest,
    RepositoryRef,
    Review,
    User,
    parse_datetime,
)
from start_stop.providers.base import IssueTracker
from start_stop.providers.github_graphql import QUERY_CLOSING_ISSUE_REFERENCES, GitHubGraphQLClient

log = structlog.get_logger(__name__)

T = TypeVar("T")

CROSS_REFERENCED = "cross-referenced"


async def _run_sync(func: Callable[[], T]) -> T:
    """Run a synchronous function in a thread pool.

    This prevents blocking the event loop when calling synchronous
    PyGithub methods.
    """
    return await asyncio.to_thread(func)


class AsyncPages(Generic[T]):
    """Lazy, restartable async sequence over a PyGithub ``PaginatedList``.

    ``factory`` builds the paginated list (it may perform requests, so it
    runs in the thread pool). Each page is fetched only when the caller
    iterates past the previous one, and every ``async for`` starts over from
    the first page. Items ``convert`` maps to ``None`` are skipped.
    """

    def __init__(self, factory: Callable[[], PaginatedList], convert: Callable[[Any], T | None]):
        self._factory = factory
        self._convert = convert

    def __aiter__(self) -> AsyncIterator[T]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[T]:
        try:
            paginated = await _run_sync(self._factory)
            page = 0
            while True:
                items = await _run_sync(lambda index=page: paginated.get_page(index))
                if not items:
                    return
                for item in items:
                    converted = self._convert(item)
                    if converted is not None:
                        yield converted
                page += 1
        except GithubException as e:
            raise ExternalServiceError("Fetching page failed", status_code=e.status) from e


def parse_cross_reference(data: dict[str, Any]) -> CrossReferenceEvent | None:
    """Build a ``CrossReferenceEvent`` from a raw timeline event.

    Returns ``None`` for any other kind of timeline event.
    """
    if data.get("event") != CROSS_REFERENCED:
        return None
    source = (data.get("source") or {}).get("issue")
    if not source:
        return None

    url = source.get("html_url") or ""
    full_name = (source.get("repository") or {}).get("full_name")
    if not url:
        log.warning("cross_reference_without_url", number=source.get("number"), repository=full_name)
        return None
    owner = full_name.split("/")[0] if full_name else RepositoryRef.from_html_url(url).owner

    return CrossReferenceEvent(
        source_number=source["number"],
        source_state=source.get("state", "open"),
        source_body=source.get("body") or "",
        source_owner=owner,
        source_author=(source.get("user") or {}).get("login", ""),
        source_url=url,
        is_pull_request=source.get("pull_request") is not None,
        draft=bool(source.get("draft", False)),
    )


def parse_graphql_issue(node: dict[str, Any]) -> Issue:
    """Build an ``Issue`` from a GraphQL issue node."""
    repository = node["repository"]
    return Issue(
        id=node.get("databaseId") or 0,
        number=node["number"],
        title=node.get("title", ""),
        body=node.get("body") or "",
        state=IssueState(node.get("state", "OPEN").lower()),
        labels=[label["name"] for label in (node.get("labels") or {}).get("nodes") or []],
        created_at=parse_datetime(node["createdAt"]),
        repository=RepositoryRef(owner=repository["owner"]["login"], name=repository["name"]),
        assignees=[
            User(id=user.get("databaseId") or 0, login=user["login"])
            for user in (node.get("assignees") or {}).get("nodes") or []
            if user
        ],
        url=node.get("url", ""),
    )


class GitHubIssueTracker(IssueTracker):
    """GitHub implementation using the PyGithub library.

    Closing issue references are only exposed by the GraphQL API and are
    fetched through ``GitHubGraphQLClient``.
    """

    def __init__(
        self,
        token: str,
        base_url: str = "https://api.github.com",
        graphql: GitHubGraphQLClient | None = None,
    ):
        """Initialize GitHub client.

        Args:
            token: Installation or personal access token
            base_url: GitHub API base URL (for GitHub Enterprise)
            graphql: GraphQL client, built from the token when omitted
        """
        self.token = token.strip() if token else token
        self.base_url = base_url.rstrip("/")
        self.graphql = graphql if graphql is not None else GitHubGraphQLClient(self.token, self.base_url)
        self._client: Github | None = None

    async def connect(self) -> None:
        """Initialize the PyGithub and GraphQL clients."""
        if self._client is None:
            self._client = Github(auth=Auth.Token(self.token), base_url=self.base_url, per_page=100)
        await self.graphql.connect()
        log.debug("github_connected", base_url=self.base_url)

    async def disconnect(self) -> None:
        """Close both clients."""
        if self._client:
            await _run_sync(self._client.close)
            self._client = None
        await self.graphql.disconnect()

    async def __aenter__(self) -> "GitHubIssueTracker":
        await self.connect()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.disconnect()

    @property
    def client(self) -> Github:
        if self._client is None:
            raise ConnectionError("GitHub client is not connected")
        return self._client

    def _repo(self, repository: RepositoryRef) -> GHRepository:
        return self.client.get_repo(repository.full_name, lazy=True)

    async def get_assigned_issues(self, org: str, login: str) -> list[Issue]:
        """Search open issues assigned to ``login`` across the organization."""
        query = f"org:{org} assignee:{login} is:open is:issue"
        log.debug("get_assigned_issues", query=query)

        try:
            gh_issues = await _run_sync(
                lambda: list(self.client.search_issues(query, sort="created", order="desc"))
            )
        except GithubException as e:
            log.error("github_get_assigned_issues_failed", org=org, login=login, error=str(e))
            return []

        issues = [self._convert_issue(gh_issue) for gh_issue in gh_issues]
        return [issue for issue in issues if issue.state == IssueState.OPEN and issue.is_assigned_to(login)]

    async def get_opened_pull_requests(self, org: str, login: str) -> list[PullRequest]:
        query = f"org:{org} author:{login} is:pr is:open"
        log.debug("get_opened_pull_requests", query=query)

        try:
            gh_issues = await _run_sync(
                lambda: list(self.client.search_issues(query, sort="created", order="desc"))
            )
        except GithubException as e:
            log.error("github_get_opened_pull_requests_failed", org=org, login=login, error=str(e))
            return []

        return [self._convert_search_pull_request(gh_issue) for gh_issue in gh_issues if gh_issue.state == "open"]

    async def get_pull_request_reviews(self, repository: RepositoryRef, pr_number: int) -> list[Review]:
        try:
            gh_reviews = await _run_sync(lambda: list(self._repo(repository).get_pull(pr_number).get_reviews()))
        except GithubException as e:
            log.error(
                "github_get_reviews_failed",
                repository=repository.full_name,
                number=pr_number,
                error=str(e),
            )
            return []

        return [
            Review(
                state=gh_review.state,
                reviewer=gh_review.user.login if gh_review.user else "",
                author_association=gh_review.raw_data.get("author_association", "NONE"),
            )
            for gh_review in gh_reviews
        ]

    async def add_comment(self, repository: RepositoryRef, issue_number: int, body: str) -> None:
        log.info("add_comment", repository=repository.full_name, number=issue_number)

        try:
            await _run_sync(lambda: self._repo(repository).get_issue(issue_number).create_comment(body))
        except GithubException as e:
            log.error("github_add_comment_failed", number=issue_number, error=str(e))

    async def add_assignees(self, repository: RepositoryRef, issue_number: int, logins: list[str]) -> None:
        log.info("add_assignees", repository=repository.full_name, number=issue_number, assignees=logins)

        try:
            await _run_sync(lambda: self._repo(repository).get_issue(issue_number).add_to_assignees(*logins))
        except GithubException as e:
            log.error("github_add_assignees_failed", number=issue_number, assignees=logins, error=str(e))
            raise ExternalServiceError("Adding the assignee failed", status_code=e.status) from e

    async def remove_assignees(self, repository: RepositoryRef, issue_number: int, logins: list[str]) -> None:
        log.info("remove_assignees", repository=repository.full_name, number=issue_number, assignees=logins)

        try:
            await _run_sync(lambda: self._repo(repository).get_issue(issue_number).remove_from_assignees(*logins))
        except GithubException as e:
            log.error("github_remove_assignees_failed", number=issue_number, assignees=logins, error=str(e))
            raise ExternalServiceError("Removing the assignee failed", status_code=e.status) from e

    async def close_pull_request(self, repository: RepositoryRef, pr_number: int) -> bool:
        log.info("close_pull_request", repository=repository.full_name, number=pr_number)

        try:
            await _run_sync(lambda: self._repo(repository).get_pull(pr_number).edit(state="closed"))
        except GithubException as e:
            log.error("github_close_pull_request_failed", number=pr_number, error=str(e))
            return False
        return True

    def iter_cross_references(self, repository: RepositoryRef, issue_number: int) -> AsyncPages[CrossReferenceEvent]:
        return AsyncPages(
            lambda: self._repo(repository).get_issue(issue_number).get_timeline(),
            lambda event: parse_cross_reference(event.raw_data),
        )

    async def get_closing_issue_references(self, repository: RepositoryRef, pr_number: int) -> list[Issue]:
        pages = self.graphql.paginate(
            QUERY_CLOSING_ISSUE_REFERENCES,
            {"owner": repository.owner, "repo": repository.name, "pr_number": pr_number},
            ["repository", "pullRequest", "closingIssuesReferences"],
        )
        try:
            return [parse_graphql_issue(node) async for node in pages]
        except ExternalServiceError as e:
            log.error("github_closing_references_failed", number=pr_number, error=e.message)
            return []

    async def get_user_role(self, repository: RepositoryRef, login: str) -> str:
        """Resolve the organization role, falling back to the collaborator permission."""

        def _get_role() -> str:
            try:
                membership = self.client.get_user(login).get_organization_membership(repository.owner)
                if membership.role in (Role.ADMIN.value, Role.MEMBER.value):
                    return membership.role
            except GithubException as e:
                if e.status not in (403, 404):
                    raise
                log.debug("github_membership_not_found", org=repository.owner, login=login)

            permission = self._repo(repository).get_collaborator_permission(login)
            if permission == "admin":
                return Role.ADMIN.value
            if permission in ("maintain", "write"):
                return Role.MEMBER.value
            return Role.CONTRIBUTOR.value

        try:
            return await _run_sync(_get_role)
        except GithubException as e:
            log.error("github_get_user_role_failed", login=login, error=str(e))
            return Role.CONTRIBUTOR.value

    async def get_user(self, login: str) -> User | None:
        try:
            gh_user = await _run_sync(lambda: self.client.get_user(login))
        except GithubException as e:
            if e.status != 404:
                log.error("github_get_user_failed", login=login, error=str(e))
            return None
        return User(id=gh_user.id, login=gh_user.login)

    def _convert_issue(self, gh_issue: GHIssue) -> Issue:
        """Convert a GitHub issue to our Issue model."""
        state = IssueState.CLOSED if gh_issue.state == "closed" else IssueState.OPEN

        return Issue(
            id=gh_issue.id,
            number=gh_issue.number,
            title=gh_issue.title,
            body=gh_issue.body or "",
            state=state,
            labels=[label.name for label in gh_issue.labels],
            created_at=gh_issue.created_at,
            repository=RepositoryRef.from_html_url(gh_issue.html_url),
            assignees=[User(id=user.id, login=user.login) for user in gh_issue.assignees or []],
            url=gh_issue.html_url,
        )

    def _convert_search_pull_request(self, gh_issue: GHIssue) -> PullRequest:
        """Convert a pull request search hit (an issue object) to a PullRequest."""
        return PullRequest(
            id=gh_issue.id,
            number=gh_issue.number,
            author=gh_issue.user.login if gh_issue.user else "",
            body=gh_issue.body or "",
            state=gh_issue.state,
            organization=RepositoryRef.from_html_url(gh_issue.html_url).owner,
            url=gh_issue.html_url,
            created_at=gh_issue.created_at,
        )
