"""Pull requests linked to an issue through its timeline."""

import structlog

from start_stop.engine.context import PluginContext
from start_stop.engine.references import issue_linked_via_pr_body
from start_stop.exceptions import ExternalServiceError
from start_stop.models.domain import Issue, PullRequest, RepositoryRef
from start_stop.providers.base import IssueTracker

log = structlog.get_logger(__name__)


async def get_linked_pull_requests(
    tracker: IssueTracker, repository: RepositoryRef, issue_number: int
) -> list[PullRequest]:
    """Open, non-draft pull requests that cross-referenced an issue.

    Duplicates are dropped, first occurrence wins. A pull request is keyed
    by repository and number, not by number alone, so same-numbered pull
    requests from different repositories are both kept. A timeline that
    cannot be read yields an empty list.
    """
    linked: dict[tuple[str, int], PullRequest] = {}
    try:
        async for event in tracker.iter_cross_references(repository, issue_number):
            if not event.is_pull_request:
                continue
            pull_request = event.to_pull_request()
            if not pull_request.is_open or pull_request.draft:
                continue
            linked.setdefault((pull_request.repository.full_name, pull_request.number), pull_request)
    except ExternalServiceError as e:
        log.error(
            "linked_pull_requests_failed",
            repository=repository.full_name,
            issue_number=issue_number,
            error=e.message,
        )
        return []

    return list(linked.values())


async def close_pull_requests_for_issue(context: PluginContext, issue: Issue, author: str) -> list[PullRequest]:
    """Close the open pull requests ``author`` opened for ``issue``.

    A pull request qualifies when it was authored by ``author``, lives in the
    issue's organization and its body links back to the issue. When any were
    closed a comment listing them is posted on the issue.

    Returns:
        The pull requests that were closed
    """
    linked = await get_linked_pull_requests(context.tracker, issue.repository, issue.number)
    if not linked:
        log.info("no_linked_pull_requests", issue_number=issue.number)
        return []

    log.info("linked_pull_requests", issue_number=issue.number, pull_requests=[pr.url for pr in linked])

    closed: list[PullRequest] = []
    for pull_request in linked:
        if pull_request.author != author or pull_request.organization != issue.repository.owner:
            continue
        if not issue_linked_via_pr_body(pull_request.body, issue.number):
            log.info(
                "pull_request_not_linked_in_body",
                issue_number=issue.number,
                pull_request=pull_request.url,
            )
            continue
        if await context.tracker.close_pull_request(pull_request.repository, pull_request.number):
            closed.append(pull_request)

    if not closed:
        log.info("no_pull_requests_closed", issue_number=issue.number, author=author)
        return []

    links = " ".join(pull_request.url for pull_request in closed)
    await context.tracker.add_comment(
        issue.repository,
        issue.number,
        f"```diff\n# These linked pull requests are closed: {links}\n```",
    )
    return closed
