"""
Eligibility rules for ``/start`` and ``/stop``.

Both commands check their preconditions in a fixed order and raise
``EligibilityError`` with the user-facing message on the first failure.
Nothing is assigned or unassigned unless every precondition holds.

Start preconditions, in order:
    1. ``/start`` is enabled for the repository
    2. the issue is open
    3. the issue is not a parent issue
    4. the issue has no assignee
    5. a wallet is registered, when ``startRequiresWallet`` is set
    6. the issue is priced and has a duration
    7. the sender and every teammate are below their role's task limit

Stop preconditions, in order:
    1. the sender is assigned to the issue
    2. ``/stop`` is enabled for the repository
"""

import math
import re
from collections.abc import Mapping

import structlog

from start_stop.engine.context import PluginContext
from start_stop.engine.deadline import (
    calculate_duration,
    generate_assignment_comment,
    has_price_label,
    render_assignment_comment,
)
from start_stop.engine.linked_prs import close_pull_requests_for_issue
from start_stop.enums import CommandName
from start_stop.exceptions import EligibilityError
from start_stop.models.domain import (
    HandlerResult,
    HttpStatusCode,
    Issue,
    IssueState,
    PullRequest,
    RepositoryRef,
    User,
)

log = structlog.get_logger(__name__)

PARENT_ISSUE_PATTERN = re.compile(r"-\s+\[( |x)\]\s+#\d+")

PARENT_ISSUE_COMMENT = (
    "```diff\n# Please select a child issue from the specification checklist to work on. "
    "The '/start' command is disabled on parent issues.\n```"
)
ALREADY_ASSIGNED_COMMENT = "```diff\n! This issue is already assigned. Please choose another unassigned task.\n```"


def is_parent_issue(body: str | None) -> bool:
    """Whether the body holds a checklist of child issue references."""
    return bool(body) and PARENT_ISSUE_PATTERN.search(body) is not None


def resolve_task_limit(role: str, max_concurrent_tasks: Mapping[str, int | float]) -> int | float:
    """Concurrent task limit of a role.

    Roles missing from the configuration get the smallest configured limit.
    """
    limit = max_concurrent_tasks.get(role.lower())
    if limit is not None:
        return limit
    return min(max_concurrent_tasks.values())


def _format_limit(limit: int | float) -> str:
    if isinstance(limit, float) and not math.isinf(limit):
        return str(int(limit))
    return str(limit)


async def get_available_opened_pull_requests(context: PluginContext, org: str, login: str) -> list[PullRequest]:
    """Open pull requests of ``login`` that no longer block a task slot.

    A pull request frees a slot once someone with review authority approved
    it, or once it waited longer than ``reviewDelayTolerance`` without any
    review.
    """
    review_delay = context.settings.review_delay
    if not review_delay:
        return []

    authority = context.settings.roles_with_review_authority
    now = context.now()
    available = []
    for pull_request in await context.tracker.get_opened_pull_requests(org, login):
        reviews = await context.tracker.get_pull_request_reviews(pull_request.repository, pull_request.number)
        if reviews:
            if any(
                review.state == "APPROVED" and review.author_association.upper() in authority for review in reviews
            ):
                available.append(pull_request)
        elif pull_request.created_at is not None and now - pull_request.created_at >= review_delay:
            available.append(pull_request)
    return available


async def check_task_limit(context: PluginContext, repository: RepositoryRef, login: str) -> tuple[bool, int | float]:
    """Whether ``login`` may take another task, and their limit."""
    role = await context.tracker.get_user_role(repository, login)
    limit = resolve_task_limit(role, context.settings.max_concurrent_tasks)

    assigned = await context.tracker.get_assigned_issues(repository.owner, login)
    available = await get_available_opened_pull_requests(context, repository.owner, login)
    open_tasks = len(assigned) - len(available)
    log.debug(
        "task_limit_checked",
        login=login,
        role=role,
        limit=_format_limit(limit),
        assigned=len(assigned),
        available_pull_requests=len(available),
    )
    return open_tasks < limit, limit


async def _resolve_teammates(context: PluginContext, sender: User, teammates: list[str]) -> list[str]:
    resolved: list[str] = []
    for login in teammates:
        if login == sender.login or login in resolved:
            continue
        if await context.tracker.get_user(login) is None:
            log.warning("teammate_not_found", login=login)
            continue
        resolved.append(login)
    return resolved


async def start(context: PluginContext, issue: Issue, sender: User, teammates: list[str]) -> HandlerResult:
    """Assign ``sender`` and ``teammates`` to ``issue``.

    Raises:
        EligibilityError: If a precondition fails
        ExternalServiceError: If the assignment is rejected by the tracker
    """
    settings = context.settings
    tracker = context.tracker

    if not settings.is_command_enabled(CommandName.START):
        raise EligibilityError("The '/start' command is disabled for this repository.")

    if issue.state == IssueState.CLOSED:
        raise EligibilityError("Issue is closed")

    if is_parent_issue(issue.body):
        await tracker.add_comment(issue.repository, issue.number, PARENT_ISSUE_COMMENT)
        raise EligibilityError("Issue is a parent issue")

    if issue.assignees:
        log.info("issue_already_assigned", issue_number=issue.number, assignees=issue.assignee_logins)
        await tracker.add_comment(issue.repository, issue.number, ALREADY_ASSIGNED_COMMENT)
        raise EligibilityError("Issue is already assigned")

    if settings.start_requires_wallet:
        wallet = await context.wallets.get_wallet_by_user_id(sender.id, issue.number)
        if not wallet:
            await tracker.add_comment(issue.repository, issue.number, settings.empty_wallet_text)
            raise EligibilityError("No wallet address found")

    if not has_price_label(issue.labels) or calculate_duration(issue.labels) is None:
        raise EligibilityError("No price label is set to calculate the duration")

    team = await _resolve_teammates(context, sender, teammates)
    for login in [sender.login, *team]:
        allowed, limit = await check_task_limit(context, issue.repository, login)
        if not allowed:
            message = f"Too many assigned issues, you have reached your max limit of {_format_limit(limit)} issues."
            raise EligibilityError(message if login == sender.login else f"@{login}: {message}")

    assignees = [sender.login, *team]
    await tracker.add_assignees(issue.repository, issue.number, assignees)
    log.info("task_assigned", issue_number=issue.number, assignees=assignees)

    comment = await generate_assignment_comment(context, issue, sender.id)
    if comment is not None:
        await tracker.add_comment(
            issue.repository, issue.number, render_assignment_comment(comment, settings.stale_after)
        )

    return HandlerResult(HttpStatusCode.OK, "Task assigned successfully")


async def stop(context: PluginContext, issue: Issue, sender: User) -> HandlerResult:
    """Unassign ``sender`` from ``issue`` and close their linked pull requests.

    Raises:
        EligibilityError: If a precondition fails
        ExternalServiceError: If the unassignment is rejected by the tracker
    """
    if not issue.is_assigned_to(sender.login):
        raise EligibilityError("You are not assigned to this task")

    if not context.settings.is_command_enabled(CommandName.STOP):
        raise EligibilityError("The '/stop' command is disabled for this repository.")

    await context.tracker.remove_assignees(issue.repository, issue.number, [sender.login])
    log.info("task_unassigned", issue_number=issue.number, login=sender.login)

    await close_pull_requests_for_issue(context, issue, sender.login)
    return HandlerResult(HttpStatusCode.OK, "Task unassigned successfully")
