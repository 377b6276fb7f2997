"""Routes typed webhook events to their handlers."""

import re
from typing import assert_never

import structlog

from start_stop.engine import eligibility
from start_stop.engine.context import PluginContext
from start_stop.engine.deadline import get_deadline
from start_stop.engine.events import (
    IssueCommentCreated,
    IssuesAssigned,
    IssuesUnassigned,
    PluginEvent,
    PullRequestOpened,
    UnsupportedEvent,
)
from start_stop.engine.linked_prs import close_pull_requests_for_issue
from start_stop.enums import CommandName
from start_stop.exceptions import StartStopError
from start_stop.models.domain import Command, HandlerResult, HttpStatusCode

log = structlog.get_logger(__name__)

MENTION_PATTERN = re.compile(r"@([A-Za-z0-9](?:[A-Za-z0-9-]*[A-Za-z0-9])?)")


def parse_command(body: str) -> Command | None:
    """Parse a slash command and the teammates mentioned after it.

    ``"/start @alice @bob"`` gives ``Command("start", ["alice", "bob"])``.
    Returns ``None`` unless the first word starts with ``/``. The command
    name keeps its case, so ``/START`` is not ``/start``.
    """
    parts = body.strip().split(maxsplit=1)
    if not parts or not parts[0].startswith("/"):
        return None
    name = parts[0][1:]
    rest = parts[1] if len(parts) > 1 else ""
    return Command(name=name, teammates=MENTION_PATTERN.findall(rest))


async def user_start_stop(context: PluginContext, event: IssueCommentCreated) -> HandlerResult:
    """Handle a ``/start`` or ``/stop`` comment."""
    command = parse_command(event.comment_body)
    if command is None:
        return HandlerResult(HttpStatusCode.NOT_MODIFIED)

    if command.name == CommandName.STOP:
        return await eligibility.stop(context, event.issue, event.sender)
    if command.name == CommandName.START:
        return await eligibility.start(context, event.issue, event.sender, command.teammates)

    log.debug("ignored_command", command=command.name)
    return HandlerResult(HttpStatusCode.NOT_MODIFIED)


async def user_self_assign(context: PluginContext, event: IssuesAssigned) -> HandlerResult:
    """Announce the deadline when someone is assigned without ``/start``."""
    issue = event.issue
    deadline = get_deadline(issue, context.now())
    if deadline is None:
        log.debug("skipping_deadline_no_duration", issue_number=issue.number)
        return HandlerResult(HttpStatusCode.NOT_MODIFIED)

    users = ", ".join(f"@{login}" for login in issue.assignee_logins)
    await context.tracker.add_comment(issue.repository, issue.number, f"{users} the deadline is at {deadline}")
    return HandlerResult(HttpStatusCode.OK)


async def user_pull_request(context: PluginContext, event: PullRequestOpened) -> HandlerResult:
    """Assign the author of a pull request to the issues it closes.

    Issues already assigned to the author or without a duration are skipped.
    A failed start is logged and does not stop the remaining issues.
    """
    author = event.author
    linked_issues = await context.tracker.get_closing_issue_references(event.repository, event.pull_request.number)
    if not linked_issues:
        log.info("no_linked_issues", pull_request=event.pull_request.number)
        return HandlerResult(HttpStatusCode.NOT_MODIFIED)

    result = HandlerResult(HttpStatusCode.NOT_MODIFIED)
    for issue in linked_issues:
        if issue.is_assigned_to(author.login):
            log.debug("author_already_assigned", issue_number=issue.number, login=author.login)
            continue
        if get_deadline(issue, context.now()) is None:
            log.debug("skipping_issue_no_duration", issue_number=issue.number)
            continue

        try:
            result = await eligibility.start(context, issue, author, [])
        except StartStopError as e:
            log.error("pull_request_start_failed", issue_number=issue.number, login=author.login, error=e.message)
    return result


async def user_unassigned(context: PluginContext, event: IssuesUnassigned) -> HandlerResult:
    """Close the pull requests of a user who was unassigned."""
    if event.assignee is None:
        return HandlerResult(HttpStatusCode.NOT_MODIFIED)

    closed = await close_pull_requests_for_issue(context, event.issue, event.assignee.login)
    return HandlerResult(HttpStatusCode.OK if closed else HttpStatusCode.NOT_MODIFIED)


async def dispatch(context: PluginContext, event: PluginEvent) -> HandlerResult:
    """Run the handler for ``event``."""
    if isinstance(event, IssueCommentCreated):
        return await user_start_stop(context, event)
    elif isinstance(event, IssuesAssigned):
        return await user_self_assign(context, event)
    elif isinstance(event, IssuesUnassigned):
        return await user_unassigned(context, event)
    elif isinstance(event, PullRequestOpened):
        return await user_pull_request(context, event)
    elif isinstance(event, UnsupportedEvent):
        log.warning("unsupported_event", event_name=event.name)
        return HandlerResult(HttpStatusCode.NOT_MODIFIED)
    else:
        assert_never(event)
