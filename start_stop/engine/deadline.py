"""
Task duration and deadline calculation.

The expected duration of a task is encoded in its ``Time`` label, e.g.
``Time: <1 Hour`` or ``Time: 2 Days``. The price label (``Price: 25 USD``)
only marks the task as priced. When several time labels are present the
shortest one wins.
"""

from datetime import UTC, datetime, timedelta

import structlog

from start_stop.engine.context import PluginContext
from start_stop.models.domain import AssignmentComment, Issue
from start_stop.utils.durations import is_duration, parse_duration

log = structlog.get_logger(__name__)

TIME_LABEL_PREFIX = "Time:"
PRICE_LABEL_PREFIX = "Price:"

REGISTER_WALLET_PROMPT = "Register your wallet address using the following slash command: `/wallet 0x0000...0000`"

ASSIGNMENT_TIPS = """<h6>Tips:</h6>
<ul>
<li>Use <code>/wallet 0x0000...0000</code> if you want to update your registered payment wallet address.</li>
<li>Be sure to open a draft pull request as soon as possible to communicate updates on your progress.</li>
<li>Be sure to provide timely updates to us when requested, or you will be automatically unassigned from the task.</li>
</ul>"""


def _label_value(label: str, prefix: str) -> str | None:
    if label.lower().startswith(prefix.lower()):
        return label[len(prefix) :].strip()
    return None


def has_price_label(labels: list[str]) -> bool:
    return any(_label_value(label, PRICE_LABEL_PREFIX) for label in labels)


def calculate_duration(labels: list[str]) -> int | None:
    """Shortest duration in seconds among the issue's time labels.

    Returns ``None`` when no label encodes a recognizable duration.
    """
    durations = []
    for label in labels:
        value = _label_value(label, TIME_LABEL_PREFIX)
        if value and is_duration(value):
            durations.append(int(parse_duration(value).total_seconds()))
    return min(durations) if durations else None


def format_deadline(moment: datetime) -> str:
    """Format a point in time like ``Tue, Jan 2, 3:04 PM UTC``."""
    moment = moment.astimezone(UTC)
    hour = moment.hour % 12 or 12
    meridiem = "AM" if moment.hour < 12 else "PM"
    return f"{moment:%a}, {moment:%b} {moment.day}, {hour}:{moment:%M} {meridiem} UTC"


def get_deadline(issue: Issue, now: datetime) -> str | None:
    """Deadline of a task started at ``now``, ``None`` without a time label."""
    duration = calculate_duration(issue.labels)
    if duration is None:
        return None
    return format_deadline(now + timedelta(seconds=duration))


def days_elapsed(created_at: datetime, now: datetime) -> int:
    return (now - created_at) // timedelta(days=1)


async def generate_assignment_comment(
    context: PluginContext, issue: Issue, sender_id: int
) -> AssignmentComment | None:
    """Collect the values of the comment posted after a successful start.

    Returns ``None`` when the task has no duration.
    """
    now = context.now()
    deadline = get_deadline(issue, now)
    if deadline is None:
        log.debug("no_duration_for_issue", issue_number=issue.number, labels=issue.labels)
        return None

    wallet = await context.wallets.get_wallet_by_user_id(sender_id, issue.number)
    return AssignmentComment(
        deadline=deadline,
        days_elapsed_since_task_creation=days_elapsed(issue.created_at, now),
        registered_wallet=wallet or REGISTER_WALLET_PROMPT,
        tips=ASSIGNMENT_TIPS,
    )


def render_assignment_comment(comment: AssignmentComment, stale_after: timedelta) -> str:
    """Render the assignment comment as the HTML table shown on the issue."""
    rows = []
    if timedelta(days=comment.days_elapsed_since_task_creation) > stale_after:
        rows.append(
            "<tr><td>Warning!</td><td>This task was created over "
            f"{comment.days_elapsed_since_task_creation} days ago. Please confirm that this issue "
            "specification is accurate before starting.</td></tr>"
        )
    if comment.deadline:
        rows.append(f"<tr><td>Deadline</td><td>{comment.deadline}</td></tr>")
    rows.append(f"<tr><td>Registered Wallet</td><td>{comment.registered_wallet}</td></tr>")

    lines = ["<samp>", "<table>", *rows, "</table>", "</samp>", "", comment.tips]
    return "\n".join(lines)
