"""Rules engine for the /start and /stop commands.

Key Components:
    - parse_event: Turns a webhook payload into a typed event
    - dispatch: Routes a typed event to its handler
    - eligibility: Start and stop preconditions, task limits
    - linked_prs: Pull requests linked to an issue, closing them on stop
    - deadline: Durations, deadlines and the assignment comment

Example:
    >>> from start_stop.engine import PluginContext, dispatch, parse_event
    >>> event = parse_event("issue_comment.created", payload)
    >>> result = await dispatch(PluginContext(tracker, wallets, settings), event)
"""

from start_stop.engine.context import PluginContext
from start_stop.engine.dispatcher import dispatch, parse_command
from start_stop.engine.events import PluginEvent, parse_event

__all__ = ["PluginContext", "PluginEvent", "dispatch", "parse_command", "parse_event"]
