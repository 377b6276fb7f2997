"""Enumerations for roles, commands and webhook events."""

from enum import Enum


class Role(str, Enum):
    """Organization permission tiers known to the plugin.

    ``maxConcurrentTasks`` may name other roles too; these are only the ones
    the issue tracker lookup can produce.
    """

    ADMIN = "admin"
    MEMBER = "member"
    CONTRIBUTOR = "contributor"

    def __str__(self) -> str:
        return self.value


class CommandName(str, Enum):
    """Slash commands handled by the plugin."""

    START = "start"
    STOP = "stop"

    def __str__(self) -> str:
        return self.value


class SupportedEvent(str, Enum):
    """Webhook events the plugin listens to.

    Values are ``<event>.<action>`` as dispatched by the host.
    """

    ISSUE_COMMENT_CREATED = "issue_comment.created"
    ISSUES_ASSIGNED = "issues.assigned"
    ISSUES_UNASSIGNED = "issues.unassigned"
    PULL_REQUEST_OPENED = "pull_request.opened"
    PULL_REQUEST_REOPENED = "pull_request.reopened"
    PULL_REQUEST_EDITED = "pull_request.edited"

    def __str__(self) -> str:
        return self.value

    @property
    def is_pull_request(self) -> bool:
        """Check if this is one of the pull request events."""
        return self in (
            SupportedEvent.PULL_REQUEST_OPENED,
            SupportedEvent.PULL_REQUEST_REOPENED,
            SupportedEvent.PULL_REQUEST_EDITED,
        )
