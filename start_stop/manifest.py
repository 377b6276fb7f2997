"""Plugin manifest served at ``/manifest.json``."""

from typing import Any

MANIFEST: dict[str, Any] = {
    "name": "Start | Stop",
    "description": "Assign or un-assign yourself from an issue.",
    "ubiquity:listeners": [
        "issue_comment.created",
        "issues.assigned",
        "issues.unassigned",
        "pull_request.opened",
        "pull_request.reopened",
        "pull_request.edited",
    ],
    "commands": {
        "start": {
            "ubiquity:example": "/start",
            "description": "Assign yourself and/or others to the issue/task.",
        },
        "stop": {
            "ubiquity:example": "/stop",
            "description": "Unassign yourself from the issue/task.",
        },
    },
    "configuration": {
        "type": "object",
        "properties": {
            "reviewDelayTolerance": {"type": "string", "default": "1 Day"},
            "taskStaleTimeoutDuration": {"type": "string", "default": "30 Days"},
            "startRequiresWallet": {"type": "boolean", "default": True},
            "maxConcurrentTasks": {
                "type": "object",
                "description": "Maximum number of open assignments per role",
                "additionalProperties": {"type": "number", "minimum": 0},
                "default": {"member": 10, "contributor": 2},
            },
            "emptyWalletText": {
                "type": "string",
                "default": "Please set your wallet address with the /wallet command first and try again.",
            },
            "rolesWithReviewAuthority": {
                "type": "array",
                "items": {"type": "string"},
                "default": ["COLLABORATOR", "OWNER", "MEMBER"],
            },
            "disabledCommands": {
                "type": "array",
                "items": {"type": "string", "enum": ["start", "stop"]},
                "default": [],
            },
        },
    },
}
