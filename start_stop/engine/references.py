"""Issue references in pull request bodies.

Recognized forms, matched case-insensitively::

    Resolves #123            (also Fixes, Closes, Depends on, Related to)
    https://github.com/<owner>/<repo>/issues/123
    #123

References inside HTML comments are ignored.
"""

import re

_REFERENCE_PATTERN = re.compile(
    r"(?:Resolves|Fixes|Closes|Depends on|Related to) #(\d+)"
    r"|https://(?:www\.)?github\.com/[^/\s]+/[^/\s]+/(?:issue|issues)/(\d+)"
    r"|#(\d+)",
    re.IGNORECASE,
)
_HTML_COMMENT_PATTERN = re.compile(r"<!-*[\s\S]*?-*>")


def strip_html_comments(body: str) -> str:
    return _HTML_COMMENT_PATTERN.sub("", body)


def find_issue_references(body: str | None) -> list[int]:
    """Every issue number referenced in ``body``, in order of appearance."""
    if not body:
        return []
    return [
        int(next(group for group in match.groups() if group is not None))
        for match in _REFERENCE_PATTERN.finditer(strip_html_comments(body))
    ]


def issue_linked_via_pr_body(pr_body: str | None, issue_number: int) -> bool:
    """Whether a pull request body links to ``issue_number``.

    All references are scanned but only the last one decides.
    """
    references = find_issue_references(pr_body)
    if not references:
        return False
    return references[-1] == issue_number
