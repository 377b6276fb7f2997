"""Issue tracker client.

Key Components:
    - IssueTracker: Abstract interface used by the rules engine
    - GitHubIssueTracker: PyGithub implementation with GraphQL for closing references
    - GitHubGraphQLClient: Minimal httpx GraphQL client with cursor pagination

Example:
    >>> async with GitHubIssueTracker(token) as tracker:
    ...     issues = await tracker.get_assigned_issues("ubiquity", "user2")
"""

from start_stop.providers.base import IssueTracker
from start_stop.providers.github_graphql import GitHubGraphQLClient, GraphQLPages
from start_stop.providers.github_rest import AsyncPages, GitHubIssueTracker

__all__ = [
    "AsyncPages",
    "GitHubGraphQLClient",
    "GitHubIssueTracker",
    "GraphQLPages",
    "IssueTracker",
]
