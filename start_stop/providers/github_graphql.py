"""GitHub GraphQL access over httpx.

Only what the plugin needs: a cursor-paginated query helper and the query
listing the issues a pull request closes.
"""

from collections.abc import AsyncIterator
from typing import Any

import httpx
import structlog

from start_stop.exceptions import ExternalServiceError
from start_stop.utils.retry import async_retry

log = structlog.get_logger(__name__)

QUERY_CLOSING_ISSUE_REFERENCES = """
query closingIssueReferences($owner: String!, $repo: String!, $pr_number: Int!, $cursor: String) {
  repository(owner: $owner, name: $repo) {
    pullRequest(number: $pr_number) {
      closingIssuesReferences(first: 10, after: $cursor) {
        nodes {
          databaseId
          number
          title
          body
          state
          url
          createdAt
          labels(first: 100) {
            nodes {
              name
            }
          }
          assignees(first: 100) {
            nodes {
              databaseId
              login
            }
          }
          repository {
            name
            owner {
              login
            }
          }
        }
        pageInfo {
          hasNextPage
          endCursor
        }
      }
    }
  }
}
"""


def graphql_url(api_url: str) -> str:
    """Derive the GraphQL endpoint from a REST API base url.

    ``https://api.github.com`` maps to ``https://api.github.com/graphql`` and
    a GitHub Enterprise ``https://host/api/v3`` to ``https://host/api/graphql``.
    """
    api_url = api_url.rstrip("/")
    if api_url.endswith("/api/v3"):
        return api_url[: -len("/v3")] + "/graphql"
    return f"{api_url}/graphql"


class GitHubGraphQLClient:
    """Minimal async GraphQL client for the GitHub API."""

    def __init__(
        self,
        token: str,
        api_url: str = "https://api.github.com",
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ):
        self.token = token.strip() if token else token
        self.url = graphql_url(api_url)
        self._client = client
        self._owns_client = client is None
        self.timeout = timeout

    async def connect(self) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
            self._owns_client = True

    async def disconnect(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "GitHubGraphQLClient":
        await self.connect()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.disconnect()

    @async_retry()
    async def _post(self, body: dict[str, Any]) -> httpx.Response:
        await self.connect()
        assert self._client is not None
        return await self._client.post(
            self.url,
            json=body,
            headers={
                "Authorization": f"bearer {self.token}",
                "Accept": "application/vnd.github+json",
            },
        )

    async def query(self, query: str, variables: dict[str, Any]) -> dict[str, Any]:
        """Run a query and return its ``data`` object.

        Raises:
            ExternalServiceError: On transport failures, HTTP errors, a body
                that is not JSON, or GraphQL ``errors``
        """
        try:
            response = await self._post({"query": query, "variables": variables})
        except httpx.HTTPError as e:
            raise ExternalServiceError(f"GraphQL request failed: {e}") from e

        if response.status_code >= 400:
            raise ExternalServiceError(
                "GraphQL request failed",
                status_code=response.status_code,
                response_text=response.text,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise ExternalServiceError(
                "GraphQL response is not JSON",
                status_code=response.status_code,
                response_text=response.text,
            ) from e
        if not isinstance(payload, dict):
            raise ExternalServiceError("GraphQL response is not an object", status_code=response.status_code)

        if payload.get("errors"):
            messages = "; ".join(error.get("message", "") for error in payload["errors"])
            raise ExternalServiceError(f"GraphQL query returned errors: {messages}")
        return payload.get("data") or {}

    def paginate(self, query: str, variables: dict[str, Any], connection_path: list[str]) -> "GraphQLPages":
        """Iterate the nodes of a cursor-paginated connection."""
        return GraphQLPages(self, query, variables, connection_path)


class GraphQLPages:
    """Lazy, restartable sequence over the nodes of a GraphQL connection.

    The query must accept a ``$cursor`` variable and select ``nodes`` and
    ``pageInfo { hasNextPage endCursor }`` on the connection found at
    ``connection_path`` inside ``data``. Pages are only requested while the
    caller keeps iterating.

    Example:
        >>> pages = client.paginate(QUERY, {"owner": "o", "repo": "r", "pr_number": 1},
        ...     ["repository", "pullRequest", "closingIssuesReferences"])
        >>> async for node in pages:
        ...     print(node["number"])
    """

    def __init__(
        self,
        client: GitHubGraphQLClient,
        query: str,
        variables: dict[str, Any],
        connection_path: list[str],
    ):
        self.client = client
        self.query = query
        self.variables = variables
        self.connection_path = connection_path

    def __aiter__(self) -> AsyncIterator[dict[str, Any]]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[dict[str, Any]]:
        cursor: str | None = None
        while True:
            data = await self.client.query(self.query, {**self.variables, "cursor": cursor})
            connection = self._connection(data)
            if connection is None:
                return

            for node in connection.get("nodes") or []:
                if node is not None:
                    yield node

            page_info = connection.get("pageInfo") or {}
            if not page_info.get("hasNextPage"):
                return
            cursor = page_info.get("endCursor")
            log.debug("graphql_next_page", cursor=cursor)

    def _connection(self, data: dict[str, Any]) -> dict[str, Any] | None:
        current: Any = data
        for key in self.connection_path:
            if not isinstance(current, dict) or current.get(key) is None:
                return None
            current = current[key]
        return current
