"""Pytest configuration and shared fixtures."""

from collections.abc import AsyncIterator, Callable, Iterable
from datetime import UTC, datetime
from typing import Any
from unittest.mock import AsyncMock

import pytest

from start_stop.adapters.wallet_store import WalletStore
from start_stop.config.settings import StartStopSettings
from start_stop.engine.context import PluginContext
from start_stop.models.domain import CrossReferenceEvent, Issue, IssueState, RepositoryRef, User
from start_stop.providers.base import IssueTracker

# Tuesday
FIXED_NOW = datetime(2024, 1, 2, 15, 4, tzinfo=UTC)

WALLET_ADDRESS = "0x4FDE0000000000000000000000000000000A1b2C"


class AsyncItems:
    """Restartable async iterable over a fixed list, like ``AsyncPages``."""

    def __init__(self, items: Iterable[Any]):
        self.items = list(items)

    def __aiter__(self) -> AsyncIterator[Any]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[Any]:
        for item in self.items:
            yield item


@pytest.fixture
def repository() -> RepositoryRef:
    return RepositoryRef(owner="ubiquity", name="test-repo")


@pytest.fixture
def sender() -> User:
    return User(id=1, login="user1")


@pytest.fixture
def make_issue(repository: RepositoryRef) -> Callable[..., Issue]:
    """Factory for open, priced one-hour issues."""

    def _make_issue(**overrides: Any) -> Issue:
        values: dict[str, Any] = {
            "id": 1001,
            "number": 1,
            "title": "Implement the wallet command",
            "body": "Add a /wallet command.",
            "state": IssueState.OPEN,
            "labels": ["Time: <1 Hour", "Price: 200 USD"],
            "created_at": datetime(2024, 1, 1, tzinfo=UTC),
            "repository": repository,
            "assignees": [],
            "url": "https://github.com/ubiquity/test-repo/issues/1",
        }
        values.update(overrides)
        return Issue(**values)

    return _make_issue


@pytest.fixture
def issue(make_issue: Callable[..., Issue]) -> Issue:
    return make_issue()


@pytest.fixture
def make_cross_reference() -> Callable[..., CrossReferenceEvent]:
    """Factory for cross-reference events from open pull requests."""

    def _make(number: int, **overrides: Any) -> CrossReferenceEvent:
        values: dict[str, Any] = {
            "source_number": number,
            "source_state": "open",
            "source_body": "Resolves #1",
            "source_owner": "ubiquity",
            "source_author": "user1",
            "source_url": f"https://github.com/ubiquity/test-repo/pull/{number}",
            "is_pull_request": True,
            "draft": False,
        }
        values.update(overrides)
        return CrossReferenceEvent(**values)

    return _make


@pytest.fixture
def tracker() -> AsyncMock:
    """Issue tracker mock with an empty organization."""
    mock = AsyncMock(spec=IssueTracker)
    mock.get_assigned_issues.return_value = []
    mock.get_opened_pull_requests.return_value = []
    mock.get_pull_request_reviews.return_value = []
    mock.get_closing_issue_references.return_value = []
    mock.get_user_role.return_value = "contributor"
    mock.get_user.side_effect = lambda login: User(id=hash(login) % 10_000, login=login)
    mock.close_pull_request.return_value = True
    mock.iter_cross_references.side_effect = lambda repository, issue_number: AsyncItems([])
    return mock


@pytest.fixture
def wallets() -> AsyncMock:
    mock = AsyncMock(spec=WalletStore)
    mock.get_wallet_by_user_id.return_value = WALLET_ADDRESS
    return mock


@pytest.fixture
def settings() -> StartStopSettings:
    return StartStopSettings()


@pytest.fixture
def context(tracker: AsyncMock, wallets: AsyncMock, settings: StartStopSettings) -> PluginContext:
    return PluginContext(tracker=tracker, wallets=wallets, settings=settings, now=lambda: FIXED_NOW)


@pytest.fixture
def now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def async_items() -> type[AsyncItems]:
    return AsyncItems
