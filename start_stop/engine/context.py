"""Per-request context passed to every handler."""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime

from start_stop.adapters.wallet_store import WalletStore
from start_stop.config.settings import StartStopSettings
from start_stop.providers.base import IssueTracker


def utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass
class PluginContext:
    """Collaborators and settings for one webhook event.

    Attributes:
        tracker: Issue tracker client
        wallets: Registered wallet lookup
        settings: Decoded plugin settings
        now: Clock used for deadlines and review delays
    """

    tracker: IssueTracker
    wallets: WalletStore
    settings: StartStopSettings
    now: Callable[[], datetime] = field(default=utc_now)
