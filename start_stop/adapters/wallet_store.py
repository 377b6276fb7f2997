"""Wallet lookup backed by the Supabase REST (PostgREST) API."""

from typing import Any

import httpx
import structlog

from start_stop.utils.retry import async_retry

log = structlog.get_logger(__name__)


class WalletStore:
    """Reads registered payment wallets from the ``users`` table.

    Each user row links to a ``wallets`` row holding the ``address``. A
    failed lookup is logged and treated as "no wallet".
    """

    def __init__(
        self,
        url: str,
        key: str,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ):
        """Initialize the store.

        Args:
            url: Supabase project url
            key: Supabase API key
            client: Optional preconfigured client (used by tests)
            timeout: Request timeout in seconds
        """
        self.url = url.rstrip("/")
        self.key = key
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    async def connect(self) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
            self._owns_client = True

    async def disconnect(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "WalletStore":
        await self.connect()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.disconnect()

    async def get_wallet_by_user_id(self, user_id: int, issue_number: int) -> str | None:
        """Return the wallet address registered by ``user_id``.

        ``issue_number`` is only used as log context.
        """
        try:
            rows = await self._fetch_user(user_id)
        except (httpx.HTTPError, ValueError) as e:
            log.error("wallet_lookup_failed", user_id=user_id, issue_number=issue_number, error=str(e))
            return None

        if not rows:
            log.debug("wallet_user_not_found", user_id=user_id, issue_number=issue_number)
            return None

        wallets = rows[0].get("wallets")
        if isinstance(wallets, list):
            wallets = wallets[0] if wallets else None
        address = (wallets or {}).get("address")
        return address or None

    @async_retry()
    async def _fetch_user(self, user_id: int) -> list[dict[str, Any]]:
        await self.connect()
        assert self._client is not None
        response = await self._client.get(
            f"{self.url}/rest/v1/users",
            params={"select": "id,wallets(address)", "id": f"eq.{user_id}"},
            headers={
                "apikey": self.key,
                "Authorization": f"Bearer {self.key}",
                "Accept": "application/json",
            },
        )
        response.raise_for_status()
        return response.json()
