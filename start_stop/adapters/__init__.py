"""Storage adapters.

Key Components:
    - WalletStore: Registered wallet lookup (Supabase REST API)
"""

from start_stop.adapters.wallet_store import WalletStore

__all__ = ["WalletStore"]
