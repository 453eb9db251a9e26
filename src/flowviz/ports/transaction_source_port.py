from __future__ import annotations

from abc import ABC, abstractmethod

from flowviz.core.dto import AddressBalance, TransactionPage


class TransactionSourcePort(ABC):
    """
    Abstract Class for fetching an address's balance and transaction history.
    """

    # --- Balance ---

    @abstractmethod
    def get_balance(self, address: str) -> AddressBalance:
        raise NotImplementedError

    # --- Transactions (1-based pages, limit capped by provider) ---

    @abstractmethod
    def get_transactions(self, address: str, page: int = 1, limit: int = 50) -> TransactionPage:
        raise NotImplementedError
