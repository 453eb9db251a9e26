from __future__ import annotations

from abc import ABC, abstractmethod


class AddressClassifierPort(ABC):

    @abstractmethod
    def is_contract(self, address: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    def validate_address(self, address: str) -> bool:
        raise NotImplementedError
