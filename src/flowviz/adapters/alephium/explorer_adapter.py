from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

import base58
import requests
from loguru import logger
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from flowviz.config import settings
from flowviz.core.dto import UNKNOWN_ADDRESS, AddressBalance, AddressTransaction, TransactionPage
from flowviz.core.enums import NetworkType, TransactionType
from flowviz.core.errors import FetchError, RateLimitError
from flowviz.ports.address_classifier_port import AddressClassifierPort
from flowviz.ports.transaction_source_port import TransactionSourcePort


# address type byte (first byte of the base58-decoded address)
P2PKH = 0x00
P2MPKH = 0x01
P2SH = 0x02
P2C = 0x03

_HASH_LEN = 32


def address_type(address: str) -> Optional[int]:
    """
    Type byte of a well-formed Alephium address, or None.

    P2PKH, P2SH and P2C carry a single 32-byte hash. P2MPKH carries a key count,
    one hash per key and the signature threshold.
    """
    try:
        raw = base58.b58decode(address.strip())
    except ValueError:
        return None
    if not raw:
        return None

    kind = raw[0]
    if kind in (P2PKH, P2SH, P2C):
        return kind if len(raw) == 1 + _HASH_LEN else None
    if kind == P2MPKH:
        body = len(raw) - 3
        return kind if body >= _HASH_LEN and body % _HASH_LEN == 0 else None
    return None


@dataclass(frozen=True)
class SourceConfig:
    """Which backend to talk to. Switching network means building a new adapter."""

    network: NetworkType = NetworkType.MAINNET
    base_url: Optional[str] = None
    timeout_sec: int = settings.EXPLORER_TIMEOUT_SEC
    max_retries: int = settings.EXPLORER_MAX_RETRIES
    backoff_factor: float = settings.EXPLORER_BACKOFF_FACTOR

    def resolved_url(self) -> str:
        url = self.base_url or settings.NETWORK_URLS[NetworkType(self.network).value]
        return url.rstrip("/")

    def retry(self) -> Retry:
        # 429s honour Retry-After; the last response is returned instead of raised
        return Retry(
            total=self.max_retries,
            backoff_factor=self.backoff_factor,
            status_forcelist=settings.EXPLORER_RETRY_STATUSES,
            allowed_methods=frozenset({"GET"}),
            respect_retry_after_header=True,
            raise_on_status=False,
        )


class AlephiumExplorerAdapter(TransactionSourcePort, AddressClassifierPort):

    def __init__(self, config: Optional[SourceConfig] = None) -> None:
        self.config = config or SourceConfig()
        self._base_url = self.config.resolved_url()
        self._timeout = self.config.timeout_sec

        self._session = requests.Session()
        http = HTTPAdapter(max_retries=self.config.retry())
        self._session.mount("https://", http)
        self._session.mount("http://", http)

    @property
    def network(self) -> NetworkType:
        return NetworkType(self.config.network)

    # ---------- internal ----------

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self._base_url}/{path.lstrip('/')}"
        try:
            resp = self._session.get(url, params=params, timeout=self._timeout)
        except requests.RequestException as e:
            logger.debug(f"GET {url} failed: {e}")
            raise FetchError(f"Explorer request {path} failed after retries: {e}") from e

        if resp.status_code == 429:
            raise RateLimitError(f"Rate limited by {self._base_url}")
        try:
            resp.raise_for_status()
            return resp.json()
        except (requests.RequestException, ValueError) as e:
            raise FetchError(f"Explorer request {path} failed: {e}") from e

    @staticmethod
    def _sum_atto(items: Iterable[Dict[str, Any]]) -> int:
        total = 0
        for it in items:
            total += int(it.get("attoAlphAmount") or 0)
        return total

    def _parse_transaction(self, address: str, tx: Dict[str, Any]) -> AddressTransaction:
        inputs: List[Dict[str, Any]] = [i for i in (tx.get("inputs") or []) if isinstance(i, dict)]
        outputs: List[Dict[str, Any]] = [o for o in (tx.get("outputs") or []) if isinstance(o, dict)]

        is_incoming = any(o.get("address") == address for o in outputs)
        is_outgoing = any(i.get("address") == address for i in inputs)

        amount = 0
        if is_incoming and not is_outgoing:
            amount = self._sum_atto(o for o in outputs if o.get("address") == address)
        elif is_outgoing and not is_incoming:
            amount = self._sum_atto(o for o in outputs if o.get("address") != address)
        elif is_incoming and is_outgoing:
            # net change of the address, magnitude only
            received = self._sum_atto(o for o in outputs if o.get("address") == address)
            spent = self._sum_atto(i for i in inputs if i.get("address") == address)
            amount = abs(received - spent)

        token_transfer = amount == 0 and any(o.get("tokens") for o in outputs)

        fee = None
        if tx.get("gasAmount") is not None and tx.get("gasPrice") is not None:
            fee = str(int(tx["gasAmount"]) * int(tx["gasPrice"]))

        return AddressTransaction(
            hash=str(tx.get("hash", "")),
            timestamp=int(tx.get("timestamp", 0)),
            type=TransactionType.INCOMING if is_incoming and not is_outgoing else TransactionType.OUTGOING,
            amount=str(amount),
            from_address=(inputs[0].get("address") if inputs else None) or UNKNOWN_ADDRESS,
            to_address=(outputs[0].get("address") if outputs else None) or UNKNOWN_ADDRESS,
            confirmations=tx.get("confirmations"),
            fee=fee,
            token_transfer=token_transfer,
        )

    # ---------- port methods ----------

    def get_balance(self, address: str) -> AddressBalance:
        data = self._get(f"addresses/{address}/balance")
        try:
            return AddressBalance(
                balance=str(data["balance"]),
                locked_balance=str(data.get("lockedBalance", "0")),
                utxo_num=int(data.get("utxoNum", 0)),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise FetchError(f"Invalid balance result: {data}") from e

    def get_transactions(self, address: str, page: int = 1, limit: int = 50) -> TransactionPage:
        limit = min(settings.MAX_PAGE_SIZE, max(1, int(limit)))
        rows = self._get(f"addresses/{address}/transactions", {"page": page, "limit": limit})
        if not isinstance(rows, list):
            raise FetchError(f"Invalid transactions result: {rows}")

        try:
            txs = [self._parse_transaction(address, r) for r in rows if isinstance(r, dict)]
        except (TypeError, ValueError) as e:
            raise FetchError(f"Malformed transaction in page {page}: {e}") from e

        return TransactionPage(transactions=txs, total=len(rows))

    def is_contract(self, address: str) -> bool:
        return address_type(address) == P2C

    def validate_address(self, address: str) -> bool:
        return bool(address) and address_type(address) is not None
