from __future__ import annotations

import datetime as dt
from decimal import Decimal, InvalidOperation
from typing import Union

from flowviz.config import settings
from flowviz.core.errors import InvalidAmountError


Number = Union[int, float, Decimal]


def parse_amount(value: Union[str, int]) -> int:
    """
    Parse an atomic-unit amount into an exact int.

    Only unsigned base-10 digit strings (or non-negative ints) are accepted;
    anything else raises InvalidAmountError.
    """
    if isinstance(value, bool):
        raise InvalidAmountError(f"Invalid amount: {value!r}")
    if isinstance(value, int):
        if value < 0:
            raise InvalidAmountError(f"Negative amount: {value}")
        return value
    s = str(value).strip() if value is not None else ""
    if not s.isdigit() or not s.isascii():
        raise InvalidAmountError(f"Invalid amount: {value!r}")
    return int(s)


def to_display_units(atto: Union[str, int]) -> Decimal:
    return Decimal(parse_amount(atto)) / Decimal(settings.ATTO_PER_ALPH)


def format_number_with_suffix(num: Number, decimals: int = 2) -> str:
    n = Decimal(str(num)) if isinstance(num, float) else Decimal(num)
    if n == 0:
        return "0"

    abs_n = abs(n)
    if abs_n >= Decimal("1e9"):
        return f"{n / Decimal('1e9'):.{decimals}f}B"
    if abs_n >= Decimal("1e6"):
        return f"{n / Decimal('1e6'):.{decimals}f}M"
    if abs_n >= Decimal("1e3"):
        return f"{n / Decimal('1e3'):.{decimals}f}K"
    return f"{n:.{decimals}f}"


def format_alph_amount(atto: Union[str, int], decimals: int = 4) -> str:
    try:
        return format_number_with_suffix(to_display_units(atto), decimals)
    except (InvalidAmountError, InvalidOperation):
        return "0"


def amount_label(atto: Union[str, int]) -> str:
    # edge label, e.g. "1.50K ALPH"
    return f"{format_number_with_suffix(to_display_units(atto), 2)} {settings.ASSET_SYMBOL}"


def transaction_label(atto: Union[str, int], is_self_transfer: bool = False) -> str:
    label = f"{to_display_units(atto):.2f} {settings.ASSET_SYMBOL}"
    return f"{label} (Self)" if is_self_transfer else label


def shorten_address(address: str, chars: int = 6) -> str:
    if not address:
        return ""
    if len(address) <= chars * 2 + 3:
        return address
    return f"{address[:chars]}...{address[-chars:]}"


def format_transaction_hash(tx_hash: str, chars: int = 8) -> str:
    return shorten_address(tx_hash, chars)


def format_timestamp(timestamp_ms: int) -> str:
    try:
        ts = dt.datetime.fromtimestamp(int(timestamp_ms) / 1000, tz=dt.timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        return "Invalid date"
    return ts.strftime("%b %d, %Y %H:%M:%S")


def _explorer_base(network: str) -> str:
    key = getattr(network, "value", network)
    return settings.EXPLORER_URLS.get(key, settings.EXPLORER_URLS["mainnet"])


def explorer_transaction_url(tx_hash: str, network: str) -> str:
    return f"{_explorer_base(network)}/transactions/{tx_hash}"


def explorer_address_url(address: str, network: str) -> str:
    return f"{_explorer_base(network)}/addresses/{address}"
