from flowviz.core.dto import AddressTransaction
from flowviz.core.enums import TransactionType


def tx(hash, type, amount, from_address, to_address, timestamp=1_700_000_000_000, **kw):
    return AddressTransaction(
        hash=hash,
        timestamp=timestamp,
        type=TransactionType(type),
        amount=str(amount),
        from_address=from_address,
        to_address=to_address,
        **kw,
    )


def example_transactions():
    return [
        tx("h1", "incoming", "2000000000000000000", "B", "A"),
        tx("h2", "outgoing", "500000000000000000", "A", "C"),
    ]
