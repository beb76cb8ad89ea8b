"""Bridge transfer request and result types."""

from dataclasses import dataclass


@dataclass(frozen=True)
class TransferRequest:
    """A single bridge transfer from the source ledger to the destination ledger.

    Attributes:
        source_address: Sender on the source ledger
        destination_address: Recipient on the destination ledger
        amount: Decimal string in the source token's native units
        automatic: Whether a relayer completes the transfer; manual
            completion submits the redeem from the destination signer
    """

    source_address: str
    destination_address: str
    amount: str
    automatic: bool = False


@dataclass(frozen=True)
class TransferResult:
    """Outcome of a successful transfer.

    Attributes:
        source_address: Sender on the source ledger
        destination_address: Recipient on the destination ledger
        amount: The requested amount, as given in the request
        bridge_tx_id: Primary source-side transaction id used to track
            the transfer through the bridge
    """

    source_address: str
    destination_address: str
    amount: str
    bridge_tx_id: str

    def to_dict(self) -> dict[str, str]:
        return {
            "sourceAddress": self.source_address,
            "destinationAddress": self.destination_address,
            "amount": self.amount,
            "bridgeTxId": self.bridge_tx_id,
        }


@dataclass(frozen=True)
class TransferQuote:
    """Fee quote for a prepared transfer.

    Attributes:
        source_amount: Base units debited on the source ledger
        destination_amount: Net base units expected on the destination
            ledger after relayer fees and requested native gas
    """

    source_amount: int
    destination_amount: int
