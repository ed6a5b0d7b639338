"""Domain value objects for LSP channel purchases.

Value Objects in DDD:
- Immutable (frozen dataclasses)
- No identity (equality based on attributes)
- Describe characteristics, not entities
"""

import re
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from .enums import OrderState, PaymentRail, PaymentState

if TYPE_CHECKING:
    from ...utils.config import Settings

PUBKEY_PATTERN = re.compile(r"(02|03)[0-9a-f]{64}")
SATS_PER_BTC = Decimal(100_000_000)


@dataclass(frozen=True)
class ProtocolConstants:
    """Protocol constants every proposed order is checked against.

    Loaded once at process start and passed explicitly to the services.
    """

    channel_expiry_blocks: int = 12960
    target_confirmations_onchain: int = 6
    order_state_created: str = OrderState.CREATED.value
    payment_state_expect_payment: str = PaymentState.EXPECT_PAYMENT.value

    def __post_init__(self) -> None:
        if self.channel_expiry_blocks <= 0:
            raise ValueError(
                f"channel_expiry_blocks must be positive, got {self.channel_expiry_blocks}"
            )
        if self.target_confirmations_onchain <= 0:
            raise ValueError(
                "target_confirmations_onchain must be positive, "
                f"got {self.target_confirmations_onchain}"
            )

    @classmethod
    def from_settings(cls, settings: "Settings") -> "ProtocolConstants":
        return cls(
            channel_expiry_blocks=settings.channel_expiry_blocks,
            target_confirmations_onchain=settings.target_confirmations_onchain,
            order_state_created=settings.order_state_created,
            payment_state_expect_payment=settings.payment_state_expect_payment,
        )


@dataclass(frozen=True)
class DecodedPaymentRequest:
    """A BOLT-11 invoice as decoded by the node."""

    payment_request: str
    payment_hash: str
    destination: str
    amount_msat: int | None  # None for zero-amount invoices
    description: str = ""
    created_at: datetime | None = None
    expiry_seconds: int | None = None

    @property
    def amount_sat(self) -> int | None:
        """Whole satoshis, or None when the invoice does not fix an amount."""
        return self.amount_msat // 1000 if self.amount_msat is not None else None

    def matches_amount_sat(self, amount_sat: int) -> bool:
        """Whether the invoice asks for exactly ``amount_sat`` satoshis."""
        return self.amount_msat is not None and self.amount_msat == amount_sat * 1000


@dataclass(frozen=True)
class LightningPaymentResult:
    """Settlement of an offchain payment."""

    payment_hash: str
    preimage: str
    amount_sat: int
    fee_sat: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "payment_hash": self.payment_hash,
            "amount_sat": self.amount_sat,
            "fee_sat": self.fee_sat,
        }


@dataclass(frozen=True)
class OnchainPaymentResult:
    """Broadcast acknowledgment of an onchain payment (not a confirmation)."""

    txid: str
    address: str
    amount_sat: int

    def to_dict(self) -> dict[str, Any]:
        return {"txid": self.txid, "address": self.address, "amount_sat": self.amount_sat}


@dataclass(frozen=True)
class PaymentOutcome:
    """Result of a completed purchase: the rail used and its settlement."""

    rail: PaymentRail
    settlement: LightningPaymentResult | OnchainPaymentResult

    def to_dict(self) -> dict[str, Any]:
        return {"rail": self.rail.value, "settlement": self.settlement.to_dict()}


@dataclass(frozen=True)
class NodeInfo:
    """Summary of the local node."""

    pubkey: str
    alias: str
    block_height: int
    synced_to_chain: bool = False


@dataclass(frozen=True)
class ChannelInfo:
    """An open channel of the local node."""

    channel_id: str
    peer_pubkey: str
    capacity_sat: int
    local_balance_sat: int
    remote_balance_sat: int
    is_active: bool = True

    def __post_init__(self) -> None:
        if self.capacity_sat <= 0:
            raise ValueError(f"Channel capacity must be positive, got {self.capacity_sat}")

        if self.local_balance_sat < 0 or self.remote_balance_sat < 0:
            raise ValueError("Channel balances cannot be negative")


@dataclass(frozen=True)
class PendingChannelInfo:
    """A channel that is opening or closing."""

    peer_pubkey: str
    capacity_sat: int
    local_balance_sat: int
    remote_balance_sat: int
    is_opening: bool


@dataclass(frozen=True)
class ClosedChannelInfo:
    """A closed channel and the height its close confirmed at."""

    channel_id: str
    peer_pubkey: str
    close_confirm_height: int


@dataclass(frozen=True)
class ForwardInfo:
    """A single routed payment through the local node."""

    created_at: datetime
    incoming_channel: str
    outgoing_channel: str
    fee_sat: int
    tokens_sat: int


@dataclass(frozen=True)
class PeerForwardingStats:
    """Forwarding activity and liquidity with one peer."""

    public_key: str
    alias: str
    earned_inbound_fees_sat: int
    earned_outbound_fees_sat: int
    liquidity_inbound_btc: Decimal
    liquidity_outbound_btc: Decimal
    last_inbound_at: datetime | None = None
    last_outbound_at: datetime | None = None
    blocks_since_last_close: int | None = None

    @property
    def last_activity_at(self) -> datetime | None:
        """Most recent forward in either direction."""
        times = [t for t in (self.last_inbound_at, self.last_outbound_at) if t is not None]
        return max(times) if times else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "alias": self.alias,
            "blocks_since_last_close": self.blocks_since_last_close,
            "earned_inbound_fees": self.earned_inbound_fees_sat,
            "earned_outbound_fees": self.earned_outbound_fees_sat,
            "last_inbound_at": self.last_inbound_at.isoformat() if self.last_inbound_at else None,
            "last_outbound_at": (
                self.last_outbound_at.isoformat() if self.last_outbound_at else None
            ),
            "liquidity_inbound": str(self.liquidity_inbound_btc),
            "liquidity_outbound": str(self.liquidity_outbound_btc),
            "public_key": self.public_key,
        }


def sats_to_btc(amount_sat: int) -> Decimal:
    """Convert satoshis to BTC with 8 decimal places."""
    return (Decimal(amount_sat) / SATS_PER_BTC).quantize(Decimal("0.00000001"))


def is_valid_pubkey(value: str) -> bool:
    """Check for a compressed secp256k1 public key in hex."""
    return bool(PUBKEY_PATTERN.fullmatch(value))
