"""Domain enums for LSP channel purchases."""

from enum import Enum


class OrderState(str, Enum):
    """Lifecycle state of an order as reported by the LSP.

    Only CREATED orders can be paid.
    """

    CREATED = "created"
    COMPLETED = "completed"
    FAILED = "failed"

    def __str__(self) -> str:
        return self.value


class PaymentState(str, Enum):
    """Payment state of an order as reported by the LSP."""

    EXPECT_PAYMENT = "expect_payment"  # LSP is waiting for the buyer to pay
    HOLD = "hold"  # Payment received, held until the channel opens
    PAID = "paid"
    REFUNDED = "refunded"

    def __str__(self) -> str:
        return self.value


class PaymentRail(str, Enum):
    """How an order is settled."""

    LIGHTNING = "lightning"  # Pay the order's BOLT-11 invoice
    ONCHAIN = "onchain"  # Send the order total to the order's onchain address

    def __str__(self) -> str:
        return self.value


class PurchaseState(str, Enum):
    """State of a single purchase attempt.

    Lifecycle:
        IDLE → VALIDATING → AWAITING_CONFIRMATION → SELECTING_RAIL → PAYING → COMPLETED
        VALIDATING → FAILED (order rejected)
        AWAITING_CONFIRMATION → CANCELLED (operator declined)
        SELECTING_RAIL → CANCELLED | FAILED
        PAYING → FAILED (payment error)
    """

    IDLE = "idle"
    VALIDATING = "validating"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    SELECTING_RAIL = "selecting_rail"
    PAYING = "paying"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"

    def __str__(self) -> str:
        return self.value

    @property
    def is_terminal(self) -> bool:
        """Whether the attempt has finished."""
        return self in (PurchaseState.COMPLETED, PurchaseState.CANCELLED, PurchaseState.FAILED)
