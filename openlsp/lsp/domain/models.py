"""Wire models and the purchase request.

The proposed order comes from the LSP and is untrusted: its fields are kept
close to the wire (satoshi amounts as decimal strings, states as raw strings)
so that every inconsistency surfaces as a named validation error rather than a
parse failure.
"""

import json
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError

from ...exceptions import ErrorCode, ValidationError

if TYPE_CHECKING:
    from ..infrastructure.lnd_client import LNDClientProtocol
    from ..infrastructure.prompts import Prompt

SAT_AMOUNT_PATTERN = re.compile(r"[0-9]+")


def parse_sat_amount(value: str, *, field: str) -> int:
    """Parse a decimal-string satoshi amount into an exact integer.

    Raises:
        ValidationError: If the value is not a non-negative integer string.
    """
    if not isinstance(value, str) or not SAT_AMOUNT_PATTERN.fullmatch(value):
        raise ValidationError(
            f"Expected an integer satoshi amount for {field}",
            code=ErrorCode.INVALID_SAT_AMOUNT,
            field=field,
            value=value,
        )
    return int(value)


class PaymentTerms(BaseModel):
    """Payment section of a proposed order."""

    model_config = ConfigDict(frozen=True, extra="ignore", strict=True)

    fee_total_sat: str = ""
    order_total_sat: str = ""
    state: str = ""
    lightning_invoice: str = ""
    onchain_address: str | None = None

    @property
    def offers_onchain(self) -> bool:
        """Whether the LSP accepts an onchain payment for this order."""
        return bool(self.onchain_address)

    @property
    def order_total(self) -> int:
        return parse_sat_amount(self.order_total_sat, field="payment.order_total_sat")

    @property
    def fee_total(self) -> int:
        return parse_sat_amount(self.fee_total_sat, field="payment.fee_total_sat")


class ProposedOrder(BaseModel):
    """Channel order as proposed by the LSP."""

    model_config = ConfigDict(frozen=True, extra="ignore", strict=True)

    order_id: str = ""
    lsp_balance_sat: str = ""
    client_balance_sat: str | None = None
    confirms_within_blocks: int | None = None
    channel_expiry_blocks: int | None = None
    announce_channel: bool | None = None
    order_state: str = ""
    payment: PaymentTerms | None = None

    @property
    def lsp_balance(self) -> int:
        return parse_sat_amount(self.lsp_balance_sat, field="lsp_balance_sat")

    @classmethod
    def from_wire(cls, data: dict[str, Any] | str | bytes) -> "ProposedOrder":
        """Build an order from the LSP's JSON message.

        Raises:
            ValidationError: If the message does not have the order's shape.
        """
        try:
            if isinstance(data, str | bytes):
                return cls.model_validate(json.loads(data))
            return cls.model_validate(data)
        except (PydanticValidationError, ValueError) as e:
            raise ValidationError(
                "Proposed order is malformed",
                code=ErrorCode.MALFORMED_ORDER,
                original_error=e,
            ) from e


@dataclass(frozen=True)
class PurchaseRequest:
    """What the buyer asked for, plus the capabilities the purchase needs.

    Immutable for the duration of one purchase attempt.
    """

    capacity_sat: int | None
    priority: int | None
    announce_channel: bool | None
    pubkey: str | None
    ask: "Prompt | None"
    logger: Any
    node: "LNDClientProtocol | None"
    order: ProposedOrder | None
    rail_hint: str | None = None

    @property
    def is_private(self) -> bool:
        return not self.announce_channel
