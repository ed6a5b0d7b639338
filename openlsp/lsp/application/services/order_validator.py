"""Validation of a proposed channel order against the buyer's request.

The LSP is untrusted: every amount and state it quotes is re-checked against
what the buyer asked for and against the protocol constants, and the amount
embedded in the invoice must equal the quoted order total. Checks run in a
fixed order and stop at the first violation.

Nothing here has side effects. The only external call is decoding the
invoice through the node, which is read-only.
"""

from typing import cast

from ....exceptions import ErrorCode, InvalidPaymentRequestError, ValidationError
from ...domain.enums import PaymentRail
from ...domain.models import (
    PaymentTerms,
    ProposedOrder,
    PurchaseRequest,
    parse_sat_amount,
)
from ...domain.value_objects import ProtocolConstants, is_valid_pubkey
from ...infrastructure.lnd_client import LNDClientError, LNDClientProtocol, LNDConnectionError

ZERO_CLIENT_BALANCES = ("", "0")


def _is_positive_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def validate_purchase_request(request: PurchaseRequest) -> None:
    """Check that the purchase request carries everything a purchase needs.

    Raises:
        ValidationError: With an ``EXPECTED_*`` code for the first missing field.
    """
    if not _is_positive_int(request.capacity_sat):
        raise ValidationError(
            "Expected channel capacity to buy",
            code=ErrorCode.EXPECTED_CAPACITY,
            field="capacity_sat",
            value=request.capacity_sat,
        )

    if not _is_positive_int(request.priority):
        raise ValidationError(
            "Expected confirmation priority in blocks",
            code=ErrorCode.EXPECTED_PRIORITY,
            field="priority",
            value=request.priority,
        )

    if not request.pubkey or not is_valid_pubkey(request.pubkey):
        raise ValidationError(
            "Expected the LSP's public key",
            code=ErrorCode.EXPECTED_PUBKEY,
            field="pubkey",
            value=request.pubkey,
        )

    if request.announce_channel is None:
        raise ValidationError(
            "Expected whether to announce the channel",
            code=ErrorCode.EXPECTED_ANNOUNCE_CHANNEL,
            field="announce_channel",
        )

    if request.ask is None:
        raise ValidationError(
            "Expected a prompt to ask the operator", code=ErrorCode.EXPECTED_ASK, field="ask"
        )

    if request.logger is None:
        raise ValidationError("Expected a logger", code=ErrorCode.EXPECTED_LOGGER, field="logger")

    if request.node is None:
        raise ValidationError(
            "Expected an authenticated node", code=ErrorCode.EXPECTED_NODE, field="node"
        )

    if request.order is None:
        raise ValidationError(
            "Expected the order proposed by the LSP", code=ErrorCode.EXPECTED_ORDER, field="order"
        )

    if request.rail_hint is not None and request.rail_hint not in {r.value for r in PaymentRail}:
        raise ValidationError(
            "Expected rail hint to name a known payment rail",
            code=ErrorCode.EXPECTED_RAIL_HINT,
            field="rail_hint",
            value=request.rail_hint,
        )


def validate_order_terms(request: PurchaseRequest, constants: ProtocolConstants) -> int:
    """Check the proposed order's terms against the request and protocol constants.

    Returns:
        The order total in satoshis.

    Raises:
        ValidationError: For the first violated term.
    """
    order = request.order
    if order is None:
        raise ValidationError(
            "Expected the order proposed by the LSP", code=ErrorCode.EXPECTED_ORDER, field="order"
        )

    if not order.order_id:
        raise ValidationError(
            "Expected an order id", code=ErrorCode.EXPECTED_ORDER_ID, field="order_id"
        )

    payment = order.payment
    if payment is None:
        raise ValidationError(
            "Expected payment details in the order",
            code=ErrorCode.EXPECTED_PAYMENT_DETAILS,
            field="payment",
        )

    if not payment.fee_total_sat:
        raise ValidationError(
            "Expected a fee total",
            code=ErrorCode.EXPECTED_FEE_TOTAL,
            field="payment.fee_total_sat",
        )

    if not payment.order_total_sat:
        raise ValidationError(
            "Expected an order total",
            code=ErrorCode.EXPECTED_ORDER_TOTAL,
            field="payment.order_total_sat",
        )

    fee_total = payment.fee_total
    order_total = payment.order_total

    # Push amounts are not supported, so the whole order total is fees
    if fee_total != order_total:
        raise ValidationError(
            f"Fee total {fee_total} does not match order total {order_total}",
            code=ErrorCode.FEE_ORDER_TOTAL_MISMATCH,
            field="payment.fee_total_sat",
            value=fee_total,
        )

    lsp_balance = parse_sat_amount(order.lsp_balance_sat, field="lsp_balance_sat")
    if lsp_balance != request.capacity_sat:
        raise ValidationError(
            f"LSP balance {lsp_balance} does not match requested capacity {request.capacity_sat}",
            code=ErrorCode.LSP_BALANCE_MISMATCH,
            field="lsp_balance_sat",
            value=lsp_balance,
        )

    # A missing client balance is not an implicit zero
    balance = order.client_balance_sat
    if balance is None or balance not in ZERO_CLIENT_BALANCES:
        raise ValidationError(
            "Client balance must be zero",
            code=ErrorCode.NONZERO_CLIENT_BALANCE,
            field="client_balance_sat",
            value=order.client_balance_sat,
        )

    if order.confirms_within_blocks != request.priority:
        raise ValidationError(
            f"Order confirms within {order.confirms_within_blocks} blocks, "
            f"requested {request.priority}",
            code=ErrorCode.CONFIRMS_WITHIN_BLOCKS_MISMATCH,
            field="confirms_within_blocks",
            value=order.confirms_within_blocks,
        )

    if order.channel_expiry_blocks != constants.channel_expiry_blocks:
        raise ValidationError(
            f"Channel expiry {order.channel_expiry_blocks} blocks, "
            f"expected {constants.channel_expiry_blocks}",
            code=ErrorCode.CHANNEL_EXPIRY_MISMATCH,
            field="channel_expiry_blocks",
            value=order.channel_expiry_blocks,
        )

    if order.announce_channel != request.announce_channel:
        raise ValidationError(
            "Order announce flag does not match request",
            code=ErrorCode.ANNOUNCE_CHANNEL_MISMATCH,
            field="announce_channel",
            value=order.announce_channel,
        )

    if order.order_state != constants.order_state_created:
        raise ValidationError(
            f"Order state is {order.order_state!r}, expected {constants.order_state_created!r}",
            code=ErrorCode.ORDER_STATE_NOT_CREATED,
            field="order_state",
            value=order.order_state,
        )

    if payment.state != constants.payment_state_expect_payment:
        raise ValidationError(
            f"Payment state is {payment.state!r}, "
            f"expected {constants.payment_state_expect_payment!r}",
            code=ErrorCode.PAYMENT_STATE_NOT_EXPECT_PAYMENT,
            field="payment.state",
            value=payment.state,
        )

    return order_total


async def validate_invoice_amount(
    node: LNDClientProtocol, payment: PaymentTerms, order_total: int
) -> None:
    """Check that the order's invoice asks for exactly the order total.

    Raises:
        InvalidPaymentRequestError: If the invoice cannot be decoded.
        ValidationError: If the invoice amount differs from the order total.
        LNDConnectionError: If the node cannot be reached to decode the invoice.
    """
    if not payment.lightning_invoice:
        raise InvalidPaymentRequestError(
            "Expected a Lightning invoice in the order", field="payment.lightning_invoice"
        )

    try:
        decoded = await node.decode_payment_request(payment.lightning_invoice)
    except LNDConnectionError:
        raise
    except (LNDClientError, ValueError) as e:
        raise InvalidPaymentRequestError(
            "Lightning invoice could not be decoded",
            field="payment.lightning_invoice",
            original_error=e,
        ) from e

    if not decoded.matches_amount_sat(order_total):
        raise ValidationError(
            f"Invoice amount {decoded.amount_msat} msat does not match "
            f"order total {order_total} sat",
            code=ErrorCode.PAYMENT_REQUEST_AMOUNT_MISMATCH,
            field="payment.lightning_invoice",
            value=decoded.amount_msat,
        )


async def validate_purchase(request: PurchaseRequest, constants: ProtocolConstants) -> None:
    """Validate a purchase request and the order it carries.

    Raises:
        ValidationError: For the first violation found.
    """
    validate_purchase_request(request)
    order_total = validate_order_terms(request, constants)

    # Both checks above guarantee an order with payment terms and a node
    order = cast(ProposedOrder, request.order)
    await validate_invoice_amount(
        cast(LNDClientProtocol, request.node), cast(PaymentTerms, order.payment), order_total
    )
