"""Payment of a validated order on the selected rail."""

import asyncio

from ....exceptions import ErrorCode, PaymentFailedError, ValidationError
from ....utils.logging import get_logger
from ...domain.enums import PaymentRail
from ...domain.models import PaymentTerms, ProposedOrder
from ...domain.value_objects import (
    LightningPaymentResult,
    OnchainPaymentResult,
    PaymentOutcome,
    ProtocolConstants,
)
from ...infrastructure.lnd_client import LNDClientProtocol

logger = get_logger(__name__)


def _payment_terms(order: ProposedOrder) -> PaymentTerms:
    if order.payment is None:
        raise ValidationError(
            "Expected payment details in the order",
            code=ErrorCode.EXPECTED_PAYMENT_DETAILS,
            field="payment",
        )
    return order.payment


class PaymentExecutor:
    """Pays an order over Lightning or onchain through the node.

    Both rail branches are launched together and joined; the branch that was
    not selected completes immediately without touching the node, so exactly
    one of them moves funds.
    """

    def __init__(self, node: LNDClientProtocol, constants: ProtocolConstants):
        """Initialize the executor.

        Args:
            node: Authenticated node capability
            constants: Protocol constants (onchain confirmation target)
        """
        self.node = node
        self.constants = constants

    async def pay_lightning(self, order: ProposedOrder) -> LightningPaymentResult:
        """Pay the order's invoice as-is; the invoice carries the amount."""
        payment = _payment_terms(order)
        return await self.node.pay_payment_request(payment.lightning_invoice)

    async def pay_onchain(self, order: ProposedOrder) -> OnchainPaymentResult:
        """Send exactly the order total to the order's onchain address.

        Returns once the transaction is broadcast; confirmations are not awaited.
        """
        payment = _payment_terms(order)
        if not payment.onchain_address:
            raise ValidationError(
                "Order has no onchain address to pay",
                code=ErrorCode.UNSUPPORTED_PAYMENT_RAIL,
                field="payment.onchain_address",
            )
        return await self.node.send_to_chain_address(
            address=payment.onchain_address,
            amount_sat=payment.order_total,
            target_confirmations=self.constants.target_confirmations_onchain,
        )

    async def _lightning_branch(
        self, rail: PaymentRail, order: ProposedOrder
    ) -> LightningPaymentResult | None:
        if rail is not PaymentRail.LIGHTNING:
            return None
        return await self.pay_lightning(order)

    async def _onchain_branch(
        self, rail: PaymentRail, order: ProposedOrder
    ) -> OnchainPaymentResult | None:
        if rail is not PaymentRail.ONCHAIN:
            return None
        return await self.pay_onchain(order)

    async def execute(self, rail: PaymentRail, order: ProposedOrder) -> PaymentOutcome:
        """Pay ``order`` on ``rail``.

        Raises:
            PaymentFailedError: If the payment fails. Never retried here.
        """
        logger.info("payment_started", order_id=order.order_id, rail=rail.value)

        try:
            lightning, onchain = await asyncio.gather(
                self._lightning_branch(rail, order),
                self._onchain_branch(rail, order),
            )
        except Exception as e:
            logger.error(
                "payment_failed",
                order_id=order.order_id,
                rail=rail.value,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise PaymentFailedError(
                f"Payment over {rail.value} failed: {e}",
                rail=rail.value,
                order_id=order.order_id,
                original_error=e,
            ) from e

        settlement = lightning if lightning is not None else onchain
        if settlement is None:
            raise PaymentFailedError(
                f"No payment was made over {rail.value}", rail=rail.value, order_id=order.order_id
            )
        return PaymentOutcome(rail=rail, settlement=settlement)
