"""Channel purchase orchestration.

One call to ``ChannelPurchaseService.execute`` is one purchase attempt:
validate the proposed order, ask the operator to confirm, choose the payment
rail and pay. Each step runs only if the previous one succeeded, and the first
failure ends the attempt. Nothing is retried.
"""

from typing import cast

from ....exceptions import PurchaseCancelledError, PurchaseError
from ....utils.logging import get_logger, set_correlation_id
from ...domain.enums import PurchaseState
from ...domain.models import PaymentTerms, ProposedOrder, PurchaseRequest
from ...domain.value_objects import PaymentOutcome, ProtocolConstants
from ...infrastructure.prompts import PromptSpec
from .order_validator import validate_purchase
from .payment_executor import PaymentExecutor
from .rail_selector import PaymentRailSelector

logger = get_logger(__name__)

CONFIRM_PROMPT = PromptSpec(
    name="confirm",
    message="Do you want to buy the channel?",
    type="confirm",
    default=True,
)


class ChannelPurchaseService:
    """Runs channel purchase attempts against proposed LSP orders.

    ``state`` and ``history`` describe the current or most recent attempt, so
    one instance runs one attempt at a time; starting a second attempt while
    one is in flight raises ``PurchaseError``.
    """

    def __init__(self, constants: ProtocolConstants):
        """Initialize the purchase service.

        Args:
            constants: Protocol constants orders are validated and paid against
        """
        self.constants = constants
        self.state = PurchaseState.IDLE
        self.history: list[PurchaseState] = [PurchaseState.IDLE]

    def _transition(self, state: PurchaseState) -> None:
        logger.debug("purchase_state_changed", from_state=self.state.value, to_state=state.value)
        self.state = state
        self.history.append(state)

    async def execute(self, request: PurchaseRequest) -> PaymentOutcome:
        """Run one purchase attempt.

        Returns:
            The rail used and its settlement result.

        Raises:
            ValidationError: The request or order is inconsistent. Nothing was paid.
            PurchaseCancelledError: The operator declined. Nothing was paid.
            PaymentFailedError: Paying on the selected rail failed.
        """
        if self.state is not PurchaseState.IDLE and not self.state.is_terminal:
            raise PurchaseError(
                "A purchase attempt is already in progress", context={"state": self.state.value}
            )

        set_correlation_id()
        self.state = PurchaseState.IDLE
        self.history = [PurchaseState.IDLE]

        try:
            self._transition(PurchaseState.VALIDATING)
            await validate_purchase(request, self.constants)

            # Validation guarantees an order with payment terms
            order = cast(ProposedOrder, request.order)
            payment = cast(PaymentTerms, order.payment)
            request.logger.info(
                "channel_order_proposed",
                order_id=order.order_id,
                channel_size=order.lsp_balance,
                confirms_within_blocks=order.confirms_within_blocks,
                expiry_blocks=order.channel_expiry_blocks,
                is_private=request.is_private,
                fees=payment.order_total,
            )

            self._transition(PurchaseState.AWAITING_CONFIRMATION)
            confirm = await request.ask(CONFIRM_PROMPT)
            if not confirm:
                raise PurchaseCancelledError(
                    "Channel purchase cancelled", context={"order_id": order.order_id}
                )

            self._transition(PurchaseState.SELECTING_RAIL)
            rail = await PaymentRailSelector(request.ask).select(order)

            self._transition(PurchaseState.PAYING)
            outcome = await PaymentExecutor(request.node, self.constants).execute(rail, order)

        except PurchaseCancelledError:
            self._transition(PurchaseState.CANCELLED)
            raise
        except Exception:
            self._transition(PurchaseState.FAILED)
            raise

        request.logger.info("payment_sent", payment_sent=True, rail=outcome.rail.value)
        self._transition(PurchaseState.COMPLETED)
        return outcome
