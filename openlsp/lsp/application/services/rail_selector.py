"""Choice between paying an order over Lightning or onchain."""

from ....exceptions import ErrorCode, PurchaseCancelledError, ValidationError
from ...domain.enums import PaymentRail
from ...domain.models import ProposedOrder
from ...infrastructure.prompts import Prompt, PromptSpec

RAIL_PROMPT = PromptSpec(
    name="payment_type",
    message="Do you want to pay with onchain or lightning funds?",
    type="list",
    choices=(PaymentRail.LIGHTNING.value, PaymentRail.ONCHAIN.value),
)


class PaymentRailSelector:
    """Picks the payment rail, asking the operator only when both are offered."""

    def __init__(self, prompt: Prompt):
        self.prompt = prompt

    async def select(self, order: ProposedOrder) -> PaymentRail:
        """Return the rail to pay ``order`` with.

        Orders without an onchain address are always paid over Lightning.
        Otherwise the operator's choice is used as given; there is no default
        and no timeout.

        Raises:
            PurchaseCancelledError: If the prompt is aborted without an answer.
            ValidationError: If the answer is not a known rail.
        """
        if order.payment is None or not order.payment.offers_onchain:
            return PaymentRail.LIGHTNING

        answer = await self.prompt(RAIL_PROMPT)

        if answer is None:
            raise PurchaseCancelledError(
                "Payment rail selection aborted", context={"order_id": order.order_id}
            )

        try:
            return PaymentRail(answer)
        except ValueError as e:
            raise ValidationError(
                f"Unsupported payment rail: {answer!r}",
                code=ErrorCode.UNSUPPORTED_PAYMENT_RAIL,
                field="payment_type",
                value=answer,
            ) from e
