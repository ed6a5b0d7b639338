"""Tests for paying an order on the selected rail."""

import pytest

from openlsp.exceptions import ErrorCode, PaymentFailedError, ValidationError
from openlsp.lsp.application.services.payment_executor import PaymentExecutor
from openlsp.lsp.domain.enums import PaymentRail
from openlsp.lsp.domain.models import ProposedOrder
from openlsp.lsp.domain.value_objects import (
    LightningPaymentResult,
    OnchainPaymentResult,
    ProtocolConstants,
)
from openlsp.lsp.infrastructure.lnd_client import LNDConnectionError, LNDPaymentError

pytestmark = pytest.mark.unit


class TestPaymentExecutor:
    """Exactly one rail moves funds per execution."""

    @pytest.mark.asyncio
    async def test_lightning_pays_invoice(self, mock_lnd_client, make_order, constants):
        order = make_order()

        outcome = await PaymentExecutor(mock_lnd_client, constants).execute(
            PaymentRail.LIGHTNING, order
        )

        assert outcome.rail is PaymentRail.LIGHTNING
        assert isinstance(outcome.settlement, LightningPaymentResult)
        assert mock_lnd_client.paid == [order.payment.lightning_invoice]
        assert mock_lnd_client.sent == []

    @pytest.mark.asyncio
    async def test_onchain_sends_order_total(
        self, mock_lnd_client, make_order, onchain_address
    ):
        order = make_order(payment={"onchain_address": onchain_address})
        constants = ProtocolConstants(target_confirmations_onchain=3)
        executor = PaymentExecutor(mock_lnd_client, constants)

        outcome = await executor.execute(PaymentRail.ONCHAIN, order)

        assert outcome.rail is PaymentRail.ONCHAIN
        assert isinstance(outcome.settlement, OnchainPaymentResult)
        assert mock_lnd_client.sent == [
            {"address": onchain_address, "amount_sat": 5000, "target_confirmations": 3}
        ]
        assert mock_lnd_client.paid == []

    @pytest.mark.asyncio
    async def test_outcome_hides_preimage(self, mock_lnd_client, make_order, constants):
        outcome = await PaymentExecutor(mock_lnd_client, constants).execute(
            PaymentRail.LIGHTNING, make_order()
        )

        data = outcome.to_dict()
        assert data["rail"] == "lightning"
        assert "preimage" not in data["settlement"]

    @pytest.mark.asyncio
    async def test_lightning_failure(self, mock_lnd_client, make_order, constants):
        mock_lnd_client.pay_error = LNDPaymentError("no route")

        with pytest.raises(PaymentFailedError) as exc_info:
            await PaymentExecutor(mock_lnd_client, constants).execute(
                PaymentRail.LIGHTNING, make_order()
            )

        error = exc_info.value
        assert error.context == {"rail": "lightning", "order_id": "order-1"}
        assert isinstance(error.original_error, LNDPaymentError)

    @pytest.mark.asyncio
    async def test_onchain_failure_is_not_retried(
        self, mock_lnd_client, make_order, constants, onchain_address
    ):
        calls = 0

        async def flaky_send(address, amount_sat, target_confirmations):
            nonlocal calls
            calls += 1
            raise LNDConnectionError("connection reset")

        mock_lnd_client.send_to_chain_address = flaky_send

        with pytest.raises(PaymentFailedError):
            await PaymentExecutor(mock_lnd_client, constants).execute(
                PaymentRail.ONCHAIN, make_order(payment={"onchain_address": onchain_address})
            )

        assert calls == 1

    @pytest.mark.asyncio
    async def test_onchain_without_address_sends_nothing(
        self, mock_lnd_client, make_order, constants
    ):
        order = make_order(payment={"onchain_address": None})

        with pytest.raises(ValidationError) as exc_info:
            await PaymentExecutor(mock_lnd_client, constants).pay_onchain(order)

        assert exc_info.value.code == ErrorCode.UNSUPPORTED_PAYMENT_RAIL
        assert mock_lnd_client.sent == []

    @pytest.mark.asyncio
    async def test_order_without_payment_terms_is_not_paid(
        self, mock_lnd_client, order_payload, constants
    ):
        payload = order_payload()
        payload["payment"] = None
        order = ProposedOrder.from_wire(payload)

        with pytest.raises(PaymentFailedError) as exc_info:
            await PaymentExecutor(mock_lnd_client, constants).execute(PaymentRail.LIGHTNING, order)

        assert isinstance(exc_info.value.original_error, ValidationError)
        assert exc_info.value.original_error.code == ErrorCode.EXPECTED_PAYMENT_DETAILS
        assert mock_lnd_client.paid == []
