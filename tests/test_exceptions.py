"""Tests for the exception hierarchy."""

import pytest

from openlsp.exceptions import (
    ConfigurationError,
    ErrorCode,
    IntegrationError,
    InvalidPaymentRequestError,
    OpenLSPError,
    PaymentFailedError,
    PurchaseCancelledError,
    PurchaseError,
    ValidationError,
)

pytestmark = pytest.mark.unit


class TestOpenLSPError:
    def test_str_includes_context_and_cause(self):
        cause = RuntimeError("boom")
        error = OpenLSPError("Something failed", context={"order_id": "o1"}, original_error=cause)

        assert str(error) == "Something failed (order_id=o1) [caused by: RuntimeError]"
        assert error.original_error is cause

    def test_repr(self):
        assert repr(OpenLSPError("x")) == "OpenLSPError(message='x', context={})"


class TestValidationError:
    def test_code_and_field_in_context(self):
        error = ValidationError(
            "bad", code=ErrorCode.LSP_BALANCE_MISMATCH, field="lsp_balance_sat", value=1
        )

        assert error.code is ErrorCode.LSP_BALANCE_MISMATCH
        assert error.context == {
            "code": "ExpectedCapacityToMatchLspBalance",
            "field": "lsp_balance_sat",
            "value": "1",
        }
        assert error.kind == "validation_error"

    def test_long_values_are_truncated(self):
        error = ValidationError("bad", code=ErrorCode.EXPECTED_PUBKEY, value="x" * 500)

        assert len(error.context["value"]) == 100

    def test_invalid_payment_request_has_fixed_code(self):
        error = InvalidPaymentRequestError("undecodable")

        assert error.code is ErrorCode.INVALID_PAYMENT_REQUEST
        assert isinstance(error, ValidationError)
        assert error.kind == "invalid_payment_request"

    def test_mismatch_codes_keep_stable_names(self):
        assert (
            ErrorCode.FEE_ORDER_TOTAL_MISMATCH.value
            == "ExpectedMatchingFeeAndOrderTotalSatToBuyChannel"
        )
        assert (
            ErrorCode.PAYMENT_REQUEST_AMOUNT_MISMATCH.value
            == "ExpectedMatchingTokensInPaymentRequest"
        )


class TestPurchaseErrors:
    def test_kinds(self):
        assert PurchaseCancelledError("no").kind == "purchase_cancelled"
        assert PaymentFailedError("no").kind == "payment_failed"
        assert IntegrationError("no").kind == "integration_error"
        assert issubclass(PaymentFailedError, PurchaseError)

    def test_payment_failed_context(self):
        error = PaymentFailedError("failed", rail="onchain", order_id="o1")

        assert error.context == {"rail": "onchain", "order_id": "o1"}

    def test_configuration_error_context(self):
        error = ConfigurationError("bad url", setting="lnd_rest_url", expected="https://...")

        assert error.context == {"setting": "lnd_rest_url", "expected": "https://..."}
