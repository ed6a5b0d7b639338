"""Exception hierarchy for OpenLSP.

Every error raised by the purchase flow carries a machine-readable ``kind``,
a human-readable message, structured context for logging and, where one
exists, the wrapped underlying cause.

Usage:
    from openlsp.exceptions import ErrorCode, ValidationError

    try:
        await validate_purchase(request, constants)
    except ValidationError as e:
        logger.error("order_rejected", code=e.code.value, context=e.context)
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Named validation failures.

    Values are stable identifiers meant for logs and scripting.
    """

    # Purchase request shape
    EXPECTED_ANNOUNCE_CHANNEL = "ExpectedAnnounceChannelToBuyChannel"
    EXPECTED_ASK = "ExpectedAskFunctionToBuyChannel"
    EXPECTED_NODE = "ExpectedAuthenticatedLndToBuyChannel"
    EXPECTED_LOGGER = "ExpectedLoggerToBuyChannel"
    EXPECTED_ORDER = "ExpectedOrderToBuyChannel"
    EXPECTED_PRIORITY = "ExpectedPriorityToBuyChannel"
    EXPECTED_PUBKEY = "ExpectedPubkeyToBuyChannel"
    EXPECTED_CAPACITY = "ExpectedCapacityToBuyChannel"
    EXPECTED_RAIL_HINT = "ExpectedRailHintToBuyChannel"

    # Proposed order shape
    MALFORMED_ORDER = "ExpectedWellFormedOrderToBuyChannel"
    EXPECTED_ORDER_ID = "ExpectedOrderIdToBuyChannel"
    EXPECTED_PAYMENT_DETAILS = "ExpectedPaymentDetailsToBuyChannel"
    EXPECTED_FEE_TOTAL = "ExpectedFeeTotalSatToBuyChannel"
    EXPECTED_ORDER_TOTAL = "ExpectedOrderTotalSatToBuyChannel"
    INVALID_SAT_AMOUNT = "ExpectedIntegerSatAmountToBuyChannel"

    # Order invariants
    FEE_ORDER_TOTAL_MISMATCH = "ExpectedMatchingFeeAndOrderTotalSatToBuyChannel"
    LSP_BALANCE_MISMATCH = "ExpectedCapacityToMatchLspBalance"
    NONZERO_CLIENT_BALANCE = "ExpectedZeroClientBalanceToBuyChannel"
    CONFIRMS_WITHIN_BLOCKS_MISMATCH = "ExpectedPriorityToMatchConfirmsWithinBlocks"
    CHANNEL_EXPIRY_MISMATCH = "ExpectedMatchingChannelExpiryBlocksToBuyChannel"
    ANNOUNCE_CHANNEL_MISMATCH = "ExpectedMatchingAnnounceChannelToBuyChannel"
    ORDER_STATE_NOT_CREATED = "ExpectedOrderStateToBeCreatedToBuyChannel"
    PAYMENT_STATE_NOT_EXPECT_PAYMENT = "ExpectedExpectPaymentStateToBuyChannel"

    # Payment request
    INVALID_PAYMENT_REQUEST = "ExpectedValidPaymentRequestToBuyChannel"
    PAYMENT_REQUEST_AMOUNT_MISMATCH = "ExpectedMatchingTokensInPaymentRequest"

    # Rail selection
    UNSUPPORTED_PAYMENT_RAIL = "ExpectedKnownPaymentRailToBuyChannel"

    def __str__(self) -> str:
        return self.value


class OpenLSPError(Exception):
    """Base exception for all OpenLSP errors.

    Attributes:
        message: Human-readable error message
        context: Additional context for debugging (dict)
        original_error: Original exception if wrapped
    """

    kind = "error"

    def __init__(
        self,
        message: str,
        *,
        context: dict[str, Any] | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}
        self.original_error = original_error

    def __str__(self) -> str:
        base = self.message
        if self.context:
            ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base = f"{base} ({ctx_str})"
        if self.original_error:
            base = f"{base} [caused by: {type(self.original_error).__name__}]"
        return base

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message={self.message!r}, context={self.context!r})"


# =============================================================================
# Validation & Input Errors
# =============================================================================


class ValidationError(OpenLSPError):
    """Raised when a purchase request or proposed order fails a check.

    Always raised before any funds-moving call.
    """

    kind = "validation_error"

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode,
        field: str | None = None,
        value: Any = None,
        **kwargs: Any,
    ) -> None:
        """Initialize validation error.

        Args:
            message: Error description
            code: Named violation
            field: Name of the offending field
            value: The offending value (truncated in context)
            **kwargs: Additional context
        """
        context = kwargs.get("context", {})
        context["code"] = code.value
        if field:
            context["field"] = field
        if value is not None:
            context["value"] = str(value)[:100]
        kwargs["context"] = context
        super().__init__(message, **kwargs)
        self.code = code


class InvalidPaymentRequestError(ValidationError):
    """Raised when the order's Lightning invoice cannot be decoded."""

    kind = "invalid_payment_request"

    def __init__(self, message: str, **kwargs: Any) -> None:
        super().__init__(message, code=ErrorCode.INVALID_PAYMENT_REQUEST, **kwargs)


class ConfigurationError(OpenLSPError):
    """Raised when application configuration is invalid or missing."""

    kind = "configuration_error"

    def __init__(
        self,
        message: str,
        *,
        setting: str | None = None,
        expected: str | None = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.get("context", {})
        if setting:
            context["setting"] = setting
        if expected:
            context["expected"] = expected
        kwargs["context"] = context
        super().__init__(message, **kwargs)


# =============================================================================
# Purchase Errors
# =============================================================================


class PurchaseError(OpenLSPError):
    """Base class for purchase flow outcomes other than validation."""


class PurchaseCancelledError(PurchaseError):
    """Raised when the operator declines the order. No payment is made."""

    kind = "purchase_cancelled"


class PaymentFailedError(PurchaseError):
    """Raised when executing payment on the selected rail fails.

    The failure is never retried internally: the caller decides whether to
    start a new attempt against a fresh order.
    """

    kind = "payment_failed"

    def __init__(
        self,
        message: str,
        *,
        rail: str | None = None,
        order_id: str | None = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.get("context", {})
        if rail:
            context["rail"] = rail
        if order_id:
            context["order_id"] = order_id
        kwargs["context"] = context
        super().__init__(message, **kwargs)


# =============================================================================
# External Integration Errors
# =============================================================================


class IntegrationError(OpenLSPError):
    """Base class for external service integration errors."""

    kind = "integration_error"


__all__ = [
    "ErrorCode",
    "OpenLSPError",
    "ValidationError",
    "InvalidPaymentRequestError",
    "ConfigurationError",
    "PurchaseError",
    "PurchaseCancelledError",
    "PaymentFailedError",
    "IntegrationError",
]
