"""Application services for LSP channel purchases."""

from .forwarding_service import ForwardingReportService
from .order_validator import (
    validate_invoice_amount,
    validate_order_terms,
    validate_purchase,
    validate_purchase_request,
)
from .payment_executor import PaymentExecutor
from .purchase_service import ChannelPurchaseService
from .rail_selector import PaymentRailSelector

__all__ = [
    # Purchase flow
    "ChannelPurchaseService",
    "PaymentRailSelector",
    "PaymentExecutor",
    "validate_purchase",
    "validate_purchase_request",
    "validate_order_terms",
    "validate_invoice_amount",
    # Reporting
    "ForwardingReportService",
]
