"""Shared test fixtures for LSP purchase tests."""

import hashlib
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import pytest

from openlsp.lsp.domain.models import ProposedOrder, PurchaseRequest
from openlsp.lsp.domain.value_objects import (
    ChannelInfo,
    ClosedChannelInfo,
    DecodedPaymentRequest,
    ForwardInfo,
    LightningPaymentResult,
    NodeInfo,
    OnchainPaymentResult,
    PendingChannelInfo,
    ProtocolConstants,
)
from openlsp.lsp.infrastructure.lnd_client import LNDClientError, LNDClientProtocol
from openlsp.lsp.infrastructure.prompts import CannedPrompt

# Valid compressed pubkey (66 hex chars, must start with 02 or 03)
LSP_PUBKEY = "03e7156ae33b0a208d0744199163177e909e80176e55d97a2f221ede0f934dd9ad"
INVOICE = "lnbc50u1pjtestinvoicexyz"
ONCHAIN_ADDRESS = "bc1qxy2kgdygjrsqtzq2n0yrf2493p83kkfjhx0wlh"


class MockLNDClient(LNDClientProtocol):
    """Mock LND client for testing.

    Records every funds-moving call so tests can assert that nothing was paid.
    """

    def __init__(self, invoice_amount_msat: int | None = 5_000_000):
        """Initialize mock LND client.

        Args:
            invoice_amount_msat: Amount every decoded invoice asks for
        """
        self.invoice_amount_msat = invoice_amount_msat
        self.decode_error: Exception | None = None
        self.pay_error: Exception | None = None
        self.send_error: Exception | None = None

        self.decoded: list[str] = []
        self.paid: list[str] = []
        self.sent: list[dict[str, Any]] = []
        self.closed = False

        self.node_info = NodeInfo(
            pubkey="02" + "11" * 32,
            alias="MockTestNode",
            block_height=800_000,
            synced_to_chain=True,
        )
        self.channels: list[ChannelInfo] = []
        self.closed_channels: list[ClosedChannelInfo] = []
        self.pending_channels: list[PendingChannelInfo] = []
        self.forwards: list[ForwardInfo] = []
        self.aliases: dict[str, str] = {}
        self.forward_queries: list[dict[str, Any]] = []

    async def decode_payment_request(self, payment_request: str) -> DecodedPaymentRequest:
        self.decoded.append(payment_request)
        if self.decode_error:
            raise self.decode_error
        return DecodedPaymentRequest(
            payment_request=payment_request,
            payment_hash=hashlib.sha256(payment_request.encode()).hexdigest(),
            destination=LSP_PUBKEY,
            amount_msat=self.invoice_amount_msat,
        )

    async def pay_payment_request(self, payment_request: str) -> LightningPaymentResult:
        if self.pay_error:
            raise self.pay_error
        self.paid.append(payment_request)
        return LightningPaymentResult(
            payment_hash=hashlib.sha256(payment_request.encode()).hexdigest(),
            preimage="ab" * 32,
            amount_sat=(self.invoice_amount_msat or 0) // 1000,
            fee_sat=1,
        )

    async def send_to_chain_address(
        self, address: str, amount_sat: int, target_confirmations: int
    ) -> OnchainPaymentResult:
        if self.send_error:
            raise self.send_error
        self.sent.append(
            {
                "address": address,
                "amount_sat": amount_sat,
                "target_confirmations": target_confirmations,
            }
        )
        return OnchainPaymentResult(txid="f" * 64, address=address, amount_sat=amount_sat)

    async def get_wallet_info(self) -> NodeInfo:
        return self.node_info

    async def get_channels(self) -> list[ChannelInfo]:
        return self.channels

    async def get_closed_channels(self) -> list[ClosedChannelInfo]:
        return self.closed_channels

    async def get_pending_channels(self) -> list[PendingChannelInfo]:
        return self.pending_channels

    async def get_forwards(
        self, after: datetime, before: datetime, limit: int
    ) -> list[ForwardInfo]:
        self.forward_queries.append({"after": after, "before": before, "limit": limit})
        return self.forwards

    async def get_node_alias(self, pubkey: str) -> str:
        if pubkey not in self.aliases:
            raise LNDClientError("unable to find node")
        return self.aliases[pubkey]

    async def close(self) -> None:
        self.closed = True


class CapturedLogger:
    """Logger double recording ``(level, event, fields)`` tuples."""

    def __init__(self):
        self.records: list[tuple[str, str, dict[str, Any]]] = []

    def _log(self, level: str, event: str, **fields: Any) -> None:
        self.records.append((level, event, fields))

    def debug(self, event: str, **fields: Any) -> None:
        self._log("debug", event, **fields)

    def info(self, event: str, **fields: Any) -> None:
        self._log("info", event, **fields)

    def warning(self, event: str, **fields: Any) -> None:
        self._log("warning", event, **fields)

    def error(self, event: str, **fields: Any) -> None:
        self._log("error", event, **fields)

    def events(self) -> list[str]:
        return [event for _, event, _ in self.records]

    def find(self, event: str) -> dict[str, Any]:
        for _, name, fields in self.records:
            if name == event:
                return fields
        raise AssertionError(f"{event} was not logged; got {self.events()}")


def build_order_payload(**overrides: Any) -> dict[str, Any]:
    """A consistent proposed order for a 1,000,000 sat, priority 6, public channel."""
    payment = {
        "fee_total_sat": "5000",
        "order_total_sat": "5000",
        "state": "expect_payment",
        "lightning_invoice": INVOICE,
        "onchain_address": None,
    }
    payment.update(overrides.pop("payment", {}))

    payload: dict[str, Any] = {
        "order_id": "order-1",
        "lsp_balance_sat": "1000000",
        "client_balance_sat": "0",
        "confirms_within_blocks": 6,
        "channel_expiry_blocks": 12960,
        "announce_channel": True,
        "order_state": "created",
        "payment": payment,
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def mock_lnd_client() -> MockLNDClient:
    """Mock LND client instance."""
    return MockLNDClient()


@pytest.fixture
def captured_logger() -> CapturedLogger:
    return CapturedLogger()


@pytest.fixture
def confirming_prompt() -> CannedPrompt:
    """Prompt that confirms the purchase and picks Lightning when asked."""
    return CannedPrompt({"confirm": True, "payment_type": "lightning"})


@pytest.fixture
def constants() -> ProtocolConstants:
    return ProtocolConstants()


@pytest.fixture
def make_order() -> Callable[..., ProposedOrder]:
    """Factory for proposed orders with field overrides."""

    def _make(**overrides: Any) -> ProposedOrder:
        return ProposedOrder.from_wire(build_order_payload(**overrides))

    return _make


@pytest.fixture
def make_request(
    mock_lnd_client, captured_logger, confirming_prompt, make_order
) -> Callable[..., PurchaseRequest]:
    """Factory for purchase requests matching ``build_order_payload`` by default."""

    def _make(**overrides: Any) -> PurchaseRequest:
        fields: dict[str, Any] = {
            "capacity_sat": 1_000_000,
            "priority": 6,
            "announce_channel": True,
            "pubkey": LSP_PUBKEY,
            "ask": confirming_prompt,
            "logger": captured_logger,
            "node": mock_lnd_client,
        }
        if "order" not in overrides:
            fields["order"] = make_order()
        fields.update(overrides)
        return PurchaseRequest(**fields)

    return _make


@pytest.fixture
def forward_time() -> datetime:
    return datetime(2026, 10, 17, 12, 0, tzinfo=UTC)


@pytest.fixture
def order_payload() -> Callable[..., dict[str, Any]]:
    """Factory for raw order messages as the LSP sends them."""
    return build_order_payload


@pytest.fixture
def lsp_pubkey() -> str:
    return LSP_PUBKEY


@pytest.fixture
def onchain_address() -> str:
    return ONCHAIN_ADDRESS
