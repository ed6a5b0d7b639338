"""Lightning Network Daemon (LND) REST client.

Talks to LND's REST gateway with macaroon authentication and the node's TLS
certificate. Read-only calls are retried behind a circuit breaker; calls that
move funds are attempted exactly once.
"""

import asyncio
import base64
import ssl
import time
from dataclasses import replace
from datetime import UTC, datetime
from pathlib import Path
from typing import Any
from urllib.parse import quote

import httpx

from ...exceptions import IntegrationError
from ...utils.logging import get_logger
from ...utils.retry import NODE_READ_RETRY, retry_async
from ..domain.value_objects import (
    ChannelInfo,
    ClosedChannelInfo,
    DecodedPaymentRequest,
    ForwardInfo,
    LightningPaymentResult,
    NodeInfo,
    OnchainPaymentResult,
    PendingChannelInfo,
)

logger = get_logger(__name__)


class LNDClientError(IntegrationError):
    """Base exception for LND client errors."""


class LNDConnectionError(LNDClientError):
    """Exception raised when LND cannot be reached."""


class LNDPaymentError(LNDClientError):
    """Exception raised when LND reports a failed payment."""


class LNDClientProtocol:
    """Protocol defining the node capability the purchase flow uses."""

    async def decode_payment_request(self, payment_request: str) -> DecodedPaymentRequest:
        """Decode a BOLT-11 invoice."""
        raise NotImplementedError("Subclasses must implement decode_payment_request")

    async def pay_payment_request(self, payment_request: str) -> LightningPaymentResult:
        """Pay a BOLT-11 invoice."""
        raise NotImplementedError("Subclasses must implement pay_payment_request")

    async def send_to_chain_address(
        self, address: str, amount_sat: int, target_confirmations: int
    ) -> OnchainPaymentResult:
        """Send funds from the node's wallet to an onchain address."""
        raise NotImplementedError("Subclasses must implement send_to_chain_address")

    async def get_wallet_info(self) -> NodeInfo:
        """Get information about this node."""
        raise NotImplementedError("Subclasses must implement get_wallet_info")

    async def get_channels(self) -> list[ChannelInfo]:
        """List open channels."""
        raise NotImplementedError("Subclasses must implement get_channels")

    async def get_closed_channels(self) -> list[ClosedChannelInfo]:
        """List closed channels."""
        raise NotImplementedError("Subclasses must implement get_closed_channels")

    async def get_pending_channels(self) -> list[PendingChannelInfo]:
        """List channels that are opening or closing."""
        raise NotImplementedError("Subclasses must implement get_pending_channels")

    async def get_forwards(
        self, after: datetime, before: datetime, limit: int
    ) -> list[ForwardInfo]:
        """List forwarded payments in a time window."""
        raise NotImplementedError("Subclasses must implement get_forwards")

    async def get_node_alias(self, pubkey: str) -> str:
        """Look up a node's alias in the channel graph."""
        raise NotImplementedError("Subclasses must implement get_node_alias")

    async def close(self) -> None:
        """Close the client connection."""
        raise NotImplementedError("Subclasses must implement close")


def _b64_to_hex(value: str | None) -> str:
    if not value:
        return ""
    return base64.b64decode(value).hex()


def _int(value: Any) -> int:
    # LND's REST gateway encodes 64-bit integers as strings
    return int(value or 0)


class ProductionLNDClient(LNDClientProtocol):
    """LND REST client with macaroon authentication, retries and a circuit breaker."""

    def __init__(
        self,
        rest_url: str = "https://localhost:8080",
        cert_path: Path | None = None,
        macaroon_path: Path | None = None,
        timeout_seconds: int = 30,
        max_retries: int = 3,
        circuit_breaker_failures: int = 5,
        circuit_breaker_timeout: int = 300,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.rest_url = rest_url.rstrip("/")
        self.cert_path = cert_path
        self.macaroon_path = macaroon_path
        self.timeout_seconds = timeout_seconds
        self.retry_config = replace(
            NODE_READ_RETRY,
            max_retries=max_retries,
            retryable_exceptions=(LNDConnectionError,),
        )

        # Circuit breaker state
        self.circuit_failures = 0
        self.circuit_max_failures = circuit_breaker_failures
        self.circuit_timeout = circuit_breaker_timeout
        self.circuit_last_failure = 0.0

        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings) -> "ProductionLNDClient":
        return cls(
            rest_url=settings.lnd_rest_url,
            cert_path=settings.lnd_tls_cert_path,
            macaroon_path=settings.lnd_macaroon_path,
            timeout_seconds=settings.lnd_timeout_seconds,
            max_retries=settings.lnd_max_retries,
            circuit_breaker_failures=settings.lnd_circuit_breaker_failures,
            circuit_breaker_timeout=settings.lnd_circuit_breaker_timeout_seconds,
        )

    async def _ensure_connected(self) -> httpx.AsyncClient:
        async with self._lock:
            if self._client is None:
                self._client = self._connect()
            return self._client

    def _connect(self) -> httpx.AsyncClient:
        headers = {"Accept": "application/json"}
        try:
            if self.macaroon_path:
                headers["Grpc-Metadata-macaroon"] = self.macaroon_path.read_bytes().hex()

            verify: ssl.SSLContext | bool = True
            if self.cert_path:
                verify = ssl.create_default_context(cafile=str(self.cert_path))
        except OSError as e:
            raise LNDConnectionError(
                f"Failed to load LND credentials: {e}", original_error=e
            ) from e

        return httpx.AsyncClient(
            base_url=self.rest_url,
            headers=headers,
            verify=verify,
            timeout=httpx.Timeout(self.timeout_seconds, connect=5.0),
            transport=self._transport,
        )

    def _is_circuit_open(self) -> bool:
        if self.circuit_failures < self.circuit_max_failures:
            return False

        if time.time() - self.circuit_last_failure >= self.circuit_timeout:
            # Half-open: allow one attempt
            self.circuit_failures = self.circuit_max_failures - 1
            return False

        return True

    def _record_failure(self) -> None:
        self.circuit_failures += 1
        self.circuit_last_failure = time.time()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        if self._is_circuit_open():
            raise LNDConnectionError("Circuit breaker is open - too many failures")

        client = await self._ensure_connected()
        try:
            response = await client.request(method, path, json=json, params=params)
        except httpx.TransportError as e:
            self._record_failure()
            logger.warning("lnd_request_failed", method=method, path=path, error=str(e))
            raise LNDConnectionError(f"Failed to reach LND: {e}", original_error=e) from e

        if response.is_error:
            try:
                message = response.json().get("message", response.text)
            except ValueError:
                message = response.text
            logger.warning(
                "lnd_request_rejected",
                method=method,
                path=path,
                status_code=response.status_code,
                error=message,
            )
            raise LNDClientError(
                f"LND rejected {method} {path}: {message}",
                context={"status_code": response.status_code},
            )

        self.circuit_failures = 0
        return response.json()

    async def _read(self, path: str, **kwargs: Any) -> dict[str, Any]:
        method = kwargs.pop("method", "GET")
        return await retry_async(
            lambda: self._request(method, path, **kwargs),
            config=self.retry_config,
            operation=f"{method} {path}",
        )

    async def decode_payment_request(self, payment_request: str) -> DecodedPaymentRequest:
        # The invoice is untrusted; escape it so the node decodes exactly this string
        data = await self._read(f"/v1/payreq/{quote(payment_request, safe='')}")

        num_msat = _int(data.get("num_msat"))
        timestamp = _int(data.get("timestamp"))
        return DecodedPaymentRequest(
            payment_request=payment_request,
            payment_hash=data.get("payment_hash", ""),
            destination=data.get("destination", ""),
            amount_msat=num_msat or None,
            description=data.get("description", ""),
            created_at=datetime.fromtimestamp(timestamp, UTC) if timestamp else None,
            expiry_seconds=_int(data.get("expiry")) or None,
        )

    async def pay_payment_request(self, payment_request: str) -> LightningPaymentResult:
        data = await self._request(
            "POST", "/v1/channels/transactions", json={"payment_request": payment_request}
        )

        if data.get("payment_error"):
            raise LNDPaymentError(
                f"Payment failed: {data['payment_error']}",
                context={"payment_error": data["payment_error"]},
            )

        route = data.get("payment_route") or {}
        total_fees = _int(route.get("total_fees"))
        return LightningPaymentResult(
            payment_hash=_b64_to_hex(data.get("payment_hash")),
            preimage=_b64_to_hex(data.get("payment_preimage")),
            amount_sat=_int(route.get("total_amt")) - total_fees,
            fee_sat=total_fees,
        )

    async def send_to_chain_address(
        self, address: str, amount_sat: int, target_confirmations: int
    ) -> OnchainPaymentResult:
        data = await self._request(
            "POST",
            "/v1/transactions",
            json={"addr": address, "amount": str(amount_sat), "target_conf": target_confirmations},
        )

        return OnchainPaymentResult(txid=data["txid"], address=address, amount_sat=amount_sat)

    async def get_wallet_info(self) -> NodeInfo:
        data = await self._read("/v1/getinfo")
        return NodeInfo(
            pubkey=data.get("identity_pubkey", ""),
            alias=data.get("alias", ""),
            block_height=_int(data.get("block_height")),
            synced_to_chain=bool(data.get("synced_to_chain", False)),
        )

    async def get_channels(self) -> list[ChannelInfo]:
        data = await self._read("/v1/channels")
        return [
            ChannelInfo(
                channel_id=ch["chan_id"],
                peer_pubkey=ch["remote_pubkey"],
                capacity_sat=_int(ch.get("capacity")),
                local_balance_sat=_int(ch.get("local_balance")),
                remote_balance_sat=_int(ch.get("remote_balance")),
                is_active=bool(ch.get("active", False)),
            )
            for ch in data.get("channels", [])
        ]

    async def get_closed_channels(self) -> list[ClosedChannelInfo]:
        data = await self._read("/v1/channels/closed")
        return [
            ClosedChannelInfo(
                channel_id=ch.get("chan_id", ""),
                peer_pubkey=ch["remote_pubkey"],
                close_confirm_height=_int(ch.get("close_height")),
            )
            for ch in data.get("channels", [])
        ]

    async def get_pending_channels(self) -> list[PendingChannelInfo]:
        data = await self._read("/v1/channels/pending")

        def _pending(entry: dict[str, Any], is_opening: bool) -> PendingChannelInfo:
            ch = entry.get("channel", {})
            return PendingChannelInfo(
                peer_pubkey=ch.get("remote_node_pub", ""),
                capacity_sat=_int(ch.get("capacity")),
                local_balance_sat=_int(ch.get("local_balance")),
                remote_balance_sat=_int(ch.get("remote_balance")),
                is_opening=is_opening,
            )

        closing = data.get("waiting_close_channels", []) + data.get(
            "pending_force_closing_channels", []
        )
        return [_pending(e, True) for e in data.get("pending_open_channels", [])] + [
            _pending(e, False) for e in closing
        ]

    async def get_forwards(
        self, after: datetime, before: datetime, limit: int
    ) -> list[ForwardInfo]:
        data = await self._read(
            "/v1/switch",
            method="POST",
            json={
                "start_time": str(int(after.timestamp())),
                "end_time": str(int(before.timestamp())),
                "num_max_events": limit,
            },
        )
        return [
            ForwardInfo(
                created_at=datetime.fromtimestamp(_int(ev.get("timestamp")), UTC),
                incoming_channel=ev["chan_id_in"],
                outgoing_channel=ev["chan_id_out"],
                fee_sat=_int(ev.get("fee")),
                tokens_sat=_int(ev.get("amt_out")),
            )
            for ev in data.get("forwarding_events", [])
        ]

    async def get_node_alias(self, pubkey: str) -> str:
        data = await self._read(f"/v1/graph/node/{pubkey}", params={"include_channels": "false"})
        return data.get("node", {}).get("alias", "")

    async def close(self) -> None:
        async with self._lock:
            if self._client is not None:
                await self._client.aclose()
                self._client = None


# Alias for easier importing
LNDClient = ProductionLNDClient
