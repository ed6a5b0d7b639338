"""Per-peer forwarding activity report.

Aggregates the node's recent forwards, channels and closes into one record per
peer that routed payments, so an operator can see which peers earn fees and
where liquidity sits. Read-only.
"""

import asyncio
from datetime import UTC, datetime, timedelta

from ....utils.logging import LogPerformance, get_logger
from ...domain.value_objects import (
    ChannelInfo,
    ClosedChannelInfo,
    ForwardInfo,
    PeerForwardingStats,
    PendingChannelInfo,
    sats_to_btc,
)
from ...infrastructure.lnd_client import LNDClientError, LNDClientProtocol

logger = get_logger(__name__)

DEFAULT_FORWARDS_LIMIT = 99999


class ForwardingReportService:
    """Builds per-peer forwarding statistics from the node."""

    def __init__(
        self,
        lnd_client: LNDClientProtocol,
        default_days: int = 1,
        limit: int = DEFAULT_FORWARDS_LIMIT,
    ):
        """Initialize the report service.

        Args:
            lnd_client: Node client
            default_days: Window used when no ``days`` is given
            limit: Maximum number of forwards fetched
        """
        self.lnd_client = lnd_client
        self.default_days = default_days
        self.limit = limit

    async def get_peer_forwarding(self, days: int | None = None) -> list[PeerForwardingStats]:
        """Forwarding statistics for every peer that forwarded in the window.

        Args:
            days: Look-back window in days

        Returns:
            Peer statistics, least recently active first
        """
        days = days or self.default_days
        before = datetime.now(UTC)
        after = before - timedelta(days=days)

        with LogPerformance("forwarding_report", logger):
            channels, closed, forwards, wallet, pending = await asyncio.gather(
                self.lnd_client.get_channels(),
                self.lnd_client.get_closed_channels(),
                self.lnd_client.get_forwards(after=after, before=before, limit=self.limit),
                self.lnd_client.get_wallet_info(),
                self.lnd_client.get_pending_channels(),
            )

            peers = self._forwarding_peers(channels, forwards)
            aliases = await asyncio.gather(*(self._alias(pubkey) for pubkey in peers))

            stats = [
                self._peer_stats(
                    pubkey,
                    alias,
                    channels=channels,
                    closed=closed,
                    forwards=forwards,
                    pending=pending,
                    current_height=wallet.block_height,
                )
                for pubkey, alias in zip(peers, aliases, strict=True)
            ]

        return sorted(stats, key=lambda s: s.last_activity_at or datetime.min.replace(tzinfo=UTC))

    @staticmethod
    def _forwarding_peers(channels: list[ChannelInfo], forwards: list[ForwardInfo]) -> list[str]:
        """Peers whose channels carried a forward in either direction, without duplicates."""
        incoming = {f.incoming_channel for f in forwards}
        outgoing = {f.outgoing_channel for f in forwards}

        sending_from = [ch.peer_pubkey for ch in channels if ch.channel_id in incoming]
        sending_to = [ch.peer_pubkey for ch in channels if ch.channel_id in outgoing]

        return list(dict.fromkeys(sending_from + sending_to))

    async def _alias(self, pubkey: str) -> str:
        try:
            return await self.lnd_client.get_node_alias(pubkey)
        except LNDClientError as e:
            # Peers missing from the graph are still reported
            logger.warning("peer_alias_lookup_failed", public_key=pubkey, error=str(e))
            return ""

    @staticmethod
    def _peer_stats(
        pubkey: str,
        alias: str,
        *,
        channels: list[ChannelInfo],
        closed: list[ClosedChannelInfo],
        forwards: list[ForwardInfo],
        pending: list[PendingChannelInfo],
        current_height: int,
    ) -> PeerForwardingStats:
        peer_channels = {ch.channel_id: ch for ch in channels if ch.peer_pubkey == pubkey}

        outbound = [f for f in forwards if f.outgoing_channel in peer_channels]
        inbound = [f for f in forwards if f.incoming_channel in peer_channels]

        opening = [p for p in pending if p.is_opening and p.peer_pubkey == pubkey]
        local = sum(ch.local_balance_sat for ch in peer_channels.values()) + sum(
            p.local_balance_sat for p in opening
        )
        remote = sum(ch.remote_balance_sat for ch in peer_channels.values()) + sum(
            p.remote_balance_sat for p in opening
        )

        closes = [
            current_height - c.close_confirm_height for c in closed if c.peer_pubkey == pubkey
        ]

        return PeerForwardingStats(
            public_key=pubkey,
            alias=alias,
            earned_inbound_fees_sat=sum(f.fee_sat for f in inbound),
            earned_outbound_fees_sat=sum(f.fee_sat for f in outbound),
            liquidity_inbound_btc=sats_to_btc(remote),
            liquidity_outbound_btc=sats_to_btc(local),
            last_inbound_at=max((f.created_at for f in inbound), default=None),
            last_outbound_at=max((f.created_at for f in outbound), default=None),
            blocks_since_last_close=min(closes) if closes else None,
        )
