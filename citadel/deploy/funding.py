"""Make sure the deploying account can pay for gas."""

from __future__ import annotations

import asyncio
import logging
import time

from citadel.chain.context import NetworkContext
from citadel.chain.signer import Signer
from citadel.core.errors import ErrorCode, FundingError
from citadel.core.types import FundingOutcome

logger = logging.getLogger(__name__)


async def ensure_funded(ctx: NetworkContext, signer: Signer | None = None) -> FundingOutcome:
    """Check the signer's balance and top it up from the faucet on dev networks.

    A zero balance on a non-dev network is never funded automatically; the
    caller gets ``FundingError(UNFUNDED)`` with a pointer to a faucet instead.

    On dev networks the faucet request is fire-and-forget unless
    ``faucet_confirm_timeout_seconds`` is set, in which case the balance is
    polled until it turns nonzero.

    Raises:
        FundingError: Unfunded on a real network, or the faucet refused/failed
    """
    signer = signer or ctx.signer
    balance = await ctx.rpc.get_balance(signer.address)
    if balance > 0:
        logger.debug("%s already funded (%d wei)", signer.address, balance)
        return FundingOutcome.ALREADY_FUNDED

    if not ctx.is_dev_network or ctx.faucet is None:
        raise FundingError(
            f"Account {signer.address} has no {ctx.network.native_currency} on {ctx.network.name}",
            ErrorCode.UNFUNDED,
            hint=f"Please fund your account with testnet FHE from {ctx.network.funding_hint}",
        )

    logger.info(
        "Requesting faucet funds for %s on %s",
        signer.address,
        ctx.network.name,
        extra={"network": ctx.network.name, "signer": signer.address},
    )
    if not await ctx.faucet.request_funds(signer.address):
        raise FundingError(
            f"Faucet refused to fund {signer.address}",
            ErrorCode.FAUCET_REJECTED,
        )

    timeout = ctx.settings.faucet_confirm_timeout_seconds
    if timeout <= 0:
        return FundingOutcome.FAUCET_REQUESTED

    await _wait_for_balance(ctx, signer.address, timeout)
    return FundingOutcome.FAUCET_CONFIRMED


async def _wait_for_balance(ctx: NetworkContext, address: str, timeout: float) -> None:
    start = time.monotonic()
    while True:
        await asyncio.sleep(ctx.settings.faucet_poll_interval_seconds)
        if await ctx.rpc.get_balance(address) > 0:
            logger.info("Faucet funds arrived for %s", address)
            return
        if time.monotonic() - start >= timeout:
            raise FundingError(
                f"Faucet accepted the request but {address} is still unfunded after {timeout}s",
                ErrorCode.FAUCET_UNCONFIRMED,
            )
