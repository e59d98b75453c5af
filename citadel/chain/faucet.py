"""Client for the local Fhenix faucet."""

from __future__ import annotations

import logging

import httpx

from citadel.core.errors import ErrorCode, FundingError

logger = logging.getLogger(__name__)


class FaucetClient:
    """Request test funds from a dev-network faucet.

    The faucet credits the address asynchronously; an accepted request does
    not mean the balance has already changed.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def request_funds(self, address: str) -> bool:
        """Ask the faucet to fund ``address``.

        Returns:
            True if the faucet accepted the request, False if it rejected it

        Raises:
            FundingError: If the faucet could not be reached
        """
        try:
            resp = await self._client.get("/faucet", params={"address": address})
        except httpx.RequestError as exc:
            raise FundingError(
                f"Faucet at {self.base_url} is unreachable: {exc}",
                ErrorCode.FAUCET_UNREACHABLE,
            ) from exc

        if resp.status_code >= 500:
            raise FundingError(
                f"Faucet at {self.base_url} failed with HTTP {resp.status_code}",
                ErrorCode.FAUCET_UNREACHABLE,
            )

        accepted = resp.is_success
        if not accepted:
            logger.warning(
                "Faucet rejected funding request for %s: HTTP %d",
                address,
                resp.status_code,
            )
        return accepted
