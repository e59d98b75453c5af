"""End-to-end check that a fresh game deployment starts in its genesis state."""

from __future__ import annotations

import logging

from citadel.chain.context import NetworkContext
from citadel.contracts.king import GameStateSnapshot, KingOfTheCastle, genesis_state
from citadel.contracts.registry import KING_OF_THE_CASTLE
from citadel.core.types import CheckResult, VerificationReport
from citadel.deploy.coordinator import DeploymentCoordinator
from citadel.deploy.funding import ensure_funded
from citadel.permits.issuer import PermitIssuer

logger = logging.getLogger(__name__)


def check_genesis(actual: GameStateSnapshot, expected: GameStateSnapshot) -> list[CheckResult]:
    """Compare a decrypted snapshot against the expected genesis state."""
    return [
        CheckResult(
            name="player_count",
            expected=expected.player_count,
            actual=actual.player_count,
            passed=actual.player_count == expected.player_count,
        ),
        CheckResult(
            name="current_weather",
            expected=expected.current_weather,
            actual=actual.current_weather,
            passed=actual.current_weather == expected.current_weather,
        ),
        CheckResult(
            name="current_king",
            expected=expected.current_king,
            actual=actual.current_king,
            passed=actual.current_king.lower() == expected.current_king.lower(),
        ),
    ]


class VerificationHarness:
    """Fund, deploy a fresh game, issue a permit, and check genesis state.

    Steps run strictly in order and any error aborts the run; nothing is
    retried.
    """

    def __init__(self, ctx: NetworkContext, issuer: PermitIssuer | None = None) -> None:
        self.ctx = ctx
        self.issuer = issuer or PermitIssuer(ctx)

    async def run(self) -> VerificationReport:
        signer = self.ctx.signer
        funding = await ensure_funded(self.ctx, signer)

        record = await DeploymentCoordinator(self.ctx).deploy(
            KING_OF_THE_CASTLE.name,
            skip_if_already_deployed=False,
            signer=signer,
        )
        permit = await self.issuer.create_permit(signer, record.address)

        game = KingOfTheCastle(self.ctx, record.address, permit, signer)
        checks = check_genesis(await game.snapshot(), genesis_state(signer.address))

        report = VerificationReport(
            network=self.ctx.network.name,
            contract_name=record.name,
            contract_address=record.address,
            signer=signer.address,
            funding=funding,
            checks=checks,
        )
        if report.passed:
            logger.info("Genesis state verified for %s at %s", record.name, record.address)
        else:
            for failure in report.failures:
                logger.error(
                    "Genesis check %s failed: expected %r, got %r",
                    failure.name,
                    failure.expected,
                    failure.actual,
                )
        return report
