"""Typed interface to a deployed KingOfTheCastle game."""

from __future__ import annotations

from dataclasses import dataclass

from citadel.chain.context import NetworkContext
from citadel.chain.signer import Signer
from citadel.contracts.registry import KING_OF_THE_CASTLE
from citadel.core.types import AccessPermit
from citadel.reader import EncryptedStateReader

# Weather code the contract starts with before any turn is played
GENESIS_WEATHER = 0
GENESIS_PLAYER_COUNT = 1


@dataclass(frozen=True)
class GameStateSnapshot:
    """Decrypted view of the game's public and sealed state."""

    player_count: int
    current_weather: int
    current_king: str


class KingOfTheCastle:
    """Accessor wrapper bound to one deployed instance, one signer and one permit."""

    def __init__(
        self,
        ctx: NetworkContext,
        address: str,
        permit: AccessPermit | None = None,
        signer: Signer | None = None,
    ) -> None:
        self.address = address
        self.permit = permit
        self._reader = EncryptedStateReader(ctx, KING_OF_THE_CASTLE, signer)

    async def get_player_count(self) -> int:
        return int(await self._reader.read_field(self.address, "getPlayerCount", self.permit))

    async def get_current_weather(self) -> int:
        return int(await self._reader.read_field(self.address, "getCurrentWeather", self.permit))

    async def get_current_king(self) -> str:
        return str(await self._reader.read_field(self.address, "getCurrentKing", self.permit))

    async def snapshot(self) -> GameStateSnapshot:
        return GameStateSnapshot(
            player_count=await self.get_player_count(),
            current_weather=await self.get_current_weather(),
            current_king=await self.get_current_king(),
        )


def genesis_state(admin: str) -> GameStateSnapshot:
    """State a freshly deployed game must report before any action is taken."""
    return GameStateSnapshot(
        player_count=GENESIS_PLAYER_COUNT,
        current_weather=GENESIS_WEATHER,
        current_king=admin,
    )
