"""Known contracts and their compiled artifacts."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from citadel.core.types import FieldDefinition


@dataclass(frozen=True)
class ContractDefinition:
    """A deployable contract and the fields the harness reads from it."""

    name: str
    fields: tuple[FieldDefinition, ...] = ()

    def field(self, accessor: str) -> FieldDefinition:
        """Look up a field by accessor name.

        Raises:
            KeyError: If the contract declares no such accessor
        """
        for f in self.fields:
            if f.accessor == accessor:
                return f
        raise KeyError(f"{self.name} has no field '{accessor}'")


@dataclass
class CompiledContract:
    """A compiled contract loaded from a Hardhat artifact."""

    name: str
    abi: list[dict[str, Any]] = field(default_factory=list)
    bytecode: str = ""

    @property
    def constructor_types(self) -> list[str]:
        for entry in self.abi:
            if entry.get("type") == "constructor":
                return [_abi_type(i) for i in entry.get("inputs", [])]
        return []


def _abi_type(param: dict[str, Any]) -> str:
    """Canonical ABI type string for a parameter, expanding tuples."""
    typ = param["type"]
    if typ.startswith("tuple"):
        inner = ",".join(_abi_type(c) for c in param.get("components", []))
        return f"({inner}){typ[len('tuple'):]}"
    return typ


# ── Contract Registry ────────────────────────────────────────────────────────

KING_OF_THE_CASTLE = ContractDefinition(
    name="KingOfTheCastle",
    fields=(
        FieldDefinition("getPlayerCount", "uint256"),
        FieldDefinition("getCurrentWeather", "uint8", encrypted=True),
        FieldDefinition("getCurrentKing", "address", encrypted=True),
    ),
)

CONTRACTS: dict[str, ContractDefinition] = {
    KING_OF_THE_CASTLE.name: KING_OF_THE_CASTLE,
}


def get_contract_definition(name: str) -> ContractDefinition | None:
    """Get a contract definition by name."""
    return CONTRACTS.get(name)


# ── Artifacts ────────────────────────────────────────────────────────────────


class ArtifactStore:
    """Load compiled contracts from a Hardhat ``artifacts/`` tree."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def load(self, name: str) -> CompiledContract:
        """Find and parse ``<root>/**/<name>.json``.

        Raises:
            FileNotFoundError: If no artifact exists for ``name``
            ValueError: If the artifact has no deployable bytecode
        """
        matches = sorted(self.root.rglob(f"{name}.json")) if self.root.is_dir() else []
        if not matches:
            raise FileNotFoundError(f"No artifact for {name} under {self.root}")

        data = json.loads(matches[0].read_text())
        bytecode = data.get("bytecode", "")
        if not bytecode or bytecode == "0x":
            raise ValueError(f"Artifact {matches[0]} has no bytecode (abstract contract?)")

        return CompiledContract(
            name=data.get("contractName", name),
            abi=data.get("abi", []),
            bytecode=bytecode,
        )
