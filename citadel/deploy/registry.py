"""File-backed deployment records, one JSON file per contract per network.

Layout (compatible with hardhat-deploy):

    <root>/<network>/.chainId
    <root>/<network>/<ContractName>.json
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path

from citadel.core.types import DeploymentRecord

logger = logging.getLogger(__name__)


class DeploymentRegistry:
    """Persist and look up the live deployment of each contract per network.

    At most one record exists per (name, network); saving replaces it.
    Writers are assumed to be serialized externally (one deploy run at a time).
    """

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def _path(self, name: str, network: str) -> Path:
        return self.root / network / f"{name}.json"

    def get(self, name: str, network: str) -> DeploymentRecord | None:
        """Return the record for ``name`` on ``network``, if any.

        Files written by hardhat-deploy carry neither ``name`` nor ``network``;
        both are taken from the file's location.

        Raises:
            ValueError: If the file exists but is not a usable record
        """
        path = self._path(name, network)
        if not path.exists():
            return None
        return self._load(path, name, network)

    def _load(self, path: Path, name: str, network: str) -> DeploymentRecord:
        try:
            data = json.loads(path.read_text())
            if not isinstance(data, dict):
                raise ValueError("expected a JSON object")
            data = {**data, "name": name, "network": network}
            if "chain_id" not in data and "chainId" not in data:
                marker = path.parent / ".chainId"
                if marker.exists():
                    data["chain_id"] = int(marker.read_text().strip())
            return DeploymentRecord.model_validate(data)
        except ValueError as exc:
            raise ValueError(f"Unreadable deployment record {path}: {exc}") from exc

    def save(self, record: DeploymentRecord) -> Path:
        """Write ``record``, replacing any previous record for the same key."""
        path = self._path(record.name, record.network)
        path.parent.mkdir(parents=True, exist_ok=True)
        if record.chain_id:
            (path.parent / ".chainId").write_text(str(record.chain_id))

        # Atomic replace
        fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{record.name}-", suffix=".json")
        try:
            with os.fdopen(fd, "w") as fh:
                fh.write(record.model_dump_json(indent=2))
            os.replace(tmp, path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

        logger.debug("Saved deployment record %s", path)
        return path

    def list_records(self, network: str) -> list[DeploymentRecord]:
        """Return every record stored for ``network``."""
        net_dir = self.root / network
        if not net_dir.is_dir():
            return []
        return [self._load(p, p.stem, network) for p in sorted(net_dir.glob("*.json"))]
