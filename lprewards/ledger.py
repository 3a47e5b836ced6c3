"""
Read-only view of the most recently published reward totals.
"""

import json
import logging
import os
import tempfile
from typing import Dict, List, Optional

from lprewards.accumulator import RunningTotal
from lprewards.models import normalize_address

logger = logging.getLogger(__name__)


def user_record(address: str, rewards: int) -> Dict[str, str]:
    """Render one address as a {id, deposits, rewards} record with exact decimal strings."""
    return {
        "id": address,
        "deposits": "0",
        "rewards": str(int(rewards)),
    }


class RewardsLedger:
    """Serves users() and user(id) lookups over the last published pass."""

    def __init__(self):
        self._records: List[Dict[str, str]] = []
        self._by_id: Dict[str, Dict[str, str]] = {}
        self.published_at_block: Optional[int] = None

    def publish(self, running_total: RunningTotal, to_block: Optional[int] = None) -> None:
        """
        Replace the served records with a finished pass.

        Args:
            running_total: Totals from a completed pass
            to_block: End of the pass's block range
        """
        records = [user_record(address, running_total.totals[address]) for address in running_total]
        self._records = records
        self._by_id = {record["id"]: record for record in records}
        self.published_at_block = to_block
        logger.info(f"Published {len(records)} reward records (to block {to_block})")

    def users(self) -> List[Dict[str, str]]:
        return [dict(record) for record in self._records]

    def user(self, address: str) -> Optional[Dict[str, str]]:
        try:
            key = normalize_address(address)
        except ValueError:
            return None
        record = self._by_id.get(key)
        return dict(record) if record else None

    def export(self, path: str) -> None:
        """
        Write the published records to path as JSON.

        The file is replaced atomically so readers never see a partial pass.

        Args:
            path: Destination file
        """
        payload = {"block": self.published_at_block, "users": self.users()}
        directory = os.path.dirname(os.path.abspath(path))
        fd, tmp_path = tempfile.mkstemp(dir=directory, suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(payload, f, indent=2)
            os.replace(tmp_path, path)
        except OSError:
            os.unlink(tmp_path)
            raise
        logger.debug(f"Exported {len(self._records)} reward records to {path}")
