"""
Chain head lookup over JSON-RPC.
"""

import logging
from typing import Optional

from web3 import Web3

from config import Config
from lprewards.exceptions import UpstreamUnavailable
from lprewards.utils import retry

logger = logging.getLogger(__name__)


class ChainHead:
    """Reads the latest block number from an RPC endpoint."""

    def __init__(self, rpc_url: Optional[str] = None, w3: Optional[Web3] = None):
        """
        Initialize Web3 connection.

        Args:
            rpc_url: Ethereum RPC endpoint
            w3: Pre-built Web3 instance (takes precedence over rpc_url)
        """
        self.w3 = w3 or Web3(
            Web3.HTTPProvider(
                rpc_url or Config.RPC_URL,
                request_kwargs={"timeout": Config.RPC_TIMEOUT},
            )
        )

    @retry(max_attempts=3, delay=2.0)
    def _block_number(self) -> int:
        return self.w3.eth.block_number

    def get_latest_block(self) -> int:
        """
        Get latest block number.

        Returns:
            Latest block number

        Raises:
            UpstreamUnavailable: If the RPC endpoint cannot be reached
        """
        try:
            return int(self._block_number())
        except Exception as e:
            raise UpstreamUnavailable(f"Could not read chain head: {e}") from e
