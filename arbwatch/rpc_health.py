# arbwatch/rpc_health.py
"""
RPC Health Monitoring
Startup probe of the RPC connection: reachability, latency, chain id.
Never fatal; a bad RPC shows up as per-tick quote failures.
"""

import time

from web3 import Web3

MAX_RPC_LATENCY = 2.0  # seconds


class RPCHealth:
    """
    Probe an existing Web3 client
    """

    def __init__(self, w3: Web3, max_latency: float = MAX_RPC_LATENCY):
        self.w3 = w3
        self.max_latency = max_latency

    def check(self) -> tuple:
        """
        Check RPC health
        Returns (is_healthy: bool, status_message: str)
        """
        try:
            start = time.time()
            latest = self.w3.eth.block_number
            latency = time.time() - start

            chain_id = self.w3.eth.chain_id

            if latency > self.max_latency:
                return False, f"High latency {latency:.2f}s"

            return True, f"OK (latency={latency:.2f}s, block={latest}, chain_id={chain_id})"

        except Exception as e:
            return False, f"{type(e).__name__}: {e}"
