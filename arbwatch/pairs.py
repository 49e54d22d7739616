# arbwatch/pairs.py
"""
Token registry for Polygon
Default base/quote tokens and their decimal scales
"""

from dataclasses import dataclass
from typing import Dict

from web3 import Web3

# =============================================================================
# TOKEN ADDRESSES (Polygon Mainnet - Checksummed)
# =============================================================================

WETH = Web3.to_checksum_address("0x7ceB23fD6bC0adD59E62ac25578270cFf1b9f619")
USDC_LEGACY = Web3.to_checksum_address("0x2791Bca1f2de4661ED88A30C99A7a9449Aa84174")
USDC_NATIVE = Web3.to_checksum_address("0x3c499c542cEF5E3811e1192ce70d8cC03d5c3359")


@dataclass(frozen=True)
class TokenInfo:
    address: str
    symbol: str
    decimals: int


TOKENS: Dict[str, TokenInfo] = {
    WETH: TokenInfo(WETH, "WETH", 18),
    USDC_LEGACY: TokenInfo(USDC_LEGACY, "USDC.e", 6),
    USDC_NATIVE: TokenInfo(USDC_NATIVE, "USDC", 6),
}

USDC_DECIMALS = 6
USDC_SCALE = 10 ** USDC_DECIMALS  # raw units per 1 USDC

# 1 WETH, in wei
DEFAULT_TRADE_SIZE = 10 ** 18


def get_symbol(address: str) -> str:
    """Symbol for a known token, or a shortened address"""
    info = TOKENS.get(Web3.to_checksum_address(address))
    if info:
        return info.symbol
    return f"{address[:6]}...{address[-4:]}"


def get_decimals(address: str, default: int = USDC_DECIMALS) -> int:
    info = TOKENS.get(Web3.to_checksum_address(address))
    if info:
        return info.decimals
    return default
