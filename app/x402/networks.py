# app/x402/networks.py
"""
Networks and payment tokens the shop can accept.

Each network has a default stablecoin. A request may pick another token
either by symbol or by passing its contract address directly.
"""
from dataclasses import dataclass
from typing import Dict, Optional


class UnsupportedNetworkError(ValueError):
    """The requested network has no token configuration."""


class UnsupportedTokenError(ValueError):
    """The requested token is neither a known symbol nor a contract address."""


@dataclass(frozen=True)
class TokenInfo:
    """An ERC-20 token usable with the exact (EIP-3009) payment scheme."""
    symbol: str
    address: str
    # EIP-712 domain, needed by clients to sign transferWithAuthorization
    eip712_name: Optional[str] = None
    eip712_version: Optional[str] = None
    decimals: int = 6

    def eip712_domain(self) -> Optional[Dict[str, str]]:
        if self.eip712_name is None or self.eip712_version is None:
            return None
        return {"name": self.eip712_name, "version": self.eip712_version}


TOKENS: Dict[str, Dict[str, TokenInfo]] = {
    "base": {
        "USDC": TokenInfo("USDC", "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913", "USD Coin", "2"),
    },
    "base-sepolia": {
        "USDC": TokenInfo("USDC", "0x036CbD53842c5426634e7929541eC2318f3dCF7e", "USDC", "2"),
    },
    "avalanche": {
        "USDC": TokenInfo("USDC", "0xB97EF9Ef8734C71904D8002F8b6Bc66Dd9c48a6E", "USD Coin", "2"),
    },
    "avalanche-fuji": {
        "USDC": TokenInfo("USDC", "0x5425890298aed601595a70AB815c96711a31Bc65", "USD Coin", "2"),
    },
}

DEFAULT_TOKEN = {
    "base": "USDC",
    "base-sepolia": "USDC",
    "avalanche": "USDC",
    "avalanche-fuji": "USDC",
    "sepolia": "JPYC",
    "filecoin-calibration": "USDFC",
}

DISPLAY_NAMES = {
    "base": "Base",
    "base-sepolia": "Base Sepolia",
    "avalanche": "Avalanche",
    "avalanche-fuji": "Avalanche Fuji",
    "sepolia": "Sepolia",
    "filecoin-calibration": "Filecoin Calibration",
}

# Explorer prefixes, the transaction hash is appended as-is
EXPLORER_TX_URLS = {
    "base": "https://basescan.org/tx/",
    "base-sepolia": "https://sepolia.basescan.org/tx/",
    "avalanche": "https://snowtrace.io/tx/",
    "avalanche-fuji": "https://testnet.snowtrace.io/tx/",
    "sepolia": "https://sepolia.etherscan.io/tx/",
    "filecoin-calibration": "https://calibration.filfox.info/en/message/",
}


def is_contract_address(value: str) -> bool:
    if not value.startswith("0x") or len(value) != 42:
        return False
    try:
        int(value[2:], 16)
    except ValueError:
        return False
    return True


def resolve_asset(network: str, token: Optional[str] = None) -> TokenInfo:
    """
    Resolve the token to charge on a network.

    Args:
        network: Network identifier, e.g. "base-sepolia"
        token: Token symbol (case-insensitive), contract address, or None for
            the network's default token

    Raises:
        UnsupportedNetworkError: If the network is not configured
        UnsupportedTokenError: If the token is not known on that network
    """
    known = TOKENS.get(network) if isinstance(network, str) else None
    if known is None:
        raise UnsupportedNetworkError(f"Unsupported network: {network}")

    if not token:
        return known[DEFAULT_TOKEN[network]]
    if not isinstance(token, str):
        raise UnsupportedTokenError(f"Unsupported token {token!r} on network {network}")

    by_symbol = known.get(token.upper())
    if by_symbol is not None:
        return by_symbol

    if is_contract_address(token):
        for info in known.values():
            if info.address.lower() == token.lower():
                return info
        return TokenInfo(symbol=token, address=token)

    raise UnsupportedTokenError(f"Unsupported token '{token}' on network {network}")


def default_token_symbol(network: str) -> Optional[str]:
    return DEFAULT_TOKEN.get(network)


def network_display_name(network: str) -> str:
    return DISPLAY_NAMES.get(network, network)


def explorer_tx_url(network: Optional[str], tx_hash: Optional[str]) -> Optional[str]:
    """Block explorer link for a transaction, None when either part is unknown."""
    if not tx_hash or not network:
        return None
    prefix = EXPLORER_TX_URLS.get(network)
    if prefix is None:
        return None
    return f"{prefix}{tx_hash}"
