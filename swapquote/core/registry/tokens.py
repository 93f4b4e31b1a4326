"""Static token table and lookup by symbol or address."""

from __future__ import annotations

from typing import Dict, Mapping, Optional, Tuple

from ..quote.errors import UnknownToken, UnsupportedChain
from ..quote.models import TokenDescriptor

# Local hardhat fork of mainnet; addresses are mainnet's
FORK_CHAIN_ID = 136638

_MAINNET: Dict[str, Tuple[str, int]] = {
    "WETH": ("0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2", 18),
    "USDC": ("0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48", 6),
    "DAI": ("0x6B175474E89094C44Da98b954EedeAC495271d0F", 18),
    "WBTC": ("0x2260FAC5E5542a773Aa44fBCfeDf7C193bc2C599", 8),
    "USDT": ("0xdAC17F958D2ee523a2206206994597C13D831ec7", 6),
    "KNC": ("0xdeFA4e8a7bcBA345F687a2f1456F5Edd9CE97202", 18),
    "CAKE": ("0x152649eA73beAb28c5b49B26eb48f7EAD6d4c898", 18),
    "BAL": ("0xba100000625a3754423978a60c9317c58a424e3D", 18),
}

TOKEN_TABLE: Dict[int, Dict[str, Tuple[str, int]]] = {
    1: dict(_MAINNET),
    FORK_CHAIN_ID: dict(_MAINNET),
}


class TokenRegistry:
    """Resolves ``"WETH"`` or ``"0xC02a..."`` to a ``TokenDescriptor``.

    Descriptors are built once at construction and shared read-only.
    """

    def __init__(self, table: Optional[Mapping[int, Mapping[str, Tuple[str, int]]]] = None):
        self._by_symbol: Dict[int, Dict[str, TokenDescriptor]] = {}
        self._by_address: Dict[int, Dict[str, TokenDescriptor]] = {}

        for chain_id, tokens in (table if table is not None else TOKEN_TABLE).items():
            symbols = self._by_symbol.setdefault(chain_id, {})
            addresses = self._by_address.setdefault(chain_id, {})
            for symbol, (address, decimals) in tokens.items():
                descriptor = TokenDescriptor(
                    address=address,
                    chain_id=chain_id,
                    decimals=decimals,
                    symbol=symbol.upper(),
                )
                symbols[descriptor.symbol] = descriptor
                addresses[address.lower()] = descriptor

    @property
    def chains(self) -> Tuple[int, ...]:
        return tuple(sorted(self._by_symbol))

    def supports_chain(self, chain_id: int) -> bool:
        return chain_id in self._by_symbol

    def resolve(self, token: str, chain_id: int) -> TokenDescriptor:
        if not self.supports_chain(chain_id):
            raise UnsupportedChain(chain_id)

        key = (token or "").strip()
        if not key:
            raise UnknownToken(token, chain_id)

        if key.lower().startswith("0x"):
            found = self._by_address[chain_id].get(key.lower())
        else:
            found = self._by_symbol[chain_id].get(key.upper())
        if found is None:
            raise UnknownToken(token, chain_id)
        return found

    def by_symbol(self, chain_id: int) -> Mapping[str, TokenDescriptor]:
        return dict(self._by_symbol.get(chain_id, {}))
