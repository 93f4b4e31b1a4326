from .simulation import REFERENCE_PRICES_USD, default_simulation_table
from .tokens import FORK_CHAIN_ID, TOKEN_TABLE, TokenRegistry
from .venues import AGGREGATOR_CHAINS, VENUE_TABLE, default_sources

__all__ = [
    "AGGREGATOR_CHAINS",
    "FORK_CHAIN_ID",
    "REFERENCE_PRICES_USD",
    "TOKEN_TABLE",
    "TokenRegistry",
    "VENUE_TABLE",
    "default_simulation_table",
    "default_sources",
]
