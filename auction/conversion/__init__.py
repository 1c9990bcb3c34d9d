"""Venue adapters, pool discovery and the conversion router."""

from .addresses import derive_pool_address
from .constant_product import ConstantProductAdapter, constant_product_out
from .discovery import PoolDiscoveryCache, coin_indices
from .interfaces import ConstantProductPool, PoolLookup, StableSwapPool, StableSwapRegistry, VenueAdapter
from .paper import PaperStableSwapPool
from .router import ConversionRouter, min_out_for
from .stableswap import StableSwapAdapter

__all__ = [
    # Router
    "ConversionRouter",
    "min_out_for",
    # Adapters
    "ConstantProductAdapter",
    "StableSwapAdapter",
    "PaperStableSwapPool",
    "VenueAdapter",
    "constant_product_out",
    "derive_pool_address",
    # Discovery
    "PoolDiscoveryCache",
    "coin_indices",
    # Capabilities
    "ConstantProductPool",
    "PoolLookup",
    "StableSwapPool",
    "StableSwapRegistry",
]
