"""Price floor, fee split and protocol fee ledger."""

from .engine import PricingEngine
from .fees import FeeLedger

__all__ = ["FeeLedger", "PricingEngine"]
