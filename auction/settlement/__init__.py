"""Balance movement between payers, owners and the protocol."""

from .ledger import AssetLedger, Balance, SettlementVault

__all__ = ["AssetLedger", "Balance", "SettlementVault"]
