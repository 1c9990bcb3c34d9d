"""Ownership and delegation facts per token id."""

from .capabilities import CapabilityTable
from .receivers import RECEIVER_ACK, ReceiverDirectory, TokenReceiver
from .registry import OwnershipRegistry

__all__ = [
    "CapabilityTable",
    "OwnershipRegistry",
    "RECEIVER_ACK",
    "ReceiverDirectory",
    "TokenReceiver",
]
