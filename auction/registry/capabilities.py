"""Capability table keyed by token id.

Ownership and delegation are modelled as capabilities: a mapping from
``(token_id, kind)`` to the set of addresses holding that capability.
``grant`` and ``revoke`` are the only mutators.
"""

from __future__ import annotations

from typing import Iterable

from auction.types import CapabilityKind

_Key = tuple[int, CapabilityKind]


class CapabilityTable:
    def __init__(self) -> None:
        self._holders: dict[_Key, set[str]] = {}

    def grant(self, token_id: int, kind: CapabilityKind, address: str) -> bool:
        """Grant `kind` on `token_id` to `address`. Returns False if already held."""
        holders = self._holders.setdefault((token_id, kind), set())
        if address in holders:
            return False
        holders.add(address)
        return True

    def revoke(self, token_id: int, kind: CapabilityKind, address: str) -> bool:
        """Revoke `kind` on `token_id` from `address`. Returns False if not held."""
        holders = self._holders.get((token_id, kind))
        if not holders or address not in holders:
            return False
        holders.discard(address)
        if not holders:
            del self._holders[(token_id, kind)]
        return True

    def holds(self, token_id: int, kind: CapabilityKind, address: str) -> bool:
        return address in self._holders.get((token_id, kind), ())

    def holders(self, token_id: int, kind: CapabilityKind) -> frozenset[str]:
        return frozenset(self._holders.get((token_id, kind), ()))

    def token_ids(self, kind: CapabilityKind) -> Iterable[int]:
        return sorted(token_id for token_id, k in self._holders if k == kind)

    def snapshot(self) -> dict[_Key, frozenset[str]]:
        return {key: frozenset(holders) for key, holders in self._holders.items()}

    def restore(self, state: dict[_Key, frozenset[str]]) -> None:
        self._holders = {key: set(holders) for key, holders in state.items()}
