"""Single-use permit nonces.

Nonces are chosen by the owner and marked consumed explicitly; any unused value
is acceptable, and `next_nonce` suggests one above everything used so far.
"""

from __future__ import annotations

from auction.errors import NonceReplay


class NonceTracker:
    def __init__(self) -> None:
        self._used: dict[str, set[int]] = {}
        self._next: dict[str, int] = {}

    def is_used(self, owner: str, nonce: int) -> bool:
        return nonce in self._used.get(owner.lower(), ())

    def next_nonce(self, owner: str) -> int:
        return self._next.get(owner.lower(), 0)

    def consume(self, owner: str, nonce: int) -> None:
        """Mark `nonce` used for `owner`.

        Raises:
            NonceReplay: If the nonce was already consumed.
        """
        if nonce < 0:
            raise ValueError("nonce must be non-negative")
        key = owner.lower()
        used = self._used.setdefault(key, set())
        if nonce in used:
            raise NonceReplay(f"nonce {nonce} already used by {owner}")
        used.add(nonce)
        self._next[key] = max(self._next.get(key, 0), nonce + 1)

    def snapshot(self) -> tuple[dict[str, frozenset[int]], dict[str, int]]:
        return {k: frozenset(v) for k, v in self._used.items()}, dict(self._next)

    def restore(self, state: tuple[dict[str, frozenset[int]], dict[str, int]]) -> None:
        used, next_ = state
        self._used = {k: set(v) for k, v in used.items()}
        self._next = dict(next_)
