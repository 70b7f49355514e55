"""Reorg-safety policy deciding which responses may be cached permanently."""
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ReorgSafetyWindow:
    """
    Chain height and reorg depth observed when a client was created.

    Blocks within max_reorg of latest_block_number can still be replaced by a
    reorganization, so nothing depending on them is cached.
    """
    latest_block_number: int
    max_reorg: int

    @property
    def last_safe_block(self) -> int:
        return self.latest_block_number - self.max_reorg

    def can_be_reorged_out(self, block_number: int) -> bool:
        return block_number > self.last_safe_block

    def is_cacheable(self, max_affected_block_number: Optional[int]) -> bool:
        """
        Check whether a response may be cached.

        Args:
            max_affected_block_number: Highest block the response depends on,
                or None when it is unknown (e.g. a pending transaction)

        Returns:
            True if the response can never change
        """
        if max_affected_block_number is None:
            return False

        return not self.can_be_reorged_out(max_affected_block_number)

