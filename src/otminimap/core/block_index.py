# src/otminimap/core/block_index.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, Iterator, Optional, Tuple

from otminimap.core.block import MinimapBlock
from otminimap.utils.settings import BLOCK_SIZE, BLOCKS_PER_AXIS

BlockKey = Tuple[int, int]  # (block_x, block_y)


def block_origin(x: int, y: int) -> Tuple[int, int]:
    """Floor both axes to the block grid."""
    return x - x % BLOCK_SIZE, y - y % BLOCK_SIZE


@dataclass
class BlockIndex:
    """Blocks of one elevation layer keyed by their block coordinate."""
    _blocks: Dict[BlockKey, MinimapBlock] = field(default_factory=dict)

    @staticmethod
    def key_for(x: int, y: int) -> BlockKey:
        return x // BLOCK_SIZE, y // BLOCK_SIZE

    @staticmethod
    def origin_of(key: BlockKey) -> Tuple[int, int]:
        bx, by = key
        return bx * BLOCK_SIZE, by * BLOCK_SIZE

    @staticmethod
    def in_range(key: BlockKey) -> bool:
        bx, by = key
        return 0 <= bx < BLOCKS_PER_AXIS and 0 <= by < BLOCKS_PER_AXIS

    def get(self, x: int, y: int) -> Optional[MinimapBlock]:
        return self._blocks.get(self.key_for(x, y))

    def has(self, x: int, y: int) -> bool:
        return self.key_for(x, y) in self._blocks

    def get_or_create(self, x: int, y: int) -> MinimapBlock:
        key = self.key_for(x, y)
        block = self._blocks.get(key)
        if block is None:
            block = self._blocks[key] = MinimapBlock()
        return block

    def items(self) -> Iterator[Tuple[BlockKey, MinimapBlock]]:
        # Snapshot so callers may insert while iterating.
        return iter(list(self._blocks.items()))

    def seen_items(self) -> Iterator[Tuple[BlockKey, MinimapBlock]]:
        for key, block in self.items():
            if block.was_seen:
                yield key, block

    def clear(self) -> None:
        for block in self._blocks.values():
            block.clean()
        self._blocks.clear()

    def __len__(self) -> int:
        return len(self._blocks)
