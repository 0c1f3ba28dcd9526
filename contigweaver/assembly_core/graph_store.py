#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
ContigWeaver v0.1.0

Graph store for the k-mer de Bruijn graph.

- One KmerNode per distinct canonical k-mer
- 8-bit extension mask (4 bases x 2 directions) relative to the canonical orientation
- Saturating per-strand multiplicity counters
- Transient mark flags and a tombstone flag
- Tombstoned nodes stay in the table until compact() is called between passes

Author: ContigWeaver Development Team
License: Dual License (Academic/Commercial) - See LICENSE_ACADEMIC.md and LICENSE_COMMERCIAL.md
"""

from dataclasses import dataclass, field
from enum import IntFlag
from typing import Dict, Iterator, List, Optional, Tuple
import logging

import numpy as np

from .kmer_codec import Direction, KmerCodec

logger = logging.getLogger(__name__)


MAX_MULTIPLICITY = 0xFFFF

# 4-bit mask with bit i moved to bit 3-i (base complement).
_COMPLEMENT_MASK = tuple(
    sum(1 << (3 - b) for b in range(4) if m & (1 << b)) for m in range(16)
)


class SeqFlag(IntFlag):
    """Per-node flag bits."""
    SF_MARK_SENSE = 0x1
    SF_MARK_ANTISENSE = 0x2
    SF_DELETE = 0x4
    SF_SEEN = 0x8


SF_MARK_BOTH = SeqFlag.SF_MARK_SENSE | SeqFlag.SF_MARK_ANTISENSE
TRANSIENT_FLAGS = SF_MARK_BOTH | SeqFlag.SF_SEEN


def mark_flag_for(direction: Direction) -> SeqFlag:
    """Mark bit for one side of a canonical k-mer."""
    return SeqFlag.SF_MARK_SENSE if direction == Direction.SENSE else SeqFlag.SF_MARK_ANTISENSE


def base_list(ext: int) -> List[int]:
    """Bases present in a 4-bit extension mask, in A, C, G, T order."""
    return [b for b in range(4) if ext & (1 << b)]


def single_base(ext: int) -> Optional[int]:
    """The base of a single-bit extension mask, or None."""
    if ext and not ext & (ext - 1):
        return ext.bit_length() - 1
    return None


@dataclass
class KmerNode:
    """
    Node record of the graph store.

    Attributes:
        extensions: Bits 0-3 hold SENSE extensions A,C,G,T; bits 4-7 ANTISENSE
        multiplicity: [sense, antisense] occurrence counts (saturating)
        flags: SeqFlag bits
    """
    extensions: int = 0
    multiplicity: List[int] = field(default_factory=lambda: [0, 0])
    flags: int = 0

    @property
    def coverage(self) -> int:
        return self.multiplicity[0] + self.multiplicity[1]

    @property
    def deleted(self) -> bool:
        return bool(self.flags & SeqFlag.SF_DELETE)

    def increment(self, antisense: bool = False):
        strand = 1 if antisense else 0
        if self.multiplicity[strand] < MAX_MULTIPLICITY:
            self.multiplicity[strand] += 1

    def get_extension(self, direction: Direction) -> int:
        return (self.extensions >> (4 * direction)) & 0xF

    def has_extension(self, direction: Direction) -> bool:
        return self.get_extension(direction) != 0

    def is_ambiguous(self, direction: Direction) -> bool:
        ext = self.get_extension(direction)
        return ext & (ext - 1) != 0

    def set_base(self, direction: Direction, base: int):
        self.extensions |= 1 << (4 * direction + base)

    def clear_base(self, direction: Direction, base: int):
        self.extensions &= ~(1 << (4 * direction + base))

    def marked(self, direction: Optional[Direction] = None) -> bool:
        if direction is None:
            return bool(self.flags & SF_MARK_BOTH)
        return bool(self.flags & mark_flag_for(direction))


class SequenceCollection:
    """
    Hash-indexed collection of canonical k-mers.

    The store exclusively owns its KmerNode records. Passes read node state
    through lookup()/items() and request mutations through the store's own
    operations.

    Oriented helpers accept a key in either orientation and translate
    direction and base masks onto the canonical record.
    """

    def __init__(self, codec: KmerCodec):
        self.codec = codec
        self._nodes: Dict[int, KmerNode] = {}
        self._num_deleted = 0

    @property
    def k(self) -> int:
        return self.codec.k

    # ------------------------------------------------------------------
    # Core contract
    # ------------------------------------------------------------------

    def insert_or_increment(self, key: int, antisense: bool = False) -> KmerNode:
        """Create the node for a canonical key or bump its strand counter."""
        node = self._nodes.get(key)
        if node is None:
            node = KmerNode()
            self._nodes[key] = node
        elif node.deleted:
            # A tombstoned k-mer seen again comes back with fresh counts.
            node.flags = 0
            node.extensions = 0
            node.multiplicity = [0, 0]
            self._num_deleted -= 1
        node.increment(antisense)
        return node

    def lookup(self, key: int) -> Optional[KmerNode]:
        """Live node for a canonical key, or None if absent or tombstoned."""
        node = self._nodes.get(key)
        if node is None or node.deleted:
            return None
        return node

    def __contains__(self, key: int) -> bool:
        return self.lookup(key) is not None

    def mark_flag(self, key: int, flag: SeqFlag) -> bool:
        node = self.lookup(key)
        if node is None:
            return False
        node.flags |= flag
        return True

    def clear_flag(self, key: int, flag: SeqFlag) -> bool:
        node = self.lookup(key)
        if node is None:
            return False
        node.flags &= ~int(flag)
        return True

    def clear_all_flags(self, flag: SeqFlag) -> None:
        """Wipe ``flag`` from every node."""
        wipe = int(flag) & ~int(SeqFlag.SF_DELETE)
        for node in self._nodes.values():
            node.flags &= ~wipe

    def erase(self, key: int) -> bool:
        """Tombstone a node. Storage is reclaimed by compact()."""
        node = self.lookup(key)
        if node is None:
            return False
        node.flags |= SeqFlag.SF_DELETE
        self._num_deleted += 1
        return True

    def compact(self) -> int:
        """Physically drop tombstoned entries; returns the number dropped."""
        removed = self._num_deleted
        if removed:
            self._nodes = {
                key: node for key, node in self._nodes.items() if not node.deleted
            }
            self._num_deleted = 0
            logger.debug(f"Compacted store: dropped {removed} tombstones, {len(self._nodes)} live")
        return removed

    def size(self) -> int:
        return len(self._nodes) - self._num_deleted

    def __len__(self) -> int:
        return self.size()

    def empty(self) -> bool:
        return self.size() == 0

    @property
    def num_tombstones(self) -> int:
        return self._num_deleted

    def items(self) -> Iterator[Tuple[int, KmerNode]]:
        """
        Iterate live ``(key, node)`` pairs in ascending key order.

        Iterates over a snapshot of keys, so nodes may be tombstoned while
        iterating. Nodes tombstoned after the snapshot are skipped.
        """
        nodes = self._nodes
        for key in sorted(nodes):
            node = nodes[key]
            if not node.deleted:
                yield key, node

    def keys(self) -> List[int]:
        return [key for key, _ in self.items()]

    # ------------------------------------------------------------------
    # Oriented access
    # ------------------------------------------------------------------

    def canonical_node(self, key: int) -> Tuple[int, Optional[KmerNode], bool]:
        """
        Resolve an oriented key.

        Returns:
            (canonical_key, live node or None, is_reverse)
        """
        canon = self.codec.canonical(key)
        return canon, self.lookup(canon), canon != key

    def get_extension(self, key: int, direction: Direction) -> int:
        """4-bit extension mask of an oriented key in ``direction``."""
        _, node, rev = self.canonical_node(key)
        if node is None:
            return 0
        if rev:
            return _COMPLEMENT_MASK[node.get_extension(direction.opposite)]
        return node.get_extension(direction)

    def set_extension(self, key: int, direction: Direction, base: int) -> bool:
        _, node, rev = self.canonical_node(key)
        if node is None:
            return False
        if rev:
            node.set_base(direction.opposite, 3 - base)
        else:
            node.set_base(direction, base)
        return True

    def clear_extension(self, key: int, direction: Direction, base: int) -> bool:
        _, node, rev = self.canonical_node(key)
        if node is None:
            return False
        if rev:
            node.clear_base(direction.opposite, 3 - base)
        else:
            node.clear_base(direction, base)
        return True

    def is_marked(self, key: int, direction: Direction) -> bool:
        _, node, rev = self.canonical_node(key)
        if node is None:
            return False
        return node.marked(direction.opposite if rev else direction)

    def mark(self, key: int, direction: Optional[Direction] = None) -> bool:
        """Mark one side of an oriented key, or both sides when direction is None."""
        canon, node, rev = self.canonical_node(key)
        if node is None:
            return False
        if direction is None:
            node.flags |= SF_MARK_BOTH
        else:
            node.flags |= mark_flag_for(direction.opposite if rev else direction)
        return True

    def multiplicity(self, key: int) -> int:
        _, node, _ = self.canonical_node(key)
        return node.coverage if node is not None else 0

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    def coverage_histogram(self) -> Tuple[np.ndarray, np.ndarray]:
        """
        Sparse coverage histogram of live nodes.

        Returns:
            (coverage values ascending, number of k-mers at each value)
        """
        coverages = np.fromiter(
            (node.coverage for node in self._nodes.values() if not node.deleted),
            dtype=np.int64,
        )
        if coverages.size == 0:
            return np.zeros(0, dtype=np.int64), np.zeros(0, dtype=np.int64)
        values, counts = np.unique(coverages, return_counts=True)
        return values, counts


__all__ = [
    'MAX_MULTIPLICITY',
    'SeqFlag',
    'SF_MARK_BOTH',
    'TRANSIENT_FLAGS',
    'KmerNode',
    'SequenceCollection',
    'base_list',
    'single_base',
    'mark_flag_for',
]

# ContigWeaver v0.1.0
# Any usage is subject to this software's license.
