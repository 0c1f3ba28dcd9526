#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
ContigWeaver v0.1.0

Adjacency builder for the k-mer graph store.

Edges are never stored explicitly: a node's extension mask records which
of its eight one-base neighbours are present. generate_adjacency() derives
every mask from k-mer presence; the removal helpers keep the masks of the
surviving neighbours in sync when a node is deleted.

Author: ContigWeaver Development Team
License: Dual License (Academic/Commercial) - See LICENSE_ACADEMIC.md and LICENSE_COMMERCIAL.md
"""

import logging

from .graph_store import SequenceCollection, base_list
from .kmer_codec import Direction

logger = logging.getLogger(__name__)


def generate_adjacency(store: SequenceCollection) -> int:
    """
    Recompute the extension mask of every live node.

    Only annotates existing nodes; never inserts.

    Returns:
        Number of edges set (each edge is counted from both endpoints)
    """
    codec = store.codec
    canonical = codec.canonical
    shift_append = codec.shift_append
    shift_prepend = codec.shift_prepend
    num_edges = 0

    for key, node in store.items():
        ext = 0
        for base in range(4):
            if canonical(shift_append(key, base)) in store:
                ext |= 1 << base
            if canonical(shift_prepend(key, base)) in store:
                ext |= 1 << (4 + base)
        node.extensions = ext
        num_edges += bin(ext).count('1')

    logger.info(f"Generated adjacency: {num_edges // 2} edges over {store.size()} k-mers")
    return num_edges


def remove_extensions_to_sequence(store: SequenceCollection, key: int,
                                  direction: Direction) -> int:
    """
    Remove the edges on one side of an oriented k-mer.

    Clears the node's own extension bits in ``direction`` and the bits in
    each neighbour that point back at it.

    Returns:
        Number of edges removed
    """
    codec = store.codec
    ext = store.get_extension(key, direction)
    if not ext:
        return 0

    back = codec.back_base(key, direction)
    opposite = direction.opposite
    for base in base_list(ext):
        neighbour = codec.step(key, direction, base)
        store.clear_extension(neighbour, opposite, back)
        store.clear_extension(key, direction, base)
    return bin(ext).count('1')


def remove_sequence_and_extensions(store: SequenceCollection, key: int) -> bool:
    """
    Tombstone a canonical k-mer and detach it from its neighbours.

    Returns:
        True if a live node was removed
    """
    if key not in store:
        return False
    remove_extensions_to_sequence(store, key, Direction.SENSE)
    remove_extensions_to_sequence(store, key, Direction.ANTISENSE)
    store.erase(key)
    return True


def neighbours(store: SequenceCollection, key: int, direction: Direction):
    """Oriented neighbour keys of an oriented k-mer in ``direction``."""
    codec = store.codec
    return [codec.step(key, direction, base)
            for base in base_list(store.get_extension(key, direction))]


__all__ = [
    'generate_adjacency',
    'remove_extensions_to_sequence',
    'remove_sequence_and_extensions',
    'neighbours',
]

# ContigWeaver v0.1.0
# Any usage is subject to this software's license.
