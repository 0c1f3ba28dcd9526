#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
ContigWeaver v0.1.0

Contig extraction: path contraction of non-branching chains.

A side of an oriented k-mer is *open* when it has exactly one extension,
is not marked ambiguous, and the neighbour's facing side also has exactly
one unmarked extension. Chains start at k-mers with a closed side and walk
through open sides; whatever is left unseen afterwards is a cycle. Every
live k-mer ends up in exactly one chain.

Author: ContigWeaver Development Team
License: Dual License (Academic/Commercial) - See LICENSE_ACADEMIC.md and LICENSE_COMMERCIAL.md
"""

from dataclasses import dataclass, field
from typing import Callable, List, Optional
import logging

from .graph_store import SequenceCollection, SeqFlag, single_base
from .kmer_codec import BASES, Direction, KmerCodec

logger = logging.getLogger(__name__)


@dataclass
class Contig:
    """
    A contracted chain of k-mers.

    Attributes:
        contig_id: Sequential id (None for chains dropped by a coverage filter)
        sequence: Nucleotide sequence spelled by the chain
        kmer_count: Number of k-mers in the chain
        coverage_sum: Sum of member k-mer coverages
        kmers: Oriented k-mer keys in chain order
    """
    contig_id: Optional[int]
    sequence: str
    kmer_count: int
    coverage_sum: int
    kmers: List[int] = field(default_factory=list, repr=False)

    @property
    def length(self) -> int:
        return len(self.sequence)

    @property
    def mean_coverage(self) -> float:
        if self.kmer_count == 0:
            return 0.0
        return self.coverage_sum / self.kmer_count


@dataclass
class ExtractionResult:
    """Contigs emitted by one extraction sweep."""
    contigs: List[Contig] = field(default_factory=list)
    removed: List[Contig] = field(default_factory=list)

    @property
    def num_contigs(self) -> int:
        return len(self.contigs)

    @property
    def total_bases(self) -> int:
        return sum(c.length for c in self.contigs)


def spell(codec: KmerCodec, kmers: List[int]) -> str:
    """Overlap-join consecutive oriented k-mers (each step adds one base)."""
    if not kmers:
        return ''
    return codec.decode(kmers[0]) + ''.join(BASES[key & 3] for key in kmers[1:])


def open_successor(store: SequenceCollection, key: int) -> Optional[int]:
    """The SENSE neighbour of an oriented k-mer if that side is open."""
    if store.is_marked(key, Direction.SENSE):
        return None
    base = single_base(store.get_extension(key, Direction.SENSE))
    if base is None:
        return None
    nxt = store.codec.shift_append(key, base)
    if store.is_marked(nxt, Direction.ANTISENSE):
        return None
    if single_base(store.get_extension(nxt, Direction.ANTISENSE)) is None:
        return None
    return nxt


def _walk(store: SequenceCollection, start: int) -> List[int]:
    canonical = store.codec.canonical
    store.mark_flag(canonical(start), SeqFlag.SF_SEEN)
    chain = [start]
    current = start
    while True:
        nxt = open_successor(store, current)
        if nxt is None:
            break
        node = store.lookup(canonical(nxt))
        if node is None or node.flags & SeqFlag.SF_SEEN:
            break
        node.flags |= SeqFlag.SF_SEEN
        chain.append(nxt)
        current = nxt
    return chain


def extract_contigs(
    store: SequenceCollection,
    sink: Optional[Callable[[Contig], None]] = None,
    min_coverage: float = 0.0,
    first_id: int = 0,
) -> ExtractionResult:
    """
    Partition the live k-mers into chains and emit one contig per chain.

    Args:
        store: Graph store (ambiguous sides should already be marked)
        sink: Called once for every emitted contig
        min_coverage: Chains with a lower mean coverage go to ``removed``
            instead of being emitted
        first_id: Id of the first emitted contig

    Returns:
        ExtractionResult with emitted and filtered chains
    """
    codec = store.codec
    result = ExtractionResult()
    next_id = first_id

    def emit(chain: List[int]):
        nonlocal next_id
        coverage_sum = sum(store.multiplicity(key) for key in chain)
        contig = Contig(
            contig_id=None,
            sequence=spell(codec, chain),
            kmer_count=len(chain),
            coverage_sum=coverage_sum,
            kmers=chain,
        )
        if min_coverage > 0 and contig.mean_coverage < min_coverage:
            result.removed.append(contig)
            return
        contig.contig_id = next_id
        next_id += 1
        result.contigs.append(contig)
        if sink is not None:
            sink(contig)

    store.clear_all_flags(SeqFlag.SF_SEEN)

    # Linear chains and islands
    for key, node in store.items():
        if node.flags & SeqFlag.SF_SEEN:
            continue
        rc = codec.reverse_complement(key)
        forward_open = open_successor(store, key) is not None
        backward_open = open_successor(store, rc) is not None
        if forward_open and backward_open:
            continue
        start = key if not backward_open else rc
        emit(_walk(store, start))

    # Cycles
    for key, node in store.items():
        if node.flags & SeqFlag.SF_SEEN:
            continue
        emit(_walk(store, key))

    store.clear_all_flags(SeqFlag.SF_SEEN)

    logger.debug(f"Extracted {result.num_contigs} contigs "
                 f"({len(result.removed)} below coverage {min_coverage})")
    return result


__all__ = [
    'Contig',
    'ExtractionResult',
    'extract_contigs',
    'open_successor',
    'spell',
]

# ContigWeaver v0.1.0
# Any usage is subject to this software's license.
