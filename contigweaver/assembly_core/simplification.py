#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
ContigWeaver v0.1.0

Graph simplification passes over the k-mer store.

- Coverage parameter selection from the k-mer coverage histogram
- Tip erosion (recursive, to a fixed point)
- Dead-end branch trimming with doubling branch lengths
- Low-coverage contig removal
- Bubble popping (equal-length alternate paths)
- Ambiguity marking and splitting

Every pass takes the graph store plus the AssemblyContext for the
current k, reads its thresholds from ``ctx.params`` and records counts in
``ctx.stats``. Removals only tombstone nodes; compaction is left to the
driver between passes.

Author: ContigWeaver Development Team
License: Dual License (Academic/Commercial) - See LICENSE_ACADEMIC.md and LICENSE_COMMERCIAL.md
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple
import logging

import numpy as np

from .adjacency import (
    neighbours,
    remove_extensions_to_sequence,
    remove_sequence_and_extensions,
)
from .context import AUTO, AssemblyContext
from .contig_extractor import extract_contigs, spell
from .errors import PipelineInvariantError
from .graph_store import KmerNode, SequenceCollection, SF_MARK_BOTH, base_list, single_base
from .kmer_codec import Direction

logger = logging.getLogger(__name__)


# Number of rising histogram bins tolerated before the minimum is accepted.
HISTOGRAM_SMOOTHING = 4

# Bubbles with more alternate paths than this are left alone.
MAX_BUBBLE_BRANCHES = 3


# ============================================================================
# Coverage parameters
# ============================================================================

def first_local_minimum(values: np.ndarray, counts: np.ndarray) -> int:
    """
    First local minimum of a sparse histogram.

    Returns 0 when the histogram is empty or the minimum is the last bin.
    """
    if len(values) == 0:
        return 0
    minimum = 0
    rising = 0
    for i in range(len(values)):
        if counts[i] <= counts[minimum]:
            minimum = i
            rising = 0
        else:
            rising += 1
            if rising >= HISTOGRAM_SMOOTHING:
                break
    if minimum == len(values) - 1:
        return 0
    return int(values[minimum])


def median_coverage(values: np.ndarray, counts: np.ndarray, low: int = 0) -> float:
    """Median coverage of k-mers whose coverage is at least ``low``."""
    keep = values >= low
    values, counts = values[keep], counts[keep]
    if counts.sum() == 0:
        return 0.0
    cumulative = np.cumsum(counts)
    idx = int(np.searchsorted(cumulative, cumulative[-1] / 2.0))
    return float(values[idx])


def set_coverage_parameters(ctx: AssemblyContext, values: np.ndarray,
                            counts: np.ndarray) -> int:
    """
    Fill in auto (-1) thresholds from the coverage histogram.

    Returns:
        The minimum k-mer coverage (0 if it could not be determined)
    """
    params = ctx.params
    min_cov = first_local_minimum(values, counts)
    if min_cov == 0:
        logger.info("Unable to determine minimum k-mer coverage")
    else:
        logger.info(f"Minimum k-mer coverage is {min_cov}")

    median = median_coverage(values, counts, low=min_cov)
    logger.info(f"Median k-mer coverage is {median:g}")
    ctx.stats.min_coverage = min_cov
    ctx.stats.median_coverage = median

    if params.erode == AUTO:
        params.erode = min_cov
        logger.info(f"Setting parameter e (erode) to {params.erode}")
    if params.erode_strand == AUTO:
        params.erode_strand = 0 if min_cov <= 2 else 1
        logger.info(f"Setting parameter E (erodeStrand) to {params.erode_strand}")
    if params.coverage == AUTO:
        params.coverage = float(min_cov)
        logger.info(f"Setting parameter c (coverage) to {params.coverage:g}")
    return min_cov


# ============================================================================
# Contiguity
# ============================================================================

class SeqContiguity(Enum):
    ISLAND = "island"
    ENDPOINT = "endpoint"
    CONTIGUOUS = "contiguous"


def check_seq_contiguity(node: KmerNode,
                         consider_marks: bool = False) -> Tuple[SeqContiguity, Optional[Direction]]:
    """
    Classify a canonical node by which of its sides have extensions.

    Returns:
        (contiguity, direction) where direction is the populated side of
        an endpoint and None otherwise
    """
    child = node.has_extension(Direction.SENSE) and not (
        consider_marks and node.marked(Direction.SENSE))
    parent = node.has_extension(Direction.ANTISENSE) and not (
        consider_marks and node.marked(Direction.ANTISENSE))
    if child and parent:
        return SeqContiguity.CONTIGUOUS, None
    if not child and not parent:
        return SeqContiguity.ISLAND, None
    return SeqContiguity.ENDPOINT, Direction.SENSE if child else Direction.ANTISENSE


# ============================================================================
# Erosion
# ============================================================================

def _should_erode(node: KmerNode, erode: int, erode_strand: int) -> bool:
    return (node.coverage < erode
            or node.multiplicity[0] < erode_strand
            or node.multiplicity[1] < erode_strand)


def erode_ends(store: SequenceCollection, ctx: AssemblyContext) -> int:
    """
    Erode low-coverage tips.

    Islands and endpoints below the erosion thresholds are removed; their
    former neighbours are re-examined immediately, so a single call erodes
    whole low-coverage dead ends and leaves the graph at its fixed point.
    Nothing is eroded unless ``erode`` is positive; ``erode_strand`` only
    tightens an enabled erosion.

    Returns:
        Number of k-mers eroded
    """
    params = ctx.params
    if params.erode <= 0:
        return 0
    erode = params.erode
    erode_strand = max(params.erode_strand, 0)

    codec = store.codec
    num_eroded = 0
    for key, _ in store.items():
        pending = [key]
        while pending:
            current = pending.pop()
            node = store.lookup(current)
            if node is None:
                continue
            contiguity, _ = check_seq_contiguity(node)
            if contiguity == SeqContiguity.CONTIGUOUS:
                continue
            if not _should_erode(node, erode, erode_strand):
                continue
            for direction in Direction:
                for neighbour in neighbours(store, current, direction):
                    pending.append(codec.canonical(neighbour))
            remove_sequence_and_extensions(store, current)
            num_eroded += 1

    if num_eroded > 0:
        logger.info(f"Eroded {num_eroded} tips")
    ctx.stats.eroded += num_eroded
    return num_eroded


def erode_to_fixed_point(store: SequenceCollection, ctx: AssemblyContext) -> int:
    """Erode, then verify that a second sweep finds nothing."""
    num_eroded = erode_ends(store, ctx)
    extra = erode_ends(store, ctx)
    if extra != 0:
        raise PipelineInvariantError(
            f"erosion did not reach a fixed point: verification sweep eroded {extra} k-mer",
            k=ctx.k)
    return num_eroded


# ============================================================================
# Trimming
# ============================================================================

class BranchState(Enum):
    ACTIVE = "active"
    NOEXT = "noext"          # reached a dead end
    AMBI_SAME = "ambi_same"  # last k-mer forks in the walking direction
    AMBI_OPP = "ambi_opp"    # next k-mer has several parents
    TOO_LONG = "too_long"


@dataclass
class BranchRecord:
    """Oriented k-mers collected while walking from a tip."""
    direction: Direction
    kmers: List[int] = field(default_factory=list)
    state: BranchState = BranchState.ACTIVE

    def __len__(self) -> int:
        return len(self.kmers)

    @property
    def is_active(self) -> bool:
        return self.state == BranchState.ACTIVE

    def terminate(self, state: BranchState):
        self.state = state


def process_linear_extension(store: SequenceCollection, branch: BranchRecord,
                             current: int, max_length: int) -> Optional[int]:
    """
    Add ``current`` to the branch and return the next k-mer to visit.

    Returns None once the branch has been terminated.
    """
    direction = branch.direction
    if len(branch) > max_length:
        branch.terminate(BranchState.TOO_LONG)
        return None
    back = store.get_extension(current, direction.opposite)
    if back & (back - 1):
        branch.terminate(BranchState.AMBI_OPP)
        return None

    branch.kmers.append(current)
    if len(branch) > max_length:
        branch.terminate(BranchState.TOO_LONG)
        return None

    ext = store.get_extension(current, direction)
    if not ext:
        branch.terminate(BranchState.NOEXT)
        return None
    base = single_base(ext)
    if base is None:
        branch.terminate(BranchState.AMBI_SAME)
        return None
    return store.codec.step(current, direction, base)


def remove_marked(store: SequenceCollection) -> int:
    """Remove every k-mer marked on both sides."""
    count = 0
    for key, node in store.items():
        if node.flags & SF_MARK_BOTH == SF_MARK_BOTH:
            remove_sequence_and_extensions(store, key)
            count += 1
    return count


def trim_sequences(store: SequenceCollection, ctx: AssemblyContext,
                   max_branch: int) -> int:
    """
    One trimming round: remove dead-end branches of at most ``max_branch`` k-mers.

    Branches are marked during the sweep and removed afterwards.

    Returns:
        Number of branches removed
    """
    num_branches = 0
    for key, node in store.items():
        if node.marked():
            continue
        contiguity, direction = check_seq_contiguity(node)
        if contiguity == SeqContiguity.CONTIGUOUS:
            continue
        if contiguity == SeqContiguity.ISLAND:
            store.mark(key)
            num_branches += 1
            continue

        branch = BranchRecord(direction)
        current = key
        while branch.is_active:
            current = process_linear_extension(store, branch, current, max_branch)

        if branch.state in (BranchState.NOEXT, BranchState.AMBI_OPP):
            for kmer in branch.kmers:
                store.mark(kmer)
            num_branches += 1

    num_swept = remove_marked(store)
    if num_branches > 0:
        logger.debug(f"Trimmed {num_swept} k-mer in {num_branches} branches")
    ctx.stats.trimmed += num_swept
    return num_branches


def perform_trim(store: SequenceCollection, ctx: AssemblyContext) -> int:
    """
    Trim dead-end branches up to ``trim_len`` k-mers.

    Short branches go first (1, 2, 4, ... k-mers) so that long tips are not
    cut back before their shorter siblings disappear; the full length is
    then repeated until a round removes nothing.

    Returns:
        Number of branches removed
    """
    params = ctx.params
    trim_len = params.trim_len
    if not trim_len or trim_len <= 0:
        return 0

    before = ctx.stats.trimmed
    rounds = 0
    total = 0
    trim = 1
    while trim < trim_len:
        rounds += 1
        total += trim_sequences(store, ctx, trim)
        trim *= 2

    while True:
        rounds += 1
        if rounds > params.max_pass_rounds:
            raise PipelineInvariantError(
                f"trimming did not converge within {params.max_pass_rounds} rounds", k=ctx.k)
        count = trim_sequences(store, ctx, trim_len)
        total += count
        if count == 0:
            break

    logger.info(f"Pruned {ctx.stats.trimmed - before} k-mer in {rounds} rounds")
    return total


# ============================================================================
# Ambiguity
# ============================================================================

def _mark_neighbours(store: SequenceCollection, key: int, direction: Direction) -> int:
    count = 0
    for neighbour in neighbours(store, key, direction):
        store.mark(neighbour, direction.opposite)
        count += 1
    return count


def mark_ambiguous(store: SequenceCollection, ctx: Optional[AssemblyContext] = None) -> int:
    """
    Mark ambiguous sides so contig extraction stops there.

    A side is marked when it has more than one extension or when its
    (k-1)-overlap is a palindrome; a palindromic k-mer is marked on both
    sides. The facing side of every neighbour is marked as well.

    Returns:
        Number of sides marked
    """
    codec = store.codec
    num_vertices = 0
    num_edges = 0
    for key, node in store.items():
        if codec.is_palindrome(key):
            num_vertices += 2
            store.mark(key)
            num_edges += _mark_neighbours(store, key, Direction.SENSE)
            num_edges += _mark_neighbours(store, key, Direction.ANTISENSE)
            continue
        for direction in Direction:
            if node.is_ambiguous(direction) or codec.is_palindrome_end(key, direction):
                num_vertices += 1
                store.mark(key, direction)
                num_edges += _mark_neighbours(store, key, direction)

    logger.info(f"Marked {num_edges} edges of {num_vertices} ambiguous vertices")
    if ctx is not None:
        ctx.stats.ambiguous_marked += num_vertices
    return num_vertices


def split_ambiguous(store: SequenceCollection) -> int:
    """Remove the edges on every marked side."""
    count = 0
    for key, node in store.items():
        for direction in Direction:
            if node.marked(direction):
                remove_extensions_to_sequence(store, key, direction)
                count += 1
    logger.debug(f"Split {count} ambiguous edges")
    return count


# ============================================================================
# Coverage pruning
# ============================================================================

def remove_low_coverage_contigs(store: SequenceCollection, ctx: AssemblyContext) -> int:
    """
    Remove whole contigs whose mean k-mer coverage is below ``coverage``.

    The threshold is zeroed afterwards, so it applies once per k.

    Returns:
        Number of k-mers removed
    """
    params = ctx.params
    mark_ambiguous(store, ctx)

    logger.info(f"Removing low-coverage contigs (mean k-mer coverage < {params.coverage:g})")
    result = extract_contigs(store, min_coverage=params.coverage)

    canonical = store.codec.canonical
    num_kmers = 0
    for contig in result.removed:
        for kmer in contig.kmers:
            if remove_sequence_and_extensions(store, canonical(kmer)):
                num_kmers += 1
    split_ambiguous(store)

    logger.info(f"Removed {num_kmers} k-mer in {len(result.removed)} low-coverage contigs")
    ctx.stats.low_coverage_contigs += len(result.removed)
    ctx.stats.low_coverage_kmers += num_kmers
    params.coverage = 0
    return num_kmers


# ============================================================================
# Bubbles
# ============================================================================

@dataclass
class Bubble:
    """
    Alternate paths between the same branch and merge k-mers.

    Attributes:
        bubble_id: Sequential id within the k
        origin: Oriented k-mer where the paths diverge
        direction: Direction the paths were followed in
        branches: Oriented k-mers of each path, ending with the merge k-mer
        coverages: Coverage sum of each path, excluding the merge k-mer
        kept: Index of the surviving path
    """
    bubble_id: int
    origin: int
    direction: Direction
    branches: List[List[int]]
    coverages: List[int]
    kept: int

    def branch_kmers(self, index: int) -> List[int]:
        """Origin, path and merge k-mers in reading order."""
        kmers = [self.origin] + self.branches[index]
        if self.direction == Direction.ANTISENSE:
            kmers.reverse()
        return kmers


def _explore_branches(store: SequenceCollection, origin: int, direction: Direction,
                      bases: List[int], max_length: int) -> Optional[List[List[int]]]:
    """Extend all branches in lockstep until they join; None if they don't."""
    codec = store.codec
    branches = [[codec.step(origin, direction, base)] for base in bases]
    while True:
        if len({branch[-1] for branch in branches}) == 1:
            return branches
        if any(len(branch) > max_length for branch in branches):
            return None
        for branch in branches:
            base = single_base(store.get_extension(branch[-1], direction))
            if base is None:
                return None
            branch.append(codec.step(branch[-1], direction, base))


def _is_simple_bubble(store: SequenceCollection, origin: int,
                      branches: List[List[int]]) -> bool:
    """Interior k-mers must be unambiguous and distinct, the paths must not loop."""
    canonical = store.codec.canonical
    start = canonical(origin)
    merge = canonical(branches[0][-1])
    if merge == start:
        return False
    seen = {start, merge}
    for branch in branches:
        for kmer in branch[:-1]:
            canon = canonical(kmer)
            if canon in seen:
                return False
            seen.add(canon)
            node = store.lookup(canon)
            if node is None:
                return False
            if node.is_ambiguous(Direction.SENSE) or node.is_ambiguous(Direction.ANTISENSE):
                return False
    return True


def pop_bubbles(store: SequenceCollection, ctx: AssemblyContext) -> Tuple[int, List[Bubble]]:
    """
    Pop bubbles no longer than ``bubble_len`` bases.

    The path with the highest coverage sum survives. Ties keep the path
    whose spelled sequence sorts first.

    Returns:
        (number of bubbles popped, popped Bubble records)
    """
    params = ctx.params
    max_length = params.max_bubble_kmers
    if params.bubble_len <= 0 or max_length <= 0:
        return 0, []

    codec = store.codec
    canonical = codec.canonical
    bubbles: List[Bubble] = []
    for key, node in store.items():
        for direction in Direction:
            if store.lookup(key) is None:
                break
            bases = base_list(node.get_extension(direction))
            if len(bases) < 2 or len(bases) > MAX_BUBBLE_BRANCHES:
                continue
            branches = _explore_branches(store, key, direction, bases, max_length)
            if branches is None or not _is_simple_bubble(store, key, branches):
                continue

            coverages = [sum(store.multiplicity(kmer) for kmer in branch[:-1])
                         for branch in branches]
            order = []
            for i, branch in enumerate(branches):
                path = list(reversed(branch)) if direction == Direction.ANTISENSE else branch
                order.append((-coverages[i], spell(codec, path), i))
            kept = min(order)[2]

            for i, branch in enumerate(branches):
                if i == kept:
                    continue
                for kmer in branch[:-1]:
                    remove_sequence_and_extensions(store, canonical(kmer))

            bubbles.append(Bubble(
                bubble_id=len(bubbles),
                origin=key,
                direction=direction,
                branches=branches,
                coverages=coverages,
                kept=kept,
            ))

    logger.info(f"Removed {len(bubbles)} bubbles")
    ctx.stats.bubbles_popped += len(bubbles)
    return len(bubbles), bubbles


__all__ = [
    'HISTOGRAM_SMOOTHING',
    'MAX_BUBBLE_BRANCHES',
    'first_local_minimum',
    'median_coverage',
    'set_coverage_parameters',
    'SeqContiguity',
    'check_seq_contiguity',
    'erode_ends',
    'erode_to_fixed_point',
    'BranchState',
    'BranchRecord',
    'process_linear_extension',
    'remove_marked',
    'trim_sequences',
    'perform_trim',
    'mark_ambiguous',
    'split_ambiguous',
    'remove_low_coverage_contigs',
    'Bubble',
    'pop_bubbles',
]

# ContigWeaver v0.1.0
# Any usage is subject to this software's license.
