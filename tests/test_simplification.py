#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
ContigWeaver v0.1.0

Tests for the graph simplification passes:
- coverage threshold selection
- tip erosion
- branch trimming
- low-coverage contig removal
- ambiguity marking
- bubble popping

Author: ContigWeaver Development Team
License: Dual License (Academic/Commercial) - See LICENSE_ACADEMIC.md and LICENSE_COMMERCIAL.md
"""

import pytest
import numpy as np

from contigweaver.assembly_core.context import AUTO, AssemblyContext, AssemblyParameters
from contigweaver.assembly_core.contig_extractor import spell
from contigweaver.assembly_core.graph_store import KmerNode
from contigweaver.assembly_core.kmer_codec import Direction
from contigweaver.assembly_core.simplification import (
    BranchRecord,
    BranchState,
    SeqContiguity,
    check_seq_contiguity,
    erode_ends,
    erode_to_fixed_point,
    first_local_minimum,
    mark_ambiguous,
    median_coverage,
    perform_trim,
    pop_bubbles,
    process_linear_extension,
    remove_low_coverage_contigs,
    set_coverage_parameters,
    split_ambiguous,
    trim_sequences,
)
from contigweaver.utils.sequence_utils import reverse_complement


# ============================================================================
# Coverage parameters
# ============================================================================

class TestCoverageHistogram:
    """Test threshold selection from the coverage histogram."""

    def test_first_local_minimum(self):
        values = np.array([1, 2, 3, 4, 5])
        counts = np.array([10, 2, 5, 8, 9])
        assert first_local_minimum(values, counts) == 2

    def test_minimum_after_small_rise(self):
        values = np.array([1, 2, 3, 4, 5])
        counts = np.array([10, 5, 6, 3, 20])
        assert first_local_minimum(values, counts) == 4

    def test_stops_after_sustained_rise(self):
        values = np.arange(1, 8)
        counts = np.array([10, 5, 6, 7, 8, 9, 1])
        assert first_local_minimum(values, counts) == 2

    def test_minimum_at_last_bin_is_zero(self):
        assert first_local_minimum(np.array([1, 2, 3]), np.array([10, 8, 6])) == 0

    def test_empty_histogram(self):
        assert first_local_minimum(np.array([]), np.array([])) == 0

    def test_median_coverage(self):
        values = np.array([1, 10])
        counts = np.array([5, 95])
        assert median_coverage(values, counts) == 10.0
        assert median_coverage(values, counts, low=11) == 0.0

    def test_set_auto_parameters(self):
        ctx = AssemblyContext(AssemblyParameters(k=21))
        values = np.array([1, 2, 3, 10, 11, 12])
        counts = np.array([50, 10, 5, 30, 40, 35])

        assert set_coverage_parameters(ctx, values, counts) == 3
        assert ctx.params.erode == 3
        assert ctx.params.erode_strand == 1
        assert ctx.params.coverage == 3.0
        assert ctx.stats.min_coverage == 3
        assert ctx.stats.median_coverage == 11.0

    def test_explicit_parameters_kept(self):
        ctx = AssemblyContext(AssemblyParameters(k=21, erode=7, erode_strand=0, coverage=0))
        set_coverage_parameters(ctx, np.array([1, 2, 3, 10]), np.array([50, 10, 5, 30]))
        assert ctx.params.erode == 7
        assert ctx.params.erode_strand == 0
        assert ctx.params.coverage == 0

    def test_low_minimum_disables_strand_erosion(self):
        ctx = AssemblyContext(AssemblyParameters(k=21))
        set_coverage_parameters(ctx, np.array([1, 2, 3, 4]), np.array([50, 5, 30, 40]))
        assert ctx.params.erode == 2
        assert ctx.params.erode_strand == 0

    def test_defaults(self):
        params = AssemblyParameters(k=25)
        assert params.erode == AUTO
        assert params.trim_len == 25
        assert params.bubble_len == 75
        assert params.max_bubble_kmers == 51


class TestContiguity:
    def test_classification(self):
        node = KmerNode()
        assert check_seq_contiguity(node) == (SeqContiguity.ISLAND, None)
        node.set_base(Direction.ANTISENSE, 1)
        assert check_seq_contiguity(node) == (SeqContiguity.ENDPOINT, Direction.ANTISENSE)
        node.set_base(Direction.SENSE, 2)
        assert check_seq_contiguity(node) == (SeqContiguity.CONTIGUOUS, None)

    def test_marks_considered(self):
        node = KmerNode()
        node.set_base(Direction.SENSE, 0)
        node.set_base(Direction.ANTISENSE, 0)
        node.flags = 0x1
        assert check_seq_contiguity(node)[0] == SeqContiguity.CONTIGUOUS
        assert check_seq_contiguity(node, consider_marks=True) == (
            SeqContiguity.ENDPOINT, Direction.ANTISENSE)


# ============================================================================
# Erosion
# ============================================================================

class TestErosion:
    """Test tip erosion."""

    def test_erodes_low_coverage_tip(self, make_store, genome, tip_read):
        store, ctx = make_store([genome] * 10 + [tip_read], erode=2)
        assert store.size() == 110

        assert erode_ends(store, ctx) == 10
        store.compact()
        assert store.size() == 100
        assert ctx.stats.eroded == 10
        assert erode_ends(store, ctx) == 0

    def test_fork_keeps_one_extension(self, make_store, genome, tip_read):
        store, ctx = make_store([genome] * 10 + [tip_read], erode=2)
        erode_ends(store, ctx)
        fork = store.codec.encode(genome[49:70])
        assert store.get_extension(fork, Direction.SENSE) == 1 << 2  # G

    def test_fixed_point(self, make_store, genome, tip_read):
        store, ctx = make_store([genome] * 10 + [tip_read], erode=2)
        assert erode_to_fixed_point(store, ctx) == 10

    def test_strand_erosion(self, make_store, genome, tip_read):
        reads = [genome] * 5 + [reverse_complement(genome)] * 5 + [tip_read]
        store, ctx = make_store(reads, erode=1, erode_strand=1)
        assert erode_ends(store, ctx) == 10
        store.compact()
        assert store.size() == 100

    def test_strand_threshold_alone_does_not_erode(self, make_store, genome, tip_read):
        store, ctx = make_store([genome] * 10 + [tip_read], erode=0, erode_strand=1)
        assert erode_ends(store, ctx) == 0
        assert store.size() == 110
        assert ctx.stats.eroded == 0

    def test_disabled(self, make_store, genome, tip_read):
        store, ctx = make_store([genome, tip_read])
        assert erode_ends(store, ctx) == 0

    def test_everything_can_erode(self, make_store, genome):
        store, ctx = make_store([genome], erode=2)
        assert erode_ends(store, ctx) == 100
        assert store.empty()


# ============================================================================
# Trimming
# ============================================================================

class TestTrimming:
    """Test dead-end branch trimming."""

    def test_trims_tip(self, make_store, genome, tip_read):
        store, ctx = make_store([genome] * 10 + [tip_read] * 5, trim_len=21)
        assert perform_trim(store, ctx) == 1
        store.compact()
        assert store.size() == 100
        assert ctx.stats.trimmed == 10

    def test_long_branch_survives(self, make_store, genome, tip_read):
        store, ctx = make_store([genome] * 10 + [tip_read] * 5)
        assert trim_sequences(store, ctx, 5) == 0
        assert store.size() == 110

    def test_island_removed(self, make_store, genome, other_sequence):
        store, ctx = make_store([genome, other_sequence[:21]], trim_len=21)
        perform_trim(store, ctx)
        store.compact()
        assert store.size() == 100

    def test_disabled(self, make_store, genome, tip_read):
        store, ctx = make_store([genome, tip_read])
        assert perform_trim(store, ctx) == 0

    def test_branch_walk_states(self, make_store, genome, tip_read):
        store, _ = make_store([genome, tip_read])
        codec = store.codec
        tip_end = codec.encode(tip_read[-21:])

        branch = BranchRecord(Direction.ANTISENSE)
        current = tip_end
        while branch.is_active:
            current = process_linear_extension(store, branch, current, 20)
        assert branch.state == BranchState.AMBI_OPP
        assert len(branch) == 10

        branch = BranchRecord(Direction.ANTISENSE)
        current = tip_end
        while branch.is_active:
            current = process_linear_extension(store, branch, current, 4)
        assert branch.state == BranchState.TOO_LONG

    def test_walk_into_fork(self, make_store, genome, tip_read):
        store, _ = make_store([genome, tip_read])
        branch = BranchRecord(Direction.SENSE)
        current = store.codec.encode(genome[:21])
        while branch.is_active:
            current = process_linear_extension(store, branch, current, 100)
        assert branch.state == BranchState.AMBI_SAME
        assert len(branch) == 50


# ============================================================================
# Coverage and ambiguity
# ============================================================================

class TestLowCoverage:
    def test_removes_low_coverage_contig(self, make_store, genome, other_sequence):
        store, ctx = make_store([genome] * 10 + [other_sequence], coverage=5)
        assert remove_low_coverage_contigs(store, ctx) == 40
        store.compact()
        assert store.size() == 100
        assert ctx.params.coverage == 0
        assert ctx.stats.low_coverage_contigs == 1

    def test_marks_split_edges(self, make_store, genome, tip_read):
        store, ctx = make_store([genome] * 10 + [tip_read] * 10, coverage=5)
        assert remove_low_coverage_contigs(store, ctx) == 0
        fork = store.codec.encode(genome[49:70])
        assert store.get_extension(fork, Direction.SENSE) == 0


class TestAmbiguity:
    def test_marks_fork_and_neighbours(self, make_store, genome, tip_read):
        store, ctx = make_store([genome, tip_read])
        codec = store.codec
        assert mark_ambiguous(store, ctx) == 1
        assert store.is_marked(codec.encode(genome[49:70]), Direction.SENSE)
        assert store.is_marked(codec.encode(genome[50:71]), Direction.ANTISENSE)
        assert store.is_marked(codec.encode(tip_read[10:31]), Direction.ANTISENSE)
        assert not store.is_marked(codec.encode(genome[49:70]), Direction.ANTISENSE)
        assert ctx.stats.ambiguous_marked == 1

    def test_split_removes_marked_edges(self, make_store, genome, tip_read):
        store, ctx = make_store([genome, tip_read])
        mark_ambiguous(store, ctx)
        assert split_ambiguous(store) == 3
        fork = store.codec.encode(genome[49:70])
        assert store.get_extension(fork, Direction.SENSE) == 0

    def test_palindrome_marked_both_sides(self, make_store):
        store, ctx = make_store(["ACGTACGT", "ACGTACGG"], k=4)
        codec = store.codec
        mark_ambiguous(store, ctx)
        assert store.lookup(codec.encode("ACGT")).marked(Direction.SENSE)
        assert store.lookup(codec.encode("ACGT")).marked(Direction.ANTISENSE)
        assert store.is_marked(codec.encode("CGTA"), Direction.ANTISENSE)


# ============================================================================
# Bubbles
# ============================================================================

class TestBubbles:
    """Test bubble popping."""

    def test_pops_snp_bubble(self, make_store, genome, snp_variant):
        store, ctx = make_store([genome] * 6 + [snp_variant] * 3, bubble_len=63)
        assert store.size() == 121

        count, bubbles = pop_bubbles(store, ctx)
        assert count == 1
        bubble = bubbles[0]
        assert sorted(bubble.coverages) == [63, 126]
        assert bubble.coverages[bubble.kept] == 126

        store.compact()
        assert store.size() == 100
        assert ctx.stats.bubbles_popped == 1

    def test_bubble_branch_sequences(self, make_store, genome, snp_variant):
        store, ctx = make_store([genome] * 6 + [snp_variant] * 3, bubble_len=63)
        _, bubbles = pop_bubbles(store, ctx)
        bubble = bubbles[0]
        codec = store.codec

        kept = spell(codec, bubble.branch_kmers(bubble.kept))
        assert kept in (genome[39:82], reverse_complement(genome[39:82]))
        other = spell(codec, bubble.branch_kmers(1 - bubble.kept))
        assert len(other) == 43
        assert other in (snp_variant[39:82], reverse_complement(snp_variant[39:82]))

    def test_bubble_too_long(self, make_store, genome, snp_variant):
        store, ctx = make_store([genome] * 6 + [snp_variant] * 3, bubble_len=40)
        assert pop_bubbles(store, ctx) == (0, [])
        assert store.size() == 121

    def test_disabled(self, make_store, genome, snp_variant):
        store, ctx = make_store([genome] * 6 + [snp_variant] * 3)
        assert pop_bubbles(store, ctx) == (0, [])

    def test_tie_is_deterministic(self, make_store, genome, snp_variant):
        first, ctx1 = make_store([genome] * 3 + [snp_variant] * 3, bubble_len=63)
        second, ctx2 = make_store([reverse_complement(snp_variant)] * 3
                                  + [reverse_complement(genome)] * 3, bubble_len=63)
        popped = [pop_bubbles(first, ctx1), pop_bubbles(second, ctx2)]
        codec = first.codec
        for count, (bubble,) in popped:
            assert count == 1
            assert bubble.coverages[0] == bubble.coverages[1]
            spelled = [spell(codec, bubble.branch_kmers(i)) for i in range(len(bubble.branches))]
            assert spell(codec, bubble.branch_kmers(bubble.kept)) == min(spelled)
        first.compact()
        second.compact()
        assert first.keys() == second.keys()

    @pytest.mark.parametrize("reads_first", [True, False])
    def test_result_independent_of_read_order(self, make_store, genome, snp_variant, reads_first):
        reads = [genome] * 6 + [snp_variant] * 3
        if not reads_first:
            reads = list(reversed(reads))
        store, ctx = make_store(reads, bubble_len=63)
        pop_bubbles(store, ctx)
        store.compact()
        codec = store.codec
        assert codec.canonical(codec.encode(genome[40:61])) in store
        assert codec.canonical(codec.encode(snp_variant[40:61])) not in store
